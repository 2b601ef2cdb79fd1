import json
from types import SimpleNamespace

from healthcare_pro import config
from healthcare_pro.middleware.rate_limit import user_rate_key


def _interactions(client):
    return client.post("/api/prescriptions/interactions", json={"medications": ["Aspirin"]})


def test_llm_routes_are_limited(client, fake_llm, monkeypatch):
    monkeypatch.setattr(config, "LLM_RATE_LIMIT", "2/minute")
    body = json.dumps({"interactions": []})
    fake_llm.queue(body, body)

    assert _interactions(client).status_code == 200
    assert _interactions(client).status_code == 200
    r = _interactions(client)
    assert r.status_code == 429
    j = r.json()
    assert j["code"] == "TOO_MANY_REQUESTS"
    assert "trace_id" in j
    assert len(fake_llm.calls) == 2


def test_limits_are_counted_per_route(client, fake_llm, monkeypatch):
    monkeypatch.setattr(config, "LLM_RATE_LIMIT", "1/minute")
    fake_llm.queue(json.dumps({"interactions": []}))
    assert _interactions(client).status_code == 200
    r = client.post("/api/mood/ai/insights")
    assert r.status_code == 422


def test_plain_routes_are_not_limited(client, monkeypatch):
    monkeypatch.setattr(config, "LLM_RATE_LIMIT", "1/minute")
    for _ in range(5):
        assert client.get("/api/mood/entries").status_code == 200


def test_rate_key_prefers_user():
    request = SimpleNamespace(state=SimpleNamespace(user_id="user-9"), client=SimpleNamespace(host="1.2.3.4"))
    assert user_rate_key(request) == "user-9"
    request = SimpleNamespace(state=SimpleNamespace(), client=SimpleNamespace(host="1.2.3.4"))
    assert user_rate_key(request) == "1.2.3.4"
