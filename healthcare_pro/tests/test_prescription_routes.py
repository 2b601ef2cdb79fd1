import json

from conftest import prescription_json
from healthcare_pro.utils.exceptions import ApiError, ApiErrorKind

RX = "Amoxicillin 500 mg three times daily\nIbuprofen 200 mg as needed"


def test_analyze_and_history(client, fake_llm):
    fake_llm.queue(prescription_json())
    r = client.post("/api/prescriptions/analyze", json={"prescription_text": RX, "analysis_type": "dosage"})
    assert r.status_code == 200, r.text
    j = r.json()
    assert j["state"] == "complete"
    assert j["analysis_type"] == "dosage"
    assert j["result"]["analysis"]["medications"][1]["name"] == "Ibuprofen"
    assert j["analysis_id"]

    assert client.get(f"/api/prescriptions/analyze/{j['id']}").json()["state"] == "complete"

    history = client.get("/api/prescriptions/analyses").json()
    assert [h["id"] for h in history] == [j["analysis_id"]]
    assert history[0]["prescription_text"] == RX

    assert client.delete(f"/api/prescriptions/analyses/{j['analysis_id']}").status_code == 204
    assert client.get("/api/prescriptions/analyses").json() == []


def test_profile_in_prompt(client, fake_llm):
    client.put("/api/profile/", json={"age": 70, "allergies": ["penicillin"]})
    fake_llm.queue(prescription_json())
    client.post("/api/prescriptions/analyze", json={"prescription_text": RX})
    assert "- Allergies: penicillin" in fake_llm.calls[0]["prompt"]


def test_empty_prescription_rejected(client, fake_llm, registry):
    r = client.post("/api/prescriptions/analyze", json={"prescription_text": "   "})
    assert r.status_code == 422
    j = r.json()
    assert j["code"] == "UNPROCESSABLE_ENTITY"
    assert j["message"] == "Please provide prescription information"
    assert fake_llm.calls == []
    assert len(registry) == 0


def test_failed_analysis_can_be_retried(client, fake_llm):
    fake_llm.queue(ApiError(ApiErrorKind.SERVICE_UNAVAILABLE), prescription_json())
    j = client.post("/api/prescriptions/analyze", json={"prescription_text": RX}).json()
    assert j["state"] == "error"
    assert j["error"] == "Analysis failed. Please try again."

    j = client.post(f"/api/prescriptions/analyze/{j['id']}/retry").json()
    assert j["state"] == "complete"


def test_interactions(client, fake_llm):
    fake_llm.queue(json.dumps({"interactions": [], "riskLevel": "Low"}))
    r = client.post("/api/prescriptions/interactions", json={"medications": ["Metformin", "Lisinopril"]})
    assert r.status_code == 200
    assert r.json()["analysis"]["riskLevel"] == "Low"


def test_interactions_llm_failure_is_enveloped(client, fake_llm):
    fake_llm.queue(ApiError(ApiErrorKind.NOT_CONFIGURED))
    r = client.post("/api/prescriptions/interactions", json={"medications": ["Metformin"]})
    assert r.status_code == 503
    j = r.json()
    assert j["kind"] == "NotConfigured"
    assert "GROQ_API_KEY" in j["message"]


def test_medication_lookup_and_searches(client, fake_llm):
    fake_llm.queue(json.dumps({"medication": {"name": "Atorvastatin"}}))
    r = client.post("/api/medications/lookup", json={"medication_name": "Atorvastatin"})
    assert r.status_code == 200
    assert r.json()["sync_status"] == "synced"
    searches = client.get("/api/medications/searches").json()
    assert [s["medication_name"] for s in searches] == ["Atorvastatin"]


def test_blank_medication_name(client, fake_llm):
    r = client.post("/api/medications/lookup", json={"medication_name": " "})
    assert r.status_code == 422
    assert fake_llm.calls == []
