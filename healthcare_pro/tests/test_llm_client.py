import asyncio
import json

import httpx
import pytest

from healthcare_pro.services.llm_client import LLMClient, classify_http_error
from healthcare_pro.utils.exceptions import ApiError, ApiErrorKind


def _client(handler, api_key="gsk_test"):
    return LLMClient(api_key=api_key, model="test-model", base_url="https://llm.test/v1",
                     timeout_s=5, transport=httpx.MockTransport(handler))


def _completion(content):
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


def test_complete_sends_one_chat_request():
    seen = []

    def handler(request):
        seen.append(request)
        return _completion("  {\"ok\": true}  ")

    llm = _client(handler)
    out = asyncio.run(llm.complete("hello", temperature=0.2, max_tokens=100, system="be brief", top_p=0.9))

    assert out == '{"ok": true}'
    assert len(seen) == 1
    req = seen[0]
    assert str(req.url) == "https://llm.test/v1/chat/completions"
    assert req.headers["authorization"] == "Bearer gsk_test"
    body = json.loads(req.content)
    assert body["model"] == "test-model"
    assert body["messages"] == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "hello"},
    ]
    assert body["temperature"] == 0.2
    assert body["max_tokens"] == 100
    assert body["top_p"] == 0.9
    assert body["stream"] is False


def test_defaults_when_not_given():
    llm = _client(lambda r: _completion("x"))
    payload = llm.build_payload("hi")
    assert "top_p" not in payload
    assert payload["messages"] == [{"role": "user", "content": "hi"}]


@pytest.mark.parametrize("key", ["", "your_groq_api_key_here"])
def test_missing_or_placeholder_key_never_calls_out(key):
    calls = []

    def handler(request):
        calls.append(request)
        return _completion("x")

    llm = _client(handler, api_key=key)
    assert llm.configured is False
    with pytest.raises(ApiError) as exc:
        asyncio.run(llm.complete("hello"))
    assert exc.value.kind == ApiErrorKind.NOT_CONFIGURED
    assert calls == []


@pytest.mark.parametrize("status,body,kind", [
    (401, "Invalid API Key", ApiErrorKind.INVALID_KEY),
    (403, "forbidden", ApiErrorKind.UNAUTHORIZED),
    (429, "slow down", ApiErrorKind.RATE_LIMITED),
    (400, "you hit your quota", ApiErrorKind.RATE_LIMITED),
    (503, "down", ApiErrorKind.SERVICE_UNAVAILABLE),
    (500, "oops", ApiErrorKind.UNKNOWN),
])
def test_http_errors_are_classified(status, body, kind):
    llm = _client(lambda r: httpx.Response(status, text=body))
    with pytest.raises(ApiError) as exc:
        asyncio.run(llm.complete("hello"))
    assert exc.value.kind == kind
    assert exc.value.details == {"status": status}


def test_retryable_kinds():
    assert classify_http_error(429, "").retryable is True
    assert classify_http_error(503, "").retryable is True
    assert classify_http_error(401, "invalid api key").retryable is False


def test_network_failure_is_api_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(ApiError) as exc:
        asyncio.run(_client(handler).complete("hello"))
    assert exc.value.kind == ApiErrorKind.NETWORK


def test_timeout_is_network_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(ApiError) as exc:
        asyncio.run(_client(handler).complete("hello"))
    assert exc.value.kind == ApiErrorKind.NETWORK
    assert exc.value.details == {"reason": "timeout"}


def test_empty_choice_is_an_error():
    llm = _client(lambda r: httpx.Response(200, json={"choices": []}))
    with pytest.raises(ApiError) as exc:
        asyncio.run(llm.complete("hello"))
    assert exc.value.kind == ApiErrorKind.UNKNOWN
