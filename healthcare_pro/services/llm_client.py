"""Client for the hosted chat-completion endpoint (Groq, OpenAI-compatible).

One request per call, no streaming, no retry and no response cache. Every
failure is raised as ApiError with a kind the workflows can map to a user
message.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from healthcare_pro import config
from healthcare_pro.utils.exceptions import ApiError, ApiErrorKind

logger = logging.getLogger("healthcare_pro")

PLACEHOLDER_KEYS = {"your_groq_api_key_here", "your_api_key_here"}


def classify_http_error(status_code: int, body: str) -> ApiError:
    text = (body or "").lower()
    if status_code == 401 and "invalid api key" in text:
        kind = ApiErrorKind.INVALID_KEY
    elif status_code in (401, 403):
        kind = ApiErrorKind.UNAUTHORIZED
    elif status_code == 429 or "rate limit" in text or "quota" in text:
        kind = ApiErrorKind.RATE_LIMITED
    elif status_code in (502, 503, 504):
        kind = ApiErrorKind.SERVICE_UNAVAILABLE
    else:
        kind = ApiErrorKind.UNKNOWN
    return ApiError(kind, details={"status": status_code})


class LLMClient:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = (config.LLM_API_KEY if api_key is None else api_key).strip()
        self.model = model or config.LLM_MODEL
        self.base_url = (base_url or config.LLM_BASE_URL).rstrip("/")
        self.timeout_s = timeout_s if timeout_s is not None else config.LLM_TIMEOUT_S
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key) and self.api_key not in PLACEHOLDER_KEYS

    def _ensure_configured(self) -> None:
        if not self.api_key:
            raise ApiError(ApiErrorKind.NOT_CONFIGURED)
        if self.api_key in PLACEHOLDER_KEYS:
            raise ApiError(
                ApiErrorKind.NOT_CONFIGURED,
                "Please replace the placeholder API key with your actual Groq API key.",
            )

    def build_payload(
        self,
        prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        system: Optional[str] = None,
        top_p: Optional[float] = None,
    ) -> Dict[str, Any]:
        messages: List[Dict[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": config.LLM_TEMPERATURE if temperature is None else temperature,
            "max_tokens": max_tokens or config.LLM_MAX_TOKENS,
            "stream": False,
        }
        if top_p is not None:
            payload["top_p"] = top_p
        return payload

    async def complete(
        self,
        prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        system: Optional[str] = None,
        top_p: Optional[float] = None,
    ) -> str:
        """Send one chat completion and return the assistant message text."""
        self._ensure_configured()
        payload = self.build_payload(prompt, temperature, max_tokens, system, top_p)
        url = f"{self.base_url}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}

        logger.info({"function": "complete", "model": self.model, "temperature": payload["temperature"],
                     "max_tokens": payload["max_tokens"], "prompt_chars": len(prompt)})
        try:
            async with httpx.AsyncClient(timeout=self.timeout_s, transport=self._transport) as client:
                resp = await client.post(url, headers=headers, json=payload)
        except httpx.TimeoutException as exc:
            logger.warning({"function": "complete", "error": "timeout"})
            raise ApiError(ApiErrorKind.NETWORK, details={"reason": "timeout"}) from exc
        except httpx.HTTPError as exc:
            logger.warning({"function": "complete", "error": str(exc)})
            raise ApiError(ApiErrorKind.NETWORK, details={"reason": type(exc).__name__}) from exc

        if resp.status_code >= 400:
            err = classify_http_error(resp.status_code, resp.text)
            logger.warning({"function": "complete", "status": resp.status_code, "kind": err.kind.value})
            raise err

        try:
            data = resp.json()
        except ValueError as exc:
            raise ApiError(ApiErrorKind.UNKNOWN, "The LLM service returned a non-JSON body") from exc

        choices = data.get("choices") or []
        content = ""
        if choices and isinstance(choices[0], dict):
            content = ((choices[0].get("message") or {}).get("content") or "").strip()
        if not content:
            raise ApiError(ApiErrorKind.UNKNOWN, "No response received from the LLM service")
        logger.debug({"function": "complete", "raw_response": content})
        return content


def get_llm_client() -> LLMClient:
    """FastAPI dependency; tests override it with a fake."""
    return LLMClient()
