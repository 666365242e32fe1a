"""Scene generator backends.

SceneWriter takes any async callable of the shape

    async def __call__(self, stage: str, prompt: str) -> str: ...

and expects the returned text to hold one JSON scene object. `stage` is
"opening" or "continuation" and is only used for logging here.

HttpLLM talks to a hosted model and asks it for JSON output directly, so
the reply is normally the bare scene object with no prose around it:

    gemini  POST {base}/v1beta/models/{model}:generateContent
            generationConfig.responseMimeType = "application/json"
    openai  POST {base}/v1/chat/completions
            response_format = {"type": "json_object"}

Every transport or protocol failure surfaces as LLMError. SceneWriter
treats that like any other generator failure and uses a fallback scene.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Literal, NamedTuple, Protocol

import httpx

logger = logging.getLogger(__name__)

ProviderFormat = Literal["gemini", "openai"]

DEFAULT_GEMINI_URL = "https://generativelanguage.googleapis.com"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
JSON_MIME_TYPE = "application/json"


class LLM(Protocol):
    async def __call__(self, stage: str, prompt: str) -> str: ...


class LLMError(RuntimeError):
    """The scene generator backend failed or answered with something unusable."""


# ---------------------------------------------------------------------------
# Wire formats
# ---------------------------------------------------------------------------

def _gemini_request(base_url: str, model: str, prompt: str) -> tuple[str, dict[str, Any]]:
    url = f"{base_url}/v1beta/models/{model or DEFAULT_GEMINI_MODEL}:generateContent"
    return url, {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {"responseMimeType": JSON_MIME_TYPE},
    }


def _gemini_text(data: dict[str, Any]) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        reason = (data.get("promptFeedback") or {}).get("blockReason")
        if reason:
            raise LLMError(f"Gemini blocked the prompt: {reason}")
        raise LLMError("Gemini returned no candidates")
    try:
        parts = candidates[0]["content"]["parts"]
        return "".join(p.get("text", "") for p in parts)
    except (KeyError, TypeError, AttributeError) as e:
        finish = candidates[0].get("finishReason") if isinstance(candidates[0], dict) else None
        raise LLMError(f"Gemini candidate has no text (finishReason={finish})") from e


def _openai_request(base_url: str, model: str, prompt: str) -> tuple[str, dict[str, Any]]:
    body: dict[str, Any] = {
        "messages": [{"role": "user", "content": prompt}],
        "response_format": {"type": "json_object"},
    }
    if model:
        body["model"] = model
    return f"{base_url}/v1/chat/completions", body


def _openai_text(data: dict[str, Any]) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise LLMError("Chat completion has no message content") from e
    if not isinstance(content, str):
        raise LLMError("Chat completion has no message content")
    return content


class _WireFormat(NamedTuple):
    request: Callable[[str, str, str], tuple[str, dict[str, Any]]]
    text: Callable[[dict[str, Any]], str]
    auth_header: Callable[[str], tuple[str, str]]


_WIRE_FORMATS: dict[str, _WireFormat] = {
    "gemini": _WireFormat(_gemini_request, _gemini_text, lambda key: ("x-goog-api-key", key)),
    "openai": _WireFormat(_openai_request, _openai_text, lambda key: ("Authorization", f"Bearer {key}")),
}


# ---------------------------------------------------------------------------
# HttpLLM
# ---------------------------------------------------------------------------

class HttpLLM:
    """Asks a hosted model for one JSON scene per call.

    Args:
        provider_url:    Base URL. May be empty for gemini, which then uses
                         the public Generative Language endpoint.
        api_key:         Sent as x-goog-api-key (gemini) or a bearer token.
        provider_format: "gemini" or "openai".
        model:           Model name; gemini falls back to DEFAULT_GEMINI_MODEL.
        timeout:         HTTP timeout in seconds.
        transport:       Optional httpx transport, e.g. httpx.MockTransport.
    """

    def __init__(
        self,
        provider_url: str = "",
        api_key: str = "",
        provider_format: ProviderFormat = "gemini",
        model: str = "",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if provider_format not in _WIRE_FORMATS:
            raise ValueError(f"Unknown provider format: {provider_format!r}")
        if not provider_url:
            if provider_format != "gemini":
                raise ValueError(f"{provider_format} backend needs a provider URL")
            provider_url = DEFAULT_GEMINI_URL
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._format = provider_format
        self._wire = _WIRE_FORMATS[provider_format]
        self._model = model
        self._timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            name, value = self._wire.auth_header(self._api_key)
            headers[name] = value
        return headers

    async def __call__(self, stage: str, prompt: str) -> str:
        url, body = self._wire.request(self._base_url, self._model, prompt)
        logger.debug("scene request stage=%s format=%s prompt_len=%d", stage, self._format, len(prompt))

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise LLMError(f"Scene generator returned HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise LLMError(f"Scene generator timed out after {self._timeout}s") from e
        except httpx.HTTPError as e:
            raise LLMError(f"Cannot reach scene generator at {self._base_url}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise LLMError("Scene generator answered with a non-JSON body") from e
        if not isinstance(data, dict):
            raise LLMError("Scene generator answered with an unexpected body")

        text = self._wire.text(data)
        logger.debug("scene response stage=%s len=%d", stage, len(text))
        return text
