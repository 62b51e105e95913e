"""Request builders and response parsers for each supported LLM provider."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from vault_clipper.config import LlmProviderSettings

MAX_OUTPUT_TOKENS = 16_000
TEMPERATURE = 0.3


@dataclass(slots=True, frozen=True)
class ProviderRequest:
    url: str
    headers: dict[str, str]
    payload: dict[str, Any]
    params: dict[str, str] | None = None


RequestBuilder = Callable[[LlmProviderSettings, str, str, str], ProviderRequest]
ResponseParser = Callable[[dict[str, Any]], str | None]


@dataclass(slots=True, frozen=True)
class ProviderAdapter:
    label: str
    build: RequestBuilder
    parse: ResponseParser


def _chat_messages(system: str, user: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": system},
        {"role": "user", "content": user},
    ]


def _build_openai(
    settings: LlmProviderSettings,
    model: str,
    system: str,
    user: str,
) -> ProviderRequest:
    return ProviderRequest(
        url=f"{settings.base_url}/chat/completions",
        headers={"Authorization": f"Bearer {settings.api_key}"},
        payload={
            "model": model,
            "messages": _chat_messages(system, user),
            "temperature": TEMPERATURE,
            "max_completion_tokens": MAX_OUTPUT_TOKENS,
        },
    )


def _build_azure_openai(
    settings: LlmProviderSettings,
    model: str,
    system: str,
    user: str,
) -> ProviderRequest:
    # ``model`` is the Azure deployment name.
    return ProviderRequest(
        url=f"{settings.base_url}/openai/deployments/{quote(model, safe='')}/chat/completions",
        headers={"api-key": settings.api_key},
        payload={
            "messages": _chat_messages(system, user),
            "temperature": TEMPERATURE,
            "max_completion_tokens": MAX_OUTPUT_TOKENS,
        },
        params={"api-version": settings.api_version},
    )


def _build_claude(
    settings: LlmProviderSettings,
    model: str,
    system: str,
    user: str,
) -> ProviderRequest:
    return ProviderRequest(
        url=f"{settings.base_url}/messages",
        headers={
            "x-api-key": settings.api_key,
            "anthropic-version": settings.api_version,
        },
        payload={
            "model": model,
            "max_tokens": MAX_OUTPUT_TOKENS,
            "system": system,
            "messages": [{"role": "user", "content": user}],
        },
    )


def _build_gemini(
    settings: LlmProviderSettings,
    model: str,
    system: str,
    user: str,
) -> ProviderRequest:
    return ProviderRequest(
        url=f"{settings.base_url}/models/{quote(model, safe='')}:generateContent",
        headers={"x-goog-api-key": settings.api_key},
        payload={
            "contents": [{"parts": [{"text": f"{system}\n\n{user}"}]}],
            "generationConfig": {
                "temperature": TEMPERATURE,
                "maxOutputTokens": MAX_OUTPUT_TOKENS,
            },
        },
    )


def _build_ollama(
    settings: LlmProviderSettings,
    model: str,
    system: str,
    user: str,
) -> ProviderRequest:
    return ProviderRequest(
        url=f"{settings.base_url}/api/chat",
        headers={},
        payload={
            "model": model,
            "messages": _chat_messages(system, user),
            "stream": False,
            "options": {"temperature": TEMPERATURE},
        },
    )


def _parse_chat_completion(data: dict[str, Any]) -> str | None:
    choices = data.get("choices") or []
    if not choices:
        return None
    return (choices[0].get("message") or {}).get("content")


def _parse_claude(data: dict[str, Any]) -> str | None:
    blocks = data.get("content") or []
    texts = [block.get("text", "") for block in blocks if block.get("type", "text") == "text"]
    return "".join(texts) or None


def _parse_gemini(data: dict[str, Any]) -> str | None:
    candidates = data.get("candidates") or []
    if not candidates:
        return None
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return parts[0].get("text") if parts else None


def _parse_ollama(data: dict[str, Any]) -> str | None:
    return (data.get("message") or {}).get("content")


PROVIDERS: dict[str, ProviderAdapter] = {
    "openai": ProviderAdapter("OpenAI", _build_openai, _parse_chat_completion),
    "azure-openai": ProviderAdapter("Azure OpenAI", _build_azure_openai, _parse_chat_completion),
    "claude": ProviderAdapter("Claude", _build_claude, _parse_claude),
    "gemini": ProviderAdapter("Gemini", _build_gemini, _parse_gemini),
    "ollama": ProviderAdapter("Ollama", _build_ollama, _parse_ollama),
}
