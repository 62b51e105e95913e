"""Transform gateway over ``httpx.AsyncClient``."""

from __future__ import annotations

import logging

import httpx

from vault_clipper.clipper.gateways import TransformMode, TransformResult
from vault_clipper.config import KEYLESS_PROVIDERS, LlmProviderSettings, LlmSettings
from vault_clipper.llm.prompts import build_system_prompt, build_user_message
from vault_clipper.llm.providers import PROVIDERS

logger = logging.getLogger(__name__)

MAX_ERROR_BODY_CHARS = 500


class LlmTransformer:
    """Sends one prompt to the configured provider; failures become results.

    Cancelling the awaiting asyncio task aborts the request in flight.
    """

    def __init__(
        self,
        settings: LlmSettings | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or LlmSettings()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.settings.request_timeout_seconds, connect=10.0),
        )

    async def transform(
        self,
        text: str,
        prompt: str,
        provider: LlmProviderSettings,
        *,
        mode: TransformMode = "format",
        model: str | None = None,
    ) -> TransformResult:
        adapter = PROVIDERS.get(provider.name)
        if adapter is None:
            return TransformResult(success=False, error=f"Unknown provider: {provider.name}")
        if not provider.api_key and provider.name not in KEYLESS_PROVIDERS:
            return TransformResult(success=False, error=f"{adapter.label} API key not configured")
        if not provider.base_url:
            return TransformResult(success=False, error=f"{adapter.label} endpoint not configured")
        model_name = model or provider.default_model
        if not model_name:
            return TransformResult(success=False, error=f"{adapter.label} model not configured")

        request = adapter.build(
            provider,
            model_name,
            build_system_prompt(prompt, mode=mode),
            build_user_message(text, mode=mode),
        )
        logger.debug("Calling %s (%s) in %s mode", adapter.label, model_name, mode)
        try:
            response = await self._client.post(
                request.url,
                json=request.payload,
                headers=request.headers,
                params=request.params,
            )
        except httpx.HTTPError as exc:
            return TransformResult(
                success=False,
                error=f"{adapter.label} request failed: {exc or type(exc).__name__}",
            )

        if not response.is_success:
            body = response.text[:MAX_ERROR_BODY_CHARS]
            return TransformResult(
                success=False,
                error=f"{adapter.label} API error: {response.status_code} - {body}",
            )
        try:
            content = adapter.parse(response.json())
        except (ValueError, AttributeError, TypeError) as exc:
            return TransformResult(success=False, error=f"Invalid {adapter.label} response: {exc}")
        if not content:
            return TransformResult(success=False, error=f"No content in {adapter.label} response")
        return TransformResult(success=True, content=content)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
