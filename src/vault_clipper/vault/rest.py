"""Obsidian Local REST API writer."""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from vault_clipper.clipper.gateways import WriteResult
from vault_clipper.config import VaultSettings

logger = logging.getLogger(__name__)

NOT_RUNNING_ERROR = "Cannot connect to the vault app. Is it running with the Local REST API plugin?"
PLUGIN_NOT_FOUND_ERROR = "Local REST API not found. Is the plugin running?"
INVALID_API_KEY_ERROR = "Invalid API key"
MISSING_API_KEY_ERROR = "API key is not configured"


def note_path(folder: str, filename: str) -> str:
    """Vault-relative path of a note, always with the ``.md`` extension."""

    name = filename if filename.endswith(".md") else f"{filename}.md"
    return f"{folder}/{name}" if folder else name


class RestVaultWriter:
    """Writes notes with ``PUT /vault/<path>`` and confirms them synchronously.

    The plugin serves a self-signed certificate on localhost, so TLS
    verification is off unless a client is supplied.
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(verify=False)  # noqa: S501

    async def write(
        self,
        folder: str,
        filename: str,
        content: str,
        settings: VaultSettings,
    ) -> WriteResult:
        if not settings.api_key:
            return WriteResult(success=False, error=MISSING_API_KEY_ERROR)

        path = note_path(folder, filename)
        url = f"{settings.base_url}/vault/{quote(path, safe='/')}"
        try:
            response = await self._client.put(
                url,
                content=content.encode("utf-8"),
                headers={
                    "Authorization": f"Bearer {settings.api_key}",
                    "Content-Type": "text/markdown",
                },
                timeout=settings.request_timeout_seconds,
            )
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            logger.warning("Vault REST API unreachable at %s: %s", settings.base_url, exc)
            return WriteResult(success=False, error=NOT_RUNNING_ERROR, not_running=True)
        except httpx.HTTPError as exc:
            logger.warning("Vault REST API request failed: %s", exc)
            return WriteResult(success=False, error=str(exc) or type(exc).__name__)

        if response.is_success:
            return WriteResult(success=True, path=path)
        logger.warning("Vault REST API error %d: %s", response.status_code, response.text)
        if response.status_code == httpx.codes.UNAUTHORIZED:
            return WriteResult(success=False, error=INVALID_API_KEY_ERROR)
        if response.status_code == httpx.codes.NOT_FOUND:
            return WriteResult(success=False, error=PLUGIN_NOT_FOUND_ERROR)
        return WriteResult(
            success=False,
            error=f"API error: {response.status_code} - {response.text}",
        )

    async def ping(self, settings: VaultSettings) -> WriteResult:
        """``GET /`` with the bearer key; success means the plugin answered."""

        if not settings.api_key:
            return WriteResult(success=False, error=MISSING_API_KEY_ERROR)
        try:
            response = await self._client.get(
                f"{settings.base_url}/",
                headers={"Authorization": f"Bearer {settings.api_key}"},
                timeout=settings.request_timeout_seconds,
            )
        except httpx.HTTPError as exc:
            logger.debug("Vault ping failed: %s", exc)
            return WriteResult(success=False, error=NOT_RUNNING_ERROR, not_running=True)
        if response.status_code == httpx.codes.UNAUTHORIZED:
            return WriteResult(success=False, error=INVALID_API_KEY_ERROR)
        if not response.is_success:
            return WriteResult(success=False, error=f"API error: {response.status_code}")
        return WriteResult(success=True)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
