"""``obsidian://`` URI handoff: best-effort, unconfirmed saves."""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from collections.abc import Callable
from urllib.parse import quote

from vault_clipper.clipper.gateways import WriteResult
from vault_clipper.vault.rest import note_path

logger = logging.getLogger(__name__)

UriOpener = Callable[[str], bool]

# Launchers truncate very long command lines; larger notes need the REST API.
MAX_URI_CHARS = 2_000_000


def build_new_note_uri(vault_name: str, folder: str, filename: str, content: str) -> str:
    file_path = f"{folder}/{filename}" if folder else filename
    return (
        "obsidian://new"
        f"?vault={quote(vault_name, safe='')}"
        f"&file={quote(file_path, safe='')}"
        f"&content={quote(content, safe='')}"
    )


def build_open_vault_uri(vault_name: str | None) -> str:
    if not vault_name:
        return "obsidian://open"
    return f"obsidian://open?vault={quote(vault_name, safe='')}"


class UriVaultWriter:
    """Hands notes to the vault app through the OS URI handler.

    A successful dispatch only means the URI was handed off; whether the app
    created the note cannot be observed.
    """

    def __init__(self, opener: UriOpener = webbrowser.open) -> None:
        self.opener = opener

    async def dispatch(
        self,
        folder: str,
        filename: str,
        content: str,
        vault_name: str,
    ) -> WriteResult:
        if not vault_name:
            return WriteResult(success=False, error="Vault name is not configured")
        uri = build_new_note_uri(vault_name, folder, filename, content)
        if len(uri) > MAX_URI_CHARS:
            return WriteResult(success=False, error="Note is too large for URI handoff")
        if not await self._open(uri):
            return WriteResult(success=False, error="No handler accepted the obsidian:// URI")
        logger.info("Note handed to vault app: %s/%s", folder, filename)
        return WriteResult(success=True, path=note_path(folder, filename))

    async def open_vault(self, vault_name: str) -> None:
        if not await self._open(build_open_vault_uri(vault_name)):
            logger.warning("No handler accepted the obsidian://open URI")

    async def _open(self, uri: str) -> bool:
        return bool(await asyncio.to_thread(self.opener, uri))
