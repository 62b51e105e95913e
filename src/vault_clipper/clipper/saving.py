"""Two-tier save policy: confirmed REST write, then URI handoff fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from vault_clipper.clipper.cancellation import CancellationToken
from vault_clipper.clipper.errors import SaveError, TaskCancelled
from vault_clipper.clipper.gateways import UriHandoffWriter, VaultWriter, WriteResult
from vault_clipper.config import VaultSettings
from vault_clipper.templates.render import RenderedNote

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SaveOutcome:
    path: str
    via_fallback: bool


async def save_note(
    note: RenderedNote,
    *,
    vault: VaultSettings,
    rest_writer: VaultWriter,
    uri_writer: UriHandoffWriter,
    token: CancellationToken,
) -> SaveOutcome:
    """Persist a rendered note, raising ``SaveError`` if the terminal writer fails.

    With REST enabled, a failed REST write is retried exactly once through
    the URI handoff. The handoff cannot confirm the file exists; its success
    only means the vault app was asked to create it.
    """

    if vault.rest_enabled:
        logger.info("Saving note via Local REST API: %s/%s", note.folder, note.filename)
        try:
            result = await token.guard(
                rest_writer.write(note.folder, note.filename, note.content, vault),
            )
        except TaskCancelled:
            raise
        except Exception as error:  # noqa: BLE001
            result = WriteResult(success=False, error=str(error) or type(error).__name__)
        if result.success:
            return SaveOutcome(path=result.path or note.path, via_fallback=False)
        if result.not_running:
            logger.warning(
                "Vault app is not reachable over REST, handing off via URI: %s", result.error
            )
        else:
            logger.warning("REST API save failed, falling back to URI handoff: %s", result.error)
    else:
        logger.info("Saving note via URI handoff: %s/%s", note.folder, note.filename)

    try:
        result = await token.guard(
            uri_writer.dispatch(note.folder, note.filename, note.content, vault.vault_name),
        )
    except TaskCancelled:
        raise
    except Exception as error:
        raise SaveError(str(error) or type(error).__name__) from error
    if not result.success:
        raise SaveError(result.error or "Failed to hand the note to the vault app.")
    return SaveOutcome(path=result.path or note.path, via_fallback=True)
