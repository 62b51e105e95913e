"""Vault readiness gate run before a clip is started."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from vault_clipper.clipper.gateways import UriHandoffWriter, VaultWriter
from vault_clipper.clipper.notifications import (
    CONNECTION_ERROR_ID,
    CONNECTION_ERROR_MESSAGE,
    NotificationLevel,
    Notifier,
)
from vault_clipper.config import ConnectionSettings, VaultSettings

logger = logging.getLogger(__name__)

Confirm = Callable[[str], Awaitable[bool]]

OPEN_VAULT_PROMPT = "The vault app is not reachable. Open it now?"


@dataclass(slots=True, frozen=True)
class GateResult:
    connected: bool
    cancelled: bool = False


class VaultConnectionGate:
    """Checks the REST endpoint and, with the user's consent, starts the vault app."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        vault: VaultSettings,
        rest_writer: VaultWriter,
        uri_writer: UriHandoffWriter,
        settings: ConnectionSettings | None = None,
        notifier: Notifier | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.vault = vault
        self.rest_writer = rest_writer
        self.uri_writer = uri_writer
        self.settings = settings or ConnectionSettings()
        self.notifier = notifier
        self._sleep = sleep

    async def check(self) -> bool:
        """True when a note could be saved right now.

        URI mode has no server to ping, so it always counts as connected.
        """

        if not self.vault.rest_enabled:
            return True
        if not self.vault.api_key:
            return False
        try:
            result = await self.rest_writer.ping(self.vault)
        except Exception:  # noqa: BLE001
            logger.debug("Vault ping raised", exc_info=True)
            return False
        return result.success

    async def ensure_ready(self, confirm: Confirm) -> GateResult:
        """Check, ask to open the vault app, then poll a fixed number of times."""

        if await self.check():
            return GateResult(connected=True)

        if not await confirm(OPEN_VAULT_PROMPT):
            logger.info("User declined to open the vault app")
            return GateResult(connected=False, cancelled=True)

        await self.uri_writer.open_vault(self.vault.vault_name)
        connected = await self._wait_for_connection()
        if not connected and self.notifier is not None:
            self.notifier.notify(
                CONNECTION_ERROR_ID,
                CONNECTION_ERROR_MESSAGE,
                NotificationLevel.ERROR,
            )
        return GateResult(connected=connected)

    async def _wait_for_connection(self) -> bool:
        attempts = self.settings.max_retries
        for attempt in range(1, attempts + 1):
            logger.info("Waiting for the vault app to start (attempt %d/%d)", attempt, attempts)
            await self._sleep(self.settings.retry_delay_seconds)
            if await self.check():
                logger.info("Vault connected after opening the app")
                return True
        logger.warning("Vault still unreachable after %d attempts", attempts)
        return False
