"""Request/response surface used by triggers (CLI, keyboard shortcuts, menus)."""

from __future__ import annotations

import logging
from typing import Any

from vault_clipper.clipper.connection import Confirm, VaultConnectionGate
from vault_clipper.clipper.errors import ClipperError
from vault_clipper.clipper.gateways import BrowsingContext
from vault_clipper.clipper.orchestrator import ClipOrchestrator

logger = logging.getLogger(__name__)

CONNECTION_FAILED_ERROR = "Could not connect to the vault"


class ClipService:
    """Wraps the orchestrator in plain-dict responses.

    Triggers never see exceptions: configuration and extraction problems
    come back as ``{"error": message}`` before any task exists.
    """

    def __init__(self, orchestrator: ClipOrchestrator, gate: VaultConnectionGate) -> None:
        self.orchestrator = orchestrator
        self.gate = gate

    async def start(
        self,
        context: BrowsingContext,
        config_id: str | None = None,
    ) -> dict[str, Any]:
        try:
            task_id = await self.orchestrator.start(context, template_set_id=config_id)
        except ClipperError as error:
            logger.warning("Clip request rejected: %s", error)
            return {"error": str(error)}
        except Exception as error:
            logger.exception("Clip request failed")
            return {"error": str(error) or "Unknown error"}
        return {"taskId": task_id}

    async def start_with_connection_check(
        self,
        context: BrowsingContext,
        confirm: Confirm,
        config_id: str | None = None,
    ) -> dict[str, Any]:
        gate = await self.gate.ensure_ready(confirm)
        if gate.cancelled:
            return {"cancelled": True}
        if not gate.connected:
            return {"error": CONNECTION_FAILED_ERROR}
        return await self.start(context, config_id)

    async def check_connection(self) -> dict[str, Any]:
        return {"connected": await self.gate.check()}

    async def cancel(self, task_id: str) -> dict[str, Any]:
        return {"cancelled": await self.orchestrator.cancel(task_id)}

    async def list_history(self) -> dict[str, Any]:
        tasks = await self.orchestrator.list_history()
        return {"tasks": [task.to_dict() for task in tasks]}
