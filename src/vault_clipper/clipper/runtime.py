"""Wiring of the production collaborators around one orchestrator."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import timedelta

from vault_clipper.clipper.broadcast import ProgressBroadcaster
from vault_clipper.clipper.cancellation import CancellationRegistry
from vault_clipper.clipper.connection import VaultConnectionGate
from vault_clipper.clipper.history import TaskStore
from vault_clipper.clipper.notifications import (
    NotificationCenter,
    NotificationSink,
    RichNotificationSink,
)
from vault_clipper.clipper.orchestrator import ClipOrchestrator
from vault_clipper.clipper.service import ClipService
from vault_clipper.config import Settings
from vault_clipper.http.page_extractor import PageExtractor
from vault_clipper.llm import LlmTransformer
from vault_clipper.storage.kv import SqliteKeyValueStore
from vault_clipper.templates.models import load_template_settings
from vault_clipper.vault.rest import RestVaultWriter
from vault_clipper.vault.uri import UriVaultWriter

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ClipperRuntime:
    settings: Settings
    store: TaskStore
    broadcaster: ProgressBroadcaster
    notifications: NotificationCenter
    orchestrator: ClipOrchestrator
    gate: VaultConnectionGate
    service: ClipService


@asynccontextmanager
async def open_runtime(
    settings: Settings,
    *,
    notification_sink: NotificationSink | None = None,
    recover: bool = True,
) -> AsyncIterator[ClipperRuntime]:
    """Build the runtime, recover interrupted tasks, and tear it all down on exit."""

    settings.validate()
    kv = SqliteKeyValueStore(settings.db_path, busy_timeout_ms=settings.sqlite_busy_timeout_ms)
    kv.init_schema()
    broadcaster = ProgressBroadcaster()
    store = TaskStore(kv, broadcaster=broadcaster, max_tasks=settings.history.max_tasks)
    notifications = NotificationCenter(
        notification_sink or RichNotificationSink(),
        dismiss_after_seconds=settings.notifications.dismiss_after_seconds,
    )
    extractor = PageExtractor()
    transformer = LlmTransformer(settings.llm)
    rest_writer = RestVaultWriter()
    uri_writer = UriVaultWriter()
    orchestrator = ClipOrchestrator(
        settings=settings,
        template_settings=load_template_settings(settings.templates_path),
        store=store,
        registry=CancellationRegistry(),
        extractor=extractor,
        transformer=transformer,
        rest_writer=rest_writer,
        uri_writer=uri_writer,
        notifier=notifications,
    )
    gate = VaultConnectionGate(
        vault=settings.vault,
        rest_writer=rest_writer,
        uri_writer=uri_writer,
        settings=settings.connection,
        notifier=notifications,
    )
    try:
        if recover:
            recovered = await orchestrator.recover_interrupted(
                stale_after=timedelta(seconds=settings.history.stale_after_seconds),
            )
            if recovered:
                logger.info("Finalized %d interrupted task(s)", len(recovered))
        yield ClipperRuntime(
            settings=settings,
            store=store,
            broadcaster=broadcaster,
            notifications=notifications,
            orchestrator=orchestrator,
            gate=gate,
            service=ClipService(orchestrator, gate),
        )
    finally:
        await orchestrator.aclose()
        await extractor.aclose()
        await transformer.aclose()
        await rest_writer.aclose()
        notifications.close()
        kv.close()
