"""Controllers for clip CLI commands."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path

import rich_click as click

from vault_clipper.clipper.gateways import BrowsingContext
from vault_clipper.clipper.models import ClipTask, TaskStatus
from vault_clipper.clipper.notifications import NotificationSink
from vault_clipper.clipper.runtime import open_runtime
from vault_clipper.config import Settings


@dataclass(slots=True)
class ClipCommand:
    """CLI input for one clip."""

    db_path: Path | None
    url: str
    template_set: str | None
    check_connection: bool
    selection: str | None = None
    title: str | None = None


@dataclass(slots=True)
class HistoryCommand:
    """CLI input for history listing."""

    db_path: Path | None


@dataclass(slots=True)
class ConnectionCommand:
    """CLI input for the vault connection check."""

    db_path: Path | None


@dataclass(slots=True)
class ClipCliResult:
    """Clip report to render in CLI."""

    lines: list[str]
    success: bool


class ClipCliController:
    """Runs clip, history and connection commands inside one event loop each."""

    def __init__(self, notification_sink: NotificationSink | None = None) -> None:
        self.notification_sink = notification_sink

    def clip(self, command: ClipCommand) -> ClipCliResult:
        return asyncio.run(self._clip(command))

    def history(self, command: HistoryCommand) -> list[str]:
        return asyncio.run(self._history(command))

    def check_connection(self, command: ConnectionCommand) -> list[str]:
        return asyncio.run(self._check_connection(command))

    async def _clip(self, command: ClipCommand) -> ClipCliResult:
        settings = Settings.from_env(db_path=command.db_path)
        context = BrowsingContext(
            url=command.url,
            selection=command.selection,
            title=command.title,
        )
        lines: list[str] = []
        async with open_runtime(settings, notification_sink=self.notification_sink) as runtime:
            if command.check_connection:
                response = await runtime.service.start_with_connection_check(
                    context,
                    _confirm_in_terminal,
                    command.template_set,
                )
            else:
                response = await runtime.service.start(context, command.template_set)

            if response.get("cancelled"):
                return ClipCliResult(lines=["Clip cancelled: vault app not opened."], success=False)
            if "error" in response:
                return ClipCliResult(lines=[f"Clip failed: {response['error']}"], success=False)

            task_id = response["taskId"]
            lines.append(f"Clip started: task_id={task_id}")
            unsubscribe = runtime.broadcaster.subscribe(
                lambda task: _collect_step(lines, task_id, task),
            )
            try:
                task = await runtime.orchestrator.wait(task_id)
            except asyncio.CancelledError:
                # Ctrl-C: cancel the clip instead of abandoning it.
                await runtime.orchestrator.cancel(task_id)
                task = await runtime.store.get(task_id)
            finally:
                unsubscribe()

        if task is None:
            lines.append(f"Task {task_id} is no longer in history.")
            return ClipCliResult(lines=lines, success=False)
        lines.extend(_task_outcome_lines(task))
        return ClipCliResult(lines=lines, success=task.status is TaskStatus.SUCCESS)

    async def _history(self, command: HistoryCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        async with open_runtime(settings, notification_sink=self.notification_sink) as runtime:
            response = await runtime.service.list_history()
            tasks = [ClipTask.from_dict(item) for item in response["tasks"]]

        lines = [f"Tasks: {len(tasks)}"]
        for task in tasks:
            step = task.step.value if task.step is not None else "-"
            lines.append(
                f"  {task.id} status={task.status.value} step={step} "
                f"config={task.config_name!r} created={task.created_at.isoformat()}",
            )
            lines.append(f"    {task.page_summary.title} <{task.page_summary.url}>")
            if task.result is not None:
                via = " (via URI handoff)" if task.result.via_fallback else ""
                lines.append(f"    saved: {task.result.path}{via}")
            if task.error:
                lines.append(f"    error: {task.error}")
        return lines

    async def _check_connection(self, command: ConnectionCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        async with open_runtime(
            settings,
            notification_sink=self.notification_sink,
            recover=False,
        ) as runtime:
            response = await runtime.service.check_connection()
        if not settings.vault.rest_enabled:
            return ["REST API disabled: notes are handed off via obsidian:// URI."]
        if response["connected"]:
            return [f"Vault reachable at {settings.vault.base_url}"]
        return [f"Vault not reachable at {settings.vault.base_url}"]


async def _confirm_in_terminal(message: str) -> bool:
    return await asyncio.to_thread(click.confirm, message, default=True)


def _collect_step(lines: list[str], task_id: str, task: ClipTask) -> None:
    if task.id == task_id and task.status is TaskStatus.RUNNING and task.step is not None:
        lines.append(f"  step: {task.step.value}")


def _task_outcome_lines(task: ClipTask) -> list[str]:
    if not task.is_terminal:
        return [f"Clip still {task.status.value}: {task.id}"]
    if task.status is TaskStatus.SUCCESS and task.result is not None:
        if task.result.via_fallback:
            return [f"Handed off to the vault app: {task.result.path}"]
        return [f"Saved: {task.result.path}"]
    if task.status is TaskStatus.CANCELLED:
        return [f"Clip cancelled: {task.id}"]
    if task.status is TaskStatus.ERROR:
        return [f"Clip failed: {task.error}"]
    return [f"Clip ended in status {task.status.value}"]
