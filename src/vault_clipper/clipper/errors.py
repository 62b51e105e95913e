"""Clip task error taxonomy."""

from __future__ import annotations


class ClipperError(Exception):
    """Base class for clip failures."""


class ConfigurationError(ClipperError):
    """Vault target, template or provider is not configured; no task is created."""


class ExtractionError(ClipperError):
    """Page data could not be produced; no task is created."""


class TransformError(ClipperError):
    """Language-model step failed; the pipeline degrades and continues."""


class SaveError(ClipperError):
    """Terminal writer failed; the task ends in ``error``."""


class TaskCancelled(Exception):  # noqa: N818
    """Cancellation signal for one run; not a failure and never reported as one."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} was cancelled.")
        self.task_id = task_id
