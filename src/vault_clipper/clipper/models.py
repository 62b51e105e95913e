"""Domain models for clip tasks and their persisted history."""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from vault_clipper.storage.common import utc_now

DEFAULT_MAX_TASKS = 10


class TaskStatus(str, Enum):
    """Clip task lifecycle states."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({TaskStatus.SUCCESS, TaskStatus.ERROR, TaskStatus.CANCELLED})


class TaskStep(str, Enum):
    """Pipeline phases, in execution order."""

    EXTRACTING = "extracting"
    LLM_CONTENT = "llm_content"
    LLM_TAGS = "llm_tags"
    SAVING = "saving"
    DONE = "done"


@dataclass(slots=True, frozen=True)
class PageSummary:
    """Display snapshot of the clipped page taken at task creation."""

    title: str
    url: str
    domain: str
    is_video: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "url": self.url,
            "domain": self.domain,
            "isVideo": self.is_video,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> PageSummary:
        return cls(
            title=str(payload.get("title", "")),
            url=str(payload.get("url", "")),
            domain=str(payload.get("domain", "")),
            is_video=bool(payload.get("isVideo", False)),
        )


@dataclass(slots=True, frozen=True)
class StepFlags:
    """Optional pipeline steps enabled for one run."""

    content: bool = False
    tags: bool = False

    def to_dict(self) -> dict[str, bool]:
        return {"content": self.content, "tags": self.tags}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> StepFlags:
        return cls(content=bool(payload.get("content")), tags=bool(payload.get("tags")))


@dataclass(slots=True, frozen=True)
class TaskResult:
    """Terminal result of a successful clip."""

    path: str
    via_fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "viaFallback": self.via_fallback}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> TaskResult:
        return cls(
            path=str(payload.get("path", "")),
            via_fallback=bool(payload.get("viaFallback", False)),
        )


@dataclass(slots=True)
class ClipTask:
    """One clip request's full lifecycle record."""

    id: str
    status: TaskStatus
    step: TaskStep | None
    page_summary: PageSummary
    config_name: str
    created_at: datetime
    step_flags: StepFlags = field(default_factory=StepFlags)
    completed_at: datetime | None = None
    result: TaskResult | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted camelCase layout."""

        payload: dict[str, Any] = {
            "id": self.id,
            "status": self.status.value,
            "step": self.step.value if self.step is not None else None,
            "pageSummary": self.page_summary.to_dict(),
            "configName": self.config_name,
            "createdAt": _to_epoch_ms(self.created_at),
            "stepFlags": self.step_flags.to_dict(),
        }
        if self.completed_at is not None:
            payload["completedAt"] = _to_epoch_ms(self.completed_at)
        if self.result is not None:
            payload["result"] = self.result.to_dict()
        if self.error is not None:
            payload["error"] = self.error
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ClipTask:
        step_raw = payload.get("step")
        completed_raw = payload.get("completedAt")
        result_raw = payload.get("result")
        return cls(
            id=str(payload["id"]),
            status=TaskStatus(payload["status"]),
            step=TaskStep(step_raw) if step_raw else None,
            page_summary=PageSummary.from_dict(payload.get("pageSummary") or {}),
            config_name=str(payload.get("configName", "")),
            created_at=_from_epoch_ms(int(payload["createdAt"])),
            step_flags=StepFlags.from_dict(payload.get("stepFlags") or {}),
            completed_at=_from_epoch_ms(int(completed_raw)) if completed_raw is not None else None,
            result=TaskResult.from_dict(result_raw) if isinstance(result_raw, dict) else None,
            error=payload.get("error"),
        )


@dataclass(slots=True)
class TaskHistory:
    """Ordered task records, newest first, capped at ``max_tasks``."""

    tasks: list[ClipTask] = field(default_factory=list)
    max_tasks: int = DEFAULT_MAX_TASKS

    def find(self, task_id: str) -> int | None:
        for index, task in enumerate(self.tasks):
            if task.id == task_id:
                return index
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "tasks": [task.to_dict() for task in self.tasks],
            "maxTasks": self.max_tasks,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any] | None, *, max_tasks: int) -> TaskHistory:
        if not payload:
            return cls(max_tasks=max_tasks)
        return cls(
            tasks=[ClipTask.from_dict(item) for item in payload.get("tasks", [])],
            max_tasks=int(payload.get("maxTasks", max_tasks)),
        )


@dataclass(slots=True, frozen=True)
class WebPageData:
    """Extracted article or selection from a regular web page."""

    title: str
    url: str
    content: str
    selection: str = ""
    description: str = ""
    author: str = ""
    published: str = ""
    kind: Literal["web"] = "web"


@dataclass(slots=True, frozen=True)
class VideoPageData:
    """Extracted metadata and transcript from a video page."""

    title: str
    url: str
    video_id: str
    transcript: str = ""
    description: str = ""
    channel: str = ""
    published: str = ""
    duration: str = ""
    kind: Literal["video"] = "video"


PageData = WebPageData | VideoPageData


def generate_task_id(now: datetime | None = None) -> str:
    """Opaque id unique per process lifetime and across restarts."""

    stamp = _to_epoch_ms(now or utc_now())
    return f"task_{stamp}_{secrets.token_hex(5)}"


def _to_epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def _from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=UTC)
