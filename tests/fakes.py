"""Fakes for the clip engine's external collaborators."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from vault_clipper.clipper.broadcast import ProgressBroadcaster
from vault_clipper.clipper.cancellation import CancellationRegistry
from vault_clipper.clipper.gateways import BrowsingContext, TransformResult, WriteResult
from vault_clipper.clipper.history import TaskStore
from vault_clipper.clipper.models import PageData, WebPageData
from vault_clipper.clipper.notifications import NotificationLevel
from vault_clipper.clipper.orchestrator import ClipOrchestrator
from vault_clipper.config import LlmProviderSettings, LlmSettings, Settings, VaultSettings
from vault_clipper.storage.kv import MemoryKeyValueStore, Record, RecordMutation
from vault_clipper.templates.models import TemplateSettings, create_default_template_settings
from vault_clipper.vault.rest import note_path

PAGE_URL = "https://www.example.com/posts/hello"


class FakeExtractor:
    def __init__(self, page: PageData | None = None, error: Exception | None = None) -> None:
        self.page = page
        self.error = error
        self.calls: list[BrowsingContext] = []

    async def extract(self, context: BrowsingContext) -> PageData:
        self.calls.append(context)
        if self.error is not None:
            raise self.error
        return self.page or WebPageData(
            title="Hello World",
            url=context.url,
            content="Original body",
        )


@dataclass
class TransformCall:
    text: str
    prompt: str
    provider: str
    mode: str
    model: str | None


class FakeTransformer:
    """Returns canned results per mode; ``block`` modes wait until released."""

    def __init__(
        self,
        results: dict[str, TransformResult] | None = None,
        *,
        block: tuple[str, ...] = (),
    ) -> None:
        self.results = results or {}
        self.block = block
        self.calls: list[TransformCall] = []
        self.started: dict[str, asyncio.Event] = {mode: asyncio.Event() for mode in block}
        self.release = asyncio.Event()
        self.aborted: list[str] = []

    async def transform(
        self,
        text: str,
        prompt: str,
        provider: LlmProviderSettings,
        *,
        mode: str = "format",
        model: str | None = None,
    ) -> TransformResult:
        self.calls.append(TransformCall(text, prompt, provider.name, mode, model))
        if mode in self.block:
            self.started[mode].set()
            try:
                await self.release.wait()
            except asyncio.CancelledError:
                self.aborted.append(mode)
                raise
        return self.results.get(mode, TransformResult(success=False, error="not configured"))


@dataclass
class WriteCall:
    folder: str
    filename: str
    content: str


class FakeVaultWriter:
    def __init__(
        self,
        *,
        succeed: bool = True,
        error: str = "Cannot connect",
        ping_results: list[bool] | None = None,
    ) -> None:
        self.succeed = succeed
        self.error = error
        self.ping_results = list(ping_results or [])
        self.writes: list[WriteCall] = []
        self.pings = 0

    async def write(
        self,
        folder: str,
        filename: str,
        content: str,
        settings: VaultSettings,
    ) -> WriteResult:
        self.writes.append(WriteCall(folder, filename, content))
        if self.succeed:
            return WriteResult(success=True, path=note_path(folder, filename))
        return WriteResult(success=False, error=self.error, not_running=True)

    async def ping(self, settings: VaultSettings) -> WriteResult:
        self.pings += 1
        connected = self.ping_results.pop(0) if self.ping_results else False
        return WriteResult(success=connected)


class FakeUriWriter:
    def __init__(self, *, succeed: bool = True, error: str = "No handler") -> None:
        self.succeed = succeed
        self.error = error
        self.dispatches: list[WriteCall] = []
        self.opened: list[str] = []

    async def dispatch(
        self,
        folder: str,
        filename: str,
        content: str,
        vault_name: str,
    ) -> WriteResult:
        self.dispatches.append(WriteCall(folder, filename, content))
        if self.succeed:
            return WriteResult(success=True, path=note_path(folder, filename))
        return WriteResult(success=False, error=self.error)

    async def open_vault(self, vault_name: str) -> None:
        self.opened.append(vault_name)


class GatedKeyValueStore(MemoryKeyValueStore):
    """Holds the ``hold_on``-th update until ``release`` is set."""

    def __init__(self, *, hold_on: int) -> None:
        super().__init__()
        self.hold_on = hold_on
        self.updates = 0
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def update(self, key: str, mutate: RecordMutation) -> Record | None:
        self.updates += 1
        if self.updates == self.hold_on:
            self.entered.set()
            await self.release.wait()
        return await super().update(key, mutate)


@dataclass
class RecordingNotifier:
    notifications: list[tuple[str, str, NotificationLevel]] = field(default_factory=list)

    def notify(self, notification_id: str, message: str, level: NotificationLevel) -> None:
        self.notifications.append((notification_id, message, level))


def make_settings(*, rest_enabled: bool = True, api_key: str = "secret") -> Settings:
    return Settings(
        vault=VaultSettings(vault_name="Notes", rest_enabled=rest_enabled, api_key=api_key),
        llm=LlmSettings(
            provider="openai",
            providers={
                "openai": LlmProviderSettings(
                    name="openai",
                    api_key="sk-test",
                    base_url="https://api.openai.test/v1",
                    default_model="gpt-test",
                ),
            },
        ),
    )


def make_template_settings(
    *,
    use_llm: bool = False,
    content: bool = False,
    tags: bool = False,
    tags_value: str = "[]",
    provider: str | None = None,
) -> TemplateSettings:
    template_settings = create_default_template_settings()
    template_set = template_settings.sets[0]
    for template in (template_set.web_template, template_set.video_template):
        template.use_llm = use_llm
        template.llm_generate_content = content
        template.llm_generate_tags = tags
        template.llm_provider = provider
        tags_property = template.tags_property()
        assert tags_property is not None
        tags_property.value = tags_value
    return template_settings


@dataclass
class Harness:
    orchestrator: ClipOrchestrator
    store: TaskStore
    kv: MemoryKeyValueStore
    registry: CancellationRegistry
    extractor: FakeExtractor
    transformer: FakeTransformer
    rest_writer: FakeVaultWriter
    uri_writer: FakeUriWriter
    notifier: RecordingNotifier
    template_settings: TemplateSettings


def build_harness(  # noqa: PLR0913
    *,
    settings: Settings | None = None,
    template_settings: TemplateSettings | None = None,
    extractor: FakeExtractor | None = None,
    transformer: FakeTransformer | None = None,
    rest_writer: FakeVaultWriter | None = None,
    uri_writer: FakeUriWriter | None = None,
    latency_seconds: float = 0.0,
    max_tasks: int = 10,
    kv: MemoryKeyValueStore | None = None,
) -> Harness:
    kv = kv or MemoryKeyValueStore(latency_seconds=latency_seconds)
    store = TaskStore(kv, broadcaster=ProgressBroadcaster(), max_tasks=max_tasks)
    registry = CancellationRegistry()
    template_settings = template_settings or make_template_settings()
    harness_extractor = extractor or FakeExtractor()
    harness_transformer = transformer or FakeTransformer()
    harness_rest = rest_writer or FakeVaultWriter()
    harness_uri = uri_writer or FakeUriWriter()
    notifier = RecordingNotifier()
    orchestrator = ClipOrchestrator(
        settings=settings or make_settings(),
        template_settings=template_settings,
        store=store,
        registry=registry,
        extractor=harness_extractor,
        transformer=harness_transformer,
        rest_writer=harness_rest,
        uri_writer=harness_uri,
        notifier=notifier,
    )
    return Harness(
        orchestrator=orchestrator,
        store=store,
        kv=kv,
        registry=registry,
        extractor=harness_extractor,
        transformer=harness_transformer,
        rest_writer=harness_rest,
        uri_writer=harness_uri,
        notifier=notifier,
        template_settings=template_settings,
    )

