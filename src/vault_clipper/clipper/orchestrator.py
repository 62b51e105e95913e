"""Clip task orchestrator: task creation, the step state machine and cancellation."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import timedelta

from vault_clipper.clipper.cancellation import CancellationRegistry, CancellationToken
from vault_clipper.clipper.errors import (
    ClipperError,
    ConfigurationError,
    ExtractionError,
    TaskCancelled,
    TransformError,
)
from vault_clipper.clipper.gateways import (
    BrowsingContext,
    Extractor,
    NoteRenderer,
    Transformer,
    TransformMode,
    UriHandoffWriter,
    VaultWriter,
)
from vault_clipper.clipper.history import TaskStore
from vault_clipper.clipper.models import (
    ClipTask,
    PageData,
    PageSummary,
    StepFlags,
    TaskResult,
    TaskStatus,
    TaskStep,
    generate_task_id,
)
from vault_clipper.clipper.notifications import (
    NotificationLevel,
    Notifier,
    error_message,
    fallback_success_message,
    success_message,
)
from vault_clipper.clipper.saving import SaveOutcome, save_note
from vault_clipper.clipper.tags import merge_tags, parse_existing_tags
from vault_clipper.config import LlmProviderSettings, Settings
from vault_clipper.storage.common import utc_now
from vault_clipper.templates.models import Template, TemplateSet, TemplateSettings, copy_template
from vault_clipper.templates.render import (
    CustomVariable,
    TemplateContext,
    TemplateRenderer,
    build_template_context,
    get_domain,
    replace_template_variables,
)

logger = logging.getLogger(__name__)

LLM_TAGS_VARIABLE = "llmTags"


class ClipOrchestrator:
    """Owns the clip state machine and drives the task store.

    ``start`` returns as soon as the task is recorded; the pipeline then runs
    as its own asyncio task. Pipelines of different clips interleave freely,
    while each clip's own transitions are persisted strictly in order.
    """

    def __init__(  # noqa: PLR0913
        self,
        *,
        settings: Settings,
        template_settings: TemplateSettings,
        store: TaskStore,
        registry: CancellationRegistry,
        extractor: Extractor,
        transformer: Transformer,
        rest_writer: VaultWriter,
        uri_writer: UriHandoffWriter,
        renderer: NoteRenderer | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self.settings = settings
        self.template_settings = template_settings
        self.store = store
        self.registry = registry
        self.extractor = extractor
        self.transformer = transformer
        self.rest_writer = rest_writer
        self.uri_writer = uri_writer
        self.renderer = renderer or TemplateRenderer()
        self.notifier = notifier
        self._runs: dict[str, asyncio.Task[None]] = {}

    async def start(
        self,
        context: BrowsingContext,
        *,
        template_set_id: str | None = None,
    ) -> str:
        """Create a task and launch its pipeline without waiting for it."""

        template_set = self._resolve_template_set(template_set_id)
        page = await self._extract(context)
        template = copy_template(template_set.template_for(is_video=page.kind == "video"))
        provider = self._resolve_provider(template)

        task = ClipTask(
            id=generate_task_id(),
            status=TaskStatus.RUNNING,
            step=TaskStep.EXTRACTING,
            page_summary=PageSummary(
                title=page.title,
                url=page.url,
                domain=get_domain(page.url),
                is_video=page.kind == "video",
            ),
            config_name=template.name,
            created_at=utc_now(),
            step_flags=StepFlags(
                content=template.content_step_enabled,
                tags=template.tags_step_enabled,
            ),
        )
        token = self.registry.register(task.id)
        try:
            await self.store.insert(task)
        except BaseException:
            self.registry.discard(task.id)
            raise

        run = asyncio.create_task(
            self._run(task.id, page, template, provider, token),
            name=f"clip:{task.id}",
        )
        self._runs[task.id] = run
        run.add_done_callback(lambda _: self._runs.pop(task.id, None))
        logger.info("Clip task started: %s (%s)", task.id, template.name)
        return task.id

    async def cancel(self, task_id: str) -> bool:
        """Signal the task's token and record ``cancelled``; idempotent.

        Returns True only when the task ends up ``cancelled``. A pipeline that
        records its outcome while the token is being signalled keeps that
        outcome and the call returns False.
        """

        token = self.registry.pop(task_id)
        if token is not None:
            token.cancel()
        cancelled = await self.store.cancel(task_id)
        if cancelled is not None:
            logger.info("Clip task cancelled: %s", task_id)
            return True
        if token is None:
            return False
        # Evicted from history: nothing to record, the signalled token still stops the run.
        current = await self.store.get(task_id)
        return current is None or current.status is TaskStatus.CANCELLED

    async def list_history(self) -> list[ClipTask]:
        return await self.store.list_tasks()

    async def wait(self, task_id: str) -> ClipTask | None:
        """Wait for a launched pipeline to finish and return the stored task."""

        run = self._runs.get(task_id)
        if run is not None:
            await asyncio.shield(run)
        return await self.store.get(task_id)

    async def recover_interrupted(self, *, stale_after: timedelta = timedelta(0)) -> list[str]:
        """Finalize tasks a previous process left ``running``."""

        return await self.store.recover_interrupted(
            active_task_ids=self.registry,
            stale_after=stale_after,
        )

    async def aclose(self) -> None:
        """Cancel every pipeline still running in this process."""

        runs = list(self._runs.items())
        for task_id, _ in runs:
            await self.cancel(task_id)
        await asyncio.gather(*(run for _, run in runs), return_exceptions=True)

    @property
    def running_task_ids(self) -> list[str]:
        return list(self._runs)

    def _resolve_template_set(self, template_set_id: str | None) -> TemplateSet:
        vault = self.settings.vault
        if not vault.vault_name:
            raise ConfigurationError("Vault name not configured. Set VAULT_CLIPPER_VAULT_NAME.")
        if vault.rest_enabled and not vault.api_key:
            raise ConfigurationError(
                "Local REST API key not configured. Set VAULT_CLIPPER_API_KEY "
                "or disable REST with VAULT_CLIPPER_REST_ENABLED=false.",
            )
        template_set = self.template_settings.resolve_set(template_set_id)
        if template_set is None:
            raise ConfigurationError("No template found. Configure at least one template set.")
        return template_set

    def _resolve_provider(self, template: Template) -> LlmProviderSettings | None:
        if not (template.content_step_enabled or template.tags_step_enabled):
            return None
        provider = self.settings.llm.resolve(template.llm_provider)
        if provider is None:
            name = template.llm_provider or self.settings.llm.provider
            raise ConfigurationError(f"Unknown LLM provider for template {template.name!r}: {name}")
        return provider

    async def _extract(self, context: BrowsingContext) -> PageData:
        try:
            return await self.extractor.extract(context)
        except ExtractionError:
            raise
        except Exception as error:
            raise ExtractionError(f"Failed to get page info: {error}") from error

    async def _run(
        self,
        task_id: str,
        page: PageData,
        template: Template,
        provider: LlmProviderSettings | None,
        token: CancellationToken,
    ) -> None:
        try:
            await self._run_pipeline(task_id, page, template, provider, token)
        finally:
            self.registry.discard(task_id)

    async def _run_pipeline(
        self,
        task_id: str,
        page: PageData,
        template: Template,
        provider: LlmProviderSettings | None,
        token: CancellationToken,
    ) -> None:
        try:
            outcome = await self._execute(task_id, page, template, provider, token)
        except TaskCancelled:
            await self._settle_cancelled(task_id)
            return
        except ClipperError as error:
            if token.cancelled:
                await self._settle_cancelled(task_id)
                return
            await self._fail(task_id, str(error))
            return
        except Exception as error:
            if token.cancelled:
                await self._settle_cancelled(task_id)
                return
            logger.exception("Clip task %s failed unexpectedly", task_id)
            await self._fail(task_id, str(error) or type(error).__name__)
            return

        completed = await self.store.complete(
            task_id,
            TaskResult(path=outcome.path, via_fallback=outcome.via_fallback),
        )
        if completed is None:
            return
        logger.info("Clip task completed: %s -> %s", task_id, outcome.path)
        message = (
            fallback_success_message(outcome.path)
            if outcome.via_fallback
            else success_message(outcome.path)
        )
        self._notify(task_id, message, NotificationLevel.SUCCESS)

    async def _execute(
        self,
        task_id: str,
        page: PageData,
        template: Template,
        provider: LlmProviderSettings | None,
        token: CancellationToken,
    ) -> SaveOutcome:
        # Page data was captured by start(); ``extracting`` is already persisted.
        token.raise_if_cancelled()
        context = build_template_context(page)
        custom_variables: list[CustomVariable] = []
        content_override: str | None = None

        if template.content_step_enabled and provider is not None:
            await self._advance(task_id, TaskStep.LLM_CONTENT, token)
            transformed = await self._format_content(task_id, template, context, provider, token)
            if transformed is not None:
                content_override = transformed
                context.content = transformed

        if template.tags_step_enabled and provider is not None:
            await self._advance(task_id, TaskStep.LLM_TAGS, token)
            generated = await self._generate_tags(task_id, template, context, provider, token)
            if generated is not None:
                custom_variables.append(CustomVariable(LLM_TAGS_VARIABLE, generated))
                tags_property = template.tags_property()
                if tags_property is not None:
                    merged = merge_tags(parse_existing_tags(tags_property.value), generated)
                    tags_property.value = json.dumps(merged, ensure_ascii=False)

        await self._advance(task_id, TaskStep.SAVING, token)
        note = self.renderer.render(
            template,
            context,
            custom_variables=custom_variables,
            content_override=content_override,
        )
        return await save_note(
            note,
            vault=self.settings.vault,
            rest_writer=self.rest_writer,
            uri_writer=self.uri_writer,
            token=token,
        )

    async def _advance(self, task_id: str, step: TaskStep, token: CancellationToken) -> None:
        token.raise_if_cancelled()
        updated = await self.store.set_step(task_id, step)
        token.raise_if_cancelled()
        if updated is None:
            logger.debug("Task %s is no longer in history; step %s not recorded", task_id, step)

    async def _format_content(
        self,
        task_id: str,
        template: Template,
        context: TemplateContext,
        provider: LlmProviderSettings,
        token: CancellationToken,
    ) -> str | None:
        prompt = replace_template_variables(template.llm_prompt, context)
        try:
            return await self._transform(context.content, prompt, provider, template, token, "format")
        except TransformError as error:
            logger.warning("LLM content formatting failed for %s: %s", task_id, error)
            return None

    async def _generate_tags(
        self,
        task_id: str,
        template: Template,
        context: TemplateContext,
        provider: LlmProviderSettings,
        token: CancellationToken,
    ) -> str | None:
        prompt = replace_template_variables(template.llm_tags_prompt, context)
        try:
            generated = await self._transform(
                context.content, prompt, provider, template, token, "tags"
            )
        except TransformError as error:
            logger.warning("LLM tag generation failed for %s: %s", task_id, error)
            return None
        return generated.strip()

    async def _transform(  # noqa: PLR0913
        self,
        text: str,
        prompt: str,
        provider: LlmProviderSettings,
        template: Template,
        token: CancellationToken,
        mode: TransformMode,
    ) -> str:
        try:
            result = await token.guard(
                self.transformer.transform(
                    text,
                    prompt,
                    provider,
                    mode=mode,
                    model=template.llm_model,
                ),
            )
        except TaskCancelled:
            raise
        except Exception as error:
            raise TransformError(str(error) or type(error).__name__) from error
        if not result.success or not result.content:
            raise TransformError(result.error or "empty response")
        return result.content

    async def _settle_cancelled(self, task_id: str) -> None:
        # cancel() normally recorded the state already; this covers a token
        # fired before the task reached history.
        await self.store.cancel(task_id)
        logger.info("Clip task %s stopped after cancellation", task_id)

    async def _fail(self, task_id: str, message: str) -> None:
        failed = await self.store.fail(task_id, message)
        if failed is None:
            return
        logger.error("Clip task failed: %s: %s", task_id, message)
        self._notify(task_id, error_message(message), NotificationLevel.ERROR)

    def _notify(self, task_id: str, message: str, level: NotificationLevel) -> None:
        if self.notifier is not None:
            self.notifier.notify(task_id, message, level)
