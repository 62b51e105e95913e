"""Contracts of the external collaborators driven by the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol

from vault_clipper.clipper.models import PageData
from vault_clipper.config import LlmProviderSettings, VaultSettings
from vault_clipper.templates.models import Template
from vault_clipper.templates.render import CustomVariable, RenderedNote, TemplateContext

TransformMode = Literal["format", "tags"]


@dataclass(slots=True, frozen=True)
class BrowsingContext:
    """What a trigger knows about the page to clip."""

    url: str
    html: str | None = None
    selection: str | None = None
    title: str | None = None


@dataclass(slots=True, frozen=True)
class TransformResult:
    success: bool
    content: str | None = None
    error: str | None = None


@dataclass(slots=True, frozen=True)
class WriteResult:
    success: bool
    path: str | None = None
    error: str | None = None
    not_running: bool = False


class Extractor(Protocol):
    async def extract(self, context: BrowsingContext) -> PageData:
        """Return page data or raise ``ExtractionError``."""


class Transformer(Protocol):
    async def transform(
        self,
        text: str,
        prompt: str,
        provider: LlmProviderSettings,
        *,
        mode: TransformMode = "format",
        model: str | None = None,
    ) -> TransformResult:
        """Return transformed text; never raises."""


class VaultWriter(Protocol):
    async def write(
        self,
        folder: str,
        filename: str,
        content: str,
        settings: VaultSettings,
    ) -> WriteResult:
        """Synchronously persist a note and confirm it."""

    async def ping(self, settings: VaultSettings) -> WriteResult:
        """Check that the vault endpoint answers."""


class UriHandoffWriter(Protocol):
    async def dispatch(
        self,
        folder: str,
        filename: str,
        content: str,
        vault_name: str,
    ) -> WriteResult:
        """Hand the note to the vault app; success only means dispatched."""

    async def open_vault(self, vault_name: str) -> None:
        """Ask the OS to open the vault app."""


class NoteRenderer(Protocol):
    def render(
        self,
        template: Template,
        context: TemplateContext,
        *,
        custom_variables: list[CustomVariable],
        content_override: str | None = None,
    ) -> RenderedNote:
        """Resolve folder, filename, frontmatter and body."""
