"""Template sets: one web and one video template per set."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Literal

from vault_clipper.templates.prompts import (
    VIDEO_CONTENT_PROMPT,
    VIDEO_TAGS_PROMPT,
    WEB_CONTENT_PROMPT,
    WEB_TAGS_PROMPT,
)

TemplateKind = Literal["web", "video"]
PROPERTY_INPUT_TYPES: tuple[str, ...] = (
    "text",
    "list",
    "checkbox",
    "date",
    "datetime",
    "number",
    "tags",
)


@dataclass(slots=True)
class TemplateProperty:
    """One frontmatter property; ``value`` may contain ``{{variables}}``."""

    key: str
    value: str
    input_type: str = "text"
    required: bool = False

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> TemplateProperty:
        input_type = str(payload.get("inputType") or "text")
        if input_type not in PROPERTY_INPUT_TYPES:
            raise ValueError(f"Unsupported property input type: {input_type!r}")
        return cls(
            key=str(payload["key"]),
            value=str(payload.get("value", "")),
            input_type=input_type,
            required=bool(payload.get("required", False)),
        )


@dataclass(slots=True)
class Template:
    """How a note is laid out and which LLM steps run for it."""

    id: str
    name: str
    kind: TemplateKind
    folder: str
    filename: str
    properties: list[TemplateProperty] = field(default_factory=list)
    content: str = "{{content}}"
    use_llm: bool = False
    llm_provider: str | None = None
    llm_model: str | None = None
    llm_generate_content: bool = False
    llm_prompt: str = ""
    llm_generate_tags: bool = False
    llm_tags_prompt: str = ""

    @property
    def content_step_enabled(self) -> bool:
        return self.use_llm and self.llm_generate_content

    @property
    def tags_step_enabled(self) -> bool:
        return self.use_llm and self.llm_generate_tags

    def tags_property(self) -> TemplateProperty | None:
        for prop in self.properties:
            if prop.key == "tags" and prop.input_type == "tags":
                return prop
        return None

    @classmethod
    def from_dict(cls, payload: dict[str, Any], *, kind: TemplateKind) -> Template:
        return cls(
            id=str(payload.get("id", f"{kind}-template")),
            name=str(payload.get("name", "")),
            kind=kind,
            folder=str(payload.get("folder", "")),
            filename=str(payload.get("filename", "{{title}}")),
            properties=[TemplateProperty.from_dict(item) for item in payload.get("properties", [])],
            content=str(payload.get("content", "{{content}}")),
            use_llm=bool(payload.get("useLLM", False)),
            llm_provider=payload.get("llmProvider") or None,
            llm_model=payload.get("llmModel") or None,
            llm_generate_content=bool(payload.get("llmGenerateContent", False)),
            llm_prompt=str(payload.get("llmPrompt", "")),
            llm_generate_tags=bool(payload.get("llmGenerateTags", False)),
            llm_tags_prompt=str(payload.get("llmTagsPrompt", "")),
        )


@dataclass(slots=True)
class TemplateSet:
    id: str
    name: str
    web_template: Template
    video_template: Template
    shortcut_key: str | None = None

    def template_for(self, *, is_video: bool) -> Template:
        return self.video_template if is_video else self.web_template

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> TemplateSet:
        video_payload = payload.get("videoTemplate") or payload.get("youtubeTemplate")
        web_payload = payload.get("webTemplate")
        if not isinstance(web_payload, dict) or not isinstance(video_payload, dict):
            raise ValueError(
                f"Template set {payload.get('id')!r} must define webTemplate and videoTemplate.",
            )
        return cls(
            id=str(payload["id"]),
            name=str(payload.get("name", payload["id"])),
            web_template=Template.from_dict(web_payload, kind="web"),
            video_template=Template.from_dict(video_payload, kind="video"),
            shortcut_key=payload.get("shortcutKey"),
        )


@dataclass(slots=True)
class TemplateSettings:
    sets: list[TemplateSet] = field(default_factory=list)
    default_set_id: str = ""

    def resolve_set(self, set_id: str | None = None) -> TemplateSet | None:
        """Requested set, else the default set, else the first one."""

        by_id = {template_set.id: template_set for template_set in self.sets}
        if set_id and set_id in by_id:
            return by_id[set_id]
        if self.default_set_id in by_id:
            return by_id[self.default_set_id]
        return self.sets[0] if self.sets else None

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> TemplateSettings:
        sets = [TemplateSet.from_dict(item) for item in payload.get("sets", [])]
        return cls(sets=sets, default_set_id=str(payload.get("defaultSetId", "")))


def load_template_settings(path: Path | None) -> TemplateSettings:
    """Load template sets from a JSON file, or the built-in defaults."""

    if path is None:
        return create_default_template_settings()
    payload = json.loads(path.read_text("utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"Template settings file must contain a JSON object: {path}")
    return TemplateSettings.from_dict(payload)


def _web_properties() -> list[TemplateProperty]:
    return [
        TemplateProperty("title", "{{title}}", "text", required=True),
        TemplateProperty("source", "{{url}}", "text", required=True),
        TemplateProperty("author", "{{author}}", "list", required=True),
        TemplateProperty("published", "{{published}}", "date"),
        TemplateProperty("created", "{{datetime}}", "datetime"),
        TemplateProperty("tags", "[]", "tags", required=True),
    ]


def create_default_web_template() -> Template:
    return Template(
        id="web-default",
        name="Default Web",
        kind="web",
        folder="Clippings/{{domain}}",
        filename="{{title}}",
        properties=_web_properties(),
        llm_generate_content=True,
        llm_prompt=WEB_CONTENT_PROMPT,
        llm_tags_prompt=WEB_TAGS_PROMPT,
    )


def create_default_video_template() -> Template:
    properties = _web_properties()
    properties[2] = TemplateProperty("author", "{{channel}}", "list", required=True)
    return Template(
        id="video-default",
        name="Default Video",
        kind="video",
        folder="Clippings/YouTube",
        filename="{{title}}",
        properties=properties,
        llm_generate_content=True,
        llm_prompt=VIDEO_CONTENT_PROMPT,
        llm_tags_prompt=VIDEO_TAGS_PROMPT,
    )


def create_default_template_settings() -> TemplateSettings:
    default_set = TemplateSet(
        id="default",
        name="Default",
        web_template=create_default_web_template(),
        video_template=create_default_video_template(),
        shortcut_key="Ctrl+Shift+C",
    )
    return TemplateSettings(sets=[default_set], default_set_id=default_set.id)


def copy_template(template: Template) -> Template:
    """Per-run copy whose properties can be changed without touching the source."""

    return replace(template, properties=[replace(prop) for prop in template.properties])
