"""Template variable substitution, frontmatter and note rendering."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from urllib.parse import urlparse

from vault_clipper.clipper.models import PageData, VideoPageData, WebPageData
from vault_clipper.templates.models import Template, TemplateProperty

_VARIABLE_RE = re.compile(r"\{\{(\w+)\}\}")
_FILENAME_RESERVED_RE = re.compile(r'[\\/:*?"<>|]')
_WHITESPACE_RE = re.compile(r"\s+")
_YAML_QUOTE_TRIGGERS = (":", "#", "'", '"')

MAX_FILENAME_CHARS = 200


@dataclass(slots=True)
class TemplateContext:
    """Values available to ``{{variable}}`` placeholders."""

    title: str
    url: str
    description: str = ""
    author: str = ""
    published: str = ""
    selection: str = ""
    content: str = ""
    date: datetime = field(default_factory=datetime.now)
    transcript: str = ""
    video_id: str = ""
    channel: str = ""
    duration: str = ""


@dataclass(slots=True, frozen=True)
class CustomVariable:
    name: str
    value: str


@dataclass(slots=True, frozen=True)
class RenderedNote:
    folder: str
    filename: str
    content: str

    @property
    def path(self) -> str:
        name = self.filename if self.filename.endswith(".md") else f"{self.filename}.md"
        return f"{self.folder}/{name}" if self.folder else name


def get_domain(url: str) -> str:
    hostname = urlparse(url).hostname or ""
    return hostname.removeprefix("www.")


def build_template_context(page: PageData, *, now: datetime | None = None) -> TemplateContext:
    """Map extracted page data onto template variables."""

    date = now or datetime.now()
    match page:
        case VideoPageData():
            return TemplateContext(
                title=page.title,
                url=page.url,
                description=page.description,
                author=page.channel,
                published=page.published,
                content=page.transcript or page.description,
                date=date,
                transcript=page.transcript,
                video_id=page.video_id,
                channel=page.channel,
                duration=page.duration,
            )
        case WebPageData():
            return TemplateContext(
                title=page.title,
                url=page.url,
                description=page.description,
                author=page.author,
                published=page.published,
                selection=page.selection,
                content=page.selection or page.content,
                date=date,
            )
    raise TypeError(f"Unsupported page data: {page!r}")


def resolve_template_variables(context: TemplateContext) -> dict[str, str]:
    date = context.date
    return {
        "title": context.title,
        "url": context.url,
        "domain": get_domain(context.url),
        "description": context.description,
        "author": context.author,
        "published": context.published,
        "date": date.strftime("%Y-%m-%d"),
        "time": date.strftime("%H:%M"),
        "datetime": date.strftime("%Y-%m-%d %H:%M"),
        "year": date.strftime("%Y"),
        "month": date.strftime("%m"),
        "day": date.strftime("%d"),
        "selection": context.selection,
        "content": context.content,
        "transcript": context.transcript,
        "videoId": context.video_id,
        "channel": context.channel,
        "duration": context.duration,
    }


def replace_template_variables(
    template: str,
    context: TemplateContext,
    custom_variables: list[CustomVariable] | None = None,
) -> str:
    """Replace ``{{name}}`` placeholders; unknown names are left as-is.

    Built-in variables take precedence over custom ones with the same name.
    """

    variables = {variable.name: variable.value for variable in custom_variables or []}
    variables.update(resolve_template_variables(context))

    def _substitute(match: re.Match[str]) -> str:
        return variables.get(match.group(1), match.group(0))

    return _VARIABLE_RE.sub(_substitute, template)


def escape_yaml_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def sanitize_filename(name: str) -> str:
    cleaned = _FILENAME_RESERVED_RE.sub("-", name)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned).strip()
    return cleaned[:MAX_FILENAME_CHARS]


def sanitize_folder(path: str) -> str:
    """Sanitize each segment of a ``/``-separated folder path."""

    segments = (sanitize_filename(segment) for segment in path.split("/"))
    return "/".join(segment for segment in segments if segment)


def generate_frontmatter(
    properties: list[TemplateProperty],
    context: TemplateContext,
    custom_variables: list[CustomVariable] | None = None,
) -> str:
    if not properties:
        return ""
    lines = ["---"]
    for prop in properties:
        value = replace_template_variables(prop.value, context, custom_variables)
        lines.extend(_frontmatter_lines(prop, value))
    lines.append("---")
    return "\n".join(lines)


def _frontmatter_lines(prop: TemplateProperty, value: str) -> list[str]:  # noqa: PLR0911
    key = prop.key
    if prop.input_type == "list":
        if value.startswith("[") and value.endswith("]"):
            return [f"{key}: {value}"]
        if value:
            return [f"{key}:", f'  - "{escape_yaml_string(value)}"']
        return [f"{key}: []"]
    if prop.input_type == "tags":
        if value.startswith("[") and value.endswith("]"):
            return [f"{key}: {value}"]
        tags = [tag.strip() for tag in value.split(",") if tag.strip()]
        if not tags:
            return [f"{key}: []"]
        quoted = ", ".join(f'"{escape_yaml_string(tag)}"' for tag in tags)
        return [f"{key}: [{quoted}]"]
    if prop.input_type == "checkbox":
        return [f"{key}: {'true' if value in {'true', '1'} else 'false'}"]
    if prop.input_type == "number":
        try:
            number = float(value)
        except ValueError:
            number = 0.0
        return [f"{key}: {int(number) if number.is_integer() else number}"]
    if prop.input_type in {"date", "datetime"}:
        return [f"{key}: {value}"]
    if value and any(trigger in value for trigger in _YAML_QUOTE_TRIGGERS):
        return [f'{key}: "{escape_yaml_string(value)}"']
    return [f"{key}: {value}"]


class TemplateRenderer:
    """Turns a template and page context into a note ready for the vault."""

    def render(
        self,
        template: Template,
        context: TemplateContext,
        *,
        custom_variables: list[CustomVariable] | None = None,
        content_override: str | None = None,
    ) -> RenderedNote:
        """Render the note.

        ``content_override`` replaces the template body wholesale (LLM output);
        it is still passed through variable substitution like the body.
        """

        variables = custom_variables or []
        folder = sanitize_folder(replace_template_variables(template.folder, context, variables))
        filename = sanitize_filename(
            replace_template_variables(template.filename, context, variables),
        )
        frontmatter = generate_frontmatter(template.properties, context, variables)
        body_template = content_override if content_override is not None else template.content
        body = replace_template_variables(body_template, context, variables)
        content = f"{frontmatter}\n\n{body}" if frontmatter else body
        return RenderedNote(folder=folder, filename=filename or "Untitled", content=content)
