from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import allure
import pytest

from vault_clipper.clipper.models import VideoPageData, WebPageData
from vault_clipper.templates.models import (
    Template,
    TemplateProperty,
    TemplateSettings,
    copy_template,
    create_default_template_settings,
    load_template_settings,
)
from vault_clipper.templates.render import (
    CustomVariable,
    TemplateContext,
    TemplateRenderer,
    build_template_context,
    generate_frontmatter,
    get_domain,
    replace_template_variables,
    sanitize_filename,
    sanitize_folder,
)

pytestmark = [
    allure.epic("Notes"),
    allure.feature("Templates"),
]

FIXED_DATE = datetime(2024, 5, 17, 9, 30)


def _context(**overrides: str) -> TemplateContext:
    values = {
        "title": "Hello World",
        "url": "https://www.example.com/posts/hello",
        "content": "Body text",
    }
    values.update(overrides)
    return TemplateContext(date=FIXED_DATE, **values)


def test_domain_strips_www_prefix() -> None:
    assert get_domain("https://www.example.com/a") == "example.com"
    assert get_domain("https://blog.example.com") == "blog.example.com"
    assert get_domain("not a url") == ""


def test_variables_are_replaced_and_unknown_names_kept() -> None:
    rendered = replace_template_variables(
        "{{title}} ({{domain}}) {{date}} {{time}} {{missing}}",
        _context(),
    )

    assert rendered == "Hello World (example.com) 2024-05-17 09:30 {{missing}}"


def test_builtin_variables_win_over_custom_ones() -> None:
    rendered = replace_template_variables(
        "{{title}} / {{llmTags}}",
        _context(),
        [CustomVariable("title", "custom"), CustomVariable("llmTags", '["ai"]')],
    )

    assert rendered == 'Hello World / ["ai"]'


def test_sanitize_filename_and_folder() -> None:
    assert sanitize_filename('What? A "quote": yes/no') == "What- A -quote-- yes-no"
    assert sanitize_filename("  lots   of\tspace ") == "lots of space"
    assert len(sanitize_filename("x" * 500)) == 200
    assert sanitize_folder("Clippings//ex:ample.com/") == "Clippings/ex-ample.com"


def test_frontmatter_formats_each_property_type() -> None:
    properties = [
        TemplateProperty("title", "{{title}}: part 2"),
        TemplateProperty("plain", "{{title}}"),
        TemplateProperty("author", "{{author}}", "list"),
        TemplateProperty("authors", "{{author}}", "list"),
        TemplateProperty("tags", "ai, python", "tags"),
        TemplateProperty("empty_tags", "[]", "tags"),
        TemplateProperty("read", "1", "checkbox"),
        TemplateProperty("score", "3.0", "number"),
        TemplateProperty("ratio", "nope", "number"),
        TemplateProperty("created", "{{date}}", "date"),
    ]

    frontmatter = generate_frontmatter(properties, _context(author="Ann"))

    assert frontmatter.splitlines() == [
        "---",
        'title: "Hello World: part 2"',
        "plain: Hello World",
        "author:",
        '  - "Ann"',
        "authors:",
        '  - "Ann"',
        'tags: ["ai", "python"]',
        "empty_tags: []",
        "read: true",
        "score: 3",
        "ratio: 0",
        "created: 2024-05-17",
        "---",
    ]


def test_renderer_builds_note_with_frontmatter_and_body() -> None:
    template = Template(
        id="t",
        name="T",
        kind="web",
        folder="Clippings/{{domain}}",
        filename="{{title}}",
        properties=[TemplateProperty("source", "{{url}}")],
        content="# {{title}}\n\n{{content}}",
    )

    note = TemplateRenderer().render(template, _context())

    assert note.folder == "Clippings/example.com"
    assert note.filename == "Hello World"
    assert note.path == "Clippings/example.com/Hello World.md"
    assert note.content == (
        "---\nsource: https://www.example.com/posts/hello\n---\n\n# Hello World\n\nBody text"
    )


def test_renderer_content_override_and_untitled_fallback() -> None:
    template = Template(
        id="t",
        name="T",
        kind="web",
        folder="",
        filename="{{title}}",
        content="{{content}}",
    )

    note = TemplateRenderer().render(
        template,
        _context(title="///"),
        content_override="Summary of {{url}}",
    )

    assert note.filename == "---"
    assert note.content == "Summary of https://www.example.com/posts/hello"

    untitled = TemplateRenderer().render(template, _context(title=""))
    assert untitled.filename == "Untitled"
    assert untitled.path == "Untitled.md"


def test_context_from_web_page_prefers_selection() -> None:
    page = WebPageData(
        title="Hello",
        url="https://example.com",
        content="Full article",
        selection="Just this",
        author="Ann",
    )

    context = build_template_context(page, now=FIXED_DATE)

    assert context.content == "Just this"
    assert context.selection == "Just this"
    assert context.author == "Ann"


def test_context_from_video_page_uses_transcript_and_channel() -> None:
    page = VideoPageData(
        title="Talk",
        url="https://www.youtube.com/watch?v=abcdefghijk",
        video_id="abcdefghijk",
        transcript="Hello everyone",
        description="A talk",
        channel="Conf",
        duration="PT10M",
    )

    context = build_template_context(page, now=FIXED_DATE)
    rendered = replace_template_variables("{{videoId}} {{channel}} {{duration}} {{author}}", context)

    assert context.content == "Hello everyone"
    assert rendered == "abcdefghijk Conf PT10M Conf"


def test_default_settings_resolve_default_set() -> None:
    settings = create_default_template_settings()

    template_set = settings.resolve_set("unknown")

    assert template_set is not None
    assert template_set.id == "default"
    assert template_set.template_for(is_video=True).kind == "video"
    assert template_set.template_for(is_video=False).kind == "web"
    assert TemplateSettings().resolve_set() is None


def test_load_template_settings_accepts_youtube_template_key(tmp_path: Path) -> None:
    path = tmp_path / "templates.json"
    web = {
        "id": "w",
        "name": "Web",
        "folder": "Web",
        "properties": [{"key": "tags", "value": "[]", "inputType": "tags"}],
        "useLLM": True,
        "llmGenerateTags": True,
    }
    video = {"id": "v", "name": "Video", "folder": "Video"}
    payload = {
        "defaultSetId": "second",
        "sets": [
            {"id": "first", "webTemplate": web, "youtubeTemplate": video},
            {"id": "second", "name": "Second", "webTemplate": web, "videoTemplate": video},
        ],
    }
    path.write_text(json.dumps(payload), "utf-8")

    settings = load_template_settings(path)

    assert [template_set.id for template_set in settings.sets] == ["first", "second"]
    assert settings.resolve_set().id == "second"
    assert settings.resolve_set("first").video_template.name == "Video"
    web_template = settings.sets[0].web_template
    assert web_template.tags_step_enabled is True
    assert web_template.content_step_enabled is False
    assert web_template.tags_property() is not None


def test_load_template_settings_rejects_bad_input(tmp_path: Path) -> None:
    not_object = tmp_path / "list.json"
    not_object.write_text("[]", "utf-8")
    bad_type = tmp_path / "bad.json"
    bad_type.write_text(
        json.dumps(
            {
                "sets": [
                    {
                        "id": "s",
                        "webTemplate": {"properties": [{"key": "x", "inputType": "color"}]},
                        "videoTemplate": {"id": "v"},
                    },
                ],
            },
        ),
        "utf-8",
    )

    with pytest.raises(ValueError, match="JSON object"):
        load_template_settings(not_object)
    with pytest.raises(ValueError, match="input type"):
        load_template_settings(bad_type)
    assert load_template_settings(None).default_set_id == "default"


def test_copy_template_isolates_property_changes() -> None:
    source = create_default_template_settings().sets[0].web_template

    copied = copy_template(source)
    tags = copied.tags_property()
    assert tags is not None
    tags.value = '["ai"]'

    original_tags = source.tags_property()
    assert original_tags is not None
    assert original_tags.value == "[]"
