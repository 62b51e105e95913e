"""Merging LLM-generated tags into a template's tags property."""

from __future__ import annotations

import json


def parse_existing_tags(value: str) -> list[str]:
    """Tags already configured on the template: a JSON list, a comma list or nothing."""

    text = value.strip()
    if not text or text == "[]":
        return []
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return [part.strip() for part in text.split(",") if part.strip()]
    if isinstance(parsed, list):
        return [str(item).strip() for item in parsed if str(item).strip()]
    return [str(parsed).strip()] if str(parsed).strip() else []


def parse_generated_tags(raw: str) -> list[str]:
    """Tags from an LLM response; an unparseable payload is one tag."""

    text = raw.strip()
    if not text:
        return []
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return [text]
    if not isinstance(parsed, list):
        return [text]
    return [str(item).strip() for item in parsed if str(item).strip()]


def merge_tags(existing: list[str], generated_raw: str) -> list[str]:
    """Order-preserving de-duplicated union of existing and generated tags."""

    return list(dict.fromkeys([*existing, *parse_generated_tags(generated_raw)]))
