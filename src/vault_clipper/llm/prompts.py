"""Prompt and message builders shared by all providers."""

from __future__ import annotations

DEFAULT_SYSTEM_PROMPT = """\
You are a helpful assistant that cleans and formats web content for note-taking.
Remove leftover noise (navigation, ads, related articles, author bios), fix
formatting, keep headings, lists, code blocks and links, and output clean
Markdown.

Return ONLY the cleaned content, no explanations."""

DEFAULT_TAGS_PROMPT = """\
Analyze the following content and generate 3-5 relevant tags.
Return ONLY a JSON array of tag strings, nothing else."""


def build_system_prompt(prompt: str, *, mode: str = "format") -> str:
    """User-configured prompt, or the default for the mode."""

    if prompt.strip():
        return prompt
    return DEFAULT_TAGS_PROMPT if mode == "tags" else DEFAULT_SYSTEM_PROMPT


def build_user_message(content: str, *, mode: str = "format") -> str:
    if mode == "tags":
        return f"Please analyze the following content and generate tags:\n\n{content}"
    return f"Please process the following content:\n\n{content}"
