"""Default prompts shipped with the built-in templates."""

from __future__ import annotations

WEB_CONTENT_PROMPT = """\
You will be given raw text extracted from a web page. It may still contain
navigation, ads, cookie notices and other page furniture.

1. Keep only the main article body and drop everything else.
2. Rewrite it as a Markdown note with these sections:
   - `# <title>`
   - `## Summary` (5-8 lines)
   - `## Key Insights` (bullets)
   - `## Structured Notes` (one `###` section per topic shift)
   - `## Important Quotes` (blockquotes)
3. Use a neutral tone, do not add commentary.

Return Markdown only."""

VIDEO_CONTENT_PROMPT = """\
You will be given the transcript of a video. Turn it into a Markdown study
note with `## Summary`, `## Key Points` and `## Structured Notes` sections.
Remove filler words and repetition but keep every important explanation.

Return Markdown only.

Transcript:

{{transcript}}"""

WEB_TAGS_PROMPT = """\
Generate 3-7 tags for filing this web page in a personal knowledge base.
Use lowercase words joined by hyphens for multi-word tags and mix broad
categories with specific topics.

Return ONLY a valid JSON array of tag strings, nothing else.
Example: ["programming", "python", "tutorial"]

Content:
{{content}}"""

VIDEO_TAGS_PROMPT = """\
Generate 3-7 tags for filing this video in a personal knowledge base.
Use lowercase words joined by hyphens for multi-word tags and mix broad
categories with specific topics.

Return ONLY a valid JSON array of tag strings, nothing else.
Example: ["machine-learning", "lecture", "statistics"]

Transcript:
{{transcript}}"""
