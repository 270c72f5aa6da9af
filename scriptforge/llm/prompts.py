"""Prompt template for the script generation stage."""

from __future__ import annotations

import string

SCRIPT_PROMPT_TEMPLATE = """You are a creative scriptwriter. Based on the following PDF content, create a human, story-based video script:
{source_text}

The script should:
- Be written in a {tone} style, as if a real person is narrating it in the first person.
- Speak directly to the listener in a friendly, relatable manner.
- Be approximately {length} minutes long when read aloud.
- Include clear scene descriptions, voiceover cues, and natural dialogue where appropriate.
- Flow smoothly from one idea to the next, like a story, rather than a list of points or a bulleted summary.
- Be ready to be used directly in voice-over software.

Make it entertaining, easy to follow, and engaging, while keeping the key ideas from the PDF intact."""

PROMPT_VARIABLES = frozenset({"source_text", "tone", "length"})


def _template_fields(template: str) -> frozenset[str]:
    return frozenset(
        field for _, field, _, _ in string.Formatter().parse(template) if field is not None
    )


if _template_fields(SCRIPT_PROMPT_TEMPLATE) != PROMPT_VARIABLES:
    raise RuntimeError("SCRIPT_PROMPT_TEMPLATE placeholders do not match PROMPT_VARIABLES")


def build_script_prompt(source_text: str, tone: str, length: str) -> str:
    return SCRIPT_PROMPT_TEMPLATE.format(
        source_text=source_text.strip(),
        tone=tone,
        length=length,
    )
