"""Tests for the script prompt template."""

from __future__ import annotations

from scriptforge.llm.prompts import PROMPT_VARIABLES, SCRIPT_PROMPT_TEMPLATE, build_script_prompt


def test_template_declares_its_variables() -> None:
    for name in PROMPT_VARIABLES:
        assert "{" + name + "}" in SCRIPT_PROMPT_TEMPLATE


def test_build_inserts_text_tone_and_length() -> None:
    prompt = build_script_prompt("  Revenue grew 12% in Q3.  ", tone="calm and reflective", length="5")

    assert "Revenue grew 12% in Q3." in prompt
    assert "calm and reflective style" in prompt
    assert "approximately 5 minutes" in prompt


def test_prompt_keeps_narration_constraints() -> None:
    prompt = build_script_prompt("text", tone="casual and engaging", length="2").lower()

    assert "first person" in prompt
    assert "scene descriptions" in prompt
    assert "voiceover cues" in prompt
    assert "dialogue" in prompt
    assert "rather than a list of points" in prompt
    assert "voice-over software" in prompt


def test_braces_in_source_text_are_left_alone() -> None:
    prompt = build_script_prompt("config = {tone} {length}", tone="dry", length="1")
    assert "config = {tone} {length}" in prompt
