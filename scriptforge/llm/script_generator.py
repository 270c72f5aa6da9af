"""Glue module that turns extracted text into a narration script."""

from __future__ import annotations

import logging
from typing import Optional

import tiktoken

from scriptforge.llm.openai_client import OpenAIChatClient
from scriptforge.llm.prompts import build_script_prompt
from scriptforge.models.script import GenerationRequest, GenerationResult
from scriptforge.utils.tokenization import count_tokens, get_cl100k_encoding, truncate_to_tokens

logger = logging.getLogger(__name__)

_UNLOADED = object()


class ScriptGenerator:
    """Renders the prompt for a request and runs it through the model client."""

    def __init__(
        self,
        client: OpenAIChatClient,
        max_source_tokens: Optional[int] = None,
        allow_tiktoken_fallback: bool = False,
    ) -> None:
        self.client = client
        self.max_source_tokens = max_source_tokens
        self.allow_tiktoken_fallback = allow_tiktoken_fallback
        self._encoding = _UNLOADED

    def _get_encoding(self) -> Optional[tiktoken.Encoding]:
        if self._encoding is _UNLOADED:
            self._encoding = get_cl100k_encoding(
                "budgeting source text", allow_fallback=self.allow_tiktoken_fallback
            )
        return self._encoding

    def fit_source(self, text: str) -> str:
        if not self.max_source_tokens:
            return text
        encoding = self._get_encoding()
        total = count_tokens(text, encoding)
        if total <= self.max_source_tokens:
            return text
        logger.info("Trimming source text from %s to %s tokens", total, self.max_source_tokens)
        return truncate_to_tokens(text, self.max_source_tokens, encoding)

    def render(self, request: GenerationRequest) -> str:
        return build_script_prompt(
            self.fit_source(request.extracted_text),
            tone=request.tone,
            length=request.target_length_minutes,
        )

    def generate(self, prompt: str) -> GenerationResult:
        result = self.client.generate(prompt)
        result.content = result.content.strip()
        return result
