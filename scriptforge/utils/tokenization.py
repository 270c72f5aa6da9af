"""Helpers for loading tiktoken encodings with operator-controlled fallback."""

from __future__ import annotations

import logging
from typing import Optional

import tiktoken

logger = logging.getLogger(__name__)


def get_cl100k_encoding(context: str, allow_fallback: bool = False) -> Optional[tiktoken.Encoding]:
    """Load the OpenAI tokenizer, or return None when whitespace fallback is allowed."""
    try:
        return tiktoken.get_encoding("cl100k_base")
    except Exception as exc:
        message = (
            f"Failed to load tiktoken 'cl100k_base' while {context}. "
            f"Reason: {exc}"
        )
        if allow_fallback:
            logger.warning(
                "%s. Proceeding with whitespace token approximation because ALLOW_TIKTOKEN_FALLBACK=1.",
                message,
            )
            return None
        raise RuntimeError(
            f"{message}. Set ALLOW_TIKTOKEN_FALLBACK=1 to allow whitespace fallback."
        ) from exc


def count_tokens(text: str, encoding: Optional[tiktoken.Encoding]) -> int:
    """Count tokens using tiktoken if available, otherwise whitespace approximation."""
    if encoding:
        return len(encoding.encode(text))
    return len(text.split())


def truncate_to_tokens(text: str, max_tokens: int, encoding: Optional[tiktoken.Encoding]) -> str:
    """Cut ``text`` down to at most ``max_tokens`` tokens."""
    if max_tokens <= 0:
        return ""
    if encoding:
        tokens = encoding.encode(text)
        if len(tokens) <= max_tokens:
            return text
        return encoding.decode(tokens[:max_tokens])
    words = text.split()
    if len(words) <= max_tokens:
        return text
    return " ".join(words[:max_tokens])
