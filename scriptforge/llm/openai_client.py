"""Thin wrapper around the OpenAI Responses API."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import openai
from openai import OpenAI

from scriptforge.config import Settings
from scriptforge.errors import ConfigurationError, GenerationError, GenerationRateLimited
from scriptforge.models.script import GenerationResult

logger = logging.getLogger(__name__)


class OpenAIChatClient:
    """Sends one fully rendered prompt per call; keeps no conversation state."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        temperature: float = 0.7,
        max_output_tokens: int = 4000,
        client: Optional[OpenAI] = None,
    ) -> None:
        if client is None and not api_key:
            raise ConfigurationError("OPENAI_API_KEY is not configured in the environment.")
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        # Retries belong to the caller, so the SDK's own retry loop is disabled.
        self.client = client or OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIChatClient":
        return cls(
            api_key=settings.openai_api_key,
            model=settings.openai_model_chat,
            base_url=settings.openai_base_url,
            timeout=settings.generation_timeout_seconds,
            temperature=settings.generation_temperature,
            max_output_tokens=settings.generation_max_output_tokens,
        )

    def generate(self, prompt: str) -> GenerationResult:
        try:
            response = self.client.responses.create(
                model=self.model,
                temperature=self.temperature,
                max_output_tokens=self.max_output_tokens,
                input=[{"role": "user", "content": prompt}],
            )
        except openai.RateLimitError as exc:
            logger.warning("Model provider rejected the request as rate limited: %s", exc)
            raise GenerationRateLimited(f"Model provider rate limit: {exc}") from exc
        except openai.APITimeoutError as exc:
            logger.error("Model call timed out after %s", self.client.timeout)
            raise GenerationError(f"Model call timed out: {exc}") from exc
        except openai.AuthenticationError as exc:
            logger.error("Model provider rejected credentials: %s", exc)
            raise GenerationError(f"Model provider authentication failed: {exc}") from exc
        except openai.APIError as exc:
            logger.error("Model call failed: %s", exc)
            raise GenerationError(f"Model call failed: {exc}") from exc

        content = self._extract_text(response)
        if not content:
            raise GenerationError("Model returned an empty response")
        return GenerationResult(content=content, model_metadata=self._metadata(response))

    def _metadata(self, response: Any) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {
            "model": getattr(response, "model", None) or self.model,
            "response_id": getattr(response, "id", None),
        }
        usage = getattr(response, "usage", None)
        if usage is not None:
            metadata["input_tokens"] = getattr(usage, "input_tokens", None)
            metadata["output_tokens"] = getattr(usage, "output_tokens", None)
        return metadata

    @staticmethod
    def _extract_text(response) -> str:
        chunks: list[str] = []
        for item in getattr(response, "output", None) or []:
            for content in getattr(item, "content", None) or []:
                content_type = getattr(content, "type", None)
                content_text = getattr(content, "text", None)
                if isinstance(content, dict):
                    content_type = content.get("type", content_type)
                    content_text = content.get("text", content_text)
                if content_type in {"output_text", "text"} and content_text:
                    chunks.append(str(content_text))
        return "\n".join(part.strip() for part in chunks if part).strip()
