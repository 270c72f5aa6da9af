"""LLM integration helpers."""

from .openai_client import OpenAIChatClient
from .script_generator import ScriptGenerator

__all__ = ["OpenAIChatClient", "ScriptGenerator"]
