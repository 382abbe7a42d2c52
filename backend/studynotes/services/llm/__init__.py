"""LLM client package."""

from studynotes.services.llm.client import (
    AiOperation,
    LLMClient,
    build_messages,
    get_llm_client,
)

__all__ = [
    "AiOperation",
    "LLMClient",
    "build_messages",
    "get_llm_client",
]
