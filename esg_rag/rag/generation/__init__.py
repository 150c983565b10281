"""
RAG Generation

Language-model provider strategies.
"""

from .providers import LLMProvider, OpenAIChatProvider, LocalLLMProvider, create_llm_provider

__all__ = [
    "LLMProvider",
    "OpenAIChatProvider",
    "LocalLLMProvider",
    "create_llm_provider",
]
