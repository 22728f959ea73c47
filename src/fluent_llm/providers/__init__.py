"""Provider definitions for fluent_llm."""

from .anthropic import AnthropicProvider
from .base import BaseProvider, HttpProvider, ProviderRegistry
from .openai import OpenAIProvider
from .together import TogetherProvider

__all__ = [
    "BaseProvider",
    "HttpProvider",
    "ProviderRegistry",
    "OpenAIProvider",
    "AnthropicProvider",
    "TogetherProvider",
]
