"""Configuration: API keys and timeouts resolved from the environment."""

from __future__ import annotations

import os
import threading
from collections.abc import Mapping
from dataclasses import dataclass

from dotenv import load_dotenv

from fluent_llm.errors import LLMValidationError
from fluent_llm.providers import AnthropicProvider, OpenAIProvider, ProviderRegistry, TogetherProvider

DEFAULT_TIMEOUT_S = 60.0


@dataclass(frozen=True)
class LLMSettings:
    """Immutable provider settings.

    Example:
        settings = LLMSettings.from_env()
        # OPENAI_API_KEY / ANTHROPIC_API_KEY / TOGETHER_API_KEY are picked up
    """

    openai_api_key: str | None = None
    anthropic_api_key: str | None = None
    together_api_key: str | None = None
    openai_base_url: str | None = None
    anthropic_base_url: str | None = None
    together_base_url: str | None = None
    timeout_s: float = DEFAULT_TIMEOUT_S

    def __post_init__(self) -> None:
        if self.timeout_s <= 0:
            raise LLMValidationError(f"timeout_s must be > 0, got {self.timeout_s}", field="timeout_s")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> LLMSettings:
        """Read settings from ``environ``, or from the process environment and ``.env``."""
        if environ is None:
            load_dotenv()
            environ = os.environ

        raw_timeout = environ.get("FLUENT_LLM_TIMEOUT_S")
        timeout_s = DEFAULT_TIMEOUT_S
        if raw_timeout:
            try:
                timeout_s = float(raw_timeout)
            except ValueError as exc:
                raise LLMValidationError(
                    f"FLUENT_LLM_TIMEOUT_S must be a number, got {raw_timeout!r}", field="timeout_s"
                ) from exc

        return cls(
            openai_api_key=environ.get("OPENAI_API_KEY") or None,
            anthropic_api_key=environ.get("ANTHROPIC_API_KEY") or None,
            together_api_key=environ.get("TOGETHER_API_KEY") or None,
            openai_base_url=environ.get("OPENAI_BASE_URL") or None,
            anthropic_base_url=environ.get("ANTHROPIC_BASE_URL") or None,
            together_base_url=environ.get("TOGETHER_BASE_URL") or None,
            timeout_s=timeout_s,
        )


def build_registry(settings: LLMSettings) -> ProviderRegistry:
    """Register a provider for every API key present in ``settings``."""
    registry = ProviderRegistry()
    if settings.openai_api_key:
        registry.register(
            OpenAIProvider(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                timeout_s=settings.timeout_s,
            )
        )
    if settings.anthropic_api_key:
        registry.register(
            AnthropicProvider(
                api_key=settings.anthropic_api_key,
                base_url=settings.anthropic_base_url,
                timeout_s=settings.timeout_s,
            )
        )
    if settings.together_api_key:
        registry.register(
            TogetherProvider(
                api_key=settings.together_api_key,
                base_url=settings.together_base_url,
                timeout_s=settings.timeout_s,
            )
        )
    return registry


_default_registry: ProviderRegistry | None = None
_default_lock = threading.Lock()


def default_registry() -> ProviderRegistry:
    """Return the process-wide registry built from the environment on first use."""
    global _default_registry
    with _default_lock:
        if _default_registry is None:
            _default_registry = build_registry(LLMSettings.from_env())
        return _default_registry
