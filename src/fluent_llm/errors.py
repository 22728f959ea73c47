"""Package specific exception hierarchy and provider failure mapping."""

from __future__ import annotations

import httpx


class LLMError(Exception):
    """Base exception for fluent_llm; also raised for unclassified provider failures."""


class LLMConnectionError(LLMError):
    """Raised for network, API status, timeout and unknown-model failures."""


class LLMValidationError(LLMError):
    """Raised when caller-supplied input is malformed."""

    def __init__(self, message: str, *, field: str | None = None, index: int | None = None) -> None:
        if index is not None:
            message = f"Message at index {index}: {message}"
        super().__init__(message)
        self.field = field
        self.index = index


class StructuredOutputError(LLMError):
    """Raised when structured output is unsupported, malformed or missing."""


class ToolCallError(LLMError):
    """Raised when a tool call cannot be produced or interpreted."""


class ProviderError(Exception):
    """Represents provider-specific HTTP or API errors."""

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        suffix = f" (status {status_code})" if status_code is not None else ""
        super().__init__(f"{provider}: {message}{suffix}")
        self.provider = provider
        self.message = message
        self.status_code = status_code


class NetworkError(ProviderError):
    """The request never produced an HTTP response."""


class ApiError(ProviderError):
    """The provider answered with an error status."""

    def __init__(self, provider: str, message: str, status_code: int) -> None:
        super().__init__(provider, message, status_code=status_code)


class ProviderTimeoutError(ProviderError):
    """The provider did not answer in time."""

    def __init__(self, provider: str) -> None:
        super().__init__(provider, "request timed out")


class UnknownModelError(ProviderError):
    """No registered provider serves the requested model."""

    def __init__(self, model: str) -> None:
        super().__init__("registry", f"No provider available for model '{model}'")
        self.model = model


class ModelNotSupportedError(ProviderError):
    """The provider was found but refuses the model."""

    def __init__(self, provider: str, model: str) -> None:
        super().__init__(provider, f"model '{model}' is not supported")
        self.model = model


class StructuredOutputFailure(ProviderError):
    """The provider returned a structured payload that could not be used."""


class ToolCallFailure(ProviderError):
    """The provider returned a tool call that could not be decoded."""


def map_provider_error(exc: BaseException) -> LLMError:
    """Classify a provider-side failure into the host exception taxonomy.

    The returned exception is not raised; callers are expected to
    ``raise map_provider_error(exc) from exc`` so the original stays chained.
    """
    if isinstance(exc, LLMError):
        return exc
    if isinstance(exc, NetworkError):
        return LLMConnectionError(exc.message)
    if isinstance(exc, ApiError):
        return LLMConnectionError(f"API Error [{exc.provider}] ({exc.status_code}): {exc.message}")
    if isinstance(exc, ProviderTimeoutError):
        return LLMConnectionError(f"Request timeout for provider: {exc.provider}")
    if isinstance(exc, UnknownModelError):
        return LLMConnectionError(exc.message)
    if isinstance(exc, ModelNotSupportedError):
        return LLMValidationError(f"Model '{exc.model}' not supported by provider '{exc.provider}'")
    if isinstance(exc, StructuredOutputFailure):
        return StructuredOutputError(f"Structured output error: {exc}")
    if isinstance(exc, ToolCallFailure):
        return ToolCallError(f"Tool call error: {exc}")
    if isinstance(exc, httpx.TimeoutException):
        return LLMConnectionError(f"Request timeout: {exc}")
    if isinstance(exc, httpx.TransportError):
        return LLMConnectionError(str(exc) or type(exc).__name__)
    return LLMError(f"Provider error: {exc!r}")
