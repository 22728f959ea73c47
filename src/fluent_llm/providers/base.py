"""Provider-agnostic base interfaces and helpers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, cast

import httpx

from fluent_llm.errors import ApiError, NetworkError, ProviderTimeoutError, UnknownModelError
from fluent_llm.types import CompletionRequest, CompletionResult

logger = logging.getLogger(__name__)


class BaseProvider(ABC):
    """Abstract base class for provider implementations."""

    name: str

    @abstractmethod
    def supports_structured_output(self, model: str) -> bool:
        """Return whether the model can be constrained to JSON output."""
        raise NotImplementedError

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> CompletionResult:
        """Execute one completion request."""
        raise NotImplementedError


class HttpProvider(BaseProvider):
    """Shared plumbing for providers speaking JSON over HTTP.

    A fresh ``httpx.AsyncClient`` is opened per call so the provider is not
    tied to the event loop of whichever bridge used it first.
    """

    def __init__(
        self,
        *,
        base_url: str,
        headers: dict[str, str],
        timeout_s: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._headers = headers
        self._timeout_s = timeout_s
        self._transport = transport

    async def _post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout_s,
                transport=self._transport,
            ) as client:
                response = await client.post(path, headers=self._headers, json=payload)
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(self.name) from exc
        except httpx.TransportError as exc:
            raise NetworkError(self.name, str(exc) or type(exc).__name__) from exc
        return self._json_or_error(response)

    def _json_or_error(self, response: httpx.Response) -> dict[str, Any]:
        if response.status_code >= 400:
            raise ApiError(
                self.name,
                response.text or response.reason_phrase,
                status_code=response.status_code,
            )
        return cast(dict[str, Any], response.json())


class ProviderRegistry:
    """Routes ``provider:model`` identifiers to registered providers."""

    def __init__(self, providers: list[BaseProvider] | None = None) -> None:
        self._providers: dict[str, BaseProvider] = {}
        for provider in providers or []:
            self.register(provider)

    def register(self, provider: BaseProvider) -> ProviderRegistry:
        self._providers[provider.name] = provider
        return self

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._providers)

    def resolve(self, model: str) -> tuple[BaseProvider, str]:
        """Return the provider serving ``model`` and the model name it expects.

        A bare model name is accepted only when exactly one provider is registered.
        """
        prefix, sep, name = model.partition(":")
        if sep:
            provider = self._providers.get(prefix)
            if provider is None or not name:
                raise UnknownModelError(model)
            logger.debug("Resolved model %s to provider %s", model, provider.name)
            return provider, name
        if len(self._providers) == 1 and model:
            provider = next(iter(self._providers.values()))
            logger.debug("Resolved bare model %s to sole provider %s", model, provider.name)
            return provider, model
        raise UnknownModelError(model)
