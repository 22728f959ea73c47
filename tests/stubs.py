"""Test doubles shared by the builder and client suites."""

from __future__ import annotations

import asyncio
import threading

from fluent_llm.client import LLM
from fluent_llm.providers.base import BaseProvider, ProviderRegistry
from fluent_llm.types import CompletionRequest, CompletionResult


class RecordingProvider(BaseProvider):
    """Records every call and answers with a canned result."""

    name = "stub"

    def __init__(
        self,
        result: CompletionResult | None = None,
        *,
        structured: bool = True,
        error: BaseException | None = None,
    ) -> None:
        self.result = result if result is not None else CompletionResult(content="ok")
        self.structured = structured
        self.error = error
        self.requests: list[CompletionRequest] = []
        self.structured_queries: list[str] = []

    def supports_structured_output(self, model: str) -> bool:
        self.structured_queries.append(model)
        return self.structured

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.result


class SyncProvider(RecordingProvider):
    """Provider whose completion path is a plain function."""

    name = "sync"

    def complete(self, request: CompletionRequest) -> CompletionResult:  # type: ignore[override]
        self.requests.append(request)
        return self.result


def make_llm(provider: BaseProvider, model: str = "toy", **options: object) -> LLM:
    return LLM(f"{provider.name}:{model}", options or None, registry=ProviderRegistry([provider]))


class SlowProvider(RecordingProvider):
    """Signals ``started`` once a call is in flight, then answers after ``delay`` seconds."""

    name = "slow"

    def __init__(self, result: CompletionResult | None = None, *, delay: float = 0.3) -> None:
        super().__init__(result)
        self.delay = delay
        self.started = threading.Event()

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        self.requests.append(request)
        self.started.set()
        await asyncio.sleep(self.delay)
        return self.result
