"""Base handle for chatting with a model through the configured providers."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from fluent_llm.bridge import ExecutionBridge
from fluent_llm.builders import CompletionBuilder, StructuredBuilder, ToolBuilder
from fluent_llm.config import default_registry
from fluent_llm.messages import coerce_messages
from fluent_llm.providers.base import ProviderRegistry
from fluent_llm.responses import Response, Usage
from fluent_llm.tools import Tool


class LLM(CompletionBuilder):
    """High-level coordinator for plain chat completions.

    The handle owns the execution bridge; builders obtained from
    :meth:`structured` and :meth:`with_tools` share it and keep it alive
    until they are closed as well.

    Example:
        llm = LLM("openai:gpt-4o-mini").set_temperature(0.2)
        response = llm.complete(MessageSequence().add_user("Hello"))
    """

    def __init__(
        self,
        model: str,
        options: Mapping[str, Any] | None = None,
        *,
        registry: ProviderRegistry | None = None,
    ) -> None:
        super().__init__(
            model,
            registry=registry if registry is not None else default_registry(),
            bridge=ExecutionBridge(),
        )
        if options:
            self.with_options(options)

    def complete(self, messages: Any) -> Response:
        """Execute a plain chat completion."""
        provider, model = self._resolve()
        canonical = coerce_messages(messages)
        request = self._build_request(canonical, model)
        result = self._execute(provider, request, "chat")
        return Response(
            content=result.content,
            usage=Usage.from_token_usage(result.usage),
            model=model,
            finish_reason=result.finish_reason or "stop",
        )

    def structured(self, schema: str | Mapping[str, Any] | None = None) -> StructuredBuilder:
        """Create a builder for structured output."""
        return StructuredBuilder(self.model, schema=schema, **self._derived())

    def with_tools(self, tools: Iterable[Tool | Mapping[str, Any]] | None = None) -> ToolBuilder:
        """Create a builder for tool calling."""
        return ToolBuilder(self.model, tools=tools, **self._derived())

    def _derived(self) -> dict[str, Any]:
        return {
            "registry": self._registry,
            "bridge": self._bridge.retain(),
            **self.sampling(),
        }
