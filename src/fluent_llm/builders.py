"""Request builders: shared sampling configuration and the completion protocol."""

from __future__ import annotations

import inspect
import json
import logging
import math
import weakref
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from pydantic import ValidationError

from fluent_llm.bridge import ExecutionBridge
from fluent_llm.convert import loads_dynamic, to_dynamic
from fluent_llm.errors import (
    LLMError,
    LLMValidationError,
    ProviderError,
    StructuredOutputError,
    ToolCallError,
    map_provider_error,
)
from fluent_llm.messages import coerce_messages
from fluent_llm.providers.base import BaseProvider, ProviderRegistry
from fluent_llm.responses import StructuredResponse, Usage
from fluent_llm.tools import Tool, ToolCall, ToolResponse
from fluent_llm.types import (
    CanonicalMessage,
    CompletionRequest,
    CompletionResult,
    StructuredFormat,
    StructuredOutputRequest,
)

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1000
DEFAULT_TOP_P = 1.0

OPTION_KEYS = ("temperature", "max_tokens", "top_p", "frequency_penalty", "presence_penalty")

B = TypeVar("B", bound="CompletionBuilder")


class CompletionBuilder:
    """Sampling configuration plus the resolve, build, dispatch and map steps.

    A builder owns one reference on the shared ``ExecutionBridge``; it is
    released by :meth:`close`, by leaving a ``with`` block, or when the
    builder is garbage collected.
    """

    def __init__(
        self,
        model: str,
        *,
        registry: ProviderRegistry,
        bridge: ExecutionBridge,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        top_p: float = DEFAULT_TOP_P,
        frequency_penalty: float = 0.0,
        presence_penalty: float = 0.0,
    ) -> None:
        self.model = model
        self.temperature = _float_option("temperature", temperature)
        self.max_tokens = _int_option("max_tokens", max_tokens)
        self.top_p = _float_option("top_p", top_p)
        self.frequency_penalty = _float_option("frequency_penalty", frequency_penalty)
        self.presence_penalty = _float_option("presence_penalty", presence_penalty)
        self._registry = registry
        self._bridge = bridge
        self._finalizer = weakref.finalize(self, bridge.release)

    def set_temperature(self: B, temperature: float) -> B:
        self.temperature = _float_option("temperature", temperature)
        return self

    def set_max_tokens(self: B, max_tokens: int) -> B:
        self.max_tokens = _int_option("max_tokens", max_tokens)
        return self

    def set_top_p(self: B, top_p: float) -> B:
        self.top_p = _float_option("top_p", top_p)
        return self

    def set_frequency_penalty(self: B, penalty: float) -> B:
        self.frequency_penalty = _float_option("frequency_penalty", penalty)
        return self

    def set_presence_penalty(self: B, penalty: float) -> B:
        self.presence_penalty = _float_option("presence_penalty", penalty)
        return self

    def with_options(self: B, options: Mapping[str, Any]) -> B:
        """Apply recognized sampling options; unknown keys are ignored."""
        for key, value in options.items():
            if key not in OPTION_KEYS:
                logger.debug("Ignoring unknown option %r", key)
                continue
            getattr(self, f"set_{key}")(value)
        return self

    def sampling(self) -> dict[str, Any]:
        return {key: getattr(self, key) for key in OPTION_KEYS}

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def close(self) -> None:
        self._finalizer()

    def __enter__(self: B) -> B:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _resolve(self) -> tuple[BaseProvider, str]:
        try:
            return self._registry.resolve(self.model)
        except ProviderError as exc:
            raise map_provider_error(exc) from exc

    def _build_request(self, messages: list[CanonicalMessage], model: str, **extra: Any) -> CompletionRequest:
        return CompletionRequest(
            messages=messages,
            model=model,
            temperature=self.temperature,
            top_p=self.top_p,
            max_tokens=self.max_tokens,
            frequency_penalty=self.frequency_penalty,
            presence_penalty=self.presence_penalty,
            **extra,
        )

    def _execute(self, provider: BaseProvider, request: CompletionRequest, mode: str) -> CompletionResult:
        if self.closed:
            raise LLMError("Builder has been closed")
        logger.debug(
            "Dispatching %s completion to %s (model=%s, messages=%d)",
            mode,
            provider.name,
            request.model,
            len(request.messages),
        )
        # the call holds its own reference so closing a shared handle mid-call
        # leaves the loop running until the result is delivered
        self._bridge.retain()
        try:
            result = provider.complete(request)
            if inspect.isawaitable(result):
                result = self._bridge.run(result)
            if not isinstance(result, CompletionResult):
                result = CompletionResult.model_validate(result)
        except LLMError:
            raise
        except Exception as exc:
            raise map_provider_error(exc) from exc
        finally:
            self._bridge.release()
        if result.usage is None:
            logger.debug("Provider %s returned no usage; reporting zeros", provider.name)
        return result


class StructuredBuilder(CompletionBuilder):
    """Builder for schema-constrained completions."""

    def __init__(self, model: str, *, schema: Any = None, **kwargs: Any) -> None:
        super().__init__(model, **kwargs)
        self.schema = schema
        self.format: StructuredFormat = "json_schema" if schema is not None else "json"

    def with_schema(self, schema: str | Mapping[str, Any]) -> StructuredBuilder:
        self.schema = schema
        self.format = "json_schema"
        return self

    def with_format(self, fmt: str) -> StructuredBuilder:
        if fmt not in ("json", "json_schema"):
            raise LLMValidationError(f"Unknown structured output format: {fmt!r}", field="format")
        self.format = fmt  # type: ignore[assignment]
        return self

    def complete(self, messages: Any) -> StructuredResponse:
        """Run a structured completion; the provider must support structured output."""
        provider, model = self._resolve()
        if not provider.supports_structured_output(model):
            raise StructuredOutputError("Structured output not supported by this provider/model")

        canonical = coerce_messages(messages)
        request = self._build_request(canonical, model, structured_output=self._structured_request())
        result = self._execute(provider, request, "structured")

        if result.structured_output is None:
            raise StructuredOutputError("No structured output in response")
        try:
            structured = to_dynamic(result.structured_output)
        except LLMValidationError as exc:
            raise StructuredOutputError(f"Invalid structured output: {exc}") from exc
        return StructuredResponse(
            content=result.content,
            structured=structured,
            usage=Usage.from_token_usage(result.usage),
            model=model,
        )

    def _structured_request(self) -> StructuredOutputRequest:
        if self.schema is None:
            if self.format == "json_schema":
                raise StructuredOutputError("Format 'json_schema' requires a schema")
            return StructuredOutputRequest.generic()
        if isinstance(self.schema, str):
            try:
                schema = loads_dynamic(self.schema)
            except (json.JSONDecodeError, LLMValidationError) as exc:
                raise StructuredOutputError(f"Invalid JSON schema: {exc}") from exc
        elif isinstance(self.schema, Mapping):
            schema = to_dynamic(self.schema)
        else:
            raise StructuredOutputError("Schema must be a JSON string or mapping")
        return StructuredOutputRequest.with_schema(schema)


class ToolBuilder(CompletionBuilder):
    """Builder for tool-calling completions."""

    def __init__(self, model: str, *, tools: Iterable[Tool | Mapping[str, Any]] | None = None, **kwargs: Any) -> None:
        super().__init__(model, **kwargs)
        self.tools: list[Tool] = [_coerce_tool(tool) for tool in tools or ()]

    def add_tool(self, tool: Tool | Mapping[str, Any]) -> ToolBuilder:
        self.tools.append(_coerce_tool(tool))
        return self

    def set_tools(self, tools: Iterable[Tool | Mapping[str, Any]]) -> ToolBuilder:
        self.tools = [_coerce_tool(tool) for tool in tools]
        return self

    def complete(self, messages: Any) -> ToolResponse:
        """Run a completion offering the configured tools to the model."""
        provider, model = self._resolve()
        canonical = coerce_messages(messages)
        definitions = [tool.to_function_definition() for tool in self.tools]
        request = self._build_request(canonical, model, tools=definitions or None)
        result = self._execute(provider, request, "tool")

        # calls naming a tool that was not offered are rejected, not passed through
        offered = {tool.name for tool in self.tools}
        calls: list[ToolCall] = []
        for raw in result.tool_calls or []:
            if raw.name not in offered:
                raise ToolCallError(f"Model requested unknown tool '{raw.name}'")
            try:
                calls.append(ToolCall.from_provider(raw))
            except (ValidationError, LLMValidationError) as exc:
                raise ToolCallError(f"Tool call error: {exc}") from exc

        return ToolResponse(
            content=result.content,
            tool_calls=calls,
            usage=Usage.from_token_usage(result.usage),
            model=model,
            response_id=result.response_id,
        )


def _coerce_tool(tool: Tool | Mapping[str, Any]) -> Tool:
    if isinstance(tool, Tool):
        return tool
    if isinstance(tool, Mapping):
        return Tool.from_fields(tool)
    raise LLMValidationError("Tools must be Tool instances or mappings", field="tools")


def _float_option(name: str, value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise LLMValidationError(f"{name} must be a finite number, got {value!r}", field=name)
    return float(value)


def _int_option(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise LLMValidationError(f"{name} must be a positive integer, got {value!r}", field=name)
    return value
