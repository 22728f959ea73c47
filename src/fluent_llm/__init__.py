"""Fluent, provider-agnostic chat, structured output and tool calling."""

from fluent_llm.bridge import ExecutionBridge
from fluent_llm.builders import StructuredBuilder, ToolBuilder
from fluent_llm.client import LLM
from fluent_llm.config import LLMSettings, build_registry, default_registry
from fluent_llm.convert import DynamicValue, from_dynamic, to_dynamic
from fluent_llm.errors import (
    LLMConnectionError,
    LLMError,
    LLMValidationError,
    StructuredOutputError,
    ToolCallError,
)
from fluent_llm.messages import Message, MessageSequence
from fluent_llm.responses import Response, StructuredResponse, Usage
from fluent_llm.tools import Tool, ToolCall, ToolResponse

__all__ = [
    "LLM",
    "StructuredBuilder",
    "ToolBuilder",
    "ExecutionBridge",
    "LLMSettings",
    "build_registry",
    "default_registry",
    "DynamicValue",
    "to_dynamic",
    "from_dynamic",
    "LLMError",
    "LLMConnectionError",
    "LLMValidationError",
    "StructuredOutputError",
    "ToolCallError",
    "Message",
    "MessageSequence",
    "Response",
    "StructuredResponse",
    "Usage",
    "Tool",
    "ToolCall",
    "ToolResponse",
]
