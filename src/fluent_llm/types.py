"""Canonical provider-facing request/response models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, JsonValue, NonNegativeInt

Role = Literal["system", "user", "assistant", "tool"]
StructuredFormat = Literal["json", "json_schema"]

# Fixed top-k sampling value sent with every request.
DEFAULT_TOP_K = 50


class CanonicalMessage(BaseModel):
    """Single conversation turn in provider-neutral form."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    tool_call_id: str | None = None
    id: str | None = None
    tool_calls: JsonValue = None


class FunctionDefinition(BaseModel):
    """JSON-schema function offered to the model."""

    name: str
    description: str = ""
    parameters: JsonValue = Field(default_factory=dict)


class StructuredOutputRequest(BaseModel):
    """Structured output constraint attached to a request."""

    format: StructuredFormat = "json"
    json_schema: JsonValue = None

    @classmethod
    def generic(cls) -> StructuredOutputRequest:
        return cls(format="json")

    @classmethod
    def with_schema(cls, schema: JsonValue) -> StructuredOutputRequest:
        return cls(format="json_schema", json_schema=schema)


class CompletionRequest(BaseModel):
    """Normalized request shared by all providers."""

    messages: list[CanonicalMessage]
    model: str
    temperature: float
    top_p: float
    top_k: int = DEFAULT_TOP_K
    max_tokens: int
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    structured_output: StructuredOutputRequest | None = None
    tools: list[FunctionDefinition] | None = None


class TokenUsage(BaseModel):
    """Token accounting exactly as reported by the provider."""

    prompt_tokens: NonNegativeInt = 0
    output_tokens: NonNegativeInt = 0
    total_tokens: NonNegativeInt = 0
    reasoning_tokens: NonNegativeInt = 0
    cached_tokens: NonNegativeInt = 0


class ProviderToolCall(BaseModel):
    """Tool invocation requested by the model."""

    id: str
    name: str
    arguments: JsonValue = None


class CompletionResult(BaseModel):
    """Provider answer before it is marshalled into a host response."""

    content: str = ""
    usage: TokenUsage | None = None
    finish_reason: str | None = None
    structured_output: JsonValue = None
    tool_calls: list[ProviderToolCall] | None = None
    response_id: str | None = None
