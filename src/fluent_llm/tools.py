"""Tool definitions, tool calls and tool-calling responses."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator

from fluent_llm.convert import dumps_dynamic, from_dynamic, loads_dynamic, to_dynamic
from fluent_llm.errors import LLMValidationError
from fluent_llm.responses import Usage
from fluent_llm.types import FunctionDefinition, ProviderToolCall


class Tool(BaseModel):
    """JSON-schema tool definition offered to the model.

    ``parameters`` may be given as JSON text or as a mapping; either way it is
    validated when the tool is created and must describe a JSON object.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    parameters: JsonValue = Field(default_factory=dict)

    @field_validator("parameters", mode="before")
    @classmethod
    def _parse_parameters(cls, value: Any) -> JsonValue:
        return parse_parameters(value)

    @classmethod
    def from_fields(cls, data: Mapping[str, Any]) -> Tool:
        """Build a tool from a field map holding name, description and parameters."""
        name = _require_str(data, "name", "Tool")
        description = _require_str(data, "description", "Tool")
        if "parameters" not in data:
            raise LLMValidationError("Tool must have 'parameters' field", field="parameters")
        return cls(name=name, description=description, parameters=data["parameters"])

    @property
    def parameters_json(self) -> str:
        return dumps_dynamic(self.parameters)

    def to_function_definition(self) -> FunctionDefinition:
        return FunctionDefinition(
            name=self.name,
            description=self.description,
            parameters=self.parameters,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": from_dynamic(self.parameters),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


class ToolCall(BaseModel):
    """Tool invocation requested by the model."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    arguments: JsonValue = None

    @field_validator("arguments", mode="before")
    @classmethod
    def _normalize_arguments(cls, value: Any) -> JsonValue:
        return to_dynamic(value)

    @classmethod
    def from_provider(cls, call: ProviderToolCall) -> ToolCall:
        return cls(id=call.id, name=call.name, arguments=call.arguments)

    @property
    def arguments_json(self) -> str:
        return dumps_dynamic(self.arguments)

    def get_arguments(self) -> Any:
        return from_dynamic(self.arguments)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "arguments": self.get_arguments()}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


class ToolResponse(BaseModel):
    """Completion result in tool-calling mode."""

    model_config = ConfigDict(frozen=True)

    content: str
    tool_calls: list[ToolCall] = Field(default_factory=list)
    usage: Usage = Field(default_factory=Usage.zero)
    model: str
    response_id: str | None = None

    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "tool_calls": [call.to_dict() for call in self.tool_calls],
            "usage": self.usage.to_dict(),
            "model": self.model,
            "response_id": self.response_id,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


def parse_parameters(value: Any) -> JsonValue:
    """Validate tool parameters given as JSON text or a host mapping."""
    if isinstance(value, str):
        try:
            parsed = loads_dynamic(value)
        except json.JSONDecodeError as exc:
            raise LLMValidationError(f"Invalid JSON schema: {exc}", field="parameters") from exc
    elif isinstance(value, Mapping):
        parsed = to_dynamic(value)
    else:
        raise LLMValidationError("Parameters must be a string or mapping", field="parameters")
    if not isinstance(parsed, dict):
        raise LLMValidationError("Invalid JSON schema: parameters must be a JSON object", field="parameters")
    return parsed


def _require_str(data: Mapping[str, Any], key: str, kind: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise LLMValidationError(f"{kind} must have '{key}' field", field=key)
    return value
