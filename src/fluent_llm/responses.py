"""Host-facing response types for plain and structured completions."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, JsonValue, NonNegativeInt

from fluent_llm.convert import from_dynamic
from fluent_llm.types import TokenUsage


class Usage(BaseModel):
    """Token usage snapshot; never absent on a response."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: NonNegativeInt = 0
    output_tokens: NonNegativeInt = 0
    total_tokens: NonNegativeInt = 0

    @classmethod
    def zero(cls) -> Usage:
        return cls()

    @classmethod
    def from_token_usage(cls, usage: TokenUsage | None) -> Usage:
        """Copy provider counts verbatim; a missing report becomes all zeros."""
        if usage is None:
            return cls.zero()
        return cls(
            prompt_tokens=usage.prompt_tokens,
            output_tokens=usage.output_tokens,
            total_tokens=usage.total_tokens,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class Response(BaseModel):
    """Result of a plain chat completion."""

    model_config = ConfigDict(frozen=True)

    content: str
    usage: Usage
    model: str
    finish_reason: str = "stop"

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "usage": self.usage.to_dict(),
            "model": self.model,
            "finish_reason": self.finish_reason,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)


class StructuredResponse(BaseModel):
    """Result of a schema-constrained completion.

    ``structured`` holds the decoded payload as a dynamic value; use
    :meth:`get_structured` for a fresh host copy that can be mutated freely.
    """

    model_config = ConfigDict(frozen=True)

    content: str
    structured: JsonValue
    usage: Usage
    model: str

    def get_structured(self) -> Any:
        return from_dynamic(self.structured)

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content,
            "structured": self.get_structured(),
            "usage": self.usage.to_dict(),
            "model": self.model,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)
