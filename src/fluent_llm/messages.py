"""Conversation messages and ordered message sequences."""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from fluent_llm.convert import dumps_dynamic, loads_dynamic, to_dynamic
from fluent_llm.errors import LLMValidationError
from fluent_llm.tools import ToolCall, ToolResponse
from fluent_llm.types import CanonicalMessage

_ROLES = ("user", "assistant", "system", "tool")


class Message(BaseModel):
    """Single conversation turn.

    ``tool_calls`` holds the JSON text of the assistant's tool calls when the
    message replays an earlier tool-calling response. The role is checked
    when the message is converted with :meth:`to_canonical`, since field maps
    may come from untrusted sources.
    """

    model_config = ConfigDict(frozen=True)

    role: str
    content: str
    tool_call_id: str | None = None
    id: str | None = None
    tool_calls: str | None = None

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: str) -> Message:
        return cls(role="assistant", content=content)

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role="system", content=content)

    @classmethod
    def tool(cls, tool_call_id: str, content: str) -> Message:
        return cls(role="tool", content=content, tool_call_id=tool_call_id)

    @classmethod
    def from_fields(cls, data: Mapping[str, Any]) -> Message:
        """Build a message from a field map; ``role`` and ``content`` are required."""
        if not isinstance(data, Mapping):
            raise LLMValidationError("Message must be a mapping")
        fields: dict[str, Any] = {}
        for key in ("role", "content"):
            value = data.get(key)
            if not isinstance(value, str):
                raise LLMValidationError(f"Message must have '{key}' field", field=key)
            fields[key] = value
        for key in ("tool_call_id", "id"):
            value = data.get(key)
            if isinstance(value, str):
                fields[key] = value
        tool_calls = data.get("tool_calls")
        if isinstance(tool_calls, str):
            fields["tool_calls"] = tool_calls
        elif isinstance(tool_calls, (list, tuple, Mapping)):
            fields["tool_calls"] = dumps_dynamic(to_dynamic(tool_calls))
        return cls(**fields)

    @classmethod
    def from_tool_response(cls, response: ToolResponse) -> Message:
        """Fold a tool-calling response into one assistant message for replay.

        A response without tool calls leaves ``tool_calls`` unset.
        """
        tool_calls = None
        if response.has_tool_calls():
            tool_calls = dumps_dynamic(
                [
                    {"id": call.id, "name": call.name, "arguments": call.arguments}
                    for call in response.tool_calls
                ]
            )
        return cls(
            role="assistant",
            content=response.content,
            id=response.response_id,
            tool_calls=tool_calls,
        )

    def tool_call_list(self) -> list[ToolCall]:
        """Return the replayed tool calls as ``ToolCall`` objects."""
        calls = self._parsed_tool_calls()
        if not isinstance(calls, list):
            return []
        try:
            return [ToolCall.model_validate(call) for call in calls]
        except ValueError as exc:
            raise LLMValidationError(f"Invalid tool_calls entry: {exc}", field="tool_calls") from exc

    def to_canonical(self) -> CanonicalMessage:
        if self.role not in _ROLES:
            raise LLMValidationError(f"Invalid message role: {self.role}", field="role")
        if self.role == "tool":
            if not self.tool_call_id:
                raise LLMValidationError("Tool message must have tool_call_id", field="tool_call_id")
            return CanonicalMessage(role="tool", content=self.content, tool_call_id=self.tool_call_id)
        if self.role == "assistant":
            return CanonicalMessage(
                role="assistant",
                content=self.content,
                id=self.id,
                tool_calls=self._parsed_tool_calls(),
            )
        return CanonicalMessage(role=self.role, content=self.content)

    def to_dict(self) -> dict[str, Any]:
        return {
            "role": self.role,
            "content": self.content,
            "tool_call_id": self.tool_call_id,
            "id": self.id,
            "tool_calls": self.tool_calls,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    def _parsed_tool_calls(self) -> Any:
        if self.tool_calls is None:
            return None
        try:
            return loads_dynamic(self.tool_calls)
        except json.JSONDecodeError as exc:
            raise LLMValidationError(f"Invalid tool_calls JSON: {exc}", field="tool_calls") from exc


class MessageSequence:
    """Ordered, mutable list of messages; insertion order is conversation order."""

    def __init__(self, messages: Iterable[Message | Mapping[str, Any]] | None = None) -> None:
        self._messages: list[Message] = []
        if messages is not None:
            self._messages = _build_all(messages)

    @classmethod
    def from_list(cls, messages: Iterable[Message | Mapping[str, Any]]) -> MessageSequence:
        return cls(messages)

    @classmethod
    def from_json(cls, text: str) -> MessageSequence:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise LLMValidationError(f"Invalid messages JSON: {exc}") from exc
        if not isinstance(data, list):
            raise LLMValidationError("Messages JSON must be an array")
        return cls(data)

    def add(self, message: Message) -> MessageSequence:
        if not isinstance(message, Message):
            raise LLMValidationError("Only Message instances can be added")
        self._messages.append(message)
        return self

    def add_user(self, content: str) -> MessageSequence:
        return self.add(Message.user(content))

    def add_assistant(self, content: str) -> MessageSequence:
        return self.add(Message.assistant(content))

    def add_system(self, content: str) -> MessageSequence:
        return self.add(Message.system(content))

    def add_tool_result(self, tool_call_id: str, content: str) -> MessageSequence:
        return self.add(Message.tool(tool_call_id, content))

    def extend(self, messages: Iterable[Message | Mapping[str, Any]]) -> MessageSequence:
        # validate everything first so a bad entry leaves the sequence untouched
        self._messages.extend(_build_all(messages))
        return self

    def get(self, index: int) -> Message | None:
        if 0 <= index < len(self._messages):
            return self._messages[index]
        return None

    def all(self) -> list[Message]:
        return list(self._messages)

    def count(self) -> int:
        return len(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._messages))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MessageSequence):
            return NotImplemented
        return self._messages == other._messages

    def __repr__(self) -> str:
        return f"MessageSequence({self._messages!r})"

    def to_list(self) -> list[dict[str, Any]]:
        return [message.to_dict() for message in self._messages]

    def to_json(self) -> str:
        return json.dumps(self.to_list(), ensure_ascii=False)

    def to_canonical(self) -> list[CanonicalMessage]:
        return [message.to_canonical() for message in self._messages]


def coerce_messages(messages: Any) -> list[CanonicalMessage]:
    """Convert any accepted message container into canonical messages."""
    if isinstance(messages, MessageSequence):
        return messages.to_canonical()
    if isinstance(messages, Message):
        return [messages.to_canonical()]
    if isinstance(messages, Iterable) and not isinstance(messages, (str, bytes, Mapping)):
        canonical: list[CanonicalMessage] = []
        for index, entry in enumerate(messages):
            try:
                canonical.append(_build_one(entry).to_canonical())
            except LLMValidationError as exc:
                raise LLMValidationError(str(exc), field=exc.field, index=index) from exc
        return canonical
    raise LLMValidationError("Messages must be an iterable of messages or a MessageSequence")


def _build_all(messages: Iterable[Message | Mapping[str, Any]]) -> list[Message]:
    built: list[Message] = []
    for index, entry in enumerate(messages):
        try:
            built.append(_build_one(entry))
        except LLMValidationError as exc:
            raise LLMValidationError(str(exc), field=exc.field, index=index) from exc
    return built


def _build_one(entry: Message | Mapping[str, Any]) -> Message:
    if isinstance(entry, Message):
        return entry
    if isinstance(entry, Mapping):
        return Message.from_fields(entry)
    raise LLMValidationError("Message must be a Message or a mapping")
