"""Anthropic provider implementation."""

from __future__ import annotations

from typing import Any

import httpx

from fluent_llm.providers.base import HttpProvider
from fluent_llm.types import (
    CanonicalMessage,
    CompletionRequest,
    CompletionResult,
    FunctionDefinition,
    ProviderToolCall,
    TokenUsage,
)

_DEFAULT_BASE_URL = "https://api.anthropic.com"
_MESSAGES_PATH = "/v1/messages"
_API_VERSION = "2023-06-01"


class AnthropicProvider(HttpProvider):
    """Minimal async wrapper for the Anthropic Messages API."""

    name = "anthropic"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str | None = None,
        timeout_s: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            base_url=base_url or _DEFAULT_BASE_URL,
            headers={
                "x-api-key": api_key,
                "anthropic-version": _API_VERSION,
                "content-type": "application/json",
            },
            timeout_s=timeout_s,
            transport=transport,
        )

    def supports_structured_output(self, model: str) -> bool:
        return False

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        payload = self._build_payload(request)
        data = await self._post_json(_MESSAGES_PATH, payload)

        text_parts: list[str] = []
        calls: list[ProviderToolCall] = []
        for block in data.get("content") or []:
            if block.get("type") == "text":
                text_parts.append(block.get("text", ""))
            elif block.get("type") == "tool_use":
                calls.append(
                    ProviderToolCall(id=block.get("id", ""), name=block.get("name", ""), arguments=block.get("input"))
                )

        return CompletionResult(
            content="".join(text_parts),
            usage=self._extract_usage(data.get("usage")),
            finish_reason=data.get("stop_reason"),
            tool_calls=calls or None,
            response_id=data.get("id"),
        )

    def _build_payload(self, req: CompletionRequest) -> dict[str, Any]:
        system_text, msgs = self._split_system(req.messages)

        payload: dict[str, Any] = {
            "model": req.model,
            "max_tokens": req.max_tokens,
            "messages": self._serialize_messages(msgs),
            "temperature": req.temperature,
            "top_p": req.top_p,
            "top_k": req.top_k,
        }
        if system_text:
            payload["system"] = system_text
        if req.tools:
            payload.update(self._serialize_tools(req.tools))
        return payload

    @staticmethod
    def _split_system(messages: list[CanonicalMessage]) -> tuple[str, list[CanonicalMessage]]:
        system_parts: list[str] = []
        rest: list[CanonicalMessage] = []
        for m in messages:
            if m.role == "system":
                system_parts.append(m.content)
            else:
                rest.append(m)
        return ("\n".join(system_parts), rest)

    @classmethod
    def _serialize_messages(cls, messages: list[CanonicalMessage]) -> list[dict[str, Any]]:
        serialized: list[dict[str, Any]] = []
        for message in messages:
            if message.role == "tool":
                block = {
                    "type": "tool_result",
                    "tool_use_id": message.tool_call_id,
                    "content": message.content,
                }
                # consecutive tool results travel in a single user turn
                previous = serialized[-1] if serialized else None
                if previous is not None and previous.get("_tool_results"):
                    previous["content"].append(block)
                else:
                    serialized.append({"role": "user", "content": [block], "_tool_results": True})
                continue
            entry = cls._serialize_message(message)
            # the Messages API rejects turns without content blocks
            if entry["content"]:
                serialized.append(entry)
        for entry in serialized:
            entry.pop("_tool_results", None)
        return serialized

    @staticmethod
    def _serialize_message(message: CanonicalMessage) -> dict[str, Any]:
        content: list[dict[str, Any]] = []
        if message.content:
            content.append({"type": "text", "text": message.content})
        if message.role == "assistant" and isinstance(message.tool_calls, list):
            for call in message.tool_calls:
                if isinstance(call, dict):
                    content.append(
                        {
                            "type": "tool_use",
                            "id": call.get("id"),
                            "name": call.get("name"),
                            "input": call.get("arguments") or {},
                        }
                    )
        return {"role": message.role, "content": content}

    @staticmethod
    def _serialize_tools(tools: list[FunctionDefinition]) -> dict[str, Any]:
        payload_tools = [
            {
                "name": t.name,
                "description": t.description,
                "input_schema": t.parameters,
            }
            for t in tools
        ]
        return {"tools": payload_tools, "tool_choice": {"type": "auto"}}

    @staticmethod
    def _extract_usage(usage: Any) -> TokenUsage | None:
        if not usage:
            return None
        prompt = usage.get("input_tokens", 0)
        output = usage.get("output_tokens", 0)
        return TokenUsage(
            prompt_tokens=prompt,
            output_tokens=output,
            total_tokens=prompt + output,
            cached_tokens=usage.get("cache_read_input_tokens") or 0,
        )
