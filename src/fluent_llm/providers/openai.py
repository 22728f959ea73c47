"""OpenAI provider implementation."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from fluent_llm.convert import loads_dynamic
from fluent_llm.errors import LLMValidationError, StructuredOutputFailure, ToolCallFailure
from fluent_llm.providers.base import HttpProvider
from fluent_llm.types import (
    CanonicalMessage,
    CompletionRequest,
    CompletionResult,
    FunctionDefinition,
    ProviderToolCall,
    StructuredOutputRequest,
    TokenUsage,
)

_DEFAULT_BASE_URL = "https://api.openai.com"
_CHAT_PATH = "/v1/chat/completions"
_STRUCTURED_MODEL_PREFIXES = ("gpt-4o", "gpt-4.1", "gpt-5", "o1", "o3", "o4")


class OpenAIProvider(HttpProvider):
    """Minimal async wrapper for the OpenAI Chat Completions API."""

    name = "openai"
    _logger = logging.getLogger(__name__)

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
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout_s=timeout_s,
            transport=transport,
        )

    def supports_structured_output(self, model: str) -> bool:
        return model.startswith(_STRUCTURED_MODEL_PREFIXES)

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        """Call Chat Completions and normalize the result."""
        payload = self._build_payload(request)
        data = await self._post_json(_CHAT_PATH, payload)

        choices = data.get("choices") or []
        choice = choices[0] if choices else {}
        message = choice.get("message") or {}
        content = message.get("content") or ""

        structured = None
        if request.structured_output is not None and content:
            structured = self._parse_structured(content)

        return CompletionResult(
            content=content,
            usage=self._extract_usage(data.get("usage")),
            finish_reason=choice.get("finish_reason"),
            structured_output=structured,
            tool_calls=self._extract_tool_calls(message.get("tool_calls")),
            response_id=data.get("id"),
        )

    def _build_payload(self, req: CompletionRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": req.model,
            "messages": [self._serialize_message(m) for m in req.messages],
            "temperature": req.temperature,
            "top_p": req.top_p,
            "max_tokens": req.max_tokens,
        }
        if req.frequency_penalty:
            payload["frequency_penalty"] = req.frequency_penalty
        if req.presence_penalty:
            payload["presence_penalty"] = req.presence_penalty

        if req.tools:
            payload.update(self._serialize_tools(req.tools))
        if req.structured_output is not None:
            payload["response_format"] = self._serialize_response_format(req.structured_output)
        return payload

    @staticmethod
    def _serialize_message(message: CanonicalMessage) -> dict[str, Any]:
        if message.role == "tool":
            return {"role": "tool", "tool_call_id": message.tool_call_id, "content": message.content}
        payload: dict[str, Any] = {"role": message.role, "content": message.content}
        if message.role == "assistant" and isinstance(message.tool_calls, list) and message.tool_calls:
            payload["tool_calls"] = [
                {
                    "id": call.get("id"),
                    "type": "function",
                    "function": {
                        "name": call.get("name"),
                        "arguments": json.dumps(call.get("arguments")),
                    },
                }
                for call in message.tool_calls
                if isinstance(call, dict)
            ]
        return payload

    @staticmethod
    def _serialize_tools(tools: list[FunctionDefinition]) -> dict[str, Any]:
        tool_payload = [
            {
                "type": "function",
                "function": {
                    "name": t.name,
                    "description": t.description,
                    "parameters": t.parameters,
                },
            }
            for t in tools
        ]
        return {"tools": tool_payload, "tool_choice": "auto"}

    @staticmethod
    def _serialize_response_format(structured: StructuredOutputRequest) -> dict[str, Any]:
        if structured.format == "json_schema":
            return {
                "type": "json_schema",
                "json_schema": {"name": "response", "schema": structured.json_schema},
            }
        return {"type": "json_object"}

    def _parse_structured(self, content: str) -> Any:
        try:
            return loads_dynamic(content)
        except (json.JSONDecodeError, LLMValidationError) as exc:
            raise StructuredOutputFailure(self.name, f"response is not valid JSON: {exc}") from exc

    def _extract_tool_calls(self, raw_calls: Any) -> list[ProviderToolCall] | None:
        if not raw_calls:
            return None
        calls: list[ProviderToolCall] = []
        for raw in raw_calls:
            function = raw.get("function") or {}
            arguments = function.get("arguments") or "{}"
            try:
                parsed = json.loads(arguments) if isinstance(arguments, str) else arguments
            except json.JSONDecodeError as exc:
                raise ToolCallFailure(
                    self.name, f"arguments for {function.get('name')!r} are not valid JSON: {exc}"
                ) from exc
            calls.append(ProviderToolCall(id=raw.get("id", ""), name=function.get("name", ""), arguments=parsed))
        return calls

    def _extract_usage(self, usage: Any) -> TokenUsage | None:
        if not usage:
            self._logger.debug("Provider %s returned no usage block", self.name)
            return None
        completion_details = usage.get("completion_tokens_details") or {}
        prompt_details = usage.get("prompt_tokens_details") or {}
        return TokenUsage(
            prompt_tokens=usage.get("prompt_tokens", 0),
            output_tokens=usage.get("completion_tokens", 0),
            total_tokens=usage.get("total_tokens", 0),
            reasoning_tokens=completion_details.get("reasoning_tokens") or 0,
            cached_tokens=prompt_details.get("cached_tokens") or 0,
        )
