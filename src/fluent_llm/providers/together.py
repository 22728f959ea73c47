"""Together AI provider implementation."""

from __future__ import annotations

from typing import Any

import httpx

from fluent_llm.providers.openai import OpenAIProvider
from fluent_llm.types import CompletionRequest

_DEFAULT_BASE_URL = "https://api.together.xyz"


class TogetherProvider(OpenAIProvider):
    """Together chat completions; OpenAI wire format without structured output."""

    name = "together"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str | None = None,
        timeout_s: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            api_key=api_key,
            base_url=base_url or _DEFAULT_BASE_URL,
            timeout_s=timeout_s,
            transport=transport,
        )

    def supports_structured_output(self, model: str) -> bool:
        return False

    def _build_payload(self, req: CompletionRequest) -> dict[str, Any]:
        payload = super()._build_payload(req)
        payload["top_k"] = req.top_k
        return payload
