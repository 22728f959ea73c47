import unittest

import httpx

from fluent_llm.errors import (
    ApiError,
    LLMConnectionError,
    LLMError,
    LLMValidationError,
    ModelNotSupportedError,
    NetworkError,
    ProviderTimeoutError,
    StructuredOutputError,
    StructuredOutputFailure,
    ToolCallError,
    ToolCallFailure,
    UnknownModelError,
    map_provider_error,
)


class ErrorMapperTests(unittest.TestCase):
    def test_connection_failures(self) -> None:
        cases = [
            (NetworkError("openai", "connection refused"), "connection refused"),
            (ApiError("openai", "rate limited", status_code=429), "API Error [openai] (429): rate limited"),
            (ProviderTimeoutError("anthropic"), "Request timeout for provider: anthropic"),
            (UnknownModelError("mystery:model"), "mystery:model"),
            (httpx.ReadTimeout("slow"), "Request timeout"),
            (httpx.ConnectError("refused"), "refused"),
        ]
        for exc, text in cases:
            with self.subTest(exc=exc):
                mapped = map_provider_error(exc)
                self.assertIsInstance(mapped, LLMConnectionError)
                self.assertIn(text, str(mapped))

    def test_model_not_supported_is_validation(self) -> None:
        mapped = map_provider_error(ModelNotSupportedError("openai", "gpt-0"))
        self.assertIsInstance(mapped, LLMValidationError)
        self.assertEqual(str(mapped), "Model 'gpt-0' not supported by provider 'openai'")

    def test_structured_and_tool_failures(self) -> None:
        self.assertIsInstance(map_provider_error(StructuredOutputFailure("openai", "bad json")), StructuredOutputError)
        self.assertIsInstance(map_provider_error(ToolCallFailure("openai", "bad args")), ToolCallError)

    def test_host_errors_pass_through(self) -> None:
        original = ToolCallError("already mapped")
        self.assertIs(map_provider_error(original), original)

    def test_unknown_shapes_become_generic(self) -> None:
        mapped = map_provider_error(KeyError("choices"))
        self.assertIs(type(mapped), LLMError)
        self.assertEqual(str(mapped), "Provider error: KeyError('choices')")

    def test_validation_error_carries_index(self) -> None:
        exc = LLMValidationError("Message must have 'role' field", field="role", index=3)
        self.assertEqual((exc.field, exc.index), ("role", 3))
        self.assertTrue(str(exc).startswith("Message at index 3:"))


if __name__ == "__main__":
    unittest.main()
