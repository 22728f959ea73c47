from fluent_llm import LLM, MessageSequence, StructuredOutputError, Tool
from fluent_llm.providers import AnthropicProvider, OpenAIProvider, ProviderRegistry, TogetherProvider


def main() -> None:
    registry = ProviderRegistry(
        [
            OpenAIProvider(api_key="DUMMY"),
            AnthropicProvider(api_key="DUMMY"),
            TogetherProvider(api_key="DUMMY"),
        ]
    )
    messages = MessageSequence().add_system("Answer in JSON.").add_user("List three colors.")

    # Demonstrate capability gating (Together doesn't support structured output)
    with LLM("together:any", registry=registry) as llm:
        with llm.structured('{"type": "object"}') as builder:
            try:
                builder.complete(messages)
            except StructuredOutputError as e:
                print("Expected error:", type(e).__name__, e)

    weather = Tool(
        name="get_weather",
        description="Get the weather for a location",
        parameters={"type": "object", "properties": {"location": {"type": "string"}}},
    )
    print("Tool definition:", weather.to_json())


if __name__ == "__main__":
    main()
