from __future__ import annotations

import argparse
import asyncio
import logging

from call_agent import ModelConfig, Provider, UserMessage, create_client, function_tool

logger = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


@function_tool
def text_length(text: str) -> dict:
    """Returns the length of the input text."""
    return {"length": len(text)}


@function_tool(
    parameters={
        "type": "object",
        "properties": {
            "location": {
                "type": "string",
                "description": "City and state, e.g. San Francisco, CA",
            },
            "unit": {"type": "string", "enum": ["celsius", "fahrenheit"]},
        },
        "required": ["location"],
    }
)
def get_weather(location: str, unit: str = "celsius") -> str:
    """Get the current weather in a given location"""
    # imagine we call a real weather API here
    return f"15 °C, mostly cloudy in {location}"


async def tool_roundtrip(provider: Provider, model: str) -> None:
    """
    Let the model decide on tools, then force one.

    1) Offer both tools; the model calls what it needs and answers
    2) Force ``text_length`` on a follow-up question
    3) Print the whole transcript
    """
    config = ModelConfig(model=model, model_name="Assistant", temperature=0.2)
    async with create_client(provider, config) as client:
        client.register_tool(text_length)
        client.register_tool(get_weather)

        session = client.create_session(
            UserMessage("What's the weather in San Francisco?", name="User")
        )
        result = await session.generate_can_use_tool()
        logger.info(
            "%s says: %s (%d round(s), %d tokens)",
            provider.value.capitalize(),
            result.reply,
            result.rounds,
            result.usage.total_tokens,
        )

        session.add(UserMessage("How many characters are in 'San Francisco'?", name="User"))
        result = await session.generate_use_tool("text_length")
        logger.info("Forced tool answer: %s", result.reply)

        print(session.render())


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--provider",
        choices=[p.value for p in Provider],
        default=Provider.OPENAI.value,
    )
    parser.add_argument(
        "--model",
        default="gpt-4.1-nano",  # "gemini-2.0-flash-lite", "openai/gpt-4o-mini"
    )
    args = parser.parse_args()

    asyncio.run(tool_roundtrip(Provider(args.provider), args.model))
