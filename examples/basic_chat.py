import asyncio

from openai import AsyncOpenAI

from call_agent import (
    CallAgentClient,
    ModelConfig,
    SystemMessage,
    UserMessage,
)
from call_agent.providers import Provider, get_api_key, get_base_url


async def chat_example_default_client():
    client = CallAgentClient(
        get_base_url(Provider.OPENAI),
        get_api_key(Provider.OPENAI),
        model_config=ModelConfig(model="gpt-4.1-nano", max_tokens=1000, temperature=0.7),
    )
    session = client.create_session(
        SystemMessage("You are a helpful assistant."),
        UserMessage("What's your name?"),
    )

    result = await session.generate()
    print("OpenAI: ", result.reply)
    await client.aclose()


async def chat_example_pass_client():
    gemini_client = AsyncOpenAI(
        api_key=get_api_key(Provider.GEMINI),
        base_url=get_base_url(Provider.GEMINI),
        max_retries=3,
        timeout=10,
    )
    client = CallAgentClient.from_client(
        gemini_client, model_config=ModelConfig(model="gemini-2.0-flash-lite")
    )

    async with client:
        session = client.create_session(UserMessage("Tell me a one-line joke."))
        first = await session.generate()
        print("Gemini: ", first.reply)

        # per-call config without touching the client default
        session.add(UserMessage("Another one, shorter."))
        second = await session.generate(client.model_config.copy(temperature=1.0))
        print("Gemini: ", second.reply)


async def main():
    await chat_example_default_client()
    await chat_example_pass_client()


if __name__ == "__main__":
    asyncio.run(main())
