from __future__ import annotations

import logging

from openai import AsyncOpenAI

from call_agent.client import CallAgentClient
from call_agent.params import ModelConfig

from .providers import Provider, get_api_key, get_base_url


def create_client(
    provider: Provider,
    model_config: ModelConfig | None = None,
    *,
    api_key: str | None = None,
    endpoint: str | None = None,
    client: AsyncOpenAI | None = None,
    logger: logging.Logger | None = None,
    **client_kwargs: object,
) -> CallAgentClient:
    """
    Factory for a CallAgentClient pointed at a known provider.

    Args:
        provider: Which provider to use (OPENAI, GEMINI, OPENROUTER).
        model_config: Default model configuration for sessions, e.g.
            ``ModelConfig(model="gpt-4o-mini")``. Can also be set later.
        api_key: Overrides automatic lookup; if omitted, pulled from env.
        endpoint: Overrides the provider's default base URL.
        client: Optional pre-configured AsyncOpenAI instance to use.
            If given, ``api_key`` and ``endpoint`` are ignored.
        logger: Optional custom logger.
        **client_kwargs: Any extra args to pass through (timeout, max_retries, concurrent_tools).
    """
    if not isinstance(provider, Provider):
        try:
            provider = Provider(provider)
        except ValueError as exc:
            raise ValueError(f"Unsupported provider: {provider}") from exc

    if client is not None:  # use caller-supplied client verbatim
        client_kwargs.pop("timeout", None)
        client_kwargs.pop("max_retries", None)
        return CallAgentClient.from_client(
            client, model_config=model_config, logger=logger, **client_kwargs
        )

    key = api_key or get_api_key(provider)
    return CallAgentClient(
        endpoint or get_base_url(provider),
        key,
        model_config=model_config,
        logger=logger,
        **client_kwargs,
    )
