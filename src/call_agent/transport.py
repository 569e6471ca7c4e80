"""
Transports deliver a request payload to the endpoint and hand back the raw reply.

The transport is the only place where a tool loop waits on network I/O.
Retry policy belongs here, not in the loop: ``OpenAITransport`` relies on the
SDK's own ``max_retries``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, Self

import openai
from openai import AsyncOpenAI

from call_agent.errors import InvalidEndpointError, MalformedResponseError, classify_error

__all__ = ["Transport", "RawResponse", "OpenAITransport", "normalize_endpoint"]

# Keyword arguments accepted by ``chat.completions.create``; anything else goes to extra_body.
_CREATE_KEYS = frozenset(
    {
        "model",
        "messages",
        "tools",
        "tool_choice",
        "temperature",
        "max_tokens",
        "max_completion_tokens",
        "top_p",
        "presence_penalty",
        "frequency_penalty",
        "seed",
        "parallel_tool_calls",
        "reasoning_effort",
        "stop",
        "user",
        "response_format",
        "logit_bias",
    }
)


@dataclass
class RawResponse:
    status_code: int
    body: Any
    headers: Mapping[str, str] = field(default_factory=dict)


class Transport(Protocol):
    """Protocol for sending one chat-completion request."""

    async def send(self, payload: dict[str, Any]) -> RawResponse:
        """Send ``payload`` and return the undecoded reply.

        Raises:
            TransportError: On connection level failures.
            MalformedResponseError: If the reply body is not JSON.
        """
        ...

    async def aclose(self) -> None:
        ...


def normalize_endpoint(endpoint: str) -> str:
    """Strip trailing slashes and require an http(s) URL."""
    endpoint = endpoint.strip().rstrip("/")
    if not endpoint.startswith(("http://", "https://")):
        raise InvalidEndpointError(f"Invalid endpoint: {endpoint!r}")
    return endpoint


class OpenAITransport:
    """
    Transport backed by ``openai.AsyncOpenAI``.

    Use ``OpenAITransport.from_client`` when you already have an ``AsyncOpenAI`` instance.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str] = None,
        *,
        timeout: float = 60.0,
        max_retries: int = 2,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.endpoint = normalize_endpoint(endpoint)
        self.logger = logger or logging.getLogger(__name__)
        # An empty key is sent as "Bearer " for endpoints that need no credential.
        self._client = AsyncOpenAI(
            api_key=api_key or "",
            base_url=self.endpoint,
            timeout=timeout,
            max_retries=max_retries,
        )

    @classmethod
    def from_client(
        cls, client: AsyncOpenAI, *, logger: Optional[logging.Logger] = None
    ) -> Self:
        """Wrap an already-configured ``AsyncOpenAI`` client."""
        if not isinstance(client, AsyncOpenAI):
            raise TypeError(
                f"OpenAITransport.from_client expects AsyncOpenAI; got {type(client).__name__}"
            )
        self = cls.__new__(cls)  # bypass __init__
        self.endpoint = str(client.base_url).rstrip("/")
        self.logger = logger or logging.getLogger(__name__)
        self._client = client
        return self

    async def send(self, payload: dict[str, Any]) -> RawResponse:
        args = {k: v for k, v in payload.items() if k in _CREATE_KEYS}
        extra_body = {k: v for k, v in payload.items() if k not in _CREATE_KEYS}
        if extra_body:
            args["extra_body"] = extra_body

        try:
            raw = await self._client.chat.completions.with_raw_response.create(**args)
        except openai.APIStatusError as exc:
            # Let the adapter report the endpoint's error payload with its headers.
            error = exc.body if isinstance(exc.body, dict) else {
                "code": exc.status_code,
                "message": exc.message,
            }
            return RawResponse(
                status_code=exc.status_code,
                body={"error": error},
                headers=dict(exc.response.headers),
            )
        except openai.APIConnectionError as exc:
            raise classify_error(exc, self.logger) from exc

        try:
            body = raw.http_response.json()
        except ValueError as exc:
            raise MalformedResponseError(
                f"Response body is not valid JSON (status {raw.status_code})", exc
            ) from exc

        return RawResponse(
            status_code=raw.status_code,
            body=body,
            headers=dict(raw.headers),
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client. Safe to call multiple times."""
        await self._client.close()
