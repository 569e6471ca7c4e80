"""
Error hierarchy for call-agent.

Transport and endpoint failures are raised to the caller. Tool-level failures
are never raised out of the tool loop; they are turned into tool results so the
model can react to them on the next round.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Final, Optional, Type

import openai

if TYPE_CHECKING:
    from call_agent.response import RateLimitInfo

__all__: tuple[str, ...] = (
    "CallAgentError",
    "InvalidEndpointError",
    "ModelConfigNotSetError",
    "TransportError",
    "MalformedResponseError",
    "ApiError",
    "ToolError",
    "ToolNotFoundError",
    "ToolDisabledError",
    "ToolLoopExceededError",
    "classify_error",
)


class CallAgentError(RuntimeError):
    """Base class for every error raised by call-agent.

    Attributes:
        original_exc: The underlying exception, if this error wraps one.
    """

    original_exc: Optional[BaseException]

    def __init__(
        self, message: str, original_exc: Optional[BaseException] = None
    ) -> None:
        super().__init__(message)
        self.original_exc = original_exc
        if original_exc is not None:
            self.__cause__ = original_exc


class InvalidEndpointError(CallAgentError, ValueError):
    """The endpoint is not an http(s) URL."""


class ModelConfigNotSetError(CallAgentError):
    """No model configuration was passed and the client has no default."""


class TransportError(CallAgentError):
    """Network or connection level failure. The same call is safe to retry."""


class MalformedResponseError(CallAgentError):
    """The endpoint answered with a body missing required fields."""


class ApiError(CallAgentError):
    """The endpoint reported an error payload."""

    def __init__(
        self,
        code: Any,
        message: str,
        *,
        error_type: Optional[str] = None,
        status_code: Optional[int] = None,
        rate_limit: Optional["RateLimitInfo"] = None,
        original_exc: Optional[BaseException] = None,
    ) -> None:
        super().__init__(f"API error ({code}): {message}", original_exc)
        self.code = code
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        self.rate_limit = rate_limit


class ToolError(CallAgentError):
    """Base class for registry lookups that fail."""

    def __init__(self, tool_name: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Tool error: {tool_name}")
        self.tool_name = tool_name


class ToolNotFoundError(ToolError):
    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"Tool not found: {tool_name}")


class ToolDisabledError(ToolError):
    def __init__(self, tool_name: str) -> None:
        super().__init__(tool_name, f"Tool is disabled: {tool_name}")


class ToolLoopExceededError(CallAgentError):
    """The model kept requesting tools past the configured round limit."""

    def __init__(self, rounds: int) -> None:
        super().__init__(f"Tool loop did not finish within {rounds} round(s)")
        self.rounds = rounds


CONN_ERRORS: Final[tuple[Type[BaseException], ...]] = (
    openai.APIConnectionError,
    TimeoutError,
    ConnectionError,
)


def classify_error(
    exc: BaseException,
    logger: Optional[logging.Logger] = None,
) -> CallAgentError:
    """Wrap an SDK or network exception in the matching CallAgentError."""
    log = logger or logging.getLogger("call_agent.errors")

    if isinstance(exc, CallAgentError):
        return exc

    if isinstance(exc, CONN_ERRORS):
        wrapped: CallAgentError = TransportError(
            f"Connection problem - unable to reach the endpoint: {exc}", exc
        )
    elif isinstance(exc, openai.APIStatusError):
        body = exc.body if isinstance(exc.body, dict) else {}
        wrapped = ApiError(
            body.get("code") or exc.status_code,
            body.get("message") or str(exc),
            error_type=body.get("type"),
            status_code=exc.status_code,
            original_exc=exc,
        )
    elif isinstance(exc, openai.APIError):
        wrapped = ApiError(
            getattr(exc, "code", None), exc.message, original_exc=exc
        )
    else:
        wrapped = CallAgentError(f"{exc.__class__.__name__}: {exc}", exc)

    log.warning("Wrapping endpoint exception: %s", wrapped)
    return wrapped
