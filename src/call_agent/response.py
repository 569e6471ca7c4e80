from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from call_agent.types.message import AssistantMessage

__all__ = ["APIResponse", "Usage", "RateLimitInfo", "ApiErrorPayload"]

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _parse_seconds(value: Optional[str]) -> Optional[float]:
    """Parse ``"12"``, ``"1.5"``, ``"6m0s"`` or ``"20ms"`` into seconds."""
    if value is None:
        return None
    value = value.strip()
    try:
        return float(value)
    except ValueError:
        pass
    parts = _DURATION_PART.findall(value)
    if not parts or "".join(n + u for n, u in parts) != value:
        return None
    return sum(float(n) * _DURATION_UNITS[u] for n, u in parts)


@dataclass(frozen=True)
class RateLimitInfo:
    """Rate-limit metadata read from response headers. Not part of the conversation."""

    retry_after: Optional[float] = None
    limit: Optional[int] = None
    remaining: Optional[int] = None
    reset: Optional[float] = None
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_headers(cls, headers: Mapping[str, str] | None) -> "RateLimitInfo":
        lowered = {k.lower(): v for k, v in (headers or {}).items()}

        def first(*names: str) -> Optional[str]:
            for name in names:
                if name in lowered:
                    return lowered[name]
            return None

        return cls(
            retry_after=_parse_seconds(first("retry-after")),
            limit=_parse_int(first("x-ratelimit-limit", "x-ratelimit-limit-requests")),
            remaining=_parse_int(
                first("x-ratelimit-remaining", "x-ratelimit-remaining-requests")
            ),
            reset=_parse_seconds(first("x-ratelimit-reset", "x-ratelimit-reset-requests")),
            headers=dict(headers or {}),
        )


@dataclass(frozen=True)
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_wire(cls, data: Any) -> "Usage":
        if not isinstance(data, dict):
            return cls()

        def count(key: str) -> int:
            value = data.get(key)
            return int(value) if isinstance(value, (int, float)) else 0

        return cls(count("prompt_tokens"), count("completion_tokens"), count("total_tokens"))

    def __add__(self, other: "Usage") -> "Usage":
        return Usage(
            self.prompt_tokens + other.prompt_tokens,
            self.completion_tokens + other.completion_tokens,
            self.total_tokens + other.total_tokens,
        )


@dataclass(frozen=True)
class ApiErrorPayload:
    code: Any = None
    message: str = ""
    type: Optional[str] = None


@dataclass
class APIResponse:
    """Parsed chat-completion response: the assistant turn plus metadata."""

    message: AssistantMessage
    finish_reason: Optional[str] = None
    model: Optional[str] = None
    usage: Usage = field(default_factory=Usage)
    # Set when the endpoint reported an error alongside a usable choice.
    error: Optional[ApiErrorPayload] = None
    rate_limit: RateLimitInfo = field(default_factory=RateLimitInfo)
    raw: Any = None

    @property
    def content(self) -> str:
        return self.message.text or ""

    @property
    def tool_calls(self):
        return self.message.tool_calls

    @property
    def has_tool_calls(self) -> bool:
        return self.message.has_tool_calls
