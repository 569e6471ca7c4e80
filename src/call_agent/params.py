"""
Model configuration and tool-choice policy.

Contract
- ``ModelConfig`` is an immutable bundle passed per request. It is never
  mutated by the core; use ``copy(**overrides)`` to derive a variant.
- Fields map onto the chat-completions request verbatim. ``model_name``,
  ``tool_choice_strategy``, ``max_rounds`` and ``strict`` steer the client
  and are not sent as top-level request fields.
- Provider specific keys go under ``extra`` and pass through unchanged,
  without overriding standard keys. Examples:
    extra.logit_bias: dict
    extra.verbosity: "low" | "medium" | "high"
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, ClassVar, Mapping, Optional, Union

__all__ = ["ModelConfig", "ToolChoice", "ToolChoiceMode", "ForcedToolPolicy"]

# Fields that configure the client rather than the request body.
_CLIENT_ONLY = frozenset({"model_name", "tool_choice_strategy", "max_rounds", "strict", "extra"})


class ToolChoiceMode(str, Enum):
    NONE = "none"
    AUTO = "auto"
    REQUIRED = "required"
    FORCED = "forced"


class ForcedToolPolicy(str, Enum):
    """How long a forced or required tool choice stays in effect."""

    # Run the forced tool once and return without a follow-up request.
    SINGLE_ROUND = "single_round"
    # Force the first request only; later rounds let the model decide.
    FIRST_ROUND = "first_round"
    # Keep forcing on every request. An endpoint that honours tool_choice answers
    # every forced request with a tool call, so this ends in ToolLoopExceededError
    # after max_rounds unless the model replies with text anyway.
    EVERY_ROUND = "every_round"


@dataclass(frozen=True, slots=True)
class ToolChoice:
    """Whether tools are offered this round, and how the model may use them."""

    mode: ToolChoiceMode = ToolChoiceMode.AUTO
    tool_name: Optional[str] = None

    NONE: ClassVar["ToolChoice"]
    AUTO: ClassVar["ToolChoice"]
    REQUIRED: ClassVar["ToolChoice"]

    def __post_init__(self) -> None:
        if self.mode is ToolChoiceMode.FORCED and not self.tool_name:
            raise ValueError("A forced tool choice needs a tool name")
        if self.mode is not ToolChoiceMode.FORCED and self.tool_name is not None:
            raise ValueError(f"tool_name is only valid for forced choices, not {self.mode.value}")

    @classmethod
    def forced(cls, tool_name: str) -> "ToolChoice":
        return cls(ToolChoiceMode.FORCED, tool_name)

    @property
    def offers_tools(self) -> bool:
        return self.mode is not ToolChoiceMode.NONE

    @property
    def is_forcing(self) -> bool:
        """True for choices that make the model call a tool."""
        return self.mode in (ToolChoiceMode.REQUIRED, ToolChoiceMode.FORCED)

    def to_wire(self) -> Union[str, dict[str, Any]]:
        if self.mode is ToolChoiceMode.FORCED:
            return {"type": "function", "function": {"name": self.tool_name}}
        return self.mode.value

    def __str__(self) -> str:
        if self.mode is ToolChoiceMode.FORCED:
            return f"forced:{self.tool_name}"
        return self.mode.value


ToolChoice.NONE = ToolChoice(ToolChoiceMode.NONE)
ToolChoice.AUTO = ToolChoice(ToolChoiceMode.AUTO)
ToolChoice.REQUIRED = ToolChoice(ToolChoiceMode.REQUIRED)


@dataclass(frozen=True)
class ModelConfig:
    """Parameters for chat completion requests with utility methods."""

    model: str
    # Name recorded on assistant messages in the transcript
    model_name: Optional[str] = None

    # Sampling parameters
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    seed: Optional[int] = None

    # Tool parameters
    parallel_tool_calls: Optional[bool] = None
    # Strict schema adherence for exported tools; endpoints ignore it for parallel calls
    strict: Optional[bool] = None
    tool_choice_strategy: ForcedToolPolicy = ForcedToolPolicy.FIRST_ROUND
    max_rounds: int = 8

    # Reasoning models (o-series, gpt-5)
    reasoning_effort: Optional[str] = None

    # Provider-specific parameters
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.model:
            raise ValueError("ModelConfig.model must not be empty")
        if self.max_rounds < 1:
            raise ValueError(f"max_rounds must be at least 1, got {self.max_rounds}")
        # detached read-only view
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    def as_dict(self, exclude_none: bool = True) -> dict[str, Any]:
        """
        Convert to dictionary, optionally excluding None values.

        Args:
            exclude_none: If True, exclude fields with None values

        Returns:
            Dictionary representation of the config
        """
        result = {f.name: getattr(self, f.name) for f in fields(self)}
        result["extra"] = dict(self.extra)
        if exclude_none:
            return {k: v for k, v in result.items() if v is not None}
        return result

    def copy(self, **kwargs: Any) -> "ModelConfig":
        """Create a copy of this ModelConfig with the given fields overridden."""
        return replace(self, **kwargs)

    def request_params(self) -> dict[str, Any]:
        """Return the fields that belong in the request body, None values dropped."""
        return {
            k: v
            for k, v in self.as_dict(exclude_none=True).items()
            if k not in _CLIENT_ONLY
        }
