"""
Provider-neutral dataclasses for client-side tool use.

Everything wire-specific lives in the adapters.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

__all__ = ["ToolCallRequest", "ToolDefinition", "ToolOutput", "Tool"]


@dataclass(frozen=True, slots=True)
class ToolCallRequest:
    """A model-agnostic request emitted by the LLM to call a local tool."""
    id: str
    name: str
    arguments: Any = field(default_factory=dict)
    # Undecoded arguments as received, kept so the call re-serializes verbatim.
    raw_arguments: str | None = None


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """Schema definition for a tool, as offered to the model."""
    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ToolOutput:
    """Outcome of one tool execution: an ok payload or an error string."""
    content: str
    is_error: bool = False

    @classmethod
    def ok(cls, content: str) -> "ToolOutput":
        return cls(content=content)

    @classmethod
    def error(cls, message: str) -> "ToolOutput":
        return cls(content=message, is_error=True)


@runtime_checkable
class Tool(Protocol):
    """Protocol that every registered tool must satisfy."""

    @property
    def name(self) -> str:
        """Stable, unique name the model uses to call this tool."""
        ...

    @property
    def description(self) -> str:
        ...

    @property
    def parameters(self) -> dict[str, Any]:
        """JSON Schema describing the accepted arguments."""
        ...

    def execute(self, arguments: Any) -> ToolOutput | str:
        """
        Run the tool.

        Failures are reported as ``ToolOutput.error(...)`` rather than raised.
        A plain ``str`` return value is treated as a successful output.
        """
        ...
