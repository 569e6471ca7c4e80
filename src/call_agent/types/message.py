"""Conversation turns and their content parts."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from call_agent.types.tool import ToolCallRequest

__all__ = [
    "TextContent",
    "ImageContent",
    "Content",
    "SystemMessage",
    "DeveloperMessage",
    "UserMessage",
    "AssistantMessage",
    "ToolResultMessage",
    "Message",
]


@dataclass(frozen=True, slots=True)
class TextContent:
    text: str


@dataclass(frozen=True, slots=True)
class ImageContent:
    """An image given by URL or by a ``data:image/...;base64,`` URI."""

    url: str
    # "low", "high" or "auto" for OpenAI-compatible endpoints
    detail: Optional[str] = None


Content = Union[TextContent, ImageContent]


def _content_lines(content: Iterable[Content]) -> list[str]:
    lines = []
    for part in content:
        match part:
            case TextContent(text=text):
                lines.append(f"    {text}")
            case ImageContent(url=url):
                lines.append(f"    [Image URL: {url}]")
            case _:
                raise TypeError(f"Unknown content part: {type(part).__name__}")
    return lines


@dataclass(frozen=True, slots=True)
class SystemMessage:
    text: str
    name: Optional[str] = None

    def __str__(self) -> str:
        return f"System: {self.name or 'System'}\n    {self.text}"


@dataclass(frozen=True, slots=True)
class DeveloperMessage:
    """Developer instructions; treated as a system message by older models."""

    text: str
    name: Optional[str] = None

    def __str__(self) -> str:
        return f"Developer: {self.name or 'Developer'}\n    {self.text}"


@dataclass(frozen=True, slots=True)
class UserMessage:
    content: tuple[Content, ...]
    name: Optional[str] = None

    def __init__(
        self,
        content: Union[str, Content, Iterable[Content]],
        name: Optional[str] = None,
    ) -> None:
        if isinstance(content, str):
            parts: tuple[Content, ...] = (TextContent(content),)
        elif isinstance(content, (TextContent, ImageContent)):
            parts = (content,)
        else:
            parts = tuple(content)
        if not parts:
            raise ValueError("UserMessage content must not be empty")
        object.__setattr__(self, "content", parts)
        object.__setattr__(self, "name", name)

    def __str__(self) -> str:
        header = f"User: {self.name or 'Anonymous'}"
        return "\n".join([header, *_content_lines(self.content)])


@dataclass(frozen=True, slots=True)
class AssistantMessage:
    text: Optional[str] = None
    tool_calls: tuple[ToolCallRequest, ...] = ()
    name: Optional[str] = None
    refusal: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "tool_calls", tuple(self.tool_calls))
        if not self.text and not self.tool_calls:
            raise ValueError("AssistantMessage needs text or at least one tool call")
        ids = [call.id for call in self.tool_calls]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate tool call ids in assistant message: {ids}")

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def __str__(self) -> str:
        lines = [f"Assistant: {self.name or 'Assistant'}"]
        if self.text:
            lines.append(f"    {self.text}")
        for call in self.tool_calls:
            args = json.dumps(call.arguments, ensure_ascii=False, default=str)
            lines.append(f"    Tool Call: {call.name}({args}) [{call.id}]")
        return "\n".join(lines)


@dataclass(frozen=True, slots=True)
class ToolResultMessage:
    tool_call_id: str
    tool_name: str
    content: str
    is_error: bool = False

    @property
    def wire_content(self) -> str:
        # Decoding treats any tool content starting with "Error: " as an error result,
        # so a successful result carrying that prefix comes back with is_error=True.
        return f"Error: {self.content}" if self.is_error else self.content

    def __str__(self) -> str:
        return f"Tool: {self.tool_name} - {self.tool_call_id}\n    {self.wire_content}"


Message = Union[
    SystemMessage,
    DeveloperMessage,
    UserMessage,
    AssistantMessage,
    ToolResultMessage,
]

MESSAGE_TYPES: tuple[type, ...] = (
    SystemMessage,
    DeveloperMessage,
    UserMessage,
    AssistantMessage,
    ToolResultMessage,
)
