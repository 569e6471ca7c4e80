from .message import (
    AssistantMessage,
    Content,
    DeveloperMessage,
    ImageContent,
    Message,
    SystemMessage,
    TextContent,
    ToolResultMessage,
    UserMessage,
)
from .tool import Tool, ToolCallRequest, ToolDefinition, ToolOutput

__all__ = [
    "AssistantMessage",
    "Content",
    "DeveloperMessage",
    "ImageContent",
    "Message",
    "SystemMessage",
    "TextContent",
    "ToolResultMessage",
    "UserMessage",
    "Tool",
    "ToolCallRequest",
    "ToolDefinition",
    "ToolOutput",
]
