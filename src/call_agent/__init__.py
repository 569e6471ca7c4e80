"""
call-agent - tool-calling conversations against OpenAI-compatible chat-completions endpoints.
"""

from .adapters import ChatCompletionsAdapter, decode_arguments
from .client import CallAgentClient, Session
from .conversation import Conversation
from .errors import (
    ApiError,
    CallAgentError,
    InvalidEndpointError,
    MalformedResponseError,
    ModelConfigNotSetError,
    ToolDisabledError,
    ToolError,
    ToolLoopExceededError,
    ToolNotFoundError,
    TransportError,
)
from .factory import create_client
from .function_tool import FunctionTool, function_tool
from .orchestrator import LoopResult, LoopState, ToolLoop
from .params import ForcedToolPolicy, ModelConfig, ToolChoice, ToolChoiceMode
from .providers import Provider, get_api_key, get_base_url
from .registry import RegisteredTool, ToolListing, ToolRegistry
from .response import APIResponse, RateLimitInfo, Usage
from .transport import OpenAITransport, RawResponse, Transport
from .types import (
    AssistantMessage,
    DeveloperMessage,
    ImageContent,
    Message,
    SystemMessage,
    TextContent,
    Tool,
    ToolCallRequest,
    ToolDefinition,
    ToolOutput,
    ToolResultMessage,
    UserMessage,
)

__version__ = "0.1.0"

__all__ = [
    "CallAgentClient",
    "Session",
    "create_client",
    "Provider",
    "get_api_key",
    "get_base_url",
    "ModelConfig",
    "ToolChoice",
    "ToolChoiceMode",
    "ForcedToolPolicy",
    "Conversation",
    "ToolLoop",
    "LoopState",
    "LoopResult",
    "ToolRegistry",
    "RegisteredTool",
    "ToolListing",
    "FunctionTool",
    "function_tool",
    "ChatCompletionsAdapter",
    "decode_arguments",
    "Transport",
    "OpenAITransport",
    "RawResponse",
    "APIResponse",
    "RateLimitInfo",
    "Usage",
    "SystemMessage",
    "DeveloperMessage",
    "UserMessage",
    "AssistantMessage",
    "ToolResultMessage",
    "TextContent",
    "ImageContent",
    "Message",
    "Tool",
    "ToolCallRequest",
    "ToolDefinition",
    "ToolOutput",
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
]
