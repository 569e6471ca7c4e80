"""Pure transformation adapters for chat-completion endpoints."""

from .openai import ChatCompletionsAdapter, decode_arguments

__all__ = [
    "ChatCompletionsAdapter",
    "decode_arguments",
]
