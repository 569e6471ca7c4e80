"""
Client surface: tool management, default model configuration and sessions.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional, Self, Union

from openai import AsyncOpenAI

from call_agent.adapters.openai import ChatCompletionsAdapter
from call_agent.conversation import Conversation
from call_agent.errors import ModelConfigNotSetError
from call_agent.orchestrator import LoopResult, ToolLoop
from call_agent.params import ModelConfig, ToolChoice
from call_agent.registry import RegisteredTool, ToolListing, ToolRegistry
from call_agent.transport import OpenAITransport, Transport, normalize_endpoint
from call_agent.types.message import Message
from call_agent.types.tool import Tool, ToolDefinition

__all__ = ["CallAgentClient", "Session"]


class CallAgentClient:
    """
    Client for an OpenAI-compatible chat-completions endpoint with local tools.

    Tools registered here are shared by every session the client creates.
    Use ``CallAgentClient.from_client`` when you already have an ``AsyncOpenAI`` instance.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str] = None,
        *,
        model_config: Optional[ModelConfig] = None,
        transport: Optional[Transport] = None,
        adapter: Optional[ChatCompletionsAdapter] = None,
        concurrent_tools: bool = True,
        timeout: float = 60.0,
        max_retries: int = 2,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__
        self.endpoint = normalize_endpoint(endpoint)
        self.transport: Transport = transport or OpenAITransport(
            self.endpoint,
            api_key,
            timeout=timeout,
            max_retries=max_retries,
            logger=self.logger,
        )
        self.adapter = adapter or ChatCompletionsAdapter(logger=self.logger)
        self.registry = ToolRegistry()
        self.concurrent_tools = concurrent_tools
        self._model_config = model_config

    @classmethod
    def from_client(
        cls,
        client: AsyncOpenAI,
        *,
        model_config: Optional[ModelConfig] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
        **kwargs,
    ) -> Self:
        """Build a ``CallAgentClient`` around an already-configured ``AsyncOpenAI`` client."""
        transport = OpenAITransport.from_client(client, logger=logger)
        return cls(
            transport.endpoint,
            model_config=model_config,
            transport=transport,
            logger=logger,
            name=name,
            **kwargs,
        )

    # --- tools ---------------------------------------------------------------

    def register_tool(self, tool: Tool) -> RegisteredTool:
        """Register a tool, replacing any tool with the same name. It starts enabled."""
        entry = self.registry.register(tool)
        self._log(f"Registered tool {entry.name}", logging.DEBUG)
        return entry

    def unregister_tool(self, name: str) -> None:
        self.registry.unregister(name)

    def set_tool_enabled(self, name: str, enabled: bool) -> None:
        """Enable or disable a tool. Raises ToolNotFoundError for unknown names."""
        self.registry.set_enabled(name, enabled)

    def list_tools(self) -> list[ToolListing]:
        return self.registry.list()

    def export_tool_definitions(self) -> list[ToolDefinition]:
        return self.registry.export_enabled_definitions()

    # --- model configuration -------------------------------------------------

    @property
    def model_config(self) -> Optional[ModelConfig]:
        return self._model_config

    def set_model_config(self, config: ModelConfig) -> None:
        self._model_config = config

    def resolve_config(self, config: Optional[ModelConfig] = None) -> ModelConfig:
        resolved = config or self._model_config
        if resolved is None:
            raise ModelConfigNotSetError("Model config not set")
        return resolved

    # --- sessions ------------------------------------------------------------

    def create_session(self, *messages: Union[Message, Iterable[Message]]) -> "Session":
        """Start a conversation, optionally seeded with messages."""
        loop = ToolLoop(
            self.registry,
            self.adapter,
            self.transport,
            concurrent_tools=self.concurrent_tools,
            logger=self.logger,
            name=self.name,
        )
        return Session(self, loop, Conversation()).add(*messages)

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    # --- lifecycle ---------------------------------------------------------
    async def aclose(self) -> None:
        """
        Close the transport's HTTP client. Safe to call multiple times.
        """
        close = getattr(self.transport, "aclose", None)
        if close:
            await close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


class Session:
    """
    One conversation bound to a client's tools and tool loop.

    ``generate*`` calls on a session run one at a time.
    """

    def __init__(
        self, client: CallAgentClient, loop: ToolLoop, conversation: Conversation
    ) -> None:
        self.client = client
        self.loop = loop
        self.conversation = conversation
        self._lock = asyncio.Lock()

    def add(self, *messages: Union[Message, Iterable[Message]]) -> Self:
        self.conversation.add(*messages)
        return self

    @property
    def messages(self) -> tuple[Message, ...]:
        return self.conversation.snapshot()

    def last(self) -> Optional[Message]:
        return self.conversation.last()

    def render(self) -> str:
        return self.conversation.render()

    async def generate(self, config: Optional[ModelConfig] = None) -> LoopResult:
        """Ask for a reply without offering tools."""
        return await self._run(config, ToolChoice.NONE)

    async def generate_can_use_tool(self, config: Optional[ModelConfig] = None) -> LoopResult:
        """Offer the enabled tools and let the model decide whether to call them."""
        return await self._run(config, ToolChoice.AUTO)

    async def generate_use_tool(
        self,
        tool_name: Optional[str] = None,
        config: Optional[ModelConfig] = None,
    ) -> LoopResult:
        """
        Make the model call a tool: ``tool_name`` if given, otherwise any enabled tool.

        How long the forcing lasts is set by ``ModelConfig.tool_choice_strategy``.
        """
        choice = ToolChoice.forced(tool_name) if tool_name else ToolChoice.REQUIRED
        return await self._run(config, choice)

    async def _run(self, config: Optional[ModelConfig], choice: ToolChoice) -> LoopResult:
        resolved = self.client.resolve_config(config)
        async with self._lock:
            return await self.loop.run(self.conversation, resolved, choice)

    def __repr__(self) -> str:
        return f"Session(messages={len(self.conversation)})"
