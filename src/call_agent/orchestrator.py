"""
The tool-calling loop.

Each round builds a request from the conversation, sends it, and either
finishes on a plain assistant reply or runs the requested tools and goes
around again. A round is committed to the conversation in one append
(assistant message followed by its tool results), and only after the round
has fully succeeded, so a failed or cancelled call leaves the history as it
was.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import reduce
from typing import Optional

from call_agent.adapters.openai import ChatCompletionsAdapter
from call_agent.conversation import Conversation
from call_agent.errors import ToolError, ToolLoopExceededError
from call_agent.params import ForcedToolPolicy, ModelConfig, ToolChoice, ToolChoiceMode
from call_agent.registry import ToolRegistry
from call_agent.response import APIResponse, Usage
from call_agent.transport import Transport
from call_agent.types.message import ToolResultMessage
from call_agent.types.tool import ToolCallRequest, ToolOutput

__all__ = ["ToolLoop", "LoopState", "LoopResult"]


class LoopState(str, Enum):
    AWAITING_REQUEST = "awaiting_request"
    REQUEST_IN_FLIGHT = "request_in_flight"
    RESPONSE_RECEIVED = "response_received"
    EXECUTING_TOOLS = "executing_tools"
    TERMINAL = "terminal"


@dataclass
class LoopResult:
    """Outcome of one ``generate*`` call."""

    reply: Optional[str]
    response: APIResponse
    responses: list[APIResponse] = field(default_factory=list)
    tool_results: list[ToolResultMessage] = field(default_factory=list)

    @property
    def rounds(self) -> int:
        return len(self.responses)

    @property
    def usage(self) -> Usage:
        return reduce(lambda a, b: a + b, (r.usage for r in self.responses), Usage())


class ToolLoop:
    """Drives a conversation through request/tool rounds until a terminal reply."""

    def __init__(
        self,
        registry: ToolRegistry,
        adapter: ChatCompletionsAdapter,
        transport: Transport,
        *,
        concurrent_tools: bool = True,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.registry = registry
        self.adapter = adapter
        self.transport = transport
        self.concurrent_tools = concurrent_tools
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__
        self.state = LoopState.AWAITING_REQUEST

    async def run(
        self,
        conversation: Conversation,
        config: ModelConfig,
        choice: ToolChoice = ToolChoice.AUTO,
    ) -> LoopResult:
        """
        Run rounds until the model replies without tool calls.

        Raises:
            ToolNotFoundError / ToolDisabledError: A forced tool is not available.
            TransportError, MalformedResponseError, ApiError: From the endpoint;
                the conversation keeps every round committed before the failure.
            ToolLoopExceededError: ``config.max_rounds`` rounds all asked for tools.
        """
        if choice.mode is ToolChoiceMode.FORCED:
            # fail before any network call
            self.registry.resolve(choice.tool_name)  # type: ignore[arg-type]

        policy = config.tool_choice_strategy
        responses: list[APIResponse] = []
        all_results: list[ToolResultMessage] = []
        current = choice

        try:
            for round_no in range(1, config.max_rounds + 1):
                self.state = LoopState.AWAITING_REQUEST
                definitions = (
                    self.registry.export_enabled_definitions() if current.offers_tools else []
                )
                payload = self.adapter.build_request(
                    conversation.snapshot(), config, current, definitions
                )

                self.state = LoopState.REQUEST_IN_FLIGHT
                self._log(
                    f"Round {round_no}: sending {len(payload['messages'])} message(s) "
                    f"to {config.model} (tool_choice={current}, tools={len(definitions)})"
                )
                raw = await self.transport.send(payload)
                response = self.adapter.parse_response(raw, model_name=config.model_name)

                self.state = LoopState.RESPONSE_RECEIVED
                responses.append(response)
                assistant = response.message

                if not assistant.tool_calls:
                    conversation.add(assistant)
                    self._log(f"Round {round_no}: finished with a reply")
                    return LoopResult(
                        reply=assistant.text,
                        response=response,
                        responses=responses,
                        tool_results=all_results,
                    )

                self.state = LoopState.EXECUTING_TOOLS
                results = await self._execute_all(assistant.tool_calls)
                conversation.add(assistant, results)
                all_results.extend(results)

                if current.is_forcing and policy is ForcedToolPolicy.SINGLE_ROUND:
                    self._log(f"Round {round_no}: forced tool run complete, not following up")
                    return LoopResult(
                        reply=assistant.text,
                        response=response,
                        responses=responses,
                        tool_results=all_results,
                    )
                if current.is_forcing and policy is ForcedToolPolicy.FIRST_ROUND:
                    current = ToolChoice.AUTO
        finally:
            self.state = LoopState.TERMINAL

        self._log(
            f"Giving up after {config.max_rounds} round(s) of tool calls", logging.WARNING
        )
        raise ToolLoopExceededError(config.max_rounds)

    async def _execute_all(self, calls: list[ToolCallRequest]) -> list[ToolResultMessage]:
        """Run every call; results come back in request order."""
        if self.concurrent_tools and len(calls) > 1:
            outputs = await asyncio.gather(
                *(asyncio.to_thread(self._execute_one, call) for call in calls)
            )
        else:
            outputs = [await asyncio.to_thread(self._execute_one, call) for call in calls]

        return [
            ToolResultMessage(
                tool_call_id=call.id,
                tool_name=call.name,
                content=output.content,
                is_error=output.is_error,
            )
            for call, output in zip(calls, outputs)
        ]

    def _execute_one(self, call: ToolCallRequest) -> ToolOutput:
        try:
            entry = self.registry.resolve(call.name)
        except ToolError as exc:
            self._log(f"Cannot dispatch {call.name} [{call.id}]: {exc}", logging.WARNING)
            return ToolOutput.error(str(exc))

        self._log(f"Executing tool {call.name} [{call.id}]", logging.DEBUG)
        try:
            output = entry.handler.execute(call.arguments)
        except Exception as exc:
            self.logger.exception(f"[{self.name}] Tool {call.name} raised")
            return ToolOutput.error(f"{type(exc).__name__}: {exc}")

        if isinstance(output, str):
            return ToolOutput.ok(output)
        if not isinstance(output, ToolOutput):
            return ToolOutput.error(
                f"Tool {call.name} returned {type(output).__name__}, expected ToolOutput or str"
            )
        if output.is_error:
            self._log(f"Tool {call.name} reported an error: {output.content}", logging.WARNING)
        return output

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")
