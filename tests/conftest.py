"""Shared fixtures: a scripted in-memory transport and a few sample tools."""

from __future__ import annotations

import json
import threading
import time
from typing import Any, Optional, Union

import pytest

from call_agent import CallAgentClient, ModelConfig, ToolOutput, function_tool
from call_agent.transport import RawResponse


def completion(
    text: Optional[str] = None,
    tool_calls: Optional[list[tuple[str, str, Any]]] = None,
    *,
    finish_reason: Optional[str] = None,
    usage: Optional[dict[str, int]] = None,
    model: str = "test-model",
) -> dict[str, Any]:
    """Build a chat-completions response body.

    ``tool_calls`` is a list of ``(id, name, arguments)``; dict arguments are JSON-encoded.
    """
    message: dict[str, Any] = {"role": "assistant", "content": text}
    if tool_calls:
        message["tool_calls"] = [
            {
                "id": call_id,
                "type": "function",
                "function": {
                    "name": name,
                    "arguments": args if isinstance(args, str) else json.dumps(args),
                },
            }
            for call_id, name, args in tool_calls
        ]
    return {
        "id": "chatcmpl-test",
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": message,
                "finish_reason": finish_reason or ("tool_calls" if tool_calls else "stop"),
            }
        ],
        "usage": usage
        or {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
    }


class FakeTransport:
    """Replays scripted replies and records every payload it was sent.

    Script entries may be a response body (dict), a ``RawResponse`` or an
    exception instance, which is raised instead of replying. When the script
    runs out the last entry is repeated.
    """

    def __init__(self, *script: Union[dict[str, Any], RawResponse, BaseException]) -> None:
        self.script = list(script)
        self.payloads: list[dict[str, Any]] = []
        self.closed = False

    async def send(self, payload: dict[str, Any]) -> RawResponse:
        # deep copy so later conversation appends cannot alter what was recorded
        self.payloads.append(json.loads(json.dumps(payload)))
        index = min(len(self.payloads), len(self.script)) - 1
        item = self.script[index]
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, RawResponse):
            return item
        return RawResponse(status_code=200, body=item, headers={})

    async def aclose(self) -> None:
        self.closed = True


@function_tool
def text_length(text: str) -> dict:
    """Returns the length of the input text."""
    return {"length": len(text)}


@function_tool
def add(a: int, b: int = 0) -> int:
    """Add two integers."""
    return a + b


class SleepyTool:
    """Sleeps for ``delay`` seconds, then echoes its tag. Records completion order."""

    def __init__(self, name: str, delay: float, finished: list[str], lock: threading.Lock):
        self.name = name
        self.description = f"Sleeps {delay}s"
        self.parameters = {"type": "object", "properties": {}}
        self._delay = delay
        self._finished = finished
        self._lock = lock

    def execute(self, arguments: Any) -> ToolOutput:
        time.sleep(self._delay)
        with self._lock:
            self._finished.append(self.name)
        return ToolOutput.ok(f"{self.name} done")


class BrokenTool:
    name = "broken"
    description = "Always raises"
    parameters = {"type": "object", "properties": {}}

    def execute(self, arguments: Any) -> str:
        raise RuntimeError("kaboom")


@pytest.fixture
def config() -> ModelConfig:
    return ModelConfig(model="gpt-4o-mini", model_name="Bot", temperature=0.2)


@pytest.fixture
def make_client(config):
    """Return a factory for clients wired to a FakeTransport."""

    def _make(*script, model_config: Optional[ModelConfig] = config, **kwargs):
        transport = FakeTransport(*script)
        client = CallAgentClient(
            "http://localhost:8000/v1/",
            model_config=model_config,
            transport=transport,
            **kwargs,
        )
        return client, transport

    return _make
