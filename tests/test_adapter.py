"""Tests for the chat-completions adapter."""

import json

import pytest

from call_agent import (
    ApiError,
    AssistantMessage,
    ChatCompletionsAdapter,
    DeveloperMessage,
    ImageContent,
    MalformedResponseError,
    ModelConfig,
    SystemMessage,
    TextContent,
    ToolCallRequest,
    ToolChoice,
    ToolDefinition,
    ToolResultMessage,
    UserMessage,
    decode_arguments,
)
from call_agent.transport import RawResponse
from conftest import completion

DEFS = [
    ToolDefinition("text_length", "Length of text", {"type": "object", "properties": {}}),
    ToolDefinition("add", "Add numbers", {"type": "object", "properties": {}}),
]


@pytest.fixture
def adapter():
    return ChatCompletionsAdapter()


def test_build_request_auto(adapter):
    config = ModelConfig(model="gpt-4o", temperature=0.3, parallel_tool_calls=True)
    payload = adapter.build_request([UserMessage("hi")], config, ToolChoice.AUTO, DEFS)

    assert payload["model"] == "gpt-4o"
    assert payload["temperature"] == 0.3
    assert payload["tool_choice"] == "auto"
    assert payload["parallel_tool_calls"] is True
    assert [t["function"]["name"] for t in payload["tools"]] == ["text_length", "add"]
    assert payload["messages"] == [
        {"role": "user", "content": [{"type": "text", "text": "hi"}]}
    ]


def test_build_request_none_omits_tools(adapter):
    config = ModelConfig(model="gpt-4o", parallel_tool_calls=True)
    payload = adapter.build_request([UserMessage("hi")], config, ToolChoice.NONE, DEFS)
    assert "tools" not in payload
    assert "tool_choice" not in payload
    assert "parallel_tool_calls" not in payload


def test_build_request_without_definitions_omits_tools(adapter):
    payload = adapter.build_request(
        [UserMessage("hi")], ModelConfig(model="m"), ToolChoice.AUTO, []
    )
    assert "tools" not in payload
    assert "tool_choice" not in payload


def test_build_request_required_and_forced(adapter):
    config = ModelConfig(model="m")
    required = adapter.build_request([UserMessage("x")], config, ToolChoice.REQUIRED, DEFS)
    forced = adapter.build_request([UserMessage("x")], config, ToolChoice.forced("add"), DEFS)

    assert required["tool_choice"] == "required"
    assert forced["tool_choice"] == {"type": "function", "function": {"name": "add"}}


def test_build_request_strict_and_extra(adapter):
    config = ModelConfig(
        model="m",
        strict=True,
        extra={"verbosity": "low", "model": "ignored"},
    )
    payload = adapter.build_request([UserMessage("x")], config, ToolChoice.AUTO, DEFS)
    assert all(t["function"]["strict"] is True for t in payload["tools"])
    assert payload["verbosity"] == "low"
    # extra never overrides standard keys
    assert payload["model"] == "m"


@pytest.mark.parametrize(
    "model, key",
    [("gpt-4o", "max_tokens"), ("o3-mini", "max_completion_tokens"), ("gpt-5", "max_completion_tokens")],
)
def test_max_tokens_key_per_model(adapter, model, key):
    payload = adapter.build_request(
        [UserMessage("x")], ModelConfig(model=model, max_tokens=64), ToolChoice.NONE
    )
    assert payload[key] == 64
    other = "max_tokens" if key == "max_completion_tokens" else "max_completion_tokens"
    assert other not in payload


def test_message_serialization(adapter):
    messages = [
        SystemMessage("sys", name="rules"),
        DeveloperMessage("dev"),
        UserMessage([TextContent("look"), ImageContent("https://x/y.png", detail="high")], name="ann"),
        AssistantMessage(tool_calls=[ToolCallRequest("c1", "add", {"a": 1})]),
        ToolResultMessage("c1", "add", "bad input", is_error=True),
    ]
    wire = [adapter.message_to_wire(m) for m in messages]

    assert wire[0] == {"role": "system", "content": [{"type": "text", "text": "sys"}], "name": "rules"}
    assert wire[1]["role"] == "developer"
    assert wire[2]["name"] == "ann"
    assert wire[2]["content"][1] == {
        "type": "image_url",
        "image_url": {"url": "https://x/y.png", "detail": "high"},
    }
    assert wire[3] == {
        "role": "assistant",
        "content": None,
        "tool_calls": [
            {"id": "c1", "type": "function", "function": {"name": "add", "arguments": '{"a": 1}'}}
        ],
    }
    assert wire[4] == {"role": "tool", "tool_call_id": "c1", "content": "Error: bad input"}


def test_collapse_single_text_part():
    adapter = ChatCompletionsAdapter(collapse_text=True)
    assert adapter.message_to_wire(UserMessage("hi"))["content"] == "hi"
    image_msg = UserMessage(ImageContent("https://x/y.png"))
    assert isinstance(adapter.message_to_wire(image_msg)["content"], list)


def test_unknown_message_type(adapter):
    with pytest.raises(TypeError):
        adapter.message_to_wire({"role": "user"})


def test_raw_arguments_are_sent_back_verbatim(adapter):
    call = ToolCallRequest("c1", "add", {"a": 1}, raw_arguments='{"a":1}')
    assert adapter.tool_call_to_wire(call)["function"]["arguments"] == '{"a":1}'


def test_parse_response_text(adapter):
    body = completion("Hello!", usage={"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5})
    response = adapter.parse_response(RawResponse(200, body), model_name="Bot")

    assert response.content == "Hello!"
    assert response.message.name == "Bot"
    assert response.finish_reason == "stop"
    assert response.usage.total_tokens == 5
    assert not response.has_tool_calls


def test_parse_response_tool_calls(adapter):
    body = completion(tool_calls=[("c1", "add", {"a": 2, "b": 3}), ("c2", "text_length", "")])
    response = adapter.parse_response(RawResponse(200, body))

    first, second = response.tool_calls
    assert (first.id, first.name, first.arguments) == ("c1", "add", {"a": 2, "b": 3})
    assert first.raw_arguments == '{"a": 2, "b": 3}'
    assert second.arguments == {}
    assert response.content == ""


def test_parse_response_refusal(adapter):
    body = completion()
    body["choices"][0]["message"].update(content=None, refusal="I can't help with that.")
    response = adapter.parse_response(RawResponse(200, body))
    assert response.content == "I can't help with that."
    assert response.message.refusal == "I can't help with that."


def test_parse_response_api_error(adapter):
    raw = RawResponse(
        429,
        {"error": {"code": "rate_limit_exceeded", "message": "Slow down", "type": "requests"}},
        {"Retry-After": "2", "X-RateLimit-Remaining": "0"},
    )
    with pytest.raises(ApiError) as info:
        adapter.parse_response(raw)

    err = info.value
    assert err.code == "rate_limit_exceeded"
    assert err.message == "Slow down"
    assert err.status_code == 429
    assert err.rate_limit.retry_after == 2.0
    assert err.rate_limit.remaining == 0
    assert str(err) == "API error (rate_limit_exceeded): Slow down"


def test_parse_response_error_with_choice_is_kept(adapter):
    body = completion("partial")
    body["error"] = {"code": 500, "message": "upstream hiccup"}
    response = adapter.parse_response(RawResponse(200, body))
    assert response.content == "partial"
    assert response.error.message == "upstream hiccup"


@pytest.mark.parametrize(
    "body",
    [
        [],
        {"choices": []},
        {"choices": [{"finish_reason": "stop"}]},
        {"choices": [{"message": {"role": "assistant", "content": None}}]},
        {"choices": [{"message": {"role": "assistant", "tool_calls": [{"function": {"name": "x"}}]}}]},
        {"choices": {"0": "x"}},
        {"choices": "not a list"},
        {"choices": [{"message": {"role": "assistant", "tool_calls": ["bad"]}}]},
        {"choices": [{"message": {"role": "assistant", "tool_calls": [{"id": "c", "function": "f"}]}}]},
        {"choices": [{"message": {"role": "assistant", "tool_calls": {"id": "c"}}}]},
        {"choices": [{"message": {"role": "assistant", "content": 42}}]},
    ],
)
def test_parse_response_malformed(adapter, body):
    with pytest.raises(MalformedResponseError):
        adapter.parse_response(RawResponse(200, body))


def test_rate_limit_headers(adapter):
    headers = {
        "x-ratelimit-limit-requests": "500",
        "x-ratelimit-remaining-requests": "499",
        "x-ratelimit-reset-requests": "6m0s",
    }
    response = adapter.parse_response(RawResponse(200, completion("ok"), headers))
    limits = response.rate_limit
    assert (limits.limit, limits.remaining, limits.reset) == (500, 499, 360.0)
    assert limits.retry_after is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, {}),
        ("", {}),
        ("  ", {}),
        ('{"a": 1}', {"a": 1}),
        (json.dumps('{"a": 1}'), {"a": 1}),
        ("plain words", "plain words"),
        ({"a": 1}, {"a": 1}),
    ],
)
def test_decode_arguments(raw, expected):
    assert decode_arguments(raw) == expected


def test_round_trip_through_wire_form(adapter):
    """Messages survive serialization and decoding unchanged."""
    messages = [
        SystemMessage("sys"),
        UserMessage([TextContent("what is this?"), ImageContent("data:image/png;base64,AAA", detail="low")]),
        AssistantMessage(
            text="Let me check.",
            tool_calls=[
                ToolCallRequest("c1", "text_length", {"text": "abc"}),
                ToolCallRequest("c2", "add", {"a": 1, "b": 2}),
            ],
        ),
        ToolResultMessage("c1", "text_length", '{"length": 3}'),
        ToolResultMessage("c2", "add", "overflow", is_error=True),
    ]
    payload = adapter.build_request(messages, ModelConfig(model="m"), ToolChoice.NONE)
    names = {"c1": "text_length", "c2": "add"}
    decoded = [adapter.message_from_wire(m, tool_names=names) for m in payload["messages"]]

    assert decoded[0] == messages[0]
    assert decoded[1] == messages[1]
    assert decoded[2].text == "Let me check."
    assert [(c.id, c.name, c.arguments) for c in decoded[2].tool_calls] == [
        ("c1", "text_length", {"text": "abc"}),
        ("c2", "add", {"a": 1, "b": 2}),
    ]
    assert decoded[3:] == messages[3:]


def test_message_from_wire_rejects_unknown_role(adapter):
    with pytest.raises(MalformedResponseError):
        adapter.message_from_wire({"role": "narrator", "content": "Once upon a time"})


def test_message_from_wire_malformed_assistant(adapter):
    with pytest.raises(MalformedResponseError):
        adapter.message_from_wire({"role": "assistant", "content": None, "tool_calls": ["bad"]})


def test_success_with_error_prefix_decodes_as_error(adapter):
    """Tool content beginning with "Error: " always reads back as an error result."""
    ok = ToolResultMessage("c1", "echo", "Error: this text came from the tool")
    decoded = adapter.message_from_wire(adapter.message_to_wire(ok), tool_names={"c1": "echo"})
    assert decoded.is_error
    assert decoded.wire_content == ok.wire_content
