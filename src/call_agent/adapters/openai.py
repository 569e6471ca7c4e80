"""Chat-completions adapter for pure request/response transformations."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

from call_agent.errors import ApiError, MalformedResponseError
from call_agent.params import ModelConfig, ToolChoice
from call_agent.response import APIResponse, ApiErrorPayload, RateLimitInfo, Usage
from call_agent.transport import RawResponse
from call_agent.types.message import (
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
from call_agent.types.tool import ToolCallRequest, ToolDefinition

__all__ = ["ChatCompletionsAdapter", "decode_arguments"]

# Model families that take max_completion_tokens instead of max_tokens.
_COMPLETION_TOKEN_MODELS = ("o1", "o3", "o4", "gpt-5")


def decode_arguments(raw_args: Any) -> Any:
    """
    Decode tool-call arguments as sent by the endpoint.

    - dict / list values are used as-is
    - empty strings become ``{}``
    - JSON strings are decoded, twice if the JSON was itself encoded as a string
    - anything that is not JSON is kept verbatim
    """
    if raw_args is None:
        return {}
    if not isinstance(raw_args, str):
        return raw_args
    if not raw_args.strip():
        return {}
    try:
        value = json.loads(raw_args)
    except json.JSONDecodeError:
        return raw_args
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


class ChatCompletionsAdapter:
    """Adapter for converting between call-agent types and the chat-completions schema."""

    def __init__(
        self,
        *,
        collapse_text: bool = False,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        # Send a lone text part as a plain string, for endpoints that reject content arrays.
        self.collapse_text = collapse_text
        self.logger = logger or logging.getLogger(__name__)

    # --- request -----------------------------------------------------------

    def build_request(
        self,
        messages: Sequence[Message],
        config: ModelConfig,
        choice: ToolChoice,
        definitions: Sequence[ToolDefinition] = (),
    ) -> dict[str, Any]:
        """Build the request payload for one round."""
        params = config.request_params()
        model = params.pop("model")

        if "max_tokens" in params and self._requires_max_completion_tokens(model):
            params["max_completion_tokens"] = params.pop("max_tokens")

        payload: dict[str, Any] = {
            "model": model,
            "messages": [self.message_to_wire(m) for m in messages],
            **params,
        }

        if choice.offers_tools and definitions:
            payload["tools"] = [self.tool_to_wire(d, strict=config.strict) for d in definitions]
            payload["tool_choice"] = choice.to_wire()
        else:
            # tool_choice without tools is rejected by the endpoint
            payload.pop("parallel_tool_calls", None)

        for k, v in config.extra.items():
            payload.setdefault(k, v)

        return payload

    def _requires_max_completion_tokens(self, model: str) -> bool:
        return any(model.startswith(prefix) for prefix in _COMPLETION_TOKEN_MODELS)

    def tool_to_wire(
        self, definition: ToolDefinition, *, strict: Optional[bool] = None
    ) -> dict[str, Any]:
        function: dict[str, Any] = {
            "name": definition.name,
            "description": definition.description,
            "parameters": definition.parameters,
        }
        if strict is not None:
            function["strict"] = strict
        return {"type": "function", "function": function}

    def content_to_wire(self, content: Sequence[Content]) -> str | list[dict[str, Any]]:
        parts: list[dict[str, Any]] = []
        for part in content:
            match part:
                case TextContent(text=text):
                    parts.append({"type": "text", "text": text})
                case ImageContent(url=url, detail=detail):
                    image: dict[str, Any] = {"url": url}
                    if detail is not None:
                        image["detail"] = detail
                    parts.append({"type": "image_url", "image_url": image})
                case _:
                    raise TypeError(f"Unknown content part: {type(part).__name__}")

        if self.collapse_text and len(parts) == 1 and parts[0]["type"] == "text":
            return parts[0]["text"]
        return parts

    def tool_call_to_wire(self, call: ToolCallRequest) -> dict[str, Any]:
        if call.raw_arguments is not None:
            arguments = call.raw_arguments
        elif isinstance(call.arguments, str):
            arguments = call.arguments
        else:
            arguments = json.dumps(call.arguments, ensure_ascii=False)
        return {
            "id": call.id,
            "type": "function",
            "function": {"name": call.name, "arguments": arguments},
        }

    def message_to_wire(self, message: Message) -> dict[str, Any]:
        """Map one message onto its role-tagged wire form."""
        wire: dict[str, Any]
        match message:
            case SystemMessage(text=text, name=name):
                wire = {"role": "system", "content": self.content_to_wire([TextContent(text)])}
            case DeveloperMessage(text=text, name=name):
                wire = {"role": "developer", "content": self.content_to_wire([TextContent(text)])}
            case UserMessage(content=content, name=name):
                wire = {"role": "user", "content": self.content_to_wire(content)}
            case AssistantMessage(text=text, tool_calls=tool_calls, name=name):
                # content is null when only tool calls are present
                wire = {"role": "assistant", "content": text or None}
                if tool_calls:
                    wire["tool_calls"] = [self.tool_call_to_wire(c) for c in tool_calls]
            case ToolResultMessage():
                return {
                    "role": "tool",
                    "tool_call_id": message.tool_call_id,
                    "content": message.wire_content,
                }
            case _:
                raise TypeError(f"Unknown message type: {type(message).__name__}")

        if name:
            wire["name"] = name
        return wire

    # --- response ----------------------------------------------------------

    def parse_response(
        self, raw: RawResponse, *, model_name: Optional[str] = None
    ) -> APIResponse:
        """
        Parse a raw endpoint reply into an APIResponse.

        Raises:
            ApiError: The body carries an error payload and no usable choice.
            MalformedResponseError: Required fields are missing.
        """
        rate_limit = RateLimitInfo.from_headers(raw.headers)
        body = raw.body
        if not isinstance(body, dict):
            raise MalformedResponseError(
                f"Expected a JSON object, got {type(body).__name__} (status {raw.status_code})"
            )

        error = self._parse_error(body.get("error"))
        choices = body.get("choices")

        if not choices:
            if error is not None:
                raise ApiError(
                    error.code,
                    error.message,
                    error_type=error.type,
                    status_code=raw.status_code,
                    rate_limit=rate_limit,
                )
            raise MalformedResponseError(
                f"Response has no choices (status {raw.status_code})"
            )

        if not isinstance(choices, list):
            raise MalformedResponseError(
                f"Expected choices to be a list, got {type(choices).__name__}"
            )
        choice = choices[0]
        wire_message = choice.get("message") if isinstance(choice, dict) else None
        if not isinstance(wire_message, dict):
            raise MalformedResponseError("First choice has no message")

        try:
            message = self._assistant_from_wire(wire_message, name=model_name)
        except ValueError as exc:
            raise MalformedResponseError(f"Unusable assistant message: {exc}", exc) from exc

        if error is not None:
            self.logger.warning(
                "Endpoint reported an error alongside a reply: (%s) %s",
                error.code,
                error.message,
            )

        return APIResponse(
            message=message,
            finish_reason=choice.get("finish_reason"),
            model=body.get("model"),
            usage=Usage.from_wire(body.get("usage")),
            error=error,
            rate_limit=rate_limit,
            raw=body,
        )

    def _parse_error(self, data: Any) -> Optional[ApiErrorPayload]:
        if data is None:
            return None
        if isinstance(data, dict):
            return ApiErrorPayload(
                code=data.get("code"),
                message=str(data.get("message") or ""),
                type=data.get("type"),
            )
        return ApiErrorPayload(message=str(data))

    def _assistant_from_wire(
        self, data: dict[str, Any], *, name: Optional[str] = None
    ) -> AssistantMessage:
        text = data.get("content")
        if isinstance(text, list):
            text = "".join(
                p.get("text", "") for p in text if isinstance(p, dict) and p.get("type") == "text"
            )
        if text is not None and not isinstance(text, str):
            raise ValueError(f"assistant content must be a string, got {type(text).__name__}")
        refusal = data.get("refusal")
        if not text and refusal:
            text = refusal

        calls: list[ToolCallRequest] = []
        wire_calls = data.get("tool_calls") or []
        if not isinstance(wire_calls, list):
            raise ValueError(f"tool_calls must be a list, got {type(wire_calls).__name__}")
        for tc in wire_calls:
            if not isinstance(tc, dict):
                raise ValueError(f"tool call must be an object: {tc!r}")
            function = tc.get("function") or {}
            if not isinstance(function, dict):
                raise ValueError(f"tool call function must be an object: {tc!r}")
            if not tc.get("id") or not function.get("name"):
                raise ValueError(f"tool call without id or name: {tc!r}")
            raw_args = function.get("arguments")
            calls.append(
                ToolCallRequest(
                    id=tc["id"],
                    name=function["name"],
                    arguments=decode_arguments(raw_args),
                    raw_arguments=raw_args if isinstance(raw_args, str) else None,
                )
            )

        return AssistantMessage(
            text=text or None,
            tool_calls=calls,
            name=data.get("name") or name,
            refusal=refusal,
        )

    # --- transcript decoding -----------------------------------------------

    def content_from_wire(self, data: Any) -> list[Content]:
        if isinstance(data, str):
            return [TextContent(data)]
        parts: list[Content] = []
        for part in data or []:
            kind = part.get("type")
            if kind == "text":
                parts.append(TextContent(part["text"]))
            elif kind == "image_url":
                image = part["image_url"]
                parts.append(ImageContent(url=image["url"], detail=image.get("detail")))
            else:
                raise MalformedResponseError(f"Unknown content part type: {kind!r}")
        return parts

    def message_from_wire(
        self, data: dict[str, Any], *, tool_names: Optional[dict[str, str]] = None
    ) -> Message:
        """
        Rebuild a Message from its wire form.

        ``tool_names`` maps tool_call_id to tool name for tool-result messages,
        since the wire form does not carry it.
        """
        role = data.get("role")
        name = data.get("name")
        match role:
            case "system" | "developer":
                text = "".join(
                    p.text for p in self.content_from_wire(data.get("content"))
                    if isinstance(p, TextContent)
                )
                cls = SystemMessage if role == "system" else DeveloperMessage
                return cls(text=text, name=name)
            case "user":
                return UserMessage(self.content_from_wire(data.get("content")), name=name)
            case "assistant":
                try:
                    return self._assistant_from_wire(data)
                except ValueError as exc:
                    raise MalformedResponseError(f"Unusable assistant message: {exc}", exc) from exc
            case "tool":
                call_id = data.get("tool_call_id")
                if not call_id:
                    raise MalformedResponseError("tool message without tool_call_id")
                content = data.get("content") or ""
                if not isinstance(content, str):
                    content = "".join(
                        p.text for p in self.content_from_wire(content)
                        if isinstance(p, TextContent)
                    )
                is_error = content.startswith("Error: ")
                return ToolResultMessage(
                    tool_call_id=call_id,
                    tool_name=(tool_names or {}).get(call_id, name or ""),
                    content=content[len("Error: "):] if is_error else content,
                    is_error=is_error,
                )
            case _:
                raise MalformedResponseError(f"Invalid message role: {role!r}")
