"""
Turn plain Python callables into registrable tools.

The parameter schema is read from the signature with ``inspect`` unless one
is given explicitly.
"""

from __future__ import annotations

import inspect
import json
from collections.abc import Callable
from types import UnionType
from typing import Any, Optional, Union, get_args, get_origin, get_type_hints

from call_agent.types.tool import ToolOutput

__all__ = ["FunctionTool", "function_tool", "schema_from_signature"]


_JSON_TYPES: dict[type, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    tuple: "array",
    dict: "object",
}


def _json_type(annotation: Any) -> Optional[str]:
    origin = get_origin(annotation)
    if origin is Union or origin is UnionType:
        # Optional[X] -> X
        args = [a for a in get_args(annotation) if a is not type(None)]
        return _json_type(args[0]) if len(args) == 1 else None
    return _JSON_TYPES.get(origin or annotation)


def schema_from_signature(func: Callable[..., Any]) -> dict[str, Any]:
    """Build a JSON-Schema object for the keyword arguments of ``func``."""
    sig = inspect.signature(func)
    try:
        hints = get_type_hints(func)
    except (NameError, TypeError):
        hints = {}

    properties: dict[str, Any] = {}
    required: list[str] = []
    for param_name, param in sig.parameters.items():
        if param_name in ("self", "cls") or param.kind in (
            inspect.Parameter.VAR_POSITIONAL,
            inspect.Parameter.VAR_KEYWORD,
        ):
            continue
        prop: dict[str, Any] = {}
        json_type = _json_type(hints.get(param_name, Any))
        if json_type:
            prop["type"] = json_type
        properties[param_name] = prop
        if param.default is inspect.Parameter.empty:
            required.append(param_name)

    return {"type": "object", "properties": properties, "required": required}


class FunctionTool:
    """A ``Tool`` backed by a synchronous function taking keyword arguments."""

    def __init__(
        self,
        func: Callable[..., Any],
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        parameters: Optional[dict[str, Any]] = None,
    ) -> None:
        self._func = func
        self._name = name or func.__name__
        self._description = description or inspect.getdoc(func) or ""
        self._parameters = parameters if parameters is not None else schema_from_signature(func)

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def parameters(self) -> dict[str, Any]:
        return self._parameters

    def execute(self, arguments: Any) -> ToolOutput:
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            return ToolOutput.error(
                f"arguments for {self._name} must be a JSON object, got {type(arguments).__name__}"
            )
        try:
            inspect.signature(self._func).bind(**arguments)
        except TypeError as exc:
            return ToolOutput.error(f"invalid arguments for {self._name}: {exc}")

        result = self._func(**arguments)
        if isinstance(result, ToolOutput):
            return result
        if isinstance(result, str):
            return ToolOutput.ok(result)
        return ToolOutput.ok(json.dumps(result, ensure_ascii=False, default=str))

    def __repr__(self) -> str:
        return f"FunctionTool(name={self._name!r})"


def function_tool(
    func: Optional[Callable[..., Any]] = None,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    parameters: Optional[dict[str, Any]] = None,
) -> Any:
    """
    Decorator form of ``FunctionTool``.

    Example
    -------
    >>> @function_tool
    ... def text_length(text: str) -> dict:
    ...     "Returns the length of the input text."
    ...     return {"length": len(text)}
    >>> text_length.name
    'text_length'
    """

    def wrap(f: Callable[..., Any]) -> FunctionTool:
        return FunctionTool(f, name=name, description=description, parameters=parameters)

    if func is not None:
        return wrap(func)
    return wrap
