"""
Tool registry: the single source of truth for which tools the model may call.

Entries are kept in registration order. Re-registering a name replaces the
definition and handler in place and resets the entry to enabled.

Mutations take a lock and swap in new frozen entries, so a ``RegisteredTool``
returned by ``resolve`` is a stable snapshot for the dispatch that uses it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from typing import Iterator, NamedTuple, Optional

from call_agent.errors import ToolDisabledError, ToolNotFoundError
from call_agent.types.tool import Tool, ToolDefinition

__all__ = ["ToolRegistry", "RegisteredTool", "ToolListing"]

logger = logging.getLogger(__name__)


class ToolListing(NamedTuple):
    name: str
    description: str
    enabled: bool


@dataclass(frozen=True, slots=True)
class RegisteredTool:
    definition: ToolDefinition
    handler: Tool
    enabled: bool = True

    @property
    def name(self) -> str:
        return self.definition.name


class ToolRegistry:
    """Thread-safe, insertion-ordered mapping of tool name to handler."""

    def __init__(self, tools: Optional[list[Tool]] = None) -> None:
        self._entries: dict[str, RegisteredTool] = {}
        self._lock = threading.RLock()
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool) -> RegisteredTool:
        """Insert or overwrite the entry keyed by ``tool.name``."""
        definition = ToolDefinition(
            name=tool.name,
            description=tool.description,
            parameters=dict(tool.parameters),
        )
        entry = RegisteredTool(definition=definition, handler=tool, enabled=True)
        with self._lock:
            replaced = definition.name in self._entries
            self._entries[definition.name] = entry
        logger.debug(
            "%s tool %s", "Replaced" if replaced else "Registered", definition.name
        )
        return entry

    def unregister(self, name: str) -> None:
        with self._lock:
            if name not in self._entries:
                raise ToolNotFoundError(name)
            del self._entries[name]

    def set_enabled(self, name: str, enabled: bool) -> None:
        with self._lock:
            try:
                entry = self._entries[name]
            except KeyError:
                raise ToolNotFoundError(name) from None
            self._entries[name] = replace(entry, enabled=enabled)
        logger.debug("Tool %s %s", name, "enabled" if enabled else "disabled")

    def get(self, name: str) -> Optional[RegisteredTool]:
        with self._lock:
            return self._entries.get(name)

    def resolve(self, name: str) -> RegisteredTool:
        """Look up a tool for dispatch; it must exist and be enabled."""
        with self._lock:
            entry = self._entries.get(name)
        if entry is None:
            raise ToolNotFoundError(name)
        if not entry.enabled:
            raise ToolDisabledError(name)
        return entry

    def list(self) -> list[ToolListing]:
        with self._lock:
            entries = list(self._entries.values())
        return [
            ToolListing(e.name, e.definition.description, e.enabled) for e in entries
        ]

    def export_enabled_definitions(self) -> list[ToolDefinition]:
        """Definitions of enabled tools in registry order; may be empty."""
        with self._lock:
            entries = list(self._entries.values())
        return [e.definition for e in entries if e.enabled]

    def names(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[RegisteredTool]:
        with self._lock:
            return iter(list(self._entries.values()))
