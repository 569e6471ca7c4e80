"""Tests for the tool registry."""

import threading

import pytest

from call_agent import (
    FunctionTool,
    ToolDisabledError,
    ToolListing,
    ToolNotFoundError,
    ToolRegistry,
)


def make_tool(name, description="", result="ok"):
    return FunctionTool(lambda: result, name=name, description=description)


def test_register_keeps_insertion_order():
    registry = ToolRegistry([make_tool("a"), make_tool("b"), make_tool("c")])
    assert registry.names() == ["a", "b", "c"]
    assert [d.name for d in registry.export_enabled_definitions()] == ["a", "b", "c"]


def test_reregister_replaces_in_place_and_resets_enabled():
    """Overwriting a name swaps the handler, keeps its slot and re-enables it."""
    registry = ToolRegistry([make_tool("a"), make_tool("b", "old", "v1"), make_tool("c")])
    registry.set_enabled("b", False)

    registry.register(make_tool("b", "new", "v2"))

    assert registry.names() == ["a", "b", "c"]
    entry = registry.resolve("b")
    assert entry.enabled
    assert entry.definition.description == "new"
    assert entry.handler.execute({}).content == "v2"


def test_export_excludes_disabled_tools():
    registry = ToolRegistry([make_tool("a"), make_tool("b"), make_tool("c")])
    registry.set_enabled("a", False)
    registry.set_enabled("c", False)
    registry.set_enabled("a", True)

    assert [d.name for d in registry.export_enabled_definitions()] == ["a", "b"]
    assert registry.list() == [
        ToolListing("a", "", True),
        ToolListing("b", "", True),
        ToolListing("c", "", False),
    ]


def test_export_empty_when_all_disabled():
    registry = ToolRegistry([make_tool("a")])
    registry.set_enabled("a", False)
    assert registry.export_enabled_definitions() == []


def test_resolve_errors():
    registry = ToolRegistry([make_tool("a")])
    registry.set_enabled("a", False)

    with pytest.raises(ToolDisabledError) as disabled:
        registry.resolve("a")
    assert disabled.value.tool_name == "a"

    with pytest.raises(ToolNotFoundError, match="Tool not found: missing"):
        registry.resolve("missing")


def test_set_enabled_unknown_tool():
    with pytest.raises(ToolNotFoundError):
        ToolRegistry().set_enabled("nope", True)


def test_unregister():
    registry = ToolRegistry([make_tool("a"), make_tool("b")])
    registry.unregister("a")
    assert "a" not in registry
    assert len(registry) == 1
    with pytest.raises(ToolNotFoundError):
        registry.unregister("a")


def test_resolved_entry_is_a_stable_snapshot():
    """Disabling after resolve does not change the entry already handed out."""
    registry = ToolRegistry([make_tool("a")])
    entry = registry.resolve("a")
    registry.set_enabled("a", False)
    assert entry.enabled
    assert registry.get("a").enabled is False


def test_exported_list_is_a_copy():
    registry = ToolRegistry([make_tool("a")])
    definitions = registry.export_enabled_definitions()
    definitions.clear()
    assert len(registry.export_enabled_definitions()) == 1


def test_concurrent_toggle_and_export():
    """Readers never see a torn state while writers toggle tools."""
    names = [f"t{i}" for i in range(20)]
    registry = ToolRegistry([make_tool(n) for n in names])
    errors = []
    stop = threading.Event()

    def writer():
        for i in range(500):
            registry.set_enabled(names[i % len(names)], i % 2 == 0)
        stop.set()

    def reader():
        while not stop.is_set():
            exported = [d.name for d in registry.export_enabled_definitions()]
            # registration order is preserved in every snapshot
            if exported != sorted(exported, key=names.index):
                errors.append(exported)

    threads = [threading.Thread(target=writer)] + [
        threading.Thread(target=reader) for _ in range(3)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert registry.names() == names
