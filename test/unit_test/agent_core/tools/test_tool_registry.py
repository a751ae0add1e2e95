from __future__ import annotations

import pytest
from pydantic import BaseModel, Field

from codesmith_ai.agent_core.errors import ConfigurationError, ToolNotFoundError
from codesmith_ai.agent_core.tools import ToolDefinition, ToolRegistry


class _EchoInput(BaseModel):
    text: str = Field(..., description="Text to echo")
    times: int = 1


class _EchoOutput(BaseModel):
    text: str


async def _echo(data: _EchoInput) -> _EchoOutput:
    return _EchoOutput(text=data.text * data.times)


def _tool(name: str = "demo.echo", description: str = "Echo text") -> ToolDefinition:
    return ToolDefinition(
        name=name, description=description, input_schema=_EchoInput, output_schema=_EchoOutput, handler=_echo
    )


def test_registry_empty_has_false() -> None:
    reg = ToolRegistry()
    assert reg.has("demo.echo") is False
    assert len(reg) == 0


def test_registry_get_missing_raises_tool_not_found() -> None:
    reg = ToolRegistry()
    with pytest.raises(ToolNotFoundError) as ei:
        reg.get("demo.echo")
    assert isinstance(ei.value, ConfigurationError)
    assert ei.value.tool_name == "demo.echo"


def test_registry_register_then_get_returns_same_instance() -> None:
    reg = ToolRegistry()
    tool = _tool()
    reg.register(tool)

    assert reg.has("demo.echo") is True
    assert "demo.echo" in reg
    assert reg.get("demo.echo") is tool


def test_registry_register_overwrites_existing_name_with_warning(caplog) -> None:
    reg = ToolRegistry()
    first, second = _tool(description="first"), _tool(description="second")
    reg.register(first)
    with caplog.at_level("WARNING"):
        reg.register(second)

    assert reg.get("demo.echo") is second
    assert "Overwriting" in caplog.text


@pytest.mark.parametrize("name", ["echo", ".echo", "demo."])
def test_registry_rejects_names_without_namespace(name: str) -> None:
    reg = ToolRegistry()
    with pytest.raises(ConfigurationError):
        reg.register(_tool(name=name))


def test_names_tools_and_describe_are_sorted() -> None:
    reg = ToolRegistry()
    reg.register(_tool("b.second"))
    reg.register(_tool("a.first"))

    assert reg.names() == ["a.first", "b.second"]
    assert [t.name for t in reg.tools()] == ["a.first", "b.second"]
    text = reg.describe()
    assert text.index("a.first") < text.index("b.second")
    assert "text: string (required)" in text
    assert "times: integer (optional)" in text


def test_describe_empty_registry() -> None:
    assert ToolRegistry().describe() == "No tools are available."


def test_tool_definition_to_dict_includes_schemas() -> None:
    out = _tool().to_dict()
    assert out["name"] == "demo.echo"
    assert out["input_schema"]["required"] == ["text"]
    assert "output_schema" in out
    assert _tool().namespace == "demo"
