"""Unit tests for FunctionTool and schema generation."""

import threading

import pytest

from agentrelay.core.interfaces.tools import ToolProtocol
from agentrelay.infrastructure.tools.function_tool import (
    FunctionTool,
    function_tool,
    schema_from_signature,
)


def search(query: str, limit: int = 10, exact: bool = False, boost: float = 1.0,
           tags: list[str] = None, **extra) -> list:
    """Search the catalogue.

    Longer explanation that is not part of the description.
    """
    return []


class TestSchemaFromSignature:
    def test_types_and_required(self):
        schema = schema_from_signature(search)

        assert schema["type"] == "object"
        assert schema["required"] == ["query"]
        props = schema["properties"]
        assert props["query"]["type"] == "string"
        assert props["limit"]["type"] == "integer"
        assert props["exact"]["type"] == "boolean"
        assert props["boost"]["type"] == "number"
        assert props["tags"]["type"] == "array"
        assert "extra" not in props


class TestFunctionTool:
    def test_metadata_from_function(self):
        tool = FunctionTool(search)

        assert tool.name == "search"
        assert tool.description == "Search the catalogue."
        assert isinstance(tool, ToolProtocol)

    def test_explicit_overrides(self):
        schema = {"type": "object", "properties": {}}
        tool = FunctionTool(search, name="find", description="Find things", parameters_schema=schema)

        assert tool.name == "find"
        assert tool.description == "Find things"
        assert tool.parameters_schema is schema

    @pytest.mark.asyncio
    async def test_async_function_awaited(self):
        @function_tool
        async def add(a: int, b: int) -> int:
            """Add two numbers."""
            return a + b

        assert await add.execute(a=2, b=3) == 5

    @pytest.mark.asyncio
    async def test_sync_function_runs_in_worker_thread(self):
        main_thread = threading.get_ident()

        @function_tool(name="where")
        def where_am_i() -> int:
            return threading.get_ident()

        assert where_am_i.name == "where"
        assert await where_am_i.execute() != main_thread
