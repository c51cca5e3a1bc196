"""Tests for the sessions CLI commands."""

import asyncio
import json

import pytest
from typer.testing import CliRunner

from agentrelay.api.cli.main import app
from agentrelay.core.domain.items import AssistantMessage, ToolResultItem, UserMessage
from agentrelay.infrastructure.persistence.file_session import FileSession

runner = CliRunner()


@pytest.fixture
def work_dir(tmp_path):
    session = FileSession("demo", tmp_path)
    asyncio.run(
        session.add_items(
            [
                UserMessage("hello there"),
                ToolResultItem(call_id="c1", name="lookup", success=False, error="not found"),
                AssistantMessage(content="sorry", agent="Helper"),
            ]
        )
    )
    return tmp_path


def invoke(work_dir, *args):
    return runner.invoke(app, ["--work-dir", str(work_dir), "sessions", *args])


class TestSessionsCommands:
    def test_list(self, work_dir):
        result = invoke(work_dir, "list")

        assert result.exit_code == 0
        assert "demo" in result.output
        assert "3" in result.output

    def test_show(self, work_dir):
        result = invoke(work_dir, "show", "demo")

        assert result.exit_code == 0
        assert "hello there" in result.output
        assert "not found" in result.output

    def test_show_json_with_limit(self, work_dir):
        result = invoke(work_dir, "show", "demo", "--limit", "1", "--json")

        assert result.exit_code == 0
        items = json.loads(result.output)
        assert items == [AssistantMessage(content="sorry", agent="Helper").to_dict()]

    def test_show_missing_session(self, work_dir):
        result = invoke(work_dir, "show", "ghost")

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_clear_with_confirmation_flag(self, work_dir):
        result = invoke(work_dir, "clear", "demo", "--yes")

        assert result.exit_code == 0
        assert FileSession.list_sessions(work_dir) == []

    def test_clear_aborted(self, work_dir):
        result = runner.invoke(
            app, ["--work-dir", str(work_dir), "sessions", "clear", "demo"], input="n\n"
        )

        assert result.exit_code == 1
        assert FileSession.list_sessions(work_dir) == ["demo"]


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert "0.1.0" in result.output
