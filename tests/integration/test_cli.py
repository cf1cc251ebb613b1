"""Tests for the mcp-link command line, run against the echo server."""

import json
import sys
from pathlib import Path

import pytest
from click.testing import CliRunner

from mcp_link.cli import main, truncate

ECHO_SERVER = Path(__file__).parents[1] / "fixtures" / "echo_server.py"
SERVER = ["--", sys.executable, str(ECHO_SERVER)]


@pytest.fixture
def runner():
    return CliRunner()


class TestToolsCommand:
    @pytest.mark.integration
    def test_table(self, runner):
        result = runner.invoke(main, ["tools", *SERVER])

        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0].split() == ["NAME", "DESCRIPTION"]
        assert [line.split()[0] for line in lines[1:]] == [
            "echo",
            "fail",
            "image",
            "garbage",
            "crash",
            "sleep",
        ]
        assert "Echo the given text back" in result.output

    @pytest.mark.integration
    def test_json(self, runner):
        result = runner.invoke(main, ["tools", "--format", "json", *SERVER])

        assert result.exit_code == 0, result.output
        tools = json.loads(result.output)
        assert tools[0]["name"] == "echo"
        assert tools[0]["input_schema"]["type"] == "object"

    @pytest.mark.integration
    def test_server_rejecting_shutdown(self, runner):
        result = runner.invoke(main, ["tools", *SERVER, "--reject-shutdown"])

        assert result.exit_code == 0, result.output
        assert "Error:" not in result.output
        assert "echo" in result.output

    def test_requires_server_command(self, runner):
        result = runner.invoke(main, ["tools"])

        assert result.exit_code == 2
        assert "Missing argument" in result.output


class TestCallCommand:
    @pytest.mark.integration
    def test_text(self, runner):
        result = runner.invoke(main, ["call", "echo", "--args", '{"text": "hi there"}', *SERVER])

        assert result.exit_code == 0, result.output
        assert result.output == "hi there\n"

    @pytest.mark.integration
    def test_json(self, runner):
        result = runner.invoke(main, ["call", "image", "-f", "json", *SERVER])

        assert result.exit_code == 0, result.output
        payload = json.loads(result.output)
        assert payload["content"][0]["mime_type"] == "image/png"
        assert payload["is_error"] is False

    @pytest.mark.integration
    def test_tool_error_exit_status(self, runner):
        result = runner.invoke(main, ["call", "fail", *SERVER])

        assert result.exit_code == 2
        assert "tool failed" in result.output

    @pytest.mark.integration
    def test_rpc_error(self, runner):
        result = runner.invoke(main, ["call", "nope", *SERVER])

        assert result.exit_code == 1
        assert "Error: MCP Error -32602: Unknown tool: nope" in result.output

    @pytest.mark.parametrize("arguments", ["[1, 2]", "{not json"])
    def test_bad_arguments(self, runner, arguments):
        result = runner.invoke(main, ["call", "echo", "--args", arguments, *SERVER])

        assert result.exit_code == 2
        assert "--args" in result.output


class TestPingCommand:
    @pytest.mark.integration
    def test_ping(self, runner):
        result = runner.invoke(main, ["ping", *SERVER])

        assert result.exit_code == 0, result.output
        assert result.output == "ok: echo-server 1.0\n"

    def test_missing_executable(self, runner):
        result = runner.invoke(main, ["ping", "--", "/nonexistent/mcp-server-binary"])

        assert result.exit_code == 1
        assert "Error: Failed to spawn" in result.output

    def test_invalid_env_config(self, runner):
        result = runner.invoke(
            main, ["ping", *SERVER], env={"MCP_LINK_REQUEST_TIMEOUT": "soon"}
        )

        assert result.exit_code == 2
        assert "MCP_LINK_REQUEST_TIMEOUT" in result.output

    @pytest.mark.integration
    def test_ping_server_rejecting_shutdown(self, runner):
        result = runner.invoke(main, ["ping", *SERVER, "--reject-shutdown"])

        assert result.exit_code == 0, result.output
        assert "ok: echo-server 1.0" in result.output

    @pytest.mark.integration
    def test_global_options_reach_config(self, runner):
        result = runner.invoke(
            main, ["--timeout", "3", "--protocol-version", "2025-03-26", "ping", *SERVER]
        )

        assert result.exit_code == 0, result.output


class TestTruncate:
    def test_short_text_unchanged(self):
        assert truncate("hello") == "hello"

    def test_collapses_whitespace(self):
        assert truncate("a\n  b") == "a b"

    def test_long_text(self):
        assert truncate("x" * 100, max_len=10) == "xxxxxxx..."

    def test_none(self):
        assert truncate(None) == ""
