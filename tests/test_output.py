"""Tests for the diagnostics channel.

Covers:
- NO_COLOR / TERM=dumb color disabling
- stderr discipline
- Quiet mode suppression rules
- Verbose mode debug output
- Rich markup escaping
- Output file redirection
- Global instance management
- Titled blocks
"""

from __future__ import annotations

from io import StringIO

import pytest

from httpchain.output import (
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


@pytest.fixture(autouse=True)
def _reset_global_output():
    """Ensure the global output instance is reset between tests."""
    reset_output()
    yield
    reset_output()


class TestColorDisabling:
    """Test that NO_COLOR and TERM=dumb are respected."""

    def test_no_color_env_any_value(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb_disables_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_normal_term_keeps_color(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


class TestStderrDiscipline:
    def test_info_goes_to_stderr(self, capfd):
        OutputManager(no_color=True).info("retrying")
        captured = capfd.readouterr()
        assert captured.out == ""
        assert "retrying" in captured.err


class TestQuietMode:
    """Test that quiet suppresses info but not warning/error."""

    def test_quiet_suppresses_info(self, capfd):
        OutputManager(no_color=True, quiet=True).info("should not appear")
        assert capfd.readouterr().err == ""

    def test_quiet_does_not_suppress_warning(self, capfd):
        OutputManager(no_color=True, quiet=True).warning("important warning")
        assert "Warning: important warning" in capfd.readouterr().err

    def test_quiet_does_not_suppress_error(self, capfd):
        OutputManager(no_color=True, quiet=True).error("critical error")
        assert "Error: critical error" in capfd.readouterr().err


class TestVerboseMode:
    def test_debug_hidden_by_default(self, capfd):
        OutputManager(no_color=True).debug("should not appear")
        assert capfd.readouterr().err == ""

    def test_debug_shown_with_prefix(self, capfd):
        OutputManager(no_color=True, verbose=True).debug("trace info")
        assert "[debug] trace info" in capfd.readouterr().err

    def test_properties(self):
        mgr = OutputManager(verbose=True, quiet=True)
        assert mgr.is_verbose is True
        assert mgr.is_quiet is True


class TestRichConsole:
    def test_markup_in_messages_is_escaped(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        buf = StringIO()
        OutputManager(file=buf).info("body: [bold]not markup[/bold]")
        assert "[bold]not markup[/bold]" in buf.getvalue()

    def test_output_file_redirection(self):
        buf = StringIO()
        OutputManager(no_color=True, file=buf).warning("to file")
        assert buf.getvalue() == "Warning: to file\n"


class TestGlobalInstance:
    """Test get_output / set_output / reset_output."""

    def test_get_output_creates_default(self):
        assert isinstance(get_output(), OutputManager)

    def test_set_output_overrides(self):
        custom = OutputManager(no_color=True)
        set_output(custom)
        assert get_output() is custom

    def test_set_then_reset_then_get(self):
        first = OutputManager(no_color=True)
        set_output(first)
        reset_output()
        assert get_output() is not first


class TestBlock:
    def test_plain_block(self):
        buf = StringIO()
        OutputManager(no_color=True, file=buf).block("Request", [("method", "GET"), ("url", "https://x")])
        assert buf.getvalue() == "Request:\n- method: GET\n- url: https://x\n"

    def test_block_suppressed_by_quiet(self):
        buf = StringIO()
        OutputManager(no_color=True, quiet=True, file=buf).block("Response", [("status code", 200)])
        assert buf.getvalue() == ""

    def test_rich_block_escapes_values(self, monkeypatch):
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        buf = StringIO()
        OutputManager(file=buf).block("Response", [("headers", "[X-A: 1]")])
        out = buf.getvalue()
        assert "Response:" in out
        assert "- headers: [X-A: 1]" in out
