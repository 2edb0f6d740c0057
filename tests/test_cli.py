"""Tests for the command-line entry point and the REPL loop."""

import socket

import pytest
from click.testing import CliRunner

from httpconsole import __version__, cli
from httpconsole import config as config_module
from httpconsole.cli import _interactive_repl, main

from test_commands import RecordingSession, ScriptedReader


@pytest.fixture
def isolated_paths(tmp_path, monkeypatch):
    monkeypatch.setattr(config_module, "CONFIG_DIR", tmp_path / "config")
    monkeypatch.setattr(config_module, "DATA_DIR", tmp_path / "data")
    monkeypatch.setattr(config_module, "LOGS_DIR", tmp_path / "logs")
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "config" / "config.yaml")
    monkeypatch.setattr(cli, "CONFIG_FILE", tmp_path / "config" / "config.yaml")
    monkeypatch.setattr(cli, "LOG_FILE", tmp_path / "logs" / "httpconsole.log")
    for name in ("NO_COLOR", "HTTP_PROXY", "http_proxy"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


# ── REPL loop ────────────────────────────────────────────────────────────────


def test_repl_ends_on_eof(capsys):
    session = RecordingSession()
    reader = ScriptedReader(["GET /a"])
    _interactive_repl(session, reader)
    assert session.performed == [("GET", "http://example.com:80/a", "")]
    assert reader.prompts == ["http://example.com:80/: ", "http://example.com:80/: "]
    assert capsys.readouterr().out == "\n"


def test_repl_ends_on_quit():
    session = RecordingSession()
    reader = ScriptedReader([".q", "GET /never"])
    _interactive_repl(session, reader)
    assert session.performed == []
    assert reader.lines == ["GET /never"]


def test_repl_skips_blank_lines_and_tracks_prompt():
    session = RecordingSession()
    reader = ScriptedReader(["", "   ", "/users", "GET", ".exit"])
    _interactive_repl(session, reader)
    assert session.performed == [("GET", "http://example.com:80/users", "")]
    assert reader.prompts[-1] == "http://example.com:80/users: "


def test_repl_survives_interrupt():
    class InterruptOnce(ScriptedReader):
        interrupted = False

        def read_line(self, prompt):
            if not self.interrupted:
                self.interrupted = True
                raise KeyboardInterrupt
            return super().read_line(prompt)

    session = RecordingSession()
    _interactive_repl(session, InterruptOnce(["GET", ".q"]))
    assert len(session.performed) == 1


# ── Entry point ──────────────────────────────────────────────────────────────


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_invalid_target_exits_with_error(isolated_paths):
    result = CliRunner().invoke(main, ["--no-colors", "http://"])
    assert result.exit_code == 1
    assert "httpconsole: invalid host name" in result.output


def test_unreachable_target_exits_with_error(isolated_paths):
    s = socket.socket()
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    result = CliRunner().invoke(main, ["--no-colors", f"127.0.0.1:{port}"])
    assert result.exit_code == 1
    assert "httpconsole: dial 127.0.0.1:" in result.output


def test_save_config_writes_defaults(isolated_paths):
    result = CliRunner().invoke(main, ["--no-colors", "--cookies", "--save-config", "http://"])
    saved = (isolated_paths / "config" / "config.yaml").read_text()
    assert "cookies: true" in saved
    assert "colors: false" in saved
    assert result.exit_code == 1
