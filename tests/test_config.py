"""Tests for termbridge.config (models and load precedence)."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from termbridge.config import BridgeConfig, Target, TerminalConfig, default_top_padding
from termbridge.pty.geometry import Chrome

_ENV_VARS = (
    "TERMBRIDGE_SSH",
    "TERMBRIDGE_TERM",
    "TERMBRIDGE_TOP_PADDING",
    "TERMBRIDGE_POLL_INTERVAL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.delenv("TERM_PROGRAM", raising=False)


class TestTarget:
    def test_name_defaults_to_host(self) -> None:
        assert Target(host="10.0.0.5").name == "10.0.0.5"

    def test_destination(self) -> None:
        assert Target(host="box").destination == "box"
        assert Target(host="box", user="ops").destination == "ops@box"

    def test_port_range(self) -> None:
        with pytest.raises(ValidationError):
            Target(host="box", port=70000)


class TestTerminalConfig:
    def test_defaults(self) -> None:
        terminal = TerminalConfig()
        assert terminal.term is None
        assert terminal.max_events == 1024
        assert terminal.top_padding == 1
        assert terminal.chrome() == Chrome()

    def test_iterm_padding(self, monkeypatch) -> None:
        monkeypatch.setenv("TERM_PROGRAM", "iTerm.app")
        assert default_top_padding() == 4
        assert TerminalConfig().top_padding == 4


class TestLoad:
    def test_defaults_without_file(self, tmp_path) -> None:
        config = BridgeConfig.load(str(tmp_path / "missing.json"))
        assert config.ssh.binary == "ssh"
        assert config.targets == []

    def test_file(self, tmp_path) -> None:
        path = tmp_path / "termbridge.json"
        path.write_text(
            json.dumps(
                {
                    "ssh": {"log_level": "QUIET"},
                    "terminal": {"term": "screen-256color", "top_padding": 2},
                    "targets": [{"name": "web-1", "host": "10.0.0.5", "user": "ops"}],
                }
            )
        )
        config = BridgeConfig.load(str(path))
        assert config.ssh.log_level == "QUIET"
        assert config.terminal.term == "screen-256color"
        assert config.terminal.top_padding == 2
        assert config.find_target("web-1").host == "10.0.0.5"
        assert config.find_target("10.0.0.5").name == "web-1"
        assert config.find_target("nope") is None

    def test_env_overrides_file(self, tmp_path, monkeypatch) -> None:
        path = tmp_path / "termbridge.json"
        path.write_text(json.dumps({"terminal": {"top_padding": 2}}))
        monkeypatch.setenv("TERMBRIDGE_SSH", "/opt/ssh")
        monkeypatch.setenv("TERMBRIDGE_TERM", "vt220")
        monkeypatch.setenv("TERMBRIDGE_TOP_PADDING", "5")
        monkeypatch.setenv("TERMBRIDGE_POLL_INTERVAL", "0.02")
        config = BridgeConfig.load(str(path))
        assert config.ssh.binary == "/opt/ssh"
        assert config.terminal.term == "vt220"
        assert config.terminal.top_padding == 5
        assert config.terminal.poll_interval == 0.02

    def test_invalid_padding_ignored(self, monkeypatch) -> None:
        monkeypatch.setenv("TERMBRIDGE_TOP_PADDING", "lots")
        assert BridgeConfig.load().terminal.top_padding == 1

    @pytest.mark.parametrize("value", ["fast", "0", "-1"])
    def test_invalid_poll_interval_ignored(self, monkeypatch, value: str) -> None:
        monkeypatch.setenv("TERMBRIDGE_POLL_INTERVAL", value)
        assert BridgeConfig.load().terminal.poll_interval == 0.05
