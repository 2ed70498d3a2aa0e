"""Configuration: Pydantic models for termbridge settings."""

from __future__ import annotations

import json
import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from termbridge.pty.geometry import Chrome


def default_top_padding() -> int:
    """Rows kept free at the top of the host window.

    iTerm2 draws over row 0, so it gets a larger margin.
    """
    if os.environ.get("TERM_PROGRAM") == "iTerm.app":
        return 4
    return 1


class Target(BaseModel):
    """A host the bridge can open a session to."""

    name: str = Field(default="", description="Label shown in the session header")
    host: str = Field(description="Hostname or IP address passed to ssh")
    user: str | None = Field(default=None)
    port: int | None = Field(default=None, ge=1, le=65535)
    identity_file: str | None = Field(default=None)

    def model_post_init(self, __context: Any) -> None:
        if not self.name:
            self.name = self.host

    @property
    def destination(self) -> str:
        return f"{self.user}@{self.host}" if self.user else self.host


class SSHConfig(BaseModel):
    """How the ssh client is invoked."""

    binary: str = Field(default="ssh")
    strict_host_key_checking: bool = Field(
        default=False,
        description=(
            "Keep ssh's host-key prompts. Off by default: the dashboard has no "
            "way to answer an interactive prompt before the panel is shown."
        ),
    )
    log_level: str = Field(default="ERROR")
    extra_options: list[str] = Field(
        default_factory=list, description="Extra ssh arguments, e.g. ['-o', 'ForwardAgent=yes']"
    )


class TerminalConfig(BaseModel):
    """Session terminal and I/O settings."""

    term: str | None = Field(
        default=None,
        description="TERM for the remote side (default: inherited if 256-colour, else xterm-256color)",
    )
    read_size: int = Field(default=4096, gt=0, description="Max bytes per PTY read")
    max_events: int = Field(
        default=1024, gt=0, description="Output queue bound before the reader blocks"
    )
    poll_interval: float = Field(default=0.05, gt=0, description="Output pump tick, seconds")
    write_timeout: float = Field(default=1.0, gt=0, description="Max wait for the PTY to accept input")
    join_timeout: float = Field(default=1.0, ge=0, description="Max wait for the reader on teardown")
    min_rows: int = Field(default=5, ge=1)
    min_cols: int = Field(default=40, ge=1)
    reserved_rows: int = Field(default=6, ge=0)
    reserved_cols: int = Field(default=4, ge=0)
    top_padding: int = Field(default_factory=default_top_padding, ge=0)

    def chrome(self) -> Chrome:
        return Chrome(
            reserved_rows=self.reserved_rows,
            reserved_cols=self.reserved_cols,
            top_padding=self.top_padding,
            min_rows=self.min_rows,
            min_cols=self.min_cols,
        )


class BridgeConfig(BaseModel):
    """Top-level termbridge configuration."""

    ssh: SSHConfig = Field(default_factory=SSHConfig)
    terminal: TerminalConfig = Field(default_factory=TerminalConfig)
    targets: list[Target] = Field(default_factory=list)

    @classmethod
    def load(cls, config_path: str | None = None) -> BridgeConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            TERMBRIDGE_SSH            - ssh binary to run
            TERMBRIDGE_TERM           - TERM exported to the remote side
            TERMBRIDGE_TOP_PADDING    - Rows reserved above the UI
            TERMBRIDGE_POLL_INTERVAL  - Output pump interval in seconds
        """
        load_dotenv(override=True)

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                config_data = json.load(f)

        ssh = config_data.get("ssh", {})
        env_ssh = os.environ.get("TERMBRIDGE_SSH")
        if env_ssh:
            ssh["binary"] = env_ssh
        if ssh:
            config_data["ssh"] = ssh

        terminal = config_data.get("terminal", {})

        env_term = os.environ.get("TERMBRIDGE_TERM")
        if env_term:
            terminal["term"] = env_term

        env_padding = os.environ.get("TERMBRIDGE_TOP_PADDING")
        if env_padding:
            try:
                padding = int(env_padding)
            except ValueError:
                padding = -1
            if padding >= 0:
                terminal["top_padding"] = padding

        env_poll = os.environ.get("TERMBRIDGE_POLL_INTERVAL")
        if env_poll:
            try:
                poll = float(env_poll)
            except ValueError:
                poll = 0.0
            if poll > 0:
                terminal["poll_interval"] = poll

        if terminal:
            config_data["terminal"] = terminal

        return cls.model_validate(config_data)

    def find_target(self, name: str) -> Target | None:
        for target in self.targets:
            if target.name == name or target.host == name:
                return target
        return None
