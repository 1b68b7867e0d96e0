"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from gerritfetch.environment import ProcessEnvironment
from gerritfetch.runner import CommandResult

AGENT_OUTPUT = (
    "SSH_AUTH_SOCK=/tmp/ssh-XXXXabcd/agent.111798; export SSH_AUTH_SOCK;\n"
    "SSH_AGENT_PID=111799; export SSH_AGENT_PID;\n"
    "echo Agent pid 111799;\n"
)


@dataclass(frozen=True)
class RecordedCall:
    argv: tuple[str, ...]
    env: dict[str, str] | None


@dataclass
class FakeRunner:
    """Records commands and answers with scripted results by argv prefix."""

    calls: list[RecordedCall] = field(default_factory=list)
    scripted: list[tuple[tuple[str, ...], int, str]] = field(default_factory=list)

    def script(self, prefix: Sequence[str], *, returncode: int = 0, output: str = "") -> None:
        self.scripted.append((tuple(prefix), returncode, output))

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        command = tuple(argv)
        self.calls.append(RecordedCall(argv=command, env=dict(env) if env is not None else None))
        for prefix, returncode, output in self.scripted:
            if command[: len(prefix)] == prefix:
                return CommandResult(argv=command, returncode=returncode, output=output)
        return CommandResult(argv=command, returncode=0, output="")

    def commands(self, program: str) -> list[tuple[str, ...]]:
        return [call.argv for call in self.calls if call.argv[0] == program]

    def git_args(self) -> list[tuple[str, ...]]:
        """git invocations with the leading ``git -C <dir>`` removed."""
        return [call[3:] for call in self.commands("git")]


@pytest.fixture
def fake_runner() -> FakeRunner:
    runner = FakeRunner()
    runner.script(["ssh-agent", "-s"], output=AGENT_OUTPUT)
    return runner


@pytest.fixture
def env_table() -> dict[str, str]:
    return {"PATH": "/usr/bin:/bin", "SSH_AUTH_SOCK": "/run/user/1000/login.sock"}


@pytest.fixture
def environment(env_table: dict[str, str]) -> ProcessEnvironment:
    return ProcessEnvironment(env_table)
