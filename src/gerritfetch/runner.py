"""Synchronous command execution used for git and ssh-agent."""

from __future__ import annotations

import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from gerritfetch.errors import ResourceError


@dataclass(frozen=True, slots=True)
class CommandResult:
    argv: tuple[str, ...]
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run ``argv`` and return its exit status with combined output."""


@dataclass(frozen=True, slots=True)
class SubprocessRunner:
    """Runs commands on the host, merging stderr into stdout."""

    timeout: float | None = None

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        command = tuple(argv)
        try:
            completed = subprocess.run(
                command,
                cwd=cwd,
                env=dict(env) if env is not None else None,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as exc:
            raise ResourceError(
                f"Could not run `{command[0]}`.",
                hint="Ensure the executable is installed and in PATH.",
                context={"argv": " ".join(command), "error": str(exc)},
            ) from exc
        return CommandResult(argv=command, returncode=completed.returncode, output=completed.stdout)


__all__ = ["CommandResult", "CommandRunner", "SubprocessRunner"]
