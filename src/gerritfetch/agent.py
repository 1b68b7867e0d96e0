"""ssh-agent lifecycle and parsing of its startup output."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from gerritfetch.environment import ProcessEnvironment
from gerritfetch.errors import ResourceError
from gerritfetch.runner import CommandResult, CommandRunner

PASSPHRASE_ENV = "GIT_SSH_PRIVATE_KEY_PASS"

ASKPASS_SCRIPT = f"""#!/bin/sh
printf '%s\\n' "${PASSPHRASE_ENV}"
"""


def parse_agent_output(output: str) -> dict[str, str]:
    """Extract variable assignments from ``ssh-agent -s`` output.

    Each relevant line looks like ``NAME=value; export NAME;``. Only the
    text before the first ``;`` is inspected and lines without an
    assignment there (``echo Agent pid 42;``) are skipped.
    """
    variables: dict[str, str] = {}
    for line in output.splitlines():
        statement = line.split(";", 1)[0].strip()
        name, sep, value = statement.partition("=")
        name = name.strip()
        if not sep or not name or " " in name:
            continue
        variables[name] = value
    return variables


@dataclass(slots=True)
class SshAgent:
    runner: CommandRunner
    environment: ProcessEnvironment
    variables: dict[str, str] = field(default_factory=dict)

    @property
    def running(self) -> bool:
        return bool(self.variables)

    def start(self) -> dict[str, str]:
        result = self.runner.run(["ssh-agent", "-s"], env=self.environment.child_env())
        if not result.ok:
            raise ResourceError(
                "ssh-agent failed to start.",
                hint="Ensure OpenSSH client tools are installed.",
                context={"returncode": str(result.returncode), "output": result.output[:2000]},
            )
        variables = parse_agent_output(result.output)
        # Keep whatever was published so a half-started agent can still be killed.
        self.variables = variables
        if "SSH_AUTH_SOCK" not in variables:
            raise ResourceError(
                "ssh-agent did not publish SSH_AUTH_SOCK.",
                context={"variables": ", ".join(sorted(variables))},
            )
        self.environment.apply(variables)
        return dict(variables)

    def add_key(self, key_path: Path, *, askpass: Path | None = None, passphrase: str = "") -> None:
        extra = dict(self.variables)
        if askpass is not None:
            extra.update(
                {
                    PASSPHRASE_ENV: passphrase,
                    "SSH_ASKPASS_REQUIRE": "force",
                    "SSH_ASKPASS": str(askpass),
                    "DISPLAY": "",
                }
            )
        result = self.runner.run(["ssh-add", str(key_path)], env=self.environment.child_env(extra))
        if not result.ok:
            raise ResourceError(
                "ssh-add could not load the private key.",
                hint="Check private_key and private_key_passphrase.",
                context={
                    "key": str(key_path),
                    "returncode": str(result.returncode),
                    "output": result.output[:2000],
                },
            )

    def kill(self) -> CommandResult | None:
        if not self.running:
            return None
        variables = self.variables
        self.variables = {}
        return self.runner.run(["ssh-agent", "-k"], env=self.environment.child_env(variables))


__all__ = ["ASKPASS_SCRIPT", "PASSPHRASE_ENV", "SshAgent", "parse_agent_output"]
