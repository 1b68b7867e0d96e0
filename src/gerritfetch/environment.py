"""Explicit handle on the environment inherited by child processes."""

from __future__ import annotations

import os
from collections.abc import Mapping, MutableMapping

_UNSET = object()


class ProcessEnvironment:
    """Scoped writer over an environment mapping.

    ssh-agent publishes ``SSH_AUTH_SOCK``/``SSH_AGENT_PID`` and git, run as
    a child process, must inherit them. Mutations go through ``apply`` so
    they can be reverted with ``restore`` once the operation ends. Defaults
    to ``os.environ``; tests pass a plain dict.
    """

    def __init__(self, target: MutableMapping[str, str] | None = None) -> None:
        self._target = os.environ if target is None else target
        self._saved: dict[str, object] = {}

    def apply(self, variables: Mapping[str, str]) -> None:
        for name, value in variables.items():
            if name not in self._saved:
                self._saved[name] = self._target.get(name, _UNSET)
            self._target[name] = value

    def restore(self) -> None:
        for name, previous in self._saved.items():
            if previous is _UNSET:
                self._target.pop(name, None)
            else:
                self._target[name] = str(previous)
        self._saved.clear()

    def get(self, name: str) -> str | None:
        return self._target.get(name)

    def child_env(self, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        env = dict(self._target)
        if extra:
            env.update(extra)
        return env

    @property
    def modified(self) -> tuple[str, ...]:
        return tuple(sorted(self._saved))
