"""Ephemeral secret material for one fetch operation.

The broker turns the overlapping auth options of a :class:`Source` into the
files, ssh-agent process and git config entries needed by the REST client
and by git, and releases all of them with a single idempotent ``cleanup()``.
"""

from __future__ import annotations

import os
import shlex
import tempfile
from pathlib import Path
from types import TracebackType
from typing import Literal

from gerritfetch.agent import ASKPASS_SCRIPT, SshAgent
from gerritfetch.auth import (
    BasicAuth,
    BasicOrDigestAuth,
    CookieFileAuth,
    DigestAuth,
    NoRestAuth,
    RestAuth,
    SshKeyAuth,
    TransportAuth,
    transport_auth,
)
from gerritfetch.environment import ProcessEnvironment
from gerritfetch.errors import (
    ConfigError,
    GerritFetchError,
    InternalError,
    ResourceError,
    ValidationError,
)
from gerritfetch.models import Source
from gerritfetch.observability import StructuredLogger
from gerritfetch.runner import CommandRunner, SubprocessRunner

ArtifactKind = Literal["cookies", "credentials", "private_key", "askpass"]

_PREFIXES: dict[ArtifactKind, str] = {
    "cookies": "gerritfetch-cookies-",
    "credentials": "gerritfetch-creds-",
    "private_key": "gerritfetch-private-key-",
    "askpass": "gerritfetch-askpass-",
}

# Characters that would break the git-credential wire format.
_FORBIDDEN_CREDENTIAL_CHARS = ("\x00", "\n")


def ssh_command(key_path: Path) -> str:
    """Build the ``core.sshCommand`` value pinning ``key_path``."""
    # -F /dev/null ignores any ambient ssh config.
    # TODO: pin the review server's host key fingerprint instead of disabling
    # StrictHostKeyChecking.
    return " ".join(
        [
            "ssh",
            "-F",
            "/dev/null",
            "-i",
            shlex.quote(str(key_path)),
            "-o",
            "IdentitiesOnly=yes",
            "-o",
            "UserKnownHostsFile=/dev/null",
            "-o",
            "StrictHostKeyChecking=no",
        ]
    )


class SecretBroker:
    """Owns the secret artifacts of one operation.

    Use as a context manager so ``cleanup()`` runs on every exit path::

        with SecretBroker(source, temp_dir=work) as broker:
            entries = broker.vcs_config_entries()
            ...
    """

    def __init__(
        self,
        source: Source,
        *,
        temp_dir: str | Path | None = None,
        runner: CommandRunner | None = None,
        environment: ProcessEnvironment | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        self.source = source
        self.temp_dir = Path(temp_dir) if temp_dir is not None else Path(tempfile.gettempdir())
        self.runner = runner if runner is not None else SubprocessRunner()
        self.environment = environment if environment is not None else ProcessEnvironment()
        self.logger = logger if logger is not None else StructuredLogger()
        self.auth: TransportAuth = transport_auth(source)
        self._artifacts: dict[ArtifactKind, Path] = {}
        self._agent: SshAgent | None = None
        self._key_loaded = False

    def __enter__(self) -> SecretBroker:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()

    def artifacts(self) -> dict[ArtifactKind, Path]:
        return dict(self._artifacts)

    @property
    def agent_running(self) -> bool:
        return self._agent is not None and self._agent.running

    def rest_auth_mechanism(self) -> RestAuth:
        """Pick the REST client mechanism. An ssh key never affects it."""
        source = self.source
        if source.username:
            if source.digest_auth:
                mechanism: RestAuth = DigestAuth(source.username, source.password)
            else:
                mechanism = BasicAuth(source.username, source.password)
        elif source.password:
            raise ConfigError(
                "password without username",
                hint="Set source.username or remove source.password.",
            )
        elif source.cookies:
            mechanism = CookieFileAuth(self.ensure_cookie_file())
        else:
            mechanism = NoRestAuth()
        self.logger.log(
            operation="rest_auth",
            message="selected REST auth mechanism",
            extra={"mechanism": type(mechanism).__name__},
        )
        return mechanism

    def vcs_config_entries(self) -> dict[str, str]:
        """Return git config entries to apply before any network command."""
        entries: dict[str, str] = {}
        auth = self.auth
        if isinstance(auth, SshKeyAuth):
            key_path = self.ensure_private_key_file()
            self._load_key_into_agent(key_path, auth)
            entries["core.sshCommand"] = ssh_command(key_path)
        elif isinstance(auth, BasicOrDigestAuth):
            creds_path = self.ensure_credentials_file()
            # See git-credential(1), "Custom helpers".
            entries["credential.helper"] = f"!cat {shlex.quote(str(creds_path))}"

        if self.source.cookies:
            entries["http.cookieFile"] = str(self.ensure_cookie_file())

        self.logger.log(
            operation="vcs_config",
            message="computed git config entries",
            extra={"keys": sorted(entries)},
        )
        return entries

    def ensure_cookie_file(self) -> Path:
        return self._ensure_file("cookies", self.source.cookies)

    def ensure_credentials_file(self) -> Path:
        if "private_key" in self._artifacts:
            raise InternalError("credentials file requested while a private key file is live.")
        username, password = self.source.username, self.source.password
        for field_name, value in (("username", username), ("password", password)):
            if any(char in value for char in _FORBIDDEN_CREDENTIAL_CHARS):
                raise ValidationError(
                    "invalid character in username or password",
                    hint="Credentials must not contain NUL bytes or newlines.",
                    context={"field": field_name},
                )
        return self._ensure_file("credentials", f"username={username}\npassword={password}\n")

    def ensure_private_key_file(self) -> Path:
        if "credentials" in self._artifacts:
            raise InternalError("private key file requested while a credentials file is live.")
        key = self.source.private_key
        if not key.endswith("\n"):
            key += "\n"
        return self._ensure_file("private_key", key)

    def ensure_askpass_file(self) -> Path:
        return self._ensure_file("askpass", ASKPASS_SCRIPT, mode=0o700)

    def cleanup(self) -> None:
        """Release every artifact. Tool and filesystem failures are logged, not raised."""
        for kind in list(self._artifacts):
            self._discard(kind)

        try:
            self._stop_agent()
        finally:
            self._key_loaded = False
            self.environment.restore()

    def _stop_agent(self) -> None:
        if self._agent is None:
            return
        agent, self._agent = self._agent, None
        try:
            result = agent.kill()
        except GerritFetchError as exc:
            self.logger.log(
                operation="cleanup",
                message="error stopping ssh-agent",
                level="warning",
                extra={"error": str(exc)},
            )
            return
        if result is not None and not result.ok:
            self.logger.log(
                operation="cleanup",
                message="ssh-agent -k failed",
                level="warning",
                extra={"returncode": result.returncode, "output": result.output[:2000]},
            )
        elif result is not None:
            self.logger.log(operation="cleanup", message="stopped ssh-agent")

    def _load_key_into_agent(self, key_path: Path, auth: SshKeyAuth) -> None:
        if self._key_loaded:
            return
        if self._agent is None:
            # Registered before start() so a failed start is still killed.
            self._agent = SshAgent(runner=self.runner, environment=self.environment)
            variables = self._agent.start()
            self.logger.log(
                operation="ssh_agent",
                message="started ssh-agent",
                extra={"variables": sorted(variables)},
            )
        askpass = self.ensure_askpass_file() if auth.passphrase else None
        self._agent.add_key(key_path, askpass=askpass, passphrase=auth.passphrase)
        self._key_loaded = True
        self.logger.log(
            operation="ssh_agent",
            message="added private key to ssh-agent",
            extra={"key": str(key_path)},
        )

    def _ensure_file(self, kind: ArtifactKind, contents: str, *, mode: int = 0o600) -> Path:
        existing = self._artifacts.get(kind)
        if existing is not None:
            return existing
        try:
            fd, name = tempfile.mkstemp(prefix=_PREFIXES[kind], dir=self.temp_dir)
        except OSError as exc:
            raise ResourceError(
                f"Could not create {kind} temp file.",
                hint="Check that the temp directory exists and is writable.",
                context={"temp_dir": str(self.temp_dir), "error": str(exc)},
            ) from exc

        path = Path(name)
        self._artifacts[kind] = path
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                os.fchmod(handle.fileno(), mode)
                handle.write(contents)
        except OSError as exc:
            self._discard(kind)
            raise ResourceError(
                f"Could not write {kind} temp file.",
                context={"path": name, "error": str(exc)},
            ) from exc

        self.logger.log(
            operation="materialize",
            message=f"wrote {kind} file",
            extra={"path": name, "bytes": len(contents)},
        )
        return path

    def _discard(self, kind: ArtifactKind) -> None:
        path = self._artifacts.pop(kind, None)
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            self.logger.log(
                operation="cleanup",
                message="error removing auth temp file",
                level="warning",
                extra={"path": str(path), "error": str(exc)},
            )


__all__ = ["ArtifactKind", "SecretBroker", "ssh_command"]
