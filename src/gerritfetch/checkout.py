"""Fetch and check out a patch set with broker-provided credentials."""

from __future__ import annotations

import signal
import threading
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from types import FrameType

import httpx

from gerritfetch.broker import SecretBroker
from gerritfetch.environment import ProcessEnvironment
from gerritfetch.errors import ResourceError
from gerritfetch.models import FetchTarget, RevisionDescriptor, Source
from gerritfetch.observability import StructuredLogger
from gerritfetch.resolve import resolve_fetch_target
from gerritfetch.rest import build_client
from gerritfetch.runner import CommandRunner, SubprocessRunner


@dataclass(frozen=True, slots=True)
class FetchResult:
    path: Path
    revision: RevisionDescriptor
    target: FetchTarget | None


def fetch_flags(source: Source, *args: str) -> list[str]:
    flags = list(args)
    if source.depth > 0:
        flags.append(f"--depth={source.depth}")
    return flags


def run_git(
    runner: CommandRunner,
    directory: Path,
    *args: str,
    env: Mapping[str, str] | None = None,
    logger: StructuredLogger | None = None,
) -> str:
    argv = ["git", "-C", str(directory), *args]
    if logger is not None:
        logger.log(operation="git", message=" ".join(argv[3:]))
    result = runner.run(argv, env=env)
    if not result.ok:
        raise ResourceError(
            "Git command failed.",
            hint="Inspect the git output for details.",
            context={
                "argv": " ".join(argv),
                "returncode": str(result.returncode),
                "output": result.output[:2000],
            },
        )
    return result.output


def checkout_revision(
    directory: str | Path,
    source: Source,
    target: FetchTarget,
    *,
    broker: SecretBroker,
    runner: CommandRunner,
    sparse: Sequence[str] | None = None,
    logger: StructuredLogger | None = None,
) -> None:
    """Initialise ``directory`` and check out ``target``.

    Broker config entries are applied before the first network command and
    skipped submodules are disabled before the recursive submodule update.
    """
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)

    def git(*args: str) -> str:
        return run_git(
            runner,
            path,
            *args,
            env=broker.environment.child_env(),
            logger=logger,
        )

    git("init")
    git("config", "color.ui", "always")
    git("config", "advice.detachedHead", "false")
    for key, value in broker.vcs_config_entries().items():
        git("config", key, value)
    if sparse is not None:
        git("sparse-checkout", "set", *sparse)

    git("remote", "add", "origin", target.url)
    git(*fetch_flags(source, "fetch", "origin", target.ref))
    git("checkout", "FETCH_HEAD")

    for submodule in source.skip_submodules:
        git("config", f"submodule.{submodule}.update", "none")
    git(*fetch_flags(source, "submodule", "update", "--init", "--recursive"))


@contextmanager
def sigterm_as_exit() -> Iterator[None]:
    """Turn SIGTERM into ``SystemExit`` so ``finally`` blocks still run."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _handler(signum: int, frame: FrameType | None) -> None:
        raise SystemExit(128 + signum)

    previous = signal.signal(signal.SIGTERM, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous if previous is not None else signal.SIG_DFL)


def fetch_revision(
    source: Source,
    change_id: str,
    revision: str,
    target_dir: str | Path,
    *,
    fetch: bool | None = None,
    sparse: Sequence[str] | None = None,
    temp_dir: str | Path | None = None,
    runner: CommandRunner | None = None,
    environment: ProcessEnvironment | None = None,
    transport: httpx.BaseTransport | None = None,
    logger: StructuredLogger | None = None,
) -> FetchResult:
    """Load ``revision`` from the review server and check it out.

    ``fetch`` overrides ``source.fetch``. Secret material lives only for
    the duration of this call.
    """
    logger = logger if logger is not None else StructuredLogger()
    runner = runner if runner is not None else SubprocessRunner()
    path = Path(target_dir)
    should_fetch = source.fetch if fetch is None else fetch

    with sigterm_as_exit(), SecretBroker(
        source,
        temp_dir=temp_dir,
        runner=runner,
        environment=environment,
        logger=logger,
    ) as broker:
        with build_client(source.url, broker.rest_auth_mechanism(), transport=transport) as client:
            descriptor = client.get_revision(change_id, revision)

        if not should_fetch:
            path.mkdir(parents=True, exist_ok=True)
            return FetchResult(path=path, revision=descriptor, target=None)

        target = resolve_fetch_target(source, descriptor)
        logger.log(
            operation="fetch",
            message="fetching revision",
            extra={
                "url": target.url,
                "ref": target.ref,
                "ssh_user": source.private_key_user,
                "private_key_length": len(source.private_key),
            },
        )
        checkout_revision(
            path,
            source,
            target,
            broker=broker,
            runner=runner,
            sparse=sparse,
            logger=logger,
        )
        return FetchResult(path=path, revision=descriptor, target=target)


__all__ = [
    "FetchResult",
    "checkout_revision",
    "fetch_flags",
    "fetch_revision",
    "run_git",
    "sigterm_as_exit",
]
