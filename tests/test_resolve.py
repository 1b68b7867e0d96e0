import pytest

from gerritfetch.errors import InternalError, NotFoundError, ValidationError
from gerritfetch.models import FetchInfo, FetchTarget, RevisionDescriptor, Source
from gerritfetch.resolve import inject_ssh_user, resolve_fetch_target

REVISION = RevisionDescriptor(
    revision="0123456789abcdef0123456789abcdef01234567",
    ref="refs/changes/45/12345/3",
    fetch={
        "http": FetchInfo(url="https://review.example.com/project", ref="refs/changes/45/12345/3"),
        "anonymous http": FetchInfo(url="https://anon.example.com/project", ref="refs/anon/3"),
        "ssh": FetchInfo(url="ssh://review.example.com:29418/project", ref="refs/ssh/3"),
    },
)


def test_ssh_user_is_injected_after_scheme() -> None:
    source = Source(
        url="https://review.example.com",
        private_key="KEY",
        private_key_user="ci",
        fetch_url="ssh://host/repo",
    )

    target = resolve_fetch_target(source, REVISION)

    assert target == FetchTarget(url="ssh://ci@host/repo", ref=REVISION.ref)


@pytest.mark.parametrize(
    "fetch_url",
    ["", "https://host/repo", "git://host/repo", "SSH://host/repo", "host:repo"],
)
def test_ssh_user_requires_ssh_fetch_url(fetch_url: str) -> None:
    source = Source(
        url="https://review.example.com",
        private_key_user="ci",
        fetch_url=fetch_url,
        fetch_protocol="ssh",
    )

    with pytest.raises(ValidationError) as excinfo:
        resolve_fetch_target(source, REVISION)

    assert "not an ssh url" in str(excinfo.value)


def test_inject_ssh_user_rejects_empty_remainder() -> None:
    with pytest.raises(InternalError):
        inject_ssh_user("ssh://", "ci")


def test_inject_ssh_user_keeps_port_and_path() -> None:
    assert inject_ssh_user("ssh://review:29418/a/b", "bot") == "ssh://bot@review:29418/a/b"


def test_explicit_fetch_url_uses_default_ref() -> None:
    source = Source(url="https://review.example.com", fetch_url="https://mirror.example.com/p")

    target = resolve_fetch_target(source, REVISION)

    assert target == FetchTarget(url="https://mirror.example.com/p", ref=REVISION.ref)


def test_default_protocol_prefers_http() -> None:
    target = resolve_fetch_target(Source(url="https://review.example.com"), REVISION)

    assert target == FetchTarget(url="https://review.example.com/project", ref="refs/changes/45/12345/3")


def test_fallback_skips_missing_http() -> None:
    revision = RevisionDescriptor(
        revision="abc",
        ref="refs/changes/01/1/1",
        fetch={"anonymous http": FetchInfo(url="https://anon.example.com/p", ref="refs/anon/1")},
    )

    target = resolve_fetch_target(Source(url="https://review.example.com"), revision)

    assert target == FetchTarget(url="https://anon.example.com/p", ref="refs/anon/1")


def test_explicit_protocol_overrides_default_ref() -> None:
    source = Source(url="https://review.example.com", fetch_protocol="ssh")

    target = resolve_fetch_target(source, REVISION)

    assert target == FetchTarget(url="ssh://review.example.com:29418/project", ref="refs/ssh/3")


def test_missing_protocol_is_not_found() -> None:
    source = Source(url="https://review.example.com", fetch_protocol="git")

    with pytest.raises(NotFoundError) as excinfo:
        resolve_fetch_target(source, REVISION)

    assert "no fetch info for protocol 'git'" in str(excinfo.value)
    assert excinfo.value.context["available"] == "anonymous http, http, ssh"


def test_no_default_protocol_available_is_not_found() -> None:
    revision = RevisionDescriptor(revision="abc", ref="refs/x", fetch={"ssh": REVISION.fetch["ssh"]})

    with pytest.raises(NotFoundError) as excinfo:
        resolve_fetch_target(Source(url="https://review.example.com"), revision)

    assert "http or anonymous http" in str(excinfo.value)


def test_resolution_is_repeatable() -> None:
    source = Source(url="https://review.example.com", fetch_protocol="anonymous http")

    assert resolve_fetch_target(source, REVISION) == resolve_fetch_target(source, REVISION)
