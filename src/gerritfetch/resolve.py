"""Resolve the URL and ref to fetch for a revision."""

from __future__ import annotations

from gerritfetch.errors import InternalError, NotFoundError, ValidationError
from gerritfetch.models import DEFAULT_FETCH_PROTOCOLS, FetchTarget, RevisionDescriptor, Source

SSH_SCHEME = "ssh://"


def inject_ssh_user(url: str, user: str) -> str:
    """Insert ``user@`` right after the ``ssh://`` scheme of ``url``."""
    if not url.startswith(SSH_SCHEME):
        raise ValidationError(
            "fetch url is not an ssh url but an ssh user was given",
            hint="Use an ssh:// fetch_url or drop private_key_user.",
            context={"fetch_url": url},
        )
    scheme, sep, rest = url.partition("://")
    if not sep or f"{scheme}{sep}" != SSH_SCHEME or not rest:
        raise InternalError(
            "Unable to split fetch url to insert the ssh user.",
            context={"fetch_url": url},
        )
    return f"{scheme}{sep}{user}@{rest}"


def resolve_fetch_target(source: Source, revision: RevisionDescriptor) -> FetchTarget:
    """Pick the fetch URL and ref.

    An explicit ``fetch_url`` wins (with the revision's default ref);
    otherwise the URL and ref come from the revision's fetch info for
    ``fetch_protocol`` or the first available default protocol.
    """
    url = source.fetch_url
    if source.private_key_user:
        url = inject_ssh_user(url, source.private_key_user)

    ref = revision.ref
    if url:
        return FetchTarget(url=url, ref=ref)

    protocol = source.fetch_protocol
    if not protocol:
        protocol = next((p for p in DEFAULT_FETCH_PROTOCOLS if p in revision.fetch), "")
    info = revision.fetch.get(protocol) if protocol else None
    if info is None:
        requested = protocol or " or ".join(DEFAULT_FETCH_PROTOCOLS)
        raise NotFoundError(
            f"no fetch info for protocol '{requested}'",
            hint="Set source.fetch_protocol to one of the available protocols.",
            context={
                "revision": revision.revision,
                "available": ", ".join(sorted(revision.fetch)),
            },
        )
    return FetchTarget(url=info.url, ref=info.ref)


__all__ = ["inject_ssh_user", "resolve_fetch_target"]
