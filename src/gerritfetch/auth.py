"""Authentication variants for git transport and the REST client."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from gerritfetch.models import Source


@dataclass(frozen=True, slots=True)
class NoAuth:
    pass


@dataclass(frozen=True, slots=True)
class CookieAuth:
    cookies: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class BasicOrDigestAuth:
    username: str
    password: str = field(repr=False)
    digest: bool = False


@dataclass(frozen=True, slots=True)
class SshKeyAuth:
    private_key: str = field(repr=False)
    passphrase: str = field(default="", repr=False)


TransportAuth = NoAuth | CookieAuth | BasicOrDigestAuth | SshKeyAuth


def transport_auth(source: Source) -> TransportAuth:
    """Select the primary git transport mechanism.

    Precedence is ssh key, then username, then cookies. Cookies are layered
    on top of the other mechanisms separately through ``http.cookieFile``.
    """
    if source.private_key:
        return SshKeyAuth(
            private_key=source.private_key,
            passphrase=source.private_key_passphrase,
        )
    if source.username:
        return BasicOrDigestAuth(
            username=source.username,
            password=source.password,
            digest=source.digest_auth,
        )
    if source.cookies:
        return CookieAuth(cookies=source.cookies)
    return NoAuth()


@dataclass(frozen=True, slots=True)
class NoRestAuth:
    pass


@dataclass(frozen=True, slots=True)
class BasicAuth:
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class DigestAuth:
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class CookieFileAuth:
    path: Path


RestAuth = NoRestAuth | BasicAuth | DigestAuth | CookieFileAuth


__all__ = [
    "BasicAuth",
    "BasicOrDigestAuth",
    "CookieAuth",
    "CookieFileAuth",
    "DigestAuth",
    "NoAuth",
    "NoRestAuth",
    "RestAuth",
    "SshKeyAuth",
    "TransportAuth",
    "transport_auth",
]
