"""Minimal Gerrit REST client built from a broker auth mechanism."""

from __future__ import annotations

import json
from dataclasses import dataclass
from types import TracebackType
from typing import Any
from urllib.parse import quote

import httpx

from gerritfetch.auth import BasicAuth, CookieFileAuth, DigestAuth, RestAuth
from gerritfetch.errors import ConfigError, NotFoundError, ResourceError
from gerritfetch.models import FetchInfo, RevisionDescriptor

XSSI_PREFIX = ")]}'"
HTTP_ONLY_PREFIX = "#HttpOnly_"


def parse_netscape_cookies(text: str) -> httpx.Cookies:
    """Parse Netscape cookie-jar text (the ``.gitcookies`` format)."""
    cookies = httpx.Cookies()
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.rstrip("\r\n")
        if line.startswith(HTTP_ONLY_PREFIX):
            line = line[len(HTTP_ONLY_PREFIX) :]
        elif not line.strip() or line.lstrip().startswith("#"):
            continue
        parts = line.split("\t")
        if len(parts) != 7:
            raise ConfigError(
                "Malformed cookie jar line.",
                hint="Each cookie line needs seven tab-separated fields.",
                context={"line": str(lineno), "fields": str(len(parts))},
            )
        domain, _, path, _, _, name, value = parts
        cookies.set(name, value, domain=domain, path=path or "/")
    return cookies


def parse_json_response(body: str) -> Any:
    if body.startswith(XSSI_PREFIX):
        body = body[len(XSSI_PREFIX) :]
    try:
        return json.loads(body)
    except json.JSONDecodeError as exc:
        raise ResourceError(
            "Review server returned invalid JSON.",
            context={"error": str(exc)},
        ) from exc


def revision_from_payload(revision: str, payload: Any) -> RevisionDescriptor:
    try:
        fetch = {
            name: FetchInfo(url=str(entry["url"]), ref=str(entry["ref"]))
            for name, entry in (payload.get("fetch") or {}).items()
        }
        number = payload.get("_number")
        return RevisionDescriptor(
            revision=revision,
            ref=str(payload.get("ref", "")),
            fetch=fetch,
            number=int(number) if number is not None else None,
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ResourceError(
            "Unexpected revision payload from review server.",
            context={"revision": revision, "error": repr(exc)},
        ) from exc


@dataclass(slots=True)
class GerritClient:
    http: httpx.Client
    authenticated: bool = False

    def __enter__(self) -> GerritClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self.http.close()

    def get_revision(self, change_id: str, revision: str) -> RevisionDescriptor:
        """Load the fetch descriptor of ``revision`` within ``change_id``."""
        path = f"changes/{quote(change_id, safe='~')}"
        payload = self._get_json(path, params=[("o", "ALL_REVISIONS")])
        revisions = payload.get("revisions") if isinstance(payload, dict) else None
        info = (revisions or {}).get(revision)
        if info is None:
            raise NotFoundError(
                f"revision {revision} not found in change {change_id}",
                context={"change": change_id, "revision": revision},
            )
        return revision_from_payload(revision, info)

    def _get_json(self, path: str, *, params: list[tuple[str, str]]) -> Any:
        if self.authenticated:
            path = f"a/{path}"
        try:
            response = self.http.get(path, params=params)
        except httpx.HTTPError as exc:
            raise ResourceError(
                "Request to review server failed.",
                context={"path": path, "error": str(exc)},
            ) from exc
        if response.status_code == 404:
            raise NotFoundError(
                "Review server returned 404.",
                context={"path": path},
            )
        if response.is_error:
            raise ResourceError(
                f"Review server returned HTTP {response.status_code}.",
                hint="Check the source url and credentials.",
                context={"path": path, "body": response.text[:500]},
            )
        return parse_json_response(response.text)


def build_client(
    base_url: str,
    auth: RestAuth,
    *,
    transport: httpx.BaseTransport | None = None,
    timeout: float = 30.0,
) -> GerritClient:
    """Create a client for ``base_url`` authenticated with ``auth``.

    Authenticated requests use the ``/a/`` path prefix.
    """
    kwargs: dict[str, Any] = {"base_url": base_url, "timeout": timeout}
    if transport is not None:
        kwargs["transport"] = transport

    authenticated = True
    if isinstance(auth, BasicAuth):
        kwargs["auth"] = httpx.BasicAuth(auth.username, auth.password)
    elif isinstance(auth, DigestAuth):
        kwargs["auth"] = httpx.DigestAuth(auth.username, auth.password)
    elif isinstance(auth, CookieFileAuth):
        try:
            text = auth.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ResourceError(
                "Could not read cookie file.",
                context={"path": str(auth.path), "error": str(exc)},
            ) from exc
        kwargs["cookies"] = parse_netscape_cookies(text)
    else:
        authenticated = False
    return GerritClient(http=httpx.Client(**kwargs), authenticated=authenticated)


__all__ = [
    "GerritClient",
    "build_client",
    "parse_json_response",
    "parse_netscape_cookies",
    "revision_from_payload",
]
