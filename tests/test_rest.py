import json
from pathlib import Path

import httpx
import pytest

from gerritfetch.auth import BasicAuth, CookieFileAuth, DigestAuth, NoRestAuth
from gerritfetch.errors import ConfigError, NotFoundError, ResourceError
from gerritfetch.models import FetchInfo
from gerritfetch.rest import build_client, parse_json_response, parse_netscape_cookies

BASE_URL = "http://review.example.com"
REVISION = "0123456789abcdef0123456789abcdef01234567"


def test_get_revision_parses_fetch_info() -> None:
    requests: list[httpx.Request] = []
    client = build_client(BASE_URL, NoRestAuth(), transport=_transport(requests))

    with client:
        descriptor = client.get_revision("my/project~12345", REVISION)

    assert descriptor.revision == REVISION
    assert descriptor.ref == "refs/changes/45/12345/3"
    assert descriptor.number == 3
    assert descriptor.fetch["http"] == FetchInfo(
        url="http://review.example.com/my/project",
        ref="refs/changes/45/12345/3",
    )
    assert requests[0].url.raw_path.startswith(b"/changes/my%2Fproject~12345")
    assert requests[0].url.params["o"] == "ALL_REVISIONS"


def test_basic_auth_uses_authenticated_prefix() -> None:
    requests: list[httpx.Request] = []
    client = build_client(BASE_URL, BasicAuth("u", "p"), transport=_transport(requests))

    with client:
        client.get_revision("p~1", REVISION)

    assert requests[0].url.path.startswith("/a/changes/")
    assert requests[0].headers["Authorization"].startswith("Basic ")


def test_digest_auth_answers_challenge() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if "Authorization" not in request.headers:
            return httpx.Response(
                401,
                headers={"WWW-Authenticate": 'Digest realm="Gerrit", nonce="abc", qop="auth"'},
            )
        return _change_response()

    client = build_client(BASE_URL, DigestAuth("u", "p"), transport=httpx.MockTransport(handler))
    with client:
        client.get_revision("p~1", REVISION)

    assert len(requests) == 2
    assert requests[1].headers["Authorization"].startswith("Digest ")


def test_cookie_file_auth_sends_cookie(tmp_path: Path) -> None:
    cookie_file = tmp_path / "cookies"
    cookie_file.write_text(
        "# Netscape HTTP Cookie File\n"
        "review.example.com\tFALSE\t/\tFALSE\t2147483647\to\tgit-user=token\n",
        encoding="utf-8",
    )
    requests: list[httpx.Request] = []
    client = build_client(BASE_URL, CookieFileAuth(cookie_file), transport=_transport(requests))

    with client:
        client.get_revision("p~1", REVISION)

    assert requests[0].url.path.startswith("/a/")
    assert "o=git-user=token" in requests[0].headers["Cookie"]


def test_parse_netscape_cookies_accepts_http_only_prefix() -> None:
    cookies = parse_netscape_cookies(
        "\n#HttpOnly_.example.com\tTRUE\t/\tTRUE\t0\tsid\tvalue\n# comment\n"
    )

    assert cookies.get("sid", domain=".example.com") == "value"


def test_parse_netscape_cookies_rejects_malformed_lines() -> None:
    with pytest.raises(ConfigError) as excinfo:
        parse_netscape_cookies("review.example.com\tFALSE\t/\n")

    assert excinfo.value.context["line"] == "1"


def test_missing_cookie_file_is_resource_error(tmp_path: Path) -> None:
    with pytest.raises(ResourceError):
        build_client(BASE_URL, CookieFileAuth(tmp_path / "gone"))


def test_unknown_revision_is_not_found() -> None:
    client = build_client(BASE_URL, NoRestAuth(), transport=_transport([]))

    with client, pytest.raises(NotFoundError):
        client.get_revision("p~1", "f" * 40)


def test_http_404_is_not_found() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(404, text="Not found"))
    client = build_client(BASE_URL, NoRestAuth(), transport=transport)

    with client, pytest.raises(NotFoundError):
        client.get_revision("p~1", REVISION)


def test_http_error_is_resource_error() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
    client = build_client(BASE_URL, NoRestAuth(), transport=transport)

    with client, pytest.raises(ResourceError) as excinfo:
        client.get_revision("p~1", REVISION)

    assert "HTTP 500" in str(excinfo.value)


def test_parse_json_response_strips_xssi_prefix() -> None:
    assert parse_json_response(')]}\'\n{"a": 1}') == {"a": 1}

    with pytest.raises(ResourceError):
        parse_json_response(")]}'\nnot json")


def _change_response() -> httpx.Response:
    payload = {
        "id": "my%2Fproject~master~I0123",
        "_number": 12345,
        "revisions": {
            REVISION: {
                "_number": 3,
                "ref": "refs/changes/45/12345/3",
                "fetch": {
                    "http": {
                        "url": "http://review.example.com/my/project",
                        "ref": "refs/changes/45/12345/3",
                    },
                    "ssh": {
                        "url": "ssh://review.example.com:29418/my/project",
                        "ref": "refs/changes/45/12345/3",
                    },
                },
            }
        },
    }
    return httpx.Response(200, text=")]}'\n" + json.dumps(payload))


def _transport(requests: list[httpx.Request]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return _change_response()

    return httpx.MockTransport(handler)
