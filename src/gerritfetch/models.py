"""Typed dataclasses for resource configuration and revision descriptors."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from gerritfetch.errors import ConfigError

DEFAULT_FETCH_PROTOCOLS = ("http", "anonymous http")

_STRING_KEYS = (
    "url",
    "query",
    "cookies",
    "username",
    "password",
    "private_key",
    "private_key_passphrase",
    "private_key_user",
    "fetch_protocol",
    "fetch_url",
)


@dataclass(frozen=True, slots=True)
class Source:
    """Pipeline ``source`` configuration, immutable for one operation."""

    url: str
    query: str = ""
    cookies: str = ""
    username: str = ""
    password: str = ""
    digest_auth: bool = False
    private_key: str = ""
    private_key_passphrase: str = ""
    private_key_user: str = ""
    fetch_protocol: str = ""
    fetch_url: str = ""
    skip_submodules: tuple[str, ...] = ()
    depth: int = 0
    fetch: bool = False

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> Source:
        """Decode the JSON ``source`` object of a pipeline request."""
        if not isinstance(payload, Mapping):
            raise ConfigError("source must be a JSON object.")
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(payload) - known)
        if unknown:
            raise ConfigError(
                "Unknown source configuration keys.",
                hint="Remove or rename the unsupported keys.",
                context={"keys": ", ".join(unknown)},
            )
        if not payload.get("url"):
            raise ConfigError("source.url is required.")

        values: dict[str, Any] = {}
        for key in _STRING_KEYS:
            value = payload.get(key)
            if value is None:
                continue
            if not isinstance(value, str):
                raise ConfigError(
                    f"source.{key} must be a string.",
                    context={"type": type(value).__name__},
                )
            values[key] = value

        for key in ("digest_auth", "fetch"):
            value = payload.get(key)
            if value is None:
                continue
            if not isinstance(value, bool):
                raise ConfigError(
                    f"source.{key} must be a boolean.",
                    context={"type": type(value).__name__},
                )
            values[key] = value

        depth = payload.get("depth")
        if depth is not None:
            if isinstance(depth, bool) or not isinstance(depth, int):
                raise ConfigError("source.depth must be an integer.")
            if depth < 0:
                raise ConfigError(
                    "source.depth must not be negative.",
                    hint="Use 0 to fetch the full history.",
                    context={"depth": str(depth)},
                )
            values["depth"] = depth

        skip = payload.get("skip_submodules")
        if skip is not None:
            if not isinstance(skip, list) or not all(isinstance(p, str) for p in skip):
                raise ConfigError("source.skip_submodules must be a list of strings.")
            values["skip_submodules"] = tuple(skip)

        return cls(**values)


@dataclass(frozen=True, slots=True)
class FetchInfo:
    url: str
    ref: str


@dataclass(frozen=True, slots=True)
class RevisionDescriptor:
    """How a single patch set can be fetched, as published by the server."""

    revision: str
    ref: str
    fetch: Mapping[str, FetchInfo] = field(default_factory=dict)
    number: int | None = None


@dataclass(frozen=True, slots=True)
class FetchTarget:
    url: str
    ref: str


__all__ = [
    "DEFAULT_FETCH_PROTOCOLS",
    "FetchInfo",
    "FetchTarget",
    "RevisionDescriptor",
    "Source",
]
