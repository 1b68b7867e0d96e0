"""Typed error model with stable, machine-readable error codes."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum


SECRET_CONTEXT_KEYS = ("password", "passphrase", "private_key", "cookie", "token", "secret")
REDACTED = "<redacted>"


def redact_context(context: Mapping[str, str]) -> dict[str, str]:
    """Copy ``context`` with values under secret-bearing keys masked."""
    return {
        key: REDACTED if v and any(word in key.lower() for word in SECRET_CONTEXT_KEYS) else v
        for key, v in context.items()
    }


class ErrorCode(StrEnum):
    """Stable error identifiers used across the package."""

    CONFIG = "E_CONFIG"
    VALIDATION = "E_VALIDATION"
    NOT_FOUND = "E_NOT_FOUND"
    RESOURCE = "E_RESOURCE"
    INTERNAL = "E_INTERNAL"


class GerritFetchError(Exception):
    """Base error class that carries code, optional hint, and context."""

    code: str
    hint: str | None
    context: Mapping[str, str]

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code.value
        self.hint = hint
        self.context = dict(context or {})

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.hint:
            parts.append(f"Hint: {self.hint}")
        if self.context:
            for k, v in redact_context(self.context).items():
                if v:
                    parts.append(f"  {k}: {v}")
        return "\n".join(parts)

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": str(self),
            "context": redact_context(self.context),
        }
        if self.hint is not None:
            payload["hint"] = self.hint
        return payload


class ConfigError(GerritFetchError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.CONFIG, hint=hint, context=context)


class ValidationError(GerritFetchError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.VALIDATION, hint=hint, context=context)


class NotFoundError(GerritFetchError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.NOT_FOUND, hint=hint, context=context)


class ResourceError(GerritFetchError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.RESOURCE, hint=hint, context=context)


class InternalError(GerritFetchError):
    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(message, code=ErrorCode.INTERNAL, hint=hint, context=context)


__all__ = [
    "ConfigError",
    "ErrorCode",
    "GerritFetchError",
    "InternalError",
    "NotFoundError",
    "ResourceError",
    "ValidationError",
    "redact_context",
]
