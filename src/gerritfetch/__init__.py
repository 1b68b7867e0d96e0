"""Credential broker and fetch target resolution for Gerrit patch sets."""

from .auth import (
    BasicAuth,
    BasicOrDigestAuth,
    CookieAuth,
    CookieFileAuth,
    DigestAuth,
    NoAuth,
    NoRestAuth,
    SshKeyAuth,
    transport_auth,
)
from .broker import SecretBroker
from .checkout import FetchResult, checkout_revision, fetch_revision
from .environment import ProcessEnvironment
from .errors import (
    ConfigError,
    GerritFetchError,
    InternalError,
    NotFoundError,
    ResourceError,
    ValidationError,
)
from .models import FetchInfo, FetchTarget, RevisionDescriptor, Source
from .resolve import resolve_fetch_target

__all__ = [
    "BasicAuth",
    "BasicOrDigestAuth",
    "ConfigError",
    "CookieAuth",
    "CookieFileAuth",
    "DigestAuth",
    "FetchInfo",
    "FetchResult",
    "FetchTarget",
    "GerritFetchError",
    "InternalError",
    "NoAuth",
    "NoRestAuth",
    "NotFoundError",
    "ProcessEnvironment",
    "ResourceError",
    "RevisionDescriptor",
    "SecretBroker",
    "Source",
    "SshKeyAuth",
    "ValidationError",
    "checkout_revision",
    "fetch_revision",
    "resolve_fetch_target",
    "transport_auth",
]
