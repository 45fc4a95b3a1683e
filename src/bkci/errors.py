"""Error taxonomy and classification for bkci."""

from __future__ import annotations

import click
import httpx

ERROR_TYPES = (
    "auth_error",
    "permission_error",
    "not_found",
    "validation_error",
    "rate_limited",
    "network_error",
    "server_error",
    "internal_error",
)

_RETRYABLE_TYPES = {"rate_limited", "server_error"}


class BuildkiteError(Exception):
    """Base error with optional HTTP status, code, and request id."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        code: str | None = None,
        request_id: str | None = None,
        details: dict | None = None,
    ):
        self.message = message
        self.status = status
        self.code = code
        self.request_id = request_id
        self.details = details or {}
        super().__init__(message)


class HttpError(BuildkiteError):
    """Upstream responded with a non-2xx status."""

    def __init__(self, message: str, status: int, **kwargs):
        super().__init__(message, status=status, **kwargs)


class NetworkError(BuildkiteError):
    """Request never produced a response (DNS, connect, timeout)."""


class ConfigError(BuildkiteError):
    """Missing token or unusable local settings."""


class MissingScopeError(BuildkiteError):
    """Token lacks scopes needed before a mutating request."""

    def __init__(self, missing_scopes: list[str], action: str):
        self.missing_scopes = list(missing_scopes)
        message = f"token is missing required scope(s) for {action}: {', '.join(self.missing_scopes)}"
        super().__init__(message, details={"missingScopes": self.missing_scopes})


def error_type_for_status(status: int) -> str:
    if status == 401:
        return "auth_error"
    if status == 403:
        return "permission_error"
    if status == 404:
        return "not_found"
    if status in {400, 422}:
        return "validation_error"
    if status == 429:
        return "rate_limited"
    if status >= 500:
        return "server_error"
    return "internal_error"


def _classify(exc: BaseException) -> str:
    if isinstance(exc, HttpError):
        return error_type_for_status(exc.status)
    if isinstance(exc, (NetworkError, httpx.TransportError)):
        return "network_error"
    if isinstance(exc, MissingScopeError):
        return "permission_error"
    if isinstance(exc, ConfigError):
        return "auth_error"
    if isinstance(exc, (click.UsageError, click.BadParameter)):
        return "validation_error"
    if isinstance(exc, BuildkiteError) and exc.status is not None:
        return error_type_for_status(exc.status)
    return "internal_error"


def to_api_error(exc: BaseException) -> dict:
    """Convert any exception into the envelope's error record."""
    error_type = _classify(exc)
    if isinstance(exc, BuildkiteError):
        message = exc.message
        status = exc.status
        code = exc.code
        request_id = exc.request_id
        details = dict(exc.details)
    else:
        message = getattr(exc, "message", None) or str(exc) or "unexpected error"
        status = None
        code = None
        request_id = None
        details = {}

    return {
        "type": error_type,
        "message": message,
        "httpStatus": status,
        "code": code,
        "retryable": error_type in _RETRYABLE_TYPES,
        "requestId": request_id,
        "details": details,
    }
