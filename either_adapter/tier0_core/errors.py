"""
either_adapter.tier0_core.errors
─────────────────────────────────
Error taxonomy for the either adapter. Configuration and registration errors
are raised synchronously to the caller; classification and decode errors are
delivered through the outcome sink's ``on_exception``. Transport failures are
not wrapped: the sink receives whatever the transport raised (for the httpx
calls, an ``httpx.TransportError`` subclass such as ``httpx.ConnectError``).

Optional capture backend: Sentry
Select via:    EITHER_ERROR_BACKEND=sentry|none
"""
from __future__ import annotations

import os
from typing import Any

from either_adapter.tier0_core.config import _reset_config, get_config


# ── Base error ────────────────────────────────────────────────────────────────

class EitherError(Exception):
    """
    Base class for all adapter errors. Every error has:
    - code: stable machine-readable string (snake_case)
    - detail: human-readable message, also the ``str()`` of the error
    - metadata: structured context for logs and error capture
    """

    code: str = "either_error"

    def __init__(self, detail: str | None = None, **metadata: Any) -> None:
        self.detail = detail or "Either call failed."
        self.metadata = metadata
        super().__init__(self.detail)
        _capture(self)

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.detail,
                **({"metadata": self.metadata} if self.metadata else {}),
            }
        }


# ── Synchronous errors ────────────────────────────────────────────────────────

class ConfigurationError(EitherError):
    """Invalid branch policy or binding, detected before any network activity."""
    code = "configuration_error"


class AlreadyRegisteredError(EitherError):
    """A sink was registered twice on the same dispatcher."""
    code = "already_registered"


# ── Delivered errors ──────────────────────────────────────────────────────────

class ClassificationError(EitherError):
    """Status code matched neither explicit codes nor applicable ranges."""
    code = "classification_error"

    def __init__(self, detail: str, status_code: int, **metadata: Any) -> None:
        self.status_code = status_code
        super().__init__(detail, status_code=status_code, **metadata)


class DecodeError(EitherError):
    """A decoder could not convert a non-empty response body."""
    code = "decode_error"


# ── Error capture backend ─────────────────────────────────────────────────────

def _capture(error: EitherError) -> None:
    """Send error to configured backend. Called automatically by EitherError.__init__."""
    backend = get_config().error_backend.lower()
    if backend == "sentry":
        _capture_sentry(error)


def _capture_sentry(error: EitherError) -> None:
    try:
        import sentry_sdk
    except ImportError:
        return
    if isinstance(error, (ConfigurationError, AlreadyRegisteredError)):
        sentry_sdk.capture_exception(error)
    else:
        sentry_sdk.capture_message(
            str(error),
            level="warning",
            extras={"code": error.code, **error.metadata},
        )


def configure_sentry(dsn: str, **kwargs: Any) -> None:
    """Initialize Sentry. Call once at application startup."""
    import sentry_sdk
    sentry_sdk.init(dsn=dsn, **kwargs)
    os.environ["EITHER_ERROR_BACKEND"] = "sentry"
    _reset_config()


__all__ = [
    "EitherError",
    "ConfigurationError",
    "AlreadyRegisteredError",
    "ClassificationError",
    "DecodeError",
    "configure_sentry",
]
