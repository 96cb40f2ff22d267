"""
either_adapter.tier0_core.http
───────────────────────────────
HTTP primitives: standard status codes, the four named status ranges used
by branch policies, and the raw response / async call shapes every
transport produces.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable


# ── Status code constants ──────────────────────────────────────────────────

class HTTP:
    """Standard HTTP status codes."""

    # 2xx
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NO_CONTENT = 204

    # 3xx
    MOVED_PERMANENTLY = 301
    FOUND = 302
    NOT_MODIFIED = 304

    # 4xx
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    CONFLICT = 409
    UNPROCESSABLE_ENTITY = 422
    TOO_MANY_REQUESTS = 429

    # 5xx
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504


# ── Status ranges ──────────────────────────────────────────────────────────

class StatusRange(Enum):
    """Named, inclusive status code intervals."""

    SUCCESS = (200, 299)
    REDIRECT = (300, 399)
    CLIENT_ERROR = (400, 499)
    SERVER_ERROR = (500, 599)

    @property
    def low(self) -> int:
        return self.value[0]

    @property
    def high(self) -> int:
        return self.value[1]

    def contains(self, code: int) -> bool:
        return self.low <= code <= self.high

    @classmethod
    def any_contains(cls, ranges: Iterable[StatusRange], code: int) -> bool:
        """Return True if *code* falls in any of *ranges*."""
        return any(r.contains(code) for r in ranges)

    @classmethod
    def of(cls, code: int) -> StatusRange | None:
        """Return the range containing *code*, or None (e.g. 1xx, 600)."""
        for r in cls:
            if r.contains(code):
                return r
        return None


def is_error_status(code: int) -> bool:
    """True for codes whose body arrives on the error channel (4xx/5xx)."""
    return StatusRange.any_contains(
        (StatusRange.CLIENT_ERROR, StatusRange.SERVER_ERROR), code
    )


# ── Raw response and async call shape ──────────────────────────────────────

@dataclass(frozen=True)
class RawResponse:
    """
    A completed HTTP exchange before decoding. Transports put the payload on
    ``body`` for successful exchanges and on ``error_body`` otherwise.
    """
    status_code: int
    body: bytes | None = None
    error_body: bytes | None = None
    headers: Mapping[str, str] = field(default_factory=dict)

    def body_for(self, code: int | None = None) -> bytes | None:
        """The channel a decoder should read: error body for 4xx/5xx."""
        code = self.status_code if code is None else code
        return self.error_body if is_error_status(code) else self.body


ResponseCallback = Callable[[RawResponse], None]
FailureCallback = Callable[[BaseException], None]


@runtime_checkable
class AsyncCall(Protocol):
    """
    One pending HTTP call. ``enqueue`` starts it and reports exactly one of
    on_response / on_failure, on a context the transport chooses. A
    cancelled call reports nothing.
    """

    def enqueue(self, on_response: ResponseCallback, on_failure: FailureCallback) -> None: ...
    def cancel(self) -> None: ...

    @property
    def is_cancelled(self) -> bool: ...


__all__ = [
    "HTTP",
    "StatusRange",
    "is_error_status",
    "RawResponse",
    "AsyncCall",
    "ResponseCallback",
    "FailureCallback",
]
