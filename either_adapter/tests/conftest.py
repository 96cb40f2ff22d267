"""
either_adapter test configuration.

No test touches the network: dispatch tests use scripted calls, transport
tests use httpx.MockTransport.
"""
from __future__ import annotations

import os
import threading
from typing import Any

import pytest

# ── Force the test environment ─────────────────────────────────────────────
# These must be set before any either_adapter modules are imported.

os.environ.setdefault("EITHER_ENVIRONMENT", "test")
os.environ.setdefault("EITHER_ERROR_BACKEND", "none")
os.environ.setdefault("EITHER_LOG_LEVEL", "WARNING")
os.environ.setdefault("EITHER_LOG_FORMAT", "console")

from either_adapter.tier0_core.http import RawResponse  # noqa: E402


# ── Test doubles ───────────────────────────────────────────────────────────

class RecordingSink:
    """Records every handler invocation; ``done`` is set on the first one."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, Any]] = []
        self.threads: list[str] = []
        self.done = threading.Event()

    def _record(self, kind: str, value: Any) -> None:
        self.calls.append((kind, value))
        self.threads.append(threading.current_thread().name)
        self.done.set()

    def on_left(self, value: Any) -> None:
        self._record("left", value)

    def on_right(self, value: Any) -> None:
        self._record("right", value)

    def on_exception(self, error: BaseException) -> None:
        self._record("exception", error)

    @property
    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.calls]

    def only(self) -> tuple[str, Any]:
        assert len(self.calls) == 1, f"expected exactly one outcome, got {self.calls!r}"
        return self.calls[0]


class ScriptedCall:
    """
    AsyncCall that completes synchronously inside enqueue() with a canned
    response or failure.
    """

    def __init__(
        self,
        response: RawResponse | None = None,
        failure: BaseException | None = None,
    ) -> None:
        self.response = response
        self.failure = failure
        self.enqueued = 0
        self._cancelled = False
        self.on_response: Any = None
        self.on_failure: Any = None

    @classmethod
    def responding(cls, status_code: int, body: bytes | None = None) -> ScriptedCall:
        """Put *body* on the channel a real transport would use."""
        if 200 <= status_code < 300:
            return cls(RawResponse(status_code, body=body))
        return cls(RawResponse(status_code, error_body=body))

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def enqueue(self, on_response: Any, on_failure: Any) -> None:
        self.enqueued += 1
        self.on_response = on_response
        self.on_failure = on_failure
        if self.failure is not None:
            on_failure(self.failure)
        elif self.response is not None:
            on_response(self.response)


# ── Fixtures ───────────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def reset_config_cache():
    """Each test sees env changes made via monkeypatch."""
    from either_adapter.tier0_core.config import _reset_config

    _reset_config()
    yield
    _reset_config()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def scripted_call():
    """Factory: scripted_call(status_code, body) → ScriptedCall."""
    return ScriptedCall.responding


@pytest.fixture
def idle_call() -> ScriptedCall:
    """A call that never completes on its own; tests drive its callbacks."""
    return ScriptedCall()


@pytest.fixture
def failing_call():
    """Factory: failing_call(exc) → ScriptedCall reporting a transport failure."""
    return lambda exc: ScriptedCall(failure=exc)
