"""
either_adapter.tier1_runtime.outcome
──────────────────────────────────────
The three possible outcomes of an either call, the sink that receives them,
and a once-settable slot that guarantees at most one outcome per call.

A ``None`` value inside Left/Right means the selected body was empty. That is
a successful outcome, not an error.
"""
from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar, Union, runtime_checkable

L = TypeVar("L")
R = TypeVar("R")
T = TypeVar("T")


# ── Outcome variants ───────────────────────────────────────────────────────

class _OutcomeBase:
    def is_left(self) -> bool:
        return isinstance(self, Left)

    def is_right(self) -> bool:
        return isinstance(self, Right)

    def is_failure(self) -> bool:
        return isinstance(self, Failure)


@dataclass(frozen=True)
class Left(_OutcomeBase, Generic[L]):
    value: L | None

    def unwrap(self) -> L | None:
        return self.value

    def fold(
        self,
        on_left: Callable[[L | None], T],
        on_right: Callable[[Any], T],
        on_exception: Callable[[BaseException], T],
    ) -> T:
        return on_left(self.value)


@dataclass(frozen=True)
class Right(_OutcomeBase, Generic[R]):
    value: R | None

    def unwrap(self) -> R | None:
        return self.value

    def fold(
        self,
        on_left: Callable[[Any], T],
        on_right: Callable[[R | None], T],
        on_exception: Callable[[BaseException], T],
    ) -> T:
        return on_right(self.value)


@dataclass(frozen=True)
class Failure(_OutcomeBase):
    error: BaseException

    def unwrap(self) -> Any:
        """Re-raise the carried error."""
        raise self.error

    def fold(
        self,
        on_left: Callable[[Any], T],
        on_right: Callable[[Any], T],
        on_exception: Callable[[BaseException], T],
    ) -> T:
        return on_exception(self.error)


Outcome = Union[Left[L], Right[R], Failure]


# ── Sink ───────────────────────────────────────────────────────────────────

@runtime_checkable
class OutcomeSink(Protocol[L, R]):
    """Receives exactly one of the three calls per registered dispatcher."""

    def on_left(self, value: L | None) -> None: ...
    def on_right(self, value: R | None) -> None: ...
    def on_exception(self, error: BaseException) -> None: ...


class CallbackSink(Generic[L, R]):
    """
    OutcomeSink assembled from plain callables.

    A handler left unset raises when its outcome arrives, so an unexpected
    branch never passes silently.

    Usage::

        sink = CallbackSink(on_left=show_person, on_right=show_problem)
    """

    def __init__(
        self,
        on_left: Callable[[L | None], None] | None = None,
        on_right: Callable[[R | None], None] | None = None,
        on_exception: Callable[[BaseException], None] | None = None,
    ) -> None:
        self._on_left = on_left
        self._on_right = on_right
        self._on_exception = on_exception

    def on_left(self, value: L | None) -> None:
        if self._on_left is None:
            raise RuntimeError(f"Unhandled left outcome: {value!r}")
        self._on_left(value)

    def on_right(self, value: R | None) -> None:
        if self._on_right is None:
            raise RuntimeError(f"Unhandled right outcome: {value!r}")
        self._on_right(value)

    def on_exception(self, error: BaseException) -> None:
        if self._on_exception is None:
            raise error
        self._on_exception(error)


def deliver(outcome: Outcome, sink: OutcomeSink) -> None:
    """Invoke the sink handler matching *outcome*."""
    outcome.fold(sink.on_left, sink.on_right, sink.on_exception)


# ── Single-assignment slot ─────────────────────────────────────────────────

class OutcomeSlot:
    """Holds the first outcome offered to it; later offers are refused."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._outcome: Outcome | None = None

    def try_set(self, outcome: Outcome) -> bool:
        with self._lock:
            if self._outcome is not None:
                return False
            self._outcome = outcome
            return True

    @property
    def is_set(self) -> bool:
        return self._outcome is not None

    def get(self) -> Outcome | None:
        return self._outcome


__all__ = [
    "Left",
    "Right",
    "Failure",
    "Outcome",
    "OutcomeSink",
    "CallbackSink",
    "OutcomeSlot",
    "deliver",
]
