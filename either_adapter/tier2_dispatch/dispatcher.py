"""
either_adapter.tier2_dispatch.dispatcher
──────────────────────────────────────────
The dispatcher decides, from the status code alone, which of two result
types an HTTP call produced, decodes the matching body, and hands exactly
one outcome to the caller's sink.

Lifecycle: PENDING → DELIVERED{left | right | exception}. A dispatcher is
created per call, registered once, and never reused.

Usage::

    dispatcher = Dispatcher(call, BranchPolicy.explicit(left=[422], right=[200]),
                            decoder_for(Person), decoder_for(Problem))
    dispatcher.register(CallbackSink(on_left=..., on_right=..., on_exception=...))
"""
from __future__ import annotations

import threading
from concurrent.futures import Future
from enum import Enum
from typing import Any, Generic, TypeVar

from either_adapter.tier0_core.errors import (
    AlreadyRegisteredError,
    ClassificationError,
    DecodeError,
)
from either_adapter.tier0_core.http import AsyncCall, RawResponse
from either_adapter.tier0_core.logging import get_logger
from either_adapter.tier1_runtime.delivery import DeliveryContext, default_delivery
from either_adapter.tier1_runtime.outcome import (
    Failure,
    Left,
    Outcome,
    OutcomeSink,
    OutcomeSlot,
    Right,
    deliver,
)
from either_adapter.tier1_runtime.policy import (
    Branch,
    BranchPolicy,
    classify,
    describe_undetermined,
)
from either_adapter.tier1_runtime.serialize import Decoder

L = TypeVar("L")
R = TypeVar("R")

logger = get_logger(__name__)


class DispatchState(Enum):
    PENDING = "pending"
    DELIVERED = "delivered"


class Dispatcher(Generic[L, R]):
    """
    Classify → decode → deliver, once.

    Args:
        call:           The pending async call; enqueued on register().
        policy:         Branch policy; the default policy when None.
        left_decoder:   Decoder for the left result type.
        right_decoder:  Decoder for the right result type.
        delivery:       Where the sink runs. Defaults to the constructing
                        thread's event loop, or the completing thread.

    Raises:
        ConfigurationError: the policy has no codes and no ranges.
    """

    def __init__(
        self,
        call: AsyncCall,
        policy: BranchPolicy | None,
        left_decoder: Decoder[L],
        right_decoder: Decoder[R],
        *,
        delivery: DeliveryContext | None = None,
    ) -> None:
        self._policy = (policy if policy is not None else BranchPolicy.default()).validate()
        self._call = call
        self._left_decoder = left_decoder
        self._right_decoder = right_decoder
        self._delivery = delivery if delivery is not None else default_delivery()
        self._slot = OutcomeSlot()
        self._sink: OutcomeSink[L, R] | None = None
        self._registered = False
        self._register_lock = threading.Lock()
        self._log = logger.bind(dispatch_id=f"{id(self):x}")
        self._log.debug(
            "dispatcher.created",
            left_codes=sorted(self._policy.left_codes),
            right_codes=sorted(self._policy.right_codes),
            delivery=type(self._delivery).__name__,
        )

    # ── Introspection ──────────────────────────────────────────────────────

    @property
    def policy(self) -> BranchPolicy:
        return self._policy

    @property
    def call(self) -> AsyncCall:
        return self._call

    @property
    def state(self) -> DispatchState:
        return DispatchState.DELIVERED if self._slot.is_set else DispatchState.PENDING

    @property
    def outcome(self) -> Outcome | None:
        """The settled outcome, or None while pending."""
        return self._slot.get()

    # ── Public API ─────────────────────────────────────────────────────────

    def register(self, sink: OutcomeSink[L, R]) -> None:
        """
        Bind *sink* and start the call. Exactly one of the sink's handlers
        will run, on this dispatcher's delivery context.

        If the call refuses to start, its error propagates and the
        dispatcher stays unregistered.

        Raises:
            AlreadyRegisteredError: a sink was already registered.
        """
        with self._register_lock:
            if self._registered:
                raise AlreadyRegisteredError(
                    "Dispatcher already has a registered sink; create a new call to retry."
                )
            self._registered = True
            self._sink = sink
        self._log.debug("dispatcher.registered", sink=type(sink).__name__)
        try:
            self._call.enqueue(self._on_response, self._on_failure)
        except Exception:
            with self._register_lock:
                self._registered = False
                self._sink = None
            self._log.warning("dispatcher.enqueue_failed", sink=type(sink).__name__)
            raise

    def submit(self) -> Future[Outcome]:
        """Register a sink that resolves the returned future with the outcome."""
        future: Future[Outcome] = Future()
        future.set_running_or_notify_cancel()
        self.register(_FutureSink(future))
        return future

    def cancel(self) -> None:
        """Cancel the underlying call; no outcome is delivered afterwards."""
        self._log.debug("dispatcher.cancel")
        self._call.cancel()

    # ── Transport callbacks ────────────────────────────────────────────────

    def _on_failure(self, exc: BaseException) -> None:
        if self._call.is_cancelled:
            self._log.debug("dispatcher.cancelled_completion")
            return
        self._log.warning(
            "dispatcher.transport_failed",
            error=str(exc),
            error_type=type(exc).__name__,
        )
        self._settle(Failure(exc), status_code=None)

    def _on_response(self, response: RawResponse) -> None:
        if self._call.is_cancelled:
            self._log.debug("dispatcher.cancelled_completion")
            return
        code = response.status_code
        branch = classify(self._policy, code)
        self._log.debug("dispatcher.classified", status_code=code, branch=branch.value)

        if branch is Branch.UNDETERMINED:
            error = ClassificationError(describe_undetermined(self._policy, code), status_code=code)
            self._settle(Failure(error), status_code=code)
            return

        decoder: Decoder[Any] = self._left_decoder if branch is Branch.LEFT else self._right_decoder
        try:
            value = self._decode(decoder, response.body_for(code))
        except DecodeError as exc:
            self._log.warning(
                "dispatcher.decode_failed",
                status_code=code,
                branch=branch.value,
                error=str(exc),
            )
            self._settle(Failure(exc), status_code=code)
            return

        outcome: Outcome = Left(value) if branch is Branch.LEFT else Right(value)
        self._settle(outcome, status_code=code)

    # ── Internals ──────────────────────────────────────────────────────────

    @staticmethod
    def _decode(decoder: Decoder[Any], body: bytes | None) -> Any:
        if body is None or len(body) == 0:
            return None
        try:
            return decoder.decode(body)
        except DecodeError:
            raise
        except Exception as exc:
            raise DecodeError(
                f"{type(decoder).__name__} failed: {exc}",
                error_type=type(exc).__name__,
            ) from exc

    def _settle(self, outcome: Outcome, *, status_code: int | None) -> None:
        sink = self._sink
        if sink is None:
            raise RuntimeError("Call completed before a sink was registered.")
        if not self._slot.try_set(outcome):
            self._log.warning(
                "dispatcher.duplicate_completion",
                status_code=status_code,
                dropped=type(outcome).__name__,
            )
            return
        self._log.info(
            "dispatcher.delivered",
            status_code=status_code,
            outcome=type(outcome).__name__.lower(),
        )
        self._delivery.execute(lambda: deliver(outcome, sink))


class _FutureSink:
    def __init__(self, future: Future[Outcome]) -> None:
        self._future = future

    def on_left(self, value: Any) -> None:
        self._future.set_result(Left(value))

    def on_right(self, value: Any) -> None:
        self._future.set_result(Right(value))

    def on_exception(self, error: BaseException) -> None:
        self._future.set_result(Failure(error))


__all__ = ["Dispatcher", "DispatchState"]
