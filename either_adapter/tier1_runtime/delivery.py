"""
either_adapter.tier1_runtime.delivery
───────────────────────────────────────
Delivery contexts: where outcome sinks run. Transports complete on their own
thread or task; the dispatcher posts the sink call to a delivery context so
callers receive outcomes where they expect them.

Contexts:
  ImmediateDelivery  run on the completing thread (tests, thread-safe sinks)
  LoopDelivery       post onto an asyncio event loop
  QueueDelivery      queue for an owning thread to drain (GUI/main loops)
  ExecutorDelivery   submit to any concurrent.futures.Executor
"""
from __future__ import annotations

import asyncio
import queue
import time
from collections.abc import Callable
from concurrent.futures import Executor
from typing import Protocol, runtime_checkable

from either_adapter.tier0_core.logging import get_logger

logger = get_logger(__name__)

Task = Callable[[], None]


@runtime_checkable
class DeliveryContext(Protocol):
    def execute(self, task: Task) -> None: ...


class ImmediateDelivery:
    """Run the task synchronously in the calling thread."""

    def execute(self, task: Task) -> None:
        task()


class LoopDelivery:
    """Post the task onto *loop*; safe to call from any thread."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def execute(self, task: Task) -> None:
        self._loop.call_soon_threadsafe(task)


class ExecutorDelivery:
    def __init__(self, executor: Executor) -> None:
        self._executor = executor

    def execute(self, task: Task) -> None:
        self._executor.submit(task)


class QueueDelivery:
    """
    Work queue owned by one thread. Other threads enqueue; the owner calls
    run_pending() from its own loop, or drain() to block until tasks arrive.

    Usage::

        delivery = QueueDelivery()
        dispatcher = adapter.adapt(call, delivery=delivery)
        dispatcher.register(sink)
        delivery.drain(timeout=5.0)    # sink runs here, on this thread
    """

    def __init__(self) -> None:
        self._tasks: queue.Queue[Task] = queue.Queue()

    def execute(self, task: Task) -> None:
        self._tasks.put(task)

    @property
    def pending(self) -> int:
        return self._tasks.qsize()

    def run_pending(self) -> int:
        """Run every task queued so far without blocking. Returns the count."""
        ran = 0
        while True:
            try:
                task = self._tasks.get_nowait()
            except queue.Empty:
                return ran
            task()
            ran += 1

    def drain(self, count: int = 1, timeout: float | None = None) -> int:
        """
        Block until *count* tasks have run or *timeout* seconds pass.
        Returns the number of tasks run.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        ran = 0
        while ran < count:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                task = self._tasks.get(timeout=remaining)
            except queue.Empty:
                logger.debug("delivery.drain_timeout", ran=ran, expected=count)
                break
            task()
            ran += 1
        return ran


def default_delivery() -> DeliveryContext:
    """
    Delivery context for the calling thread: its running event loop if it
    has one, otherwise immediate delivery on the completing thread.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return ImmediateDelivery()
    return LoopDelivery(loop)


__all__ = [
    "DeliveryContext",
    "ImmediateDelivery",
    "LoopDelivery",
    "ExecutorDelivery",
    "QueueDelivery",
    "default_delivery",
]
