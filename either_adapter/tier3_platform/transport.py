"""
either_adapter.tier3_platform.transport
─────────────────────────────────────────
httpx-backed async calls. Each call sends one prepared request and reports
its completion through the callbacks given to ``enqueue``:

  HttpxCall       sync httpx.Client on a shared worker pool; completes
                  on a worker thread
  AsyncHttpxCall  httpx.AsyncClient as a task on the running event loop

Neither retries nor enforces timeouts beyond what the httpx client is
configured with.
"""
from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor

import httpx

from either_adapter.tier0_core.config import get_config
from either_adapter.tier0_core.http import FailureCallback, RawResponse, ResponseCallback
from either_adapter.tier0_core.logging import get_logger, log_context

logger = get_logger(__name__)


def raw_response(response: httpx.Response) -> RawResponse:
    """Split an httpx response into success / error body channels."""
    content = response.content
    if response.is_success:
        return RawResponse(response.status_code, body=content, headers=dict(response.headers))
    return RawResponse(response.status_code, error_body=content, headers=dict(response.headers))


# ── Worker pool ────────────────────────────────────────────────────────────

_pool: ThreadPoolExecutor | None = None
_pool_lock = threading.Lock()


def get_worker_pool() -> ThreadPoolExecutor:
    """Shared pool for HttpxCall, sized by EITHER_TRANSPORT_WORKERS."""
    global _pool
    with _pool_lock:
        if _pool is None:
            _pool = ThreadPoolExecutor(
                max_workers=get_config().transport_workers,
                thread_name_prefix="either-transport",
            )
        return _pool


def shutdown_worker_pool(wait: bool = True) -> None:
    global _pool
    with _pool_lock:
        if _pool is not None:
            _pool.shutdown(wait=wait)
            _pool = None


# ── Calls ──────────────────────────────────────────────────────────────────

class _CallBase:
    def __init__(self, request: httpx.Request) -> None:
        self._request = request
        self._executed = False
        self._cancelled = threading.Event()
        self._lock = threading.Lock()

    @property
    def request(self) -> httpx.Request:
        return self._request

    @property
    def is_executed(self) -> bool:
        return self._executed

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def _mark_executed(self) -> None:
        with self._lock:
            if self._executed:
                raise RuntimeError("Call already executed.")
            self._executed = True

    def _complete(
        self,
        result: httpx.Response | Exception,
        on_response: ResponseCallback,
        on_failure: FailureCallback,
    ) -> None:
        """
        Report *result* through the matching callback, with the request bound
        to the log context. Callbacks may run the caller's sink inline; what
        they raise is logged as ``transport.callback_failed``.
        """
        if self.is_cancelled:
            logger.debug("transport.cancelled", method=self._request.method, url=str(self._request.url))
            return
        with log_context(method=self._request.method, url=str(self._request.url)):
            try:
                if isinstance(result, Exception):
                    logger.warning(
                        "transport.request_failed",
                        error=str(result),
                        error_type=type(result).__name__,
                    )
                    on_failure(result)
                else:
                    logger.debug("transport.response", status_code=result.status_code)
                    on_response(raw_response(result))
            except Exception as exc:
                logger.exception("transport.callback_failed", error_type=type(exc).__name__)


class HttpxCall(_CallBase):
    """
    One request sent with a sync httpx.Client on a worker thread.

    Usage::

        with httpx.Client(base_url="https://api.example.com") as client:
            call = HttpxCall(client, client.build_request("GET", "/people/1"))
    """

    def __init__(
        self,
        client: httpx.Client,
        request: httpx.Request,
        *,
        executor: Executor | None = None,
    ) -> None:
        super().__init__(request)
        self._client = client
        self._executor = executor
        self._future: Future[None] | None = None

    def enqueue(self, on_response: ResponseCallback, on_failure: FailureCallback) -> None:
        self._mark_executed()
        executor = self._executor or get_worker_pool()
        self._future = executor.submit(self._run, on_response, on_failure)

    def cancel(self) -> None:
        self._cancelled.set()
        if self._future is not None:
            self._future.cancel()

    def _run(self, on_response: ResponseCallback, on_failure: FailureCallback) -> None:
        if self.is_cancelled:
            return
        try:
            response = self._client.send(self._request)
        except Exception as exc:
            self._complete(exc, on_response, on_failure)
            return
        self._complete(response, on_response, on_failure)


class AsyncHttpxCall(_CallBase):
    """One request sent with an httpx.AsyncClient; enqueue from inside a running loop."""

    def __init__(self, client: httpx.AsyncClient, request: httpx.Request) -> None:
        super().__init__(request)
        self._client = client
        self._task: asyncio.Task[None] | None = None

    def enqueue(self, on_response: ResponseCallback, on_failure: FailureCallback) -> None:
        loop = asyncio.get_running_loop()
        self._mark_executed()
        self._task = loop.create_task(self._run(on_response, on_failure))

    def cancel(self) -> None:
        self._cancelled.set()
        if self._task is not None:
            self._task.cancel()

    async def _run(self, on_response: ResponseCallback, on_failure: FailureCallback) -> None:
        try:
            response = await self._client.send(self._request)
        except Exception as exc:
            self._complete(exc, on_response, on_failure)
            return
        self._complete(response, on_response, on_failure)


__all__ = [
    "HttpxCall",
    "AsyncHttpxCall",
    "raw_response",
    "get_worker_pool",
    "shutdown_worker_pool",
]
