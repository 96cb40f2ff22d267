"""
either_adapter.tier3_platform.binding
───────────────────────────────────────
Wires the dispatcher to real HTTP clients. Result types are declared
explicitly per call (or per endpoint); branch policies come from an
explicit BranchPolicy or the ``@invocation_policy`` decorator.

Usage::

    client = EitherClient("https://api.example.com")

    @client.endpoint("POST", "/people", left=Person, right=Problem)
    @invocation_policy(left=[422], right=[200])
    def create_person(first: str, last: str) -> dict:
        return {"json": {"firstName": first, "lastName": last}}

    create_person("First", "Last").register(sink)

    # or ad hoc
    client.get("/people/1", left=Person, right=Problem).register(sink)
"""
from __future__ import annotations

import functools
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import Executor
from typing import Any, Generic, TypeVar

import httpx

from either_adapter.tier0_core.config import get_config
from either_adapter.tier0_core.errors import ConfigurationError
from either_adapter.tier0_core.http import AsyncCall, StatusRange
from either_adapter.tier0_core.logging import get_logger
from either_adapter.tier1_runtime.delivery import DeliveryContext
from either_adapter.tier1_runtime.policy import (
    DEFAULT_LEFT_RANGES,
    DEFAULT_RIGHT_RANGES,
    BranchPolicy,
)
from either_adapter.tier1_runtime.serialize import Decoder, decoder_for
from either_adapter.tier2_dispatch.dispatcher import Dispatcher
from either_adapter.tier3_platform.transport import AsyncHttpxCall, HttpxCall

L = TypeVar("L")
R = TypeVar("R")
F = TypeVar("F", bound=Callable[..., Any])

logger = get_logger(__name__)

POLICY_ATTR = "__either_policy__"


# ── Policy declaration ─────────────────────────────────────────────────────

def invocation_policy(
    left: Iterable[int] = (),
    right: Iterable[int] = (),
    left_ranges: Iterable[StatusRange] = DEFAULT_LEFT_RANGES,
    right_ranges: Iterable[StatusRange] = DEFAULT_RIGHT_RANGES,
) -> Callable[[F], F]:
    """
    Attach a BranchPolicy to an endpoint function. Fields not given keep
    their defaults. The policy is validated when a dispatcher is built,
    so an all-empty policy fails on the call, not at import.
    """
    policy = BranchPolicy.explicit(left, right, left_ranges, right_ranges)

    def decorator(fn: F) -> F:
        setattr(fn, POLICY_ATTR, policy)
        return fn

    return decorator


def policy_of(fn: Callable[..., Any]) -> BranchPolicy:
    """The policy attached by @invocation_policy, or the default policy."""
    policy = getattr(fn, POLICY_ATTR, None)
    return policy if policy is not None else BranchPolicy.default()


# ── Adapter ────────────────────────────────────────────────────────────────

class EitherCallAdapter(Generic[L, R]):
    """
    Turns async calls into dispatchers for one (left, right, policy) triple.
    Decoders are resolved once, here; every adapt() builds a fresh dispatcher.
    """

    def __init__(
        self,
        left_type: type[L] | Any,
        right_type: type[R] | Any,
        policy: BranchPolicy | None = None,
        *,
        decoder_factory: Callable[[Any], Decoder[Any]] = decoder_for,
        delivery: DeliveryContext | None = None,
    ) -> None:
        if left_type is None or right_type is None:
            raise ConfigurationError(
                "Either call must be parameterized with both a left and a right type"
            )
        self._left_type = left_type
        self._right_type = right_type
        self._policy = policy if policy is not None else BranchPolicy.default()
        self._left_decoder: Decoder[L] = decoder_factory(left_type)
        self._right_decoder: Decoder[R] = decoder_factory(right_type)
        self._delivery = delivery

    @property
    def policy(self) -> BranchPolicy:
        return self._policy

    def adapt(self, call: AsyncCall, *, delivery: DeliveryContext | None = None) -> Dispatcher[L, R]:
        return Dispatcher(
            call,
            self._policy,
            self._left_decoder,
            self._right_decoder,
            delivery=delivery if delivery is not None else self._delivery,
        )


@functools.lru_cache(maxsize=256)
def _cached_adapter(left_type: Any, right_type: Any, policy: BranchPolicy) -> EitherCallAdapter[Any, Any]:
    return EitherCallAdapter(left_type, right_type, policy)


def get_adapter(left_type: Any, right_type: Any, policy: BranchPolicy | None = None) -> EitherCallAdapter[Any, Any]:
    """Shared adapter per (left, right, policy); falls back to a fresh one for unhashable types."""
    policy = policy if policy is not None else BranchPolicy.default()
    try:
        return _cached_adapter(left_type, right_type, policy)
    except TypeError:
        return EitherCallAdapter(left_type, right_type, policy)


# ── Clients ────────────────────────────────────────────────────────────────

class _EitherClientBase(ABC):
    def __init__(self, delivery: DeliveryContext | None) -> None:
        self._delivery = delivery

    @abstractmethod
    def _new_call(self, request: httpx.Request) -> AsyncCall:
        ...

    @abstractmethod
    def _build_request(self, method: str, path: str, **kwargs: Any) -> httpx.Request:
        ...

    def request(
        self,
        method: str,
        path: str,
        *,
        left: Any,
        right: Any,
        policy: BranchPolicy | None = None,
        delivery: DeliveryContext | None = None,
        **kwargs: Any,
    ) -> Dispatcher[Any, Any]:
        """
        Prepare one call. Nothing is sent until the returned dispatcher is
        registered. Extra kwargs go to httpx ``build_request``.

        Raises:
            ConfigurationError: invalid policy or missing result type.
        """
        adapter = get_adapter(left, right, policy)
        request = self._build_request(method, path, **kwargs)
        logger.debug("client.request_prepared", method=request.method, url=str(request.url))
        return adapter.adapt(
            self._new_call(request),
            delivery=delivery if delivery is not None else self._delivery,
        )

    def get(self, path: str, **kwargs: Any) -> Dispatcher[Any, Any]:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> Dispatcher[Any, Any]:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> Dispatcher[Any, Any]:
        return self.request("PUT", path, **kwargs)

    def patch(self, path: str, **kwargs: Any) -> Dispatcher[Any, Any]:
        return self.request("PATCH", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> Dispatcher[Any, Any]:
        return self.request("DELETE", path, **kwargs)

    def endpoint(
        self,
        method: str,
        path: str,
        *,
        left: Any,
        right: Any,
    ) -> Callable[[Callable[..., Mapping[str, Any] | None]], Callable[..., Dispatcher[Any, Any]]]:
        """
        Declare an endpoint. The decorated function returns httpx request
        kwargs (``params``, ``json``, ``headers``, ...) and may add
        ``path_params`` to fill ``{placeholders}`` in *path*. Its
        @invocation_policy, if any, selects the branch policy; it may sit
        above or below this decorator.
        """
        def decorator(fn: Callable[..., Mapping[str, Any] | None]) -> Callable[..., Dispatcher[Any, Any]]:
            @functools.wraps(fn)
            def wrapper(*args: Any, **kwargs: Any) -> Dispatcher[Any, Any]:
                request_kwargs = dict(fn(*args, **kwargs) or {})
                path_params = request_kwargs.pop("path_params", {})
                return self.request(
                    method,
                    path.format(**path_params),
                    left=left,
                    right=right,
                    # wraps() copies fn's attributes, so this sees either order
                    policy=policy_of(wrapper),
                    **request_kwargs,
                )

            return wrapper

        return decorator


class EitherClient(_EitherClientBase):
    """
    Either-call client over a sync httpx.Client. Calls run on the shared
    transport worker pool unless an executor is given.
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        client: httpx.Client | None = None,
        timeout: float | None = None,
        delivery: DeliveryContext | None = None,
        executor: Executor | None = None,
    ) -> None:
        super().__init__(delivery)
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=base_url,
            timeout=timeout if timeout is not None else get_config().http_timeout,
        )
        self._executor = executor

    def _build_request(self, method: str, path: str, **kwargs: Any) -> httpx.Request:
        return self._client.build_request(method, path, **kwargs)

    def _new_call(self, request: httpx.Request) -> AsyncCall:
        return HttpxCall(self._client, request, executor=self._executor)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> EitherClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class AsyncEitherClient(_EitherClientBase):
    """Either-call client over httpx.AsyncClient; register dispatchers inside a running loop."""

    def __init__(
        self,
        base_url: str = "",
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
        delivery: DeliveryContext | None = None,
    ) -> None:
        super().__init__(delivery)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout if timeout is not None else get_config().http_timeout,
        )

    def _build_request(self, method: str, path: str, **kwargs: Any) -> httpx.Request:
        return self._client.build_request(method, path, **kwargs)

    def _new_call(self, request: httpx.Request) -> AsyncCall:
        return AsyncHttpxCall(self._client, request)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> AsyncEitherClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


__all__ = [
    "POLICY_ATTR",
    "invocation_policy",
    "policy_of",
    "EitherCallAdapter",
    "get_adapter",
    "EitherClient",
    "AsyncEitherClient",
]
