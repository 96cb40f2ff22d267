"""
either_adapter
──────────────
Stable top-level exports. Import from here, not from sub-modules directly.
Every name exported here is part of the public API and subject to semver.
"""
from either_adapter.tier0_core.logging import get_logger
from either_adapter.tier0_core.errors import (
    EitherError,
    ConfigurationError,
    AlreadyRegisteredError,
    ClassificationError,
    DecodeError,
)
from either_adapter.tier0_core.config import get_config, EitherConfig
from either_adapter.tier0_core.http import HTTP, StatusRange, RawResponse, AsyncCall

from either_adapter.tier1_runtime.policy import Branch, BranchPolicy, classify
from either_adapter.tier1_runtime.outcome import (
    Left,
    Right,
    Failure,
    Outcome,
    OutcomeSink,
    CallbackSink,
)
from either_adapter.tier1_runtime.serialize import Decoder, TypeDecoder, decoder_for
from either_adapter.tier1_runtime.delivery import (
    DeliveryContext,
    ImmediateDelivery,
    LoopDelivery,
    QueueDelivery,
    ExecutorDelivery,
)

from either_adapter.tier2_dispatch.dispatcher import Dispatcher, DispatchState

from either_adapter.tier3_platform.transport import HttpxCall, AsyncHttpxCall
from either_adapter.tier3_platform.binding import (
    invocation_policy,
    EitherCallAdapter,
    EitherClient,
    AsyncEitherClient,
)

__version__ = "0.1.0"
__all__ = [
    # logging
    "get_logger",
    # errors
    "EitherError", "ConfigurationError", "AlreadyRegisteredError",
    "ClassificationError", "DecodeError",
    # config
    "get_config", "EitherConfig",
    # http
    "HTTP", "StatusRange", "RawResponse", "AsyncCall",
    # policy
    "Branch", "BranchPolicy", "classify",
    # outcome
    "Left", "Right", "Failure", "Outcome", "OutcomeSink", "CallbackSink",
    # serialize
    "Decoder", "TypeDecoder", "decoder_for",
    # delivery
    "DeliveryContext", "ImmediateDelivery", "LoopDelivery",
    "QueueDelivery", "ExecutorDelivery",
    # dispatch
    "Dispatcher", "DispatchState",
    # transport
    "HttpxCall", "AsyncHttpxCall",
    # binding
    "invocation_policy", "EitherCallAdapter", "EitherClient", "AsyncEitherClient",
]
