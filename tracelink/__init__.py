"""tracelink: trace-context propagation for message-driven workloads.

Module-level functions delegate to the process-wide provider configured by
``init()``; before ``init()`` they run with tracing disabled.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from tracelink.bootstrap import get_provider, init, is_initialized, stop_tracing
from tracelink.context import TraceContext
from tracelink.errors import (
    ConfigError,
    InitializationError,
    MalformedTokenError,
    MissingTransactionError,
    TracelinkError,
    TransactionStateError,
)
from tracelink.trace_provider import TraceProvider, get_trace_provider
from tracelink.tracer import NoopBackend, OTelBackend, TracingBackend, Transaction

__version__ = "0.1.0"


async def wrap_handler(
    name: str,
    context: Optional[TraceContext],
    callback: Callable[[TraceContext], Any],
) -> Any:
    """Run ``callback`` inside a transaction; see ``TraceProvider.wrap_handler``."""
    return await get_provider().wrap_handler(name, context, callback)


async def wrap_handler_segment(
    segment_name: Optional[str],
    context: Optional[TraceContext],
    work: Callable[[], Any],
) -> Any:
    """Run ``work`` as a segment; see ``TraceProvider.wrap_handler_segment``."""
    return await get_provider().wrap_handler_segment(segment_name, context, work)


def on_error(error: BaseException, context: Optional[TraceContext] = None) -> None:
    get_provider().on_error(error, context)


def serialize_trace_metadata(context: Optional[TraceContext]) -> str:
    return get_provider().serialize_trace_metadata(context)


def deserialize_trace_metadata(token: Any) -> TraceContext:
    return get_provider().deserialize_trace_metadata(token)


__all__ = [
    "__version__",
    "init",
    "stop_tracing",
    "get_provider",
    "is_initialized",
    "get_trace_provider",
    "TraceProvider",
    "TraceContext",
    "TracingBackend",
    "Transaction",
    "OTelBackend",
    "NoopBackend",
    "wrap_handler",
    "wrap_handler_segment",
    "on_error",
    "serialize_trace_metadata",
    "deserialize_trace_metadata",
    "TracelinkError",
    "ConfigError",
    "InitializationError",
    "MissingTransactionError",
    "MalformedTokenError",
    "TransactionStateError",
]
