"""Transaction wrapping, segments, error reporting and metadata propagation."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Optional

from tracelink import runtime_config
from tracelink.context.context import TraceContext
from tracelink.context.propagators import deserialize_trace_metadata, serialize_trace_metadata
from tracelink.errors import TransactionStateError
from tracelink.tracer.backend import TracingBackend
from tracelink.tracer.noop_backend import NoopBackend, NoopTransaction

logger = logging.getLogger(__name__)

UNNAMED_TRANSACTION = "unnamed"


async def _settle(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


class TraceProvider:
    """
    Application-facing tracing operations over a ``TracingBackend``.

    Typical consumer usage::

        context = provider.deserialize_trace_metadata(message["trace"])

        async def handle(context):
            await provider.wrap_handler_segment("parse", context, parse)
            outgoing["trace"] = provider.serialize_trace_metadata(context)

        await provider.wrap_handler("orders.consume", context, handle)
    """

    def __init__(
        self,
        backend: TracingBackend,
        carrier_category: Optional[str] = None,
        segment_suffix: Optional[str] = None,
    ) -> None:
        self.backend = backend
        self._carrier_category = carrier_category
        self._segment_suffix = segment_suffix

    @property
    def carrier_category(self) -> str:
        return self._carrier_category or runtime_config.get_carrier_category()

    @property
    def segment_suffix(self) -> str:
        if self._segment_suffix is not None:
            return self._segment_suffix
        return runtime_config.get_segment_suffix()

    async def wrap_handler(
        self,
        name: str,
        context: Optional[TraceContext],
        callback: Callable[[TraceContext], Any],
    ) -> Any:
        """
        Run ``callback(context)`` inside a new transaction named ``name``.

        The context is named, bound to the transaction and has its inbound
        linkage accepted before ``callback`` starts. The transaction closes
        after ``callback`` settles; its errors propagate unchanged.

        Args:
            name: Transaction name
            context: Context to mutate in place; a fresh one if None
            callback: Sync or async callable receiving the context

        Returns:
            Whatever ``callback`` returns

        Raises:
            TransactionStateError: if the context already had a transaction
        """
        if context is None:
            context = TraceContext()
        if context.has_transaction:
            raise TransactionStateError(
                "A transaction was already started for this context",
                {"name": context.name, "requested": name},
            )
        context.assign_name(name)

        async def run_transaction() -> Any:
            transaction = self.backend.get_active_transaction()
            if transaction is None:
                # Backends without ambient transactions still need a handle
                logger.debug("Backend returned no transaction for %s", name)
                transaction = NoopTransaction(name)
            context.bind_transaction(transaction)

            linkage = context.take_inbound_linkage()
            if linkage is not None:
                transaction.accept_inbound_linkage(self.carrier_category, linkage)

            return await _settle(callback(context))

        try:
            return await self.backend.start_background_transaction(name, run_transaction)
        finally:
            context.finish()

    async def wrap_handler_segment(
        self,
        segment_name: Optional[str],
        context: Optional[TraceContext],
        work: Callable[[], Any],
    ) -> Any:
        """
        Run ``work`` as a named segment of the context's transaction.

        Must be called from inside a ``wrap_handler`` callback. An empty
        name defaults to ``"<transaction name>-segment"``.
        """
        name = segment_name or self.default_segment_name(context)
        return await self.backend.start_segment(name, True, work)

    def default_segment_name(self, context: Optional[TraceContext]) -> str:
        prefix = context.name if context is not None and context.name else UNNAMED_TRANSACTION
        return f"{prefix}{self.segment_suffix}"

    def on_error(self, error: BaseException, context: Optional[TraceContext] = None) -> None:
        """
        Report ``error`` against the active transaction.

        ``context`` is accepted for symmetry with the other operations; the
        backend resolves the transaction itself. Never raises.
        """
        try:
            self.backend.report_error(error)
        except Exception:
            logger.debug("Backend failed to report %r", error, exc_info=True)

    def serialize_trace_metadata(self, context: Optional[TraceContext]) -> str:
        """Encode the context's downstream linkage for a message payload."""
        return serialize_trace_metadata(context)

    def deserialize_trace_metadata(self, token: Any) -> TraceContext:
        """Decode a token into a context ready for ``wrap_handler``."""
        return deserialize_trace_metadata(token)

    def shutdown(self) -> None:
        self.backend.shutdown()


def get_trace_provider(backend: Optional[TracingBackend] = None, **kwargs: Any) -> TraceProvider:
    """
    Build a ``TraceProvider`` over ``backend``.

    Without a backend, tracing is disabled: a ``NoopBackend`` is used and
    every operation still honors its contract.
    """
    return TraceProvider(backend if backend is not None else NoopBackend(), **kwargs)
