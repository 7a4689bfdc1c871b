"""Tracing backend built on the OpenTelemetry SDK."""

from __future__ import annotations

import inspect
import logging
from contextvars import ContextVar
from typing import Any, Awaitable, Callable, Optional

from opentelemetry.trace import SpanKind, Status, StatusCode, get_current_span

from tracelink.tracer.backend import TracingBackend
from tracelink.tracer.provider import TracerProvider
from tracelink.tracer.span import Span
from tracelink.tracer.transaction import OTelTransaction

logger = logging.getLogger(__name__)

DEFAULT_INSTRUMENTATION_SCOPE = "tracelink"

TRANSACTION_TYPE_ATTRIBUTE = "tracelink.transaction.type"
SEGMENT_ATTRIBUTE = "tracelink.segment"


class OTelBackend(TracingBackend):
    """
    Transactions are CONSUMER spans, segments are INTERNAL child spans.

    The active transaction lives in a ContextVar owned by the backend
    instance, so every asyncio task sees the transaction of the handler
    that spawned it and concurrent handlers never see each other's.
    """

    def __init__(
        self,
        provider: Optional[TracerProvider] = None,
        instrumentation_scope: str = DEFAULT_INSTRUMENTATION_SCOPE,
    ) -> None:
        self.provider = provider or TracerProvider()
        self._tracer = self.provider.get_tracer(instrumentation_scope)
        self._active: ContextVar[Optional[OTelTransaction]] = ContextVar(
            f"tracelink_transaction_{id(self)}", default=None
        )

    async def start_background_transaction(
        self, name: str, work: Callable[[], Awaitable[Any]]
    ) -> Any:
        otel_span = self._tracer.start_span(
            name,
            kind=SpanKind.CONSUMER,
            attributes={TRANSACTION_TYPE_ATTRIBUTE: "background"},
        )
        transaction = OTelTransaction(Span(otel_span, name))
        try:
            with transaction.span:
                token = self._active.set(transaction)
                try:
                    return await work()
                finally:
                    self._active.reset(token)
        finally:
            span = transaction.span
            logger.debug(
                "Transaction %s ended status=%s duration_ns=%s trace_id=%s",
                name,
                span.status.name,
                span.duration_ns,
                span.context.trace_id,
            )

    def get_active_transaction(self) -> Optional[OTelTransaction]:
        return self._active.get()

    async def start_segment(self, name: str, track_async: bool, work: Callable[[], Any]) -> Any:
        transaction = self.get_active_transaction()
        if transaction is None or transaction.is_ended:
            logger.debug("No active transaction, running segment %s untraced", name)
            result = work()
            if inspect.isawaitable(result):
                result = await result
            return result

        otel_span = self._tracer.start_span(
            name,
            kind=SpanKind.INTERNAL,
            attributes={SEGMENT_ATTRIBUTE: True},
        )
        with Span(otel_span, name):
            result = work()
            if track_async and inspect.isawaitable(result):
                result = await result

        # Untracked async work completes outside the segment
        if inspect.isawaitable(result):
            result = await result
        return result

    def report_error(self, error: BaseException) -> None:
        try:
            transaction = self.get_active_transaction()
            if transaction is not None and not transaction.is_ended:
                transaction.record_error(error)
                return

            current = get_current_span()
            if current.is_recording():
                current.record_exception(error)
                current.set_status(Status(status_code=StatusCode.ERROR, description=str(error)))
                return

            logger.debug("No active transaction to report %r against", error)
        except Exception:
            logger.debug("Failed to report error %r", error, exc_info=True)

    def force_flush(self, timeout: Optional[float] = None) -> bool:
        return self.provider.force_flush(timeout)

    def shutdown(self) -> None:
        self.provider.shutdown()
