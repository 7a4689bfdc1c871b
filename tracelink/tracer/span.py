"""Span implementation - minimal wrapper around OpenTelemetry Span."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Dict, Optional

from opentelemetry import context as context_api
from opentelemetry.trace import Span as OTelSpan, Status, StatusCode
from opentelemetry.trace import SpanContext as OTelSpanContext
from opentelemetry.trace import set_span_in_context

from tracelink.tracer.span_context import SpanContext
from tracelink.utils.helpers import format_span_id, format_trace_id, format_trace_state


class SpanStatus(Enum):
    UNSET = 0
    OK = 1
    ERROR = 2


class Span:
    """
    Minimal wrapper around OpenTelemetry Span.

    Used for both transactions and segments. ``end()`` is idempotent so the
    underlying OTel span is closed exactly once whatever path reaches it.
    Entering the span (``with span:``) makes it current in the OTel context
    until exit, which also ends it.
    """

    def __init__(self, otel_span: OTelSpan, name: str) -> None:
        """
        Initialize span wrapper.

        Args:
            otel_span: OpenTelemetry Span instance
            name: Span name (OTel's API span does not expose it)
        """
        self._otel_span = otel_span
        self.name = name
        self._ended = False
        self._activation_token = None

        otel_context = otel_span.get_span_context()
        self.context = SpanContext(
            trace_id=format_trace_id(otel_context.trace_id),
            span_id=format_span_id(otel_context.span_id),
            trace_flags=int(otel_context.trace_flags),
            trace_state=format_trace_state(otel_context.trace_state),
        )

        self.start_time_ns = time.time_ns()
        self.end_time_ns: Optional[int] = None

        self.status = SpanStatus.UNSET
        self.status_description: Optional[str] = None

        self._attributes: Dict[str, Any] = {}

    @property
    def otel_span(self) -> OTelSpan:
        return self._otel_span

    @property
    def attributes(self) -> Dict[str, Any]:
        """Attributes set through this wrapper."""
        return self._attributes

    @property
    def is_ended(self) -> bool:
        return self._ended

    @property
    def duration_ns(self) -> Optional[int]:
        """Get span duration in nanoseconds."""
        if self.end_time_ns is None:
            return None
        return self.end_time_ns - self.start_time_ns

    def set_attribute(self, key: str, value: Any) -> None:
        """Set an attribute on the span."""
        if self._ended:
            return

        self._attributes[key] = value
        try:
            self._otel_span.set_attribute(key, value)
        except Exception:
            pass

    def add_link(self, span_context: OTelSpanContext, attributes: Optional[Dict[str, Any]] = None) -> None:
        """Link this span to another (typically remote) span."""
        if self._ended:
            return
        self._otel_span.add_link(span_context, attributes=attributes)

    def record_exception(self, error: BaseException) -> None:
        """Record an exception event on the span."""
        if self._ended:
            return

        try:
            self._otel_span.record_exception(error)
        except Exception:
            pass

        self.set_status(SpanStatus.ERROR, str(error))

    def set_status(self, status: SpanStatus, description: Optional[str] = None) -> None:
        """Set the span status."""
        if self._ended:
            return

        self.status = status
        self.status_description = description

        if status == SpanStatus.OK:
            otel_status = Status(status_code=StatusCode.OK)
        elif status == SpanStatus.ERROR:
            otel_status = Status(status_code=StatusCode.ERROR, description=description)
        else:
            otel_status = Status(status_code=StatusCode.UNSET)

        try:
            self._otel_span.set_status(otel_status)
        except Exception:
            pass

    def end(self, mark_ok: bool = True) -> None:
        """
        End the span. Later calls are ignored.

        Args:
            mark_ok: upgrade an UNSET status to OK before ending
        """
        if self._ended:
            return

        self.end_time_ns = time.time_ns()
        if mark_ok and self.status == SpanStatus.UNSET:
            self.set_status(SpanStatus.OK)

        self._ended = True
        try:
            self._otel_span.end(end_time=self.end_time_ns)
        except Exception:
            pass

    # Context manager support
    def __enter__(self) -> "Span":
        """Make the span current."""
        ctx = set_span_in_context(self._otel_span)
        self._activation_token = context_api.attach(ctx)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        """End the span and restore the previous context."""
        try:
            # Cancellation closes the span with its status left UNSET
            if isinstance(exc, Exception):
                self.record_exception(exc)
            self.end(mark_ok=exc is None)
        finally:
            if self._activation_token:
                context_api.detach(self._activation_token)
                self._activation_token = None
        return False
