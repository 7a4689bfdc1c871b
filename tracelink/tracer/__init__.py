"""Tracing backends and the OpenTelemetry wrappers they use."""

from tracelink.tracer.backend import TracingBackend, Transaction
from tracelink.tracer.noop_backend import NoopBackend, NoopTransaction
from tracelink.tracer.otel_backend import OTelBackend
from tracelink.tracer.provider import TracerProvider, ratio_sampler
from tracelink.tracer.span import Span, SpanStatus
from tracelink.tracer.span_context import SpanContext
from tracelink.tracer.transaction import OTelTransaction

__all__ = [
    "TracingBackend",
    "Transaction",
    "NoopBackend",
    "NoopTransaction",
    "OTelBackend",
    "OTelTransaction",
    "TracerProvider",
    "ratio_sampler",
    "Span",
    "SpanStatus",
    "SpanContext",
]
