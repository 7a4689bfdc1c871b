"""Console export for developer visibility."""

from __future__ import annotations

import sys
from typing import Optional, TextIO

from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

from tracelink.utils.helpers import format_span_id, format_trace_id


def format_span_line(span: ReadableSpan) -> str:
    """One line per span: name, ids, status, duration and attributes."""
    context = span.get_span_context()
    duration_ns = None
    if span.end_time is not None and span.start_time is not None:
        duration_ns = span.end_time - span.start_time
    line = (
        f"[span] name={span.name} trace_id={format_trace_id(context.trace_id)} "
        f"span_id={format_span_id(context.span_id)} status={span.status.status_code.name} "
        f"duration_ns={duration_ns}"
    )
    if span.attributes:
        line += f" attrs={dict(span.attributes)}"
    return line + "\n"


def build_console_processor(stream: Optional[TextIO] = None) -> SimpleSpanProcessor:
    """Print each finished span to stdout (or the provided stream)."""
    exporter = ConsoleSpanExporter(out=stream or sys.stdout, formatter=format_span_line)
    return SimpleSpanProcessor(exporter)
