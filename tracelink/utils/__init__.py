"""Utility functions for tracelink."""

from tracelink.utils.helpers import (
    format_trace_id,
    format_span_id,
    format_trace_state,
)

__all__ = [
    "format_trace_id",
    "format_span_id",
    "format_trace_state",
]
