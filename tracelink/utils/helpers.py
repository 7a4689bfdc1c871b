"""Helper functions for OpenTelemetry compatibility."""

from __future__ import annotations

from typing import Optional

from opentelemetry.trace import TraceState


def format_trace_id(trace_id: int) -> str:
    """
    Format OTel trace_id (int) to hex string.

    Args:
        trace_id: OTel trace_id as a 128-bit int

    Returns:
        32-character hex string
    """
    return format(trace_id, '032x')


def format_span_id(span_id: int) -> str:
    """
    Format OTel span_id (int) to hex string.

    Args:
        span_id: OTel span_id as a 64-bit int

    Returns:
        16-character hex string
    """
    return format(span_id, '016x')


def format_trace_state(trace_state: Optional[TraceState]) -> Optional[str]:
    """Format OTel TraceState to W3C string format (key1=value1,key2=value2)."""
    if not trace_state:
        return None
    items = [f"{key}={value}" for key, value in trace_state.items()]
    return ",".join(items) if items else None
