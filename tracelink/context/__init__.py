"""Trace context carrier and metadata codec."""

from tracelink.context.context import TraceContext
from tracelink.context.propagators import (
    decode_linkage,
    deserialize_trace_metadata,
    encode_linkage,
    extract_inbound_baggage,
    extract_remote_span_context,
    inject_span_headers,
    serialize_trace_metadata,
)

__all__ = [
    "TraceContext",
    "encode_linkage",
    "decode_linkage",
    "serialize_trace_metadata",
    "deserialize_trace_metadata",
    "inject_span_headers",
    "extract_remote_span_context",
    "extract_inbound_baggage",
]
