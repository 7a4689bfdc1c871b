"""Trace metadata codec and OpenTelemetry header propagation.

A trace metadata token is a JSON object of string header names to string
header values. Producers call ``serialize_trace_metadata`` on a context whose
transaction is active and place the token in their message payload; consumers
pass the token to ``deserialize_trace_metadata`` and hand the resulting
context to ``wrap_handler``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional

from opentelemetry import baggage as baggage_api
from opentelemetry import context as context_api
from opentelemetry.propagate import extract as otel_extract, inject as otel_inject
from opentelemetry.trace import SpanContext as OTelSpanContext
from opentelemetry.trace import Span as OTelSpan
from opentelemetry.trace import get_current_span, set_span_in_context

from tracelink.context.context import TraceContext
from tracelink.errors import MalformedTokenError, MissingTransactionError

logger = logging.getLogger(__name__)


def encode_linkage(headers: Mapping[str, str]) -> str:
    """Encode a header mapping as a compact JSON object string."""
    return json.dumps(dict(headers), separators=(",", ":"), sort_keys=True)


def decode_linkage(token: Any) -> Dict[str, str]:
    """
    Decode a token produced by ``encode_linkage``.

    Accepts ``str`` or UTF-8 ``bytes``.

    Raises:
        MalformedTokenError: if the token is not a JSON object of strings
    """
    if isinstance(token, (bytes, bytearray)):
        try:
            token = token.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedTokenError("Trace metadata is not valid UTF-8") from exc
    if not isinstance(token, str):
        raise MalformedTokenError(
            "Trace metadata must be a string",
            {"type": type(token).__name__},
        )

    try:
        decoded = json.loads(token)
    except ValueError as exc:
        raise MalformedTokenError("Trace metadata is not valid JSON", {"error": exc}) from exc

    if not isinstance(decoded, dict):
        raise MalformedTokenError(
            "Trace metadata must be a JSON object",
            {"type": type(decoded).__name__},
        )
    for key, value in decoded.items():
        if not isinstance(value, str):
            raise MalformedTokenError(
                "Trace metadata values must be strings",
                {"key": key, "type": type(value).__name__},
            )
    return decoded


def serialize_trace_metadata(context: Optional[TraceContext]) -> str:
    """
    Serialize the downstream linkage of the context's transaction.

    Raises:
        MissingTransactionError: if the context has no active transaction
    """
    if context is None or not context.has_transaction:
        raise MissingTransactionError("Transaction missing from trace context")
    if not context.is_active:
        raise MissingTransactionError(
            "Transaction on trace context has already finished",
            {"name": context.name},
        )

    headers = context.transaction.extract_outbound_linkage()
    return encode_linkage(headers)


def deserialize_trace_metadata(token: Any) -> TraceContext:
    """
    Build a context carrying the linkage encoded in ``token``.

    Malformed tokens yield an empty context, so the consumer's transaction
    simply starts unlinked.
    """
    if token is None:
        return TraceContext()
    try:
        headers = decode_linkage(token)
    except MalformedTokenError as exc:
        logger.warning("Ignoring malformed trace metadata: %s", exc)
        return TraceContext()
    return TraceContext.from_inbound_linkage(headers)


# OpenTelemetry carrier helpers used by the OTel backend

def inject_span_headers(
    otel_span: OTelSpan,
    carrier: Optional[Dict[str, str]] = None,
    baggage: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """
    Inject the headers linking to ``otel_span`` into ``carrier``.

    Uses the globally configured OTel text-map propagator, so baggage in the
    current context travels along with ``traceparent``/``tracestate``.
    Entries of ``baggage`` are added where the current context has no value
    for the same key.
    """
    if carrier is None:
        carrier = {}
    ctx = context_api.get_current()
    for key, value in (baggage or {}).items():
        if baggage_api.get_baggage(key, context=ctx) is None:
            ctx = baggage_api.set_baggage(key, value, context=ctx)
    ctx = set_span_in_context(otel_span, ctx)
    otel_inject(carrier, context=ctx)
    return carrier


def extract_remote_span_context(headers: Mapping[str, str]) -> Optional[OTelSpanContext]:
    """Return the remote span context described by ``headers``, if valid."""
    ctx = otel_extract(dict(headers))
    span_context = get_current_span(context=ctx).get_span_context()
    if span_context.is_valid:
        return span_context
    return None


def extract_inbound_baggage(headers: Mapping[str, str]) -> Dict[str, str]:
    """Return the baggage entries carried by ``headers``."""
    ctx = otel_extract(dict(headers))
    return {key: str(value) for key, value in baggage_api.get_all(context=ctx).items()}
