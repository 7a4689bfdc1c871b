"""OTLP export using the OpenTelemetry OTLP HTTP exporter."""

from __future__ import annotations

from typing import Dict, Optional

from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.trace.export import BatchSpanProcessor


def build_otlp_exporter(
    endpoint: Optional[str] = None,
    api_key: Optional[str] = None,
    timeout: float = 10.0,
    headers: Optional[Dict[str, str]] = None,
) -> OTLPSpanExporter:
    """
    Create an OTLP HTTP span exporter.

    Args:
        endpoint: OTLP endpoint URL (defaults to OTel default)
        api_key: Optional API key sent as a bearer token
        timeout: Request timeout in seconds
        headers: Optional additional headers
    """
    export_headers = dict(headers) if headers else {}
    if api_key:
        export_headers["Authorization"] = f"Bearer {api_key}"

    return OTLPSpanExporter(
        endpoint=endpoint,
        timeout=timeout,
        headers=export_headers if export_headers else None,
    )


def build_otlp_processor(
    endpoint: Optional[str] = None,
    api_key: Optional[str] = None,
    timeout: float = 10.0,
    headers: Optional[Dict[str, str]] = None,
) -> BatchSpanProcessor:
    """Batching span processor that ships spans to an OTLP endpoint."""
    return BatchSpanProcessor(
        build_otlp_exporter(endpoint=endpoint, api_key=api_key, timeout=timeout, headers=headers)
    )
