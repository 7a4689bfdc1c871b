"""Exporters for delivering spans to backends."""

from tracelink.exporter.console_exporter import build_console_processor, format_span_line
from tracelink.exporter.otlp_exporter import build_otlp_exporter, build_otlp_processor

__all__ = [
    "build_console_processor",
    "format_span_line",
    "build_otlp_exporter",
    "build_otlp_processor",
]
