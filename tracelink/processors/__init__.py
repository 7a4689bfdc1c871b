"""Span processors."""

from tracelink.processors.logging_processor import LoggingSpanProcessor

__all__ = ["LoggingSpanProcessor"]
