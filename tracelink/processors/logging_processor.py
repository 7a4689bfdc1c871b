"""Span processor that logs spans when they end."""

from __future__ import annotations

import logging
from typing import Optional

from opentelemetry.context import Context
from opentelemetry.sdk.trace import ReadableSpan, Span as SDKSpan, SpanProcessor

from tracelink.exporter.console_exporter import format_span_line


class LoggingSpanProcessor(SpanProcessor):
    """Logs span summary on end using the standard logging module."""

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.INFO) -> None:
        self.logger = logger or logging.getLogger("tracelink.traces")
        self.level = level

    def on_start(self, span: SDKSpan, parent_context: Optional[Context] = None) -> None:
        return None

    def on_end(self, span: ReadableSpan) -> None:
        if self.logger.isEnabledFor(self.level):
            self.logger.log(self.level, format_span_line(span).rstrip("\n"))

    def shutdown(self) -> None:
        return None

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return True
