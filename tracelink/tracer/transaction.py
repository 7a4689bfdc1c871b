"""Transaction handle backed by an OpenTelemetry span."""

from __future__ import annotations

import logging
from typing import Dict, Mapping

from opentelemetry.trace import get_current_span

from tracelink.context.propagators import (
    extract_inbound_baggage,
    extract_remote_span_context,
    inject_span_headers,
)
from tracelink.tracer.backend import Transaction
from tracelink.tracer.span import Span

logger = logging.getLogger(__name__)

LINKAGE_CATEGORY_ATTRIBUTE = "tracelink.linkage.category"
LINKAGE_ACCEPTED_ATTRIBUTE = "tracelink.linkage.accepted"


class OTelTransaction(Transaction):
    """
    A transaction is the CONSUMER span opened by ``OTelBackend``.

    OTel spans cannot change parent after they start, so accepted inbound
    linkage becomes a span link to the remote span context. Baggage from the
    linkage is kept on the handle and re-emitted in outbound linkage.
    """

    def __init__(self, span: Span) -> None:
        self._span = span
        self._baggage: Dict[str, str] = {}

    @property
    def name(self) -> str:
        return self._span.name

    @property
    def span(self) -> Span:
        return self._span

    @property
    def is_ended(self) -> bool:
        return self._span.is_ended

    @property
    def baggage(self) -> Dict[str, str]:
        """Baggage inherited from accepted linkage, forwarded downstream."""
        return dict(self._baggage)

    def accept_inbound_linkage(self, category: str, headers: Mapping[str, str]) -> None:
        self._span.set_attribute(LINKAGE_CATEGORY_ATTRIBUTE, category)
        self._baggage.update(extract_inbound_baggage(headers))

        remote = extract_remote_span_context(headers)
        if remote is None:
            logger.debug(
                "No valid upstream span in linkage for transaction %s: %s",
                self.name,
                sorted(headers),
            )
            self._span.set_attribute(LINKAGE_ACCEPTED_ATTRIBUTE, False)
            return

        self._span.add_link(remote, attributes={LINKAGE_CATEGORY_ATTRIBUTE: category})
        self._span.set_attribute(LINKAGE_ACCEPTED_ATTRIBUTE, True)

    def extract_outbound_linkage(self) -> Dict[str, str]:
        # Prefer the innermost open segment of this transaction as the parent
        current = get_current_span()
        current_context = current.get_span_context()
        if (
            current.is_recording()
            and current_context.trace_id == self._span.otel_span.get_span_context().trace_id
        ):
            return inject_span_headers(current, baggage=self._baggage)
        return inject_span_headers(self._span.otel_span, baggage=self._baggage)

    def record_error(self, error: BaseException) -> None:
        self._span.record_exception(error)

    def end(self) -> None:
        self._span.end()
