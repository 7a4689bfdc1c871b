"""End-to-end tests for the OpenTelemetry backend using an in-memory exporter."""

import asyncio
import json

import pytest
from opentelemetry import baggage
from opentelemetry import context as context_api
from opentelemetry.trace import SpanKind, StatusCode

from tracelink.context import TraceContext
from tracelink.trace_provider import TraceProvider
from tracelink.tracer.transaction import LINKAGE_ACCEPTED_ATTRIBUTE, LINKAGE_CATEGORY_ATTRIBUTE
from tracelink.utils.helpers import format_span_id, format_trace_id


@pytest.fixture
def provider(otel_backend):
    return TraceProvider(otel_backend)


def _spans_by_name(exporter):
    return {span.name: span for span in exporter.get_finished_spans()}


def test_transaction_is_consumer_span(provider, span_exporter):
    """A transaction is exported as one CONSUMER span with OK status."""
    asyncio.run(provider.wrap_handler("orders.consume", None, lambda c: None))

    spans = span_exporter.get_finished_spans()
    assert len(spans) == 1
    assert spans[0].name == "orders.consume"
    assert spans[0].kind == SpanKind.CONSUMER
    assert spans[0].status.status_code == StatusCode.OK


def test_segment_is_child_of_transaction(provider, span_exporter):
    """Segments are INTERNAL children of the transaction span."""
    async def handle(context):
        await provider.wrap_handler_segment("", context, lambda: None)

    asyncio.run(provider.wrap_handler("Foo", None, handle))

    spans = _spans_by_name(span_exporter)
    assert set(spans) == {"Foo", "Foo-segment"}
    segment, transaction = spans["Foo-segment"], spans["Foo"]
    assert segment.kind == SpanKind.INTERNAL
    assert segment.parent.span_id == transaction.context.span_id
    assert segment.context.trace_id == transaction.context.trace_id


def test_segment_tracks_async_work(provider, span_exporter):
    """A tracked segment stays open until its async work finishes."""
    async def inner():
        await asyncio.sleep(0)

    async def outer_work(context):
        await asyncio.sleep(0)
        # Spawned tasks inherit the open segment
        await asyncio.create_task(provider.wrap_handler_segment("inner", context, inner))
        await asyncio.sleep(0)

    async def handle(context):
        await provider.wrap_handler_segment("outer", context, lambda: outer_work(context))

    asyncio.run(provider.wrap_handler("orders", None, handle))

    spans = _spans_by_name(span_exporter)
    assert spans["inner"].parent.span_id == spans["outer"].context.span_id
    assert spans["outer"].parent.span_id == spans["orders"].context.span_id
    # The outer segment ends only after its awaited work, including the inner one
    assert spans["outer"].end_time >= spans["inner"].end_time


def test_segment_error_recorded_and_propagated(provider, span_exporter):
    """Segment errors mark both spans and reach the caller."""
    async def fail():
        await asyncio.sleep(0)
        raise ValueError("bad payload")

    async def handle(context):
        await provider.wrap_handler_segment("parse", context, fail)

    with pytest.raises(ValueError, match="bad payload"):
        asyncio.run(provider.wrap_handler("orders", None, handle))

    spans = _spans_by_name(span_exporter)
    assert spans["parse"].status.status_code == StatusCode.ERROR
    assert spans["orders"].status.status_code == StatusCode.ERROR
    assert any(event.name == "exception" for event in spans["parse"].events)


def test_callback_error_closes_transaction_once(provider, span_exporter):
    """A failing callback ends its span once with ERROR status."""
    async def handle(context):
        raise RuntimeError("crash")

    with pytest.raises(RuntimeError, match="crash"):
        asyncio.run(provider.wrap_handler("orders", None, handle))

    spans = span_exporter.get_finished_spans()
    assert len(spans) == 1
    assert spans[0].status.status_code == StatusCode.ERROR


def test_cancelled_handler_ends_span_once(provider, span_exporter):
    """Cancellation ends the transaction once and leaves its status UNSET."""
    async def main():
        started = asyncio.Event()

        async def handle(context):
            started.set()
            await asyncio.Event().wait()

        task = asyncio.create_task(provider.wrap_handler("orders", None, handle))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(main())
    spans = span_exporter.get_finished_spans()
    assert len(spans) == 1
    assert spans[0].status.status_code == StatusCode.UNSET


def test_serialized_token_links_consumer_to_producer(provider, span_exporter):
    """The consumer span links to the producer span named in the token."""
    tokens = []

    async def produce(context):
        tokens.append(provider.serialize_trace_metadata(context))

    asyncio.run(provider.wrap_handler("orders.produce", None, produce))
    headers = json.loads(tokens[0])
    assert "traceparent" in headers

    consumer_context = provider.deserialize_trace_metadata(tokens[0])
    asyncio.run(provider.wrap_handler("orders.consume", consumer_context, lambda c: None))

    spans = _spans_by_name(span_exporter)
    producer, consumer = spans["orders.produce"], spans["orders.consume"]
    assert headers["traceparent"] == (
        f"00-{format_trace_id(producer.context.trace_id)}-"
        f"{format_span_id(producer.context.span_id)}-"
        f"{int(producer.context.trace_flags):02x}"
    )
    assert len(consumer.links) == 1
    link = consumer.links[0]
    assert link.context.trace_id == producer.context.trace_id
    assert link.context.span_id == producer.context.span_id
    assert link.attributes[LINKAGE_CATEGORY_ATTRIBUTE] == "Queue"
    assert consumer.attributes[LINKAGE_CATEGORY_ATTRIBUTE] == "Queue"
    assert consumer.attributes[LINKAGE_ACCEPTED_ATTRIBUTE] is True


def test_serialize_inside_segment_points_at_segment(provider, span_exporter):
    """Tokens produced inside a segment name the segment span."""
    tokens = []

    async def handle(context):
        await provider.wrap_handler_segment(
            "publish", context, lambda: tokens.append(provider.serialize_trace_metadata(context))
        )

    asyncio.run(provider.wrap_handler("orders", None, handle))

    segment = _spans_by_name(span_exporter)["publish"]
    assert format_span_id(segment.context.span_id) in json.loads(tokens[0])["traceparent"]


def test_linkage_without_traceparent_is_not_linked(provider, span_exporter):
    """Linkage without a traceparent adds no span link."""
    context = TraceContext.from_inbound_linkage({"x-unrelated": "1"})
    asyncio.run(provider.wrap_handler("orders", context, lambda c: None))

    span = span_exporter.get_finished_spans()[0]
    assert len(span.links) == 0
    assert span.attributes[LINKAGE_ACCEPTED_ATTRIBUTE] is False


def test_on_error_marks_active_transaction(provider, span_exporter):
    """on_error records the exception on the open transaction."""
    async def handle(context):
        provider.on_error(ValueError("recoverable"), context)

    asyncio.run(provider.wrap_handler("orders", None, handle))

    span = span_exporter.get_finished_spans()[0]
    assert span.status.status_code == StatusCode.ERROR
    assert any(event.name == "exception" for event in span.events)


def test_on_error_outside_transaction_is_silent(provider, span_exporter):
    """on_error without a transaction exports nothing."""
    provider.on_error(ValueError("nobody listening"))
    assert span_exporter.get_finished_spans() == ()


def test_segment_without_transaction_runs_untraced(provider, span_exporter):
    """Segments with no open transaction run without a span."""
    result = asyncio.run(provider.wrap_handler_segment("orphan", None, lambda: 3))
    assert result == 3
    assert span_exporter.get_finished_spans() == ()


def test_concurrent_handlers_see_own_transaction(provider, otel_backend, span_exporter):
    """Interleaved handlers each see their own transaction."""
    seen = {}

    async def handle(context):
        for _ in range(3):
            await asyncio.sleep(0)
            seen.setdefault(context.name, set()).add(otel_backend.get_active_transaction().name)

    async def main():
        await asyncio.gather(
            provider.wrap_handler("first", None, handle),
            provider.wrap_handler("second", None, handle),
        )

    asyncio.run(main())
    assert seen == {"first": {"first"}, "second": {"second"}}
    spans = _spans_by_name(span_exporter)
    assert spans["first"].context.trace_id != spans["second"].context.trace_id
    assert otel_backend.get_active_transaction() is None


def test_transaction_handle_exposes_span_identity(provider, span_exporter):
    """The handle exposes the exported span's ids and flags."""
    handles = []

    async def handle(context):
        handles.append(context.transaction)

    asyncio.run(provider.wrap_handler("orders", None, handle))

    exported = span_exporter.get_finished_spans()[0]
    span = handles[0].span
    assert handles[0].is_ended
    assert span.context.is_valid()
    assert span.context.sampled
    assert span.context.trace_id == format_trace_id(exported.context.trace_id)
    assert span.context.span_id == format_span_id(exported.context.span_id)
    assert span.context.trace_flags == int(exported.context.trace_flags)
    assert span.duration_ns is not None and span.duration_ns >= 0


def test_cancelled_segment_is_not_marked_ok(provider, span_exporter):
    """A cancelled segment ends with UNSET status rather than OK."""
    async def main():
        started = asyncio.Event()

        async def stall():
            started.set()
            await asyncio.Event().wait()

        async def handle(context):
            await provider.wrap_handler_segment("wait", context, stall)

        task = asyncio.create_task(provider.wrap_handler("orders", None, handle))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(main())
    spans = _spans_by_name(span_exporter)
    assert spans["wait"].status.status_code == StatusCode.UNSET
    assert spans["orders"].status.status_code == StatusCode.UNSET


def test_inbound_baggage_survives_queue_hop(provider, span_exporter):
    """Baggage received with the linkage is forwarded in the next token."""
    upstream = {
        "traceparent": "00-0af7651916cd43dd8448eb211c80319c-b7ad6b7169203331-01",
        "baggage": "tenant=acme",
    }
    tokens = []
    handles = []

    async def handle(context):
        handles.append(context.transaction)
        tokens.append(provider.serialize_trace_metadata(context))

    context = TraceContext.from_inbound_linkage(upstream)
    asyncio.run(provider.wrap_handler("orders.consume", context, handle))

    assert handles[0].baggage == {"tenant": "acme"}
    assert "tenant=acme" in json.loads(tokens[0])["baggage"]

    second = provider.deserialize_trace_metadata(tokens[0])
    asyncio.run(provider.wrap_handler("orders.audit", second, handle))

    assert handles[1].baggage == {"tenant": "acme"}
    assert "tenant=acme" in json.loads(tokens[1])["baggage"]


def test_current_baggage_wins_over_inherited(provider):
    """A baggage entry set by the handler replaces the inherited value."""
    tokens = []

    async def handle(context):
        token = context_api.attach(baggage.set_baggage("tenant", "globex"))
        try:
            tokens.append(provider.serialize_trace_metadata(context))
        finally:
            context_api.detach(token)

    context = TraceContext.from_inbound_linkage({"baggage": "tenant=acme"})
    asyncio.run(provider.wrap_handler("orders", context, handle))

    assert json.loads(tokens[0])["baggage"] == "tenant=globex"
