"""Shared fixtures: a recording fake backend and an in-memory OTel backend."""

import inspect
from contextvars import ContextVar

import pytest
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from tracelink import runtime_config
from tracelink.tracer.backend import TracingBackend, Transaction
from tracelink.tracer.otel_backend import OTelBackend
from tracelink.tracer.provider import TracerProvider


class RecordingTransaction(Transaction):
    def __init__(self, name, events):
        self._name = name
        self._events = events
        self.accepted = []
        self.end_calls = 0
        self.outbound = {"traceparent": f"00-{'a' * 32}-{'b' * 16}-01"}

    @property
    def name(self):
        return self._name

    @property
    def is_ended(self):
        return self.end_calls > 0

    def accept_inbound_linkage(self, category, headers):
        self.accepted.append((category, dict(headers)))
        self._events.append(("accept", self._name, category))

    def extract_outbound_linkage(self):
        return dict(self.outbound)

    def end(self):
        self.end_calls += 1
        self._events.append(("end", self._name))


class RecordingBackend(TracingBackend):
    """Records every capability call in order."""

    def __init__(self):
        self.events = []
        self.transactions = []
        self.errors = []
        self.segments = []
        self._active = ContextVar("recording_transaction", default=None)

    async def start_background_transaction(self, name, work):
        transaction = RecordingTransaction(name, self.events)
        self.transactions.append(transaction)
        self.events.append(("start", name))
        token = self._active.set(transaction)
        try:
            return await work()
        finally:
            self._active.reset(token)
            transaction.end()

    def get_active_transaction(self):
        return self._active.get()

    async def start_segment(self, name, track_async, work):
        self.segments.append((name, track_async))
        self.events.append(("segment", name))
        result = work()
        if inspect.isawaitable(result):
            result = await result
        return result

    def report_error(self, error):
        self.errors.append(error)


@pytest.fixture
def recording_backend():
    return RecordingBackend()


@pytest.fixture
def span_exporter():
    return InMemorySpanExporter()


@pytest.fixture
def otel_backend(span_exporter):
    provider = TracerProvider(resource={"service.name": "tracelink-tests"})
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    backend = OTelBackend(provider)
    yield backend
    backend.shutdown()


@pytest.fixture(autouse=True)
def _reset_runtime_config():
    yield
    runtime_config.reset()
