"""TracerProvider using OpenTelemetry SDK."""

from __future__ import annotations

import threading
from typing import Dict, List, Optional

from opentelemetry.sdk.resources import Resource as OTelResource
from opentelemetry.sdk.trace import SpanProcessor as OTelSpanProcessor
from opentelemetry.sdk.trace import TracerProvider as OTelTracerProvider
from opentelemetry.sdk.trace.sampling import ParentBased, Sampler, TraceIdRatioBased
from opentelemetry.trace import Tracer as OTelTracer


def ratio_sampler(sample_rate: float) -> Sampler:
    """Parent-based sampler that samples new root traces at ``sample_rate``."""
    if not 0.0 <= sample_rate <= 1.0:
        raise ValueError("sample_rate must be between 0.0 and 1.0")
    return ParentBased(root=TraceIdRatioBased(sample_rate))


class TracerProvider:
    """
    Owns a private OpenTelemetry TracerProvider.

    The global OTel provider is left untouched, so several backends (and
    the application's own OTel setup) can coexist in one process.
    """

    def __init__(
        self,
        resource: Optional[Dict[str, str]] = None,
        sampler: Optional[Sampler] = None,
    ) -> None:
        """
        Initialize TracerProvider with OpenTelemetry.

        Args:
            resource: Resource attributes dictionary (converted to OTel Resource)
            sampler: OTel sampler; defaults to OTel's parent-based always-on
        """
        otel_resource = OTelResource.create(resource or {})
        if sampler is None:
            self._otel_provider = OTelTracerProvider(resource=otel_resource)
        else:
            self._otel_provider = OTelTracerProvider(resource=otel_resource, sampler=sampler)

        self.resource = resource or {}
        self.sampler = sampler

        self._processors: List[OTelSpanProcessor] = []
        self._tracers: Dict[str, OTelTracer] = {}
        self._lock = threading.Lock()

    def get_tracer(self, name: str) -> OTelTracer:
        """
        Get a tracer by name.

        Args:
            name: Instrumentation scope name
        """
        with self._lock:
            tracer = self._tracers.get(name)
            if tracer is None:
                tracer = self._otel_provider.get_tracer(name)
                self._tracers[name] = tracer
            return tracer

    def add_span_processor(self, processor: OTelSpanProcessor) -> None:
        """Register an OTel span processor (exporters, logging)."""
        self._otel_provider.add_span_processor(processor)
        self._processors.append(processor)

    @property
    def span_processors(self) -> List[OTelSpanProcessor]:
        return list(self._processors)

    def force_flush(self, timeout: Optional[float] = None) -> bool:
        """Force flush all processors."""
        return self._otel_provider.force_flush(
            timeout_millis=int(timeout * 1000) if timeout else 30000
        )

    def shutdown(self) -> None:
        """Shutdown the provider and all processors."""
        self._otel_provider.shutdown()
