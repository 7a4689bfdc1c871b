"""Process-wide provider setup: init(), stop_tracing(), get_provider()."""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from tracelink import runtime_config
from tracelink.config import TracelinkConfig, load_config
from tracelink.errors import InitializationError
from tracelink.exporter import build_console_processor, build_otlp_processor
from tracelink.processors import LoggingSpanProcessor
from tracelink.trace_provider import TraceProvider, get_trace_provider
from tracelink.tracer.backend import TracingBackend
from tracelink.tracer.noop_backend import NoopBackend
from tracelink.tracer.otel_backend import OTelBackend
from tracelink.tracer.provider import TracerProvider, ratio_sampler

logger = logging.getLogger(__name__)

_provider: Optional[TraceProvider] = None
_lock = threading.Lock()


def build_backend(config: TracelinkConfig) -> TracingBackend:
    """
    Create the backend described by ``config``.

    Raises:
        InitializationError: if the OTel pipeline cannot be constructed
    """
    if not config.tracing.enabled:
        return NoopBackend()

    try:
        provider = TracerProvider(
            resource={"service.name": config.tracing.service_name},
            sampler=ratio_sampler(config.tracing.sample_rate),
        )
        exporters = config.exporters
        if exporters.enable_console:
            provider.add_span_processor(build_console_processor())
        if exporters.enable_logging:
            provider.add_span_processor(LoggingSpanProcessor())
        if exporters.otlp_endpoint:
            provider.add_span_processor(
                build_otlp_processor(
                    endpoint=exporters.otlp_endpoint,
                    api_key=exporters.api_key,
                    timeout=exporters.timeout,
                    headers=exporters.headers,
                )
            )
    except Exception as exc:
        raise InitializationError("Failed to build OpenTelemetry backend", {"error": exc}) from exc

    return OTelBackend(provider)


def _apply_runtime_config(config: TracelinkConfig) -> None:
    runtime_config.set_debug(config.tracing.debug)
    runtime_config.set_carrier_category(config.linkage.carrier_category)
    runtime_config.set_segment_suffix(config.linkage.segment_suffix)


def init(
    config_file: Optional[str] = None,
    *,
    backend: Optional[TracingBackend] = None,
    **overrides: Any,
) -> TraceProvider:
    """
    Configure the process-wide ``TraceProvider``.

    Idempotent: later calls return the existing provider until
    ``stop_tracing()`` is called.

    Args:
        config_file: Path to a TOML config file
        backend: Explicit backend; skips building one from configuration
        **overrides: Flat config options, e.g. ``service_name="orders"``

    Raises:
        ConfigError: if the configuration is invalid
        InitializationError: if the backend cannot be built
    """
    global _provider
    with _lock:
        if _provider is not None:
            logger.warning("tracelink is already initialized; call stop_tracing() to reconfigure")
            return _provider

        config = load_config(config_file, **overrides)
        _apply_runtime_config(config)
        if runtime_config.get_debug():
            logging.getLogger("tracelink").setLevel(logging.DEBUG)

        if backend is None:
            backend = build_backend(config)
        _provider = get_trace_provider(backend)
        logger.debug(
            "tracelink initialized with %s for service %s",
            type(backend).__name__,
            config.tracing.service_name,
        )
        return _provider


def stop_tracing() -> None:
    """Shut down the process-wide provider so ``init()`` can run again."""
    global _provider
    with _lock:
        provider, _provider = _provider, None
        runtime_config.reset()
    if provider is not None:
        provider.shutdown()


_disabled_provider = get_trace_provider()


def get_provider() -> TraceProvider:
    """The initialized provider, or a disabled one before ``init()``."""
    provider = _provider
    if provider is None:
        return _disabled_provider
    return provider


def is_initialized() -> bool:
    return _provider is not None
