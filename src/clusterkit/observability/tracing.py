from __future__ import annotations

"""
clusterkit.observability.tracing
================================

OpenTelemetry wiring.

- `setup_tracing()` installs a service-wide tracer provider, optionally with
  an exporter (OTLP, console, in-memory for tests...).
- `trace(name)` wraps sync or async callables in a span. Until a provider is
  installed the OpenTelemetry API hands out no-op tracers, so decorated code
  runs unchanged.
"""

import functools
import inspect
from typing import Any, Callable, TypeVar, cast

from opentelemetry import trace as otel_trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor, SpanExporter

from ..core.log import get_logger

__all__ = ["setup_tracing", "trace"]

_log = get_logger("observability.tracing")
_F = TypeVar("_F", bound=Callable[..., Any])
_TRACER_NAME = "clusterkit"


def setup_tracing(
    *,
    service_name: str,
    exporter: SpanExporter | None = None,
    batch: bool = True,
) -> TracerProvider:
    """
    Configure the global tracer provider and return it.

    Args:
        service_name: value of the `service.name` resource attribute.
        exporter: span exporter; without one spans are recorded but not shipped.
        batch: use a BatchSpanProcessor (production) instead of a SimpleSpanProcessor.
    """
    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))
    if exporter is not None:
        processor = BatchSpanProcessor(exporter) if batch else SimpleSpanProcessor(exporter)
        provider.add_span_processor(processor)
    otel_trace.set_tracer_provider(provider)
    _log.info("otel tracing configured", service=service_name, exporter=type(exporter).__name__ if exporter else None)
    return provider


def trace(name: str) -> Callable[[_F], _F]:
    """Decorator: run the wrapped callable inside a span called `name`."""

    def _decorator(func: _F) -> _F:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def _aw(*args: Any, **kwargs: Any):
                tracer = otel_trace.get_tracer(_TRACER_NAME)
                with tracer.start_as_current_span(name):
                    return await func(*args, **kwargs)

            return cast(_F, _aw)

        @functools.wraps(func)
        def _sw(*args: Any, **kwargs: Any):
            tracer = otel_trace.get_tracer(_TRACER_NAME)
            with tracer.start_as_current_span(name):
                return func(*args, **kwargs)

        return cast(_F, _sw)

    return _decorator
