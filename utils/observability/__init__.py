"""Observability utilities for the orchestrator.

This module provides vendor-neutral tracing infrastructure:
- @observe decorator for automatic span creation (sync and async)
- OpenTelemetry setup with an OTLP exporter
"""

from .observe import observe

# Lazy imports to avoid requiring the OpenTelemetry SDK at import time
def setup_telemetry(*args, **kwargs):
    """Set up OpenTelemetry tracing."""
    from .otel_setup import setup_telemetry as _setup_telemetry
    return _setup_telemetry(*args, **kwargs)

def get_tracer(*args, **kwargs):
    """Get OpenTelemetry tracer."""
    from .otel_setup import get_tracer as _get_tracer
    return _get_tracer(*args, **kwargs)

__all__ = ["observe", "setup_telemetry", "get_tracer"]
