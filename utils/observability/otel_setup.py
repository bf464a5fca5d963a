"""Simple OpenTelemetry setup for the orchestrator."""

from __future__ import annotations

import os
from typing import Optional

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

DEFAULT_SERVICE_NAME = "capability-orchestrator"


def setup_telemetry(service_name: str = DEFAULT_SERVICE_NAME, *, required: bool = False) -> trace.Tracer:
    """Setup OpenTelemetry tracing.

    Args:
        service_name: Name of the service for telemetry
        required: Raise when no exporter endpoint is configured

    Environment variables:
        - OTEL_EXPORTER_OTLP_ENDPOINT, OTEL_EXPORTER_OTLP_HEADERS
        - OTEL_SERVICE_NAME overrides ``service_name``

    Raises:
        ValueError: If required is set but OTEL_EXPORTER_OTLP_ENDPOINT is missing

    Returns:
        Tracer ready for use
    """
    resource = Resource.create({SERVICE_NAME: os.getenv("OTEL_SERVICE_NAME", service_name)})
    trace_provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(trace_provider)

    exporter = _create_otel_exporter(required=required)
    if exporter:
        trace_provider.add_span_processor(BatchSpanProcessor(exporter))

    return trace.get_tracer(service_name)


def _create_otel_exporter(required: bool = False) -> Optional[OTLPSpanExporter]:
    """Create standard OTel exporter using OTEL_* env vars.

    The OTLPSpanExporter reads OTEL_EXPORTER_OTLP_* env vars automatically.
    We only validate they exist if this exporter is explicitly required.
    """
    endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")

    if required and not endpoint:
        raise ValueError("OTel telemetry required but missing environment variable: OTEL_EXPORTER_OTLP_ENDPOINT")

    return OTLPSpanExporter() if endpoint else None


def get_tracer(service_name: str = DEFAULT_SERVICE_NAME) -> trace.Tracer:
    """Get a tracer, setting up telemetry if needed."""
    if isinstance(trace.get_tracer_provider(), trace.ProxyTracerProvider):
        setup_telemetry(service_name)
    return trace.get_tracer(service_name)
