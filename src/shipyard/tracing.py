"""OpenTelemetry tracing setup for Shipyard.

The orchestrator wraps the whole run in a root span and each stage in a
child span. Without ``init_tracing`` the default no-op provider is used.

Design follows Function Core / Imperative Shell:
- Pure functions: build_resource, resolve_exporter_type, run_attributes,
  build_attributes, health_attributes: compute plain dicts, no OTel SDK imports.
- Imperative shell (internal): _create_tracer_provider: builds a provider
  without setting it globally, enabling isolated testing.
- Imperative shell (public): init_tracing, get_tracer, shutdown_tracing.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.trace import Tracer

    from shipyard.models import BuildOutcome, HealthResult

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SERVICE_NAME = "shipyard"
SERVICE_VERSION = "0.1.0"

SHIPYARD_OTEL_EXPORTER_ENV = "SHIPYARD_OTEL_EXPORTER"
SHIPYARD_OTEL_ENDPOINT_ENV = "SHIPYARD_OTEL_ENDPOINT"


# ---------------------------------------------------------------------------
# Enum
# ---------------------------------------------------------------------------


class ExporterType(Enum):
    """Supported trace exporter backends."""

    CONSOLE = "console"
    OTLP_GRPC = "otlp_grpc"
    OTLP_HTTP = "otlp_http"
    NONE = "none"


# ---------------------------------------------------------------------------
# Pure functions (no OTel SDK imports)
# ---------------------------------------------------------------------------


def build_resource(
    service_name: str = SERVICE_NAME,
    service_version: str = SERVICE_VERSION,
    extra_attributes: dict[str, str] | None = None,
) -> dict[str, str]:
    """Compute resource attributes as a plain dict.

    ``service.name`` and ``service.version`` are always set from the explicit
    parameters, even if *extra_attributes* contains those keys.
    """
    attrs: dict[str, str] = {}
    if extra_attributes:
        attrs.update(extra_attributes)
    attrs["service.name"] = service_name
    attrs["service.version"] = service_version
    return attrs


def resolve_exporter_type(
    exporter: ExporterType | None = None,
    environ: Mapping[str, str] | None = None,
) -> ExporterType:
    """Determine the exporter type.

    Resolution order:

    1. Explicit *exporter* parameter.
    2. ``SHIPYARD_OTEL_EXPORTER`` in *environ*.
    3. Default: ``ExporterType.NONE``, so CLI output is not interleaved with spans.

    Raises:
        ValueError: If the environment variable contains an unrecognised value.
    """
    if exporter is not None:
        return exporter

    env_value = (environ or {}).get(SHIPYARD_OTEL_EXPORTER_ENV)
    if env_value:
        try:
            return ExporterType(env_value)
        except ValueError:
            valid = ", ".join(e.value for e in ExporterType)
            msg = (
                f"Invalid {SHIPYARD_OTEL_EXPORTER_ENV} value {env_value!r}. "
                f"Valid options: {valid}"
            )
            raise ValueError(msg) from None

    return ExporterType.NONE


def run_attributes(project: str, target: str, environment: str) -> dict[str, str]:
    """Build ``shipyard.run.*`` span attributes identifying a run."""
    return {
        "shipyard.run.project": project,
        "shipyard.run.target": target,
        "shipyard.run.environment": environment,
    }


def build_attributes(outcome: BuildOutcome) -> dict[str, str | int | bool]:
    """Build ``shipyard.build.*`` span attributes from a pipeline outcome."""
    attrs: dict[str, str | int | bool] = {
        "shipyard.build.success": outcome.success,
        "shipyard.build.step_count": len(outcome.steps),
        "shipyard.build.pass_count": sum(1 for s in outcome.steps if s.passed),
        "shipyard.build.warning_count": len(outcome.warnings),
    }
    for step in outcome.steps:
        attrs[f"shipyard.build.{step.name}.passed"] = step.passed
    if outcome.failed_step is not None:
        attrs["shipyard.build.failed_step"] = outcome.failed_step
    return attrs


def health_attributes(result: HealthResult) -> dict[str, str | int]:
    """Build ``shipyard.health.*`` span attributes from a poll result."""
    attrs: dict[str, str | int] = {
        "shipyard.health.outcome": result.outcome.value,
        "shipyard.health.attempts": result.attempts,
    }
    if result.status_code is not None:
        attrs["shipyard.health.status_code"] = result.status_code
    return attrs


# ---------------------------------------------------------------------------
# Imperative shell: internal
# ---------------------------------------------------------------------------


def _create_tracer_provider(
    resource_attrs: dict[str, str],
    exporter_type: ExporterType,
    endpoint: str | None = None,
) -> TracerProvider:
    """Build a ``TracerProvider`` without setting it globally.

    This enables tests to inspect providers in isolation.
    """
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider

    resource = Resource.create(resource_attrs)
    provider = TracerProvider(resource=resource)

    if exporter_type is ExporterType.CONSOLE:
        from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    elif exporter_type is ExporterType.OTLP_GRPC:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        exporter_grpc = OTLPSpanExporter(endpoint=endpoint) if endpoint else OTLPSpanExporter()
        provider.add_span_processor(BatchSpanProcessor(exporter_grpc))

    elif exporter_type is ExporterType.OTLP_HTTP:
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        exporter_http = OTLPSpanExporter(endpoint=endpoint) if endpoint else OTLPSpanExporter()
        provider.add_span_processor(BatchSpanProcessor(exporter_http))

    # ExporterType.NONE: no processors added.

    return provider


# ---------------------------------------------------------------------------
# Imperative shell: public
# ---------------------------------------------------------------------------


def init_tracing(
    exporter: ExporterType | None = None,
    environ: Mapping[str, str] | None = None,
    service_name: str = SERVICE_NAME,
    service_version: str = SERVICE_VERSION,
) -> None:
    """Create and globally register a ``TracerProvider``.

    Safe to call multiple times; each call replaces the previous provider
    (after shutting it down). Resets the OTel set-once guard so the new
    provider is accepted.
    """
    from opentelemetry import trace

    resource_attrs = build_resource(service_name, service_version)
    exporter_type = resolve_exporter_type(exporter, environ)
    endpoint = (environ or {}).get(SHIPYARD_OTEL_ENDPOINT_ENV) or None
    provider = _create_tracer_provider(resource_attrs, exporter_type, endpoint)

    current = trace.get_tracer_provider()
    if hasattr(current, "shutdown"):
        current.shutdown()

    once = trace._TRACER_PROVIDER_SET_ONCE
    with once._lock:
        once._done = False

    trace.set_tracer_provider(provider)


def get_tracer(name: str = SERVICE_NAME) -> Tracer:
    """Return a tracer from the globally registered provider.

    If ``init_tracing`` has not been called, the default no-op provider is
    used and calls succeed but produce no spans.
    """
    from opentelemetry import trace

    return trace.get_tracer(name)


def shutdown_tracing() -> None:
    """Flush pending spans and shut down the global tracer provider.

    Safe to call even if ``init_tracing`` was never called.
    """
    from opentelemetry import trace

    provider = trace.get_tracer_provider()
    if hasattr(provider, "shutdown"):
        provider.shutdown()
