"""Tests for shipyard.tracing: OpenTelemetry setup."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from shipyard.models import (
    BuildOutcome,
    DeployTarget,
    ExecutionResult,
    HealthOutcome,
    HealthResult,
    ProjectKind,
    RunWarning,
    StepRecord,
    WarningKind,
)
from shipyard.orchestrator import Orchestrator
from shipyard.tracing import (
    SERVICE_NAME,
    SERVICE_VERSION,
    SHIPYARD_OTEL_EXPORTER_ENV,
    ExporterType,
    _create_tracer_provider,
    build_attributes,
    build_resource,
    get_tracer,
    health_attributes,
    init_tracing,
    resolve_exporter_type,
    run_attributes,
    shutdown_tracing,
)
from tests.conftest import FakeRunner, build_http_client, fake_which, make_config, make_project

if TYPE_CHECKING:
    from pathlib import Path

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_global_tracer_provider():
    """Reset the global tracer provider before and after each test.

    The OTel SDK uses a set-once guard that prevents subsequent calls to
    ``set_tracer_provider``. We reset the internal ``_done`` flag so each
    test can register its own provider cleanly.
    """
    _force_reset_otel_provider()
    yield
    provider = trace.get_tracer_provider()
    if isinstance(provider, TracerProvider):
        provider.shutdown()
    _force_reset_otel_provider()


def _force_reset_otel_provider() -> None:
    """Reset OTel global tracer provider to the default no-op state."""
    once = trace._TRACER_PROVIDER_SET_ONCE
    with once._lock:
        once._done = False
    trace._TRACER_PROVIDER = None


# ---------------------------------------------------------------------------
# Pure functions
# ---------------------------------------------------------------------------


class TestBuildResource:
    def test_defaults(self) -> None:
        attrs = build_resource()
        assert attrs == {"service.name": SERVICE_NAME, "service.version": SERVICE_VERSION}

    def test_explicit_values_win(self) -> None:
        attrs = build_resource(extra_attributes={"service.name": "other", "team": "web"})
        assert attrs["service.name"] == SERVICE_NAME
        assert attrs["team"] == "web"


class TestResolveExporterType:
    def test_default_is_none(self) -> None:
        assert resolve_exporter_type(environ={}) is ExporterType.NONE

    def test_explicit_wins(self) -> None:
        environ = {SHIPYARD_OTEL_EXPORTER_ENV: "otlp_http"}
        assert resolve_exporter_type(ExporterType.CONSOLE, environ) is ExporterType.CONSOLE

    def test_from_environ(self) -> None:
        environ = {SHIPYARD_OTEL_EXPORTER_ENV: "otlp_grpc"}
        assert resolve_exporter_type(environ=environ) is ExporterType.OTLP_GRPC

    def test_invalid_environ_value(self) -> None:
        with pytest.raises(ValueError, match="Invalid SHIPYARD_OTEL_EXPORTER"):
            resolve_exporter_type(environ={SHIPYARD_OTEL_EXPORTER_ENV: "zipkin"})


class TestAttributeBuilders:
    def test_run_attributes(self) -> None:
        assert run_attributes("frontend", "vercel", "production") == {
            "shipyard.run.project": "frontend",
            "shipyard.run.target": "vercel",
            "shipyard.run.environment": "production",
        }

    def test_build_attributes(self) -> None:
        outcome = BuildOutcome(
            success=False,
            steps=[
                StepRecord(name="install", fatal_if_failed=True, result=ExecutionResult(exit_code=0)),
                StepRecord(name="lint", fatal_if_failed=False, result=ExecutionResult(exit_code=1)),
                StepRecord(name="build", fatal_if_failed=True, result=ExecutionResult(exit_code=2)),
            ],
            warnings=[RunWarning(kind=WarningKind.BUILD_WARNING, message="lint failed")],
            failed_step="build",
        )
        attrs = build_attributes(outcome)
        assert attrs["shipyard.build.success"] is False
        assert attrs["shipyard.build.step_count"] == 3
        assert attrs["shipyard.build.pass_count"] == 1
        assert attrs["shipyard.build.warning_count"] == 1
        assert attrs["shipyard.build.lint.passed"] is False
        assert attrs["shipyard.build.failed_step"] == "build"

    def test_health_attributes(self) -> None:
        result = HealthResult(outcome=HealthOutcome.HEALTHY, attempts=3, status_code=200)
        assert health_attributes(result) == {
            "shipyard.health.outcome": "healthy",
            "shipyard.health.attempts": 3,
            "shipyard.health.status_code": 200,
        }

    def test_health_attributes_without_status(self) -> None:
        attrs = health_attributes(HealthResult(outcome=HealthOutcome.SKIPPED))
        assert "shipyard.health.status_code" not in attrs


# ---------------------------------------------------------------------------
# Provider setup
# ---------------------------------------------------------------------------


class TestCreateTracerProvider:
    def test_console_exporter(self) -> None:
        provider = _create_tracer_provider(build_resource(), ExporterType.CONSOLE)
        assert isinstance(provider, TracerProvider)
        provider.shutdown()

    def test_resource_attributes(self) -> None:
        provider = _create_tracer_provider(build_resource(), ExporterType.NONE)
        assert provider.resource.attributes["service.name"] == SERVICE_NAME
        provider.shutdown()


class TestInitTracing:
    def test_registers_provider(self) -> None:
        init_tracing(ExporterType.NONE)
        provider = trace.get_tracer_provider()
        assert isinstance(provider, TracerProvider)

    def test_can_be_called_twice(self) -> None:
        init_tracing(ExporterType.NONE)
        first = trace.get_tracer_provider()
        init_tracing(ExporterType.NONE)
        assert trace.get_tracer_provider() is not first

    def test_get_tracer_without_init(self) -> None:
        tracer = get_tracer()
        with tracer.start_as_current_span("noop"):
            pass

    def test_shutdown_without_init(self) -> None:
        shutdown_tracing()


# ---------------------------------------------------------------------------
# Integration: orchestrator spans flow through InMemorySpanExporter
# ---------------------------------------------------------------------------


class TestOrchestratorSpans:
    def test_stage_spans_nest_under_run(self, tmp_path: Path) -> None:
        provider = _create_tracer_provider(build_resource(), ExporterType.NONE)
        exporter = InMemorySpanExporter()
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        trace.set_tracer_provider(provider)

        make_project(tmp_path)
        config = make_config(tmp_path, target=DeployTarget.VERCEL, environ={"VERCEL_TOKEN": "t"})
        report = Orchestrator(
            config,
            runner=FakeRunner(),
            http_client=build_http_client(lambda request: httpx.Response(200)),
            which=fake_which("node", "npm", "vercel"),
            sleep=lambda _: None,
        ).run()
        assert report.project is ProjectKind.FRONTEND

        spans = {span.name: span for span in exporter.get_finished_spans()}
        assert set(spans) == {
            "shipyard.run",
            "shipyard.checking_prereqs",
            "shipyard.building",
            "shipyard.deploying",
            "shipyard.verifying",
        }
        root = spans["shipyard.run"]
        assert root.attributes["shipyard.run.target"] == "vercel"
        assert root.attributes["shipyard.run.state"] == "done"
        for name, span in spans.items():
            if name != "shipyard.run":
                assert span.parent is not None
                assert span.parent.span_id == root.context.span_id
        assert spans["shipyard.verifying"].attributes["shipyard.health.outcome"] == "skipped"
