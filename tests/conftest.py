"""Pytest configuration and shared fixtures for sidecar metrics tests."""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest


sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

from sidecar_metrics.clock import ManualClock
from sidecar_metrics.config import TracingConfiguration
from sidecar_metrics.carrier import ProxyRequest
from sidecar_metrics.interceptor import MetricsHandlerInterceptor
from sidecar_metrics.lifecycle import TraceLifecycle
from sidecar_metrics.metrics import MetricsCollector
from test_utils import RecordingTraceBackend


# ==================== Path Fixtures ====================


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Get repository root path."""
    return Path(__file__).parent.parent


# ==================== Configuration Fixtures ====================


@pytest.fixture
def function_mapping() -> dict[str, str]:
    """Function name -> path pattern mapping used by most tests."""
    return {
        "download": r"/api/foo",
        "npm-download": r"/api/folo/track/[^/]+/npm/.+/-/.+\.tgz$",
        "npm-metadata": r"/api/folo/track/[^/]+/npm/",
    }


@pytest.fixture
def configuration(function_mapping) -> TracingConfiguration:
    """Enabled tracing configuration."""
    return TracingConfiguration.from_mapping(
        function_mapping,
        enabled=True,
        service_name="sidecar-svc",
    )


@pytest.fixture
def disabled_configuration(function_mapping) -> TracingConfiguration:
    """Disabled tracing configuration."""
    return TracingConfiguration.from_mapping(
        function_mapping,
        enabled=False,
        service_name="sidecar-svc",
    )


# ==================== Collaborator Fixtures ====================


@pytest.fixture
def clock() -> ManualClock:
    """Manual clock starting at t=1000ms."""
    return ManualClock(1000)


@pytest.fixture
def backend() -> RecordingTraceBackend:
    """Recording trace backend."""
    return RecordingTraceBackend()


@pytest.fixture
def metrics() -> MagicMock:
    """Mock metrics collector."""
    return MagicMock(spec=MetricsCollector)


@pytest.fixture
def lifecycle(configuration, backend, clock, metrics) -> TraceLifecycle:
    """Trace lifecycle wired to the recording collaborators."""
    return TraceLifecycle(configuration, backend, clock=clock, metrics=metrics)


@pytest.fixture
def interceptor(configuration, backend, clock, metrics) -> MetricsHandlerInterceptor:
    """Interceptor wired to the recording collaborators."""
    return MetricsHandlerInterceptor(configuration, backend, clock=clock, metrics=metrics)


@pytest.fixture
def make_request():
    """Factory for proxy requests."""

    def _make(path: str = "/api/foo", method: str = "GET", **headers: str) -> ProxyRequest:
        return ProxyRequest(method=method, path=path, headers=headers)

    return _make
