"""
Pytest configuration and fixtures for sccconnector tests.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Dict, Generator, Mapping

import pytest
from opentelemetry.proto.logs.v1.logs_pb2 import LogsData
from opentelemetry.proto.metrics.v1.metrics_pb2 import MetricsData
from opentelemetry.proto.trace.v1.trace_pb2 import TracesData

from sccconnector.config import reset_settings
from sccconnector.rules.loader import ConfigLoader, GroupRegistryLoader
from sccconnector.telemetry import dict_to_attributes

TESTDATA = Path(__file__).parent / "testdata"


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(scope="session")
def test_env() -> Dict[str, str]:
    """Test environment variables."""
    return {
        "SCC_SERVICE_NAME": "sccconnector",
        "SCC_LOG_LEVEL": "debug",
        "SCC_LOG_FORMAT": "text",
    }


@pytest.fixture(autouse=True)
def set_test_env(test_env: Dict[str, str]) -> Generator[None, None, None]:
    """Set test environment variables and reset cached state for each test."""
    original = {}
    for key, value in test_env.items():
        original[key] = os.environ.get(key)
        os.environ[key] = value
    reset_settings()
    ConfigLoader.clear_cache()
    GroupRegistryLoader.clear_cache()

    yield

    for key, value in original.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value
    reset_settings()


@pytest.fixture
def testdata() -> Path:
    return TESTDATA


# ============================================================================
# Batch Fixtures
# ============================================================================


def build_multi_trace(attrs: Mapping[str, Any]) -> TracesData:
    """Three spans, with ``attrs`` on the resource, the scope and the span."""
    traces = TracesData()

    # attributes in the resource
    rs = traces.resource_spans.add()
    rs.resource.attributes.extend(dict_to_attributes(attrs))
    ss = rs.scope_spans.add()
    ss.scope.name = "resource Scope"
    ss.spans.add().name = "resource span"

    # attributes in the scope
    rs = traces.resource_spans.add()
    ss = rs.scope_spans.add()
    ss.scope.name = "scope Scope"
    ss.scope.attributes.extend(dict_to_attributes(attrs))
    ss.spans.add().name = "scope span"

    # attributes in the span
    rs = traces.resource_spans.add()
    ss = rs.scope_spans.add()
    span = ss.spans.add()
    span.name = "span"
    span.attributes.extend(dict_to_attributes(attrs))

    return traces


@pytest.fixture
def multi_trace() -> Callable[[Mapping[str, Any]], TracesData]:
    return build_multi_trace


@pytest.fixture
def server_traces() -> TracesData:
    """One resource/scope with three spans of varying conformance."""
    traces = TracesData()
    rs = traces.resource_spans.add()
    rs.schema_url = "https://opentelemetry.io/schemas/1.24.0"
    rs.resource.attributes.extend(dict_to_attributes({"service.name": "checkout"}))
    ss = rs.scope_spans.add()
    ss.schema_url = "https://opentelemetry.io/schemas/1.24.0"
    ss.scope.name = "io.opentelemetry.http"
    ss.scope.version = "1.2.0"

    complete = {"server.address": "localhost", "peer.service": "db", "environment": "prod"}

    span = ss.spans.add()
    span.name = "GET /"
    span.attributes.extend(dict_to_attributes(complete))

    span = ss.spans.add()
    span.name = "GET /users"
    span.attributes.extend(dict_to_attributes({"server.address": "localhost"}))

    span = ss.spans.add()
    span.name = "call_extra"
    span.attributes.extend(dict_to_attributes(complete))

    return traces


@pytest.fixture
def http_metrics() -> MetricsData:
    """A gauge with two data points and a metric without data points."""
    metrics = MetricsData()
    rm = metrics.resource_metrics.add()
    rm.resource.attributes.extend(dict_to_attributes({"service.name": "api"}))
    sm = rm.scope_metrics.add()
    sm.scope.name = "meter"

    metric = sm.metrics.add()
    metric.name = "http.server.request.duration"
    dp = metric.gauge.data_points.add()
    dp.as_double = 0.25
    dp.attributes.extend(dict_to_attributes({"http.request.method": "GET"}))
    dp = metric.gauge.data_points.add()
    dp.as_double = 0.5
    dp.attributes.extend(dict_to_attributes({"http.request.method": "POST", "http.route": "/x"}))

    empty = sm.metrics.add()
    empty.name = "process.uptime"

    return metrics


@pytest.fixture
def exception_logs() -> LogsData:
    """Two log records: one exception message, one plain message."""
    logs = LogsData()
    rl = logs.resource_logs.add()
    sl = rl.scope_logs.add()
    sl.scope.name = "logger"

    record = sl.log_records.add()
    record.body.string_value = "unhandled exception in handler"
    record.attributes.extend(dict_to_attributes({"exception.type": "ValueError"}))

    record = sl.log_records.add()
    record.body.string_value = "request served"
    return logs
