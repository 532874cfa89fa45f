"""Tests for the connector pipeline and its factory."""

from __future__ import annotations

import logging
from typing import Sequence

import pytest
from opentelemetry.proto.trace.v1.trace_pb2 import TracesData
from opentelemetry.sdk.resources import Resource

from sccconnector.config import get_settings
from sccconnector.connector import Connector
from sccconnector.consumer import LogsConsumer, LogsSink
from sccconnector.engine import MatchResult, Verdict
from sccconnector.errors import ConfigValidationError, EngineError
from sccconnector.factory import ConnectorFactory, ConnectorSettings
from sccconnector.rules import ConnectorConfig, GroupRegistry, MatchRule
from sccconnector.telemetry import TelemetryKind, attributes_to_dict


def _records(sink: LogsSink):
    return [
        record
        for logs in sink.all_logs()
        for rl in logs.resource_logs
        for sl in rl.scope_logs
        for record in sl.log_records
    ]


class FailingConsumer:
    def __init__(self, error: Exception) -> None:
        self.error = error
        self.calls = 0

    def consume_logs(self, logs) -> None:
        self.calls += 1
        raise self.error


class StubEngine:
    """Returns the same verdicts for every batch."""

    def __init__(self, found: Sequence[Verdict], not_found: Sequence[Verdict]) -> None:
        self.result = MatchResult(list(found), list(not_found))
        self.batches = []

    def match(self, batch) -> MatchResult:
        self.batches.append(batch)
        return self.result


# ---------------------------------------------------------------------------
# Traces
# ---------------------------------------------------------------------------


class TestConsumeTraces:
    @pytest.mark.parametrize(
        "config, attrs, wantlen",
        [
            pytest.param(
                ConnectorConfig(trace=[MatchRule(match=".*", include=["test"])]),
                {"test": "foo"},
                0,
                id="match everything",
            ),
            pytest.param(
                ConnectorConfig(trace=[MatchRule(match=".*", include=["foo"])]),
                {"test": "foo"},
                3,
                id="missing attributes",
            ),
            pytest.param(
                ConnectorConfig(
                    trace=[MatchRule(match="thisdoesnotexist", include=["foo"])],
                    report_unmatched=True,
                ),
                {"test": "foo"},
                3,
                id="not found",
            ),
            pytest.param(
                ConnectorConfig(
                    trace=[MatchRule(match=".*", include=["test"], report_additional=True)]
                ),
                {"test": "foo", "extra": "bar"},
                3,
                id="report extras",
            ),
        ],
    )
    def test_record_counts(self, multi_trace, config, attrs, wantlen):
        sink = LogsSink()
        connector = ConnectorFactory().create_traces_to_logs(ConnectorSettings(), config, sink)
        assert connector is not None

        connector.consume_traces(multi_trace(attrs))

        assert sink.log_record_count() == wantlen

    def test_nothing_forwarded_when_no_verdicts(self, multi_trace):
        sink = LogsSink()
        config = ConnectorConfig(trace=[MatchRule(match=".*", include=["test"])])
        Connector(config, sink).consume_traces(multi_trace({"test": "foo"}))
        assert sink.all_logs() == []

    def test_unmatched_not_reported_by_default(self, multi_trace):
        sink = LogsSink()
        config = ConnectorConfig(trace=[MatchRule(match="thisdoesnotexist", include=["foo"])])
        Connector(config, sink).consume_traces(multi_trace({"test": "foo"}))
        assert sink.all_logs() == []

    def test_missing_attribute_diagnostics(self, multi_trace):
        sink = LogsSink()
        config = ConnectorConfig(trace=[MatchRule(match=".*", include=["test"])])
        Connector(config, sink).consume_traces(multi_trace({"other": "x"}))

        records = _records(sink)
        assert len(records) == 3
        for record in records:
            attrs = attributes_to_dict(record.attributes)
            assert record.body.string_value == "matched"
            assert attrs["missing_attributes"] == ["test"]
            assert attrs["type"] == "trace"
            assert attrs["service.name"] == "_NONE"
            assert "extra_attributes" not in attrs

    def test_golden(self, server_traces):
        config = ConnectorConfig(
            trace=[
                MatchRule(
                    semantic_version="https://opentelemetry.io/schemas/1.24.0",
                    match=".*",
                    groups=["general.server", "peer"],
                    ignore=["server.port"],
                    include=["environment"],
                ),
                MatchRule(match=".*_extra", include=["extra"]),
            ]
        )
        registry = GroupRegistry(groups={
            "general.server": ["server.address", "server.port"],
            "peer": ["peer.service"],
        })
        sink = LogsSink()
        Connector(config, sink, registry=registry).consume_traces(server_traces)

        logs = sink.all_logs()
        assert len(logs) == 1
        (rl,) = logs[0].resource_logs
        assert attributes_to_dict(rl.resource.attributes) == {"service.name": "sccconnector"}

        schema = "https://opentelemetry.io/schemas/1.24.0"
        common = {
            "type": "trace",
            "resource.Schema": schema,
            "service.name": "checkout",
            "scope.name": "io.opentelemetry.http",
            "scope.version": "1.2.0",
            "scope.schema_url": schema,
        }
        assert [
            (r.body.string_value, attributes_to_dict(r.attributes)) for r in _records(sink)
        ] == [
            ("matched", {**common, "name": "GET /users", "missing_attributes": ["peer.service", "environment"]}),
            ("matched", {**common, "name": "call_extra", "missing_attributes": ["extra"]}),
        ]

    def test_idempotent(self, server_traces):
        sink = LogsSink()
        config = ConnectorConfig(trace=[MatchRule(match=".*", include=["environment", "x"])])
        connector = Connector(config, sink, clock=lambda: 1)
        connector.consume_traces(server_traces)
        connector.consume_traces(server_traces)

        first, second = sink.all_logs()
        assert first == second
        assert first is not second

    def test_batch_not_mutated(self, server_traces):
        before = TracesData()
        before.CopyFrom(server_traces)
        config = ConnectorConfig(trace=[MatchRule(match=".*", include=["x"])])
        Connector(config, LogsSink()).consume_traces(server_traces)
        assert server_traces == before


# ---------------------------------------------------------------------------
# Metrics and logs
# ---------------------------------------------------------------------------


class TestConsumeMetricsAndLogs:
    def test_metrics(self, http_metrics):
        sink = LogsSink()
        config = ConnectorConfig(
            metrics=[MatchRule(match="http.server.request.duration", include=["http.route"])],
            report_unmatched=True,
        )
        ConnectorFactory().create_metrics_to_logs(ConnectorSettings(), config, sink).consume_metrics(
            http_metrics
        )
        records = _records(sink)
        assert [r.body.string_value for r in records] == ["matched", "not matched"]
        matched = attributes_to_dict(records[0].attributes)
        assert matched["type"] == "metric"
        assert matched["missing_attributes"] == ["http.route"]
        assert matched["service.name"] == "api"
        assert attributes_to_dict(records[1].attributes)["name"] == "process.uptime"

    def test_logs(self, exception_logs):
        sink = LogsSink()
        config = ConnectorConfig(
            log=[MatchRule(match=".*exception.*", include=["environment"], report_additional=True)]
        )
        ConnectorFactory().create_logs_to_logs(ConnectorSettings(), config, sink).consume_logs(
            exception_logs
        )
        (record,) = _records(sink)
        attrs = attributes_to_dict(record.attributes)
        assert attrs["type"] == "log"
        assert attrs["name"] == "unhandled exception in handler"
        assert attrs["missing_attributes"] == ["environment"]
        assert attrs["extra_attributes"] == ["exception.type"]

    def test_kinds_use_their_own_rules(self, exception_logs, multi_trace):
        sink = LogsSink()
        config = ConnectorConfig(trace=[MatchRule(match=".*", include=["foo"])])
        connector = Connector(config, sink)
        connector.consume_logs(exception_logs)
        assert sink.all_logs() == []
        connector.consume_traces(multi_trace({}))
        assert sink.log_record_count() == 3


# ---------------------------------------------------------------------------
# External engine contract
# ---------------------------------------------------------------------------


class TestEngineContract:
    def test_verdict_order_preserved(self, multi_trace):
        found = [Verdict(kind=TelemetryKind.TRACE, name=n) for n in ("b", "a", "b")]
        not_found = [Verdict(kind=TelemetryKind.TRACE, name=n) for n in ("z", "y")]
        engine = StubEngine(found, not_found)
        sink = LogsSink()
        connector = Connector(
            ConnectorConfig(report_unmatched=True),
            sink,
            engine_factory=lambda kind, rules: engine,
        )
        batch = multi_trace({})
        connector.consume_traces(batch)

        assert engine.batches == [batch]
        assert [attributes_to_dict(r.attributes)["name"] for r in _records(sink)] == [
            "b", "a", "b", "z", "y",
        ]

    def test_factory_receives_rules_per_kind(self):
        seen = {}

        def factory(kind, rules):
            seen[kind] = list(rules)
            return StubEngine([], [])

        config = ConnectorConfig(
            trace=[MatchRule(match="t")],
            metrics=[MatchRule(match="m")],
            log=[MatchRule(match="l")],
        )
        Connector(config, LogsSink(), engine_factory=factory)
        assert {k: [r.match for r in v] for k, v in seen.items()} == {
            TelemetryKind.TRACE: ["t"],
            TelemetryKind.METRIC: ["m"],
            TelemetryKind.LOG: ["l"],
        }

    def test_registry_with_engine_factory_rejected(self):
        with pytest.raises(TypeError, match="engine_factory"):
            Connector(
                ConnectorConfig(),
                LogsSink(),
                engine_factory=lambda kind, rules: StubEngine([], []),
                registry=GroupRegistry(groups={"peer": ["peer.service"]}),
            )

    def test_engine_failure_fails_construction(self):
        def factory(kind, rules):
            raise ValueError("schema registry unavailable")

        with pytest.raises(EngineError, match="schema registry unavailable") as exc_info:
            Connector(ConnectorConfig(), LogsSink(), engine_factory=factory)
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_unknown_group_fails_construction(self):
        config = ConnectorConfig(metrics=[MatchRule(match=".*", groups=["missing.group"])])
        with pytest.raises(EngineError) as exc_info:
            Connector(config, LogsSink())
        assert exc_info.value.kind == "metric"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    def test_invalid_config_fails_construction(self):
        config = ConnectorConfig(
            trace=[MatchRule(match=")invalid[")],
            log=[MatchRule(match=")invalid[")],
        )
        sink = LogsSink()
        with pytest.raises(ConfigValidationError) as exc_info:
            ConnectorFactory().create_traces_to_logs(ConnectorSettings(), config, sink)
        assert len(exc_info.value.errors) == 2

    def test_downstream_error_propagates_unchanged(self, multi_trace):
        error = RuntimeError("downstream unavailable")
        consumer = FailingConsumer(error)
        config = ConnectorConfig(trace=[MatchRule(match=".*", include=["foo"])])
        connector = Connector(config, consumer)

        with pytest.raises(RuntimeError) as exc_info:
            connector.consume_traces(multi_trace({}))
        assert exc_info.value is error
        assert consumer.calls == 1

    def test_downstream_error_not_logged(self, multi_trace, caplog):
        consumer = FailingConsumer(RuntimeError("boom"))
        config = ConnectorConfig(trace=[MatchRule(match=".*", include=["foo"])])
        connector = Connector(config, consumer)

        with caplog.at_level(logging.DEBUG, logger="sccconnector"):
            with pytest.raises(RuntimeError):
                connector.consume_traces(multi_trace({}))
        assert "boom" not in caplog.text

    def test_no_verdicts_skips_consumer(self, multi_trace):
        consumer = FailingConsumer(RuntimeError("should not be called"))
        config = ConnectorConfig(trace=[MatchRule(match=".*", include=["test"])])
        Connector(config, consumer).consume_traces(multi_trace({"test": "foo"}))
        assert consumer.calls == 0


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


class TestFactory:
    def test_type_and_default_config(self):
        factory = ConnectorFactory()
        assert factory.type == "scc"
        assert factory.create_default_config() == ConnectorConfig()

    def test_rejects_foreign_config(self):
        with pytest.raises(TypeError):
            ConnectorFactory().create_traces_to_logs(ConnectorSettings(), {"trace": []}, LogsSink())

    def test_resource_identity(self, multi_trace):
        settings = ConnectorSettings(
            resource=Resource({"host.name": "collector-0", "service.name": "otelcol"})
        )
        sink = LogsSink()
        config = ConnectorConfig(trace=[MatchRule(match=".*", include=["foo"])])
        ConnectorFactory().create_traces_to_logs(settings, config, sink).consume_traces(
            multi_trace({})
        )
        rl = sink.all_logs()[0].resource_logs[0]
        assert attributes_to_dict(rl.resource.attributes) == {
            "host.name": "collector-0",
            "service.name": "sccconnector",
        }

    def test_service_name_from_settings(self, multi_trace):
        get_settings(service_name="semconv-checker")
        sink = LogsSink()
        config = ConnectorConfig(trace=[MatchRule(match=".*", include=["foo"])])
        ConnectorFactory().create_traces_to_logs(ConnectorSettings(), config, sink).consume_traces(
            multi_trace({})
        )
        rl = sink.all_logs()[0].resource_logs[0]
        assert attributes_to_dict(rl.resource.attributes)["service.name"] == "semconv-checker"

    def test_registry_from_settings(self, server_traces):
        settings = ConnectorSettings(registry=GroupRegistry(groups={"peer": ["peer.service"]}))
        sink = LogsSink()
        config = ConnectorConfig(trace=[MatchRule(match=".*", groups=["peer"])])
        ConnectorFactory().create_traces_to_logs(settings, config, sink).consume_traces(server_traces)
        assert sink.log_record_count() == 1

    def test_capabilities(self):
        connector = Connector(ConnectorConfig(), LogsSink())
        assert connector.capabilities().mutates_data is False

    def test_sink_is_a_consumer(self):
        assert isinstance(LogsSink(), LogsConsumer)
