"""
Semantic convention checking connector.

Consumes traces, metrics or logs, evaluates them against the configured
rules, and forwards the verdicts downstream as diagnostic log records.

Every ``consume_*`` entry point runs the same routine:

1. Ask the kind's matching engine for ``found`` and ``not_found`` verdicts.
2. Render them as one ``LogsData`` (unmatched verdicts only when
   ``report_unmatched`` is set).
3. Forward that batch to the next consumer exactly once.  Nothing is
   forwarded when there is nothing to report.

The connector is read-only after construction, so concurrent calls need
no locking.  Exceptions from the next consumer propagate unchanged.

Usage::

    from sccconnector.connector import Connector
    from sccconnector.consumer import LogsSink

    sink = LogsSink()
    connector = Connector(config, sink)
    connector.consume_traces(traces)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from opentelemetry.proto.logs.v1.logs_pb2 import LogsData
from opentelemetry.proto.metrics.v1.metrics_pb2 import MetricsData
from opentelemetry.proto.trace.v1.trace_pb2 import TracesData

from sccconnector.consumer import LogsConsumer
from sccconnector.emitter import DiagnosticEmitter, ScopeIdentity
from sccconnector.engine import EngineFactory, MatchingEngine, rule_matcher_factory
from sccconnector.errors import EngineError
from sccconnector.otel import emit_batch_processed
from sccconnector.rules.schema import ConnectorConfig, GroupRegistry
from sccconnector.rules.validator import validate_config
from sccconnector.telemetry import SERVICE_NAME_KEY, Batch, TelemetryKind

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "sccconnector"


@dataclass(frozen=True)
class Capabilities:
    mutates_data: bool = False


class Connector:
    """Traces/metrics/logs to logs connector reporting rule conformance.

    Args:
        config: Rule configuration.  Validated here; construction fails
            if any pattern is invalid.
        next_consumer: Receives the diagnostic log batches.
        resource_attributes: Attributes of the host resource.  Copied,
            with ``service.name`` replaced by ``service_name``.
        service_name: Identity of the connector on emitted batches.
        engine_factory: Builds the matching engine for each kind.
            Defaults to ``RuleMatcher`` over ``registry``.
        registry: Attribute groups for the default engine.  Cannot be
            combined with ``engine_factory``.
        scope: Scope stamped on emitted batches.
        clock: Observed-timestamp source for emitted records.

    Raises:
        TypeError: If both ``engine_factory`` and ``registry`` are given.
        ConfigValidationError: If any rule pattern fails to compile.
        EngineError: If a matching engine cannot be built.
    """

    def __init__(
        self,
        config: ConnectorConfig,
        next_consumer: LogsConsumer,
        *,
        resource_attributes: Optional[Mapping[str, Any]] = None,
        service_name: str = DEFAULT_SERVICE_NAME,
        engine_factory: Optional[EngineFactory] = None,
        registry: Optional[GroupRegistry] = None,
        scope: ScopeIdentity = ScopeIdentity(),
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        if engine_factory is not None and registry is not None:
            raise TypeError("registry only applies to the default engine; pass one of engine_factory, registry")
        logger.info("Building sccconnector connector")
        validate_config(config)

        self._config = config
        self._next = next_consumer
        self._report_unmatched = config.report_unmatched

        factory = engine_factory or rule_matcher_factory(registry)
        self._engines: dict[TelemetryKind, MatchingEngine] = {}
        for kind in TelemetryKind:
            rules = getattr(config, kind.section)
            try:
                self._engines[kind] = factory(kind, rules)
            except EngineError:
                raise
            except Exception as exc:
                raise EngineError(kind.value, str(exc)) from exc

        resource = dict(resource_attributes or {})
        resource[SERVICE_NAME_KEY] = service_name
        self._emitter = DiagnosticEmitter(resource, scope=scope, clock=clock)

    @property
    def config(self) -> ConnectorConfig:
        return self._config

    def capabilities(self) -> Capabilities:
        return Capabilities(mutates_data=False)

    def consume_traces(self, traces: TracesData) -> None:
        self._consume(TelemetryKind.TRACE, traces)

    def consume_metrics(self, metrics: MetricsData) -> None:
        self._consume(TelemetryKind.METRIC, metrics)

    def consume_logs(self, logs: LogsData) -> None:
        self._consume(TelemetryKind.LOG, logs)

    def _consume(self, kind: TelemetryKind, batch: Batch) -> None:
        found, not_found = self._engines[kind].match(batch)

        diagnostics = self._emitter.build(found, not_found, self._report_unmatched)
        if diagnostics is None:
            logger.debug(
                "No %s diagnostics to forward (matched=%d unmatched=%d)",
                kind.value,
                len(found),
                len(not_found),
            )
            return

        self._next.consume_logs(diagnostics)

        emitted = len(found) + (len(not_found) if self._report_unmatched else 0)
        emit_batch_processed(kind.value, len(found), len(not_found), emitted)
