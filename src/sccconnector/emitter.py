"""
Diagnostic emitter: renders verdicts as OTLP log records.

All records built for one batch share one resource (the connector's own
identity) and one scope (``ScopeIdentity``).  Each record's body is
``"matched"`` or ``"not matched"`` and its attributes follow a fixed
schema:

======================  ==========================================
key                    present when
======================  ==========================================
``type``               always
``resource.Schema``    verdict has a resource schema URL
``service.name``       always (``_NONE`` when the verdict has none)
``scope.name``         verdict has a scope name
``scope.version``      verdict has a scope version
``scope.schema_url``   verdict has a scope schema URL
``name``               verdict has a record name
``missing_attributes`` at least one attribute is missing (list)
``extra_attributes``   at least one extra attribute (list)
======================  ==========================================
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Sequence

from opentelemetry.proto.common.v1.common_pb2 import AnyValue, InstrumentationScope
from opentelemetry.proto.logs.v1.logs_pb2 import LogsData, ScopeLogs
from opentelemetry.proto.resource.v1.resource_pb2 import Resource

from sccconnector.engine import Verdict
from sccconnector.telemetry import dict_to_attributes

SCOPE_NAME = "otelcol/sccconnector"
SCOPE_VERSION = "v0.0.1"
SCOPE_SCHEMA_URL = "https://opentelemetry.io/schemas/1.26.0"

SERVICE_NAME_SENTINEL = "_NONE"

BODY_MATCHED = "matched"
BODY_NOT_MATCHED = "not matched"


@dataclass(frozen=True)
class ScopeIdentity:
    """Scope stamped on every emitted batch, independent of any rule."""

    name: str = SCOPE_NAME
    version: str = SCOPE_VERSION
    schema_url: str = SCOPE_SCHEMA_URL


def normalize_service_name(service_name: str) -> str:
    """Return ``service_name``, or the ``_NONE`` sentinel when it is empty."""
    return service_name or SERVICE_NAME_SENTINEL


def verdict_attributes(verdict: Verdict) -> dict[str, Any]:
    """Build the diagnostic attribute map for one verdict."""
    attrs: dict[str, Any] = {"type": verdict.kind.value}
    if verdict.resource_schema:
        attrs["resource.Schema"] = verdict.resource_schema
    attrs["service.name"] = normalize_service_name(verdict.service_name)
    if verdict.scope_name:
        attrs["scope.name"] = verdict.scope_name
    if verdict.scope_version:
        attrs["scope.version"] = verdict.scope_version
    if verdict.scope_url:
        attrs["scope.schema_url"] = verdict.scope_url
    if verdict.name:
        attrs["name"] = verdict.name
    if verdict.missing_attributes:
        attrs["missing_attributes"] = list(verdict.missing_attributes)
    if verdict.extra_attributes:
        attrs["extra_attributes"] = list(verdict.extra_attributes)
    return attrs


class DiagnosticEmitter:
    """Builds one ``LogsData`` per batch from matched and unmatched verdicts.

    Args:
        resource_attributes: Attributes of the connector's own resource.
        scope: Scope identity stamped on every batch.
        clock: Returns the observed timestamp in nanoseconds.
    """

    def __init__(
        self,
        resource_attributes: Mapping[str, Any],
        scope: ScopeIdentity = ScopeIdentity(),
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        self._resource_attributes = dict(resource_attributes)
        self._scope = scope
        self._clock = clock

    def build(
        self,
        found: Sequence[Verdict],
        not_found: Sequence[Verdict],
        report_unmatched: bool,
    ) -> Optional[LogsData]:
        """Render verdicts as a log batch.

        Unmatched verdicts are dropped unless ``report_unmatched`` is
        set.  Returns ``None`` when no record would be emitted.
        """
        if not found and not (report_unmatched and not_found):
            return None

        logs = LogsData()
        rl = logs.resource_logs.add()
        rl.resource.CopyFrom(
            Resource(attributes=dict_to_attributes(self._resource_attributes))
        )
        sl = rl.scope_logs.add()
        sl.scope.CopyFrom(
            InstrumentationScope(name=self._scope.name, version=self._scope.version)
        )
        sl.schema_url = self._scope.schema_url

        for verdict in found:
            self._append(sl, verdict, BODY_MATCHED)
        if report_unmatched:
            for verdict in not_found:
                self._append(sl, verdict, BODY_NOT_MATCHED)
        return logs

    def _append(self, sl: ScopeLogs, verdict: Verdict, body: str) -> None:
        record = sl.log_records.add()
        record.observed_time_unix_nano = self._clock()
        record.body.CopyFrom(AnyValue(string_value=body))
        record.attributes.extend(dict_to_attributes(verdict_attributes(verdict)))
