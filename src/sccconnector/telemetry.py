"""
Telemetry kinds and record extraction from OTLP batches.

Batches arrive as OTLP protobuf messages (``TracesData``, ``MetricsData``,
``LogsData``).  Each is flattened into ``TelemetryRecord`` items: one per
span, per metric data point, or per log record.  A record's attributes
are the resource, scope and record attributes merged in that order, so
an attribute set on the resource counts for every span beneath it.

Batches are only read, never modified.
"""

from __future__ import annotations

import base64
import json
import logging
import math
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Iterator, Mapping, Union

from opentelemetry.proto.common.v1.common_pb2 import (
    AnyValue,
    ArrayValue,
    KeyValue,
    KeyValueList,
)
from opentelemetry.proto.logs.v1.logs_pb2 import LogsData
from opentelemetry.proto.metrics.v1.metrics_pb2 import MetricsData
from opentelemetry.proto.trace.v1.trace_pb2 import TracesData

logger = logging.getLogger(__name__)

Batch = Union[TracesData, MetricsData, LogsData]

SERVICE_NAME_KEY = "service.name"


class TelemetryKind(str, Enum):
    """Telemetry type a record or verdict concerns.

    The value is what diagnostics carry in their ``type`` attribute.
    """

    TRACE = "trace"
    METRIC = "metric"
    LOG = "log"

    @property
    def section(self) -> str:
        """Name of the rule list for this kind in ``ConnectorConfig``."""
        return _SECTIONS[self]


_SECTIONS = {
    TelemetryKind.TRACE: "trace",
    TelemetryKind.METRIC: "metrics",
    TelemetryKind.LOG: "log",
}


@dataclass(frozen=True)
class TelemetryRecord:
    """One span, metric data point or log record, flattened."""

    kind: TelemetryKind
    name: str
    attributes: dict[str, Any] = field(default_factory=dict)
    resource_schema: str = ""
    service_name: str = ""
    scope_name: str = ""
    scope_version: str = ""
    scope_url: str = ""


# ---------------------------------------------------------------------------
# AnyValue conversion
# ---------------------------------------------------------------------------


def from_any_value(value: AnyValue) -> Any:
    """Convert an OTLP ``AnyValue`` to a plain Python value."""
    which = value.WhichOneof("value")
    if which is None:
        return None
    if which == "array_value":
        return [from_any_value(v) for v in value.array_value.values]
    if which == "kvlist_value":
        return attributes_to_dict(value.kvlist_value.values)
    return getattr(value, which)


def to_any_value(value: Any) -> AnyValue:
    """Convert a plain Python value to an OTLP ``AnyValue``.

    Raises:
        TypeError: If the value has no OTLP representation.
    """
    if value is None:
        return AnyValue()
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return AnyValue(bool_value=value)
    if isinstance(value, int):
        return AnyValue(int_value=value)
    if isinstance(value, float):
        return AnyValue(double_value=value)
    if isinstance(value, str):
        return AnyValue(string_value=value)
    if isinstance(value, bytes):
        return AnyValue(bytes_value=value)
    if isinstance(value, (list, tuple)):
        return AnyValue(
            array_value=ArrayValue(values=[to_any_value(v) for v in value])
        )
    if isinstance(value, Mapping):
        return AnyValue(
            kvlist_value=KeyValueList(values=dict_to_attributes(value))
        )
    raise TypeError(f"Unsupported attribute value type: {type(value).__name__}")


def _format_double(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    # shortest round-trip digits, never in exponent form
    return format(Decimal(repr(value)).normalize(), "f")


def _json_default(value: Any) -> Any:
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    raise TypeError(f"Unsupported attribute value type: {type(value).__name__}")


def value_as_string(value: Any) -> str:
    """Render an attribute value as text the way OTLP collectors do.

    Booleans are ``true``/``false``, doubles use the shortest exact
    decimal form (``1`` rather than ``1.0``), bytes are base64, and
    arrays and maps are compact JSON with sorted map keys.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return _format_double(value)
    if isinstance(value, bytes):
        return base64.b64encode(value).decode("ascii")
    return json.dumps(value, separators=(",", ":"), sort_keys=True, default=_json_default)


def attributes_to_dict(attributes: Iterable[KeyValue]) -> dict[str, Any]:
    """Convert repeated ``KeyValue`` to a dict, keeping attribute order."""
    return {kv.key: from_any_value(kv.value) for kv in attributes}


def dict_to_attributes(attributes: Mapping[str, Any]) -> list[KeyValue]:
    """Convert a dict to a list of ``KeyValue``, keeping key order."""
    return [KeyValue(key=k, value=to_any_value(v)) for k, v in attributes.items()]


# ---------------------------------------------------------------------------
# Record extraction
# ---------------------------------------------------------------------------


def _provenance(resource_item: Any, scope_item: Any) -> dict[str, Any]:
    resource_attrs = attributes_to_dict(resource_item.resource.attributes)
    return {
        "resource_schema": resource_item.schema_url,
        "service_name": value_as_string(resource_attrs.get(SERVICE_NAME_KEY)),
        "scope_name": scope_item.scope.name,
        "scope_version": scope_item.scope.version,
        "scope_url": scope_item.schema_url,
    }


def _merged(resource_item: Any, scope_item: Any, *record_attrs: Iterable[KeyValue]) -> dict[str, Any]:
    merged = attributes_to_dict(resource_item.resource.attributes)
    merged.update(attributes_to_dict(scope_item.scope.attributes))
    for attrs in record_attrs:
        merged.update(attributes_to_dict(attrs))
    return merged


def iter_span_records(traces: TracesData) -> Iterator[TelemetryRecord]:
    """Yield one record per span."""
    for rs in traces.resource_spans:
        for ss in rs.scope_spans:
            prov = _provenance(rs, ss)
            for span in ss.spans:
                yield TelemetryRecord(
                    kind=TelemetryKind.TRACE,
                    name=span.name,
                    attributes=_merged(rs, ss, span.attributes),
                    **prov,
                )


def iter_metric_records(metrics: MetricsData) -> Iterator[TelemetryRecord]:
    """Yield one record per metric data point.

    A metric without data points yields a single record carrying only the
    resource and scope attributes.
    """
    for rm in metrics.resource_metrics:
        for sm in rm.scope_metrics:
            prov = _provenance(rm, sm)
            for metric in sm.metrics:
                data = metric.WhichOneof("data")
                points = list(getattr(metric, data).data_points) if data else []
                if not points:
                    yield TelemetryRecord(
                        kind=TelemetryKind.METRIC,
                        name=metric.name,
                        attributes=_merged(rm, sm),
                        **prov,
                    )
                    continue
                for point in points:
                    yield TelemetryRecord(
                        kind=TelemetryKind.METRIC,
                        name=metric.name,
                        attributes=_merged(rm, sm, point.attributes),
                        **prov,
                    )


def iter_log_records(logs: LogsData) -> Iterator[TelemetryRecord]:
    """Yield one record per log record, named by its string body."""
    for rl in logs.resource_logs:
        for sl in rl.scope_logs:
            prov = _provenance(rl, sl)
            for record in sl.log_records:
                body = record.body
                name = body.string_value if body.WhichOneof("value") == "string_value" else ""
                yield TelemetryRecord(
                    kind=TelemetryKind.LOG,
                    name=name,
                    attributes=_merged(rl, sl, record.attributes),
                    **prov,
                )


_EXTRACTORS = {
    TelemetryKind.TRACE: iter_span_records,
    TelemetryKind.METRIC: iter_metric_records,
    TelemetryKind.LOG: iter_log_records,
}


def iter_records(kind: TelemetryKind, batch: Batch) -> Iterator[TelemetryRecord]:
    """Yield the records of ``batch`` using the extractor for ``kind``."""
    return _EXTRACTORS[kind](batch)  # type: ignore[arg-type]
