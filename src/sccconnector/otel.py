"""
OTel span events recording what the connector did.

Events go on the caller's current span, so they show up inside the
host's own pipeline trace.  Nothing is recorded when that span is not
recording.

Usage::

    from sccconnector.otel import emit_batch_processed, emit_config_rejected

    emit_config_rejected(errors)
    emit_batch_processed("trace", matched=3, unmatched=0, emitted=3)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from opentelemetry import trace as otel_trace

if TYPE_CHECKING:
    from sccconnector.errors import PatternError

logger = logging.getLogger(__name__)

EventAttributes = dict[str, "str | int | float | bool"]


def _add_span_event(name: str, attributes: EventAttributes) -> None:
    span = otel_trace.get_current_span()
    if span.is_recording():
        span.add_event(name=name, attributes=attributes)


def emit_config_rejected(errors: Sequence[PatternError]) -> None:
    """Emit a span event describing a rejected rule configuration.

    Event name: ``sccconnector.config.rejected``
    """
    attrs: EventAttributes = {
        "scc.config.error_count": len(errors),
        "scc.config.sections": ",".join(sorted({e.kind for e in errors})),
    }
    _add_span_event("sccconnector.config.rejected", attrs)


def emit_batch_processed(
    kind: str, matched: int, unmatched: int, emitted: int
) -> None:
    """Emit a span event summarising one consumed batch.

    Event name: ``sccconnector.batch.processed``
    """
    attrs: EventAttributes = {
        "scc.kind": kind,
        "scc.verdicts.matched": matched,
        "scc.verdicts.unmatched": unmatched,
        "scc.records.emitted": emitted,
    }

    logger.debug(
        "Processed %s batch: matched=%d unmatched=%d emitted=%d",
        kind,
        matched,
        unmatched,
        emitted,
    )

    _add_span_event("sccconnector.batch.processed", attrs)
