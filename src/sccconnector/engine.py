"""
Matching engine contract and the default in-process engine.

The connector talks to a matching engine through a narrow contract: an
engine is built once per telemetry kind from that kind's validated rule
list, and ``match(batch)`` returns two ordered verdict sequences, the
records some rule applied to but which did not conform (``found``) and
the records no rule applied to (``not_found``).  The connector never
reorders or de-duplicates them.

``RuleMatcher`` is the engine used when the host does not supply one.
For each record it tries every rule:

    - a rule applies when its pattern is found in the record name and
      every ``match_attributes`` entry is present (with the given value,
      compared as OTLP text, e.g. ``true`` for a boolean, when one is set)
    - expected = attributes of ``groups`` then ``include``, minus ``ignore``
    - missing = expected attributes absent from the record
    - extra = record attributes neither expected nor ignored
      (only with ``report_additional``)

Each applying rule with anything missing or extra produces one ``found``
verdict.  A record no rule applies to produces one ``not_found`` verdict.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, NamedTuple, Optional, Protocol, Sequence

from sccconnector.errors import EngineError
from sccconnector.rules.schema import GroupRegistry, MatchRule
from sccconnector.telemetry import (
    Batch,
    TelemetryKind,
    TelemetryRecord,
    iter_records,
    value_as_string,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Verdict:
    """Outcome of evaluating one record, ready to render as a diagnostic."""

    kind: TelemetryKind
    name: str = ""
    resource_schema: str = ""
    service_name: str = ""
    scope_name: str = ""
    scope_version: str = ""
    scope_url: str = ""
    missing_attributes: tuple[str, ...] = ()
    extra_attributes: tuple[str, ...] = ()

    @classmethod
    def for_record(
        cls,
        record: TelemetryRecord,
        missing: Sequence[str] = (),
        extra: Sequence[str] = (),
    ) -> Verdict:
        return cls(
            kind=record.kind,
            name=record.name,
            resource_schema=record.resource_schema,
            service_name=record.service_name,
            scope_name=record.scope_name,
            scope_version=record.scope_version,
            scope_url=record.scope_url,
            missing_attributes=tuple(missing),
            extra_attributes=tuple(extra),
        )


class MatchResult(NamedTuple):
    found: list[Verdict]
    not_found: list[Verdict]


class MatchingEngine(Protocol):
    """Evaluates one kind's rules against a batch."""

    def match(self, batch: Batch) -> MatchResult:
        ...


EngineFactory = Callable[[TelemetryKind, Sequence[MatchRule]], MatchingEngine]


# ---------------------------------------------------------------------------
# Default engine
# ---------------------------------------------------------------------------


class _CompiledRule:
    __slots__ = ("rule", "pattern", "expected", "ignore")

    def __init__(self, rule: MatchRule, registry: GroupRegistry) -> None:
        self.rule = rule
        self.pattern = re.compile(rule.match)
        self.ignore = frozenset(rule.ignore)

        expected: dict[str, None] = {}
        for group in rule.groups:
            for name in registry.resolve(group, rule.semantic_version):
                expected[name] = None
        for name in rule.include:
            expected[name] = None
        self.expected = tuple(n for n in expected if n not in self.ignore)

    def applies_to(self, record: TelemetryRecord) -> bool:
        if not self.pattern.search(record.name):
            return False
        for attr in self.rule.match_attributes or ():
            if attr.name not in record.attributes:
                return False
            if attr.value is not None and value_as_string(record.attributes[attr.name]) != attr.value:
                return False
        return True

    def check(self, record: TelemetryRecord) -> tuple[list[str], list[str]]:
        missing = [n for n in self.expected if n not in record.attributes]
        extra: list[str] = []
        if self.rule.report_additional:
            expected = set(self.expected)
            extra = [
                n for n in record.attributes
                if n not in expected and n not in self.ignore
            ]
        return missing, extra


class RuleMatcher:
    """Default matching engine for one telemetry kind.

    Args:
        kind: Telemetry kind this engine evaluates.
        rules: Validated rules for that kind.
        registry: Attribute group lookup.  Defaults to an empty registry,
            in which case any rule naming a group is rejected.

    Raises:
        EngineError: If a rule names a group the registry does not know.
    """

    def __init__(
        self,
        kind: TelemetryKind,
        rules: Sequence[MatchRule],
        registry: Optional[GroupRegistry] = None,
    ) -> None:
        self.kind = kind
        registry = registry or GroupRegistry()
        try:
            self._rules = [_CompiledRule(r, registry) for r in rules]
        except (KeyError, re.error) as exc:
            raise EngineError(kind.value, str(exc)) from exc

    def match(self, batch: Batch) -> MatchResult:
        found: list[Verdict] = []
        not_found: list[Verdict] = []
        for record in iter_records(self.kind, batch):
            applied = False
            for compiled in self._rules:
                if not compiled.applies_to(record):
                    continue
                applied = True
                missing, extra = compiled.check(record)
                if missing or extra:
                    found.append(Verdict.for_record(record, missing, extra))
            if not applied:
                not_found.append(Verdict.for_record(record))
        return MatchResult(found, not_found)


def rule_matcher_factory(registry: Optional[GroupRegistry] = None) -> EngineFactory:
    """Return an ``EngineFactory`` building ``RuleMatcher`` instances on ``registry``."""

    def factory(kind: TelemetryKind, rules: Sequence[MatchRule]) -> MatchingEngine:
        return RuleMatcher(kind, rules, registry)

    return factory
