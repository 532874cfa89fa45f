"""
Pydantic v2 models for the connector's rule configuration.

The configuration has one list of ``MatchRule`` per telemetry kind and a
global ``report_unmatched`` flag.  Keys in YAML are identical to the
field names.

All models use ``extra="forbid"`` to reject unknown keys at parse time.
Patterns are *not* compiled here; ``validate_config()`` does that so
every failure can be reported at once.

Usage::

    from sccconnector.rules.schema import ConnectorConfig
    import yaml

    with open("config.yaml") as fh:
        raw = yaml.safe_load(fh)
    config = ConnectorConfig.model_validate(raw["scc"])
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


class MatchAttribute(BaseModel):
    """An attribute a record must carry for a rule to apply to it."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(..., min_length=1, description="Attribute name")
    value: Optional[str] = Field(
        None, description="Expected value (None = any value)"
    )


class MatchRule(BaseModel):
    """Expected attribute set for records whose name matches ``match``."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    semantic_version: str = Field(
        "",
        description="Schema version the rule's groups resolve against",
    )
    match: str = Field(
        "",
        description=(
            "Regular expression searched in the record name, in Python re "
            "syntax; RE2-only constructs such as \\pL are rejected"
        ),
    )
    match_attributes: Optional[list[MatchAttribute]] = Field(
        None,
        description="Attributes that must be present for the rule to apply",
    )
    groups: list[str] = Field(
        default_factory=list,
        description="Named attribute groups the record must carry",
    )
    ignore: list[str] = Field(
        default_factory=list,
        description="Attributes never reported as missing or extra",
    )
    include: list[str] = Field(
        default_factory=list,
        description="Ad-hoc attributes required in addition to the groups",
    )
    report_additional: bool = Field(
        False,
        description="Report attributes present but not expected",
    )


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


class ConnectorConfig(BaseModel):
    """Root model for the ``scc`` connector section of a host config."""

    model_config = ConfigDict(extra="forbid")

    trace: list[MatchRule] = Field(
        default_factory=list, description="Rules applied to spans"
    )
    metrics: list[MatchRule] = Field(
        default_factory=list, description="Rules applied to metric data points"
    )
    log: list[MatchRule] = Field(
        default_factory=list, description="Rules applied to log records"
    )
    report_unmatched: bool = Field(
        False,
        description="Emit a diagnostic for records no rule applied to",
    )

    def sections(self) -> list[tuple[str, list[MatchRule]]]:
        """Return ``(section name, rules)`` pairs in validation order."""
        return [
            ("trace", self.trace),
            ("metrics", self.metrics),
            ("log", self.log),
        ]


class GroupRegistry(BaseModel):
    """Static lookup of attribute group id -> attribute names.

    Stands in for a semantic-convention schema registry.  The
    ``semantic_version`` of a rule is not used for lookup.
    """

    model_config = ConfigDict(extra="forbid")

    groups: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Attribute names keyed by group id",
    )

    def resolve(self, group: str, semantic_version: str = "") -> list[str]:
        """Return the attribute names of ``group``.

        Raises:
            KeyError: If the group is not registered.
        """
        try:
            return self.groups[group]
        except KeyError:
            raise KeyError(f"unknown attribute group {group!r}") from None
