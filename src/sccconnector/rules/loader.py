"""
YAML loaders for connector configuration and attribute group registries.

A host configuration file keys component sections by component ID.  The
connector's type is ``scc``; named instances use ``scc/<name>``::

    scc:
    scc/full:
      report_unmatched: true
      trace:
        - match: "http.server.*"
          include: [project.id]

An empty section selects the default configuration.

Usage::

    from sccconnector.rules.loader import ConfigLoader

    config = ConfigLoader(name="full").load(Path("config.yaml"))
"""

from __future__ import annotations

from typing import Any

from sccconnector._loader_base import BaseYamlLoader
from sccconnector.rules.schema import ConnectorConfig, GroupRegistry

COMPONENT_TYPE = "scc"


def component_id(name: str = "") -> str:
    """Return the config key for a connector instance (``scc`` or ``scc/<name>``)."""
    return f"{COMPONENT_TYPE}/{name}" if name else COMPONENT_TYPE


class ConfigLoader(BaseYamlLoader[ConnectorConfig]):
    """Loads one connector section from a host configuration file.

    Args:
        name: Instance name; empty selects the unnamed ``scc`` section.
    """

    _model_class = ConnectorConfig

    def __init__(self, name: str = "") -> None:
        self.name = name

    def _select(self, raw: dict[str, Any]) -> Any:
        key = component_id(self.name)
        if key not in raw:
            raise KeyError(f"component {key!r} not found in config")
        return raw[key] or {}

    def _log_loaded(self, model: ConnectorConfig, key: str) -> None:
        self._logger.debug(
            "Loaded %s from %s: trace=%d, metrics=%d, log=%d, report_unmatched=%s",
            component_id(self.name),
            key,
            len(model.trace),
            len(model.metrics),
            len(model.log),
            model.report_unmatched,
        )


class GroupRegistryLoader(BaseYamlLoader[GroupRegistry]):
    """Loads a ``GroupRegistry`` from a YAML file with a ``groups`` mapping."""

    _model_class = GroupRegistry

    def _log_loaded(self, model: GroupRegistry, key: str) -> None:
        self._logger.debug("Loaded %d attribute group(s) from %s", len(model.groups), key)
