"""
Connector factory used by a telemetry-processing host.

The host refers to the connector by its component type (``scc``) and asks
the factory for one connector per pipeline pair: traces->logs,
metrics->logs or logs->logs.  Each ``create_*`` call validates the
config and fails outright if it is invalid.

Usage::

    from opentelemetry.sdk.resources import Resource
    from sccconnector.factory import ConnectorFactory, ConnectorSettings

    factory = ConnectorFactory()
    config = factory.create_default_config()
    settings = ConnectorSettings(resource=Resource.create({"host.name": "a"}))
    connector = factory.create_traces_to_logs(settings, config, sink)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from opentelemetry.sdk.resources import Resource

from sccconnector.config import get_settings
from sccconnector.connector import Connector
from sccconnector.consumer import LogsConsumer
from sccconnector.engine import EngineFactory
from sccconnector.rules.loader import COMPONENT_TYPE
from sccconnector.rules.schema import ConnectorConfig, GroupRegistry

logger = logging.getLogger(__name__)

TRACES_TO_LOGS_STABILITY = "development"
METRICS_TO_LOGS_STABILITY = "development"
LOGS_TO_LOGS_STABILITY = "development"


@dataclass
class ConnectorSettings:
    """What the host hands to every connector it creates."""

    resource: Resource = field(default_factory=Resource.get_empty)
    logger: logging.Logger = field(default_factory=lambda: logger)
    registry: Optional[GroupRegistry] = None
    engine_factory: Optional[EngineFactory] = None


class ConnectorFactory:
    """Creates ``Connector`` instances for each supported pipeline pair."""

    type = COMPONENT_TYPE

    def create_default_config(self) -> ConnectorConfig:
        return ConnectorConfig()

    def create_traces_to_logs(
        self,
        settings: ConnectorSettings,
        config: ConnectorConfig,
        next_consumer: LogsConsumer,
    ) -> Connector:
        return self._create(settings, config, next_consumer)

    def create_metrics_to_logs(
        self,
        settings: ConnectorSettings,
        config: ConnectorConfig,
        next_consumer: LogsConsumer,
    ) -> Connector:
        return self._create(settings, config, next_consumer)

    def create_logs_to_logs(
        self,
        settings: ConnectorSettings,
        config: ConnectorConfig,
        next_consumer: LogsConsumer,
    ) -> Connector:
        return self._create(settings, config, next_consumer)

    def _create(
        self,
        settings: ConnectorSettings,
        config: ConnectorConfig,
        next_consumer: LogsConsumer,
    ) -> Connector:
        if not isinstance(config, ConnectorConfig):
            raise TypeError(
                f"Expected ConnectorConfig, got {type(config).__name__}"
            )
        settings.logger.debug("Creating %s connector", self.type)
        return Connector(
            config,
            next_consumer,
            resource_attributes=dict(settings.resource.attributes),
            service_name=get_settings().service_name,
            engine_factory=settings.engine_factory,
            registry=settings.registry,
        )
