"""
sccconnector - semantic convention checking connector.

Checks spans, metric data points and log records against configured
expected-attribute rules and re-emits each verdict as a diagnostic log
record ("matched" / "not matched", with missing and extra attribute
names).

Public API::

    from sccconnector import (
        ConnectorConfig,
        MatchRule,
        Connector,
        ConnectorFactory,
        LogsSink,
    )
"""

from sccconnector.connector import Connector
from sccconnector.consumer import LogsConsumer, LogsSink
from sccconnector.emitter import DiagnosticEmitter, ScopeIdentity
from sccconnector.engine import MatchingEngine, MatchResult, RuleMatcher, Verdict
from sccconnector.errors import (
    ConfigValidationError,
    EngineError,
    PatternError,
    SccError,
)
from sccconnector.factory import ConnectorFactory, ConnectorSettings
from sccconnector.rules import (
    ConfigLoader,
    ConnectorConfig,
    GroupRegistry,
    MatchAttribute,
    MatchRule,
    validate_config,
)
from sccconnector.telemetry import TelemetryKind

__version__ = "0.1.0"

__all__ = [
    # Config
    "ConnectorConfig",
    "MatchRule",
    "MatchAttribute",
    "GroupRegistry",
    "ConfigLoader",
    "validate_config",
    # Pipeline
    "Connector",
    "ConnectorFactory",
    "ConnectorSettings",
    "DiagnosticEmitter",
    "ScopeIdentity",
    "TelemetryKind",
    # Engine
    "MatchingEngine",
    "MatchResult",
    "RuleMatcher",
    "Verdict",
    # Consumers
    "LogsConsumer",
    "LogsSink",
    # Errors
    "SccError",
    "PatternError",
    "ConfigValidationError",
    "EngineError",
]
