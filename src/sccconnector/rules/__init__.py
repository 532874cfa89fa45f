"""
Rule configuration: schema models, YAML loaders and the pattern validator.

Public API::

    from sccconnector.rules import (
        # Schema models
        ConnectorConfig,
        MatchRule,
        MatchAttribute,
        GroupRegistry,
        # Loaders
        ConfigLoader,
        GroupRegistryLoader,
        # Validator
        check_config,
        validate_config,
    )
"""

from sccconnector.rules.loader import (
    COMPONENT_TYPE,
    ConfigLoader,
    GroupRegistryLoader,
    component_id,
)
from sccconnector.rules.schema import (
    ConnectorConfig,
    GroupRegistry,
    MatchAttribute,
    MatchRule,
)
from sccconnector.rules.validator import check_config, validate_config

__all__ = [
    # Schema
    "ConnectorConfig",
    "MatchRule",
    "MatchAttribute",
    "GroupRegistry",
    # Loader
    "COMPONENT_TYPE",
    "ConfigLoader",
    "GroupRegistryLoader",
    "component_id",
    # Validator
    "check_config",
    "validate_config",
]
