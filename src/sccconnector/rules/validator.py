"""
Rule configuration validator.

Compiles the ``match`` pattern of every rule in every section and
reports all failures together.  Validation never stops at the first bad
pattern: a config with three invalid rules yields one
``ConfigValidationError`` carrying three ``PatternError`` causes.

Usage::

    from sccconnector.rules.validator import validate_config

    validate_config(config)  # raises ConfigValidationError
"""

from __future__ import annotations

import logging
import re

from sccconnector.errors import ConfigValidationError, PatternError
from sccconnector.otel import emit_config_rejected
from sccconnector.rules.schema import ConnectorConfig

logger = logging.getLogger(__name__)


def check_config(config: ConnectorConfig) -> list[PatternError]:
    """Return one ``PatternError`` per rule whose pattern does not compile.

    Errors are ordered by section (trace, metrics, log) and then by the
    rule's position within its section.
    """
    errors: list[PatternError] = []
    for section, rules in config.sections():
        for rule in rules:
            try:
                re.compile(rule.match)
            except re.error as exc:
                errors.append(PatternError(section, rule.match, exc))
    return errors


def validate_config(config: ConnectorConfig) -> None:
    """Validate every rule pattern in ``config``.

    Raises:
        ConfigValidationError: If any pattern fails to compile.  The
            error lists every failing rule, not only the first.
    """
    errors = check_config(config)
    if errors:
        logger.warning("Rule configuration rejected: %d invalid pattern(s)", len(errors))
        emit_config_rejected(errors)
        raise ConfigValidationError(errors)

    logger.debug(
        "Rule configuration valid: trace=%d metrics=%d log=%d",
        len(config.trace),
        len(config.metrics),
        len(config.log),
    )
