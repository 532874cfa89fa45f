"""
Exception types raised by the connector.

Configuration problems are collected rather than raised one at a time:
``validate_config()`` gathers a ``PatternError`` for every rule whose
pattern does not compile and raises them together as a single
``ConfigValidationError``.

Errors raised by the downstream logs consumer are never wrapped; they
propagate out of ``Connector.consume_*`` unchanged.
"""

from __future__ import annotations

import re
from typing import Sequence


class SccError(Exception):
    """Base class for connector errors."""


class PatternError(SccError, ValueError):
    """A rule's ``match`` pattern failed to compile.

    Args:
        kind: Config section the rule belongs to (``trace``, ``metrics``
            or ``log``).
        pattern: The pattern text as configured.
        cause: The ``re.error`` raised by the compiler.
    """

    def __init__(self, kind: str, pattern: str, cause: re.error) -> None:
        self.kind = kind
        self.pattern = pattern
        self.__cause__ = cause
        super().__init__(
            f"failed to parse {kind}: invalid pattern {pattern!r}: {cause}"
        )


class ConfigValidationError(SccError, ValueError):
    """One or more rules are invalid.

    ``errors`` keeps every individual cause in the order it was found.
    The message joins all of them, one per line.
    """

    def __init__(self, errors: Sequence[PatternError]) -> None:
        self.errors: list[PatternError] = list(errors)
        super().__init__("\n".join(str(e) for e in self.errors))


class EngineError(SccError):
    """The matching engine rejected a validated rule set."""

    def __init__(self, kind: str, message: str) -> None:
        self.kind = kind
        super().__init__(f"failed to build {kind} matcher: {message}")
