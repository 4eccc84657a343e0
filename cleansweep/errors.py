# Error taxonomy shared by the adapter, registry, configuration and engine.

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cleansweep.syntax.nodes import Span


class CleanSweepError(Exception):
    """Base class for all errors raised by cleansweep."""


class ParseError(CleanSweepError):
    """The syntax adapter could not build an AST for a file."""

    def __init__(self, span: "Span", message: str) -> None:
        super().__init__(f"{span.start_line}:{span.start_column}: {message}")
        self.span = span
        self.message = message


class ConfigurationError(CleanSweepError):
    """Rule configuration is malformed; analysis must not start."""


class DuplicateRuleIdError(CleanSweepError):
    """A rule with the same identifier is already registered."""

    def __init__(self, rule_id: str) -> None:
        super().__init__(f"Rule id already registered: {rule_id}")
        self.rule_id = rule_id


class RegistryFrozenError(CleanSweepError):
    """The registry was modified after analysis started."""
