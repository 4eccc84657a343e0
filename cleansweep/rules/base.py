# Rule interface (abstract base class): defines the contract all rules must implement.
# Concrete rules (naming, function_shape, etc.) subclass Rule, declare the node
# kinds they subscribe to, and implement evaluate().

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Optional

from pydantic import BaseModel

from cleansweep.context import RuleContext
from cleansweep.findings.models import Finding, Severity
from cleansweep.syntax.nodes import Node, NodeKind


class RuleOptions(BaseModel):
    """
    Base for rule-specific thresholds.

    Unknown keys are rejected so that a typo in a configuration file fails
    loudly instead of silently using a default. Subclasses declare thresholds
    with Strict* types so "3" or true is not coerced into an int.
    """

    model_config = {"frozen": True, "extra": "forbid"}


class Rule(ABC):
    """
    Abstract base class for all convention rules.

    Subclasses must define:
    - id: str - unique rule identifier (e.g. "function-shape")
    - name: str - human-readable rule name (e.g. "Function shape")
    - kinds: frozenset[NodeKind] - node kinds the engine dispatches to this rule
    - evaluate(node, context) -> list[Finding]

    and may define default_severity and an Options model with thresholds.

    evaluate() must be a pure function of (node, context): it must not mutate
    either, keeps no state between calls, and inspects only the node it is
    handed (the engine does the recursion).
    """

    id: ClassVar[str]
    name: ClassVar[str]
    kinds: ClassVar[frozenset[NodeKind]]
    default_severity: ClassVar[Severity] = Severity.WARNING
    Options: ClassVar[type[RuleOptions]] = RuleOptions

    def __init__(
        self,
        options: Optional[RuleOptions] = None,
        severity: Optional[Severity] = None,
    ) -> None:
        self.options = options if options is not None else self.Options()
        self.severity = severity if severity is not None else self.default_severity

    @classmethod
    def from_settings(cls, settings: dict[str, Any], severity: Optional[Severity] = None) -> "Rule":
        """Build the rule from a mapping of option values (validated by Options)."""
        return cls(options=cls.Options(**settings), severity=severity)

    @abstractmethod
    def evaluate(self, node: Node, context: RuleContext) -> list[Finding]:
        """
        Check one node and return any findings.

        Args:
            node: The node being visited; its kind is one of self.kinds.
            context: Read-only view of the file, ancestors and symbol table.

        Returns:
            List of Finding objects; an empty list if the node is fine.
        """
        ...

    def report(self, node: Node, message: str, suggestion: Optional[str] = None) -> Finding:
        """Build a Finding for node with this rule's id and severity."""
        return Finding(
            rule_id=self.id,
            severity=self.severity,
            message=message,
            span=node.span,
            suggestion=suggestion,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, severity={self.severity.value!r})"
