# Rule registry: holds the enabled rules and answers "which rules handle this node kind?"

from __future__ import annotations

import logging
from typing import Iterator, Optional

from cleansweep.errors import DuplicateRuleIdError, RegistryFrozenError
from cleansweep.rules.base import Rule
from cleansweep.syntax.nodes import NodeKind

logger = logging.getLogger(__name__)


class RuleRegistry:
    """
    Registry for the rules of one analysis run, indexed by node kind.

    Rules are kept sorted by id so dispatch order never depends on the order
    they were registered in. Once frozen (the engine freezes it before the
    first walk) the registry rejects further registration.
    """

    def __init__(self, rules: Optional[list[Rule]] = None) -> None:
        self._rules: dict[str, Rule] = {}
        self._by_kind: dict[NodeKind, tuple[Rule, ...]] = {}
        self._frozen = False
        for rule in rules or []:
            self.register(rule)

    def register(self, rule: Rule) -> None:
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register {rule.id!r}: registry is frozen")
        if rule.id in self._rules:
            raise DuplicateRuleIdError(rule.id)
        self._rules[rule.id] = rule
        for kind in rule.kinds:
            subscribed = self._by_kind.get(kind, ()) + (rule,)
            self._by_kind[kind] = tuple(sorted(subscribed, key=lambda r: r.id))
        logger.debug("Registered rule %s for %s", rule.id, sorted(k.value for k in rule.kinds))

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def rules_for(self, kind: NodeKind) -> tuple[Rule, ...]:
        """Rules subscribed to kind, sorted by id; empty when none."""
        return self._by_kind.get(kind, ())

    def get(self, rule_id: str) -> Optional[Rule]:
        return self._rules.get(rule_id)

    def ids(self) -> list[str]:
        return sorted(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules[rule_id] for rule_id in self.ids())


def builtin_rule_types() -> list[type[Rule]]:
    """All rule classes shipped with cleansweep, in id order."""
    from cleansweep.rules.class_shape import ClassShapeRule
    from cleansweep.rules.comments import CommentQualityRule
    from cleansweep.rules.conditionals import ConditionalPolarityRule
    from cleansweep.rules.function_shape import FunctionShapeRule
    from cleansweep.rules.naming import NamingConventionRule

    types: list[type[Rule]] = [
        ClassShapeRule,
        CommentQualityRule,
        ConditionalPolarityRule,
        FunctionShapeRule,
        NamingConventionRule,
    ]
    return sorted(types, key=lambda t: t.id)


def default_registry() -> RuleRegistry:
    """Registry with every built-in rule at its default options and severity."""
    return RuleRegistry([rule_type() for rule_type in builtin_rule_types()])
