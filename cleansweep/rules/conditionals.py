# Conditional polarity: if/while guards that negate a named predicate.

from __future__ import annotations

from cleansweep.context import RuleContext, get_source_span
from cleansweep.findings.models import Finding
from cleansweep.rules.base import Rule
from cleansweep.rules.naming import positive_form
from cleansweep.syntax.nodes import Node, NodeKind

PREDICATE_KINDS = frozenset({NodeKind.IDENTIFIER, NodeKind.CALL})


class ConditionalPolarityRule(Rule):
    """Flags `if (!isReady())`-style guards; positive conditions read more easily."""

    id = "conditional-polarity"
    name = "Conditional polarity"
    kinds = frozenset({NodeKind.CONDITIONAL})

    def evaluate(self, node: Node, context: RuleContext) -> list[Finding]:
        if not node.negated or not node.children:
            return []
        guard = node.children[0]
        if guard.kind != NodeKind.NEGATION or not guard.children:
            return []
        operand = guard.children[0]
        if operand.kind not in PREDICATE_KINDS or not operand.name:
            return []

        name = operand.name
        keyword = node.keyword or "if"
        positive = positive_form(name)
        if positive is not None:
            # !isNotReady is a double negative: the positive name is the whole fix.
            operand_text = get_source_span(context.source, operand)
            head, sep, tail = operand_text.rpartition(name)
            suggestion = f"{head}{positive}{tail}" if sep else positive
            return [
                self.report(
                    guard,
                    f"'{keyword}' condition negates the negative predicate '{name}'; "
                    f"state it positively as '{positive}'.",
                    suggestion=suggestion,
                )
            ]
        return [
            self.report(
                guard,
                f"'{keyword}' condition negates '{name}'; restate the predicate positively "
                "or swap the branches.",
            )
        ]
