# Class shape: too many methods or fields, and public fields on classes.

from __future__ import annotations

from pydantic import StrictBool, StrictInt

from cleansweep.context import RuleContext
from cleansweep.findings.models import Finding
from cleansweep.parser import JAVASCRIPT
from cleansweep.rules.base import Rule, RuleOptions
from cleansweep.syntax.nodes import Node, NodeKind

ACCESS_QUALIFIERS = frozenset({"public", "private", "protected"})

# Record-like declarations are plain data structures; exposing their fields is the point.
RECORD_KEYWORDS = frozenset({"struct", "union"})


class ClassShapeRule(Rule):
    """Flags classes that have grown too large and fields exposed without an access qualifier."""

    id = "class-shape"
    name = "Class shape"
    kinds = frozenset({NodeKind.CLASS_DECL, NodeKind.FIELD_DECL})

    class Options(RuleOptions):
        max_methods: StrictInt = 10
        max_fields: StrictInt = 7
        flag_public_fields: StrictBool = True

    def evaluate(self, node: Node, context: RuleContext) -> list[Finding]:
        if node.kind == NodeKind.CLASS_DECL:
            return self._check_size(node)
        return self._check_field_access(node, context)

    def _check_size(self, node: Node) -> list[Finding]:
        findings: list[Finding] = []
        label = f"'{node.name}'" if node.name else "anonymous class"
        methods = len(node.children_of_kind(NodeKind.FUNCTION_DECL))
        if methods > self.options.max_methods:
            findings.append(
                self.report(
                    node,
                    f"Class {label} has {methods} methods (max {self.options.max_methods}); "
                    "it likely has more than one responsibility.",
                )
            )
        fields = len(node.children_of_kind(NodeKind.FIELD_DECL))
        if fields > self.options.max_fields:
            findings.append(
                self.report(
                    node,
                    f"{(node.keyword or 'class').capitalize()} {label} has {fields} fields "
                    f"(max {self.options.max_fields}).",
                )
            )
        return findings

    def _check_field_access(self, node: Node, context: RuleContext) -> list[Finding]:
        if not self.options.flag_public_fields:
            return []
        owner = context.parent
        if owner is None or owner.kind != NodeKind.CLASS_DECL or owner.keyword in RECORD_KEYWORDS:
            return []
        if ACCESS_QUALIFIERS.intersection(node.qualifiers):
            return []
        label = node.name or "field"
        return [
            self.report(
                node,
                f"Field '{label}' is public with no access qualifier; keep state private "
                "and expose behaviour instead.",
                suggestion=f"#{label}" if context.language == JAVASCRIPT and node.name else None,
            )
        ]
