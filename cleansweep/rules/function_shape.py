# Function shape: too many parameters, boolean flag arguments, output arguments.

from __future__ import annotations

from pydantic import StrictBool, StrictInt

from cleansweep.context import RuleContext
from cleansweep.findings.models import Finding
from cleansweep.rules.base import Rule, RuleOptions
from cleansweep.syntax.nodes import Node, NodeKind


class FunctionShapeRule(Rule):
    """Flags functions with long parameter lists, flag arguments, or writes to their own parameters."""

    id = "function-shape"
    name = "Function shape"
    kinds = frozenset({NodeKind.FUNCTION_DECL, NodeKind.PARAMETER, NodeKind.ASSIGNMENT})

    class Options(RuleOptions):
        max_parameters: StrictInt = 3
        flag_boolean_parameters: StrictBool = True
        flag_output_arguments: StrictBool = True

    def evaluate(self, node: Node, context: RuleContext) -> list[Finding]:
        if node.kind == NodeKind.FUNCTION_DECL:
            return self._check_parameter_count(node)
        if node.kind == NodeKind.PARAMETER:
            return self._check_flag_argument(node)
        if node.kind == NodeKind.ASSIGNMENT:
            return self._check_output_argument(node, context)
        return []

    def _check_parameter_count(self, node: Node) -> list[Finding]:
        count = len(node.children_of_kind(NodeKind.PARAMETER))
        limit = self.options.max_parameters
        if count <= limit:
            return []
        label = f"'{node.name}'" if node.name else "anonymous function"
        return [
            self.report(
                node,
                f"Function {label} takes {count} parameters ({count} > {limit}); "
                "group related arguments into an object or split the function.",
            )
        ]

    def _check_flag_argument(self, node: Node) -> list[Finding]:
        if not self.options.flag_boolean_parameters or not node.is_boolean:
            return []
        label = f"'{node.name}'" if node.name else "parameter"
        return [
            self.report(
                node,
                f"Boolean parameter {label} makes the function do more than one thing; "
                "split it into one function per case.",
            )
        ]

    def _check_output_argument(self, node: Node, context: RuleContext) -> list[Finding]:
        if not self.options.flag_output_arguments or not node.name:
            return []
        declaration = context.symbols.lookup(node.name)
        if declaration is None or declaration.kind != NodeKind.PARAMETER:
            return []
        function = context.enclosing(NodeKind.FUNCTION_DECL)
        if function is None or not any(child is declaration for child in function.children):
            return []
        target = node.text or node.name
        return [
            self.report(
                node,
                f"Assignment to '{target}' writes through parameter '{node.name}', "
                "using it as an output argument; return the result instead.",
            )
        ]
