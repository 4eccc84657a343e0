# Naming conventions: short names in long-lived scopes, boolean predicates,
# interface-style and noise-word class names, negated boolean names.

from __future__ import annotations

import re
from typing import Optional

from pydantic import StrictInt, StrictStr

from cleansweep.context import RuleContext
from cleansweep.findings.models import Finding
from cleansweep.parser import C
from cleansweep.rules.base import Rule, RuleOptions
from cleansweep.syntax.nodes import Node, NodeKind

# Kinds whose short names are acceptable inside a short-lived local scope.
LOCAL_KINDS = frozenset({NodeKind.VARIABLE_DECL, NodeKind.PARAMETER})

# Ancestors whose extent bounds how long a local name stays in use.
LOCAL_SCOPE_KINDS = frozenset({NodeKind.FUNCTION_DECL, NodeKind.BLOCK, NodeKind.CONDITIONAL})
LOOP_KEYWORDS = frozenset({"for", "do"})

PREDICATE_PREFIXES = ("is", "has", "can", "should", "was", "does", "did")

_CAMEL_NEGATED = re.compile(r"^(?P<prefix>%s)Not(?P<rest>[A-Z]\w*)$" % "|".join(PREDICATE_PREFIXES))
_SNAKE_NEGATED = re.compile(r"^(?P<prefix>%s)_not_(?P<rest>\w+)$" % "|".join(PREDICATE_PREFIXES))
_BARE_CAMEL_NEGATED = re.compile(r"^not(?P<rest>[A-Z]\w*)$")
_BARE_SNAKE_NEGATED = re.compile(r"^not_(?P<rest>\w+)$")
_INTERFACE_PREFIX = re.compile(r"^I[A-Z][a-z]")


def positive_form(name: str) -> Optional[str]:
    """
    Return the positively stated form of a negated boolean name, or None.

    isNotReady -> isReady, is_not_ready -> is_ready, notReady -> isReady,
    not_ready -> is_ready.
    """
    m = _CAMEL_NEGATED.match(name)
    if m:
        return m.group("prefix") + m.group("rest")
    m = _SNAKE_NEGATED.match(name)
    if m:
        return f"{m.group('prefix')}_{m.group('rest')}"
    m = _BARE_CAMEL_NEGATED.match(name)
    if m:
        return "is" + m.group("rest")
    m = _BARE_SNAKE_NEGATED.match(name)
    if m:
        return "is_" + m.group("rest")
    return None


def has_predicate_prefix(name: str, prefixes: tuple[str, ...]) -> bool:
    """True if name starts with one of prefixes at a word boundary (isReady, is_ready)."""
    lowered = name.lower()
    for prefix in prefixes:
        if not lowered.startswith(prefix.lower()) or len(name) == len(prefix):
            continue
        nxt = name[len(prefix)]
        if nxt == "_" or nxt.isupper() or nxt.isdigit():
            return True
    return False


def _innermost_scope(context: RuleContext) -> Optional[Node]:
    """
    Nearest function, block, conditional or loop around a local declaration.

    None when the declaration is not inside a function at all.
    """
    if context.enclosing(NodeKind.FUNCTION_DECL) is None:
        return None
    for ancestor in reversed(context.ancestors):
        if ancestor.kind in LOCAL_SCOPE_KINDS:
            return ancestor
        if ancestor.kind == NodeKind.OTHER and ancestor.keyword in LOOP_KEYWORDS:
            return ancestor
    return None


def _predicate_suggestion(name: str, prefix: str, language: str) -> str:
    if "_" in name or (language == C and name.islower()):
        return f"{prefix}_{name}"
    return prefix + name[0].upper() + name[1:]


class NamingConventionRule(Rule):
    """Flags names that hide intent: too short, non-predicate booleans, I-prefixes, noise words, negations."""

    id = "naming-convention"
    name = "Naming conventions"
    kinds = frozenset(
        {
            NodeKind.VARIABLE_DECL,
            NodeKind.PARAMETER,
            NodeKind.FIELD_DECL,
            NodeKind.FUNCTION_DECL,
            NodeKind.CLASS_DECL,
        }
    )

    class Options(RuleOptions):
        min_name_length: StrictInt = 2
        short_scope_lines: StrictInt = 10
        allowed_short_names: tuple[StrictStr, ...] = ("_",)
        boolean_prefixes: tuple[StrictStr, ...] = ("is", "has", "can", "should")
        discouraged_suffixes: tuple[StrictStr, ...] = ("Manager", "Processor", "Data", "Info")

    def evaluate(self, node: Node, context: RuleContext) -> list[Finding]:
        name = node.name
        if not name:
            return []
        findings: list[Finding] = []

        short = self._check_short_name(node, name, context)
        if short is not None:
            findings.append(short)

        positive = positive_form(name)
        if positive is not None:
            findings.append(
                self.report(
                    node,
                    f"Negated boolean name '{name}'; name the positive condition instead.",
                    suggestion=positive,
                )
            )
        elif node.is_boolean and not has_predicate_prefix(name, self.options.boolean_prefixes):
            prefix = self.options.boolean_prefixes[0] if self.options.boolean_prefixes else "is"
            findings.append(
                self.report(
                    node,
                    f"Boolean '{name}' does not read as a predicate; prefix it with "
                    f"{'/'.join(self.options.boolean_prefixes)}.",
                    suggestion=_predicate_suggestion(name, prefix, context.language),
                )
            )

        if node.kind == NodeKind.CLASS_DECL:
            findings.extend(self._check_class_name(node, name))
        return findings

    def _check_short_name(self, node: Node, name: str, context: RuleContext) -> Optional[Finding]:
        if len(name) >= self.options.min_name_length or name in self.options.allowed_short_names:
            return None
        limit = self.options.short_scope_lines
        scope = _innermost_scope(context) if node.kind in LOCAL_KINDS else None
        if scope is not None:
            lines = scope.span.line_count
            if lines <= limit:
                return None
            return self.report(
                node,
                f"Name '{name}' is too short for a scope of {lines} lines; short names are "
                f"only clear in scopes of at most {limit} lines.",
            )
        return self.report(node, f"Name '{name}' is too short outside a short-lived local scope.")

    def _check_class_name(self, node: Node, name: str) -> list[Finding]:
        findings: list[Finding] = []
        if _INTERFACE_PREFIX.match(name):
            findings.append(
                self.report(
                    node,
                    f"Type name '{name}' carries an interface-style 'I' prefix.",
                    suggestion=name[1:],
                )
            )
        for suffix in self.options.discouraged_suffixes:
            if name.endswith(suffix) and len(name) > len(suffix):
                findings.append(
                    self.report(
                        node,
                        f"Type name '{name}' ends in the noise word '{suffix}'; name what it is.",
                    )
                )
                break
        return findings
