"""Tests for the traversal engine: ordering, isolation, scopes and the core scenarios."""

import logging

import pytest
from pydantic import ValidationError

from cleansweep.context import SymbolTable, index_names
from cleansweep.engine import analyze, analyze_text
from cleansweep.findings.models import PARSE_ERROR_RULE_ID, Finding, Severity
from cleansweep.parser import C, JAVASCRIPT
from cleansweep.registry import RuleRegistry, default_registry
from cleansweep.rules.base import Rule
from cleansweep.rules.conditionals import ConditionalPolarityRule
from cleansweep.rules.function_shape import FunctionShapeRule
from cleansweep.rules.naming import NamingConventionRule
from cleansweep.syntax.adapter import parse
from cleansweep.syntax.nodes import NodeKind, Span

SAMPLE_JS = """\
// Uses `loadConfig` to read settings.
class UserManager {
  name = "x";
  save(a, b, c, d, force = false) {
    if (!this.isNotReady()) {
      a = 1;
    }
  }
}
"""


class ExplodingRule(Rule):
    """Raises on every identifier it sees."""

    id = "exploding"
    name = "Exploding"
    kinds = frozenset({NodeKind.IDENTIFIER})

    def evaluate(self, node, context):
        raise RuntimeError("boom")


class WrongReturnRule(Rule):
    id = "wrong-return"
    name = "Wrong return"
    kinds = frozenset({NodeKind.FUNCTION_DECL})

    def evaluate(self, node, context):
        return ["not a finding"]


class OverreachingRule(Rule):
    """Reports a span far past the end of the file."""

    id = "overreaching"
    name = "Overreaching"
    kinds = frozenset({NodeKind.MODULE})

    def evaluate(self, node, context):
        return [self.report(node.model_copy(update={"span": Span(start=3, end=10_000)}), "too far")]


class DepthRecordingRule(Rule):
    id = "depth-recording"
    name = "Depth recording"
    kinds = frozenset({NodeKind.VARIABLE_DECL})
    seen: list = []

    def evaluate(self, node, context):
        self.seen.append((node.name, context.symbols.depth, context.symbols.lookup(node.name) is node))
        return []


def _long_function_with_short_local() -> str:
    body = "\n".join("    total = total + 1;" for _ in range(48))
    return f"void accumulate(void) {{\n    int total = 0;\n    int s;\n{body}\n}}\n"


def test_scenario_short_name_in_long_function():
    """A one-letter local in a 50+ line function yields one naming finding."""
    text = _long_function_with_short_local()
    registry = RuleRegistry([NamingConventionRule(NamingConventionRule.Options(short_scope_lines=10))])
    result = analyze(parse(text, C), registry)
    assert len(result.findings) == 1
    finding = result.findings[0]
    assert finding.rule_id == "naming-convention"
    assert "'s'" in finding.message
    assert text[finding.span.start : finding.span.end].startswith("int s")


def test_scenario_too_many_parameters():
    registry = RuleRegistry([FunctionShapeRule()])
    result = analyze(parse("function f(a, b, c, d) {}", JAVASCRIPT), registry)
    assert len(result.findings) == 1
    assert result.findings[0].rule_id == "function-shape"
    assert "4 > 3" in result.findings[0].message


def test_scenario_double_negative_condition():
    registry = RuleRegistry([ConditionalPolarityRule()])
    result = analyze(parse("void f(void) { if (!isNotReady) {} }", C), registry)
    assert len(result.findings) == 1
    finding = result.findings[0]
    assert finding.rule_id == "conditional-polarity"
    assert finding.suggestion == "isReady"


def test_scenario_double_negative_without_the_rule():
    registry = RuleRegistry([FunctionShapeRule()])
    assert analyze(parse("void f(void) { if (!isNotReady) {} }", C), registry).findings == ()


def test_scenario_unparseable_file(caplog):
    """A parse failure yields a single parse-error finding and no rule output."""
    with caplog.at_level(logging.WARNING):
        result = analyze_text("int main( { broken", C, default_registry(), path="bad.c")
    assert len(result.findings) == 1
    finding = result.findings[0]
    assert finding.rule_id == PARSE_ERROR_RULE_ID
    assert finding.severity == Severity.ERROR
    assert result.parse_failed
    assert "Could not parse bad.c" in caplog.text


def test_analysis_is_deterministic():
    source = parse(SAMPLE_JS, JAVASCRIPT)
    first = analyze(source, default_registry())
    second = analyze(source, default_registry())
    assert first.findings == second.findings
    assert first.findings


def test_findings_ordered_by_visit_then_rule():
    """Findings raised on an earlier node come first; the comment precedes the class."""
    result = analyze(parse(SAMPLE_JS, JAVASCRIPT), default_registry())
    rule_ids = [f.rule_id for f in result.findings]
    assert rule_ids[0] == "comment-quality"
    starts = [f.span.start for f in result.findings]
    # Findings on the class precede findings on its members.
    class_findings = [f for f in result.findings if f.span.start == SAMPLE_JS.index("class")]
    assert class_findings
    assert starts.index(class_findings[0].span.start) < starts.index(SAMPLE_JS.index('name = "x"'))


def test_registration_order_does_not_change_output():
    source = parse(SAMPLE_JS, JAVASCRIPT)
    forward = RuleRegistry([NamingConventionRule(), FunctionShapeRule(), ConditionalPolarityRule()])
    backward = RuleRegistry([ConditionalPolarityRule(), FunctionShapeRule(), NamingConventionRule()])
    assert analyze(source, forward).findings == analyze(source, backward).findings


def test_rule_failure_is_isolated():
    """A raising rule becomes one finding per node and other rules still run."""
    source = parse("function f(a, b, c, d) { return a; }", JAVASCRIPT)
    registry = RuleRegistry([ExplodingRule(), FunctionShapeRule()])
    result = analyze(source, registry)
    failures = [f for f in result.findings if f.rule_id == "exploding"]
    assert len(failures) == 1
    assert "RuntimeError: boom" in failures[0].message
    assert failures[0].severity == Severity.WARNING
    assert any(f.rule_id == "function-shape" for f in result.findings)


def test_non_finding_return_is_a_rule_failure():
    result = analyze(parse("int f(void) { return 0; }", C), RuleRegistry([WrongReturnRule()]))
    assert len(result.findings) == 1
    assert "TypeError" in result.findings[0].message


def test_finding_spans_are_clamped_to_the_file():
    text = "let x = 1;\n"
    result = analyze(parse(text, JAVASCRIPT), RuleRegistry([OverreachingRule()]))
    (finding,) = result.findings
    assert finding.span.start == 3
    assert finding.span.end == len(text)


def test_all_findings_within_source():
    source = parse(SAMPLE_JS, JAVASCRIPT)
    for finding in analyze(source, default_registry()).findings:
        assert 0 <= finding.span.start <= finding.span.end <= source.length


def test_scopes_are_released_after_walk():
    source = parse(_long_function_with_short_local(), C)
    symbols = SymbolTable(index_names(source.root))
    analyze(source, default_registry(), symbols=symbols)
    assert symbols.depth == 0
    # Locals were declared in popped frames; only the function remains at file level.
    assert symbols.lookup("accumulate") is not None
    assert symbols.lookup("total") is None


def test_scopes_are_released_when_rules_fail():
    source = parse("function f(a) { if (!a) { g(); } }", JAVASCRIPT)
    symbols = SymbolTable()
    analyze(source, RuleRegistry([ExplodingRule()]), symbols=symbols)
    assert symbols.depth == 0


def test_rules_see_their_own_scope():
    DepthRecordingRule.seen = []
    text = "int top;\nvoid f(void) {\n    int inner;\n}\n"
    analyze(parse(text, C), RuleRegistry([DepthRecordingRule()]))
    # inner sits in the function frame plus the body block frame
    assert DepthRecordingRule.seen == [("top", 0, True), ("inner", 2, True)]


def test_each_rule_alone_matches_its_share():
    """Running rules together yields exactly the union of running them one at a time."""
    source = parse(SAMPLE_JS, JAVASCRIPT)
    combined = analyze(source, default_registry()).findings
    for rule in default_registry():
        alone = analyze(source, RuleRegistry([type(rule)()])).findings
        assert alone == tuple(f for f in combined if f.rule_id == rule.id)


def test_analyze_freezes_registry():
    registry = RuleRegistry([FunctionShapeRule()])
    analyze(parse("let a = 1;", JAVASCRIPT), registry)
    assert registry.frozen


def test_empty_registry_yields_no_findings():
    result = analyze(parse(SAMPLE_JS, JAVASCRIPT), RuleRegistry())
    assert result.findings == ()
    assert result.language == JAVASCRIPT


def test_finding_is_immutable():
    finding = Finding(rule_id="x", message="m", span=Span(start=0, end=1))
    with pytest.raises(ValidationError):
        finding.message = "changed"
