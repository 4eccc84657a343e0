"""Tests for the comment-quality rule."""

from cleansweep.engine import analyze
from cleansweep.parser import C, JAVASCRIPT
from cleansweep.registry import RuleRegistry
from cleansweep.rules.comments import CommentQualityRule, referenced_names, strip_comment_markers
from cleansweep.syntax.adapter import parse


def _run_rule(text, language=JAVASCRIPT, rule=None):
    rule = rule or CommentQualityRule()
    return analyze(parse(text, language), RuleRegistry([rule])).findings


def test_strip_line_comment():
    assert strip_comment_markers("// hello world") == "hello world"


def test_strip_block_comment():
    assert strip_comment_markers("/**\n * Hello\n * world\n */") == "Hello\nworld"


def test_referenced_names():
    body = "Call `init` then run() and `init()` again; see obj.method() too."
    assert referenced_names(body) == ["init", "run"]


def test_commented_out_code_c():
    findings = _run_rule("// int x = compute(y);\nint z;\n", C)
    assert len(findings) == 1
    assert "Commented-out code" in findings[0].message
    assert findings[0].suggestion == ""


def test_commented_out_statement_c():
    """Statements only valid inside a function body are still recognized."""
    findings = _run_rule("int f(void) {\n    /* return total; */\n    return 0;\n}\n", C)
    assert len(findings) == 1


def test_commented_out_code_js():
    findings = _run_rule("// console.log(value);\nlet value = 1;\n")
    assert len(findings) == 1
    assert findings[0].suggestion == ""


def test_prose_comment_is_fine():
    assert _run_rule("// Returns the total for the order.\nint z;\n", C) == ()


def test_prose_with_parentheses_is_fine():
    assert _run_rule("// Totals are kept (in cents) per order\nlet z = 1;\n") == ()


def test_stale_reference():
    findings = _run_rule("// Calls `refresh()` before saving.\nfunction save() {}\n")
    assert len(findings) == 1
    assert "'refresh'" in findings[0].message
    assert "stale" in findings[0].message


def test_reference_declared_later_is_not_stale():
    text = "// Delegates to `refresh`.\nfunction save() { refresh(); }\nfunction refresh() {}\n"
    assert _run_rule(text) == ()


def test_ignored_names():
    assert _run_rule("// Returns `null` on failure.\nfunction find() {}\n") == ()


def test_each_stale_name_reported_once():
    findings = _run_rule("// Uses `alpha`, `beta` and `alpha` again.\nlet z = 1;\n")
    assert [f.message.split("'")[1] for f in findings] == ["alpha", "beta"]


def test_detection_can_be_disabled():
    rule = CommentQualityRule(
        CommentQualityRule.Options(detect_commented_code=False, detect_stale_references=False)
    )
    text = "// console.log(value);\n// Calls `refresh()`.\nlet value = 1;\n"
    assert _run_rule(text, rule=rule) == ()
