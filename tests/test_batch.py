"""Tests for multi-file analysis: ordering, parallelism, cancellation, unreadable files."""

import logging
import threading
from pathlib import Path

import pytest

from cleansweep.engine import analyze_paths, analyze_sources
from cleansweep.findings.models import PARSE_ERROR_RULE_ID, Severity
from cleansweep.parser import C, JAVASCRIPT, UnsupportedLanguageError
from cleansweep.registry import RuleRegistry, default_registry
from cleansweep.rules.function_shape import FunctionShapeRule


def _sources(count):
    """Buffers whose parameter count (and so whose finding) depends on position."""
    out = []
    for i in range(count):
        params = ", ".join(f"p{j}" for j in range(i % 6))
        out.append((f"file{i:02d}.js", f"function f{i}({params}) {{}}\n"))
    return out


def test_analyze_sources_single_worker():
    batch = analyze_sources(_sources(3), default_registry())
    assert [d.path for d in batch.diagnostics] == [Path("file00.js"), Path("file01.js"), Path("file02.js")]
    assert not batch.cancelled
    assert batch.unreadable == ()


def test_parallel_results_match_sequential_in_input_order():
    sources = _sources(24)
    sequential = analyze_sources(sources, RuleRegistry([FunctionShapeRule()]), jobs=1)
    parallel = analyze_sources(sources, RuleRegistry([FunctionShapeRule()]), jobs=8)
    assert [d.path for d in parallel.diagnostics] == [Path(p) for p, _ in sources]
    assert parallel.diagnostics == sequential.diagnostics
    assert sum(1 for d in parallel.diagnostics if d.findings) == 8


def test_explicit_language_overrides_suffix():
    batch = analyze_sources([("snippet.txt", "int main(void) { return 0; }")], default_registry(), language=C)
    assert batch.diagnostics[0].language == C


def test_unknown_suffix_without_language_raises():
    with pytest.raises(UnsupportedLanguageError):
        analyze_sources([("notes.txt", "hello")], default_registry())


def test_cancel_before_start_skips_everything():
    cancel = threading.Event()
    cancel.set()
    sources = _sources(5)
    batch = analyze_sources(sources, default_registry(), jobs=2, cancel=cancel)
    assert batch.diagnostics == ()
    assert batch.cancelled
    assert batch.skipped == tuple(Path(p) for p, _ in sources)


def test_cancel_midway_keeps_completed_files():
    """Files started before cancellation finish; later ones are reported as skipped."""
    cancel = threading.Event()

    class CancellingRule(FunctionShapeRule):
        def evaluate(self, node, context):
            if node.name == "f1":
                cancel.set()
            return super().evaluate(node, context)

    sources = _sources(4)
    batch = analyze_sources(sources, RuleRegistry([CancellingRule()]), jobs=1, cancel=cancel)
    assert [d.path for d in batch.diagnostics] == [Path("file00.js"), Path("file01.js")]
    assert batch.skipped == (Path("file02.js"), Path("file03.js"))


def test_parse_failure_does_not_stop_batch():
    sources = [("bad.c", "int main( {"), ("good.c", "int main(void) { return 0; }")]
    batch = analyze_sources(sources, default_registry(), jobs=2)
    bad, good = batch.diagnostics
    assert bad.parse_failed
    assert bad.findings[0].rule_id == PARSE_ERROR_RULE_ID
    assert good.findings == ()
    assert batch.has_findings_at(Severity.ERROR)


def test_analyze_paths_reads_files(tmp_path):
    c_file = tmp_path / "main.c"
    c_file.write_text("int main(void) { return 0; }\n")
    js_file = tmp_path / "app.js"
    js_file.write_text("function f(a, b, c, d) {}\n")
    batch = analyze_paths([c_file, js_file], default_registry(), jobs=2)
    assert [d.language for d in batch.diagnostics] == [C, JAVASCRIPT]
    assert batch.diagnostics[0].findings == ()
    assert any(f.rule_id == "function-shape" for f in batch.diagnostics[1].findings)


def test_analyze_paths_unreadable_file(tmp_path, caplog):
    present = tmp_path / "main.c"
    present.write_text("int main(void) { return 0; }\n")
    missing = tmp_path / "gone.c"
    with caplog.at_level(logging.ERROR):
        batch = analyze_paths([missing, present], default_registry())
    assert batch.unreadable == (missing,)
    assert [d.path for d in batch.diagnostics] == [present]
    assert "Failed to read file" in caplog.text


def test_analyze_paths_rejects_unsupported_before_reading(tmp_path):
    good = tmp_path / "main.c"
    good.write_text("int main(void) { return 0; }\n")
    registry = default_registry()
    with pytest.raises(UnsupportedLanguageError):
        analyze_paths([good, tmp_path / "notes.md"], registry)
    # Nothing ran, so the registry was never frozen.
    assert not registry.frozen


def test_batch_logs_summary(caplog):
    with caplog.at_level(logging.INFO):
        analyze_sources(_sources(2), default_registry())
    assert "Batch complete: 2 analyzed, 0 skipped, 0 unreadable" in caplog.text


def test_deeply_nested_file_reported_without_aborting_batch():
    """Nesting past the recursion limit becomes a finding for that file only."""
    deep = "let v = " + "[" * 1500 + "]" * 1500 + ";\n"
    sources = [("ok.js", "let total = 1;\n"), ("deep.js", deep), ("after.js", "let count = 2;\n")]
    batch = analyze_sources(sources, default_registry(), jobs=2)
    ok, nested, after = batch.diagnostics
    assert ok.findings == () and after.findings == ()
    assert nested.parse_failed
    assert nested.findings[0].severity == Severity.ERROR
    assert "nesting exceeds the supported depth" in nested.findings[0].message


def test_unknown_explicit_language_raises_before_analysis():
    registry = default_registry()
    with pytest.raises(UnsupportedLanguageError):
        analyze_sources([("a.js", "let total = 1;\n")], registry, language="cpp")
    assert not registry.frozen
