# Traversal engine: one pre-order walk per file, dispatching each node to the
# rules subscribed to its kind, plus batch analysis over many files.

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Optional, Sequence, TypeVar, Union

from cleansweep.context import (
    RuleContext,
    SymbolTable,
    SymbolView,
    create_source_file,
    index_names,
    read_text,
)
from cleansweep.errors import ParseError
from cleansweep.findings.models import (
    PARSE_ERROR_RULE_ID,
    BatchResult,
    Diagnostics,
    Finding,
    Severity,
)
from cleansweep.parser import UnsupportedLanguageError, get_language, language_for_path
from cleansweep.registry import RuleRegistry
from cleansweep.rules.base import Rule
from cleansweep.syntax.nodes import DECLARATION_KINDS, SCOPE_KINDS, Node, SourceFile, Span

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_DEPTH_MESSAGE = "nesting exceeds the supported depth"


def rule_failure_finding(rule: Rule, node: Node, exc: BaseException) -> Finding:
    """Finding that reports a rule crashing on a node, attributed to that rule."""
    return Finding(
        rule_id=rule.id,
        severity=Severity.WARNING,
        message=f"Rule '{rule.id}' failed on {node.kind.value} node: {type(exc).__name__}: {exc}",
        span=node.span,
    )


def parse_error_finding(error: ParseError, length: int) -> Finding:
    return Finding(
        rule_id=PARSE_ERROR_RULE_ID,
        severity=Severity.ERROR,
        message=f"Could not parse file: {error.message}",
        span=error.span.clamp(length),
    )


class _Walker:
    """Walk state for one file: ancestor stack, symbol table and collected findings."""

    def __init__(self, source: SourceFile, registry: RuleRegistry, symbols: SymbolTable) -> None:
        self.source = source
        self.registry = registry
        self.symbols = symbols
        self.view = SymbolView(symbols)
        self.ancestors: list[Node] = []
        self.visited = 0
        # (visit index, span start, rule id, emission seq, finding)
        self.entries: list[tuple[int, int, str, int, Finding]] = []

    def visit(self, node: Node) -> None:
        index = self.visited
        self.visited += 1
        # Function and class names bind in the enclosing scope: declare before
        # the node's own frame is pushed.
        if node.name and node.kind in DECLARATION_KINDS:
            self.symbols.declare(node.name, node)
        self.dispatch(node, index)
        if node.kind in SCOPE_KINDS:
            with self.symbols.scope():
                self.visit_children(node)
        else:
            self.visit_children(node)

    def visit_children(self, node: Node) -> None:
        if not node.children:
            return
        self.ancestors.append(node)
        try:
            for child in node.children:
                self.visit(child)
        finally:
            self.ancestors.pop()

    def dispatch(self, node: Node, index: int) -> None:
        rules = self.registry.rules_for(node.kind)
        if not rules:
            return
        context = RuleContext(self.source, node, tuple(self.ancestors), self.view)
        for rule in rules:
            try:
                findings = list(rule.evaluate(node, context))
                for finding in findings:
                    if not isinstance(finding, Finding):
                        raise TypeError(f"evaluate() returned {type(finding).__name__}, not Finding")
            except RecursionError:
                raise
            except Exception as exc:
                # Rule failures become findings; the walk continues with the next rule.
                logger.debug(
                    "Rule %s failed at %s:%d",
                    rule.id,
                    self.source.path,
                    node.span.start_line,
                    exc_info=True,
                )
                findings = [rule_failure_finding(rule, node, exc)]
            for finding in findings:
                self.add(index, finding)

    def add(self, index: int, finding: Finding) -> None:
        span = finding.span.clamp(self.source.length)
        if span is not finding.span:
            finding = finding.model_copy(update={"span": span})
        self.entries.append((index, span.start, finding.rule_id, len(self.entries), finding))

    def ordered(self) -> tuple[Finding, ...]:
        return tuple(entry[-1] for entry in sorted(self.entries, key=lambda e: e[:4]))


def analyze(
    source: SourceFile,
    registry: RuleRegistry,
    symbols: Optional[SymbolTable] = None,
) -> Diagnostics:
    """
    Run every registered rule over one parsed file.

    Findings are ordered by pre-order visitation of the node they were raised
    on, then span start, then rule id. Freezes the registry.

    Args:
        source: The parsed file.
        registry: Rules to apply.
        symbols: Optional symbol table to walk with; a fresh one indexed from
                 the file is used when omitted.
    """
    registry.freeze()
    if symbols is None:
        symbols = SymbolTable(index_names(source.root))
    walker = _Walker(source, registry, symbols)
    walker.visit(source.root)
    findings = walker.ordered()
    logger.info("Analyzed %s: %d node(s), %d finding(s)", source.path, walker.visited, len(findings))
    return Diagnostics(path=source.path, language=source.language, findings=findings)


def analyze_text(
    text: str,
    language: str,
    registry: RuleRegistry,
    path: Union[Path, str] = "<memory>",
) -> Diagnostics:
    """
    Parse and analyze text; a parse failure yields a single parse-error finding.

    Input nested deeper than the interpreter's recursion limit is reported the
    same way, so one pathological file cannot abort a batch.
    """
    path = Path(path)
    try:
        source = create_source_file(path, text, language=language)
        return analyze(source, registry)
    except ParseError as e:
        error = e
    except RecursionError:
        error = ParseError(Span(start=0, end=0), MAX_DEPTH_MESSAGE)
    logger.warning("Could not parse %s: %s", path, error)
    return Diagnostics(
        path=path,
        language=language,
        findings=(parse_error_finding(error, len(text)),),
    )


def _run_batch(
    items: Sequence[T],
    key: Callable[[T], Path],
    work: Callable[[T], Optional[Diagnostics]],
    jobs: int,
    cancel: Optional[threading.Event],
) -> BatchResult:
    skipped: list[Path] = []
    unreadable: list[Path] = []

    def _run_one(item: T) -> tuple[str, Optional[Diagnostics]]:
        # Cancellation is checked between files; a file that has started runs to completion.
        if cancel is not None and cancel.is_set():
            return "skipped", None
        result = work(item)
        return ("done", result) if result is not None else ("unreadable", None)

    if jobs > 1:
        with ThreadPoolExecutor(max_workers=jobs) as ex:
            outcomes = list(ex.map(_run_one, items))
    else:
        outcomes = [_run_one(item) for item in items]

    diagnostics: list[Diagnostics] = []
    for item, (status, result) in zip(items, outcomes):
        if status == "skipped":
            skipped.append(key(item))
        elif status == "unreadable":
            unreadable.append(key(item))
        elif result is not None:
            diagnostics.append(result)

    logger.info(
        "Batch complete: %d analyzed, %d skipped, %d unreadable",
        len(diagnostics),
        len(skipped),
        len(unreadable),
    )
    return BatchResult(
        diagnostics=tuple(diagnostics),
        skipped=tuple(skipped),
        unreadable=tuple(unreadable),
    )


def analyze_paths(
    paths: Sequence[Path],
    registry: RuleRegistry,
    jobs: int = 1,
    cancel: Optional[threading.Event] = None,
) -> BatchResult:
    """
    Analyze files, optionally across a thread pool.

    Diagnostics come back in input order regardless of completion order.
    Unreadable files are logged and listed in BatchResult.unreadable; files
    not started before `cancel` was set are listed in BatchResult.skipped.

    Raises:
        UnsupportedLanguageError: a path has no registered grammar. Checked
            for every path before any file is analyzed.
    """
    languages: dict[Path, str] = {}
    for path in paths:
        language = language_for_path(path)
        if language is None:
            raise UnsupportedLanguageError(f"No grammar registered for {path}")
        languages[path] = language
    registry.freeze()

    def _work(path: Path) -> Optional[Diagnostics]:
        text = read_text(path)
        if text is None:
            return None
        return analyze_text(text, languages[path], registry, path=path)

    return _run_batch(list(paths), lambda p: p, _work, jobs, cancel)


def analyze_sources(
    sources: Sequence[tuple[Union[Path, str], str]],
    registry: RuleRegistry,
    language: Optional[str] = None,
    jobs: int = 1,
    cancel: Optional[threading.Event] = None,
) -> BatchResult:
    """
    Analyze in-memory (path, text) buffers.

    The language is taken from each path's suffix unless given explicitly.

    Raises:
        UnsupportedLanguageError: the explicit language, or a path's suffix,
            has no registered grammar. Checked before any buffer is analyzed.
    """
    if language is not None:
        get_language(language)
    items: list[tuple[Path, str, str]] = []
    for path, text in sources:
        path = Path(path)
        lang = language or language_for_path(path)
        if lang is None:
            raise UnsupportedLanguageError(f"No grammar registered for {path}")
        items.append((path, text, lang))
    registry.freeze()

    def _work(item: tuple[Path, str, str]) -> Optional[Diagnostics]:
        path, text, lang = item
        return analyze_text(text, lang, registry, path=path)

    return _run_batch(items, lambda item: item[0], _work, jobs, cancel)
