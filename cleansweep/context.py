# Per-file analysis context: symbol table with scope frames, the read-only
# RuleContext handed to rules, and reading/parsing files into SourceFiles
# with logging of node/function counts.

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import tree_sitter

from cleansweep.parser import language_for_path
from cleansweep.syntax.adapter import parse
from cleansweep.syntax.nodes import DECLARATION_KINDS, Node, NodeKind, SourceFile

logger = logging.getLogger(__name__)

# Kinds whose `name` is a use of some symbol rather than a declaration.
REFERENCE_KINDS = frozenset({NodeKind.IDENTIFIER, NodeKind.CALL, NodeKind.ASSIGNMENT})


def count_tree_stats(root: Node) -> tuple[int, int]:
    """
    Return (total node count, function declaration count) for the tree.

    Useful for logging how much was parsed (nodes and functions).
    """
    nodes = 0
    functions = 0
    for node in root.walk():
        nodes += 1
        if node.kind == NodeKind.FUNCTION_DECL:
            functions += 1
    return nodes, functions


def index_names(root: Node) -> frozenset[str]:
    """Every name declared or referenced anywhere in the tree."""
    names: set[str] = set()
    for node in root.walk():
        if node.name and (node.kind in DECLARATION_KINDS or node.kind in REFERENCE_KINDS):
            names.add(node.name)
    return frozenset(names)


class SymbolTable:
    """
    Scoped name -> declaration lookup maintained by the engine during a walk.

    A file-level frame always exists; scope() pushes a frame for the duration
    of a with-block and pops it on every exit path. `known` is the file-wide
    index of declared and referenced names, used for checks that must see
    names declared later in the file.
    """

    def __init__(self, known: frozenset[str] = frozenset()) -> None:
        self._file_frame: dict[str, Node] = {}
        self._frames: list[dict[str, Node]] = []
        self.known = known

    @property
    def depth(self) -> int:
        """Number of pushed scope frames (0 at file level)."""
        return len(self._frames)

    def declare(self, name: str, node: Node) -> None:
        frame = self._frames[-1] if self._frames else self._file_frame
        frame.setdefault(name, node)

    def lookup(self, name: str) -> Optional[Node]:
        """Return the innermost visible declaration of name, or None."""
        for frame in reversed(self._frames):
            if name in frame:
                return frame[name]
        return self._file_frame.get(name)

    def is_known(self, name: str) -> bool:
        return name in self.known or self.lookup(name) is not None

    @contextmanager
    def scope(self) -> Iterator[None]:
        self._frames.append({})
        try:
            yield
        finally:
            self._frames.pop()


class SymbolView:
    """Read-only facade over a SymbolTable for rules."""

    __slots__ = ("_table",)

    def __init__(self, table: SymbolTable) -> None:
        self._table = table

    @property
    def depth(self) -> int:
        return self._table.depth

    def lookup(self, name: str) -> Optional[Node]:
        return self._table.lookup(name)

    def is_known(self, name: str) -> bool:
        return self._table.is_known(name)


class RuleContext:
    """
    What a rule sees for one node: the file, the node, its ancestors and symbols.

    Rules must treat every attribute as read-only. ancestors runs from the
    root to the node's parent (nearest last).
    """

    __slots__ = ("source", "node", "ancestors", "symbols")

    def __init__(
        self,
        source: SourceFile,
        node: Node,
        ancestors: tuple[Node, ...],
        symbols: SymbolView,
    ) -> None:
        self.source = source
        self.node = node
        self.ancestors = ancestors
        self.symbols = symbols

    @property
    def language(self) -> str:
        return self.source.language

    @property
    def parent(self) -> Optional[Node]:
        return self.ancestors[-1] if self.ancestors else None

    def enclosing(self, kind: NodeKind) -> Optional[Node]:
        """Return the nearest ancestor of the given kind, or None."""
        for ancestor in reversed(self.ancestors):
            if ancestor.kind == kind:
                return ancestor
        return None


def get_source_span(source: SourceFile, node: Node) -> str:
    """Return the substring of the source text covered by node."""
    return source.text[node.span.start : node.span.end]


def read_text(path: Path) -> Optional[str]:
    """
    Read a source file as text.

    Decodes with errors="replace" so bad UTF-8 does not crash. Returns None
    (and logs) when the file cannot be read.
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        logger.error("Failed to read file %s: %s", path, e)
        return None
    return data.decode("utf-8", errors="replace")


def create_source_file(
    path: Path,
    text: str,
    language: Optional[str] = None,
    parser: Optional[tree_sitter.Parser] = None,
) -> SourceFile:
    """
    Parse text read from path into a SourceFile and log node/function counts.

    The language defaults to the one registered for the path's suffix.

    Raises:
        ParseError: the text does not parse cleanly.
        UnsupportedLanguageError: no grammar matches the path or language.
    """
    if language is None:
        language = language_for_path(path) or ""
    source = parse(text, language, path=path, parser=parser)
    node_count, func_count = count_tree_stats(source.root)
    logger.info("Parsed %s: %d nodes, %d function(s)", path, node_count, func_count)
    return source
