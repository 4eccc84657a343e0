# Tree-sitter setup and parsing: map file types to grammars and parse source into trees.

import logging
from pathlib import Path
from typing import Optional

import tree_sitter
from tree_sitter import Language
from tree_sitter_c import language as _c_language_capsule
from tree_sitter_javascript import language as _js_language_capsule

logger = logging.getLogger(__name__)

C = "c"
JAVASCRIPT = "javascript"

# Grammars wrap the tree-sitter capsules for use with tree_sitter.Parser
_LANGUAGES: dict[str, Language] = {
    C: Language(_c_language_capsule()),
    JAVASCRIPT: Language(_js_language_capsule()),
}

SUFFIX_LANGUAGES: dict[str, str] = {
    ".c": C,
    ".h": C,
    ".js": JAVASCRIPT,
    ".mjs": JAVASCRIPT,
    ".cjs": JAVASCRIPT,
    ".jsx": JAVASCRIPT,
}


class UnsupportedLanguageError(ValueError):
    """Raised when no grammar is registered for a language or file suffix."""


def supported_languages() -> tuple[str, ...]:
    return tuple(sorted(_LANGUAGES))


def get_language(name: str) -> Language:
    """Return the tree-sitter Language object for a language name."""
    try:
        return _LANGUAGES[name]
    except KeyError:
        raise UnsupportedLanguageError(f"Unsupported language: {name}") from None


def language_for_path(path: Path) -> Optional[str]:
    """Return the language name for a file based on its suffix, or None."""
    return SUFFIX_LANGUAGES.get(path.suffix.lower())


def create_parser(language: str = C) -> tree_sitter.Parser:
    """Create and return a tree-sitter Parser configured for the language."""
    return tree_sitter.Parser(get_language(language))


def parse_bytes(
    source: bytes,
    language: str = C,
    parser: Optional[tree_sitter.Parser] = None,
) -> tree_sitter.Tree:
    """
    Parse source bytes into a tree-sitter tree.

    Args:
        source: UTF-8 encoded source code.
        language: Language name (see supported_languages()).
        parser: Optional parser instance; if None, a new one is created.
                Parsers are not thread-safe, so share one only within a thread.

    Returns:
        The parse tree. Check tree.root_node.has_error for syntax errors.
    """
    if parser is None:
        parser = create_parser(language)
    tree = parser.parse(source)
    if tree.root_node.has_error:
        logger.debug("Parse completed with errors: root=%s", tree.root_node.type)
    else:
        logger.debug("Parse succeeded: root=%s", tree.root_node.type)
    return tree
