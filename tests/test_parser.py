"""Tests for the tree-sitter parser wrapper."""

import logging
from pathlib import Path

import pytest

from cleansweep.parser import (
    C,
    JAVASCRIPT,
    UnsupportedLanguageError,
    create_parser,
    get_language,
    language_for_path,
    parse_bytes,
    supported_languages,
)


def test_supported_languages():
    """Both grammars are registered."""
    assert supported_languages() == (C, JAVASCRIPT)


def test_get_language_returns_language():
    """get_language() returns a tree-sitter Language object."""
    assert get_language(C)
    assert get_language(JAVASCRIPT)


def test_get_language_unknown():
    """Unknown language names raise UnsupportedLanguageError."""
    with pytest.raises(UnsupportedLanguageError):
        get_language("cobol")


def test_create_parser_returns_parser():
    """create_parser() returns a configured Parser."""
    parser = create_parser(JAVASCRIPT)
    assert parser is not None
    assert parser.language is not None


@pytest.mark.parametrize(
    "name, expected",
    [
        ("main.c", C),
        ("api.H", C),
        ("app.js", JAVASCRIPT),
        ("lib.mjs", JAVASCRIPT),
        ("view.jsx", JAVASCRIPT),
        ("README.md", None),
        ("main.cpp", None),
    ],
)
def test_language_for_path(name, expected):
    assert language_for_path(Path(name)) == expected


def test_parse_bytes_c_success(caplog):
    """Parsing valid C source succeeds and logs."""
    with caplog.at_level(logging.DEBUG):
        tree = parse_bytes(b"int main(void) { return 0; }", language=C)
    assert not tree.root_node.has_error
    assert tree.root_node.type == "translation_unit"
    assert "Parse succeeded" in caplog.text


def test_parse_bytes_javascript_success():
    tree = parse_bytes(b"function f(a) { return a; }", language=JAVASCRIPT)
    assert not tree.root_node.has_error
    assert tree.root_node.type == "program"


def test_parse_bytes_invalid_logs_errors(caplog):
    """Parsing invalid C still returns a tree and logs the failure."""
    with caplog.at_level(logging.DEBUG):
        tree = parse_bytes(b"int main( { broken", language=C)
    assert tree.root_node.has_error
    assert "with errors" in caplog.text
