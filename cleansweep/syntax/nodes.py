# Generic syntax model: language-neutral AST nodes produced by the adapter.
# Nodes own their children exclusively and carry no parent pointers; the
# engine tracks ancestors on its own stack while walking.

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Iterator, Optional

from pydantic import BaseModel, Field, model_validator


class NodeKind(str, Enum):
    """Kinds of generic syntax nodes that rules can subscribe to."""

    MODULE = "module"
    FUNCTION_DECL = "function_decl"
    CLASS_DECL = "class_decl"
    PARAMETER = "parameter"
    VARIABLE_DECL = "variable_decl"
    FIELD_DECL = "field_decl"
    BLOCK = "block"
    CONDITIONAL = "conditional"
    NEGATION = "negation"
    ASSIGNMENT = "assignment"
    CALL = "call"
    IDENTIFIER = "identifier"
    LITERAL = "literal"
    COMMENT = "comment"
    OTHER = "other"


# Kinds whose `name` introduces a binding in the symbol table.
DECLARATION_KINDS = frozenset(
    {
        NodeKind.FUNCTION_DECL,
        NodeKind.CLASS_DECL,
        NodeKind.PARAMETER,
        NodeKind.VARIABLE_DECL,
        NodeKind.FIELD_DECL,
    }
)

# Kinds that open a new lexical scope frame when entered.
SCOPE_KINDS = frozenset({NodeKind.FUNCTION_DECL, NodeKind.CLASS_DECL, NodeKind.BLOCK})

BOOLEAN_TYPES = frozenset({"bool", "_Bool", "boolean", "Boolean"})


class Span(BaseModel):
    """
    Location of a node in its source text.

    start/end are 0-based character offsets (end exclusive); line and column
    values are 1-based, matching what editors display.
    """

    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)
    start_line: int = Field(1, ge=1)
    start_column: int = Field(1, ge=1)
    end_line: int = Field(1, ge=1)
    end_column: int = Field(1, ge=1)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_order(self) -> "Span":
        if self.end < self.start:
            raise ValueError(f"span end {self.end} precedes start {self.start}")
        return self

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1

    def clamp(self, length: int) -> "Span":
        """Return this span clipped to [0, length]."""
        start = min(self.start, length)
        end = min(max(self.end, start), length)
        if start == self.start and end == self.end:
            return self
        return self.model_copy(update={"start": start, "end": end})


class Node(BaseModel):
    """
    One element of the generic AST.

    Payload fields are optional and kind-specific:
      name          declared name (declarations), referenced name (identifier,
                    call, assignment target root)
      text          source text for leaves (literal, comment, identifier)
      declared_type type text for declarations, when the language has one
      keyword       "if"/"while" for conditionals, "struct"/"class" for classes,
                    "const"/"let"/"var" for JS variables, "for"/"do" on
                    loop statements (kind OTHER)
      qualifiers    access/storage qualifiers such as "static" or "private"
      negated       on conditionals: the guard is a boolean negation
    """

    kind: NodeKind
    span: Span
    children: tuple["Node", ...] = ()
    name: Optional[str] = None
    text: Optional[str] = None
    declared_type: Optional[str] = None
    keyword: Optional[str] = None
    qualifiers: tuple[str, ...] = ()
    negated: bool = False

    model_config = {"frozen": True}

    @property
    def is_boolean(self) -> bool:
        return self.declared_type is not None and self.declared_type in BOOLEAN_TYPES

    def children_of_kind(self, kind: NodeKind) -> list["Node"]:
        return [c for c in self.children if c.kind == kind]

    def walk(self) -> Iterator["Node"]:
        """Yield this node and every descendant in pre-order."""
        stack: list[Node] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


class SourceFile(BaseModel):
    """A parsed input: path, language, raw text and the root of its AST."""

    path: Path
    language: str
    text: str
    root: Node

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    @property
    def length(self) -> int:
        return len(self.text)
