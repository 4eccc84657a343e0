# Syntax model adapter: turn tree-sitter trees into the generic Node model.
# Each supported grammar maps its node types onto NodeKind; node types with no
# mapping become OTHER (interior nodes) or are dropped (anonymous tokens and
# unmapped leaves such as type names).

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterator, Optional

import tree_sitter
from tree_sitter import Node as TSNode

from cleansweep.errors import ParseError
from cleansweep.parser import C, JAVASCRIPT, create_parser, parse_bytes
from cleansweep.syntax.nodes import Node, NodeKind, SourceFile, Span

logger = logging.getLogger(__name__)

# Wrapper nodes whose children are lifted into the parent.
FLATTEN_TYPES = frozenset(
    {
        "parenthesized_expression",
        "expression_statement",
        "else_clause",
        "argument_list",
        "arguments",
        "export_statement",
    }
)

LITERAL_TYPES = frozenset(
    {
        # C
        "number_literal",
        "string_literal",
        "char_literal",
        "concatenated_string",
        "true",
        "false",
        "null",
        # JavaScript
        "number",
        "string",
        "template_string",
        "regex",
        "undefined",
    }
)

JS_FUNCTION_TYPES = frozenset(
    {
        "function_declaration",
        "generator_function_declaration",
        "function",
        "function_expression",
        "generator_function",
        "arrow_function",
        "method_definition",
    }
)

JS_COMPARISON_OPERATORS = frozenset(
    {"==", "!=", "===", "!==", "<", ">", "<=", ">=", "instanceof", "in", "&&", "||"}
)

# Loop statements stay OTHER nodes but keep their keyword so rules can treat
# them as scopes.
LOOP_KEYWORDS: dict[str, str] = {
    "for_statement": "for",
    "for_in_statement": "for",
    "do_statement": "do",
}

MAX_ERROR_SNIPPET = 40


class _OffsetMap:
    """Translate tree-sitter byte offsets into character offsets and columns."""

    def __init__(self, text: str, source: bytes) -> None:
        self._identity = len(text) == len(source)
        self._chars: list[int] = []
        if not self._identity:
            for index, ch in enumerate(text):
                self._chars.extend([index] * len(ch.encode("utf-8")))
            self._chars.append(len(text))
        self._line_starts = [0]
        for index, ch in enumerate(text):
            if ch == "\n":
                self._line_starts.append(index + 1)
        self._length = len(text)

    def char_offset(self, byte_offset: int) -> int:
        if self._identity:
            return min(byte_offset, self._length)
        if byte_offset >= len(self._chars):
            return self._length
        return self._chars[byte_offset]

    def column(self, row: int, char_offset: int) -> int:
        row = min(row, len(self._line_starts) - 1)
        return max(char_offset - self._line_starts[row], 0) + 1

    def span(self, node: TSNode) -> Span:
        start = self.char_offset(node.start_byte)
        end = self.char_offset(node.end_byte)
        start_row = node.start_point[0]
        end_row = node.end_point[0]
        return Span(
            start=start,
            end=end,
            start_line=start_row + 1,
            start_column=self.column(start_row, start),
            end_line=end_row + 1,
            end_column=self.column(end_row, end),
        )


def _iter_ts(node: TSNode) -> Iterator[TSNode]:
    """Yield node and every descendant in document order (DFS), without recursion."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def find_first_error(root: TSNode) -> Optional[TSNode]:
    """Return the first ERROR or MISSING node in the tree, or None."""
    for node in _iter_ts(root):
        if node.type == "ERROR" or node.is_missing:
            return node
    return None


class _Converter:
    """Builds generic Nodes for one tree; language handlers are looked up by node type."""

    def __init__(self, text: str, source: bytes, language: str) -> None:
        self.text = text
        self.source = source
        self.language = language
        self.offsets = _OffsetMap(text, source)
        common: dict[str, Callable[[TSNode], list[Node]]] = {
            "compound_statement": self._block,
            "statement_block": self._block,
            "if_statement": self._conditional,
            "while_statement": self._conditional,
            "unary_expression": self._unary,
            "identifier": self._identifier,
            "shorthand_property_identifier": self._identifier,
            "call_expression": self._call,
            "new_expression": self._call,
            "assignment_expression": self._assignment,
            "augmented_assignment_expression": self._assignment,
            "update_expression": self._assignment,
            "comment": self._comment,
        }
        if language == C:
            specific = {
                "translation_unit": self._module,
                "function_definition": self._c_function,
                "declaration": self._c_declaration,
                "type_definition": self._c_type_definition,
                "struct_specifier": self._c_struct,
                "union_specifier": self._c_struct,
                "field_declaration": self._c_field,
                "parameter_declaration": self._c_parameter,
                "field_expression": self._member,
            }
        elif language == JAVASCRIPT:
            specific = {
                "program": self._module,
                "class_declaration": self._js_class,
                "class": self._js_class,
                "field_definition": self._js_field,
                "public_field_definition": self._js_field,
                "lexical_declaration": self._js_variables,
                "variable_declaration": self._js_variables,
                "member_expression": self._member,
            }
            for ts_type in JS_FUNCTION_TYPES:
                specific[ts_type] = self._js_function
        else:
            specific = {}
        self.handlers = {**common, **specific}

    # --- helpers ---------------------------------------------------------------

    def node_text(self, node: TSNode) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    def make(self, kind: NodeKind, ts_node: TSNode, **payload) -> Node:
        return Node(kind=kind, span=self.offsets.span(ts_node), **payload)

    def convert(self, node: Optional[TSNode]) -> list[Node]:
        """Convert one tree-sitter node into zero or more generic nodes."""
        # Anonymous tokens ("class", "function", punctuation) never map to nodes.
        if node is None or not node.is_named:
            return []
        handler = self.handlers.get(node.type)
        if handler is not None:
            return handler(node)
        if node.type in LITERAL_TYPES:
            return [self.make(NodeKind.LITERAL, node, text=self.node_text(node))]
        if node.type in FLATTEN_TYPES:
            return self.convert_children(node)
        if node.child_count == 0:
            return []
        return [
            self.make(
                NodeKind.OTHER,
                node,
                children=tuple(self.convert_children(node)),
                keyword=LOOP_KEYWORDS.get(node.type),
            )
        ]

    def convert_children(self, node: TSNode, skip: tuple[Optional[TSNode], ...] = ()) -> list[Node]:
        out: list[Node] = []
        for child in node.children:
            if any(s is not None and child == s for s in skip):
                continue
            out.extend(self.convert(child))
        return out

    def root_name(self, node: Optional[TSNode]) -> Optional[str]:
        """Name of the variable ultimately written through an lvalue (p, *p, p->x, p[i])."""
        while node is not None:
            if node.type in ("identifier", "shorthand_property_identifier"):
                return self.node_text(node)
            if node.type in ("pointer_expression", "field_expression"):
                node = node.child_by_field_name("argument")
            elif node.type == "member_expression":
                node = node.child_by_field_name("object")
            elif node.type == "subscript_expression":
                # C names the indexed operand "argument", JavaScript "object"
                node = node.child_by_field_name("argument") or node.child_by_field_name("object")
            elif node.type == "parenthesized_expression":
                node = node.named_children[0] if node.named_children else None
            else:
                return None
        return None

    # --- shared handlers -------------------------------------------------------

    def _module(self, node: TSNode) -> list[Node]:
        return [self.make(NodeKind.MODULE, node, children=tuple(self.convert_children(node)))]

    def _block(self, node: TSNode) -> list[Node]:
        return [self.make(NodeKind.BLOCK, node, children=tuple(self.convert_children(node)))]

    def _comment(self, node: TSNode) -> list[Node]:
        return [self.make(NodeKind.COMMENT, node, text=self.node_text(node))]

    def _identifier(self, node: TSNode) -> list[Node]:
        text = self.node_text(node)
        return [self.make(NodeKind.IDENTIFIER, node, name=text, text=text)]

    def _member(self, node: TSNode) -> list[Node]:
        # C field_expression: argument/field; JS member_expression: object/property
        target = node.child_by_field_name("argument") or node.child_by_field_name("object")
        prop = node.child_by_field_name("field") or node.child_by_field_name("property")
        name = self.node_text(prop) if prop is not None else None
        return [
            self.make(
                NodeKind.IDENTIFIER,
                node,
                name=name,
                text=self.node_text(node),
                children=tuple(self.convert(target)),
            )
        ]

    def _conditional(self, node: TSNode) -> list[Node]:
        condition = node.child_by_field_name("condition")
        guard = condition
        while guard is not None and guard.type in ("parenthesized_expression", "condition_clause"):
            inner = [c for c in guard.named_children if c.type != "comment"]
            guard = inner[0] if inner else None
        negated = guard is not None and self._is_negation(guard)
        children = self.convert(guard) + self.convert_children(node, skip=(condition,))
        keyword = "while" if node.type == "while_statement" else "if"
        return [
            self.make(
                NodeKind.CONDITIONAL,
                node,
                keyword=keyword,
                negated=negated,
                children=tuple(children),
            )
        ]

    def _is_negation(self, node: TSNode) -> bool:
        if node.type != "unary_expression":
            return False
        operator = node.child_by_field_name("operator")
        return operator is not None and operator.type == "!"

    def _unary(self, node: TSNode) -> list[Node]:
        argument = node.child_by_field_name("argument")
        if self._is_negation(node):
            return [self.make(NodeKind.NEGATION, node, children=tuple(self.convert(argument)))]
        return [self.make(NodeKind.OTHER, node, children=tuple(self.convert(argument)))]

    def _call(self, node: TSNode) -> list[Node]:
        callee = node.child_by_field_name("function") or node.child_by_field_name("constructor")
        arguments = node.child_by_field_name("arguments")
        children: list[Node] = []
        name: Optional[str] = None
        if callee is not None:
            if callee.type == "identifier":
                name = self.node_text(callee)
            elif callee.type in ("field_expression", "member_expression"):
                prop = callee.child_by_field_name("field") or callee.child_by_field_name("property")
                name = self.node_text(prop) if prop is not None else None
                target = callee.child_by_field_name("argument") or callee.child_by_field_name("object")
                children.extend(self.convert(target))
            else:
                children.extend(self.convert(callee))
        children.extend(self.convert(arguments))
        return [
            self.make(
                NodeKind.CALL,
                node,
                name=name,
                text=self.node_text(callee) if callee is not None else None,
                children=tuple(children),
            )
        ]

    def _assignment(self, node: TSNode) -> list[Node]:
        target = node.child_by_field_name("left") or node.child_by_field_name("argument")
        value = node.child_by_field_name("right")
        return [
            self.make(
                NodeKind.ASSIGNMENT,
                node,
                name=self.root_name(target),
                text=self.node_text(target) if target is not None else None,
                children=tuple(self.convert(value)),
            )
        ]

    # --- C ---------------------------------------------------------------------

    def _c_declarator_name(self, node: Optional[TSNode]) -> Optional[str]:
        while node is not None:
            if node.type in ("identifier", "field_identifier", "type_identifier"):
                return self.node_text(node)
            inner = node.child_by_field_name("declarator")
            if inner is None and node.named_children:
                inner = node.named_children[0]
            node = inner
        return None

    def _c_pointer_depth(self, node: Optional[TSNode]) -> int:
        depth = 0
        while node is not None and node.type in ("pointer_declarator", "abstract_pointer_declarator"):
            depth += 1
            node = node.child_by_field_name("declarator")
        return depth

    def _c_function_declarator(self, node: Optional[TSNode]) -> Optional[TSNode]:
        while node is not None:
            if node.type == "function_declarator":
                return node
            if node.type not in ("pointer_declarator", "parenthesized_declarator", "attributed_declarator"):
                return None
            inner = node.child_by_field_name("declarator")
            if inner is None and node.named_children:
                inner = node.named_children[0]
            node = inner
        return None

    def _c_type_text(self, node: TSNode, declarator: Optional[TSNode]) -> Optional[str]:
        type_node = node.child_by_field_name("type")
        if type_node is None:
            return None
        return self.node_text(type_node) + "*" * self._c_pointer_depth(declarator)

    def _c_nested_types(self, node: TSNode) -> list[Node]:
        type_node = node.child_by_field_name("type")
        if type_node is not None and type_node.type in ("struct_specifier", "union_specifier"):
            return self.convert(type_node)
        return []

    def _c_parameters(self, func_declarator: TSNode) -> list[Node]:
        params = func_declarator.child_by_field_name("parameters")
        if params is None:
            return []
        return self.convert_children(params)

    def _c_function(self, node: TSNode) -> list[Node]:
        declarator = node.child_by_field_name("declarator")
        body = node.child_by_field_name("body")
        func = self._c_function_declarator(declarator)
        name = self._c_declarator_name(func.child_by_field_name("declarator")) if func else None
        children = self._c_parameters(func) if func is not None else []
        children += self.convert_children(node, skip=(node.child_by_field_name("type"), declarator, body))
        children += self.convert(body)
        return [
            self.make(
                NodeKind.FUNCTION_DECL,
                node,
                name=name,
                declared_type=self._c_type_text(node, declarator),
                children=tuple(children),
            )
        ]

    def _c_parameter(self, node: TSNode) -> list[Node]:
        declarator = node.child_by_field_name("declarator")
        declared_type = self._c_type_text(node, declarator)
        if declarator is None and declared_type == "void":
            return []
        return [
            self.make(
                NodeKind.PARAMETER,
                node,
                name=self._c_declarator_name(declarator),
                declared_type=declared_type,
            )
        ]

    def _c_declaration(self, node: TSNode) -> list[Node]:
        out = self._c_nested_types(node)
        declarators = node.children_by_field_name("declarator")
        single = len(declarators) == 1
        for declarator in declarators:
            inner, value = declarator, None
            if declarator.type == "init_declarator":
                inner = declarator.child_by_field_name("declarator")
                value = declarator.child_by_field_name("value")
            where = node if single else declarator
            func = self._c_function_declarator(inner)
            if func is not None:
                out.append(
                    self.make(
                        NodeKind.FUNCTION_DECL,
                        where,
                        name=self._c_declarator_name(func.child_by_field_name("declarator")),
                        declared_type=self._c_type_text(node, inner),
                        children=tuple(self._c_parameters(func)),
                    )
                )
                continue
            out.append(
                self.make(
                    NodeKind.VARIABLE_DECL,
                    where,
                    name=self._c_declarator_name(inner),
                    declared_type=self._c_type_text(node, inner),
                    children=tuple(self.convert(value)),
                )
            )
        return out

    def _c_type_definition(self, node: TSNode) -> list[Node]:
        # typedef struct { ... } Name;  names the anonymous struct after its alias
        nested = self._c_nested_types(node)
        if len(nested) == 1 and nested[0].kind == NodeKind.CLASS_DECL and nested[0].name is None:
            alias = self._c_declarator_name(node.child_by_field_name("declarator"))
            nested = [nested[0].model_copy(update={"name": alias})]
        return nested

    def _c_struct(self, node: TSNode) -> list[Node]:
        body = node.child_by_field_name("body")
        if body is None:
            return []
        name_node = node.child_by_field_name("name")
        keyword = "union" if node.type == "union_specifier" else "struct"
        return [
            self.make(
                NodeKind.CLASS_DECL,
                node,
                name=self.node_text(name_node) if name_node is not None else None,
                keyword=keyword,
                children=tuple(self.convert_children(body)),
            )
        ]

    def _c_field(self, node: TSNode) -> list[Node]:
        out = self._c_nested_types(node)
        declarators = node.children_by_field_name("declarator")
        single = len(declarators) == 1
        for declarator in declarators:
            out.append(
                self.make(
                    NodeKind.FIELD_DECL,
                    node if single else declarator,
                    name=self._c_declarator_name(declarator),
                    declared_type=self._c_type_text(node, declarator),
                )
            )
        return out

    # --- JavaScript ------------------------------------------------------------

    def _js_infer_type(self, value: Optional[TSNode]) -> Optional[str]:
        if value is None:
            return None
        if value.type in ("true", "false") or self._is_negation(value):
            return "boolean"
        if value.type == "binary_expression":
            operator = value.child_by_field_name("operator")
            if operator is not None and operator.type in JS_COMPARISON_OPERATORS:
                return "boolean"
        if value.type == "number":
            return "number"
        if value.type in ("string", "template_string"):
            return "string"
        return None

    def _js_parameter(self, node: TSNode) -> list[Node]:
        if node.type == "comment":
            return self._comment(node)
        if node.type == "identifier":
            return [self.make(NodeKind.PARAMETER, node, name=self.node_text(node))]
        if node.type == "assignment_pattern":
            left = node.child_by_field_name("left")
            right = node.child_by_field_name("right")
            name = self.node_text(left) if left is not None and left.type == "identifier" else None
            return [
                self.make(
                    NodeKind.PARAMETER,
                    node,
                    name=name,
                    declared_type=self._js_infer_type(right),
                    children=tuple(self.convert(right)),
                )
            ]
        if node.type == "rest_pattern":
            inner = [c for c in node.named_children if c.type == "identifier"]
            name = self.node_text(inner[0]) if inner else None
            return [self.make(NodeKind.PARAMETER, node, name=name, qualifiers=("rest",))]
        if node.is_named:
            return [self.make(NodeKind.PARAMETER, node)]
        return []

    def _js_function(self, node: TSNode) -> list[Node]:
        name_node = node.child_by_field_name("name")
        params = node.child_by_field_name("parameters")
        single = node.child_by_field_name("parameter")
        body = node.child_by_field_name("body")
        children: list[Node] = []
        if params is not None:
            for child in params.children:
                children.extend(self._js_parameter(child))
        elif single is not None:
            children.extend(self._js_parameter(single))
        children.extend(self.convert(body))
        qualifiers: list[str] = []
        for child in node.children:
            if not child.is_named and child.type in ("static", "async", "get", "set"):
                qualifiers.append(child.type)
        if name_node is not None and name_node.type == "private_property_identifier":
            qualifiers.append("private")
        keyword = {"method_definition": "method", "arrow_function": "arrow"}.get(node.type, "function")
        return [
            self.make(
                NodeKind.FUNCTION_DECL,
                node,
                name=self.node_text(name_node) if name_node is not None else None,
                keyword=keyword,
                qualifiers=tuple(qualifiers),
                children=tuple(children),
            )
        ]

    def _js_class(self, node: TSNode) -> list[Node]:
        name_node = node.child_by_field_name("name")
        body = node.child_by_field_name("body")
        children = self.convert_children(body) if body is not None else []
        return [
            self.make(
                NodeKind.CLASS_DECL,
                node,
                name=self.node_text(name_node) if name_node is not None else None,
                keyword="class",
                children=tuple(children),
            )
        ]

    def _js_field(self, node: TSNode) -> list[Node]:
        prop = node.child_by_field_name("property") or node.child_by_field_name("name")
        value = node.child_by_field_name("value")
        qualifiers: list[str] = []
        if any(not c.is_named and c.type == "static" for c in node.children):
            qualifiers.append("static")
        if prop is not None and prop.type == "private_property_identifier":
            qualifiers.append("private")
        return [
            self.make(
                NodeKind.FIELD_DECL,
                node,
                name=self.node_text(prop) if prop is not None else None,
                declared_type=self._js_infer_type(value),
                qualifiers=tuple(qualifiers),
                children=tuple(self.convert(value)),
            )
        ]

    def _js_variables(self, node: TSNode) -> list[Node]:
        keyword = node.children[0].type if node.child_count else None
        declarators = [c for c in node.named_children if c.type == "variable_declarator"]
        single = len(declarators) == 1
        out: list[Node] = []
        for declarator in declarators:
            name_node = declarator.child_by_field_name("name")
            value = declarator.child_by_field_name("value")
            name = self.node_text(name_node) if name_node is not None and name_node.type == "identifier" else None
            out.append(
                self.make(
                    NodeKind.VARIABLE_DECL,
                    node if single else declarator,
                    name=name,
                    keyword=keyword,
                    declared_type=self._js_infer_type(value),
                    children=tuple(self.convert(value)),
                )
            )
        return out


def build_ast(
    text: str,
    source: bytes,
    tree: tree_sitter.Tree,
    language: str,
) -> Node:
    """Convert a parsed tree into a generic AST; raises ParseError on syntax errors."""
    converter = _Converter(text, source, language)
    error = find_first_error(tree.root_node)
    if error is not None:
        span = converter.offsets.span(error)
        if error.is_missing:
            message = f"missing '{error.type}'"
        else:
            snippet = converter.node_text(error).strip().splitlines()
            first = snippet[0][:MAX_ERROR_SNIPPET] if snippet else ""
            message = f"unexpected syntax near '{first}'" if first else "unexpected syntax"
        raise ParseError(span, message)
    roots = converter.convert(tree.root_node)
    return roots[0]


def parse(
    text: str,
    language: str,
    path: Path | str = "<memory>",
    parser: Optional[tree_sitter.Parser] = None,
) -> SourceFile:
    """
    Parse source text into a SourceFile holding the generic AST.

    Raises:
        ParseError: the text does not parse cleanly in the given language.
        UnsupportedLanguageError: no grammar is registered for the language.
    """
    if parser is None:
        parser = create_parser(language)
    source = text.encode("utf-8")
    tree = parse_bytes(source, language=language, parser=parser)
    root = build_ast(text, source, tree, language)
    logger.debug("Built AST for %s (%s, %d chars)", path, language, len(text))
    return SourceFile(path=Path(path), language=language, text=text, root=root)


CODE_LIKE_TYPES = frozenset(
    {
        "call_expression",
        "assignment_expression",
        "augmented_assignment_expression",
        "update_expression",
        "declaration",
        "lexical_declaration",
        "variable_declaration",
        "return_statement",
        "if_statement",
        "for_statement",
        "while_statement",
        "function_definition",
        "function_declaration",
    }
)

# C only accepts statements inside a function body.
_CODE_WRAPPERS: dict[str, tuple[str, ...]] = {
    C: ("{}", "void __cleansweep_snippet(void) {{\n{}\n}}"),
    JAVASCRIPT: ("{}",),
}


def looks_like_code(text: str, language: str) -> bool:
    """
    True if text parses cleanly as code in the language and contains at least
    one statement-like construct (call, assignment, declaration, control flow).
    """
    parser = create_parser(language)
    for wrapper in _CODE_WRAPPERS.get(language, ("{}",)):
        tree = parse_bytes(wrapper.format(text).encode("utf-8"), language=language, parser=parser)
        if tree.root_node.has_error:
            continue
        if any(node.type in CODE_LIKE_TYPES for node in _iter_ts(tree.root_node)):
            return True
    return False
