# Comment quality: commented-out code and comments that mention names the file no longer has.

from __future__ import annotations

import re

from pydantic import StrictBool, StrictStr

from cleansweep.context import RuleContext
from cleansweep.findings.models import Finding
from cleansweep.rules.base import Rule, RuleOptions
from cleansweep.syntax.adapter import looks_like_code
from cleansweep.syntax.nodes import Node, NodeKind

# Text without any of these is prose, whatever the parser says.
_CODE_PUNCTUATION = re.compile(r"[;{}=]|\w\s*\([^)]*\)")

# `name`, `name()` and name() are treated as references to code symbols.
_BACKTICK_REF = re.compile(r"`([A-Za-z_]\w*)(?:\(\))?`")
_CALL_REF = re.compile(r"(?<![\w.`])([A-Za-z_]\w*)\(\)")


def strip_comment_markers(text: str) -> str:
    """Return the body of a // or /* */ comment without its delimiters."""
    body = text.strip()
    if body.startswith("//"):
        return body[2:].strip()
    if body.startswith("/*"):
        body = body[2:]
        if body.endswith("*/"):
            body = body[:-2]
        lines = []
        for line in body.splitlines():
            line = line.strip()
            if line.startswith("*"):
                line = line[1:].strip()
            lines.append(line)
        return "\n".join(lines).strip()
    return body


def referenced_names(body: str) -> list[str]:
    """Names a comment refers to as code, in order of first mention."""
    seen: dict[str, None] = {}
    for match in _BACKTICK_REF.finditer(body):
        seen.setdefault(match.group(1), None)
    for match in _CALL_REF.finditer(body):
        seen.setdefault(match.group(1), None)
    return list(seen)


class CommentQualityRule(Rule):
    """Flags commented-out code and stale references to symbols that no longer exist."""

    id = "comment-quality"
    name = "Comment quality"
    kinds = frozenset({NodeKind.COMMENT})

    class Options(RuleOptions):
        detect_commented_code: StrictBool = True
        detect_stale_references: StrictBool = True
        ignore_names: tuple[StrictStr, ...] = ("NULL", "null", "undefined", "true", "false", "this", "main")

    def evaluate(self, node: Node, context: RuleContext) -> list[Finding]:
        body = strip_comment_markers(node.text or "")
        if not body:
            return []
        if self.options.detect_commented_code and self._is_commented_out_code(body, context.language):
            return [
                self.report(
                    node,
                    "Commented-out code; delete it, version control keeps the history.",
                    suggestion="",
                )
            ]
        if not self.options.detect_stale_references:
            return []
        findings: list[Finding] = []
        for name in referenced_names(body):
            if name in self.options.ignore_names or context.symbols.is_known(name):
                continue
            findings.append(
                self.report(
                    node,
                    f"Comment refers to '{name}', which is not declared or used in this file; "
                    "the comment may be stale.",
                )
            )
        return findings

    def _is_commented_out_code(self, body: str, language: str) -> bool:
        if not _CODE_PUNCTUATION.search(body):
            return False
        return looks_like_code(body, language)
