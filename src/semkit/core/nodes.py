"""
semkit Syntax Node Helpers

Small, grammar-aware utilities over tree-sitter nodes: text slicing,
1-indexed line ranges with doc-comment absorption, doc-comment cleanup,
modifier collection and text truncation.  Nothing here knows about
symbols or chunks.
"""

import re
from typing import Iterable, List, Optional

from tree_sitter import Node

from semkit.core.models import SymbolRange


class SourceText:
    """UTF-8 source text plus its byte encoding.

    tree-sitter reports byte offsets, so slicing must happen on the
    encoded form.
    """

    def __init__(self, text: str):
        self.text = text
        self.data = text.encode("utf-8")
        self.lines = text.split("\n")
        self._offsets: Optional[List[int]] = None

    def line_offset(self, line: int) -> int:
        """Byte offset at which 1-indexed *line* starts."""
        if self._offsets is None:
            offsets, position = [], 0
            for text in self.lines:
                offsets.append(position)
                position += len(text.encode("utf-8")) + 1
            self._offsets = offsets
        return self._offsets[line - 1]

    def of(self, node: Optional[Node]) -> str:
        if node is None:
            return ""
        return self.data[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def between(self, start_byte: int, end_byte: int) -> str:
        return self.data[start_byte:end_byte].decode("utf-8", errors="replace")

    def line_span(self, start_line: int, end_line: int) -> str:
        """Verbatim text of an inclusive, 1-indexed line range."""
        return "\n".join(self.lines[start_line - 1:end_line])

    @property
    def total_lines(self) -> int:
        return len(self.lines)


# =============================================================================
# Text
# =============================================================================

_WS_RE = re.compile(r"\s+")


def normalize_ws(text: str) -> str:
    """Collapse every whitespace run to one space."""
    return _WS_RE.sub(" ", text).strip()


def truncate(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."


def first_line(text: str) -> str:
    return text.split("\n", 1)[0].rstrip()


def strip_quotes(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"`":
        return text[1:-1]
    return text


# =============================================================================
# Lines & ranges
# =============================================================================

def start_line(node: Node) -> int:
    return node.start_point[0] + 1


def end_line(node: Node) -> int:
    row, column = node.end_point
    # A node ending at column 0 stops before that line's first character.
    if column == 0 and row > node.start_point[0]:
        return row
    return row + 1


def is_doc_comment(source: SourceText, node: Optional[Node]) -> bool:
    if node is None or node.type != "comment":
        return False
    text = source.of(node)
    return text.startswith("/**") and not text.startswith("/**/")


def leading_doc_comment(source: SourceText, node: Node) -> Optional[Node]:
    """
    Return the ``/** … */`` block directly above *node*, if any.

    The block must end on the line immediately before the node (or on
    the node's own line) and must not trail code on its own line.
    Ordinary ``//`` and ``/* */`` comments are never absorbed.
    """
    prev = node.prev_sibling
    if not is_doc_comment(source, prev):
        return None
    if prev.end_point[0] < node.start_point[0] - 1:
        return None
    before = prev.prev_sibling
    if before is not None and before.type != "comment" and before.end_point[0] == prev.start_point[0]:
        return None
    return prev


def leading_decorators_start(node: Node) -> Node:
    """Walk back over decorators that precede *node* as siblings."""
    start = node
    prev = node.prev_named_sibling
    while prev is not None and prev.type == "decorator":
        start = prev
        prev = prev.prev_named_sibling
    return start


def node_range(source: SourceText, node: Node, start_node: Optional[Node] = None) -> SymbolRange:
    """Line range of *node*, extended back over decorators and a doc block."""
    first = start_node if start_node is not None else node
    doc = leading_doc_comment(source, first)
    if doc is not None:
        first = doc
    return SymbolRange(start_line(first), end_line(node))


def extract_doc(source: SourceText, node: Node) -> Optional[str]:
    """Doc text for *node* with the comment delimiters removed."""
    comment = leading_doc_comment(source, node)
    if comment is None:
        return None
    return clean_doc_comment(source.of(comment))


def clean_doc_comment(raw: str) -> Optional[str]:
    body = raw.strip()
    if body.startswith("/**"):
        body = body[3:]
    if body.endswith("*/"):
        body = body[:-2]
    lines = []
    for line in body.split("\n"):
        line = line.strip()
        if line.startswith("*"):
            line = line[1:]
            if line.startswith(" "):
                line = line[1:]
        lines.append(line.rstrip())
    text = "\n".join(lines).strip()
    return text or None


# =============================================================================
# Structure
# =============================================================================

# Tokens that become modifiers when they appear before a declaration's name.
_MODIFIER_TOKENS = frozenset((
    "async", "static", "abstract", "readonly", "declare", "get", "set", "*",
    "const", "accessor",
))
_MODIFIER_NODES = frozenset(("accessibility_modifier", "override_modifier"))


def leading_tokens(source: SourceText, node: Node, stop: Optional[Node] = None) -> List[str]:
    """Keyword tokens of *node* that appear before *stop* (usually the name)."""
    tokens = []
    for child in node.children:
        if stop is not None and child.start_byte >= stop.start_byte:
            break
        if child.type in _MODIFIER_NODES:
            tokens.append(source.of(child))
        elif not child.is_named and child.type in _MODIFIER_TOKENS:
            tokens.append(child.type)
    return tokens


def has_token(node: Node, token: str) -> bool:
    return any(not child.is_named and child.type == token for child in node.children)


def field_text(source: SourceText, node: Node, name: str) -> str:
    return source.of(node.child_by_field_name(name))


def named_children_of(node: Optional[Node], types: Iterable[str] = ()) -> List[Node]:
    """Named children, optionally filtered by type, skipping comments and errors."""
    if node is None:
        return []
    wanted = frozenset(types)
    out = []
    for child in node.named_children:
        if child.type in ("comment", "ERROR"):
            continue
        if wanted and child.type not in wanted:
            continue
        out.append(child)
    return out


_WRAPPER_TYPES = frozenset((
    "as_expression", "satisfies_expression", "parenthesized_expression", "non_null_expression",
))


def unwrap_expression(node: Optional[Node]) -> Optional[Node]:
    """Strip ``as const``, ``satisfies T``, parentheses and ``!`` wrappers."""
    while node is not None and node.type in _WRAPPER_TYPES:
        inner = named_children_of(node)
        node = inner[0] if inner else None
    return node
