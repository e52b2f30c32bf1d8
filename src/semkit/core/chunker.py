"""
semkit Chunker

Flattens a parsed symbol tree into embeddable :class:`Chunk` records.

Every chunk id is a pure function of the symbol's identity
(``file path :: kind :: name :: start line :: ancestors``), so chunking
identical content twice yields identical ids.  Parent and child links
are expressed only through those ids.

A chunk's ``embedding_text`` is its verbatim source with each
body-bearing child collapsed to a one-line signature stub, which keeps
container chunks small while their members are embedded on their own.
"""

import hashlib
import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from semkit.core.config import SemkitConfig
from semkit.core.models import (
    BODY_BEARING_KINDS, NO_IMPORT_KINDS, Chunk, ChunkedFile, ParsedFile, Symbol,
)

logger = logging.getLogger(__name__)

_INDENT_RE = re.compile(r"^(\s*)")

# Identifier patterns over a normalized import signature.
_NAMESPACE_RE = re.compile(r"\*\s+as\s+([\w$]+)")
_NAMED_RE = re.compile(r"\{\s*([^}]+)\s*\}")
_ALIAS_RE = re.compile(r"[\w$]+\s+as\s+([\w$]+)")
_DEFAULT_RE = re.compile(r"^import\s+(?:type\s+)?([A-Za-z_$][\w$]*)(?:\s*,|\s+from|\s*=)")


# =============================================================================
# Identity
# =============================================================================

def generate_chunk_id(
    file_path: str,
    node_kind: str,
    name: str,
    start_line: int,
    parent_chain: Sequence[str],
    length: int = 16,
) -> str:
    """SHA-256 over ``file::kind::name::line::ancestors``, truncated to *length* hex chars."""
    key = "::".join([file_path, node_kind, name, str(start_line), *parent_chain])
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:length]


def build_breadcrumb(relative_path: str, name: str, parent_chain: Sequence[str]) -> str:
    return " > ".join([relative_path, *parent_chain, name])


def _key(symbol: Symbol, parent_chain: Sequence[str]) -> Tuple:
    return (*parent_chain, symbol.kind, symbol.name, symbol.start_line)


def chunkable_children(symbol: Symbol) -> List[Symbol]:
    """Children that get their own chunk.

    A child spanning exactly its parent's lines adds nothing the parent
    does not already show, so it stays inlined.
    """
    return [
        child for child in symbol.children
        if (child.start_line, child.end_line) != (symbol.start_line, symbol.end_line)
    ]


# =============================================================================
# Collapse
# =============================================================================

def collapse_children(full_source: str, source_start_line: int, children: Sequence[Symbol]) -> str:
    """
    Replace every body-bearing child's lines with ``<indent><signature>;``.

    Edits are computed as ``(start, end, replacement)`` line offsets and
    applied back to front over a copy of the lines, so an earlier edit
    never shifts a later one.
    """
    lines = full_source.split("\n")
    edits = []
    for child in children:
        if child.kind not in BODY_BEARING_KINDS:
            continue
        start = child.start_line - source_start_line
        end = child.end_line - source_start_line
        if start < 0 or end >= len(lines):
            continue
        indent = _INDENT_RE.match(lines[start]).group(1)
        edits.append((start, end, f"{indent}{child.signature};"))

    if not edits:
        return full_source

    result = list(lines)
    for start, end, replacement in sorted(edits, key=lambda e: e[0], reverse=True):
        result[start:end + 1] = [replacement]
    return "\n".join(result)


# =============================================================================
# Relevant imports
# =============================================================================

def extract_import_identifiers(signature: str) -> List[str]:
    """Local names an import introduces: default, namespace alias, named/aliased."""
    identifiers = []

    namespace = _NAMESPACE_RE.search(signature)
    if namespace:
        identifiers.append(namespace.group(1))

    named = _NAMED_RE.search(signature)
    if named:
        for item in named.group(1).split(","):
            item = item.strip()
            alias = _ALIAS_RE.search(item)
            if alias:
                identifiers.append(alias.group(1))
            else:
                item = re.sub(r"^type\s+", "", item).strip()
                if item:
                    identifiers.append(item)

    default = _DEFAULT_RE.search(signature)
    if default:
        identifiers.append(default.group(1))

    return identifiers


def _word_pattern(identifier: str) -> re.Pattern:
    # `$` is an identifier character, so \b is not enough on its own.
    return re.compile(rf"(?<![\w$]){re.escape(identifier)}(?![\w$])")


def resolve_relevant_imports(chunk_source: str, imports: Sequence[Tuple[List[str], str]]) -> List[str]:
    """
    Statement texts of the imports referenced by *chunk_source*.

    *imports* is a sequence of ``(identifiers, statement_text)`` pairs in
    file order.  Side-effect imports (no identifiers) never match.
    """
    relevant = []
    for identifiers, text in imports:
        if any(_word_pattern(name).search(chunk_source) for name in identifiers):
            relevant.append(text)
    return relevant


# =============================================================================
# Chunking
# =============================================================================

class _ChunkBuilder:
    """Materializes chunks for one file."""

    def __init__(self, parsed_file: ParsedFile, source_text: str, config: SemkitConfig):
        self.parsed_file = parsed_file
        self.lines = source_text.split("\n")
        self.config = config
        self.ids: Dict[Tuple, str] = {}
        self.chunks: List[Chunk] = []
        self.imports = [
            (extract_import_identifiers(symbol.signature), self._span(symbol))
            for symbol in parsed_file.symbols
            if symbol.kind == "import"
        ]

    def _span(self, symbol: Symbol) -> str:
        return "\n".join(self.lines[symbol.start_line - 1:symbol.end_line])

    def assign_ids(self, symbols: Sequence[Symbol], parent_chain: List[str]) -> None:
        for symbol in symbols:
            self.ids[_key(symbol, parent_chain)] = generate_chunk_id(
                self.parsed_file.file_path, symbol.kind, symbol.name,
                symbol.start_line, parent_chain, self.config.chunk_id_length,
            )
            if symbol.children:
                self.assign_ids(symbol.children, parent_chain + [symbol.name])

    def build(self, symbols: Sequence[Symbol], parent_chain: List[str], parent_id: Optional[str]) -> None:
        for symbol in symbols:
            chunk_id = self.ids[_key(symbol, parent_chain)]
            children = chunkable_children(symbol)
            child_chain = parent_chain + [symbol.name]
            full_source = self._span(symbol)

            if symbol.kind in NO_IMPORT_KINDS:
                relevant_imports = []
            else:
                relevant_imports = resolve_relevant_imports(full_source, self.imports)

            self.chunks.append(Chunk(
                id=chunk_id,
                file_path=self.parsed_file.file_path,
                relative_path=self.parsed_file.relative_path,
                node_kind=symbol.kind,
                name=symbol.name,
                parent_name=symbol.parent_name,
                parent_chunk_id=parent_id,
                child_chunk_ids=[self.ids[_key(child, child_chain)] for child in children],
                depth=symbol.depth,
                signature=symbol.signature,
                full_source=full_source,
                start_line=symbol.start_line,
                end_line=symbol.end_line,
                doc=symbol.doc,
                relevant_imports=relevant_imports,
                embedding_text=collapse_children(full_source, symbol.start_line, children),
                breadcrumb=build_breadcrumb(self.parsed_file.relative_path, symbol.name, parent_chain),
            ))
            if children:
                self.build(children, child_chain, chunk_id)


def chunk_file(parsed_file: ParsedFile, source_text: str, *, config: Optional[SemkitConfig] = None) -> ChunkedFile:
    """
    Turn a parsed file into a flat list of chunks, parents before children.

    Args:
        parsed_file: Output of :func:`~semkit.core.parser.parse_source`.
        source_text: The exact text that was parsed.
        config: Supplies the chunk-id length and the advisory token budget.
    """
    config = config or SemkitConfig()
    builder = _ChunkBuilder(parsed_file, source_text, config)
    builder.assign_ids(parsed_file.symbols, [])
    builder.build(parsed_file.symbols, [], None)

    oversized = [c for c in builder.chunks if c.is_oversized(config.token_budget, config.chars_per_token)]
    if oversized:
        logger.debug(
            f"{parsed_file.relative_path}: {len(oversized)} chunk(s) exceed "
            f"{config.token_budget} estimated tokens"
        )
    return ChunkedFile(parsed_file=parsed_file, chunks=builder.chunks)
