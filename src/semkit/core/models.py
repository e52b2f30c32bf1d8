"""
semkit Data Models

Plain value types shared by the parser, the chunker and the snapshot
generator.  Every call builds these fresh; nothing here holds a
reference to a syntax tree, so results can be compared, copied and
serialized freely.

Hierarchy is expressed with names (``Symbol.children``) or with opaque
string ids (``Chunk.parent_chunk_id`` / ``Chunk.child_chunk_ids``),
never with back-references.
"""

from dataclasses import asdict, dataclass, field
from typing import List, Literal, Optional, Tuple


# =============================================================================
# Kind vocabulary
# =============================================================================

NodeKind = Literal[
    "function", "method", "class", "interface", "type", "enum", "enumMember",
    "variable", "const", "property", "constructor", "getter", "setter",
    "namespace", "module", "staticBlock", "import", "expression",
    "re-export", "comment",
]

# Kinds whose declarations can contain nested declarations.
BODY_BEARING_KINDS: frozenset = frozenset((
    "function", "method", "constructor", "getter", "setter",
    "class", "interface", "enum", "namespace", "module", "staticBlock",
))

# Kinds that never get relevant imports attached.
NO_IMPORT_KINDS: frozenset = frozenset(("import", "re-export", "comment"))

# Kinds a snapshot can synthesize an enclosing wrapper for.
CONTAINER_KINDS: frozenset = frozenset(("class", "interface", "namespace", "module"))

DependencyKind = Literal[
    "import", "type-import", "constant", "variable", "type-alias", "interface",
    "enum", "member-property", "container-declaration", "function", "other",
]


# =============================================================================
# Symbols (parser output)
# =============================================================================

@dataclass
class SymbolRange:
    """1-indexed, inclusive line range."""
    start_line: int
    end_line: int

    def overlaps(self, other: "SymbolRange") -> bool:
        return self.start_line <= other.end_line and other.start_line <= self.end_line


@dataclass
class Symbol:
    """A named or structural unit of a source file.

    Covers declarations (functions, classes, members, …) as well as
    root-level content such as imports, re-exports, bare expressions and
    standalone comments.
    """
    name: str
    kind: NodeKind
    depth: int
    parent_name: Optional[str]
    range: SymbolRange
    signature: str
    modifiers: List[str] = field(default_factory=list)
    doc: Optional[str] = None
    """Doc-comment text without delimiters, or None."""
    exported: bool = False
    children: List["Symbol"] = field(default_factory=list)

    @property
    def start_line(self) -> int:
        return self.range.start_line

    @property
    def end_line(self) -> int:
        return self.range.end_line

    def walk(self):
        """Yield this symbol and all descendants, depth-first, in order."""
        yield self
        for child in self.children:
            yield from child.walk()

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ParsedFile:
    """Result of parsing a single file."""
    file_path: str
    relative_path: str
    symbols: List[Symbol]
    total_lines: int
    has_syntax_errors: bool = False

    def walk(self):
        """Yield every symbol in the file, depth-first, in order."""
        for symbol in self.symbols:
            yield from symbol.walk()

    def to_dict(self) -> dict:
        return asdict(self)


# =============================================================================
# Chunks (chunker output)
# =============================================================================

def estimate_tokens(text: str, chars_per_token: int = 4) -> int:
    """Rough token estimate (ceil of characters / ratio)."""
    if not text:
        return 0
    return -(-len(text) // chars_per_token)


@dataclass
class Chunk:
    """An embeddable unit derived from one :class:`Symbol`.

    ``full_source`` is the verbatim text of the symbol's lines;
    ``embedding_text`` is the same text with every body-bearing child
    collapsed to a one-line signature stub.
    """
    id: str
    file_path: str
    relative_path: str
    node_kind: NodeKind
    name: str
    parent_name: Optional[str]
    parent_chunk_id: Optional[str]
    child_chunk_ids: List[str]
    depth: int
    signature: str
    full_source: str
    start_line: int
    end_line: int
    doc: Optional[str]
    relevant_imports: List[str]
    embedding_text: str
    breadcrumb: str

    def estimated_tokens(self, chars_per_token: int = 4) -> int:
        return estimate_tokens(self.embedding_text, chars_per_token)

    def is_oversized(self, token_budget: int = 32000, chars_per_token: int = 4) -> bool:
        """Advisory check for downstream splitters; semkit never splits a chunk."""
        return self.estimated_tokens(chars_per_token) > token_budget

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ChunkedFile:
    """All chunks produced from one parsed file, parents before children."""
    parsed_file: ParsedFile
    chunks: List[Chunk]

    @property
    def relative_path(self) -> str:
        return self.parsed_file.relative_path

    def by_id(self) -> dict:
        return {chunk.id: chunk for chunk in self.chunks}

    def roots(self) -> List[Chunk]:
        return [chunk for chunk in self.chunks if chunk.parent_chunk_id is None]


# =============================================================================
# Snapshots (snapshot generator output)
# =============================================================================

@dataclass
class Dependency:
    """A same-file declaration pulled into a snapshot.

    ``container_id`` is the chunk id of the synthesized wrapper the
    declaration is rendered inside, or None for the file root.
    """
    start_line: int
    end_line: int
    kind: DependencyKind
    source_text: str
    name: str = ""
    container_id: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ResolutionResult:
    """Deduplicated dependencies plus the line ranges of the targets."""
    dependencies: List[Dependency]
    target_ranges: List[Tuple[int, int]]


@dataclass
class Snapshot:
    """A rendered, minimal excerpt of one file."""
    snapshot: str
    relative_path: str
    target_count: int
    dependency_count: int

    def to_dict(self) -> dict:
        return asdict(self)
