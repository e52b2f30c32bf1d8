"""
semkit Core: parsing, chunking, snapshots and the directory pipeline.

Re-exports the primary entry points for convenience::

    from semkit.core import parse_file, chunk_file, SourceIndex, generate_snapshot
"""

from semkit.core.chunker import (
    build_breadcrumb,
    chunk_file,
    collapse_children,
    generate_chunk_id,
    resolve_relevant_imports,
)
from semkit.core.config import SemkitConfig
from semkit.core.lookup import LookupResult, SymbolQuery, parse_symbol_query, resolve_symbol
from semkit.core.models import (
    Chunk,
    ChunkedFile,
    Dependency,
    ParsedFile,
    ResolutionResult,
    Snapshot,
    Symbol,
    SymbolRange,
    estimate_tokens,
)
from semkit.core.parser import parse_file, parse_source
from semkit.core.pipeline import ChunkingPipeline, ChunkingResult, scan_directory
from semkit.core.provider import ParserProvider, ProviderPool
from semkit.core.snapshot import (
    SourceIndex,
    generate_snapshot,
    generate_snapshots,
    render_snapshot,
    resolve_dependencies,
)

__all__ = [
    "SemkitConfig",
    "Symbol",
    "SymbolRange",
    "ParsedFile",
    "Chunk",
    "ChunkedFile",
    "Dependency",
    "ResolutionResult",
    "Snapshot",
    "estimate_tokens",
    "ParserProvider",
    "ProviderPool",
    "parse_source",
    "parse_file",
    "chunk_file",
    "collapse_children",
    "generate_chunk_id",
    "build_breadcrumb",
    "resolve_relevant_imports",
    "SourceIndex",
    "resolve_dependencies",
    "render_snapshot",
    "generate_snapshot",
    "generate_snapshots",
    "ChunkingPipeline",
    "ChunkingResult",
    "scan_directory",
    "SymbolQuery",
    "LookupResult",
    "parse_symbol_query",
    "resolve_symbol",
]
