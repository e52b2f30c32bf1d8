"""
semkit: syntax-aware chunking and snapshots for TypeScript/JavaScript.

The ``semkit`` package turns source files into a tree of symbols, flattens
that tree into embeddable chunks with stable ids, and renders minimal,
self-contained excerpts ("snapshots") around any set of chunks.

Quick start (programmatic API)::

    from semkit import Semkit

    client = Semkit()                                   # reads env vars
    chunks = client.chunk("src/app.ts").chunks          # parse + chunk
    target = client.find_chunks("src/app.ts", "handleRequest")
    print(client.snapshot(target).snapshot)

Quick start (CLI)::

    semkit chunk ./src
    semkit snapshot src/app.ts Server.handleRequest
    semkit snapshot src/app.ts "Server > handleRequest, kind = method"

Configuration override::

    from semkit import Semkit, SemkitConfig

    client = Semkit(config=SemkitConfig(max_workers=8, token_budget=16000))
"""

__version__ = "1.0.0"

# Primary public API (the Semkit facade)
from semkit.client import Semkit

# Configuration
from semkit.core.config import SemkitConfig

# Core data types that callers interact with
from semkit.core.models import Chunk, ChunkedFile, ParsedFile, Snapshot, Symbol
from semkit.core.lookup import LookupResult
from semkit.core.pipeline import ChunkingResult
from semkit.core.snapshot import SourceIndex

# Exception hierarchy
from semkit.exceptions import (
    ConfigError,
    SemkitError,
    SnapshotInputError,
    SourceIndexNotFoundError,
    SymbolNotFoundError,
    SymbolQueryError,
    SyntaxInvalidError,
    UnsupportedInputError,
)


def health(config: SemkitConfig | None = None) -> dict:
    """
    Return a small status dict for readiness checks (no files are read).

    When *config* is None, uses :meth:`SemkitConfig.from_env()` for the snapshot.
    """
    from semkit.core.provider import ParserProvider

    cfg = config or SemkitConfig.from_env()
    return {
        "version": __version__,
        "grammars": ParserProvider.supported_grammars(),
        "extensions": sorted(cfg.target_extensions),
    }


__all__ = [
    "__version__",
    # Facade
    "Semkit",
    # Config
    "SemkitConfig",
    # Data types
    "Symbol",
    "ParsedFile",
    "Chunk",
    "ChunkedFile",
    "ChunkingResult",
    "SourceIndex",
    "Snapshot",
    "LookupResult",
    # Exceptions
    "SemkitError",
    "ConfigError",
    "UnsupportedInputError",
    "SyntaxInvalidError",
    "SnapshotInputError",
    "SourceIndexNotFoundError",
    "SymbolQueryError",
    "SymbolNotFoundError",
    # Status
    "health",
]
