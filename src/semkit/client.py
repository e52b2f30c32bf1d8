"""
semkit Client Facade

Single entry point for programmatic use of semkit.  Wraps parsing,
chunking, directory runs and snapshot generation behind an
instance-based API with optional async support.

Usage::

    from semkit import Semkit

    # From environment variables
    client = Semkit()

    # With explicit configuration
    from semkit.core.config import SemkitConfig
    client = Semkit(config=SemkitConfig(max_workers=8))

    # Chunk a file or a whole project
    chunked = client.chunk("src/server.ts", workspace_root=".")
    result = client.chunk_directory("./src")
    print(f"Created {len(result.chunks)} chunks")

    # Snapshot around a method
    targets = client.find_chunks("src/server.ts", "handle", parent_name="Server")
    targets = client.lookup("Server > handle, kind = method", "src/server.ts").require()
    print(client.snapshot(targets).snapshot)

    # Async variants (for asyncio hosts)
    result = await client.achunk_directory("./src")
"""

from __future__ import annotations

import asyncio
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from semkit.core.config import SemkitConfig
from semkit.core.lookup import LookupResult, parse_symbol_query, resolve_symbol
from semkit.core.models import Chunk, ChunkedFile, ParsedFile, Snapshot
from semkit.core.parser import parse_file
from semkit.core.pipeline import ChunkingPipeline, ChunkingResult
from semkit.core.provider import ProviderPool
from semkit.core.snapshot import SourceIndex, generate_snapshot, generate_snapshots
from semkit.exceptions import SourceIndexNotFoundError

logger = logging.getLogger(__name__)


class Semkit:
    """
    High-level semkit client.

    Each instance carries its own :class:`SemkitConfig` and its own
    parser providers, and never touches global state.  Source indexes
    built by :meth:`index` and :meth:`chunk` are kept per file path so a
    later :meth:`snapshot` over those chunks does not re-parse.

    Args:
        config: Explicit configuration object.  When *None*, a config
            is built from environment variables or keyword overrides.
        validate_on_init: If True, call :meth:`SemkitConfig.validate` in
            __init__ so invalid limits surface immediately.
        **kwargs: Forwarded to :class:`SemkitConfig` when *config* is
            ``None`` (e.g. ``max_workers=8``).
    """

    def __init__(
        self,
        config: SemkitConfig | None = None,
        *,
        validate_on_init: bool = False,
        **kwargs,
    ):
        if config is not None:
            self._config = config
        elif kwargs:
            # Build a config from env, then overlay keyword overrides
            base = SemkitConfig.from_env()
            merged = {
                f.name: kwargs.get(f.name, getattr(base, f.name))
                for f in base.__dataclass_fields__.values()
            }
            self._config = SemkitConfig(**merged)
        else:
            self._config = SemkitConfig.from_env()

        if validate_on_init:
            self._config.validate()

        self._providers = ProviderPool()
        self._indexes: Dict[str, SourceIndex] = {}
        self._lock = threading.Lock()

    # ── Configuration ─────────────────────────────────────────────

    @property
    def config(self) -> SemkitConfig:
        """The active configuration for this client."""
        return self._config

    # ── Parsing & chunking ────────────────────────────────────────

    def parse(self, file_path: str | Path, *, workspace_root: str | Path | None = None) -> ParsedFile:
        """
        Parse one file into its symbol tree.

        Raises:
            UnsupportedInputError: The extension has no grammar.
            SyntaxInvalidError: The file could not be parsed at all.
        """
        return parse_file(
            str(file_path), _optional_str(workspace_root),
            provider=self._providers.get(), config=self._config,
        )

    def index(self, file_path: str | Path, *, workspace_root: str | Path | None = None) -> SourceIndex:
        """
        Build (and remember) the :class:`SourceIndex` for one file.

        The index is rebuilt on every call so it always reflects the
        file's current contents.
        """
        index = SourceIndex.from_file(
            str(file_path), _optional_str(workspace_root),
            provider=self._providers.get(), config=self._config,
        )
        with self._lock:
            self._indexes[index.file_path] = index
        return index

    def chunk(self, file_path: str | Path, *, workspace_root: str | Path | None = None) -> ChunkedFile:
        """Parse and chunk one file.  Chunks come back parents before children."""
        index = self.index(file_path, workspace_root=workspace_root)
        return ChunkedFile(parsed_file=index.parsed_file, chunks=index.chunks)

    def chunk_directory(self, directory: str | Path, *, show_progress: bool = False) -> ChunkingResult:
        """
        Chunk every supported file under *directory*.

        Files that cannot be parsed are skipped and listed in
        :attr:`ChunkingResult.failures`.  Relative paths are computed
        against *directory*.
        """
        root = Path(directory).resolve()
        pipeline = ChunkingPipeline(root_dir=root, config=self._config, show_progress=show_progress)
        return pipeline.run()

    def find_chunks(
        self,
        file_path: str | Path,
        name: str,
        *,
        parent_name: Optional[str] = None,
        kind: Optional[str] = None,
        workspace_root: str | Path | None = None,
    ) -> List[Chunk]:
        """Chunks named *name* in *file_path*, optionally only those under *parent_name* or of *kind*."""
        index = self._indexes.get(str(file_path))
        if index is None:
            index = self.index(file_path, workspace_root=workspace_root)
        return index.find_chunks(name, parent_name, kind)

    def lookup(
        self,
        query: str,
        file_path: str | Path | None = None,
        *,
        workspace_root: str | Path | None = None,
    ) -> LookupResult:
        """
        Resolve a symbol query such as ``Worker.retry`` or
        ``src/worker.ts > Worker > retry, kind = method``.

        With *file_path* the query runs against that file; otherwise it
        runs against every file this client has already indexed.  Call
        :meth:`LookupResult.require` to get the chunks or an error
        carrying a "did you mean" hint.

        Raises:
            SymbolQueryError: The query is empty.
        """
        parsed = parse_symbol_query(query)
        if file_path is not None:
            index = self._indexes.get(str(file_path))
            if index is None:
                index = self.index(file_path, workspace_root=workspace_root)
            return resolve_symbol(parsed, [index])
        with self._lock:
            indexes = list(self._indexes.values())
        return resolve_symbol(parsed, indexes)

    # ── Snapshots ─────────────────────────────────────────────────

    def snapshot(self, targets: Sequence[Chunk]) -> Snapshot:
        """
        Render one snapshot for *targets*, which must all come from one file.

        Raises:
            SnapshotInputError: No targets, or targets from several files.
            SourceIndexNotFoundError: The targets' file is gone.
        """
        index = self._require_index(targets[0].file_path) if targets else None
        return generate_snapshot(index, targets)

    def snapshots(self, targets: Sequence[Chunk]) -> List[Snapshot]:
        """One snapshot per file among *targets*, in first-seen order."""
        return generate_snapshots(self._load_index, targets)

    # ── Async variants ────────────────────────────────────────────
    # These use asyncio.to_thread() to run sync operations off the
    # event loop and raise the same exceptions as the sync methods.

    async def achunk(self, file_path: str | Path, *, workspace_root: str | Path | None = None) -> ChunkedFile:
        """Async variant of :meth:`chunk`."""
        return await asyncio.to_thread(self.chunk, file_path, workspace_root=workspace_root)

    async def achunk_directory(self, directory: str | Path) -> ChunkingResult:
        """Async variant of :meth:`chunk_directory`."""
        return await asyncio.to_thread(self.chunk_directory, directory)

    async def asnapshots(self, targets: Sequence[Chunk]) -> List[Snapshot]:
        """Async variant of :meth:`snapshots`."""
        return await asyncio.to_thread(self.snapshots, targets)

    # ── Health ────────────────────────────────────────────────────

    def health(self) -> Dict[str, object]:
        """Return a small status dict for readiness checks."""
        from semkit import health

        return health(self._config)

    # ── Internal helpers ──────────────────────────────────────────

    def _load_index(self, file_path: str) -> Optional[SourceIndex]:
        """Cached index for *file_path*, loading it from disk on a miss."""
        index = self._indexes.get(file_path)
        if index is not None:
            return index
        if not Path(file_path).is_file():
            return None
        logger.debug(f"No cached index for {file_path}, loading from disk")
        return self.index(file_path)

    def _require_index(self, file_path: str) -> SourceIndex:
        index = self._load_index(file_path)
        if index is None:
            raise SourceIndexNotFoundError(f"No source index for {file_path}")
        return index


def _optional_str(path: str | Path | None) -> Optional[str]:
    return None if path is None else str(path)
