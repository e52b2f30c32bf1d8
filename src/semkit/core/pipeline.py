"""
semkit Directory Pipeline

Scans a directory tree for TypeScript/JavaScript sources and parses and
chunks every file on a thread pool.  Each worker thread gets its own
tree-sitter parser through a :class:`ProviderPool`.

A file that cannot be parsed at all is skipped and reported; the other
files are unaffected.  Nothing is written to disk.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from tqdm import tqdm

from semkit.core.chunker import chunk_file
from semkit.core.config import SemkitConfig
from semkit.core.models import Chunk, ChunkedFile
from semkit.core.parser import parse_source, read_source
from semkit.core.provider import ProviderPool
from semkit.exceptions import SyntaxInvalidError

logger = logging.getLogger(__name__)


def scan_directory(root_path: Path, config: Optional[SemkitConfig] = None) -> List[Path]:
    """
    Recursively collect supported source files under *root_path*.

    Excluded directories are pruned in place so :func:`os.walk` never
    enters them.  Files over ``config.max_file_size_mb`` are skipped
    with a warning.
    """
    cfg = config or SemkitConfig()
    source_files: List[Path] = []
    exclude = cfg.exclude_dirs
    max_bytes = cfg.max_file_bytes()

    for dirpath, dirnames, filenames in os.walk(root_path):
        dirnames[:] = [d for d in dirnames if d not in exclude]

        for fname in filenames:
            if cfg.grammar_for(fname) is None:
                continue

            full = os.path.join(dirpath, fname)
            try:
                size = os.path.getsize(full)
            except OSError:
                continue

            if size <= max_bytes:
                source_files.append(Path(full))
            else:
                logger.warning(f"Skipping large file: {full} ({size / (1024 * 1024):.1f}MB)")

    source_files.sort()
    return source_files


@dataclass
class ChunkingResult:
    """Outcome of one pipeline run."""
    root_dir: str
    files: List[ChunkedFile] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    """File path → reason, for files that were skipped."""
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def chunks(self) -> List[Chunk]:
        return [chunk for chunked in self.files for chunk in chunked.chunks]

    def oversized(self, token_budget: int, chars_per_token: int = 4) -> List[Chunk]:
        return [c for c in self.chunks if c.is_oversized(token_budget, chars_per_token)]


class ChunkingPipeline:
    """
    Parses and chunks every supported file under a directory.

    Usage::

        result = ChunkingPipeline(Path("src")).run()
        for chunk in result.chunks:
            ...
    """

    def __init__(self, root_dir: Path, config: Optional[SemkitConfig] = None,
                 show_progress: bool = True):
        self.root_dir = Path(root_dir)
        self.config = config or SemkitConfig()
        self.show_progress = show_progress
        self.providers = ProviderPool()

        self.stats = {
            "files_scanned": 0,
            "files_chunked": 0,
            "files_degraded": 0,
            "files_skipped": 0,
            "symbols_found": 0,
            "chunks_created": 0,
            "errors": 0,
        }

    def run(self) -> ChunkingResult:
        """Scan, then parse and chunk each file concurrently."""
        self.config.validate()
        result = ChunkingResult(root_dir=str(self.root_dir))

        source_files = scan_directory(self.root_dir, self.config)
        self.stats["files_scanned"] = len(source_files)
        logger.info(f"Found {len(source_files):,} source files under {self.root_dir}")

        if not source_files:
            logger.warning("No source files found to chunk.")
            result.stats = dict(self.stats)
            return result

        chunked: Dict[Path, ChunkedFile] = {}
        with tqdm(total=len(source_files), desc="Chunking files", unit="file",
                  disable=not self.show_progress) as pbar:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                futures = {
                    executor.submit(self._process_file, file_path): file_path
                    for file_path in source_files
                }

                for future in as_completed(futures):
                    file_path = futures[future]
                    try:
                        chunked[file_path] = future.result()
                    except SyntaxInvalidError as e:
                        logger.warning(f"Skipping {file_path}: {e}")
                        result.failures[str(file_path)] = str(e)
                        self.stats["files_skipped"] += 1
                    except Exception as e:
                        logger.error(f"Error processing {file_path}: {e}")
                        result.failures[str(file_path)] = str(e)
                        self.stats["errors"] += 1
                    finally:
                        pbar.update(1)

        for file_path in sorted(chunked):
            chunked_file = chunked[file_path]
            result.files.append(chunked_file)
            self.stats["files_chunked"] += 1
            self.stats["chunks_created"] += len(chunked_file.chunks)
            self.stats["symbols_found"] += sum(1 for _ in chunked_file.parsed_file.walk())
            if chunked_file.parsed_file.has_syntax_errors:
                self.stats["files_degraded"] += 1

        logger.info(
            f"Chunked {self.stats['files_chunked']:,} files into {self.stats['chunks_created']:,} chunks "
            f"({self.stats['files_degraded']} with syntax errors, {self.stats['files_skipped']} skipped)"
        )
        result.stats = dict(self.stats)
        return result

    def _process_file(self, file_path: Path) -> ChunkedFile:
        """Parse and chunk one file on the calling worker thread."""
        source_text = read_source(file_path)
        parsed = parse_source(
            source_text, str(file_path), str(self.root_dir),
            provider=self.providers.get(), config=self.config,
        )
        logger.debug(f"  {parsed.relative_path}: {len(parsed.symbols)} top-level symbols")
        return chunk_file(parsed, source_text, config=self.config)
