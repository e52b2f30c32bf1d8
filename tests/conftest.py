"""
Shared fixtures for the semkit test suite.
"""

import sys
from pathlib import Path

import pytest

# Ensure the src/ directory is on the import path so that
# semkit.core.parser / semkit.core.chunker / etc. can be imported.
SRC_ROOT = Path(__file__).resolve().parent.parent / "src"
sys.path.insert(0, str(SRC_ROOT))

from semkit.core.provider import ParserProvider  # noqa: E402
from semkit.core.snapshot import SourceIndex  # noqa: E402


# =============================================================================
# Fixtures: sample TypeScript / JavaScript sources
# =============================================================================

WORKER_SOURCE = (
    "import { Logger } from './logger';\n"
    "import type { Config } from './config';\n"
    "\n"
    "const MAX_RETRIES = 3;\n"
    "const BATCH_SIZE = 50;\n"
    "\n"
    "export class Worker {\n"
    "  private log: Logger;\n"
    "\n"
    "  constructor(log: Logger) {\n"
    "    this.log = log;\n"
    "  }\n"
    "\n"
    "  retry(task: () => void): void {\n"
    "    for (let i = 0; i < MAX_RETRIES; i++) {\n"
    "      task();\n"
    "    }\n"
    "  }\n"
    "\n"
    "  batch(items: string[]): string[][] {\n"
    "    return [items.slice(0, BATCH_SIZE)];\n"
    "  }\n"
    "}\n"
)

TYPES_SOURCE = (
    "type Id = string;\n"
    "interface User { id: Id; }\n"
    "function load(u: User): User { return u; }\n"
    "function unrelated() {}\n"
)

NAMESPACE_SOURCE = (
    "namespace Geo {\n"
    "  const R = 6371;\n"
    "  export function dist(): number {\n"
    "    return R;\n"
    "  }\n"
    "  export function other() {}\n"
    "}\n"
)

MIXED_SOURCE = (
    "import { readFile } from 'fs';\n"
    "import * as path from 'path';\n"
    "\n"
    "// Settings shared by every loader.\n"
    "// Keep in sync with the docs.\n"
    "\n"
    "/** Default encoding. */\n"
    "export const ENCODING = 'utf-8';\n"
    "\n"
    "export enum Mode {\n"
    "  Fast,\n"
    "  Safe = 'safe',\n"
    "}\n"
    "\n"
    "export interface Loader<T> extends Base {\n"
    "  readonly name: string;\n"
    "  load(file: string): Promise<T>;\n"
    "}\n"
    "\n"
    "export abstract class FileLoader implements Loader<string> {\n"
    "  readonly name = 'file';\n"
    "\n"
    "  /** Read one file. */\n"
    "  async load(file: string): Promise<string> {\n"
    "    const full = path.join('.', file);\n"
    "    function decode(data: string): string {\n"
    "      return data;\n"
    "    }\n"
    "    return decode(await readFile(full, ENCODING));\n"
    "  }\n"
    "\n"
    "  abstract close(): void;\n"
    "}\n"
    "\n"
    "export const handlers = {\n"
    "  start() {\n"
    "    return Mode.Fast;\n"
    "  },\n"
    "  stop: () => Mode.Safe,\n"
    "};\n"
    "\n"
    "console.log('loaded');\n"
)


@pytest.fixture
def provider() -> ParserProvider:
    """A parser provider owned by the calling test."""
    return ParserProvider()


@pytest.fixture
def worker_source() -> str:
    return WORKER_SOURCE


@pytest.fixture
def mixed_source() -> str:
    return MIXED_SOURCE


@pytest.fixture
def build_index(provider):
    """Factory: ``build_index(source, path)`` → :class:`SourceIndex`."""
    def _build(source: str, file_path: str = "sample.ts") -> SourceIndex:
        return SourceIndex.build(source, file_path, provider=provider)
    return _build


@pytest.fixture
def ts_project(tmp_path: Path) -> Path:
    """
    A temporary project with TypeScript and JavaScript sources, an
    excluded dependency directory, a non-source file and one file that
    cannot be parsed.
    """
    src = tmp_path / "src"
    src.mkdir()
    (src / "worker.ts").write_text(WORKER_SOURCE, encoding="utf-8")
    (src / "types.ts").write_text(TYPES_SOURCE, encoding="utf-8")
    (src / "legacy.js").write_text(
        "module.exports = {\n"
        "  start() {},\n"
        "};\n",
        encoding="utf-8",
    )
    (src / "notes.md").write_text("# not source\n", encoding="utf-8")
    (src / "blob.ts").write_bytes(b"const a = 1;\x00\x01\x02\n")

    # Excluded directory (should be ignored)
    deps = tmp_path / "node_modules" / "lib"
    deps.mkdir(parents=True)
    (deps / "index.ts").write_text("export const x = 1;\n", encoding="utf-8")

    return tmp_path
