"""
Tests for the semkit client API (semkit.client.Semkit).

Covers the public facade: parse(), chunk(), chunk_directory(),
find_chunks(), lookup(), snapshot(), snapshots(), async variants and config
construction.
"""

from pathlib import Path

import pytest

from semkit import Semkit, SemkitConfig, SnapshotInputError, SourceIndexNotFoundError, health
from semkit.exceptions import ConfigError, SymbolNotFoundError, SymbolQueryError, UnsupportedInputError


@pytest.fixture
def config():
    """SemkitConfig with test defaults."""
    return SemkitConfig(max_workers=2)


@pytest.fixture
def client(config):
    """Semkit client with explicit config."""
    return Semkit(config=config)


# =============================================================================
# Construction
# =============================================================================

class TestSemkitConstruction:
    """Client construction from config and from env."""

    def test_construct_with_explicit_config(self, config):
        client = Semkit(config=config)
        assert client.config is config

    def test_construct_from_kwargs_overrides_env(self, monkeypatch):
        monkeypatch.setenv("SEMKIT_MAX_WORKERS", "3")
        client = Semkit(token_budget=100)
        assert client.config.token_budget == 100
        assert client.config.max_workers == 3

    def test_validate_on_init(self):
        with pytest.raises(ConfigError):
            Semkit(config=SemkitConfig(max_workers=0), validate_on_init=True)

    def test_health(self, client):
        status = client.health()
        assert status["grammars"] == ["tsx", "typescript"]
        assert ".ts" in status["extensions"]
        assert status["version"] == health()["version"]


# =============================================================================
# Parsing & chunking
# =============================================================================

class TestChunking:
    """parse(), chunk() and chunk_directory()."""

    def test_parse(self, client, ts_project: Path):
        parsed = client.parse(ts_project / "src" / "types.ts", workspace_root=ts_project)
        assert parsed.relative_path == "src/types.ts"
        assert [s.name for s in parsed.symbols] == ["Id", "User", "load", "unrelated"]

    def test_parse_unsupported(self, client, ts_project: Path):
        with pytest.raises(UnsupportedInputError):
            client.parse(ts_project / "src" / "notes.md")

    def test_chunk(self, client, ts_project: Path):
        chunked = client.chunk(ts_project / "src" / "worker.ts", workspace_root=ts_project)
        assert chunked.parsed_file.relative_path == "src/worker.ts"
        assert "retry" in [c.name for c in chunked.chunks]

    def test_chunk_directory(self, client, ts_project: Path):
        result = client.chunk_directory(ts_project)
        assert result.stats["files_chunked"] == 3
        assert len(result.failures) == 1

    def test_find_chunks_by_parent(self, client, ts_project: Path):
        path = ts_project / "src" / "worker.ts"
        assert [c.name for c in client.find_chunks(path, "retry", parent_name="Worker")] == ["retry"]
        assert client.find_chunks(path, "retry", parent_name="Other") == []

    def test_find_chunks_by_kind(self, client, ts_project: Path):
        path = ts_project / "src" / "types.ts"
        assert [c.name for c in client.find_chunks(path, "User", kind="interface")] == ["User"]
        assert client.find_chunks(path, "User", kind="class") == []


class TestLookup:
    """lookup() against one file or every indexed file."""

    def test_lookup_in_file(self, client, ts_project: Path):
        path = ts_project / "src" / "worker.ts"
        result = client.lookup("Worker > retry, kind = method", path, workspace_root=ts_project)
        assert [c.name for c in result.require()] == ["retry"]

    def test_lookup_across_indexed_files(self, client, ts_project: Path):
        client.index(ts_project / "src" / "worker.ts", workspace_root=ts_project)
        client.index(ts_project / "src" / "types.ts", workspace_root=ts_project)
        result = client.lookup("src/types.ts::load")
        assert [(c.relative_path, c.name) for c in result.matches] == [("src/types.ts", "load")]

    def test_lookup_hint(self, client, ts_project: Path):
        result = client.lookup("Load", ts_project / "src" / "types.ts", workspace_root=ts_project)
        with pytest.raises(SymbolNotFoundError, match='Did you mean "load"'):
            result.require()

    def test_lookup_rejects_empty_query(self, client):
        with pytest.raises(SymbolQueryError):
            client.lookup("  ")


# =============================================================================
# Snapshots
# =============================================================================

class TestSnapshots:
    """snapshot() and snapshots() through the client's index cache."""

    def test_snapshot(self, client, ts_project: Path):
        path = ts_project / "src" / "worker.ts"
        targets = client.find_chunks(path, "retry", parent_name="Worker", workspace_root=ts_project)
        snapshot = client.snapshot(targets)
        assert snapshot.snapshot.startswith("// src/worker.ts\n")
        assert "MAX_RETRIES" in snapshot.snapshot
        assert "BATCH_SIZE" not in snapshot.snapshot

    def test_snapshot_requires_targets(self, client):
        with pytest.raises(SnapshotInputError, match="At least one target"):
            client.snapshot([])

    def test_snapshots_across_files(self, client, ts_project: Path):
        worker = client.find_chunks(ts_project / "src" / "worker.ts", "retry")
        types = client.find_chunks(ts_project / "src" / "types.ts", "load")
        snapshots = client.snapshots(worker + types)
        assert len(snapshots) == 2
        assert "type Id = string;" in snapshots[1].snapshot

    def test_snapshot_loads_index_on_demand(self, client, ts_project: Path):
        targets = Semkit(config=client.config).chunk(ts_project / "src" / "types.ts").chunks
        load = [c for c in targets if c.name == "load"]
        assert "interface User" in client.snapshot(load).snapshot

    def test_snapshot_for_deleted_file(self, client, ts_project: Path):
        path = ts_project / "src" / "types.ts"
        load = [c for c in Semkit(config=client.config).chunk(path).chunks if c.name == "load"]
        path.unlink()
        with pytest.raises(SourceIndexNotFoundError):
            client.snapshot(load)


# =============================================================================
# Async variants
# =============================================================================

class TestAsyncApi:
    """Async methods: achunk, achunk_directory, asnapshots."""

    @pytest.mark.asyncio
    async def test_achunk_matches_chunk(self, client, ts_project: Path):
        path = ts_project / "src" / "worker.ts"
        sync_ids = [c.id for c in client.chunk(path).chunks]
        async_ids = [c.id for c in (await client.achunk(path)).chunks]
        assert async_ids == sync_ids

    @pytest.mark.asyncio
    async def test_achunk_directory(self, client, ts_project: Path):
        result = await client.achunk_directory(ts_project)
        assert result.stats["files_chunked"] == 3

    @pytest.mark.asyncio
    async def test_asnapshots(self, client, ts_project: Path):
        targets = client.find_chunks(ts_project / "src" / "types.ts", "load")
        snapshots = await client.asnapshots(targets)
        assert snapshots[0].dependency_count == 2
