"""
Tests for semkit.core.snapshot: dependency resolution and rendering.
"""

from typing import get_args

import pytest

import semkit.core.snapshot as snapshot_module
from semkit.core.models import DependencyKind
from semkit.core.snapshot import (
    SourceIndex,
    ensure_indentation,
    generate_snapshot,
    generate_snapshots,
    render_snapshot,
    resolve_dependencies,
)
from semkit.exceptions import SnapshotInputError, SourceIndexNotFoundError

from conftest import MIXED_SOURCE, NAMESPACE_SOURCE, TYPES_SOURCE, WORKER_SOURCE

DEFAULT_CLASS_SOURCE = """\
const K = 1;
export default class {
  run() {
    return K;
  }
  other() {}
}
"""

NESTED_CLASS_SOURCE = """\
namespace NS {
  const LIMIT = 5;
  export class Box {
    size(): number {
      return LIMIT;
    }
  }
}
"""

LOCAL_SOURCE = """\
const K = 0;
function outer() {
  const K = 1;
  function inner() {
    return K;
  }
  return inner();
}
"""


def _target(index, name, parent_name=None):
    matches = index.find_chunks(name, parent_name)
    assert len(matches) == 1, matches
    return matches[0]


def _assert_parses(provider, text):
    tree = provider.parse(text.encode("utf-8"), "typescript")
    assert not tree.root_node.has_error, text


# =============================================================================
# Input validation
# =============================================================================

class TestSnapshotInput:
    """Target validation errors."""

    def test_empty_targets(self, build_index, worker_source):
        index = build_index(worker_source, "worker.ts")
        with pytest.raises(SnapshotInputError, match="At least one target chunk is required"):
            generate_snapshot(index, [])

    def test_targets_from_two_files(self, build_index, worker_source):
        first = build_index(worker_source, "a.ts")
        second = build_index(TYPES_SOURCE, "b.ts")
        targets = [_target(first, "retry"), _target(second, "load")]
        with pytest.raises(SnapshotInputError) as exc_info:
            generate_snapshot(first, targets)
        assert str(exc_info.value) == (
            "All targets must be from the same file. Got 2 different files: a.ts, b.ts"
        )

    def test_index_for_another_file(self, build_index, worker_source):
        first = build_index(worker_source, "a.ts")
        second = build_index(TYPES_SOURCE, "b.ts")
        with pytest.raises(SnapshotInputError, match="b.ts"):
            generate_snapshot(first, [_target(second, "load")])


# =============================================================================
# Container members
# =============================================================================

class TestContainerSnapshots:
    """Targets that are members of a class or namespace."""

    def test_member_pulls_only_its_constant(self, build_index, worker_source):
        index = build_index(worker_source, "worker.ts")
        snapshot = generate_snapshot(index, [_target(index, "retry", "Worker")])
        assert snapshot.snapshot == (
            "// worker.ts\n"
            "\n"
            "const MAX_RETRIES = 3;\n"
            "\n"
            "export class Worker {\n"
            "  retry(task: () => void): void {\n"
            "    for (let i = 0; i < MAX_RETRIES; i++) {\n"
            "      task();\n"
            "    }\n"
            "  }\n"
            "}"
        )
        assert "BATCH_SIZE" not in snapshot.snapshot
        assert "batch(" not in snapshot.snapshot
        assert snapshot.relative_path == "worker.ts"
        assert snapshot.target_count == 1
        assert snapshot.dependency_count == 2

    def test_member_property_and_import(self, build_index, worker_source):
        index = build_index(worker_source, "worker.ts")
        snapshot = generate_snapshot(index, [_target(index, "constructor", "Worker")])
        assert snapshot.snapshot == (
            "// worker.ts\n"
            "\n"
            "import { Logger } from './logger';\n"
            "\n"
            "export class Worker {\n"
            "  private log: Logger;\n"
            "\n"
            "  constructor(log: Logger) {\n"
            "    this.log = log;\n"
            "  }\n"
            "}"
        )

    def test_dependency_kinds(self, build_index, worker_source):
        index = build_index(worker_source, "worker.ts")
        resolution = resolve_dependencies(index, [_target(index, "constructor", "Worker")])
        assert [(d.kind, d.name) for d in resolution.dependencies] == [
            ("import", "Logger"),
            ("container-declaration", "Worker"),
            ("member-property", "log"),
        ]
        assert {d.kind for d in resolution.dependencies} <= set(get_args(DependencyKind))
        assert resolution.target_ranges == [(10, 12)]

    def test_two_members_share_one_wrapper(self, build_index, worker_source):
        index = build_index(worker_source, "worker.ts")
        targets = [_target(index, "batch", "Worker"), _target(index, "retry", "Worker")]
        text = generate_snapshot(index, targets).snapshot
        assert text.count("export class Worker {") == 1
        assert text.index("retry(") < text.index("batch(")
        assert "const MAX_RETRIES = 3;\nconst BATCH_SIZE = 50;" in text

    def test_namespace_member(self, build_index):
        index = build_index(NAMESPACE_SOURCE, "geo.ts")
        snapshot = generate_snapshot(index, [_target(index, "dist", "Geo")])
        assert snapshot.snapshot == (
            "// geo.ts\n"
            "\n"
            "namespace Geo {\n"
            "  const R = 6371;\n"
            "\n"
            "  export function dist(): number {\n"
            "    return R;\n"
            "  }\n"
            "}"
        )
        assert snapshot.dependency_count == 2


# =============================================================================
# Root targets
# =============================================================================

class TestRootSnapshots:
    """Targets declared at the top level."""

    def test_transitive_type_dependencies(self, build_index):
        index = build_index(TYPES_SOURCE, "types.ts")
        snapshot = generate_snapshot(index, [_target(index, "load")])
        assert snapshot.snapshot == (
            "// types.ts\n"
            "\n"
            "type Id = string;\n"
            "interface User { id: Id; }\n"
            "\n"
            "function load(u: User): User { return u; }"
        )
        assert snapshot.dependency_count == 2

    def test_unresolved_identifiers_are_left_alone(self, build_index):
        source = "import { api } from './api';\nexport function call() {\n  return api(remote);\n}\n"
        index = build_index(source, "call.ts")
        snapshot = generate_snapshot(index, [_target(index, "call")])
        assert snapshot.dependency_count == 1
        assert "remote" in snapshot.snapshot

    def test_object_member_target_renders_enclosing_declaration(self, build_index, mixed_source):
        index = build_index(mixed_source, "loader.ts")
        text = generate_snapshot(index, [_target(index, "start", "handlers")]).snapshot
        assert "export const handlers = {" in text
        assert "export enum Mode {" in text
        assert "FileLoader" not in text

    def test_multiple_root_targets_in_file_order(self, build_index):
        index = build_index(TYPES_SOURCE, "types.ts")
        targets = [_target(index, "unrelated"), _target(index, "Id")]
        text = generate_snapshot(index, targets).snapshot
        assert text == "// types.ts\n\ntype Id = string;\n\nfunction unrelated() {}"


# =============================================================================
# Idempotence & batch
# =============================================================================

class TestSnapshotProperties:
    """Deduplication, repeatability and the batch entry point."""

    def test_no_duplicate_import_lines(self, build_index, mixed_source):
        index = build_index(mixed_source, "loader.ts")
        targets = [_target(index, "load", "FileLoader"), _target(index, "close", "FileLoader")]
        lines = generate_snapshot(index, targets).snapshot.split("\n")
        imports = [line for line in lines if line.startswith("import ")]
        assert len(imports) == len(set(imports)) == 2

    def test_resolution_is_repeatable(self, build_index, mixed_source):
        index = build_index(mixed_source, "loader.ts")
        targets = [_target(index, "load", "FileLoader")]
        first = resolve_dependencies(index, targets)
        second = resolve_dependencies(index, targets)
        assert len(first.dependencies) == len(second.dependencies)
        assert render_snapshot(index, first, targets) == render_snapshot(index, second, targets)

    def test_batch_groups_by_file(self, build_index, worker_source):
        worker = build_index(worker_source, "worker.ts")
        types = build_index(TYPES_SOURCE, "types.ts")
        indexes = {"worker.ts": worker, "types.ts": types}
        targets = [_target(types, "load"), _target(worker, "retry"), _target(types, "Id")]
        snapshots = generate_snapshots(indexes, targets)
        assert [s.relative_path for s in snapshots] == ["types.ts", "worker.ts"]
        assert snapshots[0].target_count == 2

    def test_batch_accepts_loader_callable(self, build_index):
        types = build_index(TYPES_SOURCE, "types.ts")
        snapshots = generate_snapshots(lambda path: types, [_target(types, "load")])
        assert len(snapshots) == 1

    def test_batch_missing_index(self, build_index):
        types = build_index(TYPES_SOURCE, "types.ts")
        with pytest.raises(SourceIndexNotFoundError, match="types.ts"):
            generate_snapshots({}, [_target(types, "load")])


class TestSourceIndex:
    """Lookups on the per-file index."""

    def test_from_file(self, tmp_path):
        path = tmp_path / "src" / "types.ts"
        path.parent.mkdir()
        path.write_text(TYPES_SOURCE, encoding="utf-8")
        index = SourceIndex.from_file(str(path), str(tmp_path))
        assert index.relative_path == "src/types.ts"
        assert [c.name for c in index.chunks] == ["Id", "User", "load", "unrelated"]

    def test_parent_of(self, build_index, worker_source):
        index = build_index(worker_source, "worker.ts")
        retry = _target(index, "retry")
        assert index.parent_of(retry).name == "Worker"
        assert index.parent_of(index.parent_of(retry)) is None

    def test_ensure_indentation(self):
        assert ensure_indentation("  already") == "  already"
        assert ensure_indentation("a\n\nb") == "  a\n\n  b"


# =============================================================================
# Nested scopes
# =============================================================================

class TestNestedScopes:
    """Targets inside unnamed, nested and function-local scopes."""

    def test_default_export_class_gets_a_wrapper(self, build_index, provider, caplog):
        index = build_index(DEFAULT_CLASS_SOURCE, "anon.ts")
        snapshot = generate_snapshot(index, [_target(index, "run", "(default)")])
        assert snapshot.snapshot == (
            "// anon.ts\n"
            "\n"
            "const K = 1;\n"
            "\n"
            "export default class {\n"
            "  run() {\n"
            "    return K;\n"
            "  }\n"
            "}"
        )
        assert snapshot.dependency_count == 2
        assert "no syntax node" not in caplog.text
        _assert_parses(provider, snapshot.snapshot)

    def test_class_inside_namespace_keeps_both_wrappers(self, build_index, provider):
        index = build_index(NESTED_CLASS_SOURCE, "ns.ts")
        snapshot = generate_snapshot(index, [_target(index, "size", "Box")])
        assert snapshot.snapshot == (
            "// ns.ts\n"
            "\n"
            "namespace NS {\n"
            "  const LIMIT = 5;\n"
            "\n"
            "  export class Box {\n"
            "    size(): number {\n"
            "      return LIMIT;\n"
            "    }\n"
            "  }\n"
            "}"
        )
        assert snapshot.dependency_count == 3
        _assert_parses(provider, snapshot.snapshot)

    def test_nested_wrappers_are_container_dependencies(self, build_index):
        index = build_index(NESTED_CLASS_SOURCE, "ns.ts")
        resolution = resolve_dependencies(index, [_target(index, "size", "Box")])
        kinds = [(d.kind, d.name) for d in resolution.dependencies]
        assert kinds == [
            ("container-declaration", "NS"),
            ("constant", "LIMIT"),
            ("container-declaration", "Box"),
        ]
        by_name = {d.name: d for d in resolution.dependencies}
        assert by_name["NS"].container_id is None
        assert by_name["LIMIT"].container_id == by_name["Box"].container_id

    def test_function_local_target_pulls_enclosing_locals(self, build_index, provider):
        index = build_index(LOCAL_SOURCE, "loc.ts")
        snapshot = generate_snapshot(index, [_target(index, "inner", "outer")])
        assert snapshot.snapshot == (
            "// loc.ts\n"
            "\n"
            "  const K = 1;\n"
            "\n"
            "  function inner() {\n"
            "    return K;\n"
            "  }"
        )
        assert snapshot.dependency_count == 1
        _assert_parses(provider, snapshot.snapshot)

    def test_inner_declaration_hides_top_level_one(self, build_index):
        index = build_index(LOCAL_SOURCE, "loc.ts")
        resolution = resolve_dependencies(index, [_target(index, "inner", "outer")])
        assert [(d.start_line, d.name) for d in resolution.dependencies] == [(3, "K")]


# =============================================================================
# Output syntax
# =============================================================================

SYNTAX_CASES = [
    (WORKER_SOURCE, "retry", "Worker"),
    (WORKER_SOURCE, "constructor", "Worker"),
    (WORKER_SOURCE, "MAX_RETRIES", None),
    (TYPES_SOURCE, "load", None),
    (NAMESPACE_SOURCE, "dist", "Geo"),
    (MIXED_SOURCE, "load", "FileLoader"),
    (MIXED_SOURCE, "start", "handlers"),
    (MIXED_SOURCE, "Loader", None),
    (DEFAULT_CLASS_SOURCE, "run", "(default)"),
    (NESTED_CLASS_SOURCE, "size", "Box"),
    (LOCAL_SOURCE, "inner", "outer"),
]


class TestSnapshotSyntax:
    """Every rendered snapshot parses cleanly on its own."""

    @pytest.mark.parametrize("source,name,parent_name", SYNTAX_CASES)
    def test_snapshot_reparses_without_errors(self, build_index, provider, source, name, parent_name):
        index = build_index(source, "case.ts")
        snapshot = generate_snapshot(index, [_target(index, name, parent_name)])
        _assert_parses(provider, snapshot.snapshot)

    def test_mixed_wrapper_and_root_targets(self, build_index, provider, worker_source):
        index = build_index(worker_source, "worker.ts")
        targets = [_target(index, "BATCH_SIZE"), _target(index, "retry", "Worker")]
        _assert_parses(provider, generate_snapshot(index, targets).snapshot)


class TestPlanReuse:
    """One placement pass per snapshot."""

    def test_generate_snapshot_plans_once(self, build_index, worker_source, monkeypatch):
        index = build_index(worker_source, "worker.ts")
        calls = []
        original = snapshot_module._plan

        def _counting(*args):
            calls.append(args)
            return original(*args)

        monkeypatch.setattr(snapshot_module, "_plan", _counting)
        generate_snapshot(index, [_target(index, "retry", "Worker")])
        assert len(calls) == 1

    def test_chunk_map_is_cached(self, build_index, worker_source):
        index = build_index(worker_source, "worker.ts")
        assert index.chunks_by_id is index.chunks_by_id
