"""
Tests for semkit.core.lookup: symbol query parsing and resolution.
"""

import pytest

from semkit.core.lookup import (
    NearMatch,
    SymbolQuery,
    format_case_hint,
    format_path_hint,
    parse_symbol_query,
    resolve_symbol,
)
from semkit.exceptions import SymbolNotFoundError, SymbolQueryError

from conftest import TYPES_SOURCE

NESTED_SOURCE = """\
namespace Outer {
  export class Inner {
    run() {}
  }
}
class Inner {
  run() {}
}
"""


# =============================================================================
# Parsing
# =============================================================================

class TestParseSymbolQuery:
    """Query notations."""

    @pytest.mark.parametrize("text,expected", [
        ("retry", SymbolQuery(name="retry")),
        ("Worker.retry", SymbolQuery(name="retry", parent_name="Worker")),
        ("worker.ts::retry", SymbolQuery(name="retry", file_path="worker.ts")),
        ("src/worker.ts::Worker.retry", SymbolQuery(name="retry", parent_name="Worker", file_path="src/worker.ts")),
        ("Worker > retry", SymbolQuery(name="retry", parent_name="Worker")),
        ("src/worker.ts > retry", SymbolQuery(name="retry", file_path="src/worker.ts")),
        ("src/worker.ts > Worker > retry", SymbolQuery(name="retry", parent_name="Worker", file_path="src/worker.ts")),
        ("Outer > Inner > run", SymbolQuery(name="run", parent_name="Outer.Inner")),
        (".hidden", SymbolQuery(name=".hidden")),
    ])
    def test_notations(self, text, expected):
        assert parse_symbol_query(text) == expected

    def test_prefix_and_kind_filter(self):
        query = parse_symbol_query("Symbol = Worker > retry, kind = Method")
        assert query == SymbolQuery(name="retry", parent_name="Worker", kind="method")

    def test_prefix_without_spaces(self):
        assert parse_symbol_query("symbol=load").name == "load"

    @pytest.mark.parametrize("text", ["", "   ", "symbol =", ", kind = function", "a.ts::"])
    def test_empty_queries(self, text):
        with pytest.raises(SymbolQueryError):
            parse_symbol_query(text)


# =============================================================================
# Resolution
# =============================================================================

class TestResolveSymbol:
    """Exact matches, filters and near-match hints."""

    def test_bare_name(self, build_index):
        index = build_index(TYPES_SOURCE, "types.ts")
        result = resolve_symbol(parse_symbol_query("load"), [index])
        assert result.found
        assert [c.name for c in result.matches] == ["load"]

    def test_parent_filter(self, build_index, worker_source):
        index = build_index(worker_source, "worker.ts")
        result = index.lookup("Worker.retry")
        assert [(c.parent_name, c.name) for c in result.matches] == [("Worker", "retry")]

    def test_dotted_parent_chain_uses_breadcrumb(self, build_index):
        index = build_index(NESTED_SOURCE, "nested.ts")
        result = index.lookup("Outer > Inner > run")
        assert len(result.matches) == 1
        assert result.matches[0].start_line == 3

    def test_plain_parent_matches_every_same_named_parent(self, build_index):
        index = build_index(NESTED_SOURCE, "nested.ts")
        assert [c.start_line for c in index.lookup("Inner.run").matches] == [3, 7]

    def test_kind_filter(self, build_index):
        index = build_index(NESTED_SOURCE, "nested.ts")
        assert [c.node_kind for c in index.lookup("Inner, kind = class").matches] == ["class", "class"]
        assert not index.lookup("Inner, kind = function").found

    def test_literal_dotted_name(self, build_index, worker_source):
        index = build_index(worker_source, "worker.ts")
        result = index.lookup("import:./logger")
        assert [c.name for c in result.matches] == ["import:./logger"]

    def test_file_scope(self, build_index, worker_source):
        worker = build_index(worker_source, "src/worker.ts")
        types = build_index(TYPES_SOURCE, "src/types.ts")
        result = resolve_symbol(parse_symbol_query("src/types.ts::load"), [worker, types])
        assert [c.relative_path for c in result.matches] == ["src/types.ts"]

    def test_case_mismatch_gives_hint_not_match(self, build_index):
        index = build_index(TYPES_SOURCE, "types.ts")
        result = index.lookup("LOAD")
        assert not result.found
        assert result.has_case_hints
        assert result.hint() == 'No symbol "LOAD" found. Did you mean "load" (types.ts:3)?'

    def test_unknown_file_gives_path_hint(self, build_index):
        index = build_index(TYPES_SOURCE, "src/types.ts")
        result = index.lookup("lib/types.ts::load")
        assert result.has_path_hints
        assert result.hint() == 'No file "lib/types.ts" found. Similar path: src/types.ts'

    def test_nothing_found(self, build_index):
        index = build_index(TYPES_SOURCE, "types.ts")
        result = index.lookup("missing")
        assert result.near_matches == []
        assert result.hint() == 'No symbol "missing" found.'

    def test_require_raises_with_hint(self, build_index):
        index = build_index(TYPES_SOURCE, "types.ts")
        with pytest.raises(SymbolNotFoundError) as exc_info:
            index.lookup("Load").require()
        assert "Did you mean" in str(exc_info.value)
        assert exc_info.value.query == "Load"


class TestHintFormatting:
    """Hint text for several near matches."""

    def test_case_hint_lists_at_most_five(self):
        near = [NearMatch(value=f"n{i}", location=f"a.ts:{i}", kind="case-mismatch") for i in range(7)]
        text = format_case_hint("N", near)
        assert text.startswith('No symbol "N" found. Did you mean one of:\n  - "n0" (a.ts:0)')
        assert text.endswith("  ... and 2 more")
        assert text.count("  - ") == 5

    def test_path_hint_lists_paths(self):
        near = [NearMatch(value=p, location=p, kind="partial-path") for p in ("a/x.ts", "b/x.ts")]
        assert format_path_hint("x.ts", near) == 'No file "x.ts" found. Similar paths:\n  - a/x.ts\n  - b/x.ts'
