"""
semkit Symbol Lookup

Turns a textual symbol query into the chunks it names.

Accepted forms::

    retry                             name only
    Worker.retry                      parent.name
    worker.ts::Worker.retry           file::parent.name
    Worker > retry                    hierarchy path
    src/worker.ts > Worker > retry    file > parent > name
    retry, kind = method              any of the above plus a kind filter

A leading ``symbol =`` is accepted and ignored.  Matching is exact and
case-sensitive.  When it finds nothing, a case-insensitive pass supplies
near matches for a "did you mean" hint; an unknown file gets basename
and suffix suggestions instead.  Near matches are never returned as
results.
"""

import logging
import posixpath
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from semkit.core.models import Chunk
from semkit.exceptions import SymbolNotFoundError, SymbolQueryError

logger = logging.getLogger(__name__)

_PREFIX_RE = re.compile(r"^symbol\s*=\s*", re.IGNORECASE)
_KIND_RE = re.compile(r",\s*kind\s*=\s*(\S+)\s*$", re.IGNORECASE)
_FILE_EXT_RE = re.compile(r"\.\w+$")

FILE_SEPARATOR = "::"
HIERARCHY_SEPARATOR = " > "
MAX_HINTS = 5


# =============================================================================
# Query parsing
# =============================================================================

@dataclass
class SymbolQuery:
    """A parsed symbol path: optional file, optional parent chain, name, kind."""
    name: str
    parent_name: Optional[str] = None
    file_path: Optional[str] = None
    kind: Optional[str] = None


def _split_expression(expr: str) -> tuple:
    """``Parent.name`` -> ``("Parent", "name")``; a bare name has no parent."""
    dot = expr.rfind(".")
    if dot <= 0 or dot == len(expr) - 1:
        return None, expr
    return expr[:dot], expr[dot + 1:]


def _looks_like_file(segment: str) -> bool:
    return bool(_FILE_EXT_RE.search(segment)) or "/" in segment or "\\" in segment


def _parse_hierarchy(path: str) -> SymbolQuery:
    segments = [s.strip() for s in path.split(HIERARCHY_SEPARATOR) if s.strip()]
    if len(segments) == 1:
        return SymbolQuery(name=segments[0])
    if _looks_like_file(segments[0]):
        parents = segments[1:-1]
        return SymbolQuery(
            name=segments[-1],
            parent_name=".".join(parents) if parents else None,
            file_path=segments[0],
        )
    return SymbolQuery(name=segments[-1], parent_name=".".join(segments[:-1]))


def parse_symbol_query(text: str) -> SymbolQuery:
    """
    Parse one symbol query.

    ``::`` takes priority over `` > ``, which takes priority over a dot.
    The kind filter is lower-cased.

    Raises:
        SymbolQueryError: Nothing is left to look up once the prefix and
            kind filter are removed.
    """
    path = _PREFIX_RE.sub("", text.strip(), count=1).strip()
    kind = None
    match = _KIND_RE.search(path)
    if match:
        kind = match.group(1).lower()
        path = path[:match.start()].strip()
    if not path:
        raise SymbolQueryError(f"Empty symbol query: {text!r}")

    if FILE_SEPARATOR in path:
        file_part, _, symbol_part = path.partition(FILE_SEPARATOR)
        file_part, symbol_part = file_part.strip(), symbol_part.strip()
        if not symbol_part:
            raise SymbolQueryError(f"No symbol after '{FILE_SEPARATOR}' in {text!r}")
        parent_name, name = _split_expression(symbol_part)
        query = SymbolQuery(name=name, parent_name=parent_name, file_path=file_part or None)
    elif HIERARCHY_SEPARATOR in path:
        query = _parse_hierarchy(path)
    else:
        parent_name, name = _split_expression(path)
        query = SymbolQuery(name=name, parent_name=parent_name)

    query.kind = kind
    return query


# =============================================================================
# Resolution
# =============================================================================

@dataclass
class NearMatch:
    """A name or path that almost matched, offered as a hint."""
    value: str
    location: str
    kind: str
    """``case-mismatch`` or ``partial-path``."""


@dataclass
class LookupResult:
    """Exact matches for a query, or near matches to hint with."""
    query: SymbolQuery
    matches: List[Chunk] = field(default_factory=list)
    near_matches: List[NearMatch] = field(default_factory=list)
    has_case_hints: bool = False
    has_path_hints: bool = False

    @property
    def found(self) -> bool:
        return bool(self.matches)

    def hint(self) -> str:
        if self.has_case_hints:
            return format_case_hint(self.query.name, self.near_matches)
        if self.has_path_hints and self.query.file_path is not None:
            return format_path_hint(self.query.file_path, self.near_matches)
        return f'No symbol "{self.query.name}" found.'

    def require(self) -> List[Chunk]:
        """The matches, or :class:`SymbolNotFoundError` carrying the hint."""
        if not self.matches:
            raise SymbolNotFoundError(self.query.name, self.hint())
        return self.matches


def _normalize_path(path: str) -> str:
    return path.replace("\\", "/")


def _same(a: str, b: str, case_sensitive: bool) -> bool:
    return a == b if case_sensitive else a.lower() == b.lower()


def _matches_parent(chunk: Chunk, parent_name: str, case_sensitive: bool) -> bool:
    if chunk.parent_name is not None and _same(chunk.parent_name, parent_name, case_sensitive):
        return True
    if "." not in parent_name:
        return False
    # Outer.Inner must sit directly before the chunk's own breadcrumb segment.
    chain = parent_name.split(".")
    segments = [s.strip() for s in chunk.breadcrumb.split(" > ")]
    if len(segments) < len(chain) + 1:
        return False
    start = len(segments) - 1 - len(chain)
    return all(_same(segments[start + i], part, case_sensitive) for i, part in enumerate(chain))


def _find(
    name: str, parent_name: Optional[str], kind: Optional[str], files: Sequence, case_sensitive: bool,
) -> List[Chunk]:
    found = []
    for source in files:
        for chunk in source.chunks:
            if not _same(chunk.name, name, case_sensitive):
                continue
            if parent_name is not None and not _matches_parent(chunk, parent_name, case_sensitive):
                continue
            if kind is not None and chunk.node_kind.lower() != kind.lower():
                continue
            found.append(chunk)
    return found


def _path_hints(query: SymbolQuery, files: Sequence) -> LookupResult:
    requested = _normalize_path(query.file_path)
    basename = posixpath.basename(requested)
    near = []
    for source in files:
        relative = _normalize_path(source.relative_path)
        if posixpath.basename(relative) == basename or relative.endswith(f"/{requested}"):
            near.append(NearMatch(value=relative, location=relative, kind="partial-path"))
    return LookupResult(query=query, near_matches=near, has_path_hints=bool(near))


def resolve_symbol(query: SymbolQuery, files: Iterable) -> LookupResult:
    """
    Find the chunks *query* names among *files*.

    *files* holds anything with ``relative_path`` and ``chunks``, such
    as :class:`~semkit.core.snapshot.SourceIndex` or
    :class:`~semkit.core.models.ChunkedFile`.  A dotted query whose
    split finds nothing is retried as one literal name, so chunks such
    as ``import:./logger`` stay reachable.
    """
    candidates = list(files)
    scoped = candidates
    if query.file_path is not None:
        requested = _normalize_path(query.file_path)
        scoped = [f for f in candidates if _normalize_path(f.relative_path) == requested]
        if not scoped:
            return _path_hints(query, candidates)

    for case_sensitive in (True, False):
        found = _find(query.name, query.parent_name, query.kind, scoped, case_sensitive)
        if not found and query.parent_name is not None:
            literal = f"{query.parent_name}.{query.name}"
            found = _find(literal, None, query.kind, scoped, case_sensitive)
        if found and case_sensitive:
            return LookupResult(query=query, matches=found)
        if found:
            near = [
                NearMatch(value=c.name, location=f"{c.relative_path}:{c.start_line}", kind="case-mismatch")
                for c in found
            ]
            return LookupResult(query=query, near_matches=near, has_case_hints=True)

    logger.debug(f"No chunk matches symbol query {query}")
    return LookupResult(query=query)


# =============================================================================
# Hints
# =============================================================================

def _suggestions(near_matches: Sequence[NearMatch], render) -> str:
    lines = "\n".join(render(m) for m in near_matches[:MAX_HINTS])
    extra = len(near_matches) - MAX_HINTS
    return lines + (f"\n  ... and {extra} more" if extra > 0 else "")


def format_case_hint(requested_name: str, near_matches: Sequence[NearMatch]) -> str:
    if not near_matches:
        return f'No symbol "{requested_name}" found.'
    if len(near_matches) == 1:
        match = near_matches[0]
        return f'No symbol "{requested_name}" found. Did you mean "{match.value}" ({match.location})?'
    listing = _suggestions(near_matches, lambda m: f'  - "{m.value}" ({m.location})')
    return f'No symbol "{requested_name}" found. Did you mean one of:\n{listing}'


def format_path_hint(requested_path: str, near_matches: Sequence[NearMatch]) -> str:
    if not near_matches:
        return f'No file "{requested_path}" found.'
    if len(near_matches) == 1:
        return f'No file "{requested_path}" found. Similar path: {near_matches[0].value}'
    listing = _suggestions(near_matches, lambda m: f"  - {m.value}")
    return f'No file "{requested_path}" found. Similar paths:\n{listing}'
