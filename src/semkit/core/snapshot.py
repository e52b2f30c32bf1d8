"""
semkit Snapshot Generator

Builds minimal, syntactically valid excerpts of one file around a set of
target chunks.

Resolution is a heuristic over the syntax tree: every identifier inside
a target is matched by name against the declarations of its enclosing
namespace and function bodies, innermost first, then against the file's
top-level declarations.  Members also see the enclosing class's members
reached through ``this.``.  Matches are pulled in and scanned in turn
until nothing new turns up.  Identifiers declared inside the target
itself are not tracked, so a local that shadows an outer name still
pulls that declaration in, and names imported from other files are left
as they are.

Rendering order is fixed::

    // relative/path.ts
    <imports>
    <top-level declarations>
    <targets and container wrappers, in file order>

Wrappers nest: a method of a class declared in a namespace is rendered
inside both.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from tree_sitter import Node, Tree

from semkit.core.chunker import chunk_file
from semkit.core.config import SemkitConfig
from semkit.core.lookup import LookupResult, parse_symbol_query, resolve_symbol
from semkit.core.models import CONTAINER_KINDS, Chunk, Dependency, ParsedFile, ResolutionResult, Snapshot
from semkit.core.nodes import (
    SourceText, end_line, field_text, has_token, leading_decorators_start,
    named_children_of, node_range, start_line, strip_quotes,
)
from semkit.core.parser import parse_source_tree, read_source, require_grammar
from semkit.core.provider import ParserProvider
from semkit.exceptions import SnapshotInputError, SourceIndexNotFoundError

logger = logging.getLogger(__name__)


IMPORT_KINDS = frozenset(("import", "type-import"))

_FUNCTION_LIKE_KINDS = frozenset(("function", "method", "constructor", "getter", "setter", "staticBlock"))
_OBJECT_MEMBER_KINDS = frozenset(("property", "method", "getter", "setter"))

_REFERENCE_TYPES = frozenset(("identifier", "type_identifier", "shorthand_property_identifier"))
_CONTAINER_NODE_TYPES = frozenset((
    "class_declaration", "abstract_class_declaration", "class",
    "interface_declaration", "internal_module", "module",
))
_MODULE_TYPES = frozenset(("module", "internal_module"))
_SCOPE_NODE_TYPES = frozenset((
    "function_declaration", "generator_function_declaration", "function_expression",
    "function", "generator_function", "arrow_function", "method_definition", "class_static_block",
))
_UNNAMED = frozenset(("(default)", "(anonymous)"))
_INDENT_RE = re.compile(r"^(\s*)")


# =============================================================================
# Source index
# =============================================================================

@dataclass
class SourceIndex:
    """
    Everything a snapshot needs to know about one file.

    Holds the file text, its syntax tree, the parsed symbols and the
    chunks produced from them.  Build one per file with :meth:`build`
    or :meth:`from_file`.
    """
    file_path: str
    relative_path: str
    source: SourceText = field(repr=False)
    tree: Tree = field(repr=False)
    parsed_file: ParsedFile = field(repr=False)
    chunks: List[Chunk] = field(repr=False)
    _by_id: Optional[Dict[str, Chunk]] = field(default=None, init=False, repr=False, compare=False)

    @classmethod
    def build(
        cls,
        source_text: str,
        file_path: str,
        workspace_root: Optional[str] = None,
        *,
        provider: Optional[ParserProvider] = None,
        config: Optional[SemkitConfig] = None,
    ) -> "SourceIndex":
        config = config or SemkitConfig()
        parsed, tree = parse_source_tree(
            source_text, file_path, workspace_root, provider=provider, config=config,
        )
        chunked = chunk_file(parsed, source_text, config=config)
        return cls(
            file_path=parsed.file_path,
            relative_path=parsed.relative_path,
            source=SourceText(source_text),
            tree=tree,
            parsed_file=parsed,
            chunks=chunked.chunks,
        )

    @classmethod
    def from_file(
        cls,
        file_path: str,
        workspace_root: Optional[str] = None,
        *,
        provider: Optional[ParserProvider] = None,
        config: Optional[SemkitConfig] = None,
    ) -> "SourceIndex":
        config = config or SemkitConfig()
        require_grammar(str(file_path), config)
        return cls.build(
            read_source(file_path), str(file_path), workspace_root, provider=provider, config=config,
        )

    @property
    def chunks_by_id(self) -> Dict[str, Chunk]:
        if self._by_id is None:
            self._by_id = {chunk.id: chunk for chunk in self.chunks}
        return self._by_id

    def parent_of(self, chunk: Chunk) -> Optional[Chunk]:
        """The chunk enclosing *chunk*, by id or else by name and position."""
        if chunk.parent_chunk_id is not None:
            parent = self.chunks_by_id.get(chunk.parent_chunk_id)
            if parent is not None:
                return parent
        if chunk.parent_name is None:
            return None
        enclosing = [
            c for c in self.chunks
            if c.name == chunk.parent_name
            and c.start_line <= chunk.start_line and chunk.end_line <= c.end_line
            and c.id != chunk.id
        ]
        return max(enclosing, key=lambda c: c.depth) if enclosing else None

    def find_chunks(
        self, name: str, parent_name: Optional[str] = None, kind: Optional[str] = None,
    ) -> List[Chunk]:
        """Chunks called *name*, optionally only those directly under *parent_name* or of *kind*."""
        return [
            chunk for chunk in self.chunks
            if chunk.name == name
            and (parent_name is None or chunk.parent_name == parent_name)
            and (kind is None or chunk.node_kind.lower() == kind.lower())
        ]

    def lookup(self, query: str) -> LookupResult:
        """Resolve a symbol query such as ``Worker.retry`` or ``a.ts::Worker > retry`` in this file."""
        return resolve_symbol(parse_symbol_query(query), [self])


# =============================================================================
# Declaration tables
# =============================================================================

@dataclass
class _Declaration:
    """A resolvable declaration: one statement or one container member."""
    names: Tuple[str, ...]
    kind: str
    key: int
    start_line: int
    end_line: int


def _binding_names(source: SourceText, pattern: Node) -> List[str]:
    """Names bound by a declarator name, destructuring patterns included."""
    if pattern.type in ("identifier", "shorthand_property_identifier_pattern"):
        return [source.of(pattern)]
    if pattern.type in ("object_assignment_pattern", "assignment_pattern"):
        left = pattern.child_by_field_name("left")
        return _binding_names(source, left) if left is not None else []
    if pattern.type == "pair_pattern":
        value = pattern.child_by_field_name("value")
        return _binding_names(source, value) if value is not None else []
    names = []
    for child in named_children_of(pattern):
        names.extend(_binding_names(source, child))
    return names


def _import_names(source: SourceText, node: Node) -> List[str]:
    names = []
    for part in named_children_of(node):
        if part.type == "import_require_clause":
            names.extend(source.of(c) for c in named_children_of(part, ("identifier",)))
        if part.type != "import_clause":
            continue
        for item in named_children_of(part):
            if item.type == "identifier":
                names.append(source.of(item))
            elif item.type == "namespace_import":
                names.extend(source.of(c) for c in named_children_of(item, ("identifier",)))
            elif item.type == "named_imports":
                for specifier in named_children_of(item, ("import_specifier",)):
                    local = specifier.child_by_field_name("alias") or specifier.child_by_field_name("name")
                    names.append(source.of(local))
    return names


def _classify(source: SourceText, statement: Node) -> Optional[Tuple[List[str], str]]:
    """``(names, dependency kind)`` for a declaration statement, else None."""
    node = statement
    if node.type == "export_statement":
        node = node.child_by_field_name("declaration")
        if node is None:
            return None
    if node.type == "ambient_declaration":
        inner = named_children_of(node)
        if has_token(node, "global") or not inner:
            return None
        node = inner[0]
    if node.type == "expression_statement":
        inner = named_children_of(node)
        if len(inner) != 1 or inner[0].type not in _MODULE_TYPES:
            return None
        node = inner[0]

    kind = node.type
    if kind == "import_statement":
        return _import_names(source, node), "type-import" if has_token(node, "type") else "import"
    if kind == "import_alias":
        return [source.of(c) for c in named_children_of(node, ("identifier",))[:1]], "import"
    if kind in ("lexical_declaration", "variable_declaration"):
        names = []
        for declarator in named_children_of(node, ("variable_declarator",)):
            name = declarator.child_by_field_name("name")
            if name is not None:
                names.extend(_binding_names(source, name))
        constant = field_text(source, node, "kind") == "const"
        return names, "constant" if constant else "variable"
    if kind == "type_alias_declaration":
        return [field_text(source, node, "name")], "type-alias"
    if kind == "interface_declaration":
        return [field_text(source, node, "name")], "interface"
    if kind == "enum_declaration":
        return [field_text(source, node, "name")], "enum"
    if kind in ("function_declaration", "generator_function_declaration", "function_signature"):
        return [field_text(source, node, "name")], "function"
    if kind in ("class_declaration", "abstract_class_declaration"):
        return [field_text(source, node, "name")], "other"
    if kind in _MODULE_TYPES:
        name = node.child_by_field_name("name")
        if name is None or name.type == "string":
            return None
        return [source.of(name).split(".")[0].strip()], "other"
    return None


def _statement_table(source: SourceText, statements: Iterable[Node]) -> Dict[str, List[_Declaration]]:
    table: Dict[str, List[_Declaration]] = {}
    for statement in statements:
        if statement.type in ("comment", "ERROR"):
            continue
        classified = _classify(source, statement)
        if classified is None:
            continue
        names, kind = classified
        names = tuple(n for n in names if n)
        if not names:
            continue
        rng = node_range(source, statement)
        declaration = _Declaration(names, kind, statement.start_byte, rng.start_line, rng.end_line)
        for name in names:
            table.setdefault(name, []).append(declaration)
    return table


def _parameter_properties(source: SourceText, constructor: Node) -> List[str]:
    """Names declared by ``constructor(private readonly x: T)`` parameters."""
    names = []
    params = constructor.child_by_field_name("parameters")
    for param in named_children_of(params, ("required_parameter", "optional_parameter")):
        is_property = has_token(param, "readonly") or any(
            c.type in ("accessibility_modifier", "override_modifier") for c in param.children
        )
        pattern = param.child_by_field_name("pattern")
        if is_property and pattern is not None and pattern.type == "identifier":
            names.append(source.of(pattern))
    return names


def _member_table(source: SourceText, body: Node) -> Dict[str, List[_Declaration]]:
    """Class members reachable through ``this.<name>``."""
    table: Dict[str, List[_Declaration]] = {}
    for member in named_children_of(body):
        name = field_text(source, member, "name")
        if member.type in ("public_field_definition", "property_signature"):
            kind = "member-property"
            names = [name]
        elif member.type in ("method_definition", "method_signature", "abstract_method_signature"):
            kind = "other"
            names = [name]
            if name == "constructor":
                names = _parameter_properties(source, member)
        else:
            continue
        rng = node_range(source, member, leading_decorators_start(member))
        declaration = _Declaration(tuple(names), kind, member.start_byte, rng.start_line, rng.end_line)
        for local in names:
            table.setdefault(local, []).append(declaration)
    return table


def _collect_references(source: SourceText, root: Node, first: int, last: int) -> Tuple[Set[str], Set[str]]:
    """Identifiers and ``this.`` member names on lines *first*..*last*."""
    names: Set[str] = set()
    members: Set[str] = set()
    stack = [root]
    while stack:
        node = stack.pop()
        if end_line(node) < first or start_line(node) > last:
            continue
        if node.type in _REFERENCE_TYPES:
            if first <= start_line(node) <= last:
                names.add(source.of(node))
            continue
        if node.type == "member_expression":
            obj = node.child_by_field_name("object")
            prop = node.child_by_field_name("property")
            if obj is not None and obj.type == "this" and prop is not None and first <= start_line(prop) <= last:
                members.add(source.of(prop))
        stack.extend(node.children)
    return names, members


# =============================================================================
# Target placement
# =============================================================================

@dataclass
class _Scope:
    """A class, interface, namespace or function body enclosing a target.

    Wrapped scopes are synthesized around their contents in the output;
    the others only contribute declarations to name lookup.
    """
    chunk: Chunk
    node: Optional[Node]
    parent_id: Optional[str]
    statements: Dict[str, List[_Declaration]] = field(default_factory=dict)
    members: Dict[str, List[_Declaration]] = field(default_factory=dict)
    wrapped: bool = False

    @property
    def body(self) -> Optional[Node]:
        return self.node.child_by_field_name("body") if self.node is not None else None


@dataclass
class _Plan:
    """Where each target goes and which scopes it can see."""
    root_targets: List[Chunk] = field(default_factory=list)
    member_targets: List[Tuple[Chunk, str]] = field(default_factory=list)
    scopes: Dict[str, _Scope] = field(default_factory=dict)
    target_scopes: Dict[str, Optional[str]] = field(default_factory=dict)

    @property
    def targets(self) -> List[Chunk]:
        return self.root_targets + [chunk for chunk, _ in self.member_targets]

    @property
    def ranges(self) -> List[Tuple[int, int]]:
        return sorted((c.start_line, c.end_line) for c in self.targets)

    @property
    def wrappers(self) -> Dict[str, _Scope]:
        return {scope_id: scope for scope_id, scope in self.scopes.items() if scope.wrapped}

    def wrapper_parent(self, scope: _Scope) -> Optional[str]:
        parent = self.scopes.get(scope.parent_id) if scope.parent_id is not None else None
        return scope.parent_id if parent is not None and parent.wrapped else None

    def home(self, scope_id: Optional[str]) -> Optional[str]:
        """The wrapper a declaration found in *scope_id* renders inside."""
        if scope_id is None or not self.scopes[scope_id].wrapped:
            return None
        return scope_id

    def lookup(
        self, name: str, scope_id: Optional[str], top_level: Dict[str, List[_Declaration]],
    ) -> List[Tuple[_Declaration, Optional[str]]]:
        """Declarations of *name* in the innermost enclosing scope that has one."""
        while scope_id is not None:
            scope = self.scopes[scope_id]
            if name in scope.statements:
                return [(d, scope_id) for d in scope.statements[name]]
            scope_id = scope.parent_id
        return [(d, None) for d in top_level.get(name, [])]

    def enclosing_class(self, scope_id: Optional[str]) -> Optional[_Scope]:
        """The nearest class scope, if it is rendered as a wrapper."""
        while scope_id is not None:
            scope = self.scopes[scope_id]
            if scope.chunk.node_kind == "class":
                return scope if scope.wrapped else None
            scope_id = scope.parent_id
        return None


def _names_match(source: SourceText, node: Node, chunk: Chunk) -> bool:
    name_node = node.child_by_field_name("name")
    if name_node is None:
        return chunk.name in _UNNAMED or chunk.node_kind == "staticBlock"
    name = source.of(name_node)
    parts = [part.strip() for part in name.split(".")]
    return chunk.name in (name, strip_quotes(name)) or chunk.name in parts


def _find_node(index: SourceIndex, chunk: Chunk, types: frozenset) -> Optional[Node]:
    """The outermost node of one of *types* that spans *chunk* and carries its name."""
    stack = [index.tree.root_node]
    while stack:
        node = stack.pop()
        if end_line(node) < chunk.start_line or start_line(node) > chunk.end_line:
            continue
        if (
            node.type in types
            and end_line(node) == chunk.end_line
            and start_line(node) >= chunk.start_line
            and node.child_by_field_name("body") is not None
            and _names_match(index.source, node, chunk)
        ):
            return node
        stack.extend(reversed(node.children))
    return None


def _place(index: SourceIndex, target: Chunk) -> Tuple[Chunk, List[Tuple[Chunk, bool]]]:
    """
    Return ``(chunk to render, enclosing scopes innermost first)``.

    Each scope is paired with whether it is rendered as a wrapper.
    Classes, interfaces and namespaces wrap the target until the first
    enclosing function; from there on scopes only feed name lookup and
    the target renders at the root.  Object-literal members, enum
    members and the like are replaced by their enclosing declaration.
    """
    current = target
    rendered = target
    wrapping = True
    chain: List[Tuple[Chunk, bool]] = []
    while True:
        parent = index.parent_of(current)
        if parent is None:
            return rendered, chain
        if parent.node_kind in CONTAINER_KINDS:
            chain.append((parent, wrapping))
        elif parent.node_kind in _FUNCTION_LIKE_KINDS and current.node_kind not in _OBJECT_MEMBER_KINDS:
            wrapping = False
            chain.append((parent, False))
        elif not chain:
            rendered = parent
        else:
            wrapping = False
        current = parent


def _build_scope(index: SourceIndex, chunk: Chunk, node: Optional[Node], parent_id: Optional[str]) -> _Scope:
    scope = _Scope(chunk=chunk, node=node, parent_id=parent_id)
    body = scope.body
    if body is None or chunk.node_kind == "interface":
        return scope
    if chunk.node_kind == "class":
        scope.members = _member_table(index.source, body)
    elif body.type == "statement_block":
        scope.statements = _statement_table(index.source, body.named_children)
    return scope


def _plan(index: SourceIndex, targets: Sequence[Chunk]) -> _Plan:
    nodes: Dict[str, Optional[Node]] = {}

    def _node_for(chunk: Chunk) -> Optional[Node]:
        if chunk.id not in nodes:
            types = _CONTAINER_NODE_TYPES if chunk.node_kind in CONTAINER_KINDS else _SCOPE_NODE_TYPES
            nodes[chunk.id] = _find_node(index, chunk, types)
        return nodes[chunk.id]

    def _settle(chunk: Chunk, chain: List[Tuple[Chunk, bool]]) -> Tuple[Chunk, List[Tuple[Chunk, bool]]]:
        for position, (scope, wrapped) in enumerate(chain):
            if wrapped and _node_for(scope) is None:
                logger.warning(
                    f"{index.relative_path}: no syntax node for container '{scope.name}', "
                    f"rendering it whole"
                )
                return _settle(scope, chain[position + 1:])
        return chunk, chain

    placed: Dict[str, Tuple[Chunk, List[Tuple[Chunk, bool]]]] = {}
    for target in targets:
        chunk, chain = _settle(*_place(index, target))
        placed.setdefault(chunk.id, (chunk, chain))

    def _inside_other(chunk: Chunk) -> bool:
        return any(
            other.id != chunk.id
            and other.start_line <= chunk.start_line and chunk.end_line <= other.end_line
            and (other.start_line, other.end_line) != (chunk.start_line, chunk.end_line)
            for other, _ in placed.values()
        )

    plan = _Plan()
    for chunk, chain in placed.values():
        if _inside_other(chunk):
            continue
        parent_id = None
        for scope_chunk, wrapped in reversed(chain):
            scope = plan.scopes.get(scope_chunk.id)
            if scope is None:
                scope = _build_scope(index, scope_chunk, _node_for(scope_chunk), parent_id)
                plan.scopes[scope_chunk.id] = scope
            scope.wrapped = scope.wrapped or wrapped
            parent_id = scope_chunk.id
        innermost = chain[0][0].id if chain else None
        plan.target_scopes[chunk.id] = innermost
        if chain and chain[0][1]:
            plan.member_targets.append((chunk, innermost))
        else:
            plan.root_targets.append(chunk)

    plan.root_targets.sort(key=lambda c: c.start_line)
    plan.member_targets.sort(key=lambda item: item[0].start_line)
    return plan


# =============================================================================
# Resolution
# =============================================================================

def _validate_targets(targets: Sequence[Chunk]) -> None:
    if not targets:
        raise SnapshotInputError("At least one target chunk is required")
    files = list(dict.fromkeys(t.file_path for t in targets))
    if len(files) > 1:
        raise SnapshotInputError(
            f"All targets must be from the same file. Got {len(files)} different files: {', '.join(files)}"
        )


def _check_index(index: SourceIndex, targets: Sequence[Chunk]) -> None:
    if targets[0].file_path != index.file_path:
        raise SnapshotInputError(
            f"Targets belong to {targets[0].file_path}, but the source index covers {index.file_path}"
        )


def _resolve(index: SourceIndex, plan: _Plan) -> ResolutionResult:
    target_ranges = plan.ranges
    source = index.source
    root = index.tree.root_node
    top_level = _statement_table(source, root.named_children)

    def _overlaps_target(start: int, end: int) -> bool:
        return any(start <= t_end and t_start <= end for t_start, t_end in target_ranges)

    collected: Dict[int, Dependency] = {}
    pending: List[Tuple[int, int, Optional[str]]] = [
        (c.start_line, c.end_line, plan.target_scopes.get(c.id)) for c in plan.targets
    ]
    seen = set(pending)

    while pending:
        first, last, scope_id = pending.pop()
        names, members = _collect_references(source, root, first, last)

        candidates: List[Tuple[_Declaration, Optional[str]]] = []
        for name in sorted(names):
            candidates += plan.lookup(name, scope_id, top_level)
        owner = plan.enclosing_class(scope_id)
        if owner is not None:
            for name in sorted(members):
                candidates += [(d, owner.chunk.id) for d in owner.members.get(name, [])]

        for declaration, found_in in candidates:
            if declaration.key in collected or _overlaps_target(declaration.start_line, declaration.end_line):
                continue
            collected[declaration.key] = Dependency(
                start_line=declaration.start_line,
                end_line=declaration.end_line,
                kind=declaration.kind,
                source_text=source.line_span(declaration.start_line, declaration.end_line),
                name=", ".join(declaration.names),
                container_id=plan.home(found_in),
            )
            entry = (declaration.start_line, declaration.end_line, found_in)
            if declaration.kind not in IMPORT_KINDS and entry not in seen:
                seen.add(entry)
                pending.append(entry)

    dependencies = list(collected.values())
    for scope in plan.wrappers.values():
        dependencies.append(Dependency(
            start_line=scope.chunk.start_line,
            end_line=scope.chunk.end_line,
            kind="container-declaration",
            source_text=scope.chunk.full_source,
            name=scope.chunk.name,
            container_id=plan.wrapper_parent(scope),
        ))
    dependencies.sort(key=lambda d: (d.start_line, d.end_line))
    return ResolutionResult(dependencies=dependencies, target_ranges=target_ranges)


def resolve_dependencies(index: SourceIndex, targets: Sequence[Chunk]) -> ResolutionResult:
    """
    Collect every same-file declaration the targets need, transitively.

    Names are looked up in the enclosing namespace and function bodies,
    innermost first, then at the top level.  Each declaration is
    recorded once, keyed by its position in the file.  Declarations that
    share lines with a target are never pulled in, and import statements
    are not scanned further.
    """
    _validate_targets(targets)
    _check_index(index, targets)
    return _resolve(index, _plan(index, targets))


# =============================================================================
# Rendering
# =============================================================================

def ensure_indentation(text: str) -> str:
    """Indent member text one level unless it already starts indented."""
    if text.startswith("\t") or text.startswith("  "):
        return text
    return "\n".join("" if not line.strip() else f"  {line}" for line in text.split("\n"))


def _render_wrapper(index: SourceIndex, scope: _Scope, members: List[Tuple[int, str]]) -> str:
    source = index.source
    header = source.between(source.line_offset(scope.chunk.start_line), scope.body.start_byte + 1)
    indent = _INDENT_RE.match(source.lines[scope.node.start_point[0]]).group(1)
    lines = [header]
    for position, (_, text) in enumerate(sorted(members, key=lambda m: m[0])):
        if position:
            lines.append("")
        lines.append(ensure_indentation(text))
    lines.append(f"{indent}}}")
    return "\n".join(lines)


def _render(index: SourceIndex, plan: _Plan, resolution: ResolutionResult, target_count: int) -> Snapshot:
    wrappers = plan.wrappers

    imports = [d for d in resolution.dependencies if d.kind in IMPORT_KINDS]
    others = [
        d for d in resolution.dependencies
        if d.kind not in IMPORT_KINDS and d.kind != "container-declaration"
    ]

    contents: Dict[str, List[Tuple[int, str]]] = {scope_id: [] for scope_id in wrappers}
    for chunk, scope_id in plan.member_targets:
        contents[scope_id].append((chunk.start_line, chunk.full_source))
    declarations = []
    for dependency in others:
        if dependency.container_id in contents:
            contents[dependency.container_id].append((dependency.start_line, dependency.source_text))
        else:
            declarations.append(dependency)

    def _wrapper_text(scope_id: str) -> str:
        scope = wrappers[scope_id]
        items = list(contents[scope_id])
        items += [
            (child.chunk.start_line, _wrapper_text(child_id))
            for child_id, child in wrappers.items()
            if plan.wrapper_parent(child) == scope_id
        ]
        return _render_wrapper(index, scope, items)

    parts = [f"// {index.relative_path}"]

    if imports:
        parts.append("")
        emitted: Set[str] = set()
        for dependency in imports:
            if dependency.source_text not in emitted:
                emitted.add(dependency.source_text)
                parts.append(dependency.source_text)

    if declarations:
        parts.append("")
        spans: Set[Tuple[int, int]] = set()
        for dependency in declarations:
            span = (dependency.start_line, dependency.end_line)
            if span not in spans:
                spans.add(span)
                parts.append(dependency.source_text)

    blocks: List[Tuple[int, str]] = [(c.start_line, c.full_source) for c in plan.root_targets]
    for scope_id, scope in wrappers.items():
        if plan.wrapper_parent(scope) is None:
            blocks.append((scope.chunk.start_line, _wrapper_text(scope_id)))

    for _, text in sorted(blocks, key=lambda b: b[0]):
        parts.append("")
        parts.append(text)

    return Snapshot(
        snapshot="\n".join(parts),
        relative_path=index.relative_path,
        target_count=target_count,
        dependency_count=len(resolution.dependencies),
    )


def render_snapshot(index: SourceIndex, resolution: ResolutionResult, targets: Sequence[Chunk]) -> Snapshot:
    """Assemble the snapshot text from a resolution of *targets*."""
    _validate_targets(targets)
    return _render(index, _plan(index, targets), resolution, len(targets))


# =============================================================================
# Entry points
# =============================================================================

def generate_snapshot(index: SourceIndex, targets: Sequence[Chunk]) -> Snapshot:
    """
    Resolve and render a snapshot for targets that all live in *index*'s file.

    Raises:
        SnapshotInputError: no targets, or targets from more than one file.
    """
    _validate_targets(targets)
    _check_index(index, targets)
    plan = _plan(index, targets)
    snapshot = _render(index, plan, _resolve(index, plan), len(targets))
    logger.debug(
        f"Snapshot of {index.relative_path}: {snapshot.target_count} target(s), "
        f"{snapshot.dependency_count} dependenc{'y' if snapshot.dependency_count == 1 else 'ies'}"
    )
    return snapshot


IndexSource = Union[Mapping[str, SourceIndex], Callable[[str], Optional[SourceIndex]]]


def _lookup(indexes: IndexSource, file_path: str) -> SourceIndex:
    if callable(indexes):
        index = indexes(file_path)
    else:
        index = indexes.get(file_path)
        if index is None:
            index = indexes.get(str(Path(file_path)))
    if index is None:
        raise SourceIndexNotFoundError(f"No source index for {file_path}")
    return index


def generate_snapshots(indexes: IndexSource, targets: Sequence[Chunk]) -> List[Snapshot]:
    """
    One snapshot per distinct file among *targets*, in first-seen order.

    *indexes* is either a mapping from file path to :class:`SourceIndex`
    or a callable that loads the index for a path.
    """
    by_file: Dict[str, List[Chunk]] = {}
    for target in targets:
        by_file.setdefault(target.file_path, []).append(target)
    return [
        generate_snapshot(_lookup(indexes, file_path), file_targets)
        for file_path, file_targets in by_file.items()
    ]
