"""
semkit Symbol Extractor

Turns one TypeScript/JavaScript source file into an ordered tree of
:class:`~semkit.core.models.Symbol` records using tree-sitter.

Two passes run over the top-level statements:

1. **Declarations**: functions, classes, interfaces, type aliases,
   enums, variables, namespaces, default-export assignments and legacy
   CommonJS export assignments, recursing into every scope that can hold
   further declarations.
2. **Root content**: imports, re-exports, bare expressions and
   standalone comments.  Any item that shares lines with a declaration
   is dropped.

The result is sorted by start line at every level, and siblings never
overlap.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from tree_sitter import Node, Tree

from semkit.core.config import SemkitConfig
from semkit.core.models import ParsedFile, Symbol, SymbolRange
from semkit.core.nodes import (
    SourceText, end_line, extract_doc, field_text, first_line, has_token,
    leading_decorators_start, leading_tokens, named_children_of, node_range,
    normalize_ws, start_line, strip_quotes, truncate, unwrap_expression,
)
from semkit.core.provider import ParserProvider
from semkit.core.signatures import NO_FLAGS, ExportFlags, SignatureBuilder
from semkit.exceptions import SyntaxInvalidError, UnsupportedInputError

logger = logging.getLogger(__name__)


_FUNCTION_DECLARATIONS = frozenset((
    "function_declaration", "generator_function_declaration", "function_signature",
))
_FUNCTION_EXPRESSIONS = frozenset(("function_expression", "function", "generator_function"))
_FUNCTION_VALUES = _FUNCTION_EXPRESSIONS | {"arrow_function"}
_CLASS_TYPES = frozenset(("class_declaration", "abstract_class_declaration", "class"))
_VARIABLE_TYPES = frozenset(("lexical_declaration", "variable_declaration"))
_MODULE_TYPES = frozenset(("module", "internal_module"))
_PATTERN_TYPES = frozenset(("object_pattern", "array_pattern"))

_ACCESSIBILITY = ("public", "private", "protected")
_MEMBER_MODIFIERS = _ACCESSIBILITY + (
    "declare", "static", "abstract", "override", "readonly", "accessor", "async",
)


def _sibling_order(symbols: List[Symbol]) -> List[Symbol]:
    """Sort siblings by start line and drop any that overlap an earlier one."""
    kept: List[Symbol] = []
    for symbol in sorted(symbols, key=lambda s: s.start_line):
        if kept and symbol.start_line <= kept[-1].end_line:
            logger.debug(
                f"Dropping {symbol.kind} '{symbol.name}' at line {symbol.start_line}: "
                f"shares lines with '{kept[-1].name}'"
            )
            continue
        kept.append(symbol)
    return kept


def _flag_modifiers(flags: ExportFlags, *extra: str) -> List[str]:
    modifiers = [m for m in extra if m]
    if flags.exported:
        modifiers.append("exported")
    if flags.default:
        modifiers.append("default")
    if flags.declare:
        modifiers.append("declare")
    return modifiers


def _member_modifiers(tokens: Sequence[str]) -> List[str]:
    modifiers = [t for t in _MEMBER_MODIFIERS if t in tokens]
    if "*" in tokens:
        modifiers.append("generator")
    return modifiers


# =============================================================================
# Extractor
# =============================================================================

class SymbolExtractor:
    """Walks one parsed file and produces its symbol tree."""

    def __init__(self, source: SourceText, config: SemkitConfig):
        self.source = source
        self.config = config
        self.signatures = SignatureBuilder(source, config)

    def extract(self, root: Node) -> List[Symbol]:
        statements = root.named_children
        declarations = _sibling_order(
            self.statements(statements, None, 0) + self.commonjs_exports(statements)
        )
        content = [
            item for item in self.root_content(root)
            if not any(item.range.overlaps(d.range) for d in declarations)
        ]
        return _sibling_order(declarations + content)

    # ── Construction ──────────────────────────────────────────────

    def _make(
        self,
        name: str,
        kind: str,
        depth: int,
        parent: Optional[str],
        anchor: Node,
        signature: str,
        modifiers: Sequence[str] = (),
        *,
        exported: bool = False,
        children: Sequence[Symbol] = (),
        start_node: Optional[Node] = None,
        with_doc: bool = True,
    ) -> Symbol:
        first = start_node if start_node is not None else anchor
        return Symbol(
            name=name,
            kind=kind,
            depth=depth,
            parent_name=parent,
            range=node_range(self.source, anchor, start_node),
            signature=signature,
            modifiers=list(modifiers),
            doc=extract_doc(self.source, first) if with_doc else None,
            exported=exported,
            children=_sibling_order(list(children)),
        )

    # ── Statements ────────────────────────────────────────────────

    def statements(self, nodes: Sequence[Node], parent: Optional[str], depth: int) -> List[Symbol]:
        symbols: List[Symbol] = []
        for node in nodes:
            if node.type in ("comment", "ERROR"):
                continue
            symbols.extend(self.declaration(node, node, parent, depth, NO_FLAGS))
        return symbols

    def declaration(
        self, node: Node, anchor: Node, parent: Optional[str], depth: int, flags: ExportFlags,
    ) -> List[Symbol]:
        """Symbols for one declaration node; *anchor* is its outermost statement."""
        kind = node.type
        if kind == "export_statement":
            return self._export_statement(node, parent, depth, flags)
        if kind == "ambient_declaration":
            return self._ambient(node, anchor, parent, depth, flags)
        if kind in _FUNCTION_DECLARATIONS:
            return [self._function(node, anchor, parent, depth, flags)]
        if kind in _CLASS_TYPES:
            return [self._class(node, anchor, parent, depth, flags)]
        if kind == "interface_declaration":
            return [self._interface(node, anchor, parent, depth, flags)]
        if kind == "type_alias_declaration":
            name = field_text(self.source, node, "name")
            return [self._make(
                name, "type", depth, parent, anchor,
                self.signatures.type_alias(node, name, flags),
                _flag_modifiers(flags), exported=flags.exported,
            )]
        if kind == "enum_declaration":
            return [self._enum(node, anchor, parent, depth, flags)]
        if kind in _VARIABLE_TYPES:
            return self._variables(node, anchor, parent, depth, flags)
        if kind in _MODULE_TYPES:
            return [self._namespace(node, anchor, parent, depth, flags)]
        if self._is_namespace_statement(node):
            return [self._namespace(named_children_of(node)[0], anchor, parent, depth, flags)]
        return []

    @staticmethod
    def _is_namespace_statement(node: Node) -> bool:
        """``namespace X {}`` written as a statement parses as an expression."""
        if node.type != "expression_statement":
            return False
        inner = named_children_of(node)
        return len(inner) == 1 and inner[0].type in _MODULE_TYPES

    def _export_statement(self, node: Node, parent: Optional[str], depth: int, flags: ExportFlags) -> List[Symbol]:
        flags = ExportFlags(exported=True, default=has_token(node, "default"), declare=flags.declare)
        declaration = node.child_by_field_name("declaration")
        if declaration is not None:
            return self.declaration(declaration, node, parent, depth, flags)

        value = node.child_by_field_name("value")
        equals = value is None and has_token(node, "=")
        if equals:
            rest = named_children_of(node)
            value = rest[-1] if rest else None
        if value is None:
            return []
        if value.type in _CLASS_TYPES:
            return [self._class(value, node, parent, depth, flags)]
        if value.type in _FUNCTION_EXPRESSIONS:
            return [self._function(value, node, parent, depth, flags)]

        prefix = "export =" if equals else "export default"
        target = unwrap_expression(value)
        children = []
        if target is not None and target.type == "object":
            children = self._object_members(target, "(default)", depth + 1)
        return [self._make(
            "(default)", "variable", depth, parent, node,
            self.signatures.preview(prefix, value),
            ["exported", "default"], exported=True, children=children,
        )]

    def _ambient(self, node: Node, anchor: Node, parent: Optional[str], depth: int, flags: ExportFlags) -> List[Symbol]:
        flags = ExportFlags(exported=flags.exported, default=flags.default, declare=True)
        if has_token(node, "global"):
            block = named_children_of(node, ("statement_block",))
            children = self.statements(block[0].named_children, "global", depth + 1) if block else []
            return [self._make(
                "global", "namespace", depth, parent, anchor,
                " ".join(flags.prefix() + ["global"]),
                _flag_modifiers(flags), exported=flags.exported, children=children,
            )]
        for inner in named_children_of(node):
            return self.declaration(inner, anchor, parent, depth, flags)
        return []

    # ── Functions ─────────────────────────────────────────────────

    def _body_children(self, node: Node, parent: str, depth: int) -> List[Symbol]:
        body = node.child_by_field_name("body")
        if body is None or body.type != "statement_block":
            return []
        return self.statements(body.named_children, parent, depth)

    def _function(self, node: Node, anchor: Node, parent: Optional[str], depth: int, flags: ExportFlags) -> Symbol:
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            name = self.source.of(name_node)
        else:
            name = "(default)" if flags.default else "(anonymous)"
        generator = has_token(node, "*") or node.type.startswith("generator_function")
        modifiers = _flag_modifiers(
            flags, "async" if has_token(node, "async") else "", "generator" if generator else "",
        )
        signature = self.signatures.function(node, "" if name_node is None else name, flags)
        return self._make(
            name, "function", depth, parent, anchor, signature, modifiers,
            exported=flags.exported,
            children=self._body_children(node, name, depth + 1),
        )

    # ── Classes ───────────────────────────────────────────────────

    def _class(self, node: Node, anchor: Node, parent: Optional[str], depth: int, flags: ExportFlags) -> Symbol:
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            name = self.source.of(name_node)
        else:
            name = "(default)" if flags.default else "(anonymous)"
        abstract = node.type == "abstract_class_declaration" or has_token(node, "abstract")
        modifiers = _flag_modifiers(flags, "abstract" if abstract else "")
        signature = self.signatures.class_(node, "" if name_node is None else name, flags)
        body = node.child_by_field_name("body")
        return self._make(
            name, "class", depth, parent, anchor, signature, modifiers,
            exported=flags.exported,
            children=self._class_members(body, name, depth + 1) if body is not None else [],
        )

    def _class_members(self, body: Node, class_name: str, depth: int) -> List[Symbol]:
        implemented = {
            field_text(self.source, member, "name")
            for member in named_children_of(body, ("method_definition",))
        }
        members: List[Symbol] = []
        static_blocks = 0
        index_signatures = 0

        for member in named_children_of(body):
            kind = member.type
            start = leading_decorators_start(member)
            name_node = member.child_by_field_name("name")
            name = self.source.of(name_node)
            tokens = leading_tokens(self.source, member, name_node)

            if kind == "method_definition":
                members.append(self._method_like(member, name, tokens, class_name, depth, start))
            elif kind in ("method_signature", "abstract_method_signature"):
                if kind == "method_signature" and name in implemented:
                    continue
                modifiers = _member_modifiers(tokens)
                if kind == "abstract_method_signature" and "abstract" not in modifiers:
                    modifiers.insert(0, "abstract")
                if name == "constructor":
                    signature, symbol_kind = self.signatures.constructor(member), "constructor"
                else:
                    signature, symbol_kind = self.signatures.method(member, name), "method"
                members.append(self._make(
                    name, symbol_kind, depth, class_name, member, signature, modifiers, start_node=start,
                ))
            elif kind == "public_field_definition":
                modifiers = _member_modifiers(tokens)
                if has_token(member, "?"):
                    modifiers.append("optional")
                members.append(self._make(
                    name, "property", depth, class_name, member,
                    self.signatures.property(member, name), modifiers, start_node=start,
                ))
            elif kind == "class_static_block":
                block_name = f"(static-block-{static_blocks})"
                static_blocks += 1
                members.append(self._make(
                    block_name, "staticBlock", depth, class_name, member, "static", ["static"],
                    children=self._body_children(member, block_name, depth + 1),
                ))
            elif kind == "index_signature":
                members.append(self._make(
                    f"(index-signature-{index_signatures})", "property", depth, class_name, member,
                    normalize_ws(self.source.of(member)), start_node=start,
                ))
                index_signatures += 1
        return members

    def _method_like(
        self, node: Node, name: str, tokens: Sequence[str], parent: str, depth: int,
        start: Optional[Node] = None,
    ) -> Symbol:
        """A method, constructor or accessor with a body."""
        modifiers = _member_modifiers(tokens)
        children = self._body_children(node, name, depth + 1)
        if name == "constructor":
            kind, signature = "constructor", self.signatures.constructor(node)
        elif "get" in tokens:
            kind, signature = "getter", self.signatures.accessor(node, name, "get")
        elif "set" in tokens:
            kind, signature = "setter", self.signatures.accessor(node, name, "set")
        else:
            kind, signature = "method", self.signatures.method(node, name)
        return self._make(
            name, kind, depth, parent, node, signature, modifiers,
            children=children, start_node=start,
        )

    # ── Interfaces & enums ────────────────────────────────────────

    def _interface(self, node: Node, anchor: Node, parent: Optional[str], depth: int, flags: ExportFlags) -> Symbol:
        name = field_text(self.source, node, "name")
        body = node.child_by_field_name("body")
        members: List[Symbol] = []
        counters = {"call_signature": 0, "construct_signature": 0, "index_signature": 0}
        unnamed = {
            "call_signature": ("call-signature", "method"),
            "construct_signature": ("construct-signature", "constructor"),
            "index_signature": ("index-signature", "property"),
        }

        for member in named_children_of(body):
            if member.type in unnamed:
                label, kind = unnamed[member.type]
                member_name = f"({label}-{counters[member.type]})"
                counters[member.type] += 1
                members.append(self._make(
                    member_name, kind, depth + 1, name, member, normalize_ws(self.source.of(member)),
                ))
            elif member.type == "property_signature":
                member_name = field_text(self.source, member, "name")
                modifiers = ["readonly"] if has_token(member, "readonly") else []
                if has_token(member, "?"):
                    modifiers.append("optional")
                members.append(self._make(
                    member_name, "property", depth + 1, name, member,
                    self.signatures.property_signature(member, member_name), modifiers,
                ))
            elif member.type == "method_signature":
                member_name = field_text(self.source, member, "name")
                members.append(self._make(
                    member_name, "method", depth + 1, name, member,
                    self.signatures.method(member, member_name),
                ))

        return self._make(
            name, "interface", depth, parent, anchor,
            self.signatures.interface(node, name, flags), _flag_modifiers(flags),
            exported=flags.exported, children=members,
        )

    def _enum(self, node: Node, anchor: Node, parent: Optional[str], depth: int, flags: ExportFlags) -> Symbol:
        name = field_text(self.source, node, "name")
        members = []
        for member in named_children_of(node.child_by_field_name("body")):
            name_node = member.child_by_field_name("name") if member.type == "enum_assignment" else member
            members.append(self._make(
                strip_quotes(self.source.of(name_node)), "enumMember", depth + 1, name, member,
                self.signatures.fallback(member),
            ))
        return self._make(
            name, "enum", depth, parent, anchor,
            self.signatures.enum(node, name, flags),
            _flag_modifiers(flags, "const" if has_token(node, "const") else ""),
            exported=flags.exported, children=members,
        )

    # ── Variables ─────────────────────────────────────────────────

    def _variables(self, node: Node, anchor: Node, parent: Optional[str], depth: int, flags: ExportFlags) -> List[Symbol]:
        declarators = named_children_of(node, ("variable_declarator",))
        if not declarators:
            return []
        kind = "const" if field_text(self.source, node, "kind") == "const" else "variable"
        modifiers = _flag_modifiers(flags)

        separate = all(
            end_line(prev) < start_line(nxt) for prev, nxt in zip(declarators, declarators[1:])
        )
        if len(declarators) == 1 or not separate:
            # Declarators sharing lines stay one symbol.
            name = ", ".join(
                normalize_ws(field_text(self.source, d, "name")) for d in declarators
            )
            children = self._value_children(declarators[0], name, depth + 1) if len(declarators) == 1 else []
            return [self._make(
                name, kind, depth, parent, anchor,
                self.signatures.variable_statement(node, declarators, flags), modifiers,
                exported=flags.exported, children=children,
            )]

        statement_range = node_range(self.source, anchor)
        doc = extract_doc(self.source, anchor)
        symbols = []
        for index, declarator in enumerate(declarators):
            name = normalize_ws(field_text(self.source, declarator, "name"))
            value = unwrap_expression(declarator.child_by_field_name("value"))
            first = index == 0
            last = index == len(declarators) - 1
            symbols.append(Symbol(
                name=name,
                kind=kind,
                depth=depth,
                parent_name=parent,
                range=SymbolRange(
                    statement_range.start_line if first else start_line(declarator),
                    statement_range.end_line if last else end_line(declarator),
                ),
                signature=self.signatures.variable_declarator(declarator, value),
                modifiers=list(modifiers),
                doc=doc if first else None,
                exported=flags.exported,
                children=_sibling_order(self._value_children(declarator, name, depth + 1)),
            ))
        return symbols

    def _value_children(self, declarator: Node, name: str, depth: int) -> List[Symbol]:
        name_node = declarator.child_by_field_name("name")
        if name_node is None or name_node.type in _PATTERN_TYPES:
            return []
        value = unwrap_expression(declarator.child_by_field_name("value"))
        if value is None:
            return []
        if value.type in _FUNCTION_VALUES:
            return self._body_children(value, name, depth)
        if value.type == "object":
            return self._object_members(value, name, depth)
        return []

    def _object_members(self, node: Node, parent: str, depth: int) -> List[Symbol]:
        members = []
        for member in named_children_of(node):
            if member.type == "pair":
                name = strip_quotes(field_text(self.source, member, "key")) or "(anonymous)"
                members.append(self._make(
                    name, "property", depth, parent, member,
                    self.signatures.fallback(member), with_doc=False,
                ))
            elif member.type == "shorthand_property_identifier":
                name = self.source.of(member)
                members.append(self._make(name, "property", depth, parent, member, name, with_doc=False))
            elif member.type == "method_definition":
                name_node = member.child_by_field_name("name")
                tokens = leading_tokens(self.source, member, name_node)
                members.append(self._method_like(
                    member, strip_quotes(self.source.of(name_node)) or "(anonymous)", tokens, parent, depth,
                ))
        return members

    # ── Namespaces ────────────────────────────────────────────────

    def _namespace(self, node: Node, anchor: Node, parent: Optional[str], depth: int, flags: ExportFlags) -> Symbol:
        name_node = node.child_by_field_name("name")
        raw_name = self.source.of(name_node)
        keyword = "namespace" if node.type == "internal_module" else "module"
        if name_node is not None and name_node.type == "nested_identifier":
            parts = [part.strip() for part in raw_name.split(".")]
        else:
            parts = [raw_name]

        # `namespace A.B.C {}` becomes A > B > C, all with the statement's range.
        body = node.child_by_field_name("body")
        innermost = depth + len(parts) - 1
        children = self.statements(body.named_children, parts[-1], innermost + 1) if body is not None else []
        statement_range = node_range(self.source, anchor)
        symbol = None
        for offset in reversed(range(len(parts))):
            outer = offset == 0
            link_flags = flags if outer else ExportFlags(exported=True)
            symbol = Symbol(
                name=parts[offset],
                kind=keyword,
                depth=depth + offset,
                parent_name=parent if outer else parts[offset - 1],
                range=SymbolRange(statement_range.start_line, statement_range.end_line),
                signature=self.signatures.module(parts[offset], keyword, link_flags),
                modifiers=_flag_modifiers(link_flags),
                doc=extract_doc(self.source, anchor) if outer else None,
                exported=link_flags.exported,
                children=_sibling_order(children),
            )
            children = [symbol]
        return symbol

    # ── CommonJS ──────────────────────────────────────────────────

    def commonjs_target(self, statement: Node) -> Optional[tuple]:
        """``(target, name, value)`` when *statement* assigns a CommonJS export."""
        if statement.type != "expression_statement":
            return None
        inner = named_children_of(statement)
        if len(inner) != 1 or inner[0].type != "assignment_expression":
            return None
        left = inner[0].child_by_field_name("left")
        value = inner[0].child_by_field_name("right")
        if left is None or left.type != "member_expression":
            return None
        obj = left.child_by_field_name("object")
        prop = field_text(self.source, left, "property")
        obj_text = self.source.of(obj)
        if obj.type == "identifier" and obj_text == "module" and prop == "exports":
            return "module.exports", "module.exports", value
        if obj.type == "member_expression" and normalize_ws(obj_text) == "module.exports":
            return f"module.exports.{prop}", prop or "(anonymous)", value
        if obj.type == "identifier" and obj_text == "exports":
            return f"exports.{prop}", prop or "(anonymous)", value
        return None

    def commonjs_exports(self, statements: Sequence[Node]) -> List[Symbol]:
        symbols = []
        for statement in statements:
            match = self.commonjs_target(statement)
            if match is None:
                continue
            target, name, value = match
            children = []
            unwrapped = unwrap_expression(value)
            if target == "module.exports" and unwrapped is not None and unwrapped.type == "object":
                children = self._object_members(unwrapped, name, 1)
            symbols.append(self._make(
                name, "variable", 0, None, statement,
                self.signatures.preview(f"{target} =", value),
                ["exported"], exported=True, children=children,
            ))
        return symbols

    # ── Root content ──────────────────────────────────────────────

    def root_content(self, root: Node) -> List[Symbol]:
        items: List[Symbol] = []
        for statement in root.named_children:
            kind = statement.type
            if kind in ("import_statement", "import_alias"):
                items.append(self._import(statement))
            elif kind == "export_statement" and self._is_re_export(statement):
                items.append(self._re_export(statement))
            elif kind == "expression_statement":
                if self.commonjs_target(statement) is not None or self._is_namespace_statement(statement):
                    continue
                items.append(self._expression(statement))
        items.extend(self._comments(root))
        return items

    def _root_item(self, name: str, kind: str, node: Node, signature: str, modifiers=(), exported=False) -> Symbol:
        return self._make(
            name, kind, 0, None, node, signature, modifiers, exported=exported, with_doc=False,
        )

    def _import(self, node: Node) -> Symbol:
        if node.type == "import_alias":
            text = normalize_ws(self.source.of(node)).rstrip(";")
            target = text.split("=", 1)[-1].strip()
            return self._root_item(f"import:{target}", "import", node, text)

        type_only = has_token(node, "type")
        prefix = "import type" if type_only else "import"
        modifiers = ["type-only"] if type_only else []
        module = strip_quotes(field_text(self.source, node, "source"))

        require = named_children_of(node, ("import_require_clause",))
        if require:
            clause = require[0]
            module = strip_quotes(field_text(self.source, clause, "source"))
            alias = self.source.of(named_children_of(clause, ("identifier",))[0])
            signature = f"{prefix} {alias} = require('{module}')"
            return self._root_item(f"import:{module}", "import", node, signature, modifiers)

        clause = named_children_of(node, ("import_clause",))
        names = self._import_clause(clause[0]) if clause else ""
        signature = f"{prefix} {names} from '{module}'" if names else f"{prefix} '{module}'"
        return self._root_item(f"import:{module}", "import", node, signature, modifiers)

    def _import_clause(self, clause: Node) -> str:
        parts = []
        for part in named_children_of(clause):
            if part.type == "identifier":
                parts.append(self.source.of(part))
            elif part.type == "namespace_import":
                parts.append(normalize_ws(self.source.of(part)))
            elif part.type == "named_imports":
                specifiers = [normalize_ws(self.source.of(s)) for s in named_children_of(part, ("import_specifier",))]
                parts.append("{ " + ", ".join(specifiers) + " }" if specifiers else "{}")
        return ", ".join(parts)

    @staticmethod
    def _is_re_export(node: Node) -> bool:
        return (
            node.child_by_field_name("declaration") is None
            and node.child_by_field_name("value") is None
            and not has_token(node, "=")
        )

    def _re_export(self, node: Node) -> Symbol:
        module = strip_quotes(field_text(self.source, node, "source"))
        type_only = has_token(node, "type")
        namespace = named_children_of(node, ("namespace_export",))
        clause = named_children_of(node, ("export_clause",))
        if namespace:
            names = normalize_ws(self.source.of(namespace[0]))
        elif clause:
            specifiers = [normalize_ws(self.source.of(s)) for s in named_children_of(clause[0], ("export_specifier",))]
            names = "{ " + ", ".join(specifiers) + " }" if specifiers else "{}"
        elif has_token(node, "*"):
            names = "*"
        else:
            names = normalize_ws(self.source.of(node))[len("export"):].strip().rstrip(";")
        prefix = "export type" if type_only else "export"
        signature = f"{prefix} {names}" + (f" from '{module}'" if module else "")
        modifiers = ["type-only", "exported"] if type_only else ["exported"]
        name = f"re-export:{module}" if module else "re-export:local"
        return self._root_item(name, "re-export", node, signature, modifiers, exported=True)

    def _expression(self, node: Node) -> Symbol:
        text = normalize_ws(self.source.of(node))
        return self._root_item(
            f"expr:{truncate(text, self.config.expression_name_max_length)}",
            "expression", node,
            truncate(text, self.config.expression_signature_max_length),
        )

    def _comments(self, root: Node) -> List[Symbol]:
        """Standalone comments; adjacent ``//`` lines form one block."""
        blocks: List[List[Node]] = []
        for node in root.named_children:
            if node.type != "comment":
                continue
            prev = node.prev_sibling
            if prev is not None and prev.type != "comment" and prev.end_point[0] == node.start_point[0]:
                continue  # trails code on the same line
            text = self.source.of(node)
            if blocks:
                last = blocks[-1][-1]
                if (
                    text.startswith("//")
                    and self.source.of(last).startswith("//")
                    and last.end_point[0] + 1 == node.start_point[0]
                ):
                    blocks[-1].append(node)
                    continue
            blocks.append([node])

        symbols = []
        for block in blocks:
            head = first_line(self.source.of(block[0])).strip()
            symbols.append(Symbol(
                name=f"comment:{truncate(head, self.config.expression_name_max_length)}",
                kind="comment",
                depth=0,
                parent_name=None,
                range=SymbolRange(start_line(block[0]), end_line(block[-1])),
                signature=truncate(head, self.config.expression_signature_max_length),
            ))
        return symbols


# =============================================================================
# Entry points
# =============================================================================

def _relative_path(file_path: str, workspace_root: Optional[str]) -> str:
    if workspace_root is None:
        return Path(file_path).as_posix()
    return os.path.relpath(file_path, workspace_root).replace("\\", "/")


def require_grammar(file_path: str, config: SemkitConfig) -> str:
    """Grammar for *file_path*, or UnsupportedInputError before any I/O happens."""
    grammar = config.grammar_for(file_path)
    if grammar is None:
        raise UnsupportedInputError(Path(file_path).suffix, str(file_path))
    return grammar


def parse_source_tree(
    source_text: str,
    file_path: str,
    workspace_root: Optional[str] = None,
    *,
    provider: Optional[ParserProvider] = None,
    config: Optional[SemkitConfig] = None,
) -> Tuple[ParsedFile, Tree]:
    """Like :func:`parse_source`, also returning the tree-sitter tree."""
    config = config or SemkitConfig()
    file_path = str(file_path)
    grammar = require_grammar(file_path, config)
    if "\x00" in source_text:
        raise SyntaxInvalidError(file_path, "binary content")

    provider = provider or ParserProvider()
    source = SourceText(source_text)
    tree = provider.parse(source.data, grammar)
    if tree is None:
        raise SyntaxInvalidError(file_path, "parser produced no tree")

    root = tree.root_node
    statements = [n for n in root.named_children if n.type != "comment"]
    if root.type != "program" or (
        source_text.strip() and statements and all(n.type == "ERROR" for n in statements)
    ):
        raise SyntaxInvalidError(file_path, "no recognizable statements")

    relative_path = _relative_path(file_path, workspace_root)
    symbols = SymbolExtractor(source, config).extract(root)
    if root.has_error:
        logger.debug(f"{relative_path}: parsed with syntax errors, continuing best-effort")

    parsed = ParsedFile(
        file_path=file_path,
        relative_path=relative_path,
        symbols=symbols,
        total_lines=source.total_lines,
        has_syntax_errors=root.has_error,
    )
    return parsed, tree


def parse_source(
    source_text: str,
    file_path: str,
    workspace_root: Optional[str] = None,
    *,
    provider: Optional[ParserProvider] = None,
    config: Optional[SemkitConfig] = None,
) -> ParsedFile:
    """
    Parse *source_text* as the file at *file_path*.

    Args:
        source_text: Full file contents.
        file_path: Path used for the extension gate and the output metadata.
        workspace_root: Directory the relative path is computed against.
        provider: Parser provider to reuse; a fresh one is created if omitted.
        config: Truncation limits and accepted extensions.

    Raises:
        UnsupportedInputError: the extension has no grammar.
        SyntaxInvalidError: no usable syntax tree could be produced.
    """
    parsed, _ = parse_source_tree(
        source_text, file_path, workspace_root, provider=provider, config=config,
    )
    return parsed


def read_source(file_path: str) -> str:
    """Read a source file as UTF-8, raising SyntaxInvalidError for undecodable bytes."""
    try:
        return Path(file_path).read_bytes().decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise SyntaxInvalidError(str(file_path), f"not valid UTF-8 ({e.reason})") from e


def parse_file(
    file_path: str,
    workspace_root: Optional[str] = None,
    *,
    provider: Optional[ParserProvider] = None,
    config: Optional[SemkitConfig] = None,
) -> ParsedFile:
    """Read and parse a file from disk.  The extension is checked before reading."""
    config = config or SemkitConfig()
    require_grammar(str(file_path), config)
    return parse_source(
        read_source(file_path), str(file_path), workspace_root, provider=provider, config=config,
    )
