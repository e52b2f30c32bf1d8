"""
semkit Signature Builder

Reconstructs a short declarative header for each declaration: the
applicable modifiers, keyword, name, generic parameters, the verbatim
parameter list and the return-type annotation.  Bodies are never part
of a signature.
"""

from dataclasses import dataclass
from typing import List, Optional

from tree_sitter import Node

from semkit.core.config import SemkitConfig
from semkit.core.nodes import (
    SourceText, first_line, has_token, leading_tokens, named_children_of,
    normalize_ws, truncate,
)


@dataclass(frozen=True)
class ExportFlags:
    """How a declaration is reached from its enclosing statement."""
    exported: bool = False
    default: bool = False
    declare: bool = False

    def prefix(self) -> List[str]:
        parts = []
        if self.exported:
            parts.append("export")
        if self.default:
            parts.append("default")
        if self.declare:
            parts.append("declare")
        return parts


NO_FLAGS = ExportFlags()

_FUNCTION_VALUE_TYPES = frozenset((
    "arrow_function", "function_expression", "function", "generator_function",
))


class SignatureBuilder:
    """Builds signature strings for one source file."""

    def __init__(self, source: SourceText, config: SemkitConfig):
        self.source = source
        self.config = config

    # ── Pieces ────────────────────────────────────────────────────

    def type_parameters(self, node: Node) -> str:
        params = node.child_by_field_name("type_parameters")
        if params is None:
            return ""
        return "<" + ", ".join(self.source.of(p) for p in named_children_of(params)) + ">"

    def parameters(self, node: Node) -> str:
        params = node.child_by_field_name("parameters")
        if params is not None:
            return ", ".join(self.source.of(p) for p in named_children_of(params))
        single = node.child_by_field_name("parameter")
        return self.source.of(single)

    def annotation(self, node: Node, field_name: str = "type") -> str:
        """Text of a ``: T`` annotation field without its colon."""
        annotation = node.child_by_field_name(field_name)
        if annotation is None:
            return ""
        text = self.source.of(annotation).strip()
        if text.startswith(":"):
            text = text[1:].strip()
        return text

    def _with_return(self, sig: str, node: Node) -> str:
        returns = self.annotation(node, "return_type")
        return f"{sig}: {returns}" if returns else sig

    # ── Functions & members ───────────────────────────────────────

    def function(self, node: Node, name: str, flags: ExportFlags = NO_FLAGS) -> str:
        parts = flags.prefix()
        if has_token(node, "async"):
            parts.append("async")
        generator = has_token(node, "*") or node.type.startswith("generator_function")
        parts.append("function*" if generator else "function")
        sig = f"{' '.join(parts)} {name}".strip()
        sig += self.type_parameters(node) + f"({self.parameters(node)})"
        return self._with_return(sig, node)

    def method(self, node: Node, name: str) -> str:
        tokens = leading_tokens(self.source, node, node.child_by_field_name("name"))
        parts = [t for t in tokens if t in ("public", "private", "protected")]
        for keyword in ("abstract", "static", "override", "async"):
            if keyword in tokens:
                parts.append(keyword)
        display = f"*{name}" if "*" in tokens else name
        sig = f"{' '.join(parts)} {display}".strip()
        sig += self.type_parameters(node) + f"({self.parameters(node)})"
        return self._with_return(sig, node)

    def constructor(self, node: Node) -> str:
        return f"constructor({self.parameters(node)})"

    def accessor(self, node: Node, name: str, keyword: str) -> str:
        tokens = leading_tokens(self.source, node, node.child_by_field_name("name"))
        parts = [t for t in tokens if t in ("public", "private", "protected", "static")]
        parts.append(keyword)
        sig = f"{' '.join(parts)} {name}({self.parameters(node)})"
        if keyword == "get":
            return self._with_return(sig, node)
        return sig

    def property(self, node: Node, name: str) -> str:
        tokens = leading_tokens(self.source, node, node.child_by_field_name("name"))
        parts = [t for t in tokens if t in (
            "public", "private", "protected", "declare", "static", "abstract", "override", "readonly",
        )]
        optional = "?" if has_token(node, "?") else ""
        type_text = self.annotation(node)
        sig = f"{' '.join(parts + [name])}{optional}"
        return f"{sig}: {type_text}" if type_text else sig

    def property_signature(self, node: Node, name: str) -> str:
        prefix = "readonly " if has_token(node, "readonly") else ""
        optional = "?" if has_token(node, "?") else ""
        type_text = self.annotation(node)
        sig = f"{prefix}{name}{optional}"
        return f"{sig}: {type_text}" if type_text else sig

    # ── Types & containers ────────────────────────────────────────

    def class_(self, node: Node, name: str, flags: ExportFlags = NO_FLAGS) -> str:
        parts = flags.prefix()
        if node.type == "abstract_class_declaration" or has_token(node, "abstract"):
            parts.append("abstract")
        parts.append("class")
        sig = f"{' '.join(parts)} {name}".strip() + self.type_parameters(node)

        for heritage in named_children_of(node, ("class_heritage",)):
            for clause in named_children_of(heritage, ("extends_clause", "implements_clause")):
                sig += " " + normalize_ws(self.source.of(clause))
        return sig

    def interface(self, node: Node, name: str, flags: ExportFlags = NO_FLAGS) -> str:
        parts = flags.prefix() + ["interface"]
        sig = f"{' '.join(parts)} {name}" + self.type_parameters(node)
        for clause in named_children_of(node, ("extends_type_clause", "extends_clause")):
            sig += " " + normalize_ws(self.source.of(clause))
        return sig

    def type_alias(self, node: Node, name: str, flags: ExportFlags = NO_FLAGS) -> str:
        parts = flags.prefix() + ["type"]
        sig = f"{' '.join(parts)} {name}" + self.type_parameters(node)
        value = self.source.of(node.child_by_field_name("value"))
        if len(value) <= self.config.type_alias_max_length:
            sig += f" = {value}"
        return sig

    def enum(self, node: Node, name: str, flags: ExportFlags = NO_FLAGS) -> str:
        parts = flags.prefix()
        if has_token(node, "const"):
            parts.append("const")
        parts += ["enum", name]
        return " ".join(parts)

    def module(self, name: str, keyword: str, flags: ExportFlags = NO_FLAGS) -> str:
        return " ".join(flags.prefix() + [keyword, name])

    # ── Variables ─────────────────────────────────────────────────

    def variable_statement(self, node: Node, declarators: List[Node], flags: ExportFlags = NO_FLAGS) -> str:
        if not declarators:
            return first_line(self.source.of(node))
        kind = self.source.of(node.child_by_field_name("kind")) or "var"
        decls = []
        for declarator in declarators:
            name = normalize_ws(self.source.of(declarator.child_by_field_name("name")))
            type_text = self.annotation(declarator)
            decls.append(f"{name}: {type_text}" if type_text else name)
        return f"{' '.join(flags.prefix() + [kind])} {', '.join(decls)}"

    def variable_declarator(self, declarator: Node, value: Optional[Node]) -> str:
        name = normalize_ws(self.source.of(declarator.child_by_field_name("name")))
        type_text = self.annotation(declarator)
        if type_text:
            return f"{name}: {type_text}"
        if value is not None and value.type in _FUNCTION_VALUE_TYPES:
            return f"{name} = {self.function_value(value)}"
        return name

    def function_value(self, node: Node) -> str:
        """Signature of an arrow function or function expression."""
        if node.type == "arrow_function":
            sig = "async " if has_token(node, "async") else ""
            sig += self.type_parameters(node) + f"({self.parameters(node)})"
            return self._with_return(sig, node) + " => ..."
        sig = "async " if has_token(node, "async") else ""
        sig += "function*" if has_token(node, "*") or node.type == "generator_function" else "function"
        name = node.child_by_field_name("name")
        if name is not None:
            sig += f" {self.source.of(name)}"
        sig += f"({self.parameters(node)})"
        return self._with_return(sig, node)

    # ── Previews ──────────────────────────────────────────────────

    def preview(self, prefix: str, value: Optional[Node]) -> str:
        """``<prefix> <value>`` with the value squeezed onto one short line."""
        text = truncate(normalize_ws(self.source.of(value)), self.config.export_preview_max_length)
        return f"{prefix} {text}".strip()

    def fallback(self, node: Node) -> str:
        return truncate(first_line(self.source.of(node)), self.config.fallback_signature_max_length)
