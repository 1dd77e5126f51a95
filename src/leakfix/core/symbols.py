"""Binding resolution for Java syntax trees.

Every identifier that declares a variable gets a fresh :class:`Binding`; every
identifier that reads one is linked to the innermost visible declaration with
that spelling. Type names, method names and member selections are never
treated as variable references.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from leakfix.core.ast import SyntaxNode

SCOPE_TYPES = frozenset(
    {
        "program",
        "class_body",
        "interface_body",
        "enum_body",
        "method_declaration",
        "constructor_declaration",
        "compact_constructor_declaration",
        "lambda_expression",
        "block",
        "constructor_body",
        "switch_block",
        "for_statement",
        "enhanced_for_statement",
        "catch_clause",
        "try_with_resources_statement",
    }
)

# parent type -> binding kind, for an identifier in the parent's "name" field
_DECLARING_PARENTS = {
    "variable_declarator": "local",
    "formal_parameter": "parameter",
    "catch_formal_parameter": "catch",
    "enhanced_for_statement": "loop",
    "resource": "resource",
    "instanceof_expression": "pattern",
}

_NON_REFERENCE_PARENTS = frozenset(
    {
        "break_statement",
        "continue_statement",
        "labeled_statement",
        "import_declaration",
        "package_declaration",
        "scoped_identifier",
    }
)


@dataclass(frozen=True)
class Binding:
    """Identity of one declaration site."""

    name: str
    kind: str
    start_byte: int


class SymbolTable:
    def __init__(self) -> None:
        self._scopes: dict[SyntaxNode, list[Binding]] = {}

    def declare(self, scope: SyntaxNode, binding: Binding) -> None:
        self._scopes.setdefault(scope, []).append(binding)

    def visible_names(self, point: SyntaxNode) -> set[str]:
        """Names of the variables in scope just before ``point``."""
        names: set[str] = set()
        for scope in point.ancestors():
            for binding in self._scopes.get(scope, ()):
                if binding.kind == "field" or binding.start_byte < point.start_byte:
                    names.add(binding.name)
        return names


def _declaration_kind(node: SyntaxNode) -> str | None:
    parent = node.parent
    if parent is None:
        return None
    if parent.type == "lambda_expression" and node.field_name == "parameters":
        return "parameter"
    if parent.type == "inferred_parameters":
        return "parameter"
    if node.field_name != "name" or parent.type not in _DECLARING_PARENTS:
        return None
    if parent.type == "variable_declarator":
        holder = parent.parent
        if holder is not None and holder.type in ("field_declaration", "constant_declaration"):
            return "field"
        if holder is not None and holder.type == "spread_parameter":
            return "parameter"
    return _DECLARING_PARENTS[parent.type]


def _is_reference(node: SyntaxNode) -> bool:
    parent = node.parent
    if parent is None or parent.type in _NON_REFERENCE_PARENTS:
        return False
    if node.field_name in ("name", "key"):
        return False
    if parent.type == "field_access" and node.field_name == "field":
        return False
    if parent.type == "method_reference":
        return parent.children[0] is node
    return True


def resolve_symbols(root: SyntaxNode) -> SymbolTable:
    table = SymbolTable()
    scopes: list[tuple[SyntaxNode, dict[str, Binding]]] = []
    pending: list[tuple[SyntaxNode, bool]] = [(root, False)]

    while pending:
        node, leaving = pending.pop()
        if leaving:
            scopes.pop()
            continue
        if node.type in SCOPE_TYPES or not scopes:
            scopes.append((node, {}))
            pending.append((node, True))
        if node.type == "identifier" and node.text:
            _bind_identifier(node, node.text, scopes, table)
        pending.extend((child, False) for child in reversed(node.children))

    return table


def _bind_identifier(
    node: SyntaxNode,
    name: str,
    scopes: list[tuple[SyntaxNode, dict[str, Binding]]],
    table: SymbolTable,
) -> None:
    kind = _declaration_kind(node)
    if kind is not None:
        binding = Binding(name=name, kind=kind, start_byte=node.start_byte)
        scope, names = scopes[-1]
        names[name] = binding
        table.declare(scope, binding)
        node.binding = binding
        return

    if not _is_reference(node):
        return
    for _, names in reversed(scopes):
        if name in names:
            node.binding = names[name]
            return


class ScopeNameSuggester:
    """Proposes ``base``, then ``base2``, ``base3`` … skipping names visible at the point."""

    def __init__(self, symbols: SymbolTable) -> None:
        self._symbols = symbols

    def suggest(self, point: SyntaxNode, base: str, taken: frozenset[str] = frozenset()) -> str:
        unavailable = self._symbols.visible_names(point) | taken
        if base not in unavailable:
            return base
        return next(c for c in (f"{base}{i}" for i in itertools.count(2)) if c not in unavailable)


def is_variable_identifier(node: SyntaxNode) -> bool:
    """Whether ``node`` declares or may read a variable, resolved or not."""
    return node.type == "identifier" and (_declaration_kind(node) is not None or _is_reference(node))
