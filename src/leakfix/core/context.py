"""Classification of the syntax surrounding a flagged call.

The variant decides the rewrite shape; :mod:`leakfix.core.fix` turns it into
edits. Variants that introduce a new local also carry the name it will use,
negotiated with a :class:`~leakfix.core.ports.names.NameSuggester`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from leakfix.core.ast import BLOCK_TYPES, CompilationUnit, SyntaxNode
from leakfix.core.ports.names import NameSuggester
from leakfix.core.symbols import is_variable_identifier

logger = logging.getLogger(__name__)

BASE_NAME = "stream"
MAX_NAME_ATTEMPTS = 8

# Parents whose statement slot accepts an arbitrary statement, not only an expression.
_STATEMENT_HOLDERS = BLOCK_TYPES | {"switch_block_statement_group"}
_STATEMENT_FIELDS = frozenset({"body", "consequence", "alternative"})
# Loop parts that run once per iteration.
_REPEATED_FIELDS = {
    "while_statement": frozenset({"condition"}),
    "do_statement": frozenset({"condition"}),
    "for_statement": frozenset({"condition", "update"}),
}


@dataclass(frozen=True)
class ChainedCall:
    statement: SyntaxNode
    name: str
    # Declarator of a local whose declaration gets split around the block.
    declarator: SyntaxNode | None = None


@dataclass(frozen=True)
class Declaration:
    declaration: SyntaxNode
    declarator: SyntaxNode


@dataclass(frozen=True)
class LoopIterable:
    loop: SyntaxNode
    name: str


@dataclass(frozen=True)
class StatementExpr:
    statement: SyntaxNode
    name: str


@dataclass(frozen=True)
class Unsupported:
    reason: str


Context = ChainedCall | Declaration | LoopIterable | StatementExpr | Unsupported


def name_clashes(name: str, point: SyntaxNode, wrapped: Sequence[SyntaxNode], unit: CompilationUnit) -> bool:
    """Whether binding ``name`` before ``point`` would shadow or be shadowed.

    Any variable identifier spelled ``name`` inside the wrapped code counts,
    resolved or not: an unresolved one may be an inherited field.
    """
    if name in unit.symbols.visible_names(point):
        return True
    return any(n.text == name and is_variable_identifier(n) for node in wrapped for n in node.walk())


def choose_fresh_name(
    point: SyntaxNode, wrapped: Sequence[SyntaxNode], unit: CompilationUnit, suggester: NameSuggester
) -> str | None:
    rejected: set[str] = set()
    for _ in range(MAX_NAME_ATTEMPTS):
        candidate = suggester.suggest(point, BASE_NAME, frozenset(rejected))
        if not name_clashes(candidate, point, wrapped, unit):
            return candidate
        logger.debug("Name %r is taken near byte %d, asking for another", candidate, point.start_byte)
        rejected.add(candidate)
    return None


def _conditional_barrier(call: SyntaxNode, statement: SyntaxNode) -> SyntaxNode | None:
    """First node up to ``statement`` that may skip, defer or repeat evaluating ``call``."""
    child = call
    for ancestor in call.ancestors():
        if ancestor.type == "assert_statement":
            return ancestor
        if child.field_name in _REPEATED_FIELDS.get(ancestor.type, ()):
            return ancestor
        if ancestor is statement:
            return None
        if ancestor.type in ("lambda_expression", "switch_expression", "class_body"):
            return ancestor
        if ancestor.type == "ternary_expression" and child.field_name != "condition":
            return ancestor
        if ancestor.type == "binary_expression" and child.field_name == "right":
            operator = ancestor.child_by_field("operator")
            if operator is not None and operator.type in ("&&", "||"):
                return ancestor
        child = ancestor
    return None


def _accepts_statement(statement: SyntaxNode, *, blocks_only: bool = False) -> bool:
    parent = statement.parent
    if parent is None:
        return False
    if blocks_only:
        return parent.type in _STATEMENT_HOLDERS
    return parent.type in _STATEMENT_HOLDERS or statement.field_name in _STATEMENT_FIELDS


def _with_name(
    point: SyntaxNode,
    unit: CompilationUnit,
    suggester: NameSuggester,
    variant: type[ChainedCall] | type[LoopIterable] | type[StatementExpr],
    **extra: SyntaxNode,
) -> Context:
    name = choose_fresh_name(point, [point], unit, suggester)
    if name is None:
        return Unsupported(f"no fresh name available after {MAX_NAME_ATTEMPTS} attempts")
    return variant(point, name, **extra)


def _classify_chained(call: SyntaxNode, unit: CompilationUnit, suggester: NameSuggester) -> Context:
    statement = unit.enclosing_statement(call)
    if statement is None:
        return Unsupported("call is not inside a statement")
    barrier = _conditional_barrier(call, statement)
    if barrier is not None:
        return Unsupported(f"call is not evaluated exactly once inside {barrier.type}")

    if statement.type != "local_variable_declaration":
        if not _accepts_statement(statement):
            return Unsupported(f"{statement.type} cannot be replaced by a try statement here")
        return _with_name(statement, unit, suggester, ChainedCall)

    declarators = statement.children_by_field("declarator")
    declared_type = statement.child_by_field("type")
    if len(declarators) != 1:
        return Unsupported("declaration introduces more than one variable")
    value = declarators[0].child_by_field("value")
    if value is None or not value.contains(call):
        return Unsupported("call is not part of the initializer")
    if declared_type is None or unit.text_of(declared_type) == "var":
        return Unsupported("an inferred local type cannot be declared without an initializer")
    if not _accepts_statement(statement, blocks_only=True):
        return Unsupported("declaration is not directly inside a block")
    return _with_name(statement, unit, suggester, ChainedCall, declarator=declarators[0])


def _classify_declaration(declarator: SyntaxNode) -> Context:
    declaration = declarator.parent
    if declaration is None or declaration.type != "local_variable_declaration":
        return Unsupported(f"initializer of a {declaration.type if declaration else 'detached'} declarator")
    if len(declaration.children_by_field("declarator")) != 1:
        return Unsupported("declaration introduces more than one variable")
    return Declaration(declaration, declarator)


def classify(call: SyntaxNode, unit: CompilationUnit, suggester: NameSuggester) -> Context:
    parent = call.parent
    if parent is None:
        return Unsupported("call has no parent")

    match (parent.type, call.field_name):
        case ("method_invocation" | "field_access", "object"):
            context = _classify_chained(call, unit, suggester)
        case ("variable_declarator", "value"):
            context = _classify_declaration(parent)
        case ("enhanced_for_statement", "value"):
            if _accepts_statement(parent):
                context = _with_name(parent, unit, suggester, LoopIterable)
            else:
                context = Unsupported("labeled loop cannot be moved into a try statement")
        case ("argument_list", _) if parent.parent is not None and parent.parent.type == "method_invocation":
            statement = parent.parent.parent
            if statement is not None and statement.type == "expression_statement" and _accepts_statement(statement):
                context = _with_name(statement, unit, suggester, StatementExpr)
            else:
                context = Unsupported("argument of a call whose result is used")
        case (parent_type, _):
            context = Unsupported(f"call used as part of {parent_type}")

    logger.debug("Call at byte %d classified as %s", call.start_byte, type(context).__name__)
    return context
