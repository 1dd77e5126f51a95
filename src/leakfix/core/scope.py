"""Span computation for declarations rewritten into try-with-resources.

A declaration ``R r = call;`` at index ``i`` of its block becomes the resource
of a new ``try`` whose body must reach the last statement of that block that
still reads ``r``. Statements are compared by :class:`Binding`, so a nested
redeclaration of the same spelling never extends the span.
"""

from collections.abc import Collection, Sequence

from leakfix.core.ast import BLOCK_TYPES, SyntaxNode, block_statements
from leakfix.core.errors import StructuralMismatch
from leakfix.core.symbols import Binding


def references_binding(subtree: SyntaxNode, binding: Binding) -> bool:
    return references_any(subtree, (binding,))


def references_any(subtree: SyntaxNode, bindings: Collection[Binding]) -> bool:
    return any(node.binding in bindings for node in subtree.walk() if node.type == "identifier")


def declared_bindings(statement: SyntaxNode) -> set[Binding]:
    """Locals a statement introduces into its enclosing block."""
    if statement.type != "local_variable_declaration":
        return set()
    bindings: set[Binding] = set()
    for declarator in statement.children_by_field("declarator"):
        name = declarator.child_by_field("name")
        if name is not None and name.binding is not None:
            bindings.add(name.binding)
    return bindings


def enclosing_statements(declaration: SyntaxNode) -> tuple[list[SyntaxNode], int]:
    block = declaration.parent
    if block is None or block.type not in BLOCK_TYPES:
        raise StructuralMismatch(f"declaration is not a direct child of a block (parent: {block and block.type})")
    statements = block_statements(block)
    return statements, statements.index(declaration)


def last_use_index(statements: Sequence[SyntaxNode], index: int, binding: Binding) -> int:
    """Highest statement index that has to stay inside the new block.

    Locals declared inside the span are tracked too: moving their declaration
    into the block must not strand a later read outside it.
    """
    targets = {binding}
    last = index
    changed = True
    while changed:
        changed = False
        for j in range(last + 1, len(statements)):
            if references_any(statements[j], targets):
                last = j
                changed = True
        for statement in statements[index + 1 : last + 1]:
            new = declared_bindings(statement) - targets
            if new:
                targets |= new
                changed = True
    return last
