import logging

from leakfix.core.ast import COMMENT_TYPES, CompilationUnit, SyntaxNode
from leakfix.core.context import ChainedCall, Context, Declaration, LoopIterable, StatementExpr, Unsupported
from leakfix.core.edits import FixBuilder
from leakfix.core.errors import StructuralMismatch
from leakfix.core.matchers import package_declaration, type_is_imported, unit_imports, unit_package
from leakfix.core.scope import enclosing_statements, last_use_index
from leakfix.models import FixSet, ResourceMethod

logger = logging.getLogger(__name__)

# Literals whose line breaks are part of the value.
_VERBATIM_TYPES = frozenset({"string_literal", "text_block"})


def _try_header(unit: CompilationUnit, call: SyntaxNode, name: str, resource: ResourceMethod) -> str:
    return f"try ({resource.resource_type} {name} = {unit.text_of(call)}) {{"


def _indent_step(indent: str) -> str:
    return "\t" if "\t" in indent else "    "


def _statement_end(statement: SyntaxNode) -> int:
    """End of ``statement``, extended over comments that trail it on its last line."""
    end = statement.end_byte
    parent = statement.parent
    if parent is None:
        return end
    siblings = parent.children
    for sibling in siblings[siblings.index(statement) + 1 :]:
        if sibling.type not in COMMENT_TYPES or sibling.start_point.row != statement.end_point.row:
            break
        end = sibling.end_byte
    return end


def _reindent(
    fix: FixBuilder, unit: CompilationUnit, start: int, end: int, step: str, keep: list[tuple[int, int]]
) -> None:
    """Indent every line beginning inside ``(start, end)`` by ``step``, except inside ``keep`` ranges."""
    data = unit.source.data
    newline = data.find(b"\n", start, end)
    while newline != -1:
        line_start = newline + 1
        blank = data[line_start : line_start + 1] in (b"\n", b"\r")
        if line_start < end and not blank and not any(s < line_start < e for s, e in keep):
            fix.insert_at(line_start, step)
        newline = data.find(b"\n", line_start, end)


def _verbatim_ranges(nodes: list[SyntaxNode]) -> list[tuple[int, int]]:
    return [(n.start_byte, n.end_byte) for node in nodes for n in node.walk() if n.type in _VERBATIM_TYPES]


def _wrap_statement(
    fix: FixBuilder, unit: CompilationUnit, statement: SyntaxNode, call: SyntaxNode, name: str, resource: ResourceMethod
) -> None:
    """``stmt(call)`` -> ``try (R name = call) { stmt(name) }``"""
    indent = unit.source.line_indent(statement.start_byte)
    step = _indent_step(indent)
    fix.prefix_with(statement, f"{_try_header(unit, call, name, resource)}\n{indent}{step}")
    fix.replace(call, name)
    keep = [(call.start_byte, call.end_byte), *_verbatim_ranges([statement])]
    _reindent(fix, unit, statement.start_byte, statement.end_byte, step, keep)
    fix.insert_at(_statement_end(statement), f"\n{indent}}}")


def _split_declaration(
    fix: FixBuilder,
    unit: CompilationUnit,
    statement: SyntaxNode,
    declarator: SyntaxNode,
    call: SyntaxNode,
    name: str,
    resource: ResourceMethod,
) -> None:
    """``T x = call.m();`` -> ``T x; try (R name = call) { x = name.m(); }``

    The variable stays declared outside the block so later statements still see it.
    """
    variable = declarator.child_by_field("name")
    equals = next((c for c in declarator.children if c.type == "="), None)
    value = declarator.child_by_field("value")
    if variable is None or equals is None or value is None:
        raise StructuralMismatch("declarator has no initializer")
    before_equals = declarator.children[declarator.children.index(equals) - 1]

    indent = unit.source.line_indent(statement.start_byte)
    step = _indent_step(indent)
    fix.replace_range(
        before_equals.end_byte,
        value.start_byte,
        f";\n{indent}{_try_header(unit, call, name, resource)}\n{indent}{step}{unit.text_of(variable)} = ",
    )
    fix.replace(call, name)
    keep = [(call.start_byte, call.end_byte), *_verbatim_ranges([value])]
    _reindent(fix, unit, value.start_byte, statement.end_byte, step, keep)
    fix.insert_at(_statement_end(statement), f"\n{indent}}}")


def _wrap_declaration(fix: FixBuilder, unit: CompilationUnit, declaration: SyntaxNode, declarator: SyntaxNode) -> None:
    """``R r = call; use(r);`` -> ``try (R r = call) { use(r); }``"""
    variable = declarator.child_by_field("name")
    value = declarator.child_by_field("value")
    if variable is None or value is None or variable.binding is None:
        raise StructuralMismatch("declared variable is not resolvable")

    statements, index = enclosing_statements(declaration)
    last = last_use_index(statements, index, variable.binding)
    indent = unit.source.line_indent(declaration.start_byte)
    fix.prefix_with(declaration, "try (")
    fix.replace_range(value.end_byte, declaration.end_byte, ") {")
    body = statements[index + 1 : last + 1]
    if body:
        step = _indent_step(indent)
        _reindent(fix, unit, declaration.end_byte, body[-1].end_byte, step, _verbatim_ranges(body))
    fix.insert_at(_statement_end(statements[last]), f"\n{indent}}}")


def _import_resource_types(fix: FixBuilder, unit: CompilationUnit, resource: ResourceMethod) -> None:
    imports = unit_imports(unit)
    package = unit_package(unit)
    missing: list[str] = []
    for qualified_name in resource.imports:
        if type_is_imported(imports, qualified_name, package):
            continue
        simple_name = qualified_name.rsplit(".", 1)[-1]
        if any(not i.static and not i.wildcard and i.simple_name == simple_name for i in imports):
            raise StructuralMismatch(f"{simple_name} already names another imported type")
        missing.append(qualified_name)
    if not missing:
        return

    last_import = imports[-1].node if imports else None
    declaration = package_declaration(unit)
    if last_import is not None:
        fix.insert_after(last_import, "".join(f"\nimport {name};" for name in missing))
    elif declaration is not None:
        fix.insert_after(declaration, "\n" + "".join(f"\nimport {name};" for name in missing))
    else:
        fix.insert_at(0, "".join(f"import {name};\n" for name in missing) + "\n")
    for name in missing:
        fix.add_import(name)


def synthesize_fix(
    call: SyntaxNode, context: Context, unit: CompilationUnit, resource: ResourceMethod
) -> FixSet | None:
    """Edits that move the resource produced by ``call`` into a try-with-resources.

    Returns ``None`` when the context admits no safe rewrite. Raises
    :class:`~leakfix.core.errors.ConflictError` if the edits overlap.
    """
    fix = FixBuilder()
    try:
        match context:
            case Unsupported(reason=reason):
                logger.debug("No fix for %s at byte %d: %s", unit.path, call.start_byte, reason)
                return None
            case Declaration(declaration=declaration, declarator=declarator):
                _wrap_declaration(fix, unit, declaration, declarator)
            case ChainedCall(statement=statement, name=name, declarator=None):
                _wrap_statement(fix, unit, statement, call, name, resource)
                _import_resource_types(fix, unit, resource)
            case ChainedCall(statement=statement, name=name, declarator=declarator):
                _split_declaration(fix, unit, statement, declarator, call, name, resource)
                _import_resource_types(fix, unit, resource)
            case LoopIterable(loop=loop, name=name):
                _wrap_statement(fix, unit, loop, call, name, resource)
                _import_resource_types(fix, unit, resource)
            case StatementExpr(statement=statement, name=name):
                _wrap_statement(fix, unit, statement, call, name, resource)
                _import_resource_types(fix, unit, resource)
    except StructuralMismatch as exc:
        logger.debug("No fix for %s at byte %d: %s", unit.path, call.start_byte, exc)
        return None
    return fix.build()
