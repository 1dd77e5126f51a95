from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from leakfix.core.ast import CompilationUnit, SyntaxNode
from leakfix.models import ResourceMethod

_STREAM = "java.util.stream.Stream"
_PATH = "java.nio.file.Path"

DEFAULT_RESOURCE_METHODS: tuple[ResourceMethod, ...] = (
    ResourceMethod(owner="java.nio.file.Files", name="lines", resource_type="Stream<String>", imports=(_STREAM,)),
    ResourceMethod(
        owner="java.nio.file.Files",
        name="newDirectoryStream",
        resource_type="DirectoryStream<Path>",
        imports=("java.nio.file.DirectoryStream", _PATH),
    ),
    ResourceMethod(owner="java.nio.file.Files", name="list", resource_type="Stream<Path>", imports=(_STREAM, _PATH)),
    ResourceMethod(owner="java.nio.file.Files", name="walk", resource_type="Stream<Path>", imports=(_STREAM, _PATH)),
    ResourceMethod(owner="java.nio.file.Files", name="find", resource_type="Stream<Path>", imports=(_STREAM, _PATH)),
)


@dataclass(frozen=True)
class ImportDecl:
    name: str
    static: bool = False
    wildcard: bool = False
    node: SyntaxNode | None = field(default=None, compare=False, repr=False)

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]


def _compact(text: str) -> str:
    return "".join(text.split())


def unit_imports(unit: CompilationUnit) -> list[ImportDecl]:
    imports: list[ImportDecl] = []
    for node in unit.root.named_children:
        if node.type != "import_declaration":
            continue
        target = next((c for c in node.named_children if c.type in ("scoped_identifier", "identifier")), None)
        if target is None:
            continue
        imports.append(
            ImportDecl(
                name=_compact(unit.text_of(target)),
                static=any(c.type == "static" for c in node.children),
                wildcard=any(c.type == "asterisk" for c in node.children),
                node=node,
            )
        )
    return imports


def package_declaration(unit: CompilationUnit) -> SyntaxNode | None:
    return next((n for n in unit.root.named_children if n.type == "package_declaration"), None)


def unit_package(unit: CompilationUnit) -> str:
    declaration = package_declaration(unit)
    if declaration is None:
        return ""
    target = next((c for c in declaration.named_children if c.type in ("scoped_identifier", "identifier")), None)
    return _compact(unit.text_of(target)) if target is not None else ""


def type_is_imported(imports: Iterable[ImportDecl], qualified_name: str, package: str = "") -> bool:
    """Whether ``qualified_name`` can be referred to by its simple name."""
    owner_package = qualified_name.rsplit(".", 1)[0] if "." in qualified_name else ""
    if owner_package in (package, "java.lang"):
        return True
    for decl in imports:
        if decl.static:
            continue
        if decl.name == qualified_name and not decl.wildcard:
            return True
        if decl.wildcard and decl.name == owner_package:
            return True
    return False


def _statically_imported(imports: Iterable[ImportDecl], method: ResourceMethod) -> bool:
    for decl in imports:
        if not decl.static:
            continue
        if decl.wildcard and decl.name == method.owner:
            return True
        if not decl.wildcard and decl.name == f"{method.owner}.{method.name}":
            return True
    return False


def _matches(
    call: SyntaxNode, unit: CompilationUnit, method: ResourceMethod, imports: list[ImportDecl], package: str
) -> bool:
    receiver = call.child_by_field("object")
    if receiver is None:
        return _statically_imported(imports, method)
    if receiver.type == "identifier":
        # A local variable or parameter named like the owner hides the type.
        return (
            receiver.binding is None
            and receiver.text == method.owner_simple_name
            and type_is_imported(imports, method.owner, package)
        )
    if receiver.type in ("field_access", "scoped_identifier"):
        return _compact(unit.text_of(receiver)) == method.owner
    return False


def find_resource_calls(
    unit: CompilationUnit, methods: Iterable[ResourceMethod]
) -> Iterator[tuple[SyntaxNode, ResourceMethod]]:
    by_name: dict[str, list[ResourceMethod]] = {}
    for method in methods:
        by_name.setdefault(method.name, []).append(method)

    imports = unit_imports(unit)
    package = unit_package(unit)
    for call in unit.nodes_of_type("method_invocation"):
        name = call.child_by_field("name")
        if name is None or name.text not in by_name:
            continue
        matched = next((m for m in by_name[name.text] if _matches(call, unit, m, imports, package)), None)
        if matched is not None:
            yield call, matched
