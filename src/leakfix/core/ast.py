from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import cast

from tree_sitter import Node
from tree_sitter_language_pack import SupportedLanguage, get_parser

from leakfix.core.languages import detect_language_from_path, normalize_language
from leakfix.core.symbols import Binding, SymbolTable, resolve_symbols
from leakfix.models import Location, Position

STATEMENT_TYPES = frozenset(
    {
        "assert_statement",
        "break_statement",
        "continue_statement",
        "do_statement",
        "enhanced_for_statement",
        "expression_statement",
        "for_statement",
        "if_statement",
        "labeled_statement",
        "local_variable_declaration",
        "return_statement",
        "switch_expression",
        "synchronized_statement",
        "throw_statement",
        "try_statement",
        "try_with_resources_statement",
        "while_statement",
        "yield_statement",
    }
)
BLOCK_TYPES = frozenset({"block", "constructor_body"})
COMMENT_TYPES = frozenset({"comment", "line_comment", "block_comment"})


@dataclass(frozen=True)
class SourceText:
    """Raw source bytes. Bytes that are not UTF-8 decode to U+FFFD; offsets always index ``data``."""

    data: bytes

    @classmethod
    def of(cls, source: bytes | str) -> SourceText:
        return cls(source.encode("utf-8") if isinstance(source, str) else source)

    def __len__(self) -> int:
        return len(self.data)

    def text(self, start: int, end: int) -> str:
        return self.data[start:end].decode("utf-8", errors="replace")

    def line_indent(self, offset: int) -> str:
        """Leading whitespace of the line containing ``offset``."""
        line_start = self.data.rfind(b"\n", 0, offset) + 1
        end = line_start
        while end < len(self.data) and self.data[end : end + 1] in (b" ", b"\t"):
            end += 1
        return self.text(line_start, end)


@dataclass(eq=False)
class SyntaxNode:
    type: str
    start_byte: int
    end_byte: int
    start_point: Position
    end_point: Position
    is_named: bool = True
    field_name: str | None = None
    text: str | None = None
    children: list[SyntaxNode] = dataclasses.field(default_factory=list)
    # Lookup only; the parent owns its children, never the reverse.
    parent: SyntaxNode | None = dataclasses.field(default=None, repr=False)
    binding: Binding | None = dataclasses.field(default=None, repr=False)

    def child_by_field(self, name: str) -> SyntaxNode | None:
        return next((c for c in self.children if c.field_name == name), None)

    def children_by_field(self, name: str) -> list[SyntaxNode]:
        return [c for c in self.children if c.field_name == name]

    @property
    def named_children(self) -> list[SyntaxNode]:
        return [c for c in self.children if c.is_named and c.type not in COMMENT_TYPES]

    def ancestors(self) -> Iterator[SyntaxNode]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def walk(self) -> Iterator[SyntaxNode]:
        """Pre-order traversal of this subtree."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def contains(self, other: SyntaxNode) -> bool:
        return self.start_byte <= other.start_byte and other.end_byte <= self.end_byte

    @property
    def location(self) -> Location:
        return Location(
            start_byte=self.start_byte,
            end_byte=self.end_byte,
            start_point=self.start_point,
            end_point=self.end_point,
        )


@dataclass(eq=False)
class CompilationUnit:
    path: str
    language: str
    source: SourceText
    root: SyntaxNode
    symbols: SymbolTable
    has_errors: bool = False

    def text_of(self, node: SyntaxNode) -> str:
        return self.source.text(node.start_byte, node.end_byte)

    def enclosing(self, node: SyntaxNode, types: Iterable[str]) -> SyntaxNode | None:
        wanted = frozenset(types)
        return next((a for a in node.ancestors() if a.type in wanted), None)

    def enclosing_statement(self, node: SyntaxNode) -> SyntaxNode | None:
        return self.enclosing(node, STATEMENT_TYPES)

    def nodes_of_type(self, node_type: str) -> Iterator[SyntaxNode]:
        return (n for n in self.root.walk() if n.type == node_type)


def block_statements(block: SyntaxNode) -> list[SyntaxNode]:
    return block.named_children


def _make_node(node: Node, field_name: str | None, parent: SyntaxNode | None, source: bytes) -> SyntaxNode:
    leaf = node.child_count == 0
    return SyntaxNode(
        type=node.type,
        start_byte=node.start_byte,
        end_byte=node.end_byte,
        start_point=Position(row=node.start_point[0], column=node.start_point[1]),
        end_point=Position(row=node.end_point[0], column=node.end_point[1]),
        is_named=node.is_named,
        field_name=field_name,
        text=source[node.start_byte : node.end_byte].decode("utf-8", errors="replace") if leaf else None,
        parent=parent,
    )


def _to_syntax_tree(root: Node, source: bytes) -> SyntaxNode:
    # Iterative so that deeply nested expressions cannot exhaust the recursion limit.
    top = _make_node(root, None, None, source)
    cursor = root.walk()
    if not cursor.goto_first_child():
        return top

    stack = [top]
    while True:
        current = _make_node(cast(Node, cursor.node), cursor.field_name, stack[-1], source)
        stack[-1].children.append(current)
        if cursor.goto_first_child():
            stack.append(current)
            continue
        while not cursor.goto_next_sibling():
            cursor.goto_parent()
            stack.pop()
            if not stack:
                return top


def parse_source(source: bytes | str, path: str = "<string>", language: str = "java") -> CompilationUnit:
    resolved_language = normalize_language(language)
    text = SourceText.of(source)
    parser = get_parser(cast(SupportedLanguage, resolved_language))
    tree = parser.parse(text.data)
    root = _to_syntax_tree(tree.root_node, text.data)

    return CompilationUnit(
        path=path,
        language=resolved_language,
        source=text,
        root=root,
        symbols=resolve_symbols(root),
        has_errors=tree.root_node.has_error,
    )


def parse_file(path: str | Path, language: str | None = None) -> CompilationUnit:
    file_path = Path(path)
    resolved_language = normalize_language(language) if language else detect_language_from_path(file_path)

    try:
        source_bytes = file_path.read_bytes()
    except FileNotFoundError:
        raise FileNotFoundError(f"File not found: {path}") from None

    return parse_source(source_bytes, str(file_path), resolved_language)
