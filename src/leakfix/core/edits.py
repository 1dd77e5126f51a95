"""Accumulation, validation and rendering of source edits.

Every rewrite strategy funnels through :class:`FixBuilder`. Offsets are byte
offsets into the exact source the syntax tree was parsed from; a built
:class:`~leakfix.models.FixSet` is meaningless against any other text.
"""

from __future__ import annotations

import itertools

from leakfix.core.ast import SourceText, SyntaxNode
from leakfix.core.errors import ConflictError
from leakfix.models import FixSet, TextEdit


class FixBuilder:
    def __init__(self) -> None:
        self._edits: list[TextEdit] = []
        self._imports: list[str] = []

    def replace_range(self, start: int, end: int, replacement: str) -> FixBuilder:
        self._edits.append(TextEdit(start=start, end=end, replacement=replacement))
        return self

    def insert_at(self, offset: int, text: str) -> FixBuilder:
        return self.replace_range(offset, offset, text)

    def insert_before(self, node: SyntaxNode, text: str) -> FixBuilder:
        return self.insert_at(node.start_byte, text)

    def insert_after(self, node: SyntaxNode, text: str) -> FixBuilder:
        return self.insert_at(node.end_byte, text)

    prefix_with = insert_before
    postfix_with = insert_after

    def replace(self, node: SyntaxNode, replacement: str) -> FixBuilder:
        return self.replace_range(node.start_byte, node.end_byte, replacement)

    def delete_range(self, start: int, end: int) -> FixBuilder:
        return self.replace_range(start, end, "")

    def delete(self, node: SyntaxNode) -> FixBuilder:
        return self.replace(node, "")

    def add_import(self, qualified_name: str) -> FixBuilder:
        if qualified_name not in self._imports:
            self._imports.append(qualified_name)
        return self

    def build(self) -> FixSet:
        # sorted() is stable: insertions at one offset keep their registration order
        # and precede a replacement starting at the same offset.
        ordered = sorted(self._edits, key=lambda e: (e.start, e.end))
        for first, second in itertools.combinations(ordered, 2):
            if first.overlaps(second):
                raise ConflictError(first, second)
        return FixSet(edits=tuple(ordered), imports=tuple(self._imports))


def render(source: SourceText | bytes | str, fix_set: FixSet) -> str:
    data = source.data if isinstance(source, SourceText) else SourceText.of(source).data
    parts: list[bytes] = []
    cursor = 0
    for edit in fix_set.edits:
        if edit.start < cursor or edit.end > len(data):
            raise ValueError(f"Edit {edit!r} does not fit the source at offset {cursor}")
        parts.append(data[cursor : edit.start])
        parts.append(edit.replacement.encode("utf-8"))
        cursor = edit.end
    parts.append(data[cursor:])
    return b"".join(parts).decode("utf-8", errors="replace")
