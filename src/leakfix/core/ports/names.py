from typing import Protocol

from leakfix.core.ast import SyntaxNode


class NameSuggester(Protocol):
    def suggest(self, point: SyntaxNode, base: str, taken: frozenset[str] = frozenset()) -> str: ...
