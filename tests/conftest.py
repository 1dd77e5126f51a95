"""Shared fixtures and helpers for tests."""

from collections.abc import Callable
from pathlib import Path

import pytest

from leakfix.core.ast import CompilationUnit, SyntaxNode, parse_source

_REPO_ROOT = Path(__file__).parent.parent


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def parse_java() -> Callable[[str], CompilationUnit]:
    """Parse a Java snippet that must be free of syntax errors."""

    def _parse(source: str) -> CompilationUnit:
        unit = parse_source(source, "Example.java")
        assert not unit.has_errors, f"test source does not parse:\n{source}"
        return unit

    return _parse


@pytest.fixture
def find_call() -> Callable[[CompilationUnit, str], SyntaxNode]:
    """Return the first method invocation with the given method name."""

    def _find(unit: CompilationUnit, name: str) -> SyntaxNode:
        for node in unit.nodes_of_type("method_invocation"):
            method = node.child_by_field("name")
            if method is not None and method.text == name:
                return node
        raise AssertionError(f"no call to {name}()")

    return _find


@pytest.fixture
def find_identifiers() -> Callable[[CompilationUnit, str], list[SyntaxNode]]:
    """Return all identifier nodes spelled ``name`` in source order."""

    def _find(unit: CompilationUnit, name: str) -> list[SyntaxNode]:
        return [n for n in unit.root.walk() if n.type == "identifier" and n.text == name]

    return _find
