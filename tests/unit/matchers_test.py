from leakfix.core.matchers import (
    DEFAULT_RESOURCE_METHODS,
    find_resource_calls,
    type_is_imported,
    unit_imports,
    unit_package,
)
from leakfix.models import ResourceMethod


def _calls(unit, methods=DEFAULT_RESOURCE_METHODS) -> list[str]:
    return [unit.text_of(call) for call, _ in find_resource_calls(unit, methods)]


def test_unimported_owner_is_not_matched(parse_java) -> None:
    unit = parse_java("class A { Object f(Object p) { return Files.lines(p); } }")

    assert _calls(unit) == []


def test_imported_owner_is_matched(parse_java) -> None:
    unit = parse_java(
        "import java.nio.file.Files;\nclass A { Object f(java.nio.file.Path p) { return Files.lines(p).count(); } }"
    )

    assert _calls(unit) == ["Files.lines(p)"]


def test_fully_qualified_owner_needs_no_import(parse_java) -> None:
    unit = parse_java("class A { long f(java.nio.file.Path p) { return java.nio.file.Files.walk(p).count(); } }")

    assert _calls(unit) == ["java.nio.file.Files.walk(p)"]


def test_static_imports(parse_java) -> None:
    exact = parse_java("import static java.nio.file.Files.lines;\nclass A { Object f(Object p) { return lines(p); } }")
    wildcard = parse_java("import static java.nio.file.Files.*;\nclass A { Object f(Object p) { return list(p); } }")
    other = parse_java("import static java.nio.file.Files.walk;\nclass A { Object f(Object p) { return lines(p); } }")

    assert _calls(exact) == ["lines(p)"]
    assert _calls(wildcard) == ["list(p)"]
    assert _calls(other) == []


def test_local_variable_hides_owner_type(parse_java) -> None:
    unit = parse_java(
        "import java.nio.file.Files;\nclass A { Object f(Helper Files, Object p) { return Files.lines(p); } }"
    )

    assert _calls(unit) == []


def test_other_method_names_are_ignored(parse_java) -> None:
    unit = parse_java(
        "import java.nio.file.Files;\nclass A { Object f(Object p) { return Files.readAllLines(p); } }"
    )

    assert _calls(unit) == []


def test_each_call_reports_its_table_entry(parse_java) -> None:
    unit = parse_java(
        "import java.nio.file.*;\n"
        "class A { void f(Path p) { Files.find(p, 1, null); Files.newDirectoryStream(p); } }"
    )

    matched = [(method.name, method.resource_type) for _, method in find_resource_calls(unit, DEFAULT_RESOURCE_METHODS)]

    assert matched == [("find", "Stream<Path>"), ("newDirectoryStream", "DirectoryStream<Path>")]


def test_custom_resource_method(parse_java) -> None:
    custom = ResourceMethod(owner="com.acme.Sockets", name="open", resource_type="Socket", imports=("com.acme.Socket",))
    unit = parse_java("package com.acme;\nclass A { Object f() { return Sockets.open(); } }")

    assert _calls(unit, [custom]) == ["Sockets.open()"]
    assert _calls(unit) == []


def test_import_queries(parse_java) -> None:
    unit = parse_java(
        "package org.example.app;\n"
        "import java.nio.file.Files;\n"
        "import java.util.stream.*;\n"
        "import static java.nio.file.Files.lines;\n"
        "class A {}"
    )
    imports = unit_imports(unit)

    assert [(i.name, i.static, i.wildcard) for i in imports] == [
        ("java.nio.file.Files", False, False),
        ("java.util.stream", False, True),
        ("java.nio.file.Files.lines", True, False),
    ]
    assert unit_package(unit) == "org.example.app"
    assert type_is_imported(imports, "java.util.stream.Stream")
    assert type_is_imported(imports, "java.nio.file.Files")
    assert type_is_imported(imports, "java.lang.String")
    assert type_is_imported(imports, "org.example.app.Helper", "org.example.app")
    assert not type_is_imported(imports, "java.nio.file.Path")
    assert not type_is_imported(imports, "java.nio.file.Files.lines")
