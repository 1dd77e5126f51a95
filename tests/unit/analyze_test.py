import logging

import pytest

from leakfix.core import analyze
from leakfix.core.analyze import CHECK_NAME, analyze_file, analyze_paths, analyze_source
from leakfix.core.errors import ConflictError
from leakfix.models import TextEdit

_HEADER = "import java.nio.file.Files;\nimport java.nio.file.Path;\nimport java.util.stream.Stream;\n\n"


def _analyze(body: str) -> list:
    return analyze_source(_HEADER + body, "Example.java")


def test_leaked_stream_is_reported_with_fix() -> None:
    findings = _analyze("class A {\n    long f(Path p) throws Exception {\n        return Files.lines(p).count();\n    }\n}\n")

    assert len(findings) == 1
    finding = findings[0]
    assert finding.check_name == CHECK_NAME
    assert finding.severity == "WARNING"
    assert (finding.location.line, finding.location.column) == (7, 16)
    assert finding.fixable


def test_try_with_resources_is_exempt() -> None:
    findings = _analyze(
        "class A {\n"
        "    long f(Path p) throws Exception {\n"
        "        try (Stream<String> s = Files.lines(p)) {\n"
        "            return s.count();\n"
        "        }\n"
        "    }\n"
        "}\n"
    )

    assert findings == []


def test_must_be_closed_method_may_return_stream() -> None:
    findings = _analyze(
        "class A {\n"
        "    @MustBeClosed\n"
        "    Stream<String> f(Path p) throws Exception {\n"
        "        return Files.lines(p);\n"
        "    }\n"
        "    Stream<String> g(Path p) throws Exception {\n"
        "        return Files.lines(p);\n"
        "    }\n"
        "}\n"
    )

    assert [f.location.line for f in findings] == [11]


@pytest.mark.parametrize(
    "annotation",
    ['@SuppressWarnings("StreamResourceLeak")', '@SuppressWarnings({"unchecked", "FilesLinesLeak"})', '@SuppressWarnings("all")'],
)
def test_suppressed_by_enclosing_annotation(annotation: str) -> None:
    findings = _analyze(
        f"{annotation}\nclass A {{\n    long f(Path p) throws Exception {{\n        return Files.lines(p).count();\n    }}\n}}\n"
    )

    assert findings == []


def test_unrelated_suppression_does_not_hide_finding() -> None:
    findings = _analyze(
        '@SuppressWarnings("unchecked")\n'
        "class A {\n    long f(Path p) throws Exception {\n        return Files.lines(p).count();\n    }\n}\n"
    )

    assert len(findings) == 1


def test_field_initializer_is_reported_without_fix() -> None:
    findings = _analyze("class A {\n    Stream<String> lines = Files.lines(Path.of(\"x\"));\n}\n")

    assert len(findings) == 1
    assert findings[0].fix is None


def test_conflicting_fix_is_dropped_and_logged(monkeypatch, caplog) -> None:
    def conflicting(*_args, **_kwargs):
        raise ConflictError(TextEdit(start=0, end=4), TextEdit(start=2, end=6))

    monkeypatch.setattr(analyze, "synthesize_fix", conflicting)
    with caplog.at_level(logging.WARNING, logger="leakfix.core.analyze"):
        findings = _analyze(
            "class A {\n"
            "    long f(Path p) throws Exception {\n"
            "        long a = Files.lines(p).count();\n"
            "        return a + Files.list(p).count();\n"
            "    }\n"
            "}\n"
        )

    assert len(findings) == 2
    assert all(f.fix is None for f in findings)
    assert "Discarding conflicting fix" in caplog.text


def test_unit_with_syntax_errors_gets_findings_without_fixes(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="leakfix.core.analyze"):
        findings = _analyze("class A {\n    long f(Path p) {\n        return Files.lines(p).count();\n    }\n    void g( {\n}\n")

    assert len(findings) == 1
    assert findings[0].fix is None
    assert "syntax errors" in caplog.text


def test_analyze_file_and_paths(tmp_path) -> None:
    source = _HEADER + "class A {\n    long f(Path p) throws Exception {\n        return Files.walk(p).count();\n    }\n}\n"
    (tmp_path / "pkg").mkdir()
    (tmp_path / "pkg" / "A.java").write_text(source)
    (tmp_path / "pkg" / "notes.txt").write_text("Files.lines(p)")
    (tmp_path / "B.java").write_text("class B {}\n")

    report = analyze_file(tmp_path / "pkg" / "A.java")
    reports = list(analyze_paths([tmp_path]))

    assert len(report.findings) == 1
    assert report.unit.path.endswith("A.java")
    assert [(r.unit.path.rsplit("/", 1)[-1], len(r.findings)) for r in reports] == [("B.java", 0), ("A.java", 1)]


def test_latin1_file_does_not_stop_directory_scan(tmp_path) -> None:
    leaky = _HEADER + "class A {\n    long f(Path p) throws Exception {\n        return Files.lines(p).count();\n    }\n}\n"
    (tmp_path / "A.java").write_text(leaky)
    (tmp_path / "B.java").write_bytes(leaky.replace("class A", "// café\nclass B").encode("latin-1"))
    (tmp_path / "C.java").write_text(leaky.replace("class A", "class C"))

    reports = list(analyze_paths([tmp_path]))

    assert [len(r.findings) for r in reports] == [1, 1, 1]
    latin1 = reports[1]
    assert "�" in latin1.unit.source.text(0, len(latin1.unit.source))
    assert latin1.findings[0].location.line == 8
