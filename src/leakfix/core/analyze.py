import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from leakfix.core.ast import CompilationUnit, SyntaxNode, parse_file, parse_source
from leakfix.core.context import classify
from leakfix.core.errors import ConflictError
from leakfix.core.fix import synthesize_fix
from leakfix.core.languages import iter_source_files
from leakfix.core.matchers import DEFAULT_RESOURCE_METHODS, find_resource_calls
from leakfix.core.ports.names import NameSuggester
from leakfix.core.symbols import ScopeNameSuggester
from leakfix.models import Finding, FixSet, ResourceMethod

logger = logging.getLogger(__name__)

CHECK_NAME = "StreamResourceLeak"
ALT_NAMES = ("FilesLinesLeak",)
SEVERITY = "WARNING"
MESSAGE = "Streams that encapsulate a closeable resource should be closed using try-with-resources"

_SUPPRESSION_KEYS = frozenset({CHECK_NAME, *ALT_NAMES, "all"})


@dataclass(frozen=True)
class FileReport:
    unit: CompilationUnit
    findings: list[Finding]


def _annotations(declaration: SyntaxNode) -> Iterator[SyntaxNode]:
    for child in declaration.children:
        if child.type == "modifiers":
            yield from (c for c in child.children if c.type in ("annotation", "marker_annotation"))


def _annotation_name(unit: CompilationUnit, annotation: SyntaxNode) -> str:
    name = annotation.child_by_field("name")
    return unit.text_of(name).rsplit(".", 1)[-1] if name is not None else ""


def _is_suppressed(call: SyntaxNode, unit: CompilationUnit) -> bool:
    for ancestor in call.ancestors():
        for annotation in _annotations(ancestor):
            if _annotation_name(unit, annotation) != "SuppressWarnings":
                continue
            values = {unit.text_of(n).strip('"') for n in annotation.walk() if n.type == "string_literal"}
            if values & _SUPPRESSION_KEYS:
                return True
    return False


def _is_exempt(call: SyntaxNode, unit: CompilationUnit) -> bool:
    parent = call.parent
    if parent is None:
        return False
    if parent.type == "resource" and call.field_name == "value":
        return True
    if parent.type == "return_statement":
        method = unit.enclosing(call, ("method_declaration", "lambda_expression"))
        if method is not None and method.type == "method_declaration":
            return any(_annotation_name(unit, a) == "MustBeClosed" for a in _annotations(method))
    return False


def _propose_fix(
    call: SyntaxNode, unit: CompilationUnit, resource: ResourceMethod, suggester: NameSuggester
) -> FixSet | None:
    if unit.has_errors:
        return None
    context = classify(call, unit, suggester)
    try:
        return synthesize_fix(call, context, unit, resource)
    except ConflictError:
        logger.warning(
            "Discarding conflicting fix for %s:%d", unit.path, call.start_point.row + 1, exc_info=True
        )
        return None


def analyze_unit(
    unit: CompilationUnit,
    methods: Iterable[ResourceMethod] = DEFAULT_RESOURCE_METHODS,
    suggester: NameSuggester | None = None,
) -> list[Finding]:
    if unit.has_errors:
        logger.warning("%s has syntax errors; findings are reported without fixes", unit.path)
    names = suggester if suggester is not None else ScopeNameSuggester(unit.symbols)

    findings: list[Finding] = []
    for call, resource in find_resource_calls(unit, methods):
        if _is_exempt(call, unit) or _is_suppressed(call, unit):
            continue
        findings.append(
            Finding(
                check_name=CHECK_NAME,
                severity=SEVERITY,
                message=MESSAGE,
                path=unit.path,
                location=call.location,
                fix=_propose_fix(call, unit, resource, names),
            )
        )
    logger.info("Analyzed %s: %d finding(s)", unit.path, len(findings))
    return findings


def analyze_source(
    source: bytes | str,
    path: str = "<string>",
    methods: Iterable[ResourceMethod] = DEFAULT_RESOURCE_METHODS,
    language: str = "java",
) -> list[Finding]:
    return analyze_unit(parse_source(source, path, language), methods)


def analyze_file(path: str | Path, methods: Iterable[ResourceMethod] = DEFAULT_RESOURCE_METHODS) -> FileReport:
    unit = parse_file(path)
    return FileReport(unit=unit, findings=analyze_unit(unit, methods))


def analyze_paths(
    paths: Iterable[Path], methods: Iterable[ResourceMethod] = DEFAULT_RESOURCE_METHODS
) -> Iterator[FileReport]:
    table = tuple(methods)
    for path in iter_source_files(paths):
        yield analyze_file(path, table)
