import difflib
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer
from pydantic import TypeAdapter
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from leakfix.config import configure_logging, resolve_resource_methods
from leakfix.core.analyze import FileReport, analyze_paths, analyze_unit
from leakfix.core.ast import parse_source
from leakfix.core.edits import render
from leakfix.models import Finding

console = Console()
_FINDINGS_ADAPTER = TypeAdapter(list[Finding])


class OutputFormat(str, Enum):
    text = "text"
    json = "json"


def _render_findings(reports: list[FileReport]) -> None:
    table = Table(show_lines=False)
    for header in ("location", "check", "message", "fix"):
        table.add_column(header)
    count = 0
    for report in reports:
        for finding in report.findings:
            count += 1
            table.add_row(
                escape(f"{finding.path}:{finding.location.line}:{finding.location.column}"),
                finding.check_name,
                finding.message,
                "[green]yes[/green]" if finding.fixable else "[yellow]no[/yellow]",
            )
    console.print(table)
    console.print(f"({count} findings)")


def _render_diffs(reports: list[FileReport]) -> None:
    for report in reports:
        original = report.unit.source.text(0, len(report.unit.source))
        for finding in report.findings:
            if finding.fix is None:
                continue
            patched = render(report.unit.source, finding.fix)
            diff = difflib.unified_diff(
                original.splitlines(keepends=True),
                patched.splitlines(keepends=True),
                fromfile=f"a/{report.unit.path}",
                tofile=f"b/{report.unit.path}",
            )
            console.print("".join(diff), markup=False, highlight=False, soft_wrap=True)


def check(
    paths: Annotated[list[Path] | None, typer.Argument(help="Java files or directories to analyze.")] = None,
    code: Annotated[str | None, typer.Option(help="Java source string to analyze instead of files.")] = None,
    diff: Annotated[bool, typer.Option("--diff", help="Print each proposed fix as a unified diff.")] = False,
    output_format: Annotated[OutputFormat, typer.Option("--format", help="Output format.")] = OutputFormat.text,
    rules_file: Annotated[
        Path | None, typer.Option("--rules", envvar="LEAKFIX_RULES", help="JSON file with extra resource methods.")
    ] = None,
    log_level: Annotated[str | None, typer.Option(help="Log level (default: $LEAKFIX_LOG_LEVEL or WARNING).")] = None,
) -> None:
    """Report leaked resource streams and propose fixes."""
    try:
        configure_logging(log_level)
        methods = resolve_resource_methods(rules_file)
        if code is not None:
            unit = parse_source(code)
            reports = [FileReport(unit=unit, findings=analyze_unit(unit, methods))]
        elif paths:
            reports = list(analyze_paths(paths, methods))
        else:
            console.print("[red]Provide at least one path or --code.[/red]")
            raise typer.Exit(2)
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(2) from None

    findings = [f for report in reports for f in report.findings]
    if output_format is OutputFormat.json:
        typer.echo(_FINDINGS_ADAPTER.dump_json(findings, indent=2).decode("utf-8"))
    else:
        _render_findings(reports)
        if diff:
            _render_diffs(reports)

    if findings:
        raise typer.Exit(1)
