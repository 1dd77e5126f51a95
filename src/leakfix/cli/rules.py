from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from leakfix.config import resolve_resource_methods

console = Console()


def rules(
    rules_file: Annotated[
        Path | None, typer.Option("--rules", envvar="LEAKFIX_RULES", help="JSON file with extra resource methods.")
    ] = None,
) -> None:
    """List the methods whose results must be closed."""
    try:
        methods = resolve_resource_methods(rules_file)
    except (FileNotFoundError, ValueError) as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(2) from None

    table = Table(show_lines=False)
    for header in ("owner", "method", "resource type"):
        table.add_column(header)
    for method in methods:
        table.add_row(method.owner, method.name, method.resource_type)
    console.print(table)
    console.print(f"({len(methods)} rows)")
