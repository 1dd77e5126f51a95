import typer

from leakfix.cli.check import check
from leakfix.cli.rules import rules

app = typer.Typer(
    name="leakfix",
    help="Find Java streams that leak file handles and propose try-with-resources fixes.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)

app.command("check")(check)
app.command("rules")(rules)


def main() -> None:
    app()
