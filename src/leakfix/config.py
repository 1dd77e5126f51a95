import logging
import os
from pathlib import Path

from pydantic import TypeAdapter
from rich.console import Console
from rich.logging import RichHandler

from leakfix.core.matchers import DEFAULT_RESOURCE_METHODS
from leakfix.models import ResourceMethod

_DEFAULT_LOG_LEVEL = "WARNING"
_RESOURCE_METHODS_ADAPTER = TypeAdapter(list[ResourceMethod])


def get_log_level() -> str:
    return os.getenv("LEAKFIX_LOG_LEVEL", _DEFAULT_LOG_LEVEL).strip().upper()


def configure_logging(level: str | None = None) -> None:
    resolved = (level or get_log_level()).upper()
    if resolved not in logging.getLevelNamesMapping():
        raise ValueError(f"Unknown log level '{level or resolved}'")
    logging.basicConfig(
        level=resolved,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def load_resource_methods(path: str | Path) -> list[ResourceMethod]:
    """Read a JSON array of resource method entries."""
    file_path = Path(path)
    try:
        raw = file_path.read_bytes()
    except FileNotFoundError:
        raise FileNotFoundError(f"Rules file not found: {path}") from None
    return _RESOURCE_METHODS_ADAPTER.validate_json(raw)


def resolve_resource_methods(path: str | Path | None = None) -> tuple[ResourceMethod, ...]:
    """Default table, extended or overridden per ``(owner, name)`` by the rules file."""
    table = {(m.owner, m.name): m for m in DEFAULT_RESOURCE_METHODS}
    if path is not None:
        table.update({(m.owner, m.name): m for m in load_resource_methods(path)})
    return tuple(table.values())
