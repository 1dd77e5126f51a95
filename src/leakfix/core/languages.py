from collections.abc import Iterable, Iterator
from pathlib import Path

_LANGUAGE_ALIASES = {
    "java": "java",
    "jav": "java",
}

_EXTENSION_LANGUAGE_MAP = {
    ".java": "java",
}

_SUPPORTED_LANGUAGES = set(_EXTENSION_LANGUAGE_MAP.values())


def normalize_language(language: str) -> str:
    normalized = language.strip().lower()
    resolved = _LANGUAGE_ALIASES.get(normalized, normalized)
    if resolved not in _SUPPORTED_LANGUAGES:
        raise ValueError(f"Unsupported language '{language}'. Supported: {sorted(_SUPPORTED_LANGUAGES)}")
    return resolved


def detect_language_from_path(file_path: Path) -> str:
    suffix = file_path.suffix.lower()
    if suffix in _EXTENSION_LANGUAGE_MAP:
        return _EXTENSION_LANGUAGE_MAP[suffix]
    raise ValueError(f"Unsupported file extension: {suffix}")


def is_source_file(file_path: Path) -> bool:
    return file_path.is_file() and file_path.suffix.lower() in _EXTENSION_LANGUAGE_MAP


def iter_source_files(paths: Iterable[Path]) -> Iterator[Path]:
    """Yield analyzable files, expanding directories recursively in sorted order."""
    for path in paths:
        if path.is_dir():
            yield from (p for p in sorted(path.rglob("*")) if is_source_file(p))
        elif path.exists():
            detect_language_from_path(path)
            yield path
        else:
            raise FileNotFoundError(f"File not found: {path}")
