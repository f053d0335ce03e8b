from __future__ import annotations

import glob
from pathlib import Path
from typing import Optional, Union

GLOB_CHARS = set("*?[")

PathLike = Union[str, Path]


def parse_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    return False


def parse_int(value: object, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return default


def resolve_path(root: Optional[PathLike], relative: Optional[PathLike]) -> Optional[Path]:
    """Join a relative path onto a root.

    The root comes back unchanged when there is nothing to join, and None
    when neither side is given.
    """
    if relative is not None and str(relative) in ("", "."):
        relative = None
    if root is None:
        return Path(relative) if relative is not None else None
    if relative is None:
        return Path(root)
    return Path(root) / relative


def glob_base(pattern: PathLike) -> Path:
    parts = []
    for part in Path(pattern).parts:
        if GLOB_CHARS & set(part):
            break
        parts.append(part)
    return Path(*parts) if parts else Path(".")


def expand_glob(pattern: PathLike) -> list[Path]:
    matches = [Path(item) for item in glob.glob(str(pattern), recursive=True)]
    return sorted(matches, key=lambda p: p.as_posix())


def expand_files(pattern: PathLike) -> list[Path]:
    return [path for path in expand_glob(pattern) if path.is_file()]


def url_join(*parts: Optional[str]) -> str:
    segments = [part.strip("/") for part in parts if part and part.strip("/") not in ("", ".")]
    return "/".join(segments)
