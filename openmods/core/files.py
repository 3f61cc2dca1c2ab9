"""Filesystem helpers for JSON documents (configs, manifests, event files)."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict

__all__ = ["FileError", "atomic_write_text", "read_json_object", "write_json"]


@dataclass(frozen=True, slots=True)
class FileError:
    message: str
    path: Path
    hint: str | None = None


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text to path atomically using temp file + replace."""
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=str(path.parent),
    )
    tmp_path = Path(tmp_name)

    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink(missing_ok=True)


def read_json_object(path: Path) -> Result[StrDict, FileError]:
    """Read a JSON file whose root must be an object."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Err(FileError(f"file not found: {path}", path=path))
    except (OSError, UnicodeDecodeError) as e:
        return Err(FileError(f"failed to read {path}: {e}", path=path))

    try:
        obj: object = json.loads(text)
    except json.JSONDecodeError as e:
        return Err(FileError(f"invalid JSON in {path}: {e}", path=path))

    data = as_str_dict(obj)
    if data is None:
        return Err(FileError(f"expected a JSON object in {path}", path=path))
    return Ok(data)


def write_json(path: Path, payload: object) -> Result[Path, FileError]:
    """Write ``payload`` with 2-space indentation and a trailing newline."""
    try:
        atomic_write_text(path, json.dumps(payload, indent=2, ensure_ascii=False) + "\n")
    except OSError as e:
        return Err(FileError(f"failed to write {path}: {e}", path=path))
    return Ok(path)
