from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from openmods.core.files import read_json_object
from openmods.core.result import Err, Ok, Result
from openmods.core.structured import StrDict, as_obj_list, as_str_dict, get_raw_str


@dataclass(frozen=True, slots=True)
class ManifestError:
    message: str
    path: Path | None = None
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class HashEntry:
    algorithm: str
    value: str

    def to_dict(self) -> StrDict:
        return {"algorithm": self.algorithm, "value": self.value}


def parse_hashes(items: object, where: str) -> Result[tuple[HashEntry, ...] | None, str]:
    if items is None:
        return Ok(None)
    entries = as_obj_list(items)
    if entries is None:
        return Err(f"{where} must be a list")
    out: list[HashEntry] = []
    for i, item in enumerate(entries):
        table = as_str_dict(item)
        algorithm = get_raw_str(table, "algorithm") if table is not None else None
        value = get_raw_str(table, "value") if table is not None else None
        if algorithm is None or value is None:
            return Err(f"{where}[{i}] needs string algorithm and value")
        out.append(HashEntry(algorithm=algorithm, value=value))
    return Ok(tuple(out))


def optional_str_tuple(data: Mapping[str, object], key: str) -> Result[tuple[str, ...] | None, str]:
    raw = data.get(key)
    if raw is None:
        return Ok(None)
    items = as_obj_list(raw)
    if items is None or not all(isinstance(i, str) for i in items):
        return Err(f"{key} must be a list of strings")
    return Ok(tuple(str(i) for i in items))


def read_manifest[M](
    path: Path,
    parse: Callable[[Mapping[str, object], Path | None], Result[M, ManifestError]],
) -> Result[M, ManifestError]:
    """Read a manifest JSON file and hand it to a parser."""
    data = read_json_object(path)
    if isinstance(data, Err):
        return Err(ManifestError(data.error.message, path=path))
    return parse(data.value, path)
