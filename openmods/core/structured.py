"""Typed reads out of parsed JSON.

openmods.json, manifests, event files and LNURL responses all arrive as
``json.loads`` output. Parsers read them through these accessors, which
return ``None`` for anything missing or of the wrong JSON type, and build
the typed dataclasses from there.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TypeGuard, cast
from urllib.parse import urlsplit

type StrDict = dict[str, object]
type ObjList = list[object]


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    return isinstance(obj, dict) and all(isinstance(k, str) for k in cast(dict[object, object], obj))


def as_str_dict(obj: object) -> StrDict | None:
    return obj if is_str_dict(obj) else None


def as_obj_list(obj: object) -> ObjList | None:
    return cast(ObjList, obj) if isinstance(obj, list) else None


def get_raw_str(table: Mapping[str, object], key: str) -> str | None:
    """The string under ``key`` exactly as written.

    Manifest text (titles, changelog bodies, URIs) goes into signed content
    and must not be altered.
    """
    value = table.get(key)
    return value if isinstance(value, str) else None


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Stripped string; blank counts as missing. For openmods.json settings."""
    value = get_raw_str(table, key)
    if value is None:
        return None
    return value.strip() or None


def get_int(table: Mapping[str, object], key: str) -> int | None:
    value = table.get(key)
    # JSON true/false load as bool, which is an int subclass
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def get_number(table: Mapping[str, object], key: str) -> float | int | None:
    value = table.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def get_bool(table: Mapping[str, object], key: str) -> bool | None:
    value = table.get(key)
    return value if isinstance(value, bool) else None


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    return as_str_dict(table.get(key))


def get_list(table: Mapping[str, object], key: str) -> ObjList | None:
    return as_obj_list(table.get(key))


def get_str_list(table: Mapping[str, object], key: str) -> list[str] | None:
    """All-string list, or None when missing or any item is not a string."""
    items = get_list(table, key)
    if items is None or not all(isinstance(item, str) for item in items):
        return None
    return cast(list[str], items)


def is_url(value: str) -> bool:
    """Absolute URL: relays (wss://), LNURL endpoints and project links."""
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return bool(parts.scheme and parts.netloc)
