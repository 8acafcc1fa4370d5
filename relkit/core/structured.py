"""Helpers for safely reading untyped structures.

Config files (TOML), package manifests (JSON) and REST payloads all arrive
as plain objects. These helpers validate at the boundary and narrow types.
"""

from __future__ import annotations

from typing import Mapping, TypeGuard, cast

StrDict = dict[str, object]
ObjList = list[object]


def is_str_dict(obj: object) -> TypeGuard[StrDict]:
    """Return True if obj is a dict with string keys."""
    if not isinstance(obj, dict):
        return False
    d = cast(dict[object, object], obj)
    return all(isinstance(k, str) for k in d.keys())


def as_str_dict(obj: object) -> StrDict | None:
    if is_str_dict(obj):
        return obj
    return None


def as_obj_list(obj: object) -> ObjList | None:
    if isinstance(obj, list):
        return cast(ObjList, obj)
    return None


def as_str_list(obj: object) -> list[str]:
    """Normalize a string or list of strings into a list (hooks, assets, args)."""
    if isinstance(obj, str):
        return [obj] if obj.strip() else []
    items = as_obj_list(obj)
    if items is None:
        return []
    return [item for item in items if isinstance(item, str) and item.strip()]


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Get a string value, stripped.

    Returns None if missing, not a str, or empty after stripping.
    """
    value = table.get(key)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def get_bool(table: Mapping[str, object], key: str, default: bool = False) -> bool:
    value = table.get(key)
    if isinstance(value, bool):
        return value
    return default


def get_number(table: Mapping[str, object], key: str, default: float) -> float:
    value = table.get(key)
    # bool is an int subclass; never treat it as a number here
    if isinstance(value, bool) or not isinstance(value, int | float):
        return default
    return float(value)


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    """Get a nested table (dict with string keys)."""
    return as_str_dict(table.get(key))
