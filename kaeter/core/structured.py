"""Helpers for safely working with dynamic (untyped) structures.

Use these at boundaries where we ingest YAML, TOML or JSON (ledgers, config,
changesets, inventories). They validate at runtime and narrow types statically.
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


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Get a string value from a mapping, stripping whitespace.

    Returns None if missing, not a str, or empty after stripping.
    """
    value = table.get(key)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    """Get a nested table (dict with string keys) from a mapping."""
    return as_str_dict(table.get(key))


def get_list(table: Mapping[str, object], key: str) -> ObjList | None:
    return as_obj_list(table.get(key))


def _scalar_text(value: object) -> str | None:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    return None


def get_str_map(table: Mapping[str, object], key: str) -> dict[str, str]:
    """Get a string-to-string mapping; non-scalar values are dropped.

    YAML happily types ``retries: 3`` as an int, while annotations are always
    consumed as strings, so scalars are rendered back to text.
    """
    raw = get_table(table, key)
    if raw is None:
        return {}
    out: dict[str, str] = {}
    for k, v in raw.items():
        text = _scalar_text(v)
        if text is not None:
            out[k] = text
    return out


def get_str_list(table: Mapping[str, object], key: str) -> list[str]:
    """Get a list of strings; non-scalar items are dropped."""
    raw = get_list(table, key)
    if raw is None:
        return []
    out: list[str] = []
    for item in raw:
        text = _scalar_text(item)
        if text is not None:
            out.append(text)
    return out
