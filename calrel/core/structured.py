"""Helpers for reading untyped TOML tables.

Config tables arrive as ``dict[str, object]``; these helpers validate values
at that boundary and narrow them for the type checker.
"""

from __future__ import annotations

from typing import Mapping, TypeGuard, cast

StrDict = dict[str, object]


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


def get_str(table: Mapping[str, object], key: str) -> str | None:
    """Get a stripped, non-empty string value, else None."""
    value = table.get(key)
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def get_table(table: Mapping[str, object], key: str) -> StrDict | None:
    """Get a nested table from a mapping."""
    return as_str_dict(table.get(key))


def get_argv(table: Mapping[str, object], key: str) -> tuple[str, ...] | None:
    """Get a command line stored as a list of strings.

    A plain string is split on whitespace so ``build = "cargo build"`` works
    as well as the list form. Returns None if missing or malformed.
    """
    value = table.get(key)
    if isinstance(value, str):
        parts = tuple(value.split())
        return parts or None
    if not isinstance(value, list):
        return None
    items = cast(list[object], value)
    if not items or not all(isinstance(item, str) and item for item in items):
        return None
    return tuple(cast(list[str], items))
