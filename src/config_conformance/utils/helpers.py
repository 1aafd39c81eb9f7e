"""
Shared helper functions.
"""

from __future__ import annotations

import re
from typing import Any


def safe_filename(name: str) -> str:
    """Convert an arbitrary string to a filesystem-safe filename."""
    return re.sub(r"[^\w\-]", "_", name).strip("_")


def split_key_path(key_path: str | list[str] | tuple[str, ...]) -> list[str]:
    """Split a dot-separated key path. Lists are taken as-is (for keys containing dots)."""
    if isinstance(key_path, (list, tuple)):
        return [str(k) for k in key_path]
    return [k for k in str(key_path).split(".") if k]


def format_key_path(key_path: str | list[str] | tuple[str, ...]) -> str:
    return ".".join(split_key_path(key_path))


def lookup_key_path(data: Any, key_path: str | list[str] | tuple[str, ...]) -> Any:
    """
    Walk nested mappings along a key path.

    Raises KeyError if any segment is absent.
    Only mappings are traversed; list indices are not supported.
    """
    current = data
    for key in split_key_path(key_path):
        if isinstance(current, dict) and key in current:
            current = current[key]
        else:
            raise KeyError(format_key_path(key_path))
    return current


def json_type_name(value: Any) -> str:
    """Name a parsed JSON value's type the way JSON does."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def shorten(text: str, width: int = 60) -> str:
    """Trim long diagnostic values for one-line output."""
    text = str(text)
    if len(text) <= width:
        return text
    return text[: width - 3] + "..."
