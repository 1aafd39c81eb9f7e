"""
Format Predicates
==================
One canonical predicate per value format. Rules refer to them by name
(`format: semver`) through FORMATS.
"""

from __future__ import annotations

import re
from typing import Callable

# ── Semantic versioning ───────────────────────────────

SEMVER_RE = re.compile(r"\d+\.\d+\.\d+(-[a-zA-Z0-9.-]+)?(\+[a-zA-Z0-9.-]+)?")


def is_semver(value: object) -> bool:
    """MAJOR.MINOR.PATCH with optional pre-release/build suffix. No 'v' prefix."""
    return isinstance(value, str) and SEMVER_RE.fullmatch(value) is not None


# ── Base58 addresses ──────────────────────────────────

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
ADDRESS_MIN_LEN = 32
ADDRESS_MAX_LEN = 44

_BASE58_CHARS = frozenset(BASE58_ALPHABET)


def is_base58_address(value: object) -> bool:
    """
    Shape check for a Solana-style address: 32-44 chars, base58 alphabet only
    (no 0, O, I, l). Not a cryptographic verification.
    """
    if not isinstance(value, str):
        return False
    if not ADDRESS_MIN_LEN <= len(value) <= ADDRESS_MAX_LEN:
        return False
    return all(c in _BASE58_CHARS for c in value)


# ── Dependency version ranges ─────────────────────────

# One comparator: optional operator, then 1-3 numeric (or x/*) parts and an
# optional pre-release/build tail. e.g. ^0.30.1, ~1.8, >=2.0.0-rc.1, 1.x
_COMPARATOR_RE = re.compile(
    r"(?:\^|~|[<>]=?|=)?v?\d+(?:\.(?:\d+|[xX*])){0,2}(?:[-+][0-9A-Za-z.-]+)*"
)
_WILDCARDS = {"*", "x", "X", "latest"}


def is_version_range(value: object) -> bool:
    """
    Shape check for a package-manager version range.

    Accepts comparator sets joined by '||', hyphen ranges ('1.0.0 - 2.0.0')
    and wildcards. Does not resolve anything.
    """
    if not isinstance(value, str) or not value.strip():
        return False

    for alternative in value.split("||"):
        parts = alternative.split()
        if not parts:
            return False
        if len(parts) == 3 and parts[1] == "-":
            parts = [parts[0], parts[2]]
        for part in parts:
            if part in _WILDCARDS:
                continue
            if not _COMPARATOR_RE.fullmatch(part):
                return False
    return True


_MAJOR_RE = re.compile(r"\d+")


def major_version(spec: object) -> int | None:
    """First integer in a version/range string, e.g. '^2.0.4' → 2."""
    if not isinstance(spec, str):
        return None
    m = _MAJOR_RE.search(spec)
    return int(m.group(0)) if m else None


FORMATS: dict[str, Callable[[object], bool]] = {
    "semver": is_semver,
    "base58_address": is_base58_address,
    "version_range": is_version_range,
}


def get_format(name: str) -> Callable[[object], bool]:
    """Look up a named format predicate. Raises KeyError for unknown names."""
    try:
        return FORMATS[name]
    except KeyError:
        raise KeyError(f"Unknown format '{name}' (known: {', '.join(sorted(FORMATS))})") from None
