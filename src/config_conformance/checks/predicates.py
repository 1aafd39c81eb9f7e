"""
Check Types
============
The predicate kinds a rule can declare via `check_type`. Each predicate
takes the rule's parameters and the rule's artifacts (in declared order)
and returns (passed, detail). Predicates are pure: no I/O, no shared state.

Check types self-register into CHECK_TYPES with the @check_type decorator.

Categories:
  existence    - artifact loaded
  text         - literal / regex presence, absence, counts over raw text
  field        - JSON key path presence, type, equality, containment
  format       - value satisfies a named format or pattern
  consistency  - relation across two or more artifacts
  ordering     - marker occurrence order in raw text
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Callable

from config_conformance.artifacts.loader import Artifact
from config_conformance.checks.formats import get_format, major_version
from config_conformance.utils.helpers import format_key_path, json_type_name, lookup_key_path, shorten

CATEGORY_EXISTENCE = "existence"
CATEGORY_TEXT = "text"
CATEGORY_FIELD = "field"
CATEGORY_FORMAT = "format"
CATEGORY_CONSISTENCY = "consistency"
CATEGORY_ORDERING = "ordering"

CATEGORIES = (
    CATEGORY_EXISTENCE,
    CATEGORY_TEXT,
    CATEGORY_FIELD,
    CATEGORY_FORMAT,
    CATEGORY_CONSISTENCY,
    CATEGORY_ORDERING,
)

Predicate = Callable[[dict, list[Artifact]], tuple[bool, str]]


@dataclass(frozen=True)
class CheckType:
    """A registered predicate kind."""

    name: str
    category: str
    func: Predicate
    min_artifacts: int = 1
    max_artifacts: int | None = 1

    def accepts(self, n_artifacts: int) -> bool:
        if n_artifacts < self.min_artifacts:
            return False
        return self.max_artifacts is None or n_artifacts <= self.max_artifacts


CHECK_TYPES: dict[str, CheckType] = {}


def check_type(
    name: str,
    category: str,
    min_artifacts: int = 1,
    max_artifacts: int | None = 1,
) -> Callable[[Predicate], Predicate]:
    """Register a predicate under a check type name."""

    def decorator(func: Predicate) -> Predicate:
        CHECK_TYPES[name] = CheckType(
            name=name,
            category=category,
            func=func,
            min_artifacts=min_artifacts,
            max_artifacts=max_artifacts,
        )
        return func

    return decorator


def get_check_type(name: str) -> CheckType:
    try:
        return CHECK_TYPES[name]
    except KeyError:
        raise KeyError(f"Unknown check type '{name}'") from None


# ── Parameter helpers ─────────────────────────────────

_FLAG_NAMES = {
    "multiline": re.MULTILINE,
    "ignorecase": re.IGNORECASE,
    "dotall": re.DOTALL,
}


def _compile(params: dict, key: str = "pattern") -> re.Pattern:
    flags = 0
    for name in params.get("flags", []):
        flags |= _FLAG_NAMES[name.lower()]
    return re.compile(params[key], flags)


def _markers(params: dict) -> list[str]:
    markers = params.get("markers")
    if markers is None:
        markers = [params["marker"]]
    if isinstance(markers, str):
        markers = [markers]
    return [str(m) for m in markers]


def _show(value: Any) -> str:
    """Render a value for a one-line diagnostic."""
    if isinstance(value, str):
        return repr(shorten(value))
    return shorten(json.dumps(value, ensure_ascii=False))


def _line_of(text: str, offset: int) -> int:
    return text.count("\n", 0, offset) + 1


def _text(artifacts: list[Artifact]) -> str:
    artifact = artifacts[0]
    return artifact.raw if artifact.raw is not None else str(artifact.content)


def _field(params: dict, artifact: Artifact) -> tuple[bool, Any, str]:
    """Look up params['key_path'] in a JSON artifact: (found, value, failure detail)."""
    key_path = params["key_path"]
    try:
        return True, lookup_key_path(artifact.content, key_path), ""
    except KeyError:
        return False, None, f"missing key '{format_key_path(key_path)}' in {artifact.path}"


# ═══════════════════════════════════════════════════════
#  1. Existence
# ═══════════════════════════════════════════════════════


@check_type("exists", CATEGORY_EXISTENCE, max_artifacts=None)
def check_exists(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    """
    Every artifact loaded with status ok.

    Only reached when all of them did: the engine fails the rule with
    "artifact unavailable: <id>" otherwise.
    """
    return True, ", ".join(a.path for a in artifacts)


# ═══════════════════════════════════════════════════════
#  2. Text presence / absence
# ═══════════════════════════════════════════════════════


@check_type("text_contains", CATEGORY_TEXT)
def check_text_contains(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    """All markers present (or at least one with `any: true`)."""
    text = _text(artifacts)
    markers = _markers(params)
    missing = [m for m in markers if m not in text]

    if params.get("any", False):
        if len(missing) < len(markers):
            found = [m for m in markers if m not in missing]
            return True, f"found {_show(found[0])}"
        return False, "none of " + ", ".join(_show(m) for m in markers)

    if missing:
        return False, "missing " + ", ".join(_show(m) for m in missing)
    return True, ""


@check_type("text_absent", CATEGORY_TEXT)
def check_text_absent(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    text = _text(artifacts)
    for marker in _markers(params):
        idx = text.find(marker)
        if idx >= 0:
            return False, f"found {_show(marker)} at line {_line_of(text, idx)}"
    return True, ""


@check_type("pattern_match", CATEGORY_TEXT)
def check_pattern_match(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    text = _text(artifacts)
    regex = _compile(params)
    m = regex.search(text)
    if m is None:
        return False, f"no match for /{regex.pattern}/"
    return True, f"matched {_show(m.group(0))}"


@check_type("pattern_absent", CATEGORY_TEXT)
def check_pattern_absent(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    text = _text(artifacts)
    regex = _compile(params)
    m = regex.search(text)
    if m is not None:
        return False, f"found {_show(m.group(0))} at line {_line_of(text, m.start())}"
    return True, ""


@check_type("pattern_count", CATEGORY_TEXT)
def check_pattern_count(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    """Exactly `count` non-overlapping matches."""
    text = _text(artifacts)
    regex = _compile(params)
    expected = int(params["count"])
    found = sum(1 for _ in regex.finditer(text))
    detail = f"expected {expected} match(es) of /{regex.pattern}/, found {found}"
    return found == expected, "" if found == expected else detail


@check_type("lines_min_length", CATEGORY_TEXT)
def check_lines_min_length(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    """Every line starting with `prefix` (after indentation) is longer than `min_length`."""
    text = _text(artifacts)
    prefix = params["prefix"]
    min_length = int(params["min_length"])

    short = [
        (n, line)
        for n, line in enumerate(text.splitlines(), start=1)
        if line.strip().startswith(prefix) and len(line) <= min_length
    ]
    if short:
        n, line = short[0]
        return False, f"{len(short)} line(s) of {min_length} chars or fewer, first at line {n}: {_show(line)}"
    return True, ""


# ═══════════════════════════════════════════════════════
#  3. JSON fields
# ═══════════════════════════════════════════════════════


@check_type("field_present", CATEGORY_FIELD)
def check_field_present(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    found, _, detail = _field(params, artifacts[0])
    return found, detail


@check_type("field_type", CATEGORY_FIELD)
def check_field_type(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    found, value, detail = _field(params, artifacts[0])
    if not found:
        return False, detail
    actual = json_type_name(value)
    if actual != params["type"]:
        return False, f"expected {params['type']}, got {actual}"
    return True, ""


@check_type("field_equals", CATEGORY_FIELD)
def check_field_equals(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    found, value, detail = _field(params, artifacts[0])
    if not found:
        return False, detail
    expected = params["value"]
    if value != expected or json_type_name(value) != json_type_name(expected):
        return False, f"expected {_show(expected)}, got {_show(value)}"
    return True, ""


def _contains(container: Any, item: Any) -> bool:
    if isinstance(container, str):
        return str(item) in container
    if isinstance(container, (list, dict)):
        return item in container
    raise TypeError(f"cannot search a {json_type_name(container)} value")


@check_type("field_contains", CATEGORY_FIELD)
def check_field_contains(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    """Array has the member, string has the substring, or object has the key."""
    found, value, detail = _field(params, artifacts[0])
    if not found:
        return False, detail
    item = params["value"]
    if not isinstance(value, (str, list, dict)):
        return False, f"expected string, array or object, got {json_type_name(value)}"
    if not _contains(value, item):
        return False, f"{_show(item)} not in {_show(value)}"
    return True, ""


@check_type("field_not_contains", CATEGORY_FIELD)
def check_field_not_contains(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    found, value, detail = _field(params, artifacts[0])
    if not found:
        return False, detail
    items = params.get("values", [params.get("value")])
    if not isinstance(value, (str, list, dict)):
        return False, f"expected string, array or object, got {json_type_name(value)}"
    for item in items:
        if _contains(value, item):
            return False, f"{_show(item)} found in {_show(value)}"
    return True, ""


@check_type("field_values_type", CATEGORY_FIELD)
def check_field_values_type(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    """Every value of the object at key_path has `type`; strings must be non-empty."""
    found, mapping, detail = _field(params, artifacts[0])
    if not found:
        return False, detail
    if not isinstance(mapping, dict):
        return False, f"expected object, got {json_type_name(mapping)}"

    expected = params.get("type", "string")
    bad = []
    for key, value in mapping.items():
        if json_type_name(value) != expected:
            bad.append(f"{key}={_show(value)}")
        elif expected == "string" and not value.strip():
            bad.append(f"{key}=''")
    if bad:
        return False, f"not non-empty {expected}: " + ", ".join(bad)
    return True, ""


# ═══════════════════════════════════════════════════════
#  4. Formats
# ═══════════════════════════════════════════════════════


@check_type("field_format", CATEGORY_FORMAT)
def check_field_format(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    """Value (or with `each: true`, every value of an object) satisfies a named format."""
    fmt_name = params["format"]
    is_valid = get_format(fmt_name)
    found, value, detail = _field(params, artifacts[0])
    if not found:
        return False, detail

    if params.get("each", False):
        if not isinstance(value, dict):
            return False, f"expected object, got {json_type_name(value)}"
        bad = [f"{k}={_show(v)}" for k, v in value.items() if not is_valid(v)]
        if bad:
            return False, f"not a valid {fmt_name}: " + ", ".join(bad)
        return True, ""

    if not is_valid(value):
        return False, f"{_show(value)} is not a valid {fmt_name}"
    return True, f"{_show(value)}"


@check_type("field_pattern", CATEGORY_FORMAT)
def check_field_pattern(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    found, value, detail = _field(params, artifacts[0])
    if not found:
        return False, detail
    regex = _compile(params)
    if not isinstance(value, str) or regex.search(value) is None:
        return False, f"{_show(value)} does not match /{regex.pattern}/"
    return True, f"{_show(value)}"


@check_type("text_format", CATEGORY_FORMAT)
def check_text_format(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    """First capture group of `pattern` in raw text satisfies a named format."""
    fmt_name = params["format"]
    is_valid = get_format(fmt_name)
    text = _text(artifacts)
    regex = _compile(params)
    m = regex.search(text)
    if m is None:
        return False, f"no match for /{regex.pattern}/"
    value = m.group(1) if regex.groups else m.group(0)
    if not is_valid(value):
        return False, f"{_show(value)} at line {_line_of(text, m.start())} is not a valid {fmt_name}"
    return True, f"{_show(value)}"


# ═══════════════════════════════════════════════════════
#  5. Cross-artifact consistency
# ═══════════════════════════════════════════════════════


@check_type("fields_equal", CATEGORY_CONSISTENCY, min_artifacts=2, max_artifacts=None)
def check_fields_equal(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    """Same value at key_path in every artifact (and equal to `value` if given)."""
    values = []
    for artifact in artifacts:
        found, value, detail = _field(params, artifact)
        if not found:
            return False, detail
        values.append((artifact.id, value))

    listing = ", ".join(f"{aid}={_show(v)}" for aid, v in values)
    if "value" in params and any(v != params["value"] for _, v in values):
        return False, f"expected {_show(params['value'])}: {listing}"
    if any(v != values[0][1] for _, v in values[1:]):
        return False, f"values differ: {listing}"
    return True, ""


@check_type("major_versions_compatible", CATEGORY_CONSISTENCY, min_artifacts=2, max_artifacts=None)
def check_major_versions_compatible(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    """
    Version specs at key_path share a major version.

    Only meaningful when every artifact declares the dependency; otherwise
    the check is skipped and passes.
    """
    specs = []
    for artifact in artifacts:
        found, value, _ = _field(params, artifact)
        if not found:
            return True, f"skipped: not declared in {artifact.id}"
        specs.append((artifact.id, value))

    majors = []
    for aid, spec in specs:
        major = major_version(spec)
        if major is None:
            return False, f"no major version in {_show(spec)} ({aid})"
        majors.append((aid, major))

    if len({m for _, m in majors}) > 1:
        return False, "major versions differ: " + ", ".join(f"{aid}={m}" for aid, m in majors)
    return True, f"major {majors[0][1]}"


# ═══════════════════════════════════════════════════════
#  6. Ordering
# ═══════════════════════════════════════════════════════


@check_type("marker_order", CATEGORY_ORDERING)
def check_marker_order(params: dict, artifacts: list[Artifact]) -> tuple[bool, str]:
    """First occurrence of each marker comes before the first occurrence of the next."""
    text = _text(artifacts)
    markers = _markers(params)
    if len(markers) < 2:
        raise ValueError("marker_order needs at least two markers")

    offsets = []
    for marker in markers:
        idx = text.find(marker)
        if idx < 0:
            return False, f"marker not found: {_show(marker)}"
        offsets.append(idx)

    for (a, ia), (b, ib) in zip(zip(markers, offsets), zip(markers[1:], offsets[1:])):
        if ia >= ib:
            return False, f"{_show(a)} (offset {ia}) does not precede {_show(b)} (offset {ib})"
    return True, ""
