"""
Rule Loader
=============
Loads conformance rules from config/rules/*.yaml files.

A rule file declares one group of rules and, optionally, the artifacts its
rules read by default:

    group: changelog
    artifacts: [changelog]
    rules:
      - id: CL-001
        description: Starts with a '# Changelog' header
        check_type: pattern_match
        pattern: '^#\\s+Changelog'

Every key of a rule entry other than the reserved ones below is passed to
the check type's predicate as a parameter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from config_conformance.checks.predicates import CHECK_TYPES
from config_conformance.errors import RuleFileError, SetupError
from config_conformance.utils.log import get_logger

logger = get_logger(__name__)

RESERVED_KEYS = {"id", "description", "check_type", "artifacts", "message", "group"}
DEFAULT_MESSAGE = "{description}"

_rules_cache: dict[tuple[str, tuple[str, ...]], list[Rule]] = {}


@dataclass(frozen=True)
class Rule:
    """One declarative check over one or more artifacts."""

    id: str
    description: str
    check_type: str
    artifacts: tuple[str, ...]
    params: dict = field(default_factory=dict)
    group: str = "default"
    message: str = DEFAULT_MESSAGE  # failure message template
    source_file: str = ""

    @property
    def category(self) -> str:
        ct = CHECK_TYPES.get(self.check_type)
        return ct.category if ct else "unknown"

    def failure_message(self, detail: str = "") -> str:
        """Render the failure message template. Unknown placeholders raise KeyError."""
        return self.message.format(
            id=self.id,
            description=self.description,
            detail=detail,
            artifacts=", ".join(self.artifacts),
            group=self.group,
        )


def _as_tuple(value, source: str = "") -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, list):
        raise RuleFileError(source, f"'artifacts' must be an id or a list of ids, got {value!r}")
    return tuple(str(v) for v in value)


def parse_rule(raw: dict, group: str, default_artifacts: tuple[str, ...] = (), source: str = "") -> Rule:
    """Build a Rule from one YAML entry."""
    if not isinstance(raw, dict):
        raise RuleFileError(source, f"rule entry must be a mapping, got {type(raw).__name__}")
    for key in ("id", "check_type"):
        if not raw.get(key):
            raise RuleFileError(source, f"rule entry without '{key}': {raw!r}")

    artifacts = _as_tuple(raw.get("artifacts"), source) or default_artifacts
    if not artifacts:
        raise RuleFileError(source, f"rule '{raw['id']}' reads no artifacts")

    rule = Rule(
        id=str(raw["id"]),
        description=str(raw.get("description", raw["id"])),
        check_type=str(raw["check_type"]),
        artifacts=artifacts,
        params={k: v for k, v in raw.items() if k not in RESERVED_KEYS},
        group=str(raw.get("group", group)),
        message=str(raw.get("message", DEFAULT_MESSAGE)),
        source_file=source,
    )

    if rule.check_type not in CHECK_TYPES:
        logger.warning("Rule %s (%s) uses unknown check type '%s'", rule.id, source, rule.check_type)
    return rule


def load_rule_file(path: Path) -> list[Rule]:
    """
    Load one rule file.

    Raises:
        RuleFileError: unreadable, invalid YAML, or wrong shape.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise RuleFileError(path, f"invalid YAML ({e})") from e
    except OSError as e:
        raise RuleFileError(path, e.strerror or str(e)) from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise RuleFileError(path, "top level must be a mapping")

    entries = data.get("rules", [])
    if not isinstance(entries, list):
        raise RuleFileError(path, "'rules' must be a list")

    group = str(data.get("group", path.stem))
    default_artifacts = _as_tuple(data.get("artifacts"), path.name)
    rules = [parse_rule(entry, group, default_artifacts, source=path.name) for entry in entries]

    logger.info("Loaded %d rules from %s (%s)", len(rules), path.name, group)
    return rules


def load_rules(rule_files: list[str] | None = None, rules_dir: Path | None = None) -> list[Rule]:
    """
    Load all rules from YAML files, in file then declaration order.

    Args:
        rule_files: Specific rule files to load. Defaults to the configured
                    list for the configured directory; otherwise, or when
                    empty, every *.yaml in the rules directory.
        rules_dir: Directory holding the rule files. Defaults to config.

    Returns:
        Combined list of all rules from all files.

    Raises:
        RuleFileError: a rule file is malformed.
        SetupError: two rules share an id.
    """
    from config_conformance.config import get_settings

    settings = get_settings()
    if rules_dir is None:
        rules_dir = settings.rules.rules_dir
        if rule_files is None:
            rule_files = list(settings.rules.rule_files)
    rules_dir = Path(rules_dir)

    if not rule_files:
        rule_files = sorted(p.name for p in rules_dir.glob("*.yaml"))

    cache_key = (str(rules_dir.resolve()), tuple(rule_files))
    if cache_key in _rules_cache:
        return _rules_cache[cache_key]

    all_rules: list[Rule] = []
    for filename in rule_files:
        rule_path = rules_dir / filename
        if not rule_path.exists():
            logger.warning("Rule file not found: %s", rule_path)
            continue
        all_rules.extend(load_rule_file(rule_path))

    seen: dict[str, str] = {}
    for rule in all_rules:
        if rule.id in seen:
            raise SetupError(f"Duplicate rule id '{rule.id}' in {seen[rule.id]} and {rule.source_file}")
        seen[rule.id] = rule.source_file

    _rules_cache[cache_key] = all_rules
    logger.info("Total rules loaded: %d", len(all_rules))
    return all_rules


def select_rules(
    rules: list[Rule],
    categories: list[str] | tuple[str, ...] | None = None,
    groups: list[str] | tuple[str, ...] | None = None,
) -> list[Rule]:
    """Filter rules by category and/or group, keeping declaration order."""
    selected = rules
    if categories:
        selected = [r for r in selected if r.category in categories]
    if groups:
        selected = [r for r in selected if r.group in groups]
    return selected


def get_rules_by_category(category: str) -> list[Rule]:
    """Get rules filtered by category (existence, text, field, format, consistency, ordering)."""
    return select_rules(load_rules(), categories=[category])


def get_rules_by_group(group: str) -> list[Rule]:
    """Get rules filtered by group (workflow, root-manifest, changelog, ...)."""
    return select_rules(load_rules(), groups=[group])


def reload_rules() -> list[Rule]:
    """Force reload of rules (clears cache)."""
    _rules_cache.clear()
    return load_rules()
