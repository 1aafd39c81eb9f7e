"""
Conformance Engine
===================
Evaluates rules against loaded artifacts and aggregates a RunReport.

A run is one linear pass:

1. Load all declared artifacts
2. Evaluate every rule, in declared order
3. Return the report (formatting is the caller's business)

Rules never abort a run. A rule whose artifacts did not load fails with
"artifact unavailable: <id>"; a rule whose predicate raises fails with
"internal evaluation error".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from config_conformance.artifacts.loader import (
    DEFAULT_READ_TIMEOUT_S,
    Artifact,
    ArtifactSpec,
    load_artifacts,
)
from config_conformance.checks.predicates import get_check_type
from config_conformance.checks.rules import Rule
from config_conformance.utils.log import get_logger

logger = get_logger(__name__)

INTERNAL_ERROR_DETAIL = "internal evaluation error"


@dataclass(frozen=True)
class RuleResult:
    """Outcome of one rule in one run."""

    rule_id: str
    passed: bool
    detail: str = ""
    message: str = ""
    category: str = ""
    group: str = ""

    @property
    def status(self) -> str:
        return "PASS" if self.passed else "FAIL"


@dataclass
class RunReport:
    """All rule results of one run, in declared rule order."""

    results: list[RuleResult] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(r.passed for r in self.results)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed_count(self) -> int:
        return self.total - self.passed_count

    @property
    def failures(self) -> list[RuleResult]:
        return [r for r in self.results if not r.passed]

    def by_group(self) -> dict[str, list[RuleResult]]:
        groups: dict[str, list[RuleResult]] = {}
        for r in self.results:
            groups.setdefault(r.group, []).append(r)
        return groups

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "total": self.total,
            "passed_count": self.passed_count,
            "failed_count": self.failed_count,
            "results": [
                {
                    "rule_id": r.rule_id,
                    "status": r.status,
                    "message": r.message,
                    "detail": r.detail,
                    "category": r.category,
                    "group": r.group,
                }
                for r in self.results
            ],
        }


def evaluate_rule(rule: Rule, artifacts: dict[str, Artifact]) -> RuleResult:
    """
    Evaluate one rule. Never raises.

    Args:
        rule: The rule declaration.
        artifacts: All loaded artifacts, keyed by id.

    Returns:
        RuleResult for this rule.
    """

    def _result(passed: bool, detail: str, message: str | None = None) -> RuleResult:
        if message is None:
            message = rule.description
        return RuleResult(
            rule_id=rule.id,
            passed=passed,
            detail=detail,
            message=message,
            category=rule.category,
            group=rule.group,
        )

    try:
        ct = get_check_type(rule.check_type)
        if not ct.accepts(len(rule.artifacts)):
            raise ValueError(
                f"check type '{ct.name}' cannot take {len(rule.artifacts)} artifact(s)"
            )

        inputs: list[Artifact] = []
        for artifact_id in rule.artifacts:
            artifact = artifacts.get(artifact_id)
            if artifact is None or not artifact.ok:
                detail = f"artifact unavailable: {artifact_id}"
                return _result(False, detail, rule.failure_message(detail))
            inputs.append(artifact)

        passed, detail = ct.func(rule.params, inputs)
        passed = bool(passed)
        return _result(passed, detail, None if passed else rule.failure_message(detail))

    except Exception:
        logger.exception("Rule %s (%s) raised during evaluation", rule.id, rule.source_file)
        return _result(False, INTERNAL_ERROR_DETAIL)


def run_checks(rules: list[Rule], artifacts: dict[str, Artifact]) -> RunReport:
    """Evaluate every rule against already-loaded artifacts."""
    report = RunReport(results=[evaluate_rule(rule, artifacts) for rule in rules])

    logger.info(
        "Run %s: %d rules, %d PASS, %d FAIL",
        "PASS" if report.passed else "FAIL",
        report.total, report.passed_count, report.failed_count,
    )
    for r in report.failures:
        logger.debug("FAIL %s: %s", r.rule_id, r.detail)
    return report


def check_project(
    root: Path | str,
    specs: list[ArtifactSpec],
    rules: list[Rule],
    timeout: float | None = DEFAULT_READ_TIMEOUT_S,
    max_workers: int = 4,
) -> RunReport:
    """
    Load the declared artifacts from `root` and evaluate `rules` on them.

    Raises:
        SetupError: root not found or bad artifact declarations. Raised
                    before any rule is evaluated.
    """
    artifacts = load_artifacts(root, specs, timeout=timeout, max_workers=max_workers)
    return run_checks(rules, artifacts)
