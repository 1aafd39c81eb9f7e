"""Tests for the rule engine and end-to-end runs over the fixture project."""

import json

import pytest

from config_conformance.artifacts.loader import STATUS_OK, Artifact, load_artifacts
from config_conformance.checks.engine import (
    INTERNAL_ERROR_DETAIL,
    RunReport,
    RuleResult,
    check_project,
    evaluate_rule,
    run_checks,
)
from config_conformance.checks.rules import Rule, load_rules
from config_conformance.errors import SetupError


def _changelog(text: str = "# Changelog\n## [1.5.2]\n") -> dict[str, Artifact]:
    return {
        "changelog": Artifact(
            id="changelog", path="CHANGELOG.md", kind="text", status=STATUS_OK, content=text, raw=text
        )
    }


def test_evaluate_rule_pass():
    rule = Rule("CL-003", "Has a 1.5.2 section", "text_contains", ("changelog",), {"marker": "## [1.5.2]"})
    result = evaluate_rule(rule, _changelog())
    assert result.passed
    assert result.status == "PASS"
    assert result.message == "Has a 1.5.2 section"
    assert result.category == "text"


def test_evaluate_rule_fail_uses_message_template():
    rule = Rule(
        "CL-012", "No 1.5.3 section", "text_absent", ("changelog",), {"marker": "## [1.5.2]"},
        message="{description} (rolled back)",
    )
    result = evaluate_rule(rule, _changelog())
    assert not result.passed
    assert result.message == "No 1.5.3 section (rolled back)"
    assert "line 2" in result.detail


def test_unavailable_artifact_skips_predicate(monkeypatch):
    """A missing dependency fails the rule without invoking its predicate."""
    from config_conformance.checks import predicates

    calls = []
    ct = predicates.CHECK_TYPES["field_present"]
    monkeypatch.setitem(
        predicates.CHECK_TYPES, "field_present",
        predicates.CheckType(ct.name, ct.category, lambda p, a: calls.append(a) or (True, "")),
    )

    rule = Rule("RP-008", "Root has a test script", "field_present", ("root_manifest",), {"key_path": "scripts.test"})
    broken = Artifact(id="root_manifest", path="package.json", kind="json", status="parse-error", error="bad")
    result = evaluate_rule(rule, {"root_manifest": broken})

    assert not result.passed
    assert result.detail == "artifact unavailable: root_manifest"
    assert calls == []


def test_undeclared_artifact_is_unavailable():
    rule = Rule("X-1", "x", "text_contains", ("nowhere",), {"marker": "x"})
    result = evaluate_rule(rule, _changelog())
    assert result.detail == "artifact unavailable: nowhere"


def test_first_unavailable_artifact_is_reported():
    rule = Rule("XF-001", "x", "fields_equal", ("root_manifest", "app_manifest"), {"key_path": "type"})
    result = evaluate_rule(rule, {})
    assert result.detail == "artifact unavailable: root_manifest"


def test_predicate_error_is_contained(caplog):
    bad_regex = Rule("BAD-1", "Broken pattern", "pattern_match", ("changelog",), {"pattern": "(["})
    good = Rule("CL-003", "Has a 1.5.2 section", "text_contains", ("changelog",), {"marker": "## [1.5.2]"})
    report = run_checks([bad_regex, good], _changelog())

    assert [r.rule_id for r in report.results] == ["BAD-1", "CL-003"]
    assert report.results[0].detail == INTERNAL_ERROR_DETAIL
    assert report.results[1].passed
    assert "BAD-1" in caplog.text


@pytest.mark.parametrize(
    "rule",
    [
        Rule("U-1", "unknown type", "yaml_valid", ("changelog",)),
        Rule("U-2", "missing param", "pattern_match", ("changelog",), {}),
        Rule("U-3", "too many artifacts", "text_contains", ("changelog", "changelog"), {"marker": "x"}),
        Rule("U-4", "bad template", "text_contains", ("changelog",), {"marker": "zzz"}, message="{nope}"),
    ],
)
def test_malformed_rules_fail_alone(rule):
    result = evaluate_rule(rule, _changelog())
    assert not result.passed
    assert result.detail == INTERNAL_ERROR_DETAIL


def test_report_aggregation():
    report = RunReport(results=[RuleResult("A", True), RuleResult("B", False, "x"), RuleResult("C", True)])
    assert not report.passed
    assert (report.total, report.passed_count, report.failed_count) == (3, 2, 1)
    assert [r.rule_id for r in report.failures] == ["B"]
    assert RunReport().passed


def test_report_to_dict_is_json():
    report = RunReport(results=[RuleResult("A", True, group="g"), RuleResult("B", False, "x", group="g")])
    data = json.loads(json.dumps(report.to_dict()))
    assert data["passed"] is False
    assert data["results"][1] == {
        "rule_id": "B", "status": "FAIL", "message": "", "detail": "x", "category": "", "group": "g",
    }


# ── End to end over the fixture project ──────────────


def test_fixture_project_passes(project, artifact_specs, rules_dir):
    rules = load_rules(rules_dir=rules_dir)
    report = check_project(project, artifact_specs, rules)

    failures = [(r.rule_id, r.detail) for r in report.failures]
    assert failures == []
    assert report.passed
    assert report.total == len(rules)


def test_run_is_idempotent(project, artifact_specs, rules_dir):
    rules = load_rules(rules_dir=rules_dir)
    first = check_project(project, artifact_specs, rules)
    second = check_project(project, artifact_specs, rules)
    assert first == second


def test_evaluation_order_does_not_change_outcomes(project, artifact_specs, rules_dir):
    rules = load_rules(rules_dir=rules_dir)
    artifacts = load_artifacts(project, artifact_specs)
    forward = {r.rule_id: r for r in run_checks(rules, artifacts).results}
    backward = {r.rule_id: r for r in run_checks(list(reversed(rules)), artifacts).results}
    assert forward == backward


def test_missing_lock_file(project, artifact_specs, rules_dir):
    (project / "app" / "yarn.lock").unlink()
    rules = load_rules(rules_dir=rules_dir)
    report = check_project(project, artifact_specs, rules)

    assert not report.passed
    by_group = report.by_group()
    lock_results = by_group["lockfile"]
    assert lock_results
    assert {r.rule_id: r.detail for r in lock_results if r.detail != "artifact unavailable: lockfile"} == {}
    assert all(not r.passed for r in lock_results)
    assert all(r.passed for r in by_group["changelog"])
    assert {r.group for r in report.failures} == {"lockfile"}


def test_module_type_mismatch(project, artifact_specs, rules_dir):
    app_manifest = project / "app" / "package.json"
    data = json.loads(app_manifest.read_text(encoding="utf-8"))
    data["type"] = "commonjs"
    app_manifest.write_text(json.dumps(data, indent=2), encoding="utf-8")

    report = check_project(project, artifact_specs, load_rules(rules_dir=rules_dir))
    failed = {r.rule_id for r in report.failures}
    assert failed == {"XF-001", "AP-023"}


def test_changelog_out_of_order(project, artifact_specs, rules_dir):
    changelog = project / "CHANGELOG.md"
    text = changelog.read_text(encoding="utf-8")
    head, rest = text.split("## [1.5.1]", 1)
    section_151, section_150 = rest.split("## [1.5.0]", 1)
    changelog.write_text(head + "## [1.5.0]" + section_150 + "\n## [1.5.1]" + section_151, encoding="utf-8")

    report = check_project(project, artifact_specs, load_rules(rules_dir=rules_dir))
    assert [r.rule_id for r in report.failures] == ["CL-011"]


def test_malformed_manifest(project, artifact_specs, rules_dir):
    (project / "package.json").write_text("{ not json", encoding="utf-8")
    report = check_project(project, artifact_specs, load_rules(rules_dir=rules_dir))

    root_results = report.by_group()["root-manifest"]
    assert all(r.detail == "artifact unavailable: root_manifest" for r in root_results)
    xf = {r.rule_id: r for r in report.by_group()["consistency"]}
    assert xf["XF-001"].detail == "artifact unavailable: root_manifest"


def test_hardcoded_token_is_caught(project, artifact_specs, rules_dir):
    workflow = project / ".github" / "workflows" / "send-sol.yml"
    text = workflow.read_text(encoding="utf-8")
    workflow.write_text(
        text.replace("${{ secrets.QUICKNODE_API_KEY }}", "qn1234567890abcdefghijklmnop"), encoding="utf-8"
    )
    report = check_project(project, artifact_specs, load_rules(rules_dir=rules_dir))
    failed = {r.rule_id for r in report.failures}
    assert {"SEC-001", "SEC-002", "WF-005"} <= failed


def test_setup_error_before_evaluation(tmp_path, artifact_specs, rules_dir):
    with pytest.raises(SetupError):
        check_project(tmp_path / "missing", artifact_specs, load_rules(rules_dir=rules_dir))


def test_existence_rule_uses_unavailable_path():
    rule = Rule("LK-001", "app/yarn.lock exists", "exists", ("lockfile",))
    missing = Artifact(id="lockfile", path="app/yarn.lock", kind="text", status="missing", error="gone")
    result = evaluate_rule(rule, {"lockfile": missing})
    assert not result.passed
    assert result.detail == "artifact unavailable: lockfile"
    assert result.message == "app/yarn.lock exists"
