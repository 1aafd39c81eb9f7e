"""Tests for report formatting, exit codes and report files."""

import json

from config_conformance.checks.engine import RuleResult, RunReport
from config_conformance.report import exit_code, render_report, write_reports
from config_conformance.report.formatter import (
    EXIT_FAILURES,
    EXIT_OK,
    format_line,
    format_summary,
)
from config_conformance.report.writer import render_markdown


def _report() -> RunReport:
    return RunReport(
        results=[
            RuleResult("WF-001", True, message="Workflow is named 'Send SOL'", category="text", group="workflow"),
            RuleResult(
                "LK-005", False, "artifact unavailable: lockfile",
                message="axios resolves to 0.30.1", category="text", group="lockfile",
            ),
            RuleResult(
                "WF-008", True, "'E5NB8TgE3e2te2dQLTSG8GTexeyLFJCDUYkgC6JVFTzi'",
                message="Payload destination is a base58 address", category="format", group="workflow",
            ),
        ]
    )


class TestFormatter:
    def test_pass_line(self):
        assert format_line(RuleResult("A-1", True, message="ok thing")) == "PASS A-1 ok thing"

    def test_pass_line_with_detail(self):
        line = format_line(RuleResult("A-1", True, "matched 'x'", message="thing"))
        assert line == "PASS A-1 thing (matched 'x')"

    def test_fail_line(self):
        line = format_line(RuleResult("LK-005", False, "artifact unavailable: lockfile", message="axios"))
        assert line == "FAIL LK-005 axios: artifact unavailable: lockfile"

    def test_line_without_message(self):
        assert format_line(RuleResult("A-1", False)) == "FAIL A-1"

    def test_summary(self):
        assert format_summary(_report()) == "3 rules: 2 passed, 1 failed (FAIL)"
        assert format_summary(RunReport()) == "0 rules: 0 passed, 0 failed (PASS)"

    def test_render_keeps_rule_order(self):
        lines = render_report(_report())
        assert [line.split()[1] for line in lines[:-1]] == ["WF-001", "LK-005", "WF-008"]
        assert lines[-1].endswith("(FAIL)")

    def test_exit_codes(self):
        assert exit_code(_report()) == EXIT_FAILURES
        passing = RunReport(results=[RuleResult("A", True), RuleResult("B", True)])
        assert exit_code(passing) == EXIT_OK


class TestWriter:
    def test_write_reports(self, tmp_path):
        md_path, json_path = write_reports(_report(), tmp_path / "out", name="squads-mpl", project_root=tmp_path)

        assert md_path.name == "report-squads-mpl.md"
        assert json_path.name == "report-squads-mpl.json"

        data = json.loads(json_path.read_text(encoding="utf-8"))
        assert data["passed"] is False
        assert data["failed_count"] == 1
        assert data["project_root"] == str(tmp_path)
        assert [r["rule_id"] for r in data["results"]] == ["WF-001", "LK-005", "WF-008"]

    def test_unsafe_name(self, tmp_path):
        md_path, _ = write_reports(_report(), tmp_path, name="a/b:c")
        assert "/" not in md_path.name[len("report-"):]
        assert md_path.parent == tmp_path

    def test_markdown_sections(self):
        md = render_markdown(_report())
        assert md.startswith("# Conformance Report")
        assert "| **Status** | **FAIL** |" in md
        assert "## Failures" in md
        assert "- **LK-005** axios resolves to 0.30.1: artifact unavailable: lockfile" in md
        assert md.index("## workflow") < md.index("## lockfile")

    def test_markdown_passing_has_no_failures(self):
        md = render_markdown(RunReport(results=[RuleResult("A", True, group="g")]))
        assert "## Failures" not in md
        assert "| **Status** | **PASS** |" in md

    def test_pipes_escaped_in_cells(self):
        report = RunReport(results=[RuleResult("A", False, "no match for /a|b/", group="g")])
        assert "no match for /a\\|b/" in render_markdown(report)
