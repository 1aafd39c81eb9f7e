"""
Report Formatter
=================
Renders a RunReport as plain text lines and maps it to a process exit code.
"""

from __future__ import annotations

from config_conformance.checks.engine import RuleResult, RunReport

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_SETUP_ERROR = 2


def format_line(result: RuleResult) -> str:
    """
    One line per rule:
        PASS WF-008 Payload destination is a base58 address ('E5NB8T...')
        FAIL LK-005 axios resolves to 0.30.1: artifact unavailable: lockfile
    """
    line = f"{result.status} {result.rule_id} {result.message}".rstrip()
    if not result.detail:
        return line
    if result.passed:
        return f"{line} ({result.detail})"
    return f"{line}: {result.detail}"


def format_summary(report: RunReport) -> str:
    overall = "PASS" if report.passed else "FAIL"
    return f"{report.total} rules: {report.passed_count} passed, {report.failed_count} failed ({overall})"


def render_report(report: RunReport) -> list[str]:
    """Per-rule lines in declared order, then the summary line."""
    lines = [format_line(r) for r in report.results]
    lines.append(format_summary(report))
    return lines


def exit_code(report: RunReport) -> int:
    """0 if every rule passed, 1 otherwise."""
    return EXIT_OK if report.passed else EXIT_FAILURES
