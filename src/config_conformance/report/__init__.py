"""Report subpackage - console lines, exit codes, report files."""

from config_conformance.report.formatter import exit_code, render_report
from config_conformance.report.writer import write_reports

__all__ = ["exit_code", "render_report", "write_reports"]
