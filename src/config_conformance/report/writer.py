"""
Report Writer
==============
Writes Markdown and JSON conformance reports.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from config_conformance.checks.engine import RunReport
from config_conformance.utils.helpers import safe_filename
from config_conformance.utils.log import get_logger

logger = get_logger(__name__)


def write_reports(
    report: RunReport,
    output_dir: Path,
    name: str = "conformance",
    project_root: Path | None = None,
) -> tuple[Path, Path]:
    """
    Write Markdown + JSON reports for a run.

    Returns: (markdown_path, json_path)
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    safe_name = safe_filename(name) or "conformance"
    md_path = output_dir / f"report-{safe_name}.md"
    json_path = output_dir / f"report-{safe_name}.json"

    md_path.write_text(render_markdown(report, project_root), encoding="utf-8")

    json_content = report.to_dict()
    if project_root is not None:
        json_content["project_root"] = str(project_root)
    json_path.write_text(json.dumps(json_content, indent=2, ensure_ascii=False), encoding="utf-8")

    logger.info("Reports: %s, %s", md_path.name, json_path.name)
    return md_path, json_path


def _cell(text: str) -> str:
    """Escape a value for a Markdown table cell."""
    return text.replace("|", "\\|").replace("\n", " ")


def render_markdown(report: RunReport, project_root: Path | None = None) -> str:
    """Render a Markdown conformance report: summary, then one table per group."""
    lines: list[str] = []

    lines.append("# Conformance Report")
    lines.append("")
    lines.append(f"**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M')}")
    if project_root is not None:
        lines.append(f"**Project:** `{project_root}`")
    lines.append("")

    lines.append("## Summary")
    lines.append("")
    lines.append("| Metric | Value |")
    lines.append("|--------|-------|")
    lines.append(f"| **Status** | **{'PASS' if report.passed else 'FAIL'}** |")
    lines.append(f"| Rules checked | {report.total} |")
    lines.append(f"| Passed | {report.passed_count} |")
    lines.append(f"| Failed | {report.failed_count} |")
    lines.append("")

    if report.failures:
        lines.append("## Failures")
        lines.append("")
        for r in report.failures:
            detail = f": {r.detail}" if r.detail else ""
            lines.append(f"- **{r.rule_id}** {r.message}{detail}")
        lines.append("")

    for group, results in report.by_group().items():
        lines.append(f"## {group}")
        lines.append("")
        lines.append("| Rule | Status | Category | Message | Detail |")
        lines.append("|------|--------|----------|---------|--------|")
        for r in results:
            lines.append(
                f"| {r.rule_id} | {r.status} | {r.category} | {_cell(r.message)} | {_cell(r.detail)} |"
            )
        lines.append("")

    return "\n".join(lines)
