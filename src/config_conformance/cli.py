"""
Config Conformance CLI
=======================
Command-line interface for the conformance checker.

Commands:
    check      - Load the project's artifacts, evaluate rules, print the report
    rules      - List the declared rules
    artifacts  - Show the declared artifacts and whether they load

Exit codes for `check`: 0 all rules pass, 1 any rule fails, 2 setup error.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from config_conformance import __version__
from config_conformance.checks.predicates import CATEGORIES
from config_conformance.config import get_settings
from config_conformance.errors import SetupError
from config_conformance.report.formatter import EXIT_SETUP_ERROR
from config_conformance.utils.log import get_logger, setup_logging

logger = get_logger(__name__)
console = Console(highlight=False)


def _setup_error(e: SetupError) -> None:
    logger.error("Setup error: %s", e)
    console.print(f"[red]Setup error:[/red] {escape(str(e))}", soft_wrap=True)
    sys.exit(EXIT_SETUP_ERROR)


# ═══════════════════════════════════════════════════════
#  Root group
# ═══════════════════════════════════════════════════════
@click.group()
@click.version_option(version=__version__, prog_name="config-conformance")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging on stderr.")
def main(verbose: bool):
    """Declarative conformance checks for project configuration and metadata."""
    try:
        settings = get_settings()
    except SetupError as e:
        _setup_error(e)
    setup_logging("DEBUG" if verbose else settings.log_level, settings.log_file)


# ═══════════════════════════════════════════════════════
#  CHECK - evaluate rules against a project
# ═══════════════════════════════════════════════════════
@main.command()
@click.option(
    "--root", "-r",
    type=click.Path(path_type=Path),
    default=None,
    help="Project root to inspect. Default: config value (current directory).",
)
@click.option(
    "--category", "-c", "categories",
    multiple=True,
    type=click.Choice(CATEGORIES, case_sensitive=False),
    help="Only run rules of this category. Repeatable.",
)
@click.option("--group", "-g", "groups", multiple=True, help="Only run rules of this group. Repeatable.")
@click.option(
    "--rules-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory of rule YAML files. Default: config value.",
)
@click.option(
    "--report-dir", "-o",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Also write Markdown + JSON reports here.",
)
@click.option(
    "--write-report", "-w",
    is_flag=True,
    help="Also write Markdown + JSON reports to the configured report directory.",
)
def check(
    root: Path | None,
    categories: tuple[str, ...],
    groups: tuple[str, ...],
    rules_dir: Path | None,
    report_dir: Path | None,
    write_report: bool,
):
    """Check a project's configuration and metadata files."""
    from config_conformance.checks.engine import check_project
    from config_conformance.checks.rules import load_rules, select_rules
    from config_conformance.report.formatter import exit_code, format_line, format_summary
    from config_conformance.report.writer import write_reports

    settings = get_settings()
    project_root = Path(root) if root is not None else settings.paths.project_root

    try:
        rules = load_rules(rules_dir=rules_dir)
        selected = select_rules(rules, [c.lower() for c in categories], groups)
        if not selected:
            raise SetupError("No rules selected")
        logger.info("Checking %s against %d/%d rules", project_root, len(selected), len(rules))

        report = check_project(
            project_root,
            settings.artifacts,
            selected,
            timeout=settings.loading.read_timeout_s,
            max_workers=settings.loading.max_workers,
        )
    except SetupError as e:
        _setup_error(e)

    for result in report.results:
        color = "green" if result.passed else "red"
        line = format_line(result)
        console.print(f"[{color}]{result.status}[/{color}]{escape(line[len(result.status):])}", soft_wrap=True)

    summary_color = "bold green" if report.passed else "bold red"
    console.print(f"[{summary_color}]{escape(format_summary(report))}[/{summary_color}]", soft_wrap=True)

    if report_dir is None and write_report:
        settings.ensure_dirs()
        report_dir = settings.paths.report_dir

    if report_dir is not None:
        resolved = Path(project_root).resolve()
        md_path, json_path = write_reports(report, report_dir, name=resolved.name, project_root=resolved)
        console.print(f"[dim]Reports: {escape(str(md_path))}, {escape(str(json_path))}[/dim]", soft_wrap=True)

    sys.exit(exit_code(report))


# ═══════════════════════════════════════════════════════
#  RULES - list declared rules
# ═══════════════════════════════════════════════════════
@main.command()
@click.option(
    "--category", "-c", "categories",
    multiple=True,
    type=click.Choice(CATEGORIES, case_sensitive=False),
    help="Only list rules of this category. Repeatable.",
)
@click.option("--group", "-g", "groups", multiple=True, help="Only list rules of this group. Repeatable.")
@click.option(
    "--rules-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory of rule YAML files. Default: config value.",
)
def rules(categories: tuple[str, ...], groups: tuple[str, ...], rules_dir: Path | None):
    """List the declared rules."""
    from config_conformance.checks.rules import load_rules, select_rules

    try:
        selected = select_rules(load_rules(rules_dir=rules_dir), [c.lower() for c in categories], groups)
    except SetupError as e:
        _setup_error(e)

    table = Table(title=f"Rules ({len(selected)})")
    table.add_column("Rule", style="bold")
    table.add_column("Group", style="cyan")
    table.add_column("Category")
    table.add_column("Check")
    table.add_column("Artifacts", style="dim")
    table.add_column("Description")

    for r in selected:
        table.add_row(
            r.id, r.group, r.category, r.check_type,
            escape(", ".join(r.artifacts)), escape(r.description),
        )

    console.print(table)


# ═══════════════════════════════════════════════════════
#  ARTIFACTS - declared artifacts and their load status
# ═══════════════════════════════════════════════════════
@main.command()
@click.option(
    "--root", "-r",
    type=click.Path(path_type=Path),
    default=None,
    help="Project root to inspect. Default: config value (current directory).",
)
def artifacts(root: Path | None):
    """Show the declared artifacts and whether they load."""
    from config_conformance.artifacts.loader import load_artifacts

    settings = get_settings()
    project_root = Path(root) if root is not None else settings.paths.project_root

    try:
        loaded = load_artifacts(
            project_root,
            settings.artifacts,
            timeout=settings.loading.read_timeout_s,
            max_workers=settings.loading.max_workers,
        )
    except SetupError as e:
        _setup_error(e)

    table = Table(title=f"Artifacts in {escape(str(project_root))}")
    table.add_column("Id", style="bold")
    table.add_column("Path")
    table.add_column("Kind", style="cyan")
    table.add_column("Status", justify="center")
    table.add_column("Error", style="dim")

    for a in loaded.values():
        color = "green" if a.ok else "red"
        table.add_row(a.id, escape(a.path), a.kind, f"[{color}]{a.status}[/{color}]", escape(a.error))

    console.print(table)


if __name__ == "__main__":
    main()
