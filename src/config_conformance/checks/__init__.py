"""Checks subpackage - formats, check types, rules, engine."""

from config_conformance.checks.engine import RuleResult, RunReport, check_project, run_checks
from config_conformance.checks.rules import Rule, load_rules

__all__ = ["Rule", "RuleResult", "RunReport", "check_project", "load_rules", "run_checks"]
