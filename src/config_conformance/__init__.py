"""
Config Conformance
===================
Declarative conformance checks for project configuration and metadata.

Loads a fixed set of artifacts (CI workflow, package manifests, lock file,
changelog) from a project root, evaluates YAML-declared rules against them
and reports PASS/FAIL per rule.
"""

__version__ = "0.1.0"
