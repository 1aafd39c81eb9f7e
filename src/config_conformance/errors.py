"""
Error taxonomy.

Content-level problems (missing files, malformed JSON, a rule that blows up)
are reported as data in the RunReport. Only setup problems raise.
"""

from __future__ import annotations


class ConformanceError(Exception):
    """Base class for all errors raised by config_conformance."""


class SetupError(ConformanceError):
    """The run cannot start: bad project root, no artifacts, bad declarations."""


class RuleFileError(SetupError):
    """A rule file exists but cannot be read or has the wrong shape."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid rule file {path}: {reason}")
