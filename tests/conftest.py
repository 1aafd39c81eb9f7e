"""Pytest configuration and shared fixtures."""

import logging
import shutil
import sys
from pathlib import Path

import pytest

# Add project root and src to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))

FIXTURE_PROJECT = Path(__file__).resolve().parent / "fixtures" / "project"


@pytest.fixture(autouse=True)
def _isolated_state(monkeypatch):
    """Keep handlers off the real stderr and drop cached settings between tests."""
    from config_conformance import config
    from config_conformance.utils import log

    monkeypatch.setattr(log, "_configured", True)
    for var in ("CONFORMANCE_ROOT", "CONFORMANCE_RULES_DIR", "CONFORMANCE_READ_TIMEOUT", "LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    package_logger = logging.getLogger(log.NAMESPACE)
    level, handlers = package_logger.level, list(package_logger.handlers)
    config.reset_settings()
    yield
    config.reset_settings()
    package_logger.setLevel(level)
    for handler in package_logger.handlers[:]:
        if handler not in handlers:
            package_logger.removeHandler(handler)
            handler.close()


@pytest.fixture
def repo_root():
    return ROOT


@pytest.fixture
def rules_dir(repo_root):
    return repo_root / "config" / "rules"


@pytest.fixture
def project(tmp_path):
    """A copy of a consistent squads-mpl project tree that tests may modify."""
    dest = tmp_path / "project"
    shutil.copytree(FIXTURE_PROJECT, dest)
    return dest


@pytest.fixture
def artifact_specs():
    from config_conformance.config import DEFAULT_ARTIFACTS

    return list(DEFAULT_ARTIFACTS)
