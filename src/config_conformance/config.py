"""
Configuration loader.

Loads settings from config/settings.yaml and .env,
merges them, and provides a typed Settings object
accessible everywhere via `get_settings()`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

from config_conformance.artifacts.loader import DEFAULT_READ_TIMEOUT_S, ArtifactSpec
from config_conformance.errors import SetupError

# Project root = 2 levels up from src/config_conformance/
ROOT = Path(__file__).resolve().parent.parent.parent
CONFIG_DIR = ROOT / "config"
SETTINGS_FILE = CONFIG_DIR / "settings.yaml"

DEFAULT_ARTIFACTS = [
    ArtifactSpec("workflow", ".github/workflows/send-sol.yml", "text"),
    ArtifactSpec("root_manifest", "package.json", "json"),
    ArtifactSpec("app_manifest", "app/package.json", "json"),
    ArtifactSpec("lockfile", "app/yarn.lock", "text"),
    ArtifactSpec("changelog", "CHANGELOG.md", "text"),
    ArtifactSpec("root_tsconfig", "tsconfig.json", "text"),
    ArtifactSpec("app_tsconfig", "app/tsconfig.json", "text"),
]


@dataclass
class PathSettings:
    project_root: Path = field(default_factory=Path.cwd)
    report_dir: Path = field(default_factory=lambda: ROOT / "outputs" / "reports")
    log_dir: Path = field(default_factory=lambda: ROOT / "outputs" / "logs")


@dataclass
class RuleSettings:
    rules_dir: Path = field(default_factory=lambda: CONFIG_DIR / "rules")
    rule_files: list[str] = field(default_factory=list)  # empty = every *.yaml in rules_dir


@dataclass
class LoadingSettings:
    read_timeout_s: float = DEFAULT_READ_TIMEOUT_S
    max_workers: int = 4


@dataclass
class Settings:
    """Top-level settings object."""

    paths: PathSettings = field(default_factory=PathSettings)
    rules: RuleSettings = field(default_factory=RuleSettings)
    loading: LoadingSettings = field(default_factory=LoadingSettings)
    artifacts: list[ArtifactSpec] = field(default_factory=lambda: list(DEFAULT_ARTIFACTS))
    log_level: str = "INFO"
    log_file: Path | None = None

    def ensure_dirs(self) -> None:
        """Create all output directories if they don't exist."""
        for p in [self.paths.report_dir, self.paths.log_dir]:
            p.mkdir(parents=True, exist_ok=True)


# ── Singleton ─────────────────────────────────────────

_settings: Settings | None = None


def _load_yaml() -> dict:
    """Load the YAML config file."""
    if SETTINGS_FILE.exists():
        with open(SETTINGS_FILE, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    return {}


def _resolve(path: str | Path, base: Path = ROOT) -> Path:
    """Relative config paths are relative to the repo root."""
    p = Path(path).expanduser()
    return p if p.is_absolute() else base / p


def settings_from_dict(raw: dict) -> Settings:
    """Build Settings from parsed YAML, with environment overrides."""
    project_raw = raw.get("project", {})
    paths_raw = raw.get("paths", {})
    root_value = os.getenv("CONFORMANCE_ROOT", project_raw.get("root"))
    paths = PathSettings(
        # The checked project defaults to the working directory, not this repo.
        project_root=Path(root_value).expanduser() if root_value else Path.cwd(),
        report_dir=_resolve(paths_raw.get("report_dir", "outputs/reports")),
        log_dir=_resolve(paths_raw.get("log_dir", "outputs/logs")),
    )

    rules_raw = raw.get("rules", {})
    rules = RuleSettings(
        rules_dir=_resolve(os.getenv("CONFORMANCE_RULES_DIR", rules_raw.get("rules_dir", "config/rules"))),
        rule_files=list(rules_raw.get("rule_files", [])),
    )

    loading_raw = raw.get("loading", {})
    loading = LoadingSettings(
        read_timeout_s=float(
            os.getenv("CONFORMANCE_READ_TIMEOUT", loading_raw.get("read_timeout_s", DEFAULT_READ_TIMEOUT_S))
        ),
        max_workers=int(loading_raw.get("max_workers", 4)),
    )

    artifacts_raw = raw.get("artifacts")
    if artifacts_raw is None:
        artifacts = list(DEFAULT_ARTIFACTS)
    elif isinstance(artifacts_raw, list):
        artifacts = [ArtifactSpec.from_dict(a) for a in artifacts_raw]
    else:
        raise SetupError(f"'artifacts' in {SETTINGS_FILE.name} must be a list")

    log_raw = raw.get("logging", {})
    log_file = log_raw.get("file")

    return Settings(
        paths=paths,
        rules=rules,
        loading=loading,
        artifacts=artifacts,
        log_level=os.getenv("LOG_LEVEL", log_raw.get("level", "INFO")),
        log_file=_resolve(log_file, paths.log_dir) if log_file else None,
    )


def get_settings() -> Settings:
    """Get the global Settings instance (lazy-loaded singleton)."""
    global _settings
    if _settings is not None:
        return _settings

    # Load .env
    load_dotenv(ROOT / ".env")

    _settings = settings_from_dict(_load_yaml())
    return _settings


def reset_settings() -> None:
    """Drop the cached Settings; the next get_settings() reloads."""
    global _settings
    _settings = None


def get_root() -> Path:
    """Get the repository root directory (where config/ lives)."""
    return ROOT
