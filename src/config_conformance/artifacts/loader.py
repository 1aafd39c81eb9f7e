"""
Artifact Loader
================
Reads the declared configuration/metadata files of a project root.

Every content-level problem is captured in the returned Artifact's status:
    ok           - file read (and parsed, for json artifacts)
    missing      - path does not exist, is not a file, or the read timed out
    parse-error  - json artifact with malformed JSON, or undecodable bytes

Only setup problems (bad root, bad declarations) raise SetupError.
Loading is read-only.
"""

from __future__ import annotations

import json
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Any

from config_conformance.errors import SetupError
from config_conformance.utils.log import get_logger

logger = get_logger(__name__)

STATUS_OK = "ok"
STATUS_MISSING = "missing"
STATUS_PARSE_ERROR = "parse-error"

KIND_TEXT = "text"
KIND_JSON = "json"
ARTIFACT_KINDS = (KIND_TEXT, KIND_JSON)

DEFAULT_READ_TIMEOUT_S = 5.0


@dataclass(frozen=True)
class ArtifactSpec:
    """Declaration of one artifact to load: where it lives and how to read it."""

    id: str
    path: str
    kind: str = KIND_TEXT

    @classmethod
    def from_dict(cls, raw: dict) -> ArtifactSpec:
        if not isinstance(raw, dict):
            raise SetupError(f"Artifact declaration must be a mapping with id, path and kind: {raw!r}")
        try:
            return cls(id=str(raw["id"]), path=str(raw["path"]), kind=str(raw.get("kind", KIND_TEXT)))
        except KeyError as e:
            raise SetupError(f"Artifact declaration missing '{e.args[0]}': {raw!r}") from None


@dataclass(frozen=True)
class Artifact:
    """A loaded artifact. Immutable; lives for a single run."""

    id: str
    path: str
    kind: str
    status: str  # "ok", "missing", "parse-error"
    content: Any = None  # str for text, parsed JSON value for json
    raw: str | None = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


def resolve_root(root: Path | str) -> Path:
    """Check the project root exists and is a directory."""
    path = Path(root).expanduser()
    if not path.exists():
        raise SetupError(f"Project root not found: {path}")
    if not path.is_dir():
        raise SetupError(f"Project root is not a directory: {path}")
    return path.resolve()


def validate_specs(root: Path, specs: list[ArtifactSpec]) -> None:
    """Reject declarations that make a run meaningless."""
    if not specs:
        raise SetupError("No artifacts declared")

    seen: set[str] = set()
    for spec in specs:
        if spec.id in seen:
            raise SetupError(f"Duplicate artifact id: {spec.id}")
        seen.add(spec.id)

        if spec.kind not in ARTIFACT_KINDS:
            raise SetupError(
                f"Artifact '{spec.id}' has unknown kind '{spec.kind}' "
                f"(expected one of: {', '.join(ARTIFACT_KINDS)})"
            )

        if PurePosixPath(spec.path).is_absolute() or PureWindowsPath(spec.path).is_absolute():
            raise SetupError(f"Artifact '{spec.id}' path must be relative to the project root: {spec.path}")

        target = (root / spec.path).resolve()
        try:
            target.relative_to(root)
        except ValueError:
            raise SetupError(f"Artifact '{spec.id}' path escapes the project root: {spec.path}") from None


def load_artifact(root: Path, spec: ArtifactSpec) -> Artifact:
    """
    Load one artifact. Never raises for missing or malformed content.

    Args:
        root: Resolved project root.
        spec: The artifact declaration.

    Returns:
        Artifact with its load status.
    """
    path = root / spec.path

    def _fail(status: str, error: str) -> Artifact:
        logger.warning("Artifact '%s' %s: %s", spec.id, status, error)
        return Artifact(id=spec.id, path=spec.path, kind=spec.kind, status=status, error=error)

    if not path.is_file():
        return _fail(STATUS_MISSING, f"{spec.path} does not exist")

    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        return _fail(STATUS_PARSE_ERROR, f"{spec.path} is not valid UTF-8 ({e.reason})")
    except OSError as e:
        return _fail(STATUS_MISSING, f"{spec.path} could not be read ({e.strerror or e})")

    if spec.kind == KIND_JSON:
        try:
            content = json.loads(text)
        except json.JSONDecodeError as e:
            return _fail(STATUS_PARSE_ERROR, f"{spec.path}: {e.msg} at line {e.lineno} column {e.colno}")
    else:
        content = text

    logger.debug("Loaded artifact '%s' (%s, %d bytes)", spec.id, spec.kind, len(text))
    return Artifact(
        id=spec.id,
        path=spec.path,
        kind=spec.kind,
        status=STATUS_OK,
        content=content,
        raw=text,
    )


def load_artifacts(
    root: Path | str,
    specs: list[ArtifactSpec],
    timeout: float | None = DEFAULT_READ_TIMEOUT_S,
    max_workers: int = 4,
) -> dict[str, Artifact]:
    """
    Load all declared artifacts concurrently.

    Reads run on a thread pool; each read gets `timeout` seconds and a
    read that does not finish in time is reported as missing.

    Returns:
        Mapping of artifact id → Artifact, in declaration order.

    Raises:
        SetupError: root not found, no artifacts, or bad declarations.
    """
    root_path = resolve_root(root)
    validate_specs(root_path, specs)

    workers = max(1, min(max_workers, len(specs)))
    pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="artifact-load")
    try:
        futures = [(spec, pool.submit(load_artifact, root_path, spec)) for spec in specs]

        artifacts: dict[str, Artifact] = {}
        for spec, future in futures:
            try:
                artifacts[spec.id] = future.result(timeout=timeout)
            except FutureTimeout:
                logger.warning("Artifact '%s' read timed out after %ss", spec.id, timeout)
                artifacts[spec.id] = Artifact(
                    id=spec.id,
                    path=spec.path,
                    kind=spec.kind,
                    status=STATUS_MISSING,
                    error=f"read timed out after {timeout}s",
                )
    finally:
        # A timed-out read cannot be interrupted; don't block on it.
        pool.shutdown(wait=False, cancel_futures=True)

    ok = sum(1 for a in artifacts.values() if a.ok)
    logger.info("Loaded %d/%d artifacts from %s", ok, len(artifacts), root_path)
    return artifacts
