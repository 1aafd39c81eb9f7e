"""Artifact subpackage - declaring and loading the files under inspection."""

from config_conformance.artifacts.loader import Artifact, ArtifactSpec, load_artifact, load_artifacts

__all__ = ["Artifact", "ArtifactSpec", "load_artifact", "load_artifacts"]
