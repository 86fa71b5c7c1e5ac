"""Manifest model: package.json plus candidate updates."""

from jsupdate.manifest.package_json import (
    Manifest,
    ManifestFile,
    apply_updates,
    copy_manifest,
    with_updates,
)
from jsupdate.manifest.update import CandidateUpdate

__all__ = [
    "CandidateUpdate",
    "Manifest",
    "ManifestFile",
    "apply_updates",
    "copy_manifest",
    "with_updates",
]
