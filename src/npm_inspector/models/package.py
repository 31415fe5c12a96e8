"""Installed package model."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .manifest import AnyManifest, Manifest


@dataclass(frozen=True)
class InstalledPackage:
    """One unique install, identified by its canonical path."""

    path: Path
    name: str
    manifest: AnyManifest = field(compare=False)
    workspace_member: bool = False
    project: bool = False

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Package name must be non-empty")
        if not self.path.is_absolute():
            raise ValueError("Package path must be absolute")

    @property
    def version(self) -> str | None:
        return self.manifest.version

    @property
    def readable(self) -> bool:
        return isinstance(self.manifest, Manifest)

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "version": self.version,
            "path": str(self.path),
            "workspaceMember": self.workspace_member,
        }
