"""Parsed ``package.json`` records."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from collections.abc import Iterator, Mapping
from typing import TypeAlias

# Edge kinds, most specific first. Collapsing two edges between the same pair
# keeps the one that appears earlier in this tuple.
PROVENANCE_PRECEDENCE = (
    "resolution",
    "bundled",
    "workspace-internal",
    "direct",
    "dev",
    "peer",
)
_VALID_KINDS = set(PROVENANCE_PRECEDENCE)


@dataclass(frozen=True)
class DeclaredDependency:
    """One name a manifest asks for, and why."""

    name: str
    kind: str
    spec: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Dependency name must be non-empty")
        if self.kind not in _VALID_KINDS:
            raise ValueError(f"Invalid dependency kind: {self.kind}")


@dataclass(frozen=True)
class Manifest:
    """Structured view of a readable ``package.json``."""

    path: Path
    name: str | None = None
    version: str | None = None
    dependencies: Mapping[str, str] = field(default_factory=dict)
    optional_dependencies: Mapping[str, str] = field(default_factory=dict)
    dev_dependencies: Mapping[str, str] = field(default_factory=dict)
    peer_dependencies: Mapping[str, str] = field(default_factory=dict)
    bundled: tuple[str, ...] = ()
    resolutions: tuple[str, ...] = ()
    workspaces: tuple[str, ...] = ()

    @property
    def declares_workspaces(self) -> bool:
        return bool(self.workspaces)

    def declared_names(self) -> set[str]:
        """Names listed under ordinary, optional or development dependencies."""
        return set(self.dependencies) | set(self.optional_dependencies) | set(self.dev_dependencies)

    def iter_declared(self) -> Iterator[DeclaredDependency]:
        """Yield every declared dependency with its provenance kind.

        A name may be yielded more than once (for instance both as an ordinary
        and a bundled dependency); the graph builder collapses the duplicates.
        """
        for name, spec in self.dependencies.items():
            yield DeclaredDependency(name, "direct", spec)
        for name, spec in self.optional_dependencies.items():
            yield DeclaredDependency(name, "direct", spec)
        for name, spec in self.dev_dependencies.items():
            yield DeclaredDependency(name, "dev", spec)
        for name, spec in self.peer_dependencies.items():
            yield DeclaredDependency(name, "peer", spec)
        for name in self.bundled:
            yield DeclaredDependency(name, "bundled", self._spec_for(name))
        for name in self.resolutions:
            yield DeclaredDependency(name, "resolution", self._spec_for(name))

    def _spec_for(self, name: str) -> str:
        for mapping in (self.dependencies, self.optional_dependencies, self.dev_dependencies):
            if name in mapping:
                return mapping[name]
        return ""


@dataclass(frozen=True)
class MissingManifest:
    """Marker for a package directory without ``package.json``."""

    path: Path

    name = None
    version = None
    workspaces = ()

    def iter_declared(self) -> Iterator[DeclaredDependency]:
        return iter(())

    def declared_names(self) -> set[str]:
        return set()


@dataclass(frozen=True)
class MalformedManifest:
    """Marker for a ``package.json`` that could not be decoded."""

    path: Path
    reason: str

    name = None
    version = None
    workspaces = ()

    def iter_declared(self) -> Iterator[DeclaredDependency]:
        return iter(())

    def declared_names(self) -> set[str]:
        return set()


AnyManifest: TypeAlias = Manifest | MissingManifest | MalformedManifest
