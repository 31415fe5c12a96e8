"""Data models for the dependency graph and its queries."""

from __future__ import annotations

from .edge import DependencyEdge
from .graph import DependencyGraph, UnresolvedDependency
from .manifest import (
    PROVENANCE_PRECEDENCE,
    AnyManifest,
    DeclaredDependency,
    MalformedManifest,
    Manifest,
    MissingManifest,
)
from .package import InstalledPackage
from .query import Dependent, PackageMatch, QueryResult
from .workspace import WorkspaceContext

__all__ = [
    "PROVENANCE_PRECEDENCE",
    "AnyManifest",
    "DeclaredDependency",
    "Dependent",
    "DependencyEdge",
    "DependencyGraph",
    "InstalledPackage",
    "MalformedManifest",
    "Manifest",
    "MissingManifest",
    "PackageMatch",
    "QueryResult",
    "UnresolvedDependency",
    "WorkspaceContext",
]
