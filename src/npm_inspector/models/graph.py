"""Dependency graph value produced by the builder and read by queries."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from collections.abc import Iterable, Mapping

from .edge import DependencyEdge
from .package import InstalledPackage
from .workspace import WorkspaceContext


@dataclass(frozen=True)
class UnresolvedDependency:
    """A declared name for which no install could be found."""

    consumer: Path
    name: str
    kind: str

    def to_dict(self) -> dict[str, str]:
        return {"consumer": str(self.consumer), "name": self.name, "kind": self.kind}


@dataclass(frozen=True)
class DependencyGraph:
    """Unique installed packages plus labelled consumer -> dependency edges.

    Nodes are keyed by canonical path. ``aliases`` keeps every traversal path
    that led to a node so callers can tell symlinked installs apart, and
    ``by_name`` indexes nodes by declared name (several versions of one name
    are the normal outcome of nested installs). ``skipped`` holds traversal
    paths that could not be canonicalized, so their subtrees are missing.
    """

    start: Path
    workspace: WorkspaceContext
    packages: Mapping[Path, InstalledPackage]
    edges: tuple[DependencyEdge, ...]
    aliases: Mapping[Path, tuple[Path, ...]] = field(default_factory=dict)
    unresolved: tuple[UnresolvedDependency, ...] = ()
    skipped: tuple[Path, ...] = ()
    by_name: Mapping[str, tuple[InstalledPackage, ...]] = field(default_factory=dict)
    incoming: Mapping[Path, tuple[DependencyEdge, ...]] = field(default_factory=dict)

    @classmethod
    def from_parts(
        cls,
        *,
        start: Path,
        workspace: WorkspaceContext,
        packages: Mapping[Path, InstalledPackage],
        edges: Iterable[DependencyEdge],
        aliases: Mapping[Path, Iterable[Path]] | None = None,
        unresolved: Iterable[UnresolvedDependency] = (),
        skipped: Iterable[Path] = (),
    ) -> DependencyGraph:
        ordered_edges = tuple(
            sorted(edges, key=lambda e: (str(e.consumer), str(e.dependency)))
        )

        by_name: dict[str, list[InstalledPackage]] = defaultdict(list)
        for path in sorted(packages, key=str):
            pkg = packages[path]
            if pkg.project and not pkg.workspace_member:
                continue
            by_name[pkg.name].append(pkg)

        incoming: dict[Path, list[DependencyEdge]] = defaultdict(list)
        for edge in ordered_edges:
            incoming[edge.dependency].append(edge)

        return cls(
            start=start,
            workspace=workspace,
            packages=dict(packages),
            edges=ordered_edges,
            aliases={k: tuple(sorted(set(v), key=str)) for k, v in (aliases or {}).items()},
            unresolved=tuple(unresolved),
            skipped=tuple(sorted(set(skipped), key=str)),
            by_name={k: tuple(v) for k, v in by_name.items()},
            incoming={k: tuple(v) for k, v in incoming.items()},
        )

    def get(self, path: Path) -> InstalledPackage | None:
        return self.packages.get(path)

    @property
    def start_package(self) -> InstalledPackage | None:
        return self.packages.get(self.start)

    def named(self, name: str) -> tuple[InstalledPackage, ...]:
        return self.by_name.get(name, ())

    def edges_into(self, path: Path) -> tuple[DependencyEdge, ...]:
        return self.incoming.get(path, ())

    def edges_from(self, path: Path) -> tuple[DependencyEdge, ...]:
        return tuple(edge for edge in self.edges if edge.consumer == path)

    def is_symlinked(self, path: Path) -> bool:
        """True when the package was reached through a path other than its real one."""
        return any(alias != path for alias in self.aliases.get(path, ()))

    def reached_under(self, path: Path, directory: Path) -> bool:
        """True when one of the traversal paths of ``path`` lies below ``directory``."""
        return any(directory in alias.parents for alias in self.aliases.get(path, ()))
