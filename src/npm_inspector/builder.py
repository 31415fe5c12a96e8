"""Build the dependency graph of an installed project.

Entry point is :func:`build_graph`. The walk finds every unique install, then
each manifest's declared names are resolved the way Node does at runtime: look
in ``<dir>/node_modules/<name>`` starting at the consumer's real location and
moving up one directory at a time, nearest match wins.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from collections.abc import Iterable, Mapping

from .config import Settings
from .errors import BuildError, UnresolvablePathError
from .manifest import read_manifest
from .models import (
    DependencyEdge,
    DependencyGraph,
    InstalledPackage,
    UnresolvedDependency,
    WorkspaceContext,
)
from .paths import MAX_SYMLINK_HOPS, canonicalize, is_within
from .walker import NODE_MODULES, WalkResult, walk_tree
from .workspace import locate_workspace

logger = logging.getLogger(__name__)

# Kinds that make a workspace member depend on a sibling member by name.
_WORKSPACE_LINK_KINDS = {"direct", "dev", "peer"}


def _open_start(start: Path | str, settings: Settings) -> Path:
    try:
        path = canonicalize(start, settings.max_symlink_hops)
    except UnresolvablePathError as exc:
        raise BuildError(f"Cannot read start directory {start}: {exc.reason}") from exc
    if not path.is_dir():
        raise BuildError(f"Start path is not a directory: {start}")
    try:
        os.listdir(path)
    except OSError as exc:
        raise BuildError(f"Cannot read start directory {start}: {exc}") from exc
    return path


def _project_directories(start: Path, workspace: WorkspaceContext) -> list[Path]:
    """Start directory, workspace root and members, without duplicates."""
    ordered = [start]
    if workspace.root is not None:
        ordered.append(workspace.root)
        ordered.extend(workspace.members)
    return list(dict.fromkeys(ordered))


def _admit(
    start: Path,
    workspace: WorkspaceContext,
    projects: list[Path],
    walked: WalkResult,
) -> tuple[dict[Path, InstalledPackage], dict[Path, list[Path]]]:
    members = set(workspace.members)
    top_level = {start} | ({workspace.root} if workspace.root else set())

    packages: dict[Path, InstalledPackage] = {}
    aliases: dict[Path, list[Path]] = {}

    for directory in projects:
        found = walked.packages.get(directory)
        manifest = found.manifest if found is not None else read_manifest(directory)
        packages[directory] = InstalledPackage(
            path=directory,
            name=manifest.name or directory.name or str(directory),
            manifest=manifest,
            workspace_member=directory in members,
            project=directory in top_level,
        )
        aliases[directory] = [directory]

    for path, found in walked.packages.items():
        aliases.setdefault(path, []).extend(found.via)
        if path in packages:
            continue
        packages[path] = InstalledPackage(
            path=path,
            name=found.name,
            manifest=found.manifest,
            workspace_member=path in members,
        )

    return packages, aliases


def resolve_dependency(
    consumer: Path,
    name: str,
    packages: Mapping[Path, InstalledPackage],
    boundary: Path | None = None,
    max_hops: int = MAX_SYMLINK_HOPS,
) -> InstalledPackage | None:
    """Find the install of ``name`` that ``consumer`` would load.

    Looks in the consumer's own ``node_modules`` first, then in each ancestor's,
    stopping after ``boundary`` (or at the filesystem root). Directories that
    are themselves named ``node_modules`` are skipped, as Node does.
    """
    for directory in (consumer, *consumer.parents):
        if directory.name != NODE_MODULES:
            candidate = directory / NODE_MODULES / name
            if os.path.lexists(candidate):
                try:
                    real = canonicalize(candidate, max_hops)
                except UnresolvablePathError as exc:
                    logger.debug("Cannot follow %s: %s", candidate, exc.reason)
                else:
                    if real in packages:
                        return packages[real]
        if boundary is not None and directory == boundary:
            break
    return None


def _members_by_name(
    packages: Mapping[Path, InstalledPackage], workspace: WorkspaceContext
) -> dict[str, InstalledPackage]:
    """Map declared name to member; on a clash the lexicographically first path wins."""
    by_name: dict[str, InstalledPackage] = {}
    for member in workspace.members:
        pkg = packages.get(member)
        if pkg is None:
            continue
        if pkg.name in by_name:
            logger.warning(
                "Workspace members %s and %s share the name %s; using the first",
                by_name[pkg.name].path,
                member,
                pkg.name,
            )
            continue
        by_name[pkg.name] = pkg
    return by_name


def link_packages(
    packages: Mapping[Path, InstalledPackage],
    workspace: WorkspaceContext,
    settings: Settings | None = None,
) -> tuple[list[DependencyEdge], list[UnresolvedDependency]]:
    """Turn every declared dependency into an edge, or an unresolved record."""
    settings = settings or Settings()
    siblings = _members_by_name(packages, workspace)
    edges: list[DependencyEdge] = []
    unresolved: list[UnresolvedDependency] = []

    for path in sorted(packages, key=str):
        consumer = packages[path]
        boundary = (
            workspace.root
            if workspace.root is not None and is_within(path, workspace.root)
            else None
        )
        for declared in consumer.manifest.iter_declared():
            sibling = siblings.get(declared.name) if consumer.workspace_member else None
            if (
                sibling is not None
                and sibling.path != path
                and declared.kind in _WORKSPACE_LINK_KINDS
            ):
                edges.append(
                    DependencyEdge(
                        consumer=path,
                        dependency=sibling.path,
                        kind="workspace-internal",
                        name=declared.name,
                        spec=declared.spec,
                    )
                )

            target = resolve_dependency(
                path, declared.name, packages, boundary, settings.max_symlink_hops
            )
            if target is None:
                if sibling is None:
                    logger.debug(
                        "%s declares %s (%s) but it is not installed",
                        consumer.name,
                        declared.name,
                        declared.kind,
                    )
                    unresolved.append(
                        UnresolvedDependency(consumer=path, name=declared.name, kind=declared.kind)
                    )
                continue
            if target.path == path:
                continue
            edges.append(
                DependencyEdge(
                    consumer=path,
                    dependency=target.path,
                    kind=declared.kind,
                    name=declared.name,
                    spec=declared.spec,
                )
            )

    return edges, unresolved


def collapse_edges(edges: Iterable[DependencyEdge]) -> list[DependencyEdge]:
    """Keep one edge per (consumer, dependency): the most specific kind wins."""
    best: dict[tuple[Path, Path], DependencyEdge] = {}
    for edge in edges:
        key = (edge.consumer, edge.dependency)
        current = best.get(key)
        if current is None or edge.rank < current.rank:
            best[key] = edge
    return list(best.values())


def build_graph(start: Path | str, settings: Settings | None = None) -> DependencyGraph:
    """Build the dependency graph seen from ``start``.

    Raises:
        BuildError: ``start`` does not exist or cannot be listed. Every other
            anomaly (broken symlinks, malformed manifests, missing installs)
            only removes the affected node or edge.
    """
    settings = settings or Settings()
    start_path = _open_start(start, settings)

    workspace = locate_workspace(start_path, settings)
    projects = _project_directories(start_path, workspace)
    walked = walk_tree(projects, settings)

    packages, aliases = _admit(start_path, workspace, projects, walked)
    edges, unresolved = link_packages(packages, workspace, settings)

    graph = DependencyGraph.from_parts(
        start=start_path,
        workspace=workspace,
        packages=packages,
        edges=collapse_edges(edges),
        aliases=aliases,
        unresolved=unresolved,
        skipped=walked.skipped,
    )
    logger.debug(
        "Built graph for %s: %d packages, %d edges, %d unresolved",
        start_path,
        len(graph.packages),
        len(graph.edges),
        len(graph.unresolved),
    )
    return graph
