"""Read-only queries over a built :class:`DependencyGraph`."""

from __future__ import annotations

from pathlib import Path

from .models import (
    Dependent,
    DependencyGraph,
    InstalledPackage,
    PackageMatch,
    QueryResult,
)
from .semver import satisfies_or_none, version_sort_key


def unscoped(name: str) -> str:
    """``@scope/test`` -> ``test``; unscoped names are returned unchanged."""
    if name.startswith("@") and "/" in name:
        return name.split("/", 1)[1]
    return name


def _package_order(pkg: InstalledPackage) -> tuple[object, ...]:
    return (pkg.name, version_sort_key(pkg.version), str(pkg.path))


def dependents_of(graph: DependencyGraph, package: InstalledPackage) -> tuple[Dependent, ...]:
    """Every distinct consumer of ``package`` with the kind of its edge."""
    dependents: list[Dependent] = []
    for edge in graph.edges_into(package.path):
        consumer = graph.get(edge.consumer)
        if consumer is None:
            continue
        dependents.append(
            Dependent(
                package=consumer,
                kind=edge.kind,
                spec=edge.spec,
                satisfied=satisfies_or_none(package.version, edge.spec),
            )
        )
    return tuple(sorted(dependents, key=lambda d: (d.package.name, str(d.package.path))))


def _match(graph: DependencyGraph, package: InstalledPackage) -> PackageMatch:
    return PackageMatch(
        package=package,
        dependents=dependents_of(graph, package),
        symlinked=graph.is_symlinked(package.path),
    )


def suggest_names(graph: DependencyGraph, name: str) -> tuple[str, ...]:
    """Indexed names that differ from ``name`` only by scope.

    Names whose unscoped form equals ``name`` come first (``test`` suggests
    ``@scope/test``), then names sharing the unscoped form of a scoped request
    (``@other/test`` suggests ``test`` and ``@scope/test``).
    """
    exact = sorted(n for n in graph.by_name if n != name and unscoped(n) == name)
    wanted = unscoped(name)
    loose = sorted(
        n for n in graph.by_name if n != name and n not in exact and unscoped(n) == wanted
    )
    return tuple(exact + loose)


def resolve_by_name(graph: DependencyGraph, name: str) -> QueryResult:
    """Every installed version of ``name``, each with its dependents.

    Several matches at different install depths are normal. With no match the
    result carries suggestions instead; call ``raise_for_status()`` to turn it
    into :class:`~npm_inspector.errors.ModuleNotFound`.
    """
    packages = graph.named(name)
    if not packages:
        return QueryResult(name=name, suggestions=suggest_names(graph, name))
    ordered = sorted(packages, key=_package_order)
    return QueryResult(name=name, matches=tuple(_match(graph, pkg) for pkg in ordered))


def match_by_name(graph: DependencyGraph, partial: str) -> list[PackageMatch]:
    """Packages whose name contains ``partial`` (case-insensitive)."""
    needle = partial.lower()
    found = [
        pkg
        for name, pkgs in graph.by_name.items()
        if needle in name.lower()
        for pkg in pkgs
    ]
    return [_match(graph, pkg) for pkg in sorted(found, key=_package_order)]


def declared_targets(graph: DependencyGraph) -> set[Path]:
    """Canonical paths the start project's manifest names directly."""
    start = graph.start_package
    if start is None:
        return set()
    declared = start.manifest.declared_names()
    return {edge.dependency for edge in graph.edges_from(start.path) if edge.name in declared}


def list_all(graph: DependencyGraph, declared_only: bool = False) -> list[InstalledPackage]:
    """Installed packages below the start directory, ordered by name and version.

    Project nodes (the start directory and the workspace root) are never
    listed. Run from inside a workspace member, only that member's own
    ``node_modules`` subtree counts. ``declared_only`` keeps the packages the
    start project's ``dependencies``, ``optionalDependencies`` and
    ``devDependencies`` name directly, not their transitive closure.
    """
    packages = [
        pkg
        for pkg in graph.packages.values()
        if not pkg.project and graph.reached_under(pkg.path, graph.start)
    ]
    if declared_only:
        targets = declared_targets(graph)
        packages = [pkg for pkg in packages if pkg.path in targets]
    return sorted(packages, key=_package_order)
