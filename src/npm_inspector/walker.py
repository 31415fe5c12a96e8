"""Enumerate installed packages under one or more ``node_modules`` trees.

The walk goes level by level. Directory listing and manifest parsing for one
level run in a thread pool; the results are then merged by a single writer,
which is the only place a canonical path is admitted. A second discovery of an
admitted path is recorded as an alias and never descended again.
"""

from __future__ import annotations

import logging
import os
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from collections.abc import Iterable

from .config import Settings
from .errors import UnresolvablePathError
from .manifest import read_manifest
from .models import AnyManifest, MissingManifest
from .paths import canonicalize

logger = logging.getLogger(__name__)

NODE_MODULES = "node_modules"

# Lenient on case: old packages such as "JSONStream" predate the lowercase rule.
_PACKAGE_NAME = re.compile(r"^(?:@[a-z0-9][a-z0-9._~-]*/)?[a-z0-9~][a-z0-9._~-]*$", re.IGNORECASE)


def is_package_name(name: str) -> bool:
    return bool(_PACKAGE_NAME.match(name))


@dataclass(slots=True)
class WalkedPackage:
    """A unique install found by the walker."""

    path: Path
    name: str
    manifest: AnyManifest
    via: list[Path] = field(default_factory=list)


@dataclass(slots=True)
class WalkResult:
    """Everything a walk found, keyed by canonical path."""

    packages: dict[Path, WalkedPackage]
    skipped: list[Path]


@dataclass(slots=True)
class _Found:
    via: Path
    path: Path
    name: str
    manifest: AnyManifest


def _candidate_entries(directory: Path) -> list[tuple[str, Path]]:
    """List (directory-derived name, path) pairs in one node_modules dir."""
    entries: list[tuple[str, Path]] = []
    try:
        names = sorted(os.listdir(directory))
    except OSError as exc:
        logger.warning("Cannot list %s: %s", directory, exc)
        return entries

    for name in names:
        if name.startswith("."):
            continue
        path = directory / name
        if name.startswith("@"):
            if not path.is_dir():
                continue
            try:
                scoped = sorted(os.listdir(path))
            except OSError as exc:
                logger.warning("Cannot list %s: %s", path, exc)
                continue
            entries.extend(
                (f"{name}/{sub}", path / sub) for sub in scoped if not sub.startswith(".")
            )
        else:
            entries.append((name, path))
    return entries


def scan_directory(directory: Path, max_hops: int) -> tuple[list[_Found], list[Path]]:
    """Inspect every package directory directly inside ``directory``.

    Returns the packages found and the paths skipped as unresolvable.
    """
    found: list[_Found] = []
    skipped: list[Path] = []
    for dir_name, via in _candidate_entries(directory):
        try:
            canonical = canonicalize(via, max_hops)
        except UnresolvablePathError as exc:
            logger.warning("Skipping %s: %s", via, exc.reason)
            skipped.append(via)
            continue
        if not canonical.is_dir():
            continue

        manifest = read_manifest(canonical)
        if isinstance(manifest, MissingManifest) and not is_package_name(dir_name):
            continue
        found.append(_Found(via=via, path=canonical, name=manifest.name or dir_name, manifest=manifest))
    return found, skipped


def _enclosing_node_modules(path: Path) -> Path | None:
    """The node_modules directory holding ``path`` (pnpm keeps siblings there)."""
    parent = path.parent
    if parent.name.startswith("@"):
        parent = parent.parent
    return parent if parent.name == NODE_MODULES else None


def walk_tree(roots: Iterable[Path], settings: Settings | None = None) -> WalkResult:
    """Walk the ``node_modules`` of every directory in ``roots``.

    Nested private installs (``a/node_modules/b/node_modules/c``) are descended
    into. Directories that neither hold a manifest nor look like a package
    name are ignored, and unresolvable symlinks are logged and skipped.
    """
    settings = settings or Settings()
    packages: dict[Path, WalkedPackage] = {}
    skipped: list[Path] = []
    scanned: set[Path] = set()

    frontier = [root / NODE_MODULES for root in roots]

    with ThreadPoolExecutor(max_workers=settings.max_workers) as executor:
        while frontier:
            batch: list[Path] = []
            for directory in frontier:
                if not directory.is_dir():
                    continue
                try:
                    real = canonicalize(directory, settings.max_symlink_hops)
                except UnresolvablePathError as exc:
                    logger.warning("Skipping %s: %s", directory, exc.reason)
                    skipped.append(directory)
                    continue
                if real in scanned:
                    continue
                scanned.add(real)
                batch.append(directory)

            results = list(
                executor.map(lambda d: scan_directory(d, settings.max_symlink_hops), batch)
            )

            frontier = []
            for found, level_skipped in results:
                skipped.extend(level_skipped)
                for item in found:
                    existing = packages.get(item.path)
                    if existing is not None:
                        existing.via.append(item.via)
                        continue
                    packages[item.path] = WalkedPackage(
                        path=item.path, name=item.name, manifest=item.manifest, via=[item.via]
                    )
                    frontier.append(item.path / NODE_MODULES)
                    enclosing = _enclosing_node_modules(item.path)
                    if enclosing is not None:
                        frontier.append(enclosing)

    logger.debug(
        "Walked %d node_modules directories, found %d packages", len(scanned), len(packages)
    )
    return WalkResult(packages=packages, skipped=skipped)
