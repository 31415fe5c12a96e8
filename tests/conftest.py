"""Shared test fixtures for npm-inspector tests.

Trees are built in ``tmp_path`` with real files and symlinks. Paths handed to
assertions are resolved first, since ``tmp_path`` itself may sit behind a
symlink (macOS ``/var`` -> ``/private/var``).
"""

import json
import os
import sys
from pathlib import Path

import pytest

# Add src to path so tests can import npm_inspector without installing it
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


def write_package(directory: Path, name: str | None = None, version: str | None = "1.0.0", **fields) -> Path:
    """Create ``directory`` with a package.json built from the arguments."""
    directory.mkdir(parents=True, exist_ok=True)
    manifest = dict(fields)
    if name is not None:
        manifest["name"] = name
    if version is not None:
        manifest["version"] = version
    (directory / "package.json").write_text(json.dumps(manifest), encoding="utf-8")
    return directory


def symlink(link: Path, target: Path) -> Path:
    """Create a relative symlink ``link`` -> ``target`` (directories included)."""
    link.parent.mkdir(parents=True, exist_ok=True)
    os.symlink(os.path.relpath(target, link.parent), link, target_is_directory=True)
    return link


@pytest.fixture
def root(tmp_path: Path) -> Path:
    return tmp_path.resolve()


@pytest.fixture
def nested_tree(root: Path) -> Path:
    """app -> b -> c@2 (private copy), app -> c@1 (hoisted)."""
    app = write_package(root / "app", "app", dependencies={"b": "^1.0.0", "c": "^1.0.0"})
    write_package(app / "node_modules" / "b", "b", "1.0.0", dependencies={"c": "^2.0.0"})
    write_package(app / "node_modules" / "c", "c", "1.0.0")
    write_package(app / "node_modules" / "b" / "node_modules" / "c", "c", "2.0.0")
    return app


@pytest.fixture
def monorepo(root: Path) -> Path:
    """npm workspaces: packages/* with foo -> bar by name and no physical link."""
    repo = write_package(
        root / "monorepo",
        "monorepo",
        workspaces=["packages/*"],
        devDependencies={"camelcase": "^6.0.0"},
    )
    write_package(repo / "node_modules" / "camelcase", "camelcase", "6.3.0")
    write_package(
        repo / "packages" / "package-foo",
        "package-foo",
        dependencies={"package-bar": "^1.0.0", "left-pad": "^1.3.0"},
    )
    write_package(repo / "packages" / "package-foo" / "node_modules" / "left-pad", "left-pad", "1.3.0")
    write_package(repo / "packages" / "package-bar", "package-bar", "1.0.0")
    write_package(repo / "packages" / "package-without-modules", "package-without-modules")
    return repo
