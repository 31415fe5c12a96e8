"""Tests for dependency graph construction."""

import os
from pathlib import Path

import pytest

from npm_inspector.builder import build_graph, collapse_edges, resolve_dependency
from npm_inspector.config import Settings
from npm_inspector.errors import BuildError
from npm_inspector.models import DependencyEdge
from npm_inspector.query import resolve_by_name

from conftest import symlink, write_package


def _edge_kinds(graph, consumer: Path):
    return {
        (graph.packages[e.dependency].name, graph.packages[e.dependency].version, e.kind)
        for e in graph.edges_from(consumer)
    }


def test_nearest_install_wins(nested_tree: Path):
    graph = build_graph(nested_tree)
    b = nested_tree / "node_modules" / "b"

    assert _edge_kinds(graph, b) == {("c", "2.0.0", "direct")}
    assert _edge_kinds(graph, nested_tree) == {
        ("b", "1.0.0", "direct"),
        ("c", "1.0.0", "direct"),
    }


def test_two_versions_share_a_name(nested_tree: Path):
    graph = build_graph(nested_tree)

    versions = sorted(pkg.version for pkg in graph.named("c"))
    assert versions == ["1.0.0", "2.0.0"]


def test_start_directory_is_a_project_node(nested_tree: Path):
    graph = build_graph(nested_tree)

    assert graph.start == nested_tree
    assert graph.start_package.project
    assert graph.named("app") == ()


def test_symlinked_install_is_one_node_with_merged_dependents(root: Path):
    app = write_package(root / "app", "app", dependencies={"test": "1.0.0", "other": "1.0.0"})
    real = write_package(root / "libs" / "test", "test", "1.0.0")
    symlink(app / "node_modules" / "test", real)
    write_package(app / "node_modules" / "other", "other", dependencies={"test": "1.0.0"})
    symlink(app / "node_modules" / "other" / "node_modules" / "test", real)

    graph = build_graph(app)

    assert graph.named("test") == (graph.packages[real],)
    consumers = {graph.packages[e.consumer].name for e in graph.edges_into(real)}
    assert consumers == {"app", "other"}
    assert graph.is_symlinked(real)


def test_bundled_dependency_edge(root: Path):
    app = write_package(
        root / "app", "app", dependencies={"d": "^1.0.0"}, bundledDependencies=["d"]
    )
    d = write_package(app / "node_modules" / "d", "d", "1.0.0")

    graph = build_graph(app)

    (edge,) = graph.edges_into(d)
    assert edge.consumer == app
    assert edge.kind == "bundled"
    assert edge.spec == "^1.0.0"


def test_resolution_edge(root: Path):
    app = write_package(
        root / "app", "app", dependencies={"test": "^1.0.0"}, resolutions={"**/test": "1.0.1"}
    )
    test = write_package(app / "node_modules" / "test", "test", "1.0.1")

    graph = build_graph(app)

    (edge,) = graph.edges_into(test)
    assert edge.kind == "resolution"


def test_missing_install_is_recorded_without_edge(root: Path):
    app = write_package(root / "app", "app", optionalDependencies={"fsevents": "^2.0.0"})

    graph = build_graph(app)

    assert graph.edges == ()
    assert [(u.name, u.kind) for u in graph.unresolved] == [("fsevents", "direct")]


def test_malformed_manifest_node_has_no_outgoing_edges(root: Path):
    app = write_package(root / "app", "app", dependencies={"broken": "1.0.0", "x": "1"})
    broken = app / "node_modules" / "broken"
    broken.mkdir(parents=True)
    (broken / "package.json").write_text("not json")
    write_package(app / "node_modules" / "x", "x", "1.0.0")

    graph = build_graph(app)

    node = graph.packages[broken]
    assert node.version is None
    assert not node.readable
    assert graph.edges_from(broken) == ()
    assert {graph.packages[e.dependency].name for e in graph.edges_from(app)} == {"broken", "x"}


def test_workspace_internal_edge_without_physical_link(monorepo: Path):
    graph = build_graph(monorepo)
    foo = monorepo / "packages" / "package-foo"
    bar = monorepo / "packages" / "package-bar"

    (edge,) = graph.edges_into(bar)
    assert edge.consumer == foo
    assert edge.kind == "workspace-internal"
    assert graph.packages[bar].workspace_member
    assert not [u for u in graph.unresolved if u.name == "package-bar"]


def test_workspace_internal_beats_direct_when_also_linked(monorepo: Path):
    symlink(monorepo / "node_modules" / "package-bar", monorepo / "packages" / "package-bar")

    graph = build_graph(monorepo)
    bar = monorepo / "packages" / "package-bar"

    (edge,) = graph.edges_into(bar)
    assert edge.kind == "workspace-internal"
    assert graph.is_symlinked(bar)


def test_member_resolves_through_workspace_root(monorepo: Path):
    foo = monorepo / "packages" / "package-foo"
    (foo / "package.json").write_text(
        '{"name": "package-foo", "version": "1.0.0", "dependencies": {"camelcase": "^6.0.0"}}'
    )

    graph = build_graph(foo)

    assert _edge_kinds(graph, foo) == {("camelcase", "6.3.0", "direct")}


def test_empty_workspace_member_has_no_edges(monorepo: Path):
    member = monorepo / "packages" / "package-without-modules"

    graph = build_graph(member)

    assert graph.start == member
    assert graph.workspace.root == monorepo
    assert graph.edges_from(member) == ()


def test_duplicate_member_names_pick_lexicographically_first(root: Path):
    repo = write_package(root / "repo", "repo", workspaces=["packages/*"])
    write_package(repo / "packages" / "a-dup", "dup")
    write_package(repo / "packages" / "b-dup", "dup")
    consumer = write_package(repo / "packages" / "user", "user", dependencies={"dup": "*"})

    graph = build_graph(repo)

    (edge,) = graph.edges_from(consumer)
    assert edge.dependency == repo / "packages" / "a-dup"


def test_pnpm_layout_resolves_through_store(root: Path):
    app = write_package(root / "app", "app", dependencies={"foo": "1.0.0"})
    store = app / "node_modules" / ".pnpm"
    foo = write_package(
        store / "foo@1.0.0" / "node_modules" / "foo", "foo", "1.0.0", dependencies={"bar": "^2"}
    )
    bar = write_package(store / "bar@2.0.0" / "node_modules" / "bar", "bar", "2.0.0")
    symlink(store / "foo@1.0.0" / "node_modules" / "bar", bar)
    symlink(app / "node_modules" / "foo", foo)

    graph = build_graph(app)

    assert _edge_kinds(graph, app) == {("foo", "1.0.0", "direct")}
    assert _edge_kinds(graph, foo) == {("bar", "2.0.0", "direct")}


def test_start_directory_must_exist(root: Path):
    with pytest.raises(BuildError):
        build_graph(root / "missing")


def test_start_directory_must_be_a_directory(root: Path):
    (root / "file").write_text("x")

    with pytest.raises(BuildError):
        build_graph(root / "file")


def test_start_directory_without_manifest(root: Path):
    bare = root / "bare"
    write_package(bare / "node_modules" / "x", "x")

    graph = build_graph(bare)

    assert graph.start_package.name == "bare"
    assert [p.name for p in graph.named("x")] == ["x"]


def test_resolve_dependency_stops_at_boundary(root: Path):
    outer = write_package(root / "outer", "outer")
    write_package(outer / "node_modules" / "dep", "dep")
    inner = write_package(outer / "inner", "inner")
    graph = build_graph(outer)

    assert resolve_dependency(inner, "dep", graph.packages) is not None
    assert resolve_dependency(inner, "dep", graph.packages, boundary=inner) is None


def test_resolve_dependency_honours_symlink_bound(root: Path):
    app = write_package(root / "app", "app", dependencies={"dep": "*"})
    store = write_package(root / "store" / "dep", "dep")
    symlink(app / "node_modules" / "dep", store)
    graph = build_graph(app)

    assert resolve_dependency(app, "dep", graph.packages) is not None
    assert resolve_dependency(app, "dep", graph.packages, max_hops=0) is None


def test_junk_dependency_name_does_not_abort_build(root: Path):
    app = write_package(root / "app", "app", dependencies={"junk": "1.0.0", "x": "1.0.0"})
    write_package(app / "node_modules" / "junk", "junk", dependencies={"": "1.0.0"})
    write_package(app / "node_modules" / "x", "x", dependencies={"y": None})

    graph = build_graph(app)

    result = resolve_by_name(graph, "x")
    assert [d.package.name for d in result.matches[0].dependents] == ["app"]
    assert graph.edges_from(app / "node_modules" / "junk") == ()


def test_unresolvable_links_are_reported_on_the_graph(root: Path):
    app = write_package(root / "app", "app")
    nm = app / "node_modules"
    nm.mkdir()
    os.symlink(root / "nowhere", nm / "dangling")

    graph = build_graph(app, Settings(max_symlink_hops=8))

    assert graph.skipped == (nm / "dangling",)


def test_collapse_keeps_most_specific_kind():
    a, b = Path("/a"), Path("/b")
    edges = [
        DependencyEdge(a, b, "dev", "b"),
        DependencyEdge(a, b, "bundled", "b"),
        DependencyEdge(a, b, "direct", "b"),
    ]

    (edge,) = collapse_edges(edges)

    assert edge.kind == "bundled"


def test_unreadable_start_directory(root: Path):
    locked = root / "locked"
    locked.mkdir()
    os.chmod(locked, 0)
    try:
        if os.access(locked, os.R_OK):
            pytest.skip("running with privileges that ignore permissions")
        with pytest.raises(BuildError):
            build_graph(locked)
    finally:
        os.chmod(locked, 0o755)
