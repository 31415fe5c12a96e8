"""End-to-end tests for the command-line wrapper."""

import json
from pathlib import Path

import pytest

from npm_inspector import cli
from npm_inspector.errors import RegistryError

from conftest import write_package


@pytest.fixture(autouse=True)
def no_network(monkeypatch):
    def refuse(name, registry_url):
        raise RegistryError("network disabled in tests")

    monkeypatch.setattr(cli, "fetch_latest_version", refuse)
    monkeypatch.delenv("NPM_INSPECTOR_CONFIG", raising=False)


def test_query_prints_versions_and_dependents(nested_tree: Path, capsys):
    status = cli.main(["c", "--cwd", str(nested_tree), "--no-remote"])

    out = capsys.readouterr().out
    assert status == 0
    assert out.splitlines() == [
        "c",
        "  1.0.0  node_modules/c",
        "    required by app@^1.0.0",
        "  2.0.0  node_modules/b/node_modules/c",
        "    required by b@^2.0.0",
    ]


def test_query_with_remote_version(nested_tree: Path, capsys, monkeypatch):
    monkeypatch.setattr(cli, "fetch_latest_version", lambda name, url: "3.0.0")

    cli.main(["c", "--cwd", str(nested_tree)])

    assert capsys.readouterr().out.splitlines()[0] == "c (latest: 3.0.0)"


def test_remote_failure_is_not_fatal(nested_tree: Path, capsys):
    status = cli.main(["c", "--cwd", str(nested_tree)])

    assert status == 0
    assert capsys.readouterr().out.startswith("c\n")


def test_bundled_annotation(root: Path, capsys):
    app = write_package(root / "app", "app", dependencies={"test": "1.0.0"}, bundledDependencies=["test"])
    write_package(app / "node_modules" / "test", "test", "1.0.0")

    cli.main(["test", "--cwd", str(app), "--no-remote"])

    assert "    required by app@1.0.0 (bundled)" in capsys.readouterr().out


def test_not_found_suggests_scoped_name(root: Path, capsys):
    app = write_package(root / "app", "app")
    write_package(app / "node_modules" / "@scope" / "test", "@scope/test")

    status = cli.main(["test", "--cwd", str(app), "--no-remote"])

    assert status == 1
    assert 'Did you mean "@scope/test"' in capsys.readouterr().err


def test_list_and_deps(root: Path, capsys):
    app = write_package(root / "app", "app", dependencies={"a": "1.0.0"})
    write_package(app / "node_modules" / "a", "a", dependencies={"b": "1.0.0"})
    write_package(app / "node_modules" / "b", "b")

    cli.main(["list", "--cwd", str(app)])
    assert capsys.readouterr().out.splitlines() == ["a 1.0.0  <- app", "b 1.0.0  <- a"]

    cli.main(["list", "--deps", "--cwd", str(app)])
    assert capsys.readouterr().out.splitlines() == ["a 1.0.0  <- app"]


def test_list_json(nested_tree: Path, capsys):
    cli.main(["list", "--json", "--cwd", str(nested_tree)])

    document = json.loads(capsys.readouterr().out)
    assert document["totals"] == {"packages": 3}
    assert [p["name"] for p in document["packages"]] == ["b", "c", "c"]
    assert document["unresolved"] == []
    assert document["skipped"] == []


def test_match_command(nested_tree: Path, capsys):
    cli.main(["match", "c", "--cwd", str(nested_tree)])

    out = capsys.readouterr().out.splitlines()
    assert out[0] == "c"
    assert len([line for line in out if line.startswith("  ") and not line.startswith("    ")]) == 2


def test_missing_start_directory(root: Path, capsys):
    status = cli.main(["x", "--cwd", str(root / "missing")])

    assert status == 1
    assert "ERROR:" in capsys.readouterr().err


def test_invalid_config(root: Path, nested_tree: Path, capsys):
    (root / "bad.json").write_text('{"maxWorkers": -1}')

    status = cli.main(["c", "--cwd", str(nested_tree), "--config", str(root / "bad.json")])

    assert status == 1
    assert "Invalid configuration" in capsys.readouterr().err
