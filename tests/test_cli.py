"""Tests for the command line interface and its exit codes."""

import json
import tempfile
from pathlib import Path

import pytest
from click.testing import CliRunner

from actionpin import cli
from conftest import CHECKOUT_YML, make_sha


@pytest.fixture
def run(provider, monkeypatch):
    """Invoke the CLI against the fake provider."""
    monkeypatch.setattr(cli, "make_provider", lambda settings: provider)
    runner = CliRunner()

    def invoke(project: Path, *args):
        return runner.invoke(cli.main, ["--project-dir", str(project), *args])

    return invoke


def test_add_list_and_remove(run, provider):
    provider.publish("actions/checkout", {"v4": make_sha("4")}, CHECKOUT_YML)
    with tempfile.TemporaryDirectory() as tmpdir:
        project = Path(tmpdir)

        result = run(project, "add", "actions/checkout")
        assert result.exit_code == 0, result.output
        assert (project / ".github" / "actions" / "actions" / "checkout.py").exists()

        result = run(project, "list")
        assert result.exit_code == 0
        assert "Tracked Actions (1)" in result.output

        result = run(project, "remove", "actions/checkout")
        assert result.exit_code == 0
        assert not (project / ".github" / "actions" / "actions" / "checkout.py").exists()

        result = run(project, "list")
        assert "No actions tracked." in result.output


def test_failed_reference_exits_1(run, provider):
    provider.publish("actions/checkout", {"v4": make_sha("4")}, CHECKOUT_YML)
    with tempfile.TemporaryDirectory() as tmpdir:
        project = Path(tmpdir)
        result = run(project, "add", "actions/checkout", "nobody/missing@v1")

        assert result.exit_code == 1
        manifest = json.loads((project / ".github" / "actionpin.json").read_text(encoding="utf-8"))
        assert [e["key"] for e in manifest["entries"]] == ["actions/checkout"]


def test_remove_untracked_exits_0(run):
    with tempfile.TemporaryDirectory() as tmpdir:
        result = run(Path(tmpdir), "remove", "actions/checkout")
        assert result.exit_code == 0


def test_corrupt_manifest_exits_2(run, provider):
    provider.publish("actions/checkout", {"v4": make_sha("4")}, CHECKOUT_YML)
    with tempfile.TemporaryDirectory() as tmpdir:
        project = Path(tmpdir)
        manifest = project / ".github" / "actionpin.json"
        manifest.parent.mkdir()
        manifest.write_text("[]", encoding="utf-8")

        for args in (("add", "actions/checkout"), ("list",), ("check",), ("regenerate",)):
            result = run(project, *args)
            assert result.exit_code == 2, args
        assert "Manifest error" in result.output
        assert manifest.read_text(encoding="utf-8") == "[]"


def test_update_requires_ref_or_all(run):
    with tempfile.TemporaryDirectory() as tmpdir:
        project = Path(tmpdir)
        assert run(project, "update").exit_code == 2
        assert run(project, "update", "actions/checkout", "--all").exit_code == 2
        assert run(project, "update", "--all").exit_code == 0


def test_name_option_needs_single_ref(run):
    with tempfile.TemporaryDirectory() as tmpdir:
        result = run(Path(tmpdir), "add", "--name", "co", "a/b", "c/d")
        assert result.exit_code == 2


def test_check_and_regenerate(run, provider):
    provider.publish("actions/checkout", {"v4": make_sha("4")}, CHECKOUT_YML)
    with tempfile.TemporaryDirectory() as tmpdir:
        project = Path(tmpdir)
        run(project, "add", "actions/checkout@v4")
        assert run(project, "check").exit_code == 0

        (project / ".github" / "actions" / "actions" / "checkout.py").write_text("edited\n", encoding="utf-8")
        result = run(project, "check")
        assert result.exit_code == 1
        assert "content_drift" in result.output

        assert run(project, "regenerate", "actions/*").exit_code == 0
        assert run(project, "check").exit_code == 0


def test_config_file_sets_bindings_dir(run, provider):
    provider.publish("actions/checkout", {"v4": make_sha("4")}, CHECKOUT_YML)
    with tempfile.TemporaryDirectory() as tmpdir:
        project = Path(tmpdir)
        (project / ".github").mkdir()
        (project / ".github" / "actionpin.yaml").write_text("bindings_dir: ci/bindings\n", encoding="utf-8")

        assert run(project, "add", "actions/checkout").exit_code == 0
        assert (project / "ci" / "bindings" / "actions" / "checkout.py").exists()

        # A command-line option overrides the config file; the binding moves
        assert run(project, "--bindings-dir", "other", "add", "actions/checkout").exit_code == 0
        assert (project / "other" / "actions" / "checkout.py").exists()
        assert not (project / "ci" / "bindings" / "actions" / "checkout.py").exists()


def test_invalid_config_is_usage_error(run):
    with tempfile.TemporaryDirectory() as tmpdir:
        project = Path(tmpdir)
        (project / ".github").mkdir()
        (project / ".github" / "actionpin.yaml").write_text("colour: blue\n", encoding="utf-8")

        result = run(project, "list")
        assert result.exit_code == 2
        assert "unknown keys" in result.output
