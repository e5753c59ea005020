"""Tests for the CLI interface and the project scanner."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from click.testing import CliRunner

from ctxengine.cli import main
from ctxengine.config import IndexerConfig, load_config
from ctxengine.scanner import collect_files, load_project_files, to_project_path


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def initialized_project(tmp_project: Path) -> Path:
    """A tmp_project whose files have been recorded."""
    result = CliRunner().invoke(main, ["init", "--path", str(tmp_project)])
    assert result.exit_code == 0, f"Init failed: {result.output}"
    return tmp_project


class TestScanner:
    def test_collects_source_files(self, tmp_project: Path, sample_files):
        files = load_project_files(tmp_project)
        assert set(files) == set(sample_files)
        assert files["/src/lib/math.ts"] == sample_files["/src/lib/math.ts"]

    def test_exclusions(self, tmp_project: Path):
        paths = [to_project_path(tmp_project, p) for p in collect_files(tmp_project)]
        assert not any(p.startswith("/node_modules") for p in paths)
        assert not any(p.startswith("/dist") for p in paths)
        assert "/README.md" not in paths

    def test_gitignore(self, tmp_project: Path):
        (tmp_project / ".gitignore").write_text("# generated\n/src/lib/\n!keep.ts\n")
        files = load_project_files(tmp_project)
        assert "/src/lib/math.ts" not in files
        assert "/src/App.tsx" in files

    def test_max_file_size(self, tmp_project: Path):
        assert load_project_files(tmp_project, IndexerConfig(max_file_size_kb=0)) == {}

    def test_undecodable_file_skipped(self, tmp_project: Path):
        (tmp_project / "src" / "broken.ts").write_bytes(b"\xff\xfe\x00\x9c")
        files = load_project_files(tmp_project)
        assert "/src/broken.ts" not in files
        assert "/src/App.tsx" in files

    def test_progress_callback(self, tmp_project: Path, sample_files):
        seen = []
        load_project_files(tmp_project, on_progress=lambda path, i, total: seen.append((i, total)))
        assert seen[-1] == (len(sample_files), len(sample_files))


class TestCLIInit:
    def test_init_basic(self, runner: CliRunner, tmp_project: Path):
        result = runner.invoke(main, ["init", "--path", str(tmp_project)])
        assert result.exit_code == 0
        assert "Initializing" in result.output
        assert "Recorded 10 files" in result.output

    def test_init_creates_ctxengine_dir(self, runner: CliRunner, tmp_project: Path):
        runner.invoke(main, ["init", "--path", str(tmp_project)])
        assert (tmp_project / ".ctxengine" / "config.json").exists()
        assert (tmp_project / ".ctxengine" / "changes.db").exists()

    def test_init_project_id(self, runner: CliRunner, tmp_project: Path):
        runner.invoke(main, ["init", "--path", str(tmp_project), "--project-id", "snake"])
        assert load_config(tmp_project).project_id == "snake"

    def test_init_nonexistent_path(self, runner: CliRunner):
        result = runner.invoke(main, ["init", "--path", "/nonexistent/path"])
        assert result.exit_code != 0


class TestCLIStatus:
    def test_clean(self, runner: CliRunner, initialized_project: Path):
        result = runner.invoke(main, ["status", "--path", str(initialized_project)])
        assert result.exit_code == 0
        assert "No changes since last sync" in result.output

    def test_modified(self, runner: CliRunner, initialized_project: Path):
        constants = initialized_project / "src" / "lib" / "constants.ts"
        constants.write_text(constants.read_text() + "export const LIVES = 3;\n")

        result = runner.invoke(main, ["status", "--path", str(initialized_project)])
        assert result.exit_code == 0
        assert "/src/lib/constants.ts" in result.output

    def test_status_without_init(self, runner: CliRunner, tmp_path: Path):
        result = runner.invoke(main, ["status", "--path", str(tmp_path)])
        assert result.exit_code != 0


class TestCLISync:
    def test_sync_records_new_file(self, runner: CliRunner, initialized_project: Path):
        (initialized_project / "src" / "lib" / "extra.ts").write_text("export const X = 1;\n")

        result = runner.invoke(main, ["sync", "--path", str(initialized_project)])
        assert result.exit_code == 0
        assert "/src/lib/extra.ts" in result.output

        status = runner.invoke(main, ["status", "--path", str(initialized_project)])
        assert "No changes since last sync" in status.output

    def test_prune(self, runner: CliRunner, initialized_project: Path):
        (initialized_project / "src" / "lib" / "math.ts").unlink()
        result = runner.invoke(main, ["sync", "--prune", "--path", str(initialized_project)])
        assert result.exit_code == 0
        assert "/src/lib/math.ts" in result.output


class TestCLIClassify:
    def test_classify(self, runner: CliRunner):
        result = runner.invoke(main, ["classify", "change the button color to blue"])
        assert result.exit_code == 0
        assert "tweak" in result.output
        assert "trivial" in result.output

    def test_verbose(self, runner: CliRunner, restore_logging):
        result = runner.invoke(main, ["-v", "classify", "add a pause menu"])
        assert result.exit_code == 0
        assert "add" in result.output


class TestCLIOutline:
    def test_outline_file(self, runner: CliRunner, initialized_project: Path):
        result = runner.invoke(
            main, ["outline", "src/lib/math.ts", "--path", str(initialized_project)]
        )
        assert result.exit_code == 0
        assert "clamp" in result.output
        assert "tokens for 4 lines" in result.output

    def test_repository_map(self, runner: CliRunner, initialized_project: Path):
        result = runner.invoke(main, ["outline", "--map", "--path", str(initialized_project)])
        assert result.exit_code == 0
        assert "# Repository Map" in result.output
        assert "## Components" in result.output

    def test_missing_file(self, runner: CliRunner, initialized_project: Path):
        result = runner.invoke(
            main, ["outline", "src/nope.ts", "--path", str(initialized_project)]
        )
        assert result.exit_code != 0


class TestCLIBuild:
    def test_build_json(self, runner: CliRunner, initialized_project: Path):
        result = runner.invoke(
            main,
            ["build", "change the button color to blue", "--json", "--path", str(initialized_project)],
        )
        assert result.exit_code == 0, result.output
        package = json.loads(result.stdout)
        assert package["context_mode"] == "minimal"
        assert package["relevant_files"][0]["path"] == "/src/pages/Index.tsx"
        assert package["classification"]["intent"] == "tweak"

    def test_build_full(self, runner: CliRunner, initialized_project: Path):
        result = runner.invoke(
            main,
            [
                "build",
                "make the player faster",
                "--selected",
                "/src/components/Player.tsx",
                "--path",
                str(initialized_project),
            ],
        )
        assert result.exit_code == 0, result.output
        assert "Context Package" in result.output
        assert "# Project Context for: make the player faster" in result.output

    def test_budget_only(self, runner: CliRunner, initialized_project: Path):
        result = runner.invoke(
            main,
            ["build", "add a pause menu", "--budget-only", "--json", "--path", str(initialized_project)],
        )
        assert result.exit_code == 0, result.output
        estimate = json.loads(result.stdout)
        assert estimate["intent"] == "add"
        assert estimate["token_budget"] == 12000

    def test_budget_only_table(self, runner: CliRunner, initialized_project: Path):
        result = runner.invoke(
            main, ["build", "add a pause menu", "--budget-only", "--path", str(initialized_project)]
        )
        assert result.exit_code == 0
        assert "Within budget" in result.output

    def test_build_without_init(self, runner: CliRunner, tmp_project: Path):
        result = runner.invoke(main, ["build", "add a pause menu", "--path", str(tmp_project)])
        assert result.exit_code != 0


class TestCLIConfig:
    def test_set_and_get(self, runner: CliRunner, initialized_project: Path):
        path = str(initialized_project)
        result = runner.invoke(main, ["config", "set", "engine.budgets.tweak", "4000", "--path", path])
        assert result.exit_code == 0
        assert load_config(initialized_project).engine.budgets.tweak == 4000

        result = runner.invoke(main, ["config", "get", "engine.budgets.tweak", "--path", path])
        assert "engine.budgets.tweak = 4000" in result.output

    def test_show(self, runner: CliRunner, initialized_project: Path):
        result = runner.invoke(main, ["config", "show", "--path", str(initialized_project)])
        assert result.exit_code == 0
        assert "budgets" in result.output

    def test_unknown_key(self, runner: CliRunner, initialized_project: Path):
        result = runner.invoke(
            main, ["config", "set", "engine.nope", "1", "--path", str(initialized_project)]
        )
        assert result.exit_code != 0
        assert "Unknown config key" in result.output
