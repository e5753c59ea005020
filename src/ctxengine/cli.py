"""Command-line interface for ctxengine."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
import time
from pathlib import Path

import click
from rich.logging import RichHandler

from ctxengine import __version__
from ctxengine.config import (
    STORE_DB_FILE,
    ProjectConfig,
    find_project_root,
    get_config_value,
    get_ctxengine_dir,
    load_config,
    save_config,
    set_config_value,
)
from ctxengine.exceptions import ConfigError
from ctxengine.ui.console import Console

console = Console()


def _get_project_root(path: str | None = None) -> Path:
    """Find the project root or error."""
    if path:
        root = Path(path).resolve()
        if not root.exists():
            console.error(f"Path does not exist: {path}")
            sys.exit(1)
        return root

    root = find_project_root()
    if root is None:
        console.error(
            "No ctxengine project found. Run 'ctxengine init' first, "
            "or specify a path with --path."
        )
        sys.exit(1)
    return root


def _load_config(root: Path) -> ProjectConfig:
    try:
        return load_config(root)
    except ConfigError as exc:
        console.error(str(exc))
        sys.exit(1)


def _open_store(root: Path, require: bool = True):
    """Open the change store; unless `require` is off, it must already exist."""
    from ctxengine.changes.store import SQLiteChangeStore

    db_path = get_ctxengine_dir(root) / STORE_DB_FILE
    if require and not db_path.exists():
        console.error("No change history found. Run 'ctxengine init' first.")
        sys.exit(1)
    return SQLiteChangeStore(db_path)


def _scan(root: Path, config: ProjectConfig, quiet: bool = False) -> dict[str, str]:
    from ctxengine.scanner import load_project_files

    if quiet:
        return load_project_files(root, config.indexer)
    with console.scan_progress() as progress:
        task = progress.add_task("Scanning...", total=None)

        def on_progress(file_path: str, current: int, total: int):
            progress.update(task, total=total, completed=current, description=f"Reading {file_path}")

        return load_project_files(root, config.indexer, on_progress)


@click.group()
@click.version_option(version=__version__, prog_name="ctxengine")
@click.option("--verbose", "-v", is_flag=True, help="Log engine decisions to stderr.")
def main(verbose: bool):
    """ctxengine - token-budgeted context assembly for code generation."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(show_path=False, rich_tracebacks=True)],
        )


@main.command()
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--project-id", default=None, help="Project id (default: directory name).")
def init(path: str | None, project_id: str | None):
    """Initialize ctxengine for a project and record the current files."""
    root = Path(path or ".").resolve()
    if not root.exists():
        console.error(f"Path does not exist: {root}")
        sys.exit(1)

    console.banner()
    console.info(f"Initializing ctxengine for: {root}")

    config = _load_config(root)
    config.name = root.name
    config.root_path = str(root)
    config.project_id = project_id or config.project_id or root.name
    save_config(root, config)
    console.success("Configuration saved")

    _do_sync(root, config, prune=True, require=False)


def _do_sync(root: Path, config: ProjectConfig, prune: bool, require: bool = True) -> None:
    from ctxengine.changes.tracker import ChangeTracker

    start_time = time.time()
    files = _scan(root, config)
    store = _open_store(root, require)
    try:
        changes = asyncio.run(ChangeTracker(store).sync(config.project_id, files, prune=prune))
    finally:
        store.close()

    elapsed = time.time() - start_time
    console.success(f"Recorded {len(files)} files in {elapsed:.1f}s")
    console.show_changes(changes, title="Sync")


@main.command()
@click.option("--path", "-p", default=None, help="Path to the project root.")
def status(path: str | None):
    """Show files changed since the last sync."""
    from ctxengine.changes.tracker import ChangeTracker

    root = _get_project_root(path)
    config = _load_config(root)
    files = _scan(root, config)
    store = _open_store(root)
    try:
        changes = asyncio.run(
            ChangeTracker(store).diff(config.project_id, files, include_deleted=True)
        )
    finally:
        store.close()

    console.info(f"Project: {config.name or root.name} ({config.project_id})")
    if changes.has_changes or changes.deleted:
        console.show_changes(changes, title="Working Tree")
    else:
        console.success("No changes since last sync")


@main.command()
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--prune", is_flag=True, help="Forget files that no longer exist.")
def sync(path: str | None, prune: bool):
    """Record the current state of every file."""
    root = _get_project_root(path)
    _do_sync(root, _load_config(root), prune=prune)


@main.command()
@click.argument("prompt")
def classify(prompt: str):
    """Classify an instruction: action, flags, mentioned files and keywords."""
    from ctxengine.search.classifier import IntentClassifier

    classifier = IntentClassifier()
    console.show_classification(
        classifier.classify(prompt), classifier.recommend_response_mode(prompt)
    )


@main.command()
@click.argument("file", required=False)
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--map", "repo_map", is_flag=True, help="Outline every file, grouped by type.")
def outline(file: str | None, path: str | None, repo_map: bool):
    """Show the structural outline of a file, or the whole repository map."""
    from ctxengine.context.outline import OutlineGenerator

    root = _get_project_root(path)
    config = _load_config(root)
    outliner = OutlineGenerator(config.engine.outline)

    if repo_map:
        console.console.print(outliner.repository_map(_scan(root, config)), markup=False)
        return
    if not file:
        console.error("Usage: ctxengine outline FILE (or --map)")
        sys.exit(1)

    full_path = (root / file.lstrip("/")).resolve()
    if not full_path.is_file():
        console.error(f"File not found: {file}")
        sys.exit(1)
    project_path = "/" + full_path.relative_to(root).as_posix()
    result = outliner.outline(project_path, full_path.read_text(encoding="utf-8"))
    console.code(result.text)
    console.info(f"~{result.estimated_tokens} tokens for {result.line_count} lines")


@main.command()
@click.argument("prompt")
@click.option("--path", "-p", default=None, help="Path to the project root.")
@click.option("--selected", "-s", default=None, help="Currently selected file (e.g. /src/App.tsx).")
@click.option("--budget-only", is_flag=True, help="Only estimate the token cost.")
@click.option("--json", "as_json", is_flag=True, help="Print the package as JSON.")
def build(prompt: str, path: str | None, selected: str | None, budget_only: bool, as_json: bool):
    """Assemble a context package for an instruction.

    Examples:

        ctxengine build "make the jump higher" --selected /src/game/Player.tsx

        ctxengine build "add a pause menu" --budget-only
    """
    from ctxengine.context.engine import ContextAssembler
    from ctxengine.search.semantic import LocalSemanticIndex

    root = _get_project_root(path)
    config = _load_config(root)
    files = _scan(root, config, quiet=as_json)
    if selected and selected not in files and not as_json:
        console.warning(f"Selected file not in project: {selected}")

    store = _open_store(root)
    try:
        semantic = None
        if config.engine.hybrid.enabled and not budget_only:
            semantic = LocalSemanticIndex()
            semantic.index_project(config.project_id, files)
        assembler = ContextAssembler(store, config.engine, semantic=semantic)

        if budget_only:
            estimate = assembler.preflight(prompt, files, selected)
            if as_json:
                click.echo(estimate.model_dump_json(indent=2))
            else:
                console.show_preflight(estimate)
            return

        package = asyncio.run(
            assembler.build(config.project_id, prompt, files, selected_file=selected)
        )
        assembler.close_project(config.project_id)
    finally:
        store.close()

    if as_json:
        click.echo(package.model_dump_json(indent=2))
    else:
        console.show_package(package)
        console.console.print()
        console.console.print(package.render(), markup=False, highlight=False)


@main.command("config")
@click.argument("action", type=click.Choice(["set", "get", "show"]))
@click.argument("key", required=False)
@click.argument("value", required=False)
@click.option("--path", "-p", default=None, help="Path to the project root.")
def config_cmd(action: str, key: str | None, value: str | None, path: str | None):
    """Manage ctxengine configuration."""
    root = _get_project_root(path)
    config = _load_config(root)

    if action == "show":
        console.console.print_json(json.dumps(config.model_dump(), indent=2))
    elif action == "get":
        if not key:
            console.error("Usage: ctxengine config get <key>")
            sys.exit(1)
        try:
            current = get_config_value(config, key)
        except KeyError:
            console.error(f"Unknown config key: {key}")
            sys.exit(1)
        console.console.print(f"{key} = {current}", markup=False)
    elif action == "set":
        if not key or value is None:
            console.error("Usage: ctxengine config set <key> <value>")
            sys.exit(1)
        try:
            try:
                parsed_value = json.loads(value)
            except json.JSONDecodeError:
                parsed_value = value

            config = set_config_value(config, key, parsed_value)
            save_config(root, config)
            console.success(f"Set {key} = {parsed_value}")
        except KeyError:
            console.error(f"Unknown config key: {key}")
            sys.exit(1)
        except ValueError as exc:
            console.error(f"Invalid value for {key}: {exc}")
            sys.exit(1)


if __name__ == "__main__":
    main()
