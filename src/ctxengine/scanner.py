"""Read a project directory into the ``path -> content`` map the engine expects.

Paths are project-absolute with forward slashes (``/src/pages/Index.tsx``).
"""

from __future__ import annotations

import fnmatch
import logging
import os
from collections.abc import Callable
from pathlib import Path, PurePosixPath

from ctxengine.config import IndexerConfig

logger = logging.getLogger("ctxengine.scanner")


def to_project_path(root: Path, file_path: Path) -> str:
    return "/" + file_path.relative_to(root).as_posix()


def collect_files(root: str | Path, config: IndexerConfig | None = None) -> list[Path]:
    """All source files under ``root`` that survive exclusions, .gitignore and the size cap."""
    root = Path(root)
    config = config or IndexerConfig()
    patterns = config.exclude_patterns + _gitignore_patterns(root)
    suffixes = tuple(config.include_extensions)
    size_cap = config.max_file_size_kb * 1024

    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        here = PurePosixPath(Path(dirpath).relative_to(root).as_posix())
        # Prune in place so os.walk never descends into excluded trees
        dirnames[:] = [d for d in dirnames if not _excluded(here / d, patterns)]

        for name in filenames:
            if suffixes and not name.endswith(suffixes):
                continue
            if _excluded(here / name, patterns):
                continue
            candidate = Path(dirpath, name)
            try:
                too_big = candidate.stat().st_size > size_cap
            except OSError:
                continue
            if not too_big:
                found.append(candidate)

    return sorted(found)


def load_project_files(
    root: str | Path,
    config: IndexerConfig | None = None,
    on_progress: Callable[[str, int, int], None] | None = None,
) -> dict[str, str]:
    """Read every collected file. Undecodable files are skipped."""
    root = Path(root)
    paths = collect_files(root, config)
    files: dict[str, str] = {}
    for i, full_path in enumerate(paths, 1):
        project_path = to_project_path(root, full_path)
        if on_progress:
            on_progress(project_path, i, len(paths))
        try:
            files[project_path] = full_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(f"Skipping {project_path}: {exc}")
    logger.debug(f"Loaded {len(files)} files from {root}")
    return files


def _excluded(rel_path: PurePosixPath, patterns: list[str]) -> bool:
    """A path is excluded when it, or any single component, matches a pattern."""
    text = str(rel_path)
    return any(
        fnmatch.fnmatch(text, pattern) or any(fnmatch.fnmatch(p, pattern) for p in rel_path.parts)
        for pattern in patterns
    )


def _gitignore_patterns(root: Path) -> list[str]:
    """Plain patterns from .gitignore; negations and comments are ignored."""
    gitignore = root / ".gitignore"
    try:
        lines = gitignore.read_text(encoding="utf-8").splitlines()
    except OSError:
        return []
    stripped = (line.strip() for line in lines)
    return [line.strip("/") for line in stripped if line and line[0] not in "#!"]
