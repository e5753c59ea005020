"""Resolve import specifiers to canonical project paths."""

from __future__ import annotations

import posixpath
import re
from collections.abc import Collection

from ctxengine.config import ProjectLayout

_HAS_EXTENSION_RE = re.compile(r"\.[a-zA-Z]+$")


class ImportResolver:
    """Maps ``(from_file, specifier)`` to a project path.

    Resolution order:
      1. alias prefix (``@/``) rewritten to the source root
      2. relative specifiers walked against the importing file's directory
      3. explicit extension kept, otherwise probe extensions then index files
      4. fuzzy basename match against known files

    External packages and unresolvable specifiers return None. Resolution
    is pure, so resolving the same pair twice always gives the same answer.
    """

    def __init__(self, layout: ProjectLayout | None = None) -> None:
        self.layout = layout or ProjectLayout()

    def is_external(self, specifier: str) -> bool:
        return not (specifier.startswith(".") or specifier.startswith(self.layout.alias_prefix))

    def base_path(self, from_file: str, specifier: str) -> str | None:
        """Absolute project path for a specifier, before extension probing."""
        if self.is_external(specifier):
            return None

        alias = self.layout.alias_prefix
        if specifier.startswith(alias):
            root = self.layout.source_root.rstrip("/")
            return f"{root}/{specifier[len(alias):]}"

        directory = posixpath.dirname(from_file) or "/"
        parts = [p for p in directory.split("/") if p]
        for part in specifier.split("/"):
            if part in ("", "."):
                continue
            if part == "..":
                if parts:
                    parts.pop()
            else:
                parts.append(part)
        return "/" + "/".join(parts)

    def candidates(self, base: str) -> list[str]:
        exts = self.layout.extensions
        return [f"{base}{ext}" for ext in exts] + [f"{base}/index{ext}" for ext in exts]

    def resolve(
        self,
        from_file: str,
        specifier: str,
        known_files: Collection[str],
    ) -> str | None:
        base = self.base_path(from_file, specifier)
        if base is None:
            return None

        if _HAS_EXTENSION_RE.search(base.rsplit("/", 1)[-1]):
            return base

        for candidate in self.candidates(base):
            if candidate in known_files:
                return candidate

        basename = base.rsplit("/", 1)[-1]
        if basename:
            suffixes = tuple(f"/{basename}{ext}" for ext in self.layout.extensions)
            for path in sorted(known_files):
                if path.endswith(suffixes):
                    return path
        return None
