"""Extractor interface.

Scoring, outlining and change tracking only talk to a ``SourceExtractor``,
so the line-oriented pattern implementation can be swapped for an AST-based
one without touching the rest of the engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class ImportInfo:
    """One import statement."""

    source: str
    names: list[str] = field(default_factory=list)
    is_default: bool = False


@dataclass
class FunctionInfo:
    name: str
    is_async: bool = False
    is_exported: bool = False
    return_type: str | None = None


@dataclass
class ComponentInfo:
    """Structural hints for a UI component file."""

    name: str
    props: list[str] = field(default_factory=list)
    hooks: list[str] = field(default_factory=list)
    state_variables: list[str] = field(default_factory=list)
    is_exported: bool = False


class SourceExtractor(ABC):
    """Pulls structural facts out of a source file."""

    @abstractmethod
    def file_type(self, path: str, content: str = "") -> str:
        """Classify a file (page, component, hook, ...) from its path and content."""

    @abstractmethod
    def exports(self, content: str) -> list[str]:
        """Declared export names, ordered and unique."""

    @abstractmethod
    def imports(self, content: str) -> list[str]:
        """Raw import specifiers, ordered and unique."""

    @abstractmethod
    def import_details(self, content: str) -> list[ImportInfo]:
        """Import statements with their bound names."""

    @abstractmethod
    def functions(self, content: str) -> list[FunctionInfo]:
        """Top-level function declarations."""

    @abstractmethod
    def component_info(self, content: str) -> ComponentInfo | None:
        """Component hints, or None when the file does not declare a component."""

    def default_export(self, content: str) -> str | None:
        """Name of the default export, '' for anonymous, None if absent."""
        return None
