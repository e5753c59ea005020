"""Build the file-level import graph.

The graph is a NetworkX DiGraph with one node per project file and an edge
``from -> to`` (kind="import") for every import that resolves to a known
file. Edges to paths that do not exist are dropped silently.
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from dataclasses import dataclass, field

import networkx as nx

from ctxengine.changes.models import FileRecord
from ctxengine.changes.store import ChangeStore
from ctxengine.config import ProjectLayout
from ctxengine.graph.resolver import ImportResolver

logger = logging.getLogger("ctxengine.graph")


@dataclass
class DependencyContext:
    """Direct neighbours of one file."""

    imports: list[str] = field(default_factory=list)  # files this file imports
    importers: list[str] = field(default_factory=list)  # files importing this file


class DependencyGraphBuilder:
    """Turns raw import specifiers into a dependency graph."""

    def __init__(self, resolver: ImportResolver | None = None) -> None:
        self.resolver = resolver or ImportResolver()
        self.graph = nx.DiGraph()
        self.dropped_edges = 0

    def build(
        self,
        imports_by_file: dict[str, list[str]],
        known_files: Collection[str] | None = None,
    ) -> nx.DiGraph:
        """Build the graph from ``path -> [raw specifier]``."""
        known = set(known_files) if known_files is not None else set(imports_by_file)
        self.graph = nx.DiGraph()
        self.dropped_edges = 0

        for path in sorted(known):
            self.graph.add_node(path)

        for path, specifiers in imports_by_file.items():
            for spec in specifiers:
                target = self.resolver.resolve(path, spec, known)
                if target is None:
                    continue
                if target not in known or target == path:
                    self.dropped_edges += 1
                    continue
                self.graph.add_edge(path, target, kind="import", specifier=spec)

        logger.debug(
            f"Dependency graph: {self.graph.number_of_nodes()} files, "
            f"{self.graph.number_of_edges()} edges, {self.dropped_edges} dangling dropped"
        )
        return self.graph

    def build_from_records(self, records: dict[str, FileRecord]) -> nx.DiGraph:
        return self.build({path: r.imports for path, r in records.items()}, records.keys())

    def imports_of(self, path: str) -> list[str]:
        if not self.graph.has_node(path):
            return []
        return sorted(self.graph.successors(path))

    def importers_of(self, path: str) -> list[str]:
        if not self.graph.has_node(path):
            return []
        return sorted(self.graph.predecessors(path))

    def build_forward_index(self) -> dict[str, set[str]]:
        return {n: set(self.graph.successors(n)) for n in self.graph.nodes}

    def build_reverse_index(self) -> dict[str, set[str]]:
        """Map each file to the set of files that import it."""
        reverse: dict[str, set[str]] = {}
        for src, dst in self.graph.edges:
            reverse.setdefault(dst, set()).add(src)
        return reverse

    def dependency_context(self, path: str) -> DependencyContext:
        return DependencyContext(imports=self.imports_of(path), importers=self.importers_of(path))


class DependencyIndex:
    """Async dependency lookups backed by the change store.

    The graph is rebuilt from stored records whenever their hashes change,
    so it always reflects the last persisted imports.
    """

    def __init__(self, store: ChangeStore, layout: ProjectLayout | None = None) -> None:
        self.store = store
        self.resolver = ImportResolver(layout)
        self._builders: dict[str, DependencyGraphBuilder] = {}
        self._fingerprints: dict[str, frozenset[tuple[str, str]]] = {}

    async def _builder_for(self, project_id: str) -> DependencyGraphBuilder:
        records = await self.store.get_file_records(project_id)
        fingerprint = frozenset((p, r.content_hash) for p, r in records.items())
        builder = self._builders.get(project_id)
        if builder is None or self._fingerprints.get(project_id) != fingerprint:
            builder = DependencyGraphBuilder(self.resolver)
            builder.build_from_records(records)
            self._builders[project_id] = builder
            self._fingerprints[project_id] = fingerprint
        return builder

    async def graph(self, project_id: str) -> nx.DiGraph:
        return (await self._builder_for(project_id)).graph

    async def build_reverse_index(self, project_id: str) -> dict[str, set[str]]:
        return (await self._builder_for(project_id)).build_reverse_index()

    async def get_dependency_context(self, project_id: str, path: str) -> DependencyContext:
        return (await self._builder_for(project_id)).dependency_context(path)

    async def get_dependency_contexts(
        self, project_id: str, targets: list[str]
    ) -> dict[str, DependencyContext]:
        """Contexts for several targets from a single store read."""
        builder = await self._builder_for(project_id)
        result: dict[str, DependencyContext] = {}
        for path in targets:
            if path and path not in result:
                result[path] = builder.dependency_context(path)
        return result

    def invalidate(self, project_id: str | None = None) -> None:
        if project_id is None:
            self._builders.clear()
            self._fingerprints.clear()
        else:
            self._builders.pop(project_id, None)
            self._fingerprints.pop(project_id, None)
