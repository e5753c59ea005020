"""Per-project state with an explicit lifecycle.

A ``ProjectScope`` owns the tracker and dependency index for one project.
Scopes are created on first use by ``ProjectRegistry.open`` and disposed
by ``close``; nothing is kept in module-level state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ctxengine.changes.store import ChangeStore
from ctxengine.changes.tracker import ChangeTracker
from ctxengine.config import EngineConfig
from ctxengine.extract import PatternExtractor, SourceExtractor
from ctxengine.graph.builder import DependencyIndex
from ctxengine.search.semantic import LocalSemanticIndex

logger = logging.getLogger("ctxengine.scope")


@dataclass
class ProjectScope:
    project_id: str
    tracker: ChangeTracker
    dependencies: DependencyIndex


class ProjectRegistry:
    """Creates and disposes project scopes.

    Usage:
        registry = ProjectRegistry(store)
        scope = registry.open("p1")
        changes = await scope.tracker.diff("p1", files)
        registry.close("p1")
    """

    def __init__(
        self,
        store: ChangeStore,
        config: EngineConfig | None = None,
        extractor: SourceExtractor | None = None,
        semantic_index: LocalSemanticIndex | None = None,
    ) -> None:
        self.store = store
        self.config = config or EngineConfig()
        self.extractor = extractor or PatternExtractor()
        self.semantic_index = semantic_index
        self._scopes: dict[str, ProjectScope] = {}

    def open(self, project_id: str) -> ProjectScope:
        scope = self._scopes.get(project_id)
        if scope is None:
            scope = ProjectScope(
                project_id=project_id,
                tracker=ChangeTracker(self.store, self.extractor),
                dependencies=DependencyIndex(self.store, self.config.layout),
            )
            self._scopes[project_id] = scope
            logger.debug(f"Opened scope for {project_id}")
        return scope

    def is_open(self, project_id: str) -> bool:
        return project_id in self._scopes

    def close(self, project_id: str) -> None:
        scope = self._scopes.pop(project_id, None)
        if scope is None:
            return
        scope.dependencies.invalidate()
        if self.semantic_index is not None:
            self.semantic_index.drop_project(project_id)
        logger.debug(f"Closed scope for {project_id}")

    def close_all(self) -> None:
        for project_id in list(self._scopes):
            self.close(project_id)

    @property
    def open_projects(self) -> list[str]:
        return sorted(self._scopes)
