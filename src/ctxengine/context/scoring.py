"""Additive multi-signal relevance scoring.

Direct signals, in precedence order (each stacks on the previous ones):
  mentioned in prompt > selected file > recently modified > entry point >
  keyword overlap > frequently modified > memory importance > type affinity

A second pass then propagates smaller bonuses along the import graph:
files imported by a directly relevant file, and files importing one.
"""

from __future__ import annotations

import logging

from ctxengine.changes.models import FileRecord, FileType
from ctxengine.changes.store import ChangeStore
from ctxengine.config import EngineConfig
from ctxengine.context.models import FileScore
from ctxengine.graph.builder import DependencyContext, DependencyGraphBuilder
from ctxengine.graph.resolver import ImportResolver
from ctxengine.memory.models import ProjectMemory
from ctxengine.outcome import EnrichmentResult
from ctxengine.search.classifier import IntentAction, IntentClassification

logger = logging.getLogger("ctxengine.scoring")

# (intent action, file type) pairs that earn the type-affinity bonus
_TYPE_AFFINITY: dict[tuple[IntentAction, FileType], str] = {
    (IntentAction.STYLE, FileType.STYLE): "style file for style change",
    (IntentAction.DEBUG, FileType.PAGE): "page file for debugging",
}


def _basename(path: str) -> str:
    return path.rsplit("/", 1)[-1] or path


def apply_dependency_boosts(
    scores: list[FileScore],
    dependency_context: dict[str, DependencyContext],
    direct_weight: float = 0.8,
    reverse_weight: float = 0.6,
) -> None:
    """Boost direct dependencies and importers of each target file in place."""
    if not dependency_context:
        return
    by_path = {s.path: s for s in scores}
    for target, ctx in dependency_context.items():
        name = _basename(target)
        for dep in ctx.imports:
            entry = by_path.get(dep)
            if entry:
                entry.add(direct_weight, f"dependency of {name}")
        for importer in ctx.importers:
            entry = by_path.get(importer)
            if entry:
                entry.add(reverse_weight, f"imports {name}")


class RelevanceScorer:
    """Scores every file in a project against a classified request.

    Usage:
        scorer = RelevanceScorer(store)
        scores = await scorer.score("p1", files, "/src/App.tsx", [], intent, None)
    """

    def __init__(self, store: ChangeStore | None = None, config: EngineConfig | None = None) -> None:
        self.store = store
        self.config = config or EngineConfig()
        self.resolver = ImportResolver(self.config.layout)

    async def _load_records(self, project_id: str) -> EnrichmentResult[dict[str, FileRecord]]:
        if self.store is None:
            return EnrichmentResult.degraded({}, "no change store configured")
        try:
            return EnrichmentResult.ok(await self.store.get_file_records(project_id))
        except Exception as exc:
            logger.warning(f"Change store unavailable, scoring without history: {exc}")
            return EnrichmentResult.degraded({}, f"{type(exc).__name__}: {exc}")

    async def score(
        self,
        project_id: str,
        files: dict[str, str],
        selected_file: str | None,
        changed_files: list[str],
        intent: IntentClassification,
        project_memory: ProjectMemory | None = None,
    ) -> list[FileScore]:
        result = await self.score_with_status(
            project_id, files, selected_file, changed_files, intent, project_memory
        )
        return result.unwrap_or([])

    async def score_with_status(
        self,
        project_id: str,
        files: dict[str, str],
        selected_file: str | None,
        changed_files: list[str],
        intent: IntentClassification,
        project_memory: ProjectMemory | None = None,
    ) -> EnrichmentResult[list[FileScore]]:
        """Score files; degraded when history signals were unavailable."""
        loaded = await self._load_records(project_id)
        records = loaded.unwrap_or({})
        scores, direct = self._direct_pass(
            files, records, selected_file, changed_files, intent, project_memory
        )
        self._graph_pass(scores, direct, records, files)

        scores.sort(key=lambda s: s.score, reverse=True)
        if logger.isEnabledFor(logging.DEBUG):
            top = ", ".join(f"{_basename(s.path)}={s.score:.2f}" for s in scores[:5])
            logger.debug(f"Top scores: {top}")

        if loaded.is_ok:
            return EnrichmentResult.ok(scores)
        return EnrichmentResult.degraded(scores, loaded.reason)

    def _direct_pass(
        self,
        files: dict[str, str],
        records: dict[str, FileRecord],
        selected_file: str | None,
        changed_files: list[str],
        intent: IntentClassification,
        project_memory: ProjectMemory | None,
    ) -> tuple[list[FileScore], list[str]]:
        w = self.config.scoring
        entry_points = set(self.config.layout.entry_points)
        changed = set(changed_files)
        importance = project_memory.file_importance if project_memory else {}

        scores: list[FileScore] = []
        direct: list[str] = []

        for path, content in files.items():
            entry = FileScore(path=path)

            if intent.mentions(path):
                entry.add(w.mentioned_in_prompt, "mentioned in prompt")
                direct.append(path)

            if selected_file and path == selected_file:
                entry.add(w.selected_file, "currently selected")
                if path not in direct:
                    direct.append(path)

            if path in changed:
                entry.add(w.recently_modified, "recently modified")

            if path in entry_points:
                entry.add(w.entry_point, "entry point")

            lower = content.lower()
            matched = [kw for kw in intent.keywords if kw in lower]
            if matched:
                entry.add(
                    w.keyword_match * min(len(matched) / w.keyword_saturation, 1.0),
                    f"keywords: {', '.join(matched[:3])}",
                )

            record = records.get(path)
            if record and record.modification_count > w.modification_count_threshold:
                entry.add(w.high_modification_count, "frequently modified")

            if importance.get(path):
                entry.add(importance[path] * w.memory_importance, "high importance")

            if record:
                reason = _TYPE_AFFINITY.get((intent.action, record.file_type))
                if reason:
                    entry.add(w.type_match, reason)

            scores.append(entry)

        return scores, direct

    def _graph_pass(
        self,
        scores: list[FileScore],
        direct: list[str],
        records: dict[str, FileRecord],
        files: dict[str, str],
    ) -> None:
        if not direct or not records:
            return
        w = self.config.scoring
        by_path = {s.path: s for s in scores}

        builder = DependencyGraphBuilder(self.resolver)
        builder.build(
            {path: r.imports for path, r in records.items()},
            set(records) | set(files),
        )

        # Files imported by a directly relevant file
        for path in direct:
            for target in builder.imports_of(path):
                entry = by_path.get(target)
                if entry:
                    entry.add(w.imported_by_relevant, f"imported by {_basename(path)}")

        # Files importing a directly relevant file
        reverse = builder.build_reverse_index()
        for path in direct:
            for importer in sorted(reverse.get(path, ())):
                entry = by_path.get(importer)
                if entry:
                    entry.add(w.reverse_dependency, f"imports {_basename(path)}")
