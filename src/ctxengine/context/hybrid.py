"""Hybrid retrieval: blend keyword scores with semantic similarity.

    final = semantic * Ws + keyword/max_keyword * Wk
            + recently_modified * Wr + high_importance * Wi
            + dependency_boost

Files reached only through semantic search or only through a dependency
of the selected/changed files are merged in rather than dropped. Any
collaborator failure falls back to the keyword scores unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ctxengine.config import HybridConfig, ScoringWeights
from ctxengine.context.adaptive_weights import (
    HybridWeights,
    StaticWeightProvider,
    WeightProvider,
)
from ctxengine.context.models import FileScore
from ctxengine.graph.builder import DependencyContext
from ctxengine.outcome import EnrichmentResult
from ctxengine.search.enhancer import QueryEnhancer
from ctxengine.search.semantic import SemanticSearch

logger = logging.getLogger("ctxengine.hybrid")


@dataclass
class HybridResult:
    scores: list[FileScore]
    used_semantic: bool = False
    weights: HybridWeights | None = None
    confidence: float = 0.0


def _basename(path: str) -> str:
    return path.rsplit("/", 1)[-1] or path


def related_by_dependency(
    dependency_context: dict[str, DependencyContext],
    direct_boost: float,
    reverse_boost: float,
) -> dict[str, tuple[float, str]]:
    """Map each neighbour of the targets to ``(boost, reason)``; first relation wins."""
    related: dict[str, tuple[float, str]] = {}
    for target, ctx in dependency_context.items():
        name = _basename(target)
        for dep in ctx.imports:
            related.setdefault(dep, (direct_boost, f"dependency of {name}"))
        for importer in ctx.importers:
            related.setdefault(importer, (reverse_boost, f"imports {name}"))
    return related


class HybridRetriever:
    """Augments keyword scores with an external semantic search collaborator.

    Usage:
        retriever = HybridRetriever(LocalSemanticIndex(), learner)
        result = await retriever.retrieve("p1", prompt, scores, selected, changed, deps)
        scores = result.unwrap_or(HybridResult(scores)).scores
    """

    def __init__(
        self,
        semantic: SemanticSearch | None = None,
        weights: WeightProvider | None = None,
        config: HybridConfig | None = None,
        scoring: ScoringWeights | None = None,
        enhancer: QueryEnhancer | None = None,
    ) -> None:
        self.config = config or HybridConfig()
        self.scoring = scoring or ScoringWeights()
        self.semantic = semantic
        self.weights = weights or StaticWeightProvider(HybridWeights.from_config(self.config))
        self.enhancer = enhancer or QueryEnhancer()

    @property
    def available(self) -> bool:
        return self.config.enabled and self.semantic is not None

    async def retrieve(
        self,
        project_id: str,
        prompt: str,
        scores: list[FileScore],
        selected_file: str | None = None,
        changed_files: list[str] | None = None,
        dependency_context: dict[str, DependencyContext] | None = None,
    ) -> EnrichmentResult[HybridResult]:
        """Never raises; on any failure the keyword scores come back unchanged."""
        if not self.available:
            return EnrichmentResult.degraded(
                HybridResult(scores), "semantic search not configured"
            )
        try:
            return EnrichmentResult.ok(
                await self._retrieve(
                    project_id, prompt, scores, selected_file,
                    changed_files or [], dependency_context or {},
                )
            )
        except Exception as exc:
            logger.warning(f"Hybrid retrieval failed, using keyword scores: {exc}")
            return EnrichmentResult.degraded(
                HybridResult(scores), f"{type(exc).__name__}: {exc}"
            )

    async def _retrieve(
        self,
        project_id: str,
        prompt: str,
        scores: list[FileScore],
        selected_file: str | None,
        changed_files: list[str],
        dependency_context: dict[str, DependencyContext],
    ) -> HybridResult:
        analysis = await self.weights.get_weights(project_id)
        w = analysis.weights
        logger.debug(
            f"Weights (confidence {analysis.confidence:.0%}): semantic={w.semantic}, "
            f"keyword={w.keyword}, recency={w.recency}, importance={w.importance}"
        )

        related = related_by_dependency(
            dependency_context, self.scoring.direct_dependency, self.scoring.reverse_dependency
        )

        query = self.enhancer.enhance(prompt, selected_file, changed_files)
        vector = await self.semantic.embed_query(query)
        fragments = await self.semantic.search_similar(
            project_id, vector, limit=self.config.limit, threshold=self.config.similarity_threshold
        )
        if not fragments:
            logger.debug("No semantic matches")
            return HybridResult(scores, False, w, analysis.confidence)

        similarity: dict[str, float] = {}
        for frag in fragments:
            similarity[frag.path] = max(similarity.get(frag.path, 0.0), frag.similarity)

        max_keyword = max([s.score for s in scores] + [1.0])
        combined: list[FileScore] = []
        for s in scores:
            keyword = s.score / max_keyword
            semantic = similarity.get(s.path, 0.0)
            dep = related.get(s.path)
            total = (
                semantic * w.semantic
                + keyword * w.keyword
                + (w.recency if "recently modified" in s.reasons else 0.0)
                + (w.importance if "high importance" in s.reasons else 0.0)
                + (dep[0] if dep else 0.0)
            )
            reasons = list(s.reasons)
            if semantic > 0:
                reasons.append(f"semantic: {semantic * 100:.0f}%")
            if dep:
                reasons.append(dep[1])
            combined.append(FileScore(s.path, total, reasons, semantic, keyword))

        seen = {s.path for s in combined}
        for path, sim in similarity.items():
            if path in seen:
                continue
            dep = related.get(path)
            reasons = [f"semantic match: {sim * 100:.0f}%"]
            if dep:
                reasons.append(dep[1])
            combined.append(
                FileScore(path, sim * w.semantic + (dep[0] if dep else 0.0), reasons, sim, 0.0)
            )
            seen.add(path)

        for path, (boost, reason) in related.items():
            if path not in seen:
                combined.append(FileScore(path, boost, [reason], 0.0, 0.0))
                seen.add(path)

        combined.sort(key=lambda s: s.score, reverse=True)
        logger.info(
            f"Hybrid retrieval: {len(fragments)} fragments over {len(similarity)} files, "
            f"{len(related)} dependency neighbours"
        )
        return HybridResult(combined, True, w, analysis.confidence)
