"""Tests for hybrid retrieval, adaptive weights and enrichment outcomes."""

from __future__ import annotations

import numpy as np
import pytest

from ctxengine.config import AdaptiveConfig, HybridConfig
from ctxengine.context.adaptive_weights import (
    AdaptiveWeightLearner,
    GenerationOutcome,
    HybridWeights,
    StaticWeightProvider,
    outcome_from_package,
)
from ctxengine.context.hybrid import HybridRetriever, related_by_dependency
from ctxengine.context.models import ContextPackage, FileScore, RelevantFile
from ctxengine.graph.builder import DependencyContext
from ctxengine.outcome import EnrichmentResult, EnrichmentStatus, guarded
from ctxengine.search.semantic import SemanticSearch, SimilarFragment


class FakeSemantic(SemanticSearch):
    def __init__(self, fragments: list[SimilarFragment] | None = None, error: Exception | None = None):
        self.fragments = fragments or []
        self.error = error
        self.queries: list[str] = []

    async def embed_query(self, text: str) -> np.ndarray:
        self.queries.append(text)
        return np.zeros(4)

    async def search_similar(self, project_id, vector, limit=10, threshold=0.4):
        if self.error:
            raise self.error
        return self.fragments[:limit]


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _keyword_scores() -> list[FileScore]:
    return [
        FileScore("/src/App.tsx", 2.0, ["entry point", "recently modified"]),
        FileScore("/src/lib/math.ts", 1.0, ["keywords: clamp"]),
    ]


def _outcome(accuracy: float, missed: list[str] | None = None, project_id: str = "p1") -> GenerationOutcome:
    return GenerationOutcome(
        project_id=project_id,
        selection_accuracy=accuracy,
        files_selected=["/src/App.tsx"],
        files_modified=["/src/App.tsx"] + (missed or []),
        missed_files=missed or [],
    )


class TestOutcome:
    def test_constructors(self):
        assert EnrichmentResult.ok(3).is_ok
        degraded = EnrichmentResult.degraded([], "no store")
        assert degraded.status == EnrichmentStatus.DEGRADED
        assert degraded.reason == "no store"
        assert EnrichmentResult.failed("boom").unwrap_or("fallback") == "fallback"

    @pytest.mark.asyncio
    async def test_guarded_ok(self):
        async def fetch():
            return {"a": 1}

        result = await guarded("memory", fetch())
        assert result.is_ok
        assert result.value == {"a": 1}

    @pytest.mark.asyncio
    async def test_guarded_failure(self):
        async def fetch():
            raise TimeoutError("too slow")

        result = await guarded("memory", fetch())
        assert result.status == EnrichmentStatus.FAILED
        assert result.reason == "TimeoutError: too slow"
        assert result.value is None


class TestRelatedByDependency:
    def test_first_relation_wins(self):
        related = related_by_dependency(
            {
                "/src/App.tsx": DependencyContext(imports=["/src/pages/Index.tsx"]),
                "/src/lib/math.ts": DependencyContext(importers=["/src/pages/Index.tsx"]),
            },
            0.8,
            0.6,
        )
        assert related == {"/src/pages/Index.tsx": (0.8, "dependency of App.tsx")}


class TestHybridRetriever:
    @pytest.mark.asyncio
    async def test_blends_scores(self):
        semantic = FakeSemantic(
            [SimilarFragment("/src/lib/math.ts", 0.8), SimilarFragment("/src/new.ts", 0.6)]
        )
        retriever = HybridRetriever(semantic)
        result = await retriever.retrieve(
            "p1",
            "clamp the value",
            _keyword_scores(),
            dependency_context={"/src/App.tsx": DependencyContext(imports=["/src/pages/Index.tsx"])},
        )

        assert result.is_ok
        hybrid = result.value
        assert hybrid.used_semantic
        by_path = {s.path: s for s in hybrid.scores}

        assert [s.path for s in hybrid.scores] == [
            "/src/pages/Index.tsx",
            "/src/App.tsx",
            "/src/lib/math.ts",
            "/src/new.ts",
        ]
        assert by_path["/src/App.tsx"].score == pytest.approx(0.2 + 0.25)
        assert by_path["/src/lib/math.ts"].score == pytest.approx(0.8 * 0.4 + 0.5 * 0.2)
        assert "semantic: 80%" in by_path["/src/lib/math.ts"].reasons
        assert by_path["/src/new.ts"].reasons == ["semantic match: 60%"]
        assert by_path["/src/pages/Index.tsx"].reasons == ["dependency of App.tsx"]

    @pytest.mark.asyncio
    async def test_query_is_enhanced(self):
        semantic = FakeSemantic()
        await HybridRetriever(semantic).retrieve(
            "p1", "fix the bug", _keyword_scores(), selected_file="/src/components/Player.tsx"
        )
        assert "(in Player)" in semantic.queries[0]

    @pytest.mark.asyncio
    async def test_no_matches_keeps_keyword_scores(self):
        scores = _keyword_scores()
        result = await HybridRetriever(FakeSemantic()).retrieve("p1", "anything", scores)
        assert result.is_ok
        assert not result.value.used_semantic
        assert result.value.scores is scores

    @pytest.mark.asyncio
    async def test_failure_degrades(self):
        scores = _keyword_scores()
        retriever = HybridRetriever(FakeSemantic(error=ConnectionError("vector db down")))
        result = await retriever.retrieve("p1", "anything", scores)

        assert result.status == EnrichmentStatus.DEGRADED
        assert "ConnectionError" in result.reason
        assert result.value.scores is scores
        assert not result.value.used_semantic

    @pytest.mark.asyncio
    async def test_unavailable(self):
        assert not HybridRetriever(None).available
        assert not HybridRetriever(FakeSemantic(), config=HybridConfig(enabled=False)).available

        result = await HybridRetriever(None).retrieve("p1", "anything", _keyword_scores())
        assert result.status == EnrichmentStatus.DEGRADED

    @pytest.mark.asyncio
    async def test_uses_weight_provider(self):
        weights = HybridWeights(semantic=0.6, keyword=0.1, recency=0.2, importance=0.1)
        retriever = HybridRetriever(
            FakeSemantic([SimilarFragment("/src/lib/math.ts", 0.5)]),
            StaticWeightProvider(weights),
        )
        result = await retriever.retrieve("p1", "clamp", _keyword_scores())
        math = next(s for s in result.value.scores if s.path == "/src/lib/math.ts")
        assert math.score == pytest.approx(0.5 * 0.6 + 0.5 * 0.1)
        assert result.value.weights == weights


class TestOutcomeFromPackage:
    def _package(self) -> ContextPackage:
        return ContextPackage(
            relevant_files=[
                RelevantFile(path=p, content="", relevance_score=1.0, relevance_reason="")
                for p in ("/src/App.tsx", "/src/lib/math.ts")
            ]
        )

    def test_recall_of_modified_files(self):
        outcome = outcome_from_package("p1", self._package(), ["/src/App.tsx", "/src/pages/Index.tsx"])
        assert outcome.selection_accuracy == 0.5
        assert outcome.missed_files == ["/src/pages/Index.tsx"]
        assert outcome.files_selected == ["/src/App.tsx", "/src/lib/math.ts"]

    def test_nothing_modified(self):
        assert outcome_from_package("p1", self._package(), []).selection_accuracy == 1.0


class TestAdaptiveWeightLearner:
    @pytest.mark.asyncio
    async def test_defaults_below_minimum(self):
        learner = AdaptiveWeightLearner()
        for _ in range(9):
            learner.record_outcome(_outcome(0.0, ["/src/pages/Index.tsx"]))
        analysis = await learner.get_weights("p1")
        assert analysis.weights == HybridWeights()
        assert analysis.confidence == 0.0
        assert analysis.sample_size == 9

    @pytest.mark.asyncio
    async def test_high_accuracy_keeps_defaults(self):
        learner = AdaptiveWeightLearner()
        for _ in range(10):
            learner.record_outcome(_outcome(1.0))
        analysis = await learner.get_weights("p1")
        assert analysis.weights == HybridWeights()
        assert analysis.confidence == 0.9

    @pytest.mark.asyncio
    async def test_failures_shift_weights(self):
        learner = AdaptiveWeightLearner()
        for _ in range(10):
            learner.record_outcome(_outcome(0.0, ["/src/pages/Index.tsx"]))
        analysis = await learner.get_weights("p1")
        w = analysis.weights

        defaults = HybridWeights()
        assert w.recency > defaults.recency
        assert w.importance > defaults.importance
        assert w.semantic < defaults.semantic
        assert w.semantic + w.keyword + w.recency + w.importance == pytest.approx(1.0, abs=0.01)
        assert analysis.confidence == pytest.approx(0.2)

    def test_weights_stay_in_bounds(self):
        learner = AdaptiveWeightLearner()
        weights = learner._adjust({"semantic": -5.0, "keyword": 5.0, "recency": 0.0, "importance": 0.0})
        total = 0.1 + 0.4 + 0.25 + 0.15
        assert weights.semantic == round(0.1 / total, 3)
        assert weights.keyword == round(0.4 / total, 3)

    @pytest.mark.asyncio
    async def test_cached_until_ttl(self):
        clock = FakeClock()
        learner = AdaptiveWeightLearner(clock=clock)
        learner.record_outcome(_outcome(1.0))

        assert (await learner.get_weights("p1")).sample_size == 1
        learner.record_outcome(_outcome(1.0))
        assert (await learner.get_weights("p1")).sample_size == -1

        clock.now = 301.0
        assert (await learner.get_weights("p1")).sample_size == 2

    @pytest.mark.asyncio
    async def test_clear_cache(self):
        learner = AdaptiveWeightLearner(clock=FakeClock())
        await learner.get_weights("p1")
        learner.clear_cache("p1")
        assert (await learner.get_weights("p1")).sample_size == 0

    def test_history_limit(self):
        learner = AdaptiveWeightLearner(AdaptiveConfig(history_limit=3))
        for _ in range(5):
            learner.record_outcome(_outcome(1.0))
        assert len(learner.outcomes("p1")) == 3

    def test_outcomes_across_projects(self):
        learner = AdaptiveWeightLearner()
        learner.record_outcome(_outcome(1.0, project_id="p1"))
        learner.record_outcome(_outcome(0.5, ["/src/x.ts"], project_id="p2"))
        assert len(learner.outcomes()) == 2
        assert learner.global_recommendation().sample_size == 2

    def test_diagnostics(self):
        learner = AdaptiveWeightLearner()
        learner.record_outcome(_outcome(1.0))
        learner.record_outcome(_outcome(0.5, ["/src/x.ts"]))
        diag = learner.diagnostics("p1")
        assert diag["sample_size"] == 2
        assert diag["success_rate"] == 0.5
        assert len(diag["recent_outcomes"]) == 2
