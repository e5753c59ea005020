"""Learn hybrid retrieval weights from generation outcomes.

Each generation that used a context package can be scored afterwards by
comparing the files it selected with the files the generator actually
modified. Once a project has enough outcomes, the blending weights are
nudged towards whatever signal the failures were missing:

  missed files look recent       -> recency up, semantic down
  missed files look important    -> importance up, keyword down
  failures are very inaccurate   -> keyword up, semantic down

Weights are clamped to per-signal bounds and renormalised to sum to 1.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from ctxengine.config import AdaptiveConfig, HybridConfig

if TYPE_CHECKING:
    from ctxengine.context.models import ContextPackage

logger = logging.getLogger("ctxengine.adaptive")

# (min, max) per signal before renormalisation
_BOUNDS = {
    "semantic": (0.1, 0.6),
    "keyword": (0.1, 0.4),
    "recency": (0.1, 0.4),
    "importance": (0.05, 0.3),
}

_IMPORTANT_MARKERS = ("/pages/", "Index.tsx", "Game", "Main")


class HybridWeights(BaseModel):
    semantic: float = 0.4
    keyword: float = 0.2
    recency: float = 0.25
    importance: float = 0.15

    @classmethod
    def from_config(cls, config: HybridConfig) -> HybridWeights:
        return cls(
            semantic=config.semantic_weight,
            keyword=config.keyword_weight,
            recency=config.recency_weight,
            importance=config.importance_weight,
        )


class WeightAnalysis(BaseModel):
    weights: HybridWeights
    confidence: float = 0.0
    sample_size: int = 0  # -1 when served from cache
    avg_accuracy: float = 0.0


class GenerationOutcome(BaseModel):
    """How well one package's file selection matched what was edited."""

    project_id: str
    selection_accuracy: float = Field(ge=0.0, le=1.0)
    files_selected: list[str] = Field(default_factory=list)
    files_modified: list[str] = Field(default_factory=list)
    missed_files: list[str] = Field(default_factory=list)
    context_mode: str = ""
    intent: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def outcome_from_package(
    project_id: str, package: ContextPackage, modified_files: list[str]
) -> GenerationOutcome:
    """Score a package against the files a generation actually modified.

    Accuracy is the share of modified files that were in the package.
    A generation that modified nothing counts as fully accurate.
    """
    selected = [f.path for f in package.relevant_files]
    selected_set = set(selected)
    missed = [p for p in modified_files if p not in selected_set]
    accuracy = 1.0 if not modified_files else 1 - len(missed) / len(modified_files)
    classification = package.classification
    return GenerationOutcome(
        project_id=project_id,
        selection_accuracy=accuracy,
        files_selected=selected,
        files_modified=list(modified_files),
        missed_files=missed,
        context_mode=package.context_mode.value,
        intent=classification.intent if classification else "",
    )


class WeightProvider(ABC):
    """Supplies blending weights for hybrid retrieval."""

    @abstractmethod
    async def get_weights(self, project_id: str) -> WeightAnalysis: ...


class StaticWeightProvider(WeightProvider):
    """Always returns the configured defaults."""

    def __init__(self, weights: HybridWeights | None = None) -> None:
        self.weights = weights or HybridWeights()

    async def get_weights(self, project_id: str) -> WeightAnalysis:
        return WeightAnalysis(weights=self.weights.model_copy())


class AdaptiveWeightLearner(WeightProvider):
    """Outcome store plus per-project weight analysis.

    Analyses are cached per project for ``cache_ttl_seconds``; recording a
    new outcome does not invalidate the cache, call ``clear_cache`` for that.

    Usage:
        learner = AdaptiveWeightLearner()
        learner.record_outcome(outcome_from_package("p1", package, ["/src/App.tsx"]))
        analysis = await learner.get_weights("p1")
    """

    def __init__(
        self,
        config: AdaptiveConfig | None = None,
        defaults: HybridWeights | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or AdaptiveConfig()
        self.defaults = defaults or HybridWeights()
        self._clock = clock
        self._outcomes: dict[str, list[GenerationOutcome]] = {}
        self._cache: dict[str, tuple[WeightAnalysis, float]] = {}

    # -- Outcomes ----------------------------------------------------------

    def record_outcome(self, outcome: GenerationOutcome) -> None:
        history = self._outcomes.setdefault(outcome.project_id, [])
        history.append(outcome)
        del history[: -self.config.history_limit]

    def outcomes(self, project_id: str | None = None) -> list[GenerationOutcome]:
        """Most recent first, across all projects when ``project_id`` is None."""
        if project_id is None:
            merged = [o for history in self._outcomes.values() for o in history]
        else:
            merged = list(self._outcomes.get(project_id, []))
        merged.sort(key=lambda o: o.created_at, reverse=True)
        return merged[: self.config.history_limit]

    def clear_cache(self, project_id: str | None = None) -> None:
        if project_id is None:
            self._cache.clear()
        else:
            self._cache.pop(project_id, None)

    # -- Weights -----------------------------------------------------------

    async def get_weights(self, project_id: str) -> WeightAnalysis:
        cached = self._cache.get(project_id)
        now = self._clock()
        if cached and now - cached[1] < self.config.cache_ttl_seconds:
            analysis = cached[0]
            return WeightAnalysis(
                weights=analysis.weights.model_copy(),
                confidence=analysis.confidence,
                sample_size=-1,
                avg_accuracy=-1,
            )

        analysis = self.analyze(self.outcomes(project_id))
        self._cache[project_id] = (analysis, now)
        return analysis

    def global_recommendation(self) -> WeightAnalysis:
        return self.analyze(self.outcomes())

    def analyze(self, outcomes: list[GenerationOutcome]) -> WeightAnalysis:
        cfg = self.config
        n = len(outcomes)
        avg = sum(o.selection_accuracy for o in outcomes) / n if n else 0.0

        if n < cfg.min_outcomes:
            logger.debug(f"Insufficient outcomes ({n}/{cfg.min_outcomes}), using defaults")
            return WeightAnalysis(weights=self.defaults.model_copy(), sample_size=n, avg_accuracy=avg)

        if avg >= cfg.high_accuracy:
            logger.debug(f"High accuracy ({avg:.1%}), keeping default weights")
            return WeightAnalysis(
                weights=self.defaults.model_copy(), confidence=0.9, sample_size=n, avg_accuracy=avg
            )

        unsuccessful = [o for o in outcomes if o.selection_accuracy < cfg.success_threshold]
        weights = self._adjust(self._deltas(unsuccessful))
        confidence = min(0.9, n / 50)
        logger.info(f"Adapted weights {weights.model_dump()} (confidence {confidence:.0%})")
        return WeightAnalysis(weights=weights, confidence=confidence, sample_size=n, avg_accuracy=avg)

    def _deltas(self, unsuccessful: list[GenerationOutcome]) -> dict[str, float]:
        deltas = {"semantic": 0.0, "keyword": 0.0, "recency": 0.0, "importance": 0.0}
        if not unsuccessful:
            return deltas

        missed = [f for o in unsuccessful for f in o.missed_files]
        if missed:
            # Every missed file is treated as potentially recent; no timestamps are kept
            recent_rate = 1.0
            important_rate = sum(
                1 for f in missed if any(m in f for m in _IMPORTANT_MARKERS)
            ) / len(missed)
        else:
            recent_rate = important_rate = 0.0

        if recent_rate > self.config.miss_rate_trigger:
            deltas["recency"] = 0.1
            deltas["semantic"] = -0.05
        if important_rate > self.config.miss_rate_trigger:
            deltas["importance"] = 0.1
            deltas["keyword"] = -0.05

        avg_failed = sum(o.selection_accuracy for o in unsuccessful) / len(unsuccessful)
        if avg_failed < self.config.low_accuracy:
            deltas["keyword"] += 0.1
            deltas["semantic"] -= 0.1
        return deltas

    def _adjust(self, deltas: dict[str, float]) -> HybridWeights:
        base = self.defaults.model_dump()
        clamped = {
            name: max(lo, min(hi, base[name] + deltas[name]))
            for name, (lo, hi) in _BOUNDS.items()
        }
        total = sum(clamped.values())
        return HybridWeights(**{name: round(v / total, 3) for name, v in clamped.items()})

    def diagnostics(self, project_id: str, recent: int = 10) -> dict:
        outcomes = self.outcomes(project_id)[:20]
        analysis = self.analyze(self.outcomes(project_id))
        success = [o for o in outcomes if o.selection_accuracy >= self.config.success_threshold]
        return {
            "weights": analysis.weights.model_dump(),
            "confidence": analysis.confidence,
            "sample_size": analysis.sample_size,
            "avg_accuracy": analysis.avg_accuracy,
            "success_rate": len(success) / len(outcomes) if outcomes else 0.0,
            "recent_outcomes": [
                {
                    "accuracy": o.selection_accuracy,
                    "files_selected": len(o.files_selected),
                    "files_modified": len(o.files_modified),
                    "missed": len(o.missed_files),
                }
                for o in outcomes[:recent]
            ],
        }
