"""Token-budgeted context assembly.

Scores project files against an instruction, selects and outlines them
within the intent's token budget, and merges memory, task state, plans,
assets and conversation into a single package.

Usage:
    from ctxengine.context import ContextAssembler

    assembler = ContextAssembler(InMemoryChangeStore())
    package = await assembler.build("p1", "fix the score bug", files)
    print(package.render())
"""

from ctxengine.context.adaptive_weights import (
    AdaptiveWeightLearner,
    GenerationOutcome,
    HybridWeights,
    StaticWeightProvider,
    WeightAnalysis,
    WeightProvider,
    outcome_from_package,
)
from ctxengine.context.budget import TokenBudgetManager
from ctxengine.context.engine import ContextAssembler
from ctxengine.context.hybrid import HybridResult, HybridRetriever
from ctxengine.context.models import (
    Classification,
    ContextMode,
    ContextPackage,
    FileScore,
    PreflightEstimate,
    RelevantFile,
    StructuredPlan,
    TokenEstimator,
)
from ctxengine.context.outline import FileOutline, OutlineGenerator
from ctxengine.context.planner import format_plan, generate_plan
from ctxengine.context.scoring import RelevanceScorer, apply_dependency_boosts

__all__ = [
    "AdaptiveWeightLearner",
    "Classification",
    "ContextAssembler",
    "ContextMode",
    "ContextPackage",
    "FileOutline",
    "FileScore",
    "GenerationOutcome",
    "HybridResult",
    "HybridRetriever",
    "HybridWeights",
    "OutlineGenerator",
    "PreflightEstimate",
    "RelevanceScorer",
    "RelevantFile",
    "StaticWeightProvider",
    "StructuredPlan",
    "TokenBudgetManager",
    "TokenEstimator",
    "WeightAnalysis",
    "WeightProvider",
    "apply_dependency_boosts",
    "format_plan",
    "generate_plan",
    "outcome_from_package",
]
