"""Instruction analysis and semantic retrieval."""

from ctxengine.search.classifier import (
    IntentAction,
    IntentClassification,
    IntentClassifier,
    ResponseMode,
    ResponseModeRecommendation,
)
from ctxengine.search.enhancer import QueryEnhancer
from ctxengine.search.semantic import LocalSemanticIndex, SemanticSearch, SimilarFragment

__all__ = [
    "IntentAction",
    "IntentClassification",
    "IntentClassifier",
    "LocalSemanticIndex",
    "QueryEnhancer",
    "ResponseMode",
    "ResponseModeRecommendation",
    "SemanticSearch",
    "SimilarFragment",
]
