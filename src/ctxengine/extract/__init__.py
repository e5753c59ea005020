"""Lightweight structural extraction from source files."""

from ctxengine.extract.base import ComponentInfo, FunctionInfo, ImportInfo, SourceExtractor
from ctxengine.extract.patterns import PatternExtractor

__all__ = [
    "SourceExtractor",
    "PatternExtractor",
    "ImportInfo",
    "FunctionInfo",
    "ComponentInfo",
]
