"""File-level dependency graph: import resolution and forward/reverse indexes."""

from ctxengine.graph.builder import DependencyContext, DependencyGraphBuilder, DependencyIndex
from ctxengine.graph.resolver import ImportResolver

__all__ = ["ImportResolver", "DependencyGraphBuilder", "DependencyIndex", "DependencyContext"]
