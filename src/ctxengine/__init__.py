"""ctxengine - token-budgeted context assembly for AI code generation."""

__version__ = "0.1.0"
