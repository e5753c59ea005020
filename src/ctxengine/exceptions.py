"""Custom exceptions for ctxengine."""


class CtxEngineError(Exception):
    """Base exception for all ctxengine errors."""


class ConfigError(CtxEngineError):
    """Configuration-related errors."""


class StoreError(CtxEngineError):
    """Change store read/write errors."""


class CollaboratorError(CtxEngineError):
    """Raised by an external collaborator (semantic search, memory, ledger...).

    The assembler catches these and records the section as degraded.
    """

    def __init__(self, collaborator: str, message: str):
        self.collaborator = collaborator
        super().__init__(f"{collaborator}: {message}")
