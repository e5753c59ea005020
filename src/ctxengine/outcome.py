"""Explicit outcome type for enrichment steps.

Each collaborator-backed step of context assembly returns an
``EnrichmentResult`` instead of silently swallowing failures, so the final
package can report which sections were degraded.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger("ctxengine.outcome")


class EnrichmentStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"  # partial or fallback value
    FAILED = "failed"  # section omitted


@dataclass
class EnrichmentResult(Generic[T]):
    """Ok(value) | Degraded(value, reason) | Failed(reason)."""

    status: EnrichmentStatus
    value: T | None = None
    reason: str = ""

    @classmethod
    def ok(cls, value: T) -> EnrichmentResult[T]:
        return cls(EnrichmentStatus.OK, value)

    @classmethod
    def degraded(cls, value: T, reason: str) -> EnrichmentResult[T]:
        return cls(EnrichmentStatus.DEGRADED, value, reason)

    @classmethod
    def failed(cls, reason: str) -> EnrichmentResult[T]:
        return cls(EnrichmentStatus.FAILED, None, reason)

    @property
    def is_ok(self) -> bool:
        return self.status == EnrichmentStatus.OK

    def unwrap_or(self, default: T) -> T:
        return self.value if self.value is not None else default


async def guarded(section: str, call: Awaitable[Any]) -> EnrichmentResult[Any]:
    """Await a collaborator call, turning any exception into a failed result."""
    try:
        value = await call
    except Exception as exc:
        logger.warning(f"{section} unavailable: {exc}")
        return EnrichmentResult.failed(f"{type(exc).__name__}: {exc}")
    return EnrichmentResult.ok(value)
