"""Data models for budgeted context assembly."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from ctxengine.memory.formatting import format_project_memory
from ctxengine.memory.models import (
    AssetManifest,
    ConversationMessage,
    ProjectMemory,
    TaskContext,
)


class ContextMode(str, Enum):
    """How much of the project goes into a package."""

    MINIMAL = "minimal"  # main entry + selected file only
    OUTLINE = "outline"  # compress nearly everything
    FULL = "full"  # rank and fill the budget


class TokenEstimator:
    """Estimate token counts with a fixed characters-per-token ratio."""

    def __init__(self, chars_per_token: float = 4.0) -> None:
        self.chars_per_token = chars_per_token

    def estimate(self, text: str) -> int:
        if not text:
            return 0
        return math.ceil(len(text) / self.chars_per_token)

    def estimate_many(self, texts: list[str], sep: str = "\n") -> int:
        return self.estimate(sep.join(texts))


@dataclass
class FileScore:
    """Transient relevance score for one file."""

    path: str
    score: float = 0.0
    reasons: list[str] = field(default_factory=list)
    semantic_score: float | None = None
    keyword_score: float | None = None

    def add(self, amount: float, reason: str) -> None:
        self.score += amount
        self.reasons.append(reason)


class RelevantFile(BaseModel):
    """A file selected into the package, in full or as an outline."""

    path: str
    content: str
    relevance_score: float
    relevance_reason: str
    is_outline: bool = False
    token_estimate: int = 0
    budget_override: bool = False  # included past the running budget


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------


class PlanStep(BaseModel):
    step_number: int
    description: str
    files: list[str] = Field(default_factory=list)
    operation: Literal["create", "modify", "delete", "move"] = "modify"
    complexity: int = Field(default=3, ge=1, le=5)
    depends_on: list[int] = Field(default_factory=list)


class StructuredPlan(BaseModel):
    goal: str
    steps: list[PlanStep] = Field(default_factory=list)
    total_complexity: int = 0
    affected_files: list[str] = Field(default_factory=list)
    execution_order: list[int] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Classification and estimates
# ---------------------------------------------------------------------------


class Classification(BaseModel):
    """Analytics block attached to every package."""

    intent: str
    mode: ContextMode
    used_semantic_search: bool = False
    confidence: float = 0.0
    sections: dict[str, str] = Field(default_factory=dict)  # section -> ok/degraded/failed
    degraded: list[str] = Field(default_factory=list)


class PreflightBreakdown(BaseModel):
    files: int = 0
    memory: int = 0
    conversation: int = 0
    task_context: int = 0
    reserved: int = 0


class PreflightEstimate(BaseModel):
    """Rough cost of a request, computed before assembling it."""

    estimated_tokens: int
    token_budget: int
    within_budget: bool
    recommended_mode: ContextMode
    breakdown: PreflightBreakdown
    files_to_include: int
    intent: str


# ---------------------------------------------------------------------------
# Package
# ---------------------------------------------------------------------------


class ContextPackage(BaseModel):
    """The complete context package handed to the generation layer."""

    prompt: str = ""
    project_memory: ProjectMemory | None = None
    task_context: TaskContext | None = None
    task_context_text: str = ""
    structured_plan: StructuredPlan | None = None
    structured_plan_text: str = ""
    asset_manifest: AssetManifest | None = None
    asset_manifest_text: str = ""
    conversation_summaries: list[str] = Field(default_factory=list)
    recent_messages: list[ConversationMessage] = Field(default_factory=list)
    relevant_files: list[RelevantFile] = Field(default_factory=list)
    changed_since_last_request: list[str] = Field(default_factory=list)
    file_tree: list[str] = Field(default_factory=list)
    context_mode: ContextMode = ContextMode.FULL
    token_budget: int = 0
    overhead_tokens: int = 0
    token_breakdown: dict[str, int] = Field(default_factory=dict)
    estimated_tokens: int = 0
    classification: Classification | None = None

    def refresh_estimate(self, estimator: TokenEstimator | None = None) -> int:
        """Recompute every section estimate and their sum.

        Must be called after any section changes.
        """
        est = estimator or TokenEstimator()
        memory_json = self.project_memory.model_dump_json() if self.project_memory else ""
        self.token_breakdown = {
            "files": sum(est.estimate(f.content) for f in self.relevant_files),
            "memory": est.estimate(memory_json),
            "summaries": est.estimate_many(self.conversation_summaries),
            "messages": est.estimate_many([m.content for m in self.recent_messages]),
            "task_context": est.estimate(self.task_context_text),
            "plan": est.estimate(self.structured_plan_text),
            "assets": est.estimate(self.asset_manifest_text),
            "overhead": self.overhead_tokens,
        }
        self.estimated_tokens = sum(self.token_breakdown.values())
        return self.estimated_tokens

    @property
    def file_tokens(self) -> int:
        return sum(f.token_estimate for f in self.relevant_files)

    @property
    def budget_used_pct(self) -> float:
        if not self.token_budget:
            return 0.0
        return 100.0 * self.estimated_tokens / self.token_budget

    def render(self, include_metadata: bool = True) -> str:
        """Render the package as prompt-ready text."""
        sections: list[str] = []

        if include_metadata:
            sections.append(f"# Project Context for: {self.prompt}")
            sections.append(
                f"# {len(self.relevant_files)} files, {self.context_mode.value} mode "
                f"(~{self.estimated_tokens:,} tokens, {self.budget_used_pct:.0f}% of budget)"
            )
            sections.append("")

        if self.project_memory:
            memory_text = format_project_memory(self.project_memory)
            if memory_text:
                sections += [memory_text, ""]

        for text in (self.task_context_text, self.structured_plan_text, self.asset_manifest_text):
            if text:
                sections += [text.rstrip(), ""]

        if self.conversation_summaries:
            sections.append("## Earlier Conversation")
            sections.extend(f"- {s}" for s in self.conversation_summaries)
            sections.append("")

        if self.recent_messages:
            sections.append("## Recent Messages")
            sections.extend(f"{m.role}: {m.content}" for m in self.recent_messages)
            sections.append("")

        if self.changed_since_last_request:
            sections.append("## Changed Since Last Request")
            sections.extend(f"- {p}" for p in self.changed_since_last_request)
            sections.append("")

        if self.file_tree:
            sections.append("## Project Files")
            sections.extend(self.file_tree)
            sections.append("")

        for f in self.relevant_files:
            sections.append(f"## {f.path}")
            if include_metadata and f.relevance_reason:
                sections.append(f"# Included because: {f.relevance_reason}")
            sections.append("```")
            sections.append(f.content)
            sections.append("```")
            sections.append("")

        return "\n".join(sections)

    def summary(self) -> str:
        """Human-readable summary of what's in the package."""
        lines = [
            f"Context package for: {self.prompt}",
            f"Mode: {self.context_mode.value}",
            f"Tokens: {self.estimated_tokens:,} / {self.token_budget:,} ({self.budget_used_pct:.0f}%)",
            f"Files: {len(self.relevant_files)} of {len(self.file_tree)}",
        ]
        if self.classification:
            c = self.classification
            lines.append(
                f"Intent: {c.intent} (confidence {c.confidence:.2f})"
                f"{', semantic search' if c.used_semantic_search else ''}"
            )
            if c.degraded:
                lines.append(f"Degraded: {', '.join(c.degraded)}")
        if self.token_breakdown:
            parts = ", ".join(f"{k}={v}" for k, v in self.token_breakdown.items() if v)
            lines.append(f"Breakdown: {parts}")
        lines += ["", "Included files:"]
        for f in self.relevant_files:
            marker = "~" if f.is_outline else ">"
            flag = " (over budget)" if f.budget_override else ""
            lines.append(
                f"  {marker} {f.path} score={f.relevance_score:.2f} ~{f.token_estimate}tok{flag}"
            )
            if f.relevance_reason:
                lines.append(f"    reason: {f.relevance_reason}")
        return "\n".join(lines)
