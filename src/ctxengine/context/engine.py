"""Context assembly.

Per request:
  1. Classify the instruction (action, keywords, mentioned files)
  2. Pick a mode: minimal for trivial tweaks, outline for explanations,
     full otherwise
  3. Score every file, boost the neighbours of the selected and changed
     files, and blend in semantic similarity when a search collaborator
     is configured
  4. Fill the intent's token budget best-first, outlining large files and
     letting must-include files overrun
  5. Merge project memory, the task ledger, a structured plan, the asset
     manifest and the conversation, then total the per-section estimates

Collaborator failures never abort a request. Every enrichment step yields
an ``EnrichmentResult`` and the package's classification records which
sections were degraded.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from typing import Any

from ctxengine.changes.scope import ProjectRegistry
from ctxengine.changes.store import ChangeStore
from ctxengine.config import EngineConfig
from ctxengine.context.adaptive_weights import WeightProvider
from ctxengine.context.budget import TokenBudgetManager
from ctxengine.context.hybrid import HybridResult, HybridRetriever
from ctxengine.context.models import (
    Classification,
    ContextMode,
    ContextPackage,
    PreflightEstimate,
    RelevantFile,
    TokenEstimator,
)
from ctxengine.context.outline import OutlineGenerator
from ctxengine.context.planner import format_plan, generate_plan
from ctxengine.context.scoring import RelevanceScorer, apply_dependency_boosts
from ctxengine.extract import PatternExtractor, SourceExtractor
from ctxengine.memory.formatting import (
    format_asset_manifest,
    format_asset_manifest_compact,
    format_task_context,
)
from ctxengine.memory.models import (
    ConversationMessage,
    ConversationSummary,
    ProjectMemory,
)
from ctxengine.memory.providers import (
    AssetProvider,
    ProjectMemoryProvider,
    SummaryProvider,
    TaskLedgerProvider,
)
from ctxengine.outcome import EnrichmentResult, EnrichmentStatus, guarded
from ctxengine.search.classifier import IntentClassification, IntentClassifier
from ctxengine.search.semantic import LocalSemanticIndex, SemanticSearch

logger = logging.getLogger("ctxengine.context")

MessageLike = ConversationMessage | dict[str, Any] | tuple[str, str]


def _to_messages(history: Iterable[MessageLike]) -> list[ConversationMessage]:
    messages = []
    for item in history:
        if isinstance(item, ConversationMessage):
            messages.append(item)
        elif isinstance(item, dict):
            messages.append(ConversationMessage.model_validate(item))
        else:
            role, content = item
            messages.append(ConversationMessage(role=role, content=content))
    return messages


class _Sections:
    """Collects the status of each enrichment step for one request."""

    def __init__(self) -> None:
        self.status: dict[str, EnrichmentStatus] = {}

    def record(self, name: str, result: EnrichmentResult) -> EnrichmentResult:
        self.status[name] = result.status
        if not result.is_ok and result.reason:
            logger.info(f"Section {name} {result.status.value}: {result.reason}")
        return result

    def classification(
        self, intent: IntentClassification, mode: ContextMode, used_semantic: bool
    ) -> Classification:
        return Classification(
            intent=intent.action.value,
            mode=mode,
            used_semantic_search=used_semantic,
            confidence=intent.confidence,
            sections={k: v.value for k, v in self.status.items()},
            degraded=[k for k, v in self.status.items() if v != EnrichmentStatus.OK],
        )


class ContextAssembler:
    """Builds token-budgeted context packages for edit requests.

    Only the change store is required. Every other collaborator is optional
    and its section is simply left out when absent.

    Usage:
        assembler = ContextAssembler(store, semantic=index, weights=learner)
        package = await assembler.build("p1", "fix the score bug", files)
        prompt_context = package.render()
    """

    def __init__(
        self,
        store: ChangeStore,
        config: EngineConfig | None = None,
        semantic: SemanticSearch | None = None,
        weights: WeightProvider | None = None,
        memory: ProjectMemoryProvider | None = None,
        ledger: TaskLedgerProvider | None = None,
        assets: AssetProvider | None = None,
        summaries: SummaryProvider | None = None,
        extractor: SourceExtractor | None = None,
        registry: ProjectRegistry | None = None,
    ) -> None:
        self.store = store
        self.config = config or EngineConfig()
        self.extractor = extractor or PatternExtractor()
        self.registry = registry or ProjectRegistry(
            store,
            self.config,
            self.extractor,
            semantic if isinstance(semantic, LocalSemanticIndex) else None,
        )

        self.estimator = TokenEstimator(self.config.budgets.chars_per_token)
        self.classifier = IntentClassifier()
        self.outliner = OutlineGenerator(self.config.outline, self.extractor, self.estimator)
        self.budget = TokenBudgetManager(self.config, self.outliner, self.estimator)
        self.scorer = RelevanceScorer(store, self.config)
        self.retriever = HybridRetriever(
            semantic, weights, self.config.hybrid, self.config.scoring
        )

        self.memory = memory
        self.ledger = ledger
        self.assets = assets
        self.summaries = summaries

    def close_project(self, project_id: str) -> None:
        self.registry.close(project_id)

    def preflight(
        self,
        prompt: str,
        files: dict[str, str],
        selected_file: str | None = None,
        conversation_history: Iterable[MessageLike] = (),
        project_memory: ProjectMemory | None = None,
    ) -> PreflightEstimate:
        return self.budget.preflight(
            prompt, files, selected_file, _to_messages(conversation_history), project_memory
        )

    async def build(
        self,
        project_id: str,
        prompt: str,
        files: dict[str, str],
        selected_file: str | None = None,
        conversation_history: Iterable[MessageLike] = (),
        changed_files: list[str] | None = None,
        project_memory: ProjectMemory | None = None,
        conversation_summaries: list[ConversationSummary] | None = None,
    ) -> ContextPackage:
        start = time.time()
        intent = self.classifier.classify(prompt)
        mode = self.budget.select_mode(intent)
        history = _to_messages(conversation_history)
        sections = _Sections()

        logger.info(
            f"Intent: {intent.action.value} (confidence {intent.confidence:.2f}), "
            f"trivial: {intent.is_trivial_change}, mode: {mode.value}"
        )

        if project_memory is None and self.memory is not None:
            result = sections.record(
                "memory", await guarded("memory", self.memory.get_project_memory(project_id))
            )
            project_memory = result.value

        if mode == ContextMode.MINIMAL:
            package = self._build_minimal(prompt, files, selected_file, history, project_memory)
            package.classification = sections.classification(intent, mode, False)
        else:
            package = await self._build_ranked(
                project_id, prompt, files, selected_file, history, changed_files,
                project_memory, conversation_summaries, intent, mode, sections,
            )

        elapsed = (time.time() - start) * 1000
        logger.info(
            f"Built {mode.value} context: {len(package.relevant_files)} files, "
            f"~{package.estimated_tokens}/{package.token_budget} tokens in {elapsed:.1f}ms"
        )
        return package

    # -- Minimal mode ------------------------------------------------------

    def _build_minimal(
        self,
        prompt: str,
        files: dict[str, str],
        selected_file: str | None,
        history: list[ConversationMessage],
        project_memory: ProjectMemory | None,
    ) -> ContextPackage:
        main = self.config.layout.main_entry
        relevant: list[RelevantFile] = []

        if files.get(main):
            relevant.append(self._full_file(main, files[main], 1.0, "main game file"))
        if selected_file and selected_file != main and files.get(selected_file):
            relevant.append(
                self._full_file(selected_file, files[selected_file], 0.9, "currently selected")
            )

        sel = self.config.selection
        n_messages = sel.recent_messages.get("minimal", sel.default_recent_messages)
        package = ContextPackage(
            prompt=prompt,
            project_memory=project_memory.trimmed() if project_memory else None,
            recent_messages=history[-n_messages:] if n_messages else [],
            relevant_files=relevant,
            context_mode=ContextMode.MINIMAL,
            token_budget=self.config.budgets.tweak,
            overhead_tokens=self.config.budgets.fixed_overhead,
        )
        package.refresh_estimate(self.estimator)
        return package

    def _full_file(self, path: str, content: str, score: float, reason: str) -> RelevantFile:
        return RelevantFile(
            path=path,
            content=content,
            relevance_score=score,
            relevance_reason=reason,
            token_estimate=self.estimator.estimate(content),
        )

    # -- Outline / full mode -----------------------------------------------

    async def _build_ranked(
        self,
        project_id: str,
        prompt: str,
        files: dict[str, str],
        selected_file: str | None,
        history: list[ConversationMessage],
        changed_files: list[str] | None,
        project_memory: ProjectMemory | None,
        conversation_summaries: list[ConversationSummary] | None,
        intent: IntentClassification,
        mode: ContextMode,
        sections: _Sections,
    ) -> ContextPackage:
        scope = self.registry.open(project_id)

        if changed_files is None:
            result = sections.record(
                "changes", await guarded("changes", scope.tracker.diff(project_id, files))
            )
            changed_files = result.value.changed if result.value else []

        scored = sections.record(
            "scoring",
            await self.scorer.score_with_status(
                project_id, files, selected_file, changed_files, intent, project_memory
            ),
        )
        scores = scored.unwrap_or([])

        targets = list(dict.fromkeys(p for p in [selected_file, *changed_files] if p))
        dependency_context = {}
        if targets:
            result = sections.record(
                "dependencies",
                await guarded(
                    "dependencies",
                    scope.dependencies.get_dependency_contexts(project_id, targets),
                ),
            )
            dependency_context = result.unwrap_or({})
            apply_dependency_boosts(
                scores,
                dependency_context,
                self.config.scoring.direct_dependency,
                self.config.scoring.reverse_dependency,
            )
            scores.sort(key=lambda s: s.score, reverse=True)

        used_semantic = False
        if self.retriever.available:
            result = sections.record(
                "semantic",
                await self.retriever.retrieve(
                    project_id, prompt, scores, selected_file, changed_files, dependency_context
                ),
            )
            hybrid = result.unwrap_or(HybridResult(scores))
            scores = hybrid.scores
            used_semantic = hybrid.used_semantic

        relevant, file_tokens = self.budget.select_files(
            scores, files, intent, selected_file, mode
        )
        logger.debug(
            f"Budget {self.budget.budget_for(intent.action)} "
            f"({self.budget.file_budget(intent.action)} for files), used {file_tokens}"
        )

        n_messages = self.budget.recent_message_count(intent)
        recent = history[-n_messages:] if n_messages else []

        summary_texts: list[str] = []
        if not intent.is_trivial_change:
            if conversation_summaries is None and self.summaries is not None:
                result = sections.record(
                    "summaries",
                    await guarded("summaries", self.summaries.get_summaries(project_id)),
                )
                conversation_summaries = result.value
            ordered = sorted(conversation_summaries or [], key=lambda s: s.sequence_number)
            summary_texts = [s.summary_text for s in ordered]

        package = ContextPackage(
            prompt=prompt,
            project_memory=project_memory,
            conversation_summaries=summary_texts,
            recent_messages=recent,
            relevant_files=relevant,
            changed_since_last_request=list(changed_files),
            file_tree=sorted(files),
            context_mode=mode,
            token_budget=self.budget.budget_for(intent.action),
            overhead_tokens=self.config.budgets.fixed_overhead,
        )

        if self.ledger is not None:
            result = sections.record(
                "task_context",
                await guarded(
                    "task_context",
                    self.ledger.get_task_context(project_id, self.config.selection.task_deltas),
                ),
            )
            if result.value is not None:
                package.task_context = result.value
                package.task_context_text = format_task_context(result.value)

        plan = generate_plan(prompt, intent, files, project_memory, self.config.layout)
        if plan is not None:
            package.structured_plan = plan
            package.structured_plan_text = format_plan(plan)
            logger.debug(f"Plan: {len(plan.steps)} steps, complexity {plan.total_complexity}")

        if self.assets is not None:
            result = sections.record(
                "assets", await guarded("assets", self.assets.get_asset_manifest(project_id))
            )
            manifest = result.value
            if manifest is not None and manifest.total_count > 0:
                package.asset_manifest = manifest
                package.asset_manifest_text = (
                    format_asset_manifest_compact(manifest)
                    if intent.is_trivial_change
                    else format_asset_manifest(manifest)
                )

        package.refresh_estimate(self.estimator)
        package.classification = sections.classification(intent, mode, used_semantic)
        return package
