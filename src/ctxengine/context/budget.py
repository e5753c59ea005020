"""Token budgets, context mode selection and budgeted file selection."""

from __future__ import annotations

import logging

from ctxengine.config import EngineConfig
from ctxengine.context.models import (
    ContextMode,
    FileScore,
    PreflightBreakdown,
    PreflightEstimate,
    RelevantFile,
    TokenEstimator,
)
from ctxengine.context.outline import OutlineGenerator
from ctxengine.memory.models import ConversationMessage, ProjectMemory
from ctxengine.search.classifier import IntentAction, IntentClassification, IntentClassifier

logger = logging.getLogger("ctxengine.budget")

# Preflight estimates overshooting the budget by this factor switch to outlines
_OUTLINE_OVERSHOOT = 1.5


class TokenBudgetManager:
    """Maps intents to budgets and fills them with the best-scoring files.

    Budget containment: files selected without ``budget_override`` never
    add up to more than ``budget - reserved`` tokens. Only must-include
    files (main entry points, the selected file) may overrun, and only
    while fewer than ``must_include_cap`` files have been selected.

    Usage:
        budget = TokenBudgetManager()
        mode = budget.select_mode(intent)
        selected, tokens = budget.select_files(scores, files, intent, selected_file, mode)
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        outliner: OutlineGenerator | None = None,
        estimator: TokenEstimator | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.estimator = estimator or TokenEstimator(self.config.budgets.chars_per_token)
        self.outliner = outliner or OutlineGenerator(self.config.outline, estimator=self.estimator)

    # -- Budgets -----------------------------------------------------------

    def budget_for(self, action: IntentAction | str) -> int:
        return self.config.budgets.for_action(IntentAction(action).value)

    def file_budget(self, action: IntentAction | str) -> int:
        return max(self.budget_for(action) - self.config.budgets.reserved, 0)

    def max_files(self, action: IntentAction | str) -> int:
        sel = self.config.selection
        return sel.max_files.get(IntentAction(action).value, sel.default_max_files)

    # -- Mode --------------------------------------------------------------

    def select_mode(self, intent: IntentClassification) -> ContextMode:
        if intent.is_trivial_change or intent.action == IntentAction.TWEAK:
            return ContextMode.MINIMAL
        if intent.action == IntentAction.EXPLAIN:
            return ContextMode.OUTLINE
        return ContextMode.FULL

    def recent_message_count(self, intent: IntentClassification) -> int:
        sel = self.config.selection
        mode = self.select_mode(intent)
        if mode == ContextMode.MINIMAL:
            return sel.recent_messages.get("minimal", sel.default_recent_messages)
        return sel.recent_messages.get(intent.action.value, sel.default_recent_messages)

    def must_include(self, selected_file: str | None) -> set[str]:
        paths = set(self.config.layout.must_include)
        if selected_file:
            paths.add(selected_file)
        return paths

    # -- Selection ---------------------------------------------------------

    def select_files(
        self,
        scores: list[FileScore],
        files: dict[str, str],
        intent: IntentClassification,
        selected_file: str | None = None,
        mode: ContextMode | None = None,
    ) -> tuple[list[RelevantFile], int]:
        """Walk scores best-first, adding files while the budget allows.

        Returns the selected files and their total token estimate.
        """
        mode = mode or self.select_mode(intent)
        sel = self.config.selection
        file_budget = self.file_budget(intent.action)
        max_files = self.max_files(intent.action)
        must_include = self.must_include(selected_file)
        use_outlines = mode == ContextMode.OUTLINE

        selected: list[RelevantFile] = []
        used = 0

        for scored in scores:
            if scored.score <= 0:
                continue
            content = files.get(scored.path)
            if not content:
                continue

            is_must = scored.path in must_include
            keep_full = is_must or scored.score >= sel.full_content_threshold
            is_outline = False
            text = content
            if not keep_full and (
                use_outlines or len(content.split("\n")) > sel.large_file_lines
            ):
                text, is_outline, _ = self.outliner.content_or_outline(scored.path, content)

            tokens = self.estimator.estimate(text)
            fits = used + tokens <= file_budget
            # Must-include and high-confidence files may exceed the budget, up to the cap
            override = not fits and keep_full and len(selected) < sel.must_include_cap

            if fits or override:
                reason = ", ".join(scored.reasons[:3])
                if is_outline:
                    reason += " [outline]"
                if keep_full:
                    reason += " [full]"
                selected.append(
                    RelevantFile(
                        path=scored.path,
                        content=text,
                        relevance_score=min(scored.score, 1.0),
                        relevance_reason=reason,
                        is_outline=is_outline,
                        token_estimate=tokens,
                        budget_override=override,
                    )
                )
                used += tokens
                if override:
                    logger.info(f"Budget override for {scored.path} ({tokens} tokens)")

            if len(selected) >= max_files:
                break

        logger.debug(
            f"Selected {len(selected)} files, {used}/{file_budget} file tokens "
            f"for {intent.action.value}"
        )
        return selected, used

    # -- Preflight ---------------------------------------------------------

    def preflight(
        self,
        prompt: str,
        files: dict[str, str],
        selected_file: str | None = None,
        history: list[ConversationMessage] | None = None,
        memory: ProjectMemory | None = None,
        intent: IntentClassification | None = None,
    ) -> PreflightEstimate:
        """Estimate the cost of a request before building its context."""
        intent = intent or IntentClassifier().classify(prompt)
        sel = self.config.selection
        budget = self.budget_for(intent.action)

        if intent.is_trivial_change:
            count = sel.preflight_files.get("trivial", sel.default_preflight_files)
        else:
            count = sel.preflight_files.get(intent.action.value, sel.default_preflight_files)
        count = min(len(files), count)

        entry_points = set(self.config.layout.entry_points)

        def priority(path: str) -> int:
            if path == selected_file:
                return 0
            return 1 if path in entry_points else 2

        top = sorted(files, key=priority)[:count]
        files_tokens = self.estimator.estimate_many([files[p] for p in top], sep="")
        memory_tokens = self.estimator.estimate(memory.model_dump_json()) if memory else 0

        if intent.is_trivial_change:
            n_messages = sel.recent_messages.get("minimal", sel.default_recent_messages)
        else:
            n_messages = sel.recent_messages.get(intent.action.value, sel.default_recent_messages)
        recent = (history or [])[-n_messages:]
        conversation_tokens = self.estimator.estimate_many([m.content for m in recent], sep="")

        breakdown = PreflightBreakdown(
            files=files_tokens,
            memory=memory_tokens,
            conversation=conversation_tokens,
            task_context=sel.preflight_task_tokens,
            reserved=self.config.budgets.reserved,
        )
        total = (
            breakdown.files
            + breakdown.memory
            + breakdown.conversation
            + breakdown.task_context
            + breakdown.reserved
        )

        if self.select_mode(intent) == ContextMode.MINIMAL:
            mode = ContextMode.MINIMAL
        elif total > budget * _OUTLINE_OVERSHOOT:
            mode = ContextMode.OUTLINE
        else:
            mode = ContextMode.FULL

        return PreflightEstimate(
            estimated_tokens=total,
            token_budget=budget,
            within_budget=total <= budget,
            recommended_mode=mode,
            breakdown=breakdown,
            files_to_include=count,
            intent=intent.action.value,
        )
