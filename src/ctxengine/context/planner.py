"""Structured execution plans for multi-step requests.

Plans are a scaffold for the generator: numbered steps, the files each one
touches and how they depend on each other. No plan is produced for trivial
changes, tweaks or explanations.
"""

from __future__ import annotations

from ctxengine.config import ProjectLayout
from ctxengine.context.models import PlanStep, StructuredPlan
from ctxengine.memory.models import ProjectMemory
from ctxengine.search.classifier import IntentAction, IntentClassification

_GOAL_CHARS = 200

_SINGLE_STEP_ACTIONS = (
    IntentAction.MODIFY,
    IntentAction.REMOVE,
    IntentAction.STYLE,
    IntentAction.RENAME,
)


def _affected_files(
    files: dict[str, str],
    intent: IntentClassification,
    memory: ProjectMemory | None,
    layout: ProjectLayout,
) -> list[str]:
    """Entry points and files whose path contains a keyword, most important first."""
    importance = memory.file_importance if memory else {}
    entry_points = set(layout.entry_points)
    matched = [
        path
        for path in files
        if path in entry_points or any(kw in path.lower() for kw in intent.keywords)
    ]
    return sorted(matched, key=lambda p: -importance.get(p, 0.0))


def generate_plan(
    prompt: str,
    intent: IntentClassification,
    files: dict[str, str],
    memory: ProjectMemory | None = None,
    layout: ProjectLayout | None = None,
) -> StructuredPlan | None:
    if intent.is_trivial_change or intent.action in (IntentAction.TWEAK, IntentAction.EXPLAIN):
        return None

    layout = layout or ProjectLayout()
    affected = _affected_files(files, intent, memory, layout)
    targets = affected or [layout.main_entry]
    steps: list[PlanStep] = []

    if intent.action == IntentAction.CREATE:
        steps = [
            PlanStep(
                step_number=1,
                description="Set up base structure and types",
                files=[layout.main_entry],
                complexity=3,
            ),
            PlanStep(
                step_number=2,
                description="Implement core game logic",
                files=targets,
                complexity=4,
                depends_on=[1],
            ),
            PlanStep(
                step_number=3,
                description="Add styling and polish",
                files=[layout.stylesheet],
                complexity=2,
                depends_on=[2],
            ),
        ]
    elif intent.action == IntentAction.ADD:
        steps.append(
            PlanStep(step_number=1, description="Add feature implementation", files=targets)
        )
        if intent.is_visual_change:
            steps.append(
                PlanStep(
                    step_number=2,
                    description="Update styles for new feature",
                    files=[layout.stylesheet],
                    complexity=2,
                    depends_on=[1],
                )
            )
    elif intent.action == IntentAction.DEBUG:
        steps = [
            PlanStep(step_number=1, description="Identify and fix the issue", files=targets),
            PlanStep(
                step_number=2,
                description="Verify fix and add error handling",
                files=affected,
                complexity=2,
                depends_on=[1],
            ),
        ]
    elif intent.action in _SINGLE_STEP_ACTIONS:
        steps.append(
            PlanStep(
                step_number=1,
                description=f"{intent.action.value} requested changes",
                files=targets,
                operation="delete" if intent.action == IntentAction.REMOVE else "modify",
                complexity=2 if intent.action == IntentAction.STYLE else 3,
            )
        )

    affected_files = list(dict.fromkeys(f for step in steps for f in step.files))
    return StructuredPlan(
        goal=prompt[:_GOAL_CHARS],
        steps=steps,
        total_complexity=sum(s.complexity for s in steps),
        affected_files=affected_files,
        execution_order=[s.step_number for s in steps],
    )


def format_plan(plan: StructuredPlan) -> str:
    lines = ["## Execution Plan", f"Goal: {plan.goal}", "", "### Steps:"]
    for step in plan.steps:
        lines.append(f"{step.step_number}. {step.description}")
        lines.append(f"   Files: {', '.join(step.files)}")
        lines.append(f"   Operation: {step.operation}")
        if step.depends_on:
            lines.append(f"   After: step {', '.join(str(d) for d in step.depends_on)}")
        lines.append("")
    return "\n".join(lines)
