"""Memory collaborators.

Each collaborator exposes one async read accessor used by the assembler.
The in-memory implementations also carry the write operations the rest of
an application would call between requests.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from ctxengine.memory.models import (
    Asset,
    AssetManifest,
    CompletedTask,
    ConversationSummary,
    KeyEntity,
    ProjectMemory,
    TaskContext,
    TaskDelta,
    TaskLedger,
    TaskSubstep,
)

logger = logging.getLogger("ctxengine.memory")

MAX_COMPLETED_TASKS = 50
IMPORTANCE_DECAY = 0.95
IMPORTANCE_FLOOR = 0.1
MODIFIED_BOOST = 0.3
SELECTED_BOOST = 0.2


class ProjectMemoryProvider(ABC):
    @abstractmethod
    async def get_project_memory(self, project_id: str) -> ProjectMemory | None: ...


class TaskLedgerProvider(ABC):
    @abstractmethod
    async def get_task_context(self, project_id: str, delta_limit: int = 3) -> TaskContext: ...


class AssetProvider(ABC):
    @abstractmethod
    async def get_asset_manifest(self, project_id: str) -> AssetManifest: ...


class SummaryProvider(ABC):
    @abstractmethod
    async def get_summaries(self, project_id: str) -> list[ConversationSummary]: ...


# ---------------------------------------------------------------------------
# In-memory implementations
# ---------------------------------------------------------------------------


class InMemoryProjectMemory(ProjectMemoryProvider):
    def __init__(self) -> None:
        self._memories: dict[str, ProjectMemory] = {}

    async def get_project_memory(self, project_id: str) -> ProjectMemory | None:
        memory = self._memories.get(project_id)
        return memory.model_copy(deep=True) if memory else None

    def _get_or_create(self, project_id: str) -> ProjectMemory:
        return self._memories.setdefault(project_id, ProjectMemory())

    async def upsert(self, project_id: str, **fields) -> ProjectMemory:
        memory = self._get_or_create(project_id)
        updated = memory.model_copy(update=fields)
        self._memories[project_id] = ProjectMemory.model_validate(updated.model_dump())
        return self._memories[project_id]

    async def add_completed_task(self, project_id: str, task: str) -> None:
        memory = self._get_or_create(project_id)
        memory.completed_tasks.insert(0, CompletedTask(task=task))
        del memory.completed_tasks[MAX_COMPLETED_TASKS:]

    async def add_key_entity(self, project_id: str, entity: KeyEntity) -> None:
        memory = self._get_or_create(project_id)
        memory.key_entities = [
            e for e in memory.key_entities if not (e.name == entity.name and e.file == entity.file)
        ]
        memory.key_entities.append(entity)

    async def update_file_importance(
        self,
        project_id: str,
        modified_files: list[str],
        selected_file: str | None = None,
    ) -> dict[str, float]:
        """Decay every score, then boost modified and selected files."""
        memory = self._get_or_create(project_id)
        importance = {
            path: score * IMPORTANCE_DECAY
            for path, score in memory.file_importance.items()
            if score * IMPORTANCE_DECAY >= IMPORTANCE_FLOOR
        }
        for path in modified_files:
            importance[path] = min(importance.get(path, 0.0) + MODIFIED_BOOST, 1.0)
        if selected_file:
            importance[selected_file] = min(importance.get(selected_file, 0.0) + SELECTED_BOOST, 1.0)
        memory.file_importance = importance
        return dict(importance)

    async def important_files(self, project_id: str, limit: int = 10) -> list[tuple[str, float]]:
        memory = self._memories.get(project_id)
        if not memory:
            return []
        ranked = sorted(memory.file_importance.items(), key=lambda kv: -kv[1])
        return ranked[:limit]

    async def reset(self, project_id: str) -> None:
        self._memories.pop(project_id, None)


class InMemoryTaskLedger(TaskLedgerProvider):
    def __init__(self) -> None:
        self._ledgers: dict[str, TaskLedger] = {}
        self._deltas: dict[str, list[TaskDelta]] = {}

    def _ledger(self, project_id: str) -> TaskLedger:
        return self._ledgers.setdefault(project_id, TaskLedger())

    async def get_task_ledger(self, project_id: str) -> TaskLedger:
        return self._ledger(project_id).model_copy(deep=True)

    async def get_task_context(self, project_id: str, delta_limit: int = 3) -> TaskContext:
        """Ledger plus the last ``delta_limit`` turns, oldest first."""
        return TaskContext(
            ledger=await self.get_task_ledger(project_id),
            recent_deltas=await self.recent_deltas(project_id, delta_limit),
        )

    async def set_goal(
        self, project_id: str, goal: str, substeps: list[str] | None = None
    ) -> None:
        """Start a new goal; clears previous substeps, blockers and state."""
        self._ledgers[project_id] = TaskLedger(
            current_goal=goal,
            substeps=[TaskSubstep(step=s) for s in substeps or []],
        )

    async def mark_substep_done(self, project_id: str, index: int) -> bool:
        ledger = self._ledger(project_id)
        if 0 <= index < len(ledger.substeps):
            ledger.substeps[index].done = True
            return True
        return False

    async def add_blocker(self, project_id: str, blocker: str) -> None:
        ledger = self._ledger(project_id)
        if blocker not in ledger.blockers:
            ledger.blockers.append(blocker)

    async def remove_blocker(self, project_id: str, blocker: str) -> None:
        ledger = self._ledger(project_id)
        if blocker in ledger.blockers:
            ledger.blockers.remove(blocker)

    async def clear_blockers(self, project_id: str) -> None:
        self._ledger(project_id).blockers = []

    async def set_state(self, project_id: str, state: str) -> None:
        self._ledger(project_id).last_known_state = state

    async def complete_goal(self, project_id: str) -> None:
        ledger = self._ledger(project_id)
        ledger.current_goal = None
        ledger.substeps = []
        ledger.blockers = []
        logger.info(f"Goal completed for {project_id}")

    async def next_turn_number(self, project_id: str) -> int:
        deltas = self._deltas.get(project_id, [])
        return deltas[-1].turn_number + 1 if deltas else 1

    async def record_delta(self, delta: TaskDelta) -> None:
        self._deltas.setdefault(delta.project_id, []).append(delta)

    async def record_turn(
        self,
        project_id: str,
        user_request: str,
        what_tried: str,
        what_changed: list[str],
        what_succeeded: str | None = None,
        what_failed: str | None = None,
        what_next: str | None = None,
        new_state: str | None = None,
    ) -> TaskDelta:
        delta = TaskDelta(
            project_id=project_id,
            turn_number=await self.next_turn_number(project_id),
            user_request=user_request,
            what_tried=what_tried,
            what_changed=what_changed,
            what_succeeded=what_succeeded,
            what_failed=what_failed,
            what_next=what_next,
        )
        await self.record_delta(delta)
        if new_state:
            await self.set_state(project_id, new_state)
        return delta

    async def recent_deltas(self, project_id: str, limit: int = 3) -> list[TaskDelta]:
        deltas = self._deltas.get(project_id, [])
        return [d.model_copy() for d in deltas[-limit:]] if limit > 0 else []


class InMemoryAssetLibrary(AssetProvider):
    def __init__(self) -> None:
        self._assets: dict[str, list[Asset]] = {}

    async def add_asset(self, project_id: str, asset: Asset) -> None:
        self._assets.setdefault(project_id, []).append(asset)

    async def remove_asset(self, project_id: str, asset_id: str) -> None:
        self._assets[project_id] = [
            a for a in self._assets.get(project_id, []) if a.id != asset_id
        ]

    async def get_asset_manifest(self, project_id: str) -> AssetManifest:
        return AssetManifest.from_assets(project_id, self._assets.get(project_id, []))
