"""Tests for the memory collaborators, formatting and summarization."""

from __future__ import annotations

import pytest

from ctxengine.memory.formatting import (
    format_asset_manifest,
    format_asset_manifest_compact,
    format_file_size,
    format_project_memory,
    format_task_context,
)
from ctxengine.memory.models import (
    Asset,
    AssetCategory,
    AssetManifest,
    AssetType,
    ConversationMessage,
    KeyEntity,
    ProjectMemory,
    TaskContext,
    TaskLedger,
    TaskSubstep,
)
from ctxengine.memory.providers import (
    InMemoryAssetLibrary,
    InMemoryProjectMemory,
    InMemoryTaskLedger,
)
from ctxengine.memory.summarizer import (
    ConversationSummarizer,
    extract_completed_task,
    extract_user_action,
    summarize_messages,
)


def _hero(**kwargs) -> Asset:
    fields = dict(
        id="a1",
        name="hero",
        display_name="Hero",
        public_path="/assets/characters/hero.png",
        asset_type=AssetType.TWO_D,
        category=AssetCategory.CHARACTER,
        file_size=2048,
        width=64,
        height=64,
    )
    fields.update(kwargs)
    return Asset(**fields)


def _knight() -> Asset:
    return Asset(
        id="a2",
        name="knight",
        display_name="Knight",
        public_path="/assets/models/knight.glb",
        asset_type=AssetType.THREE_D,
        category=AssetCategory.MODEL,
        file_size=3 * 1024 * 1024,
        animations=["idle", "walk"],
    )


def _conversation(n: int) -> list[ConversationMessage]:
    messages = []
    for i in range(n):
        if i % 2 == 0:
            messages.append(ConversationMessage(role="user", content=f"add a pause menu number {i}"))
        else:
            messages.append(
                ConversationMessage(
                    role="assistant",
                    content=f"I've added pause menu {i}!\nSee /src/components/Menu{i}.tsx",
                )
            )
    return messages


class TestProjectMemory:
    def test_trimmed(self):
        memory = ProjectMemory(
            project_summary="A snake game",
            game_type="arcade",
            tech_stack=["react"],
            file_importance={"/src/App.tsx": 0.9},
            key_entities=[KeyEntity(name="Snake", type="component", file="/src/Snake.tsx")],
        )
        trimmed = memory.trimmed()
        assert trimmed.project_summary == "A snake game"
        assert trimmed.tech_stack == ["react"]
        assert trimmed.file_importance == {}
        assert trimmed.key_entities == []


class TestInMemoryProjectMemory:
    @pytest.mark.asyncio
    async def test_missing(self):
        assert await InMemoryProjectMemory().get_project_memory("p1") is None

    @pytest.mark.asyncio
    async def test_upsert_and_copy(self):
        provider = InMemoryProjectMemory()
        await provider.upsert("p1", project_summary="A snake game", tech_stack=["react"])

        memory = await provider.get_project_memory("p1")
        memory.tech_stack.append("vite")
        assert (await provider.get_project_memory("p1")).tech_stack == ["react"]

    @pytest.mark.asyncio
    async def test_completed_tasks_newest_first(self):
        provider = InMemoryProjectMemory()
        await provider.add_completed_task("p1", "Added score")
        await provider.add_completed_task("p1", "Added lives")
        memory = await provider.get_project_memory("p1")
        assert [t.task for t in memory.completed_tasks] == ["Added lives", "Added score"]

    @pytest.mark.asyncio
    async def test_key_entity_replaced(self):
        provider = InMemoryProjectMemory()
        await provider.add_key_entity("p1", KeyEntity(name="Snake", type="class", file="/src/Snake.ts"))
        await provider.add_key_entity("p1", KeyEntity(name="Snake", type="component", file="/src/Snake.ts"))
        memory = await provider.get_project_memory("p1")
        assert [e.type for e in memory.key_entities] == ["component"]

    @pytest.mark.asyncio
    async def test_file_importance_decay(self):
        provider = InMemoryProjectMemory()
        first = await provider.update_file_importance("p1", ["/src/App.tsx"], "/src/Board.tsx")
        assert first == {"/src/App.tsx": pytest.approx(0.3), "/src/Board.tsx": pytest.approx(0.2)}

        second = await provider.update_file_importance("p1", [])
        assert second["/src/App.tsx"] == pytest.approx(0.285)
        assert second["/src/Board.tsx"] == pytest.approx(0.19)

        ranked = await provider.important_files("p1", limit=1)
        assert ranked[0][0] == "/src/App.tsx"

    @pytest.mark.asyncio
    async def test_importance_capped_and_floored(self):
        provider = InMemoryProjectMemory()
        for _ in range(5):
            scores = await provider.update_file_importance("p1", ["/src/App.tsx"])
        assert scores["/src/App.tsx"] <= 1.0

        await provider.upsert("p1", file_importance={"/src/old.ts": 0.1})
        assert "/src/old.ts" not in await provider.update_file_importance("p1", [])


class TestInMemoryTaskLedger:
    @pytest.mark.asyncio
    async def test_goal_and_substeps(self):
        ledger = InMemoryTaskLedger()
        await ledger.set_goal("p1", "Add a pause menu", ["menu component", "wire keyboard"])
        assert await ledger.mark_substep_done("p1", 0)
        assert not await ledger.mark_substep_done("p1", 5)

        current = await ledger.get_task_ledger("p1")
        assert current.current_goal == "Add a pause menu"
        assert [s.done for s in current.substeps] == [True, False]

    @pytest.mark.asyncio
    async def test_blockers(self):
        ledger = InMemoryTaskLedger()
        await ledger.add_blocker("p1", "canvas is blank")
        await ledger.add_blocker("p1", "canvas is blank")
        assert (await ledger.get_task_ledger("p1")).blockers == ["canvas is blank"]
        await ledger.remove_blocker("p1", "canvas is blank")
        assert (await ledger.get_task_ledger("p1")).blockers == []

    @pytest.mark.asyncio
    async def test_complete_goal(self):
        ledger = InMemoryTaskLedger()
        await ledger.set_goal("p1", "Add a pause menu", ["menu"])
        await ledger.add_blocker("p1", "x")
        await ledger.set_state("p1", "menu renders")
        await ledger.complete_goal("p1")

        current = await ledger.get_task_ledger("p1")
        assert current.current_goal is None
        assert current.substeps == []
        assert current.last_known_state == "menu renders"

    @pytest.mark.asyncio
    async def test_turns_oldest_first(self):
        ledger = InMemoryTaskLedger()
        for i in range(5):
            await ledger.record_turn("p1", f"request {i}", "tried", ["/src/App.tsx"])

        context = await ledger.get_task_context("p1", delta_limit=3)
        assert [d.turn_number for d in context.recent_deltas] == [3, 4, 5]
        assert await ledger.recent_deltas("p1", 0) == []

    @pytest.mark.asyncio
    async def test_record_turn_sets_state(self):
        ledger = InMemoryTaskLedger()
        await ledger.record_turn("p1", "add menu", "new component", [], new_state="menu added")
        assert (await ledger.get_task_ledger("p1")).last_known_state == "menu added"


class TestAssets:
    @pytest.mark.asyncio
    async def test_manifest_grouping(self):
        library = InMemoryAssetLibrary()
        await library.add_asset("p1", _hero(is_sprite_sheet=True, frame_count=4, frame_width=16, frame_height=16))
        await library.add_asset("p1", _knight())

        manifest = await library.get_asset_manifest("p1")
        assert manifest.total_count == 2
        assert manifest.total_size == 2048 + 3 * 1024 * 1024
        assert [a.id for a in manifest.categories["characters"]] == ["a1"]
        assert [a.id for a in manifest.models_3d] == ["a2"]
        assert [a.id for a in manifest.sprite_sheets] == ["a1"]

    @pytest.mark.asyncio
    async def test_remove_asset(self):
        library = InMemoryAssetLibrary()
        await library.add_asset("p1", _hero())
        await library.remove_asset("p1", "a1")
        assert (await library.get_asset_manifest("p1")).total_count == 0

    def test_format_full(self):
        manifest = AssetManifest.from_assets("p1", [_hero(), _knight()])
        text = format_asset_manifest(manifest)
        assert text.startswith("## AVAILABLE GAME ASSETS")
        assert "Total: 2 assets (3.0MB)" in text
        assert "- **Hero**: `/assets/characters/hero.png` (64×64)" in text
        assert "### 3D Models" in text
        assert "[Animations: idle, walk]" in text
        assert "Three.js" in text
        assert "Phaser" not in text

    def test_format_compact(self):
        manifest = AssetManifest.from_assets(
            "p1", [_hero(is_sprite_sheet=True, frame_count=4, frame_width=16, frame_height=16)]
        )
        assert format_asset_manifest_compact(manifest) == (
            "ASSETS:\n/assets/characters/hero.png (64×64) [sprite:4f@16×16]"
        )

    def test_empty_manifest(self):
        manifest = AssetManifest.from_assets("p1", [])
        assert format_asset_manifest(manifest) == ""
        assert format_asset_manifest_compact(manifest) == ""

    def test_file_size(self):
        assert format_file_size(512) == "512B"
        assert format_file_size(2048) == "2.0KB"
        assert format_file_size(5 * 1024 * 1024) == "5.0MB"


class TestFormatting:
    def test_task_context(self):
        context = TaskContext(
            ledger=TaskLedger(
                current_goal="Add a pause menu",
                substeps=[TaskSubstep(step="menu component", done=True), TaskSubstep(step="keyboard")],
                blockers=["escape key ignored"],
                last_known_state="menu renders",
            )
        )
        text = format_task_context(context)
        assert text.startswith("## Current Goal\nAdd a pause menu")
        assert "1. [x] menu component" in text
        assert "2. [ ] keyboard" in text
        assert "### Known Blockers\n- escape key ignored" in text
        assert "### Current State\nmenu renders" in text

    def test_empty_task_context(self):
        assert format_task_context(TaskContext()) == ""

    def test_project_memory(self):
        memory = ProjectMemory(project_summary="A snake game", tech_stack=["react", "vite"])
        text = format_project_memory(memory)
        assert text == "## Project Memory\nSummary: A snake game\nTech stack: react, vite"

    def test_empty_project_memory(self):
        assert format_project_memory(ProjectMemory()) == ""


class TestSummarization:
    def test_user_action(self):
        assert extract_user_action("add a pause menu to the game") == "add a pause menu to the game"
        assert extract_user_action("Hi. Something else") == "Hi"

    def test_completed_task(self):
        assert extract_completed_task("I've added a pause menu!") == "Added a pause menu"
        assert extract_completed_task("ok") is None

    def test_summarize_prefers_tasks(self):
        local = summarize_messages(_conversation(4))
        assert local.summary == "Added pause menu 1. Added pause menu 3"
        assert local.files == ["/src/components/Menu1.tsx", "/src/components/Menu3.tsx"]

    def test_summarize_user_only(self):
        local = summarize_messages([ConversationMessage(role="user", content="add a pause menu to the game")])
        assert local.summary == "User requested: add a pause menu to the game"

    @pytest.mark.asyncio
    async def test_trigger(self):
        summarizer = ConversationSummarizer()
        messages = _conversation(15)

        assert await summarizer.check_and_summarize("p1", messages, 13) is None
        summary = await summarizer.check_and_summarize("p1", messages, 14)
        assert summary.message_range_start == 0
        assert summary.message_range_end == 9
        assert summary.sequence_number == 0

    @pytest.mark.asyncio
    async def test_next_summary_continues_range(self):
        summarizer = ConversationSummarizer()
        messages = _conversation(25)
        await summarizer.check_and_summarize("p1", messages, 14)

        assert await summarizer.check_and_summarize("p1", messages, 23) is None
        second = await summarizer.check_and_summarize("p1", messages, 24)
        assert second.message_range_start == 10
        assert second.sequence_number == 1

        stats = await summarizer.stats("p1")
        assert stats["summary_count"] == 2
        assert stats["messages_compressed"] == 20

    @pytest.mark.asyncio
    async def test_conversation_context(self):
        summarizer = ConversationSummarizer()
        messages = _conversation(15)
        messages.append(ConversationMessage(role="system", content="ignored"))
        await summarizer.check_and_summarize("p1", messages, 14)

        summaries, recent = await summarizer.get_conversation_context("p1", messages)
        assert len(summaries) == 1
        assert len(recent) == 5
        assert all(m.role != "system" for m in recent)
