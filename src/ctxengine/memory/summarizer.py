"""Rule-based conversation summarization.

Older messages are compressed into summaries every ``messages_per_summary``
messages while the most recent ``recent_to_keep`` stay verbatim. No model
calls are made; tasks and files are pulled out with regexes.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from ctxengine.memory.models import ConversationMessage, ConversationSummary
from ctxengine.memory.providers import SummaryProvider

logger = logging.getLogger("ctxengine.summarizer")

MESSAGES_PER_SUMMARY = 10
RECENT_MESSAGES_TO_KEEP = 5

_USER_ACTION_PATTERNS = [
    re.compile(
        r"^(?:please\s+)?(?:can you\s+)?(?:help me\s+)?"
        r"(create|make|build|add|fix|change|update|remove)\s+(.{10,60})",
        re.IGNORECASE,
    ),
    re.compile(r"^I want (?:to\s+)?(.{10,60})", re.IGNORECASE),
    re.compile(r"^(.{10,60})\s+(?:please|now)$", re.IGNORECASE),
]

_COMPLETED_TASK_PATTERNS = [
    re.compile(r"^I've (.{10,80}?)(?:\.|!|$)", re.IGNORECASE | re.MULTILINE),
    re.compile(
        r"^(?:Done|Created|Added|Fixed|Updated|Implemented)!?\s*(.{10,80}?)(?:\.|!|$)",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(
        r"^(.{10,80}) (?:has been|is now|are now) (?:created|added|implemented|fixed)",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(r"^(.{10,80}) (?:complete|done|ready)", re.IGNORECASE | re.MULTILINE),
]

_SOURCE_FILE_RE = re.compile(r"/src/[^\s'\"`)]+\.tsx?")


def extract_user_action(content: str) -> str | None:
    for pattern in _USER_ACTION_PATTERNS:
        match = pattern.search(content)
        if match:
            return " ".join(g for g in match.groups() if g).strip()

    first_sentence = re.split(r"[.!?]", content, maxsplit=1)[0]
    if first_sentence and len(first_sentence) < 80:
        return first_sentence.strip()
    return None


def extract_completed_task(content: str) -> str | None:
    for pattern in _COMPLETED_TASK_PATTERNS:
        match = pattern.search(content)
        if match:
            task = match.group(1).strip()
            return task[:1].upper() + task[1:]
    return None


@dataclass
class LocalSummary:
    summary: str
    tasks: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)


def summarize_messages(messages: list[ConversationMessage]) -> LocalSummary:
    """Summarize a block of messages without calling a model."""
    tasks: list[str] = []
    actions: list[str] = []
    files: dict[str, None] = {}

    for msg in messages:
        if msg.role == "user":
            action = extract_user_action(msg.content)
            if action:
                actions.append(action)
        elif msg.role == "assistant":
            task = extract_completed_task(msg.content)
            if task:
                tasks.append(task)
            for path in _SOURCE_FILE_RE.findall(msg.content):
                files.setdefault(path, None)

    if tasks:
        summary = ". ".join(tasks[:3])
    elif actions:
        summary = f"User requested: {', '.join(actions[:3])}"
    else:
        summary = f"Conversation with {len(messages)} messages"

    return LocalSummary(summary=summary, tasks=tasks[:5], files=list(files)[:10])


class ConversationSummarizer(SummaryProvider):
    """In-memory summary store plus the summarization trigger.

    Usage:
        summarizer = ConversationSummarizer()
        await summarizer.check_and_summarize("proj", messages, len(messages) - 1)
        summaries, recent = await summarizer.get_conversation_context("proj", messages)
    """

    def __init__(
        self,
        messages_per_summary: int = MESSAGES_PER_SUMMARY,
        recent_to_keep: int = RECENT_MESSAGES_TO_KEEP,
    ) -> None:
        self.messages_per_summary = messages_per_summary
        self.recent_to_keep = recent_to_keep
        self._summaries: dict[str, list[ConversationSummary]] = {}

    async def get_summaries(self, project_id: str) -> list[ConversationSummary]:
        summaries = self._summaries.get(project_id, [])
        return sorted((s.model_copy() for s in summaries), key=lambda s: s.sequence_number)

    async def check_and_summarize(
        self,
        project_id: str,
        messages: list[ConversationMessage],
        current_index: int,
    ) -> ConversationSummary | None:
        """Summarize the unsummarized prefix once enough messages have piled up.

        Returns the new summary, or None when nothing was summarized.
        """
        existing = self._summaries.get(project_id, [])
        last_index = existing[-1].message_range_end if existing else -1

        if current_index - last_index < self.messages_per_summary + self.recent_to_keep:
            return None

        start = last_index + 1
        end = current_index - self.recent_to_keep
        block = messages[start : end + 1]
        if len(block) < self.messages_per_summary:
            return None

        local = summarize_messages(block)
        summary = ConversationSummary(
            summary_text=local.summary,
            tasks_completed=local.tasks,
            files_modified=local.files,
            sequence_number=existing[-1].sequence_number + 1 if existing else 0,
            message_range_start=start,
            message_range_end=end,
        )
        self._summaries.setdefault(project_id, []).append(summary)
        logger.info(f"Summarized messages {start}-{end} for {project_id}")
        return summary

    async def get_conversation_context(
        self, project_id: str, messages: list[ConversationMessage]
    ) -> tuple[list[str], list[ConversationMessage]]:
        """Summary texts plus the last few non-system messages."""
        summaries = await self.get_summaries(project_id)
        recent = [m for m in messages if m.role != "system"]
        return [s.summary_text for s in summaries], recent[-self.recent_to_keep :]

    async def clear(self, project_id: str) -> None:
        self._summaries.pop(project_id, None)

    async def stats(self, project_id: str) -> dict:
        summaries = await self.get_summaries(project_id)
        return {
            "summary_count": len(summaries),
            "messages_compressed": sum(
                s.message_range_end - s.message_range_start + 1 for s in summaries
            ),
            "oldest_summary": summaries[0].summary_text if summaries else None,
            "newest_summary": summaries[-1].summary_text if summaries else None,
        }
