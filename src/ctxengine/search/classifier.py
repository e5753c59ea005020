"""Intent classifier for context routing.

Maps a free-text edit instruction to an action category with a confidence,
the files it mentions, and the domain keywords it contains. Everything is
rule-based (no models, no network).

Classification is an ordered cascade, first match wins:
  1. trivial tweak phrasing (colour/size/text/value/typo)   -> tweak   0.9
  2. creation phrasing + a domain noun                      -> create  0.85
  3. failure / bug vocabulary                               -> debug   0.8
  4. interrogative phrasing                                 -> explain 0.9
  5. styling vocabulary without feature vocabulary          -> style   0.75
  6. explicit "rename"                                      -> rename  0.9
  7. removal vocabulary                                     -> remove  0.8
  8. addition vocabulary                                    -> add     0.7
  9. anything else                                          -> modify  0.5

Mentioned files, keywords and the visual/structural flags are computed
independently of the cascade.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum


class IntentAction(str, Enum):
    CREATE = "create"  # new project/game from scratch
    ADD = "add"
    MODIFY = "modify"
    DEBUG = "debug"
    EXPLAIN = "explain"
    STYLE = "style"  # visual/CSS only
    RENAME = "rename"
    REMOVE = "remove"
    TWEAK = "tweak"  # small value changes


class ResponseMode(str, Enum):
    EDIT = "edit"  # search/replace
    FILE = "file"  # full file replacement
    HYBRID = "hybrid"


@dataclass
class IntentClassification:
    """Result of intent classification."""

    action: IntentAction
    confidence: float
    target_files: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    is_trivial_change: bool = False
    is_visual_change: bool = False
    is_structural_change: bool = False

    def mentions(self, path: str) -> bool:
        """Whether ``path`` is one of the files named in the prompt.

        Bare names ("Index.tsx") and partial paths ("components/Board.tsx")
        match any project path ending with them.
        """
        for target in self.target_files:
            if target == path:
                return True
            if not target.startswith("/") and path.endswith("/" + target):
                return True
        return False


@dataclass
class ResponseModeRecommendation:
    mode: ResponseMode
    confidence: float
    reason: str


_I = re.IGNORECASE

_TRIVIAL_PATTERNS = [
    # Colour
    re.compile(r"^(change|make|set|update)\s+(?:the\s+)?(?:\w+\s+)?(?:color|colour)\s+(?:to|from)", _I),
    re.compile(
        r"^(?:change|make)\s+(?:it|this|the\s+\w+)\s+(?:to\s+)?"
        r"(?:red|blue|green|yellow|purple|orange|pink|white|black|gray|grey)",
        _I,
    ),
    # Size
    re.compile(r"^(make|change)\s+(?:it|this|the\s+\w+)\s+(bigger|smaller|larger|wider|taller|shorter)", _I),
    re.compile(r"^(increase|decrease)\s+(?:the\s+)?(?:size|width|height|font|padding|margin)", _I),
    # Text
    re.compile(r"^(change|update|fix)\s+(?:the\s+)?(?:text|title|label|button\s+text)\s+(?:to|from)", _I),
    re.compile(r"""^rename\s+["']?[\w\s]+["']?\s+to\s+["']?[\w\s]+["']?""", _I),
    # Simple values
    re.compile(r"^(set|change)\s+(?:the\s+)?(?:speed|delay|duration|interval|timeout)\s+to\s+\d+", _I),
    # Typos
    re.compile(r"^fix\s+(?:the\s+)?(?:typo|spelling|text)", _I),
]

_CREATE_RE = re.compile(r"^(create|make|build|generate)\s+(a\s+)?(new\s+)?", _I)
_CREATE_NOUN_RE = re.compile(r"game|app|project|component", _I)
_DEBUG_RE = re.compile(
    r"\b(fix|debug|error|bug|issue|broken|crash|not working|doesn't work|won't)\b", _I
)
_EXPLAIN_RE = re.compile(r"^(what|how|why|explain|tell me|can you explain|describe)", _I)
_STYLE_RE = re.compile(
    r"\b(style|css|look|appearance|design|theme|color|colour|font|ui|visual)\b", _I
)
_FEATURE_RE = re.compile(r"\b(add|create|new|feature|function)\b", _I)
_RENAME_RE = re.compile(r"^rename\b", _I)
_REMOVE_RE = re.compile(r"\b(remove|delete|get rid of|take out|drop)\b", _I)
_ADD_RE = re.compile(r"\b(add|include|insert|implement|create)\b", _I)

_VISUAL_RE = re.compile(
    r"color|style|css|look|appear|theme|background|font|border|shadow|animation|ui|visual", _I
)
_STRUCTURAL_RE = re.compile(
    r"add|remove|create|delete|refactor|restructure|move|new\s+(?:feature|component|function)", _I
)

_FILE_MENTION_RE = re.compile(
    r"(?<![\w.-])(/?(?:[\w.-]+/)*[\w-]+\.(?:tsx|ts|jsx|js|css|json))\b"
)

# Domain keyword groups, scanned in order
_KEYWORD_GROUPS: dict[str, re.Pattern] = {
    "game": re.compile(
        r"\b(player|enemy|score|level|game|board|tile|piece|card|ball|paddle|snake|food)\b", _I
    ),
    "action": re.compile(
        r"\b(move|jump|shoot|collect|spawn|animate|collision|click|tap|drag)\b", _I
    ),
    "ui": re.compile(r"\b(button|menu|modal|header|footer|sidebar|panel|screen|page)\b", _I),
    "technical": re.compile(
        r"\b(hook|component|function|state|effect|context|store|props|ref)\b", _I
    ),
    "visual": re.compile(
        r"\b(color|size|font|border|background|shadow|margin|padding|width|height)\b", _I
    ),
}

_EDIT_MODE_PATTERNS = [
    re.compile(r"^(change|make|set|update)\s+(?:the\s+)?(?:\w+\s+)?(?:color|colour)", _I),
    re.compile(
        r"(?:to\s+)?(?:red|blue|green|yellow|purple|orange|pink|white|black|gray|grey|#[0-9a-f]{3,8})\b",
        _I,
    ),
    re.compile(
        r"^(change|set|update|make)\s+(?:the\s+)?"
        r"(?:speed|size|width|height|delay|duration|timeout|interval)\s+(?:to\s+)?\d",
        _I,
    ),
    re.compile(
        r"^(change|update|fix)\s+(?:the\s+)?(?:text|title|label|button\s+text|heading|message)\s+(?:to|from)",
        _I,
    ),
    re.compile(
        r"^(make|change)\s+(?:it|this|the\s+\w+)\s+"
        r"(bigger|smaller|larger|wider|taller|shorter|bolder|lighter)",
        _I,
    ),
    re.compile(r"^fix\s+(?:the\s+)?(?:typo|spelling)", _I),
    re.compile(r"^(show|hide|toggle)\s+(?:the\s+)?", _I),
    re.compile(
        r"^(add|remove|change|increase|decrease)\s+(?:the\s+)?(?:border|margin|padding|shadow|radius)",
        _I,
    ),
    re.compile(r"""^replace\s+["']?[^"']+["']?\s+with\s+["']?[^"']+["']?""", _I),
]

_FILE_MODE_PATTERNS = [
    re.compile(r"^(add|create|implement|build)\s+(a\s+)?(new\s+)?(?:feature|component|page|hook|function)", _I),
    re.compile(r"\b(refactor|restructure|reorganize|rewrite|redesign)\b", _I),
    re.compile(
        r"\b(add|implement)\s+(?:a\s+)?(?:new\s+)?(?:level|enemy|power-?up|game\s+mode|multiplayer)", _I
    ),
    re.compile(r"\b(add|implement)\s+(?:state\s+)?(?:management|context|store|reducer)", _I),
    re.compile(r"\b(add|create)\s+(?:a\s+)?(?:new\s+)?(?:screen|page|view|modal|dialog)", _I),
    re.compile(r"\b(integrate|connect|hook\s+up|wire\s+up)\b", _I),
    re.compile(r"\b(add|create|implement)\s+(?:complex\s+)?(?:animation|transition|effect)s?\b", _I),
]

_SIMPLE_FIX_RE = re.compile(r"^fix\s+(?:the\s+)?(?:typo|color|text|label|value|number)", _I)
_SMALL_REMOVAL_RE = re.compile(r"^remove\s+(?:the\s+)?(?:button|text|label|icon|class|style)", _I)


class IntentClassifier:
    """Classifies edit instructions into intent actions.

    Usage:
        classifier = IntentClassifier()
        result = classifier.classify("change the button color to blue")
        # result.action == IntentAction.TWEAK
        # result.is_trivial_change is True
    """

    def classify(self, prompt: str) -> IntentClassification:
        text = prompt.strip()
        is_trivial = any(p.search(text) for p in _TRIVIAL_PATTERNS)
        action, confidence = self._classify_action(text, is_trivial)

        return IntentClassification(
            action=action,
            confidence=confidence,
            target_files=self.extract_target_files(text),
            keywords=self.extract_keywords(text),
            is_trivial_change=is_trivial,
            is_visual_change=bool(_VISUAL_RE.search(text)),
            is_structural_change=bool(_STRUCTURAL_RE.search(text)),
        )

    def _classify_action(self, text: str, is_trivial: bool) -> tuple[IntentAction, float]:
        if is_trivial:
            return IntentAction.TWEAK, 0.9
        if _CREATE_RE.search(text) and _CREATE_NOUN_RE.search(text):
            return IntentAction.CREATE, 0.85
        if _DEBUG_RE.search(text):
            return IntentAction.DEBUG, 0.8
        if _EXPLAIN_RE.search(text):
            return IntentAction.EXPLAIN, 0.9
        if _STYLE_RE.search(text) and not _FEATURE_RE.search(text):
            return IntentAction.STYLE, 0.75
        if _RENAME_RE.search(text):
            return IntentAction.RENAME, 0.9
        if _REMOVE_RE.search(text):
            return IntentAction.REMOVE, 0.8
        if _ADD_RE.search(text):
            return IntentAction.ADD, 0.7
        return IntentAction.MODIFY, 0.5

    @staticmethod
    def extract_target_files(text: str) -> list[str]:
        found: list[str] = []
        for m in _FILE_MENTION_RE.finditer(text):
            path = m.group(1)
            if path not in found:
                found.append(path)
        return found

    @staticmethod
    def extract_keywords(text: str) -> list[str]:
        keywords: list[str] = []
        for pattern in _KEYWORD_GROUPS.values():
            for m in pattern.finditer(text):
                kw = m.group(1).lower()
                if kw not in keywords:
                    keywords.append(kw)
        return keywords

    def needs_full_context(self, prompt: str) -> bool:
        intent = self.classify(prompt)
        if intent.is_trivial_change:
            return False
        return intent.action not in (
            IntentAction.TWEAK,
            IntentAction.STYLE,
            IntentAction.RENAME,
            IntentAction.EXPLAIN,
        )

    def recommend_response_mode(self, prompt: str) -> ResponseModeRecommendation:
        """Suggest whether a generator should answer with edits or whole files."""
        text = prompt.strip()
        intent = self.classify(text)

        if intent.is_trivial_change or any(p.search(text) for p in _EDIT_MODE_PATTERNS):
            return ResponseModeRecommendation(
                ResponseMode.EDIT, 0.9, "Small, targeted change that can be done with search/replace"
            )

        if intent.is_structural_change or any(p.search(text) for p in _FILE_MODE_PATTERNS):
            return ResponseModeRecommendation(
                ResponseMode.FILE, 0.85, "Structural change or new feature that needs full file context"
            )

        action = intent.action
        if action in (IntentAction.TWEAK, IntentAction.STYLE, IntentAction.RENAME):
            return ResponseModeRecommendation(
                ResponseMode.EDIT, 0.8, f"{action.value} action typically requires small, localized changes"
            )
        if action in (IntentAction.CREATE, IntentAction.ADD):
            return ResponseModeRecommendation(
                ResponseMode.FILE, 0.85, f"{action.value} action typically requires full file replacement"
            )
        if action == IntentAction.DEBUG:
            if _SIMPLE_FIX_RE.search(text):
                return ResponseModeRecommendation(ResponseMode.EDIT, 0.7, "Simple fix can use edit mode")
            return ResponseModeRecommendation(ResponseMode.FILE, 0.7, "Complex bug fix needs full context")
        if action == IntentAction.REMOVE:
            if _SMALL_REMOVAL_RE.search(text):
                return ResponseModeRecommendation(ResponseMode.EDIT, 0.75, "Small removal can use edit mode")
            return ResponseModeRecommendation(ResponseMode.FILE, 0.75, "Larger removal needs file mode")

        return ResponseModeRecommendation(
            ResponseMode.HYBRID, 0.5, "Ambiguous request, the generator chooses the format"
        )
