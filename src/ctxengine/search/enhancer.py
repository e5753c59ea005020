"""Rule-based query expansion for semantic search."""

from __future__ import annotations

import re

_ABBREVIATIONS: dict[str, str] = {
    # UI elements
    "btn": "button",
    "msg": "message",
    "nav": "navigation navigate",
    "hdr": "header",
    "ftr": "footer",
    "dlg": "dialog modal",
    "mdl": "modal dialog",
    "txt": "text",
    "img": "image",
    "lbl": "label",
    "inp": "input",
    # Technical
    "err": "error",
    "cfg": "config configuration",
    "auth": "authentication authorize",
    "api": "API endpoint",
    "db": "database",
    "req": "request",
    "res": "response",
    "fn": "function",
    "cb": "callback",
    "ctx": "context",
    "ref": "reference",
    "var": "variable",
    "obj": "object",
    "arr": "array",
    "str": "string",
    "num": "number",
    "bool": "boolean",
    # Styling
    "bg": "background",
    "fg": "foreground",
    "clr": "color",
    "sz": "size",
    "wd": "width",
    "ht": "height",
    "mrgn": "margin",
    "pdng": "padding",
    # Game
    "plyr": "player",
    "scr": "score",
    "lvl": "level",
    "gm": "game",
    "anim": "animation",
    "spr": "sprite",
    "coll": "collision",
    "phys": "physics",
    "ctrl": "control controller",
}

_ACTION_TERMS: dict[str, list[str]] = {
    "fix": ["bug", "error", "issue", "debug", "problem"],
    "debug": ["bug", "error", "issue", "fix", "problem", "console"],
    "add": ["create", "implement", "new", "feature"],
    "create": ["add", "implement", "new", "generate"],
    "remove": ["delete", "cleanup", "drop", "clear"],
    "delete": ["remove", "cleanup", "drop", "clear"],
    "change": ["modify", "update", "edit", "alter"],
    "update": ["modify", "change", "edit", "refresh"],
    "style": ["css", "tailwind", "design", "layout", "appearance"],
    "refactor": ["restructure", "reorganize", "cleanup", "optimize"],
    "optimize": ["performance", "speed", "efficiency", "improve"],
    "move": ["relocate", "transfer", "position"],
    "rename": ["change name", "update name"],
    "test": ["testing", "spec", "unit", "validate"],
}

_GAME_TERMS: dict[str, list[str]] = {
    "player": ["character", "hero", "avatar", "user"],
    "enemy": ["opponent", "npc", "mob", "foe"],
    "score": ["points", "counter", "tally"],
    "level": ["stage", "map", "world", "scene"],
    "collision": ["hit", "overlap", "intersect", "detect"],
    "movement": ["motion", "position", "velocity", "direction"],
    "input": ["keyboard", "mouse", "touch", "controls"],
    "audio": ["sound", "music", "sfx", "effects"],
    "visual": ["graphics", "render", "display", "draw"],
}

_EXT_RE = re.compile(r"\.(tsx?|jsx?|css|json)$")


def _file_stem(path: str) -> str:
    return _EXT_RE.sub("", path.rsplit("/", 1)[-1])


class QueryEnhancer:
    """Expands an edit instruction into a richer semantic-search query."""

    max_action_terms = 2
    max_game_terms = 3
    max_recent_files = 5
    max_related_hints = 2

    def enhance(
        self,
        query: str,
        selected_file: str | None = None,
        recent_files: list[str] | None = None,
    ) -> str:
        enhanced = query

        if selected_file:
            name = _file_stem(selected_file)
            if name and name.lower() not in query.lower():
                enhanced = f"{enhanced} (in {name})"

        enhanced = self.expand_abbreviations(enhanced)
        enhanced = self._add_action_terms(enhanced)
        enhanced = self._add_game_terms(enhanced)

        if recent_files:
            hints = self._recent_file_hints(query, recent_files)
            if hints:
                enhanced = f"{enhanced} {hints}"

        return enhanced.strip()

    @staticmethod
    def expand_abbreviations(query: str) -> str:
        result = query
        for abbr, expansion in _ABBREVIATIONS.items():
            pattern = re.compile(rf"\b{abbr}\b", re.IGNORECASE)
            if pattern.search(result):
                result = pattern.sub(lambda m: f"{m.group(0)} {expansion}", result)
        return result

    def _add_action_terms(self, query: str) -> str:
        lower = query.lower()
        for action, terms in _ACTION_TERMS.items():
            if action in lower:
                new_terms = [t for t in terms if t not in lower][: self.max_action_terms]
                if new_terms:
                    return f"{query} {' '.join(new_terms)}"
                return query
        return query

    def _add_game_terms(self, query: str) -> str:
        lower = query.lower()
        added: list[str] = []
        for term, expansions in _GAME_TERMS.items():
            if term in lower:
                new = next((t for t in expansions if t not in lower and t not in added), None)
                if new:
                    added.append(new)
        if added:
            return f"{query} {' '.join(added[: self.max_game_terms])}"
        return query

    def _recent_file_hints(self, query: str, recent_files: list[str]) -> str | None:
        lower = query.lower()
        words = [w for w in lower.split() if len(w) > 2]
        related: list[str] = []
        for path in recent_files[: self.max_recent_files]:
            name = _file_stem(path)
            if not name:
                continue
            name_lower = name.lower()
            if any(w in name_lower for w in words) and name not in lower:
                related.append(name)
        if related:
            return f"related: {', '.join(related[: self.max_related_hints])}"
        return None
