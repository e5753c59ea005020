"""Regex-based extraction for TypeScript/JavaScript/React sources.

Best effort only: re-exports, computed imports and unusual code styles can
be misclassified. Nothing here tries to be a parser.
"""

from __future__ import annotations

import re

from ctxengine.extract.base import (
    ComponentInfo,
    FunctionInfo,
    ImportInfo,
    SourceExtractor,
)

# Path conventions, checked in order
_PATH_TYPES: list[tuple[str, str]] = [
    ("/pages/", "page"),
    ("/components/", "component"),
    ("/hooks/", "hook"),
    ("/lib/", "util"),
    ("/utils/", "util"),
    ("/store/", "store"),
    ("/context/", "store"),
    ("/types/", "type"),
]

_EXPORT_DECL_RE = re.compile(
    r"export\s+(?:default\s+)?(?:function|const|class|interface|type|enum)\s+(\w+)"
)
_EXPORT_LIST_RE = re.compile(r"export\s+\{\s*([^}]+)\s*\}")
_EXPORT_AS_RE = re.compile(r"\s+as\s+")
_DEFAULT_EXPORT_RE = re.compile(r"export\s+default\s+(?:function\s+)?(\w+)?")

_IMPORT_SPEC_RE = re.compile(
    r"""import\s+(?:[\w{},*]+(?:\s+[\w{},*]+)*\s+from\s+)?['"]([^'"]+)['"]"""
)
_IMPORT_DETAIL_RE = re.compile(
    r"""import\s+(?:(\w+)(?:\s*,\s*)?)?(?:\{([^}]+)\})?\s+from\s+['"]([^'"]+)['"]"""
)

_FUNCTION_RE = re.compile(
    r"(?:export\s+)?(async\s+)?(?:function\s+(\w+)|const\s+(\w+)\s*=\s*(?:async\s*)?"
    r"\([^)]*\)\s*(?::\s*([^=>{]+))?\s*=>)"
)
_COMPONENT_RE = re.compile(
    r"(?:export\s+)?(?:default\s+)?(?:function|const)\s+(\w+)\s*(?::\s*React\.FC)?[^{]*\{"
)
_HOOK_CALL_RE = re.compile(r"\buse\w+\s*\(")
_STATE_RE = re.compile(r"const\s+\[(\w+),\s*set\w+\]\s*=\s*useState")
_PROPS_RE = re.compile(r"(?:interface|type)\s+\w*Props\w*\s*(?:=\s*)?\{([^}]+)\}")
_PROP_NAME_RE = re.compile(r"(\w+)\s*[?:]?\s*:")
_EXPORTED_COMPONENT_RE = re.compile(r"export\s+(?:default\s+)?(?:function|const)\s+")

_TYPE_DECL_RE = re.compile(r"^(?:export\s+)?(?:type|interface)\s+\w+", re.MULTILINE)
_COMPONENT_DECL_RE = re.compile(r"function\s+[A-Z]|const\s+[A-Z]\w+\s*[=:]")


def _unique(items: list[str]) -> list[str]:
    seen: set[str] = set()
    out = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            out.append(item)
    return out


class PatternExtractor(SourceExtractor):
    """Line-oriented regex extractor."""

    def file_type(self, path: str, content: str = "") -> str:
        for marker, kind in _PATH_TYPES:
            if marker in path:
                return kind
        if path.endswith(".css"):
            return "style"
        if path.endswith(".json") or "/config/" in path:
            return "config"
        if content:
            return self._type_from_content(path, content)
        return "unknown"

    def _type_from_content(self, path: str, content: str) -> str:
        file_name = path.rsplit("/", 1)[-1]
        if file_name.startswith("use") and file_name[3:4].isupper():
            return "hook"
        if re.search(r"\.config\.(?:ts|js|mjs|cjs)$", file_name):
            return "config"
        stripped = content.lstrip()
        if _TYPE_DECL_RE.match(stripped) and not _COMPONENT_DECL_RE.search(content):
            return "type"
        if _COMPONENT_DECL_RE.search(content):
            return "component"
        return "unknown"

    def exports(self, content: str) -> list[str]:
        names: list[str] = [m.group(1) for m in _EXPORT_DECL_RE.finditer(content)]
        for m in _EXPORT_LIST_RE.finditer(content):
            for part in m.group(1).split(","):
                name = _EXPORT_AS_RE.split(part.strip())[0].strip()
                names.append(name)
        return _unique(names)

    def imports(self, content: str) -> list[str]:
        return _unique([m.group(1) for m in _IMPORT_SPEC_RE.finditer(content)])

    def import_details(self, content: str) -> list[ImportInfo]:
        details = []
        for m in _IMPORT_DETAIL_RE.finditer(content):
            default, named, source = m.group(1), m.group(2), m.group(3)
            names: list[str] = []
            if default:
                names.append(default)
            if named:
                names.extend(
                    _EXPORT_AS_RE.split(n.strip())[0].strip()
                    for n in named.split(",")
                    if n.strip()
                )
            details.append(
                ImportInfo(source=source, names=names, is_default=bool(default) and not named)
            )
        return details

    def default_export(self, content: str) -> str | None:
        """Name of the default export, '' for anonymous, None if absent."""
        m = _DEFAULT_EXPORT_RE.search(content)
        if not m:
            return None
        return m.group(1) or ""

    def functions(self, content: str) -> list[FunctionInfo]:
        found = []
        for m in _FUNCTION_RE.finditer(content):
            name = m.group(2) or m.group(3)
            if not name or name.startswith("_"):
                continue
            return_type = m.group(4).strip() if m.group(4) else None
            found.append(
                FunctionInfo(
                    name=name,
                    is_async=bool(m.group(1)),
                    is_exported=m.group(0).startswith("export"),
                    return_type=return_type,
                )
            )
        return found

    def component_info(self, content: str) -> ComponentInfo | None:
        m = _COMPONENT_RE.search(content)
        if not m:
            return None
        name = m.group(1)
        # Components are PascalCase
        if not name or not name[0].isupper():
            return None

        hooks = _unique([h.group(0)[:-1].strip() for h in _HOOK_CALL_RE.finditer(content)])
        state = [s.group(1) for s in _STATE_RE.finditer(content)]

        props: list[str] = []
        pm = _PROPS_RE.search(content)
        if pm:
            props = [p.group(1) for p in _PROP_NAME_RE.finditer(pm.group(1))]

        head = content[: m.end()]
        return ComponentInfo(
            name=name,
            props=props,
            hooks=hooks,
            state_variables=state,
            is_exported=bool(_EXPORTED_COMPONENT_RE.search(head)),
        )
