"""Structural outlines of large source files.

An outline keeps the header, exports, key imports, component hints and
function names of a file so a model can reason about its role without
paying for the full body. Typical compression is around 5x.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ctxengine.config import OutlineConfig
from ctxengine.context.models import TokenEstimator
from ctxengine.extract import ImportInfo, PatternExtractor, SourceExtractor

# Repository map section order
_TYPE_ORDER = ["page", "component", "hook", "store", "util", "type", "style", "config", "unknown"]


@dataclass
class FileOutline:
    path: str
    line_count: int
    file_type: str
    exports: list[str] = field(default_factory=list)
    imports: list[ImportInfo] = field(default_factory=list)
    text: str = ""
    estimated_tokens: int = 0


class OutlineGenerator:
    """Builds outlines and decides when to use them.

    Usage:
        outliner = OutlineGenerator()
        text, is_outline, tokens = outliner.content_or_outline(path, source)
    """

    def __init__(
        self,
        config: OutlineConfig | None = None,
        extractor: SourceExtractor | None = None,
        estimator: TokenEstimator | None = None,
    ) -> None:
        self.config = config or OutlineConfig()
        self.extractor = extractor or PatternExtractor()
        self.estimator = estimator or TokenEstimator()

    def should_outline(self, path: str, content: str) -> bool:
        file_name = path.rsplit("/", 1)[-1]
        if file_name in self.config.always_full:
            return False
        return len(content.split("\n")) > self.config.line_threshold

    def _exports(self, content: str) -> list[str]:
        names = self.extractor.exports(content)
        default = self.extractor.default_export(content)
        if default is not None:
            label = f"default:{default}" if default else "default"
            if label not in names:
                names = names + [label]
        return names

    def outline(self, path: str, content: str) -> FileOutline:
        cfg = self.config
        line_count = len(content.split("\n"))
        file_type = self.extractor.file_type(path, content)
        exports = self._exports(content)
        imports = self.extractor.import_details(content)
        component = self.extractor.component_info(content)

        parts = [f"// {path} ({line_count} lines, {file_type})"]

        if exports:
            parts.append(f"// Exports: {', '.join(exports)}")

        key_imports = [i for i in imports if i.source not in cfg.ignored_imports]
        if key_imports:
            summary = "; ".join(
                f"{', '.join(i.names[: cfg.max_import_names])} from '{i.source}'"
                for i in key_imports[: cfg.max_imports]
            )
            parts.append(f"// Imports: {summary}")

        if component:
            if component.props:
                parts.append(f"// Props: {{ {', '.join(component.props)} }}")
            if component.state_variables:
                parts.append(f"// State: {', '.join(component.state_variables)}")
            if component.hooks:
                parts.append(f"// Hooks: {', '.join(component.hooks)}")

        # Event handlers are noise unless exported
        functions = [
            f for f in self.extractor.functions(content)
            if f.is_exported or not f.name.startswith("handle")
        ]
        if functions:
            names = ", ".join(f"{f.name}()" for f in functions[: cfg.max_functions])
            parts.append(f"// Functions: {names}")

        text = "\n".join(parts)
        return FileOutline(
            path=path,
            line_count=line_count,
            file_type=file_type,
            exports=exports,
            imports=imports,
            text=text,
            estimated_tokens=self.estimator.estimate(text),
        )

    def content_or_outline(self, path: str, content: str) -> tuple[str, bool, int]:
        """Return ``(text, is_outline, tokens)`` for a file."""
        if self.should_outline(path, content):
            outline = self.outline(path, content)
            return outline.text, True, outline.estimated_tokens
        return content, False, self.estimator.estimate(content)

    def outline_project(self, files: dict[str, str]) -> dict[str, FileOutline]:
        return {path: self.outline(path, content) for path, content in files.items()}

    def repository_map(self, files: dict[str, str]) -> str:
        """All outlines, grouped by file type."""
        by_type: dict[str, list[FileOutline]] = {}
        for outline in self.outline_project(files).values():
            by_type.setdefault(outline.file_type, []).append(outline)

        parts = ["# Repository Map"]
        for file_type in _TYPE_ORDER:
            outlines = by_type.get(file_type)
            if not outlines:
                continue
            parts.append("")
            parts.append(f"## {file_type.capitalize()}s")
            parts.extend(o.text for o in sorted(outlines, key=lambda o: o.path))
        return "\n".join(parts)
