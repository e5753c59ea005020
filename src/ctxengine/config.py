"""Configuration management for ctxengine.

Every numeric constant the engine uses lives in a single versioned
``EngineConfig`` record so scoring, budgeting and retrieval can be tuned
(and tested) without code changes.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from ctxengine.exceptions import ConfigError

CTXENGINE_DIR = ".ctxengine"
CONFIG_FILE = "config.json"
STORE_DB_FILE = "changes.db"

CONFIG_VERSION = 1


class ScoringWeights(BaseModel):
    """Additive relevance signal weights."""

    mentioned_in_prompt: float = 1.0
    selected_file: float = 0.9
    recently_modified: float = 0.8
    direct_dependency: float = 0.8  # file is imported by a target
    imported_by_relevant: float = 0.7
    reverse_dependency: float = 0.6  # file imports a target
    entry_point: float = 0.6
    keyword_match: float = 0.5
    keyword_saturation: int = 3  # matches needed for the full keyword weight
    high_modification_count: float = 0.4
    modification_count_threshold: int = 3
    memory_importance: float = 0.3  # multiplier on memory-declared importance
    type_match: float = 0.3


class TokenBudgets(BaseModel):
    """Per-intent token ceilings."""

    create: int = 15000
    add: int = 12000
    modify: int = 10000
    debug: int = 8000
    remove: int = 6000
    style: int = 10000
    explain: int = 4000
    rename: int = 3000
    tweak: int = 5000
    reserved: int = 2000  # system prompt, response buffer
    fixed_overhead: int = 500
    chars_per_token: float = 4.0

    def for_action(self, action: str) -> int:
        return getattr(self, action, self.modify)


class SelectionConfig(BaseModel):
    """File selection limits."""

    max_files: dict[str, int] = Field(
        default_factory=lambda: {"debug": 5, "explain": 2}
    )
    default_max_files: int = 8
    must_include_cap: int = 3
    full_content_threshold: float = 0.9
    large_file_lines: int = 150
    recent_messages: dict[str, int] = Field(
        default_factory=lambda: {"minimal": 2, "explain": 3}
    )
    default_recent_messages: int = 5
    task_deltas: int = 3
    preflight_task_tokens: int = 300
    preflight_files: dict[str, int] = Field(
        default_factory=lambda: {"trivial": 2, "create": 10}
    )
    default_preflight_files: int = 6


class OutlineConfig(BaseModel):
    """Outline generator settings."""

    line_threshold: int = 50
    always_full: list[str] = Field(
        default_factory=lambda: [
            "package.json",
            "tsconfig.json",
            "tailwind.config.ts",
            "vite.config.ts",
        ]
    )
    ignored_imports: list[str] = Field(
        default_factory=lambda: ["react", "react-dom", "@/lib/utils"]
    )
    max_imports: int = 5
    max_import_names: int = 3
    max_functions: int = 8


class HybridConfig(BaseModel):
    """Hybrid (keyword + semantic + structural) retrieval settings."""

    enabled: bool = True
    semantic_weight: float = 0.4
    keyword_weight: float = 0.2
    recency_weight: float = 0.25
    importance_weight: float = 0.15
    similarity_threshold: float = 0.4
    limit: int = 10


class AdaptiveConfig(BaseModel):
    """Outcome-driven weight learning."""

    min_outcomes: int = 10
    success_threshold: float = 0.7
    high_accuracy: float = 0.8
    history_limit: int = 100
    cache_ttl_seconds: float = 300.0
    miss_rate_trigger: float = 0.3
    low_accuracy: float = 0.3


class ProjectLayout(BaseModel):
    """Project path conventions used by resolution and scoring."""

    source_root: str = "/src"
    alias_prefix: str = "@/"
    extensions: list[str] = Field(default_factory=lambda: [".ts", ".tsx", ".js", ".jsx"])
    entry_points: list[str] = Field(
        default_factory=lambda: [
            "/src/pages/Index.tsx",
            "/src/pages/GameplayPage.tsx",
            "/src/App.tsx",
        ]
    )
    main_entry: str = "/src/pages/Index.tsx"
    must_include: list[str] = Field(
        default_factory=lambda: ["/src/pages/Index.tsx", "/src/pages/GameplayPage.tsx"]
    )
    stylesheet: str = "/src/index.css"


class IndexerConfig(BaseModel):
    """Directory scan configuration for the CLI."""

    exclude_patterns: list[str] = Field(
        default_factory=lambda: [
            "node_modules",
            ".git",
            ".ctxengine",
            "dist",
            "build",
            ".next",
            "coverage",
            "*.min.js",
            "*.min.css",
            "*.map",
            "*.lock",
            "package-lock.json",
            "yarn.lock",
        ]
    )
    include_extensions: list[str] = Field(
        default_factory=lambda: [".ts", ".tsx", ".js", ".jsx", ".css", ".json"]
    )
    max_file_size_kb: int = 500


class EngineConfig(BaseModel):
    """Versioned record of all engine tunables."""

    version: int = CONFIG_VERSION
    scoring: ScoringWeights = Field(default_factory=ScoringWeights)
    budgets: TokenBudgets = Field(default_factory=TokenBudgets)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    outline: OutlineConfig = Field(default_factory=OutlineConfig)
    hybrid: HybridConfig = Field(default_factory=HybridConfig)
    adaptive: AdaptiveConfig = Field(default_factory=AdaptiveConfig)
    layout: ProjectLayout = Field(default_factory=ProjectLayout)


class ProjectConfig(BaseModel):
    """Full project configuration."""

    name: str = ""
    root_path: str = "."
    project_id: str = ""
    engine: EngineConfig = Field(default_factory=EngineConfig)
    indexer: IndexerConfig = Field(default_factory=IndexerConfig)


def find_project_root(start: Path | None = None) -> Path | None:
    """Walk up from `start` looking for a .ctxengine directory."""
    current = (start or Path.cwd()).resolve()
    while current != current.parent:
        if (current / CTXENGINE_DIR).is_dir():
            return current
        current = current.parent
    if (current / CTXENGINE_DIR).is_dir():
        return current
    return None


def get_ctxengine_dir(root: Path) -> Path:
    """Get the .ctxengine directory for a project root."""
    return root / CTXENGINE_DIR


def load_config(root: Path) -> ProjectConfig:
    """Load configuration from .ctxengine/config.json."""
    config_path = get_ctxengine_dir(root) / CONFIG_FILE
    if config_path.exists():
        try:
            return ProjectConfig(**json.loads(config_path.read_text()))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise ConfigError(f"Invalid config file {config_path}: {exc}") from exc
    return ProjectConfig(name=root.name, root_path=str(root), project_id=root.name)


def save_config(root: Path, config: ProjectConfig) -> None:
    """Save configuration to .ctxengine/config.json."""
    cx_dir = get_ctxengine_dir(root)
    cx_dir.mkdir(parents=True, exist_ok=True)
    config_path = cx_dir / CONFIG_FILE
    config_path.write_text(json.dumps(config.model_dump(), indent=2))


def set_config_value(config: ProjectConfig, key: str, value: Any) -> ProjectConfig:
    """Set a nested config value using dot notation (e.g., 'engine.budgets.tweak')."""
    parts = key.split(".")
    data = config.model_dump()
    target = data
    for part in parts[:-1]:
        if part not in target or not isinstance(target[part], dict):
            raise KeyError(f"Invalid config key: {key}")
        target = target[part]
    if parts[-1] not in target:
        raise KeyError(f"Invalid config key: {key}")
    target[parts[-1]] = value
    return ProjectConfig(**data)


def get_config_value(config: ProjectConfig, key: str) -> Any:
    """Read a nested config value using dot notation."""
    value: Any = config.model_dump()
    for part in key.split("."):
        if not isinstance(value, dict) or part not in value:
            raise KeyError(f"Invalid config key: {key}")
        value = value[part]
    return value
