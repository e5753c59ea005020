"""Render memory records into prompt-ready text."""

from __future__ import annotations

from ctxengine.memory.models import (
    Asset,
    AssetManifest,
    AssetType,
    ProjectMemory,
    TaskContext,
)


def format_task_context(context: TaskContext) -> str:
    """Goal, progress, blockers, state and recent turns. Empty when nothing is tracked."""
    parts: list[str] = []
    ledger = context.ledger

    if ledger.current_goal:
        parts.append(f"## Current Goal\n{ledger.current_goal}")
        if ledger.substeps:
            steps = "\n".join(
                f"{i}. [{'x' if s.done else ' '}] {s.step}"
                for i, s in enumerate(ledger.substeps, start=1)
            )
            parts.append(f"### Progress\n{steps}")

    if ledger.blockers:
        blockers = "\n".join(f"- {b}" for b in ledger.blockers)
        parts.append(f"### Known Blockers\n{blockers}")

    if ledger.last_known_state:
        parts.append(f"### Current State\n{ledger.last_known_state}")

    if context.recent_deltas:
        turns = []
        for d in context.recent_deltas:
            lines = []
            if d.user_request:
                lines.append(f"Request: {d.user_request}")
            if d.what_tried:
                lines.append(f"Tried: {d.what_tried}")
            if d.what_changed:
                lines.append(f"Changed: {', '.join(d.what_changed)}")
            if d.what_succeeded:
                lines.append(f"Succeeded: {d.what_succeeded}")
            if d.what_failed:
                lines.append(f"Failed: {d.what_failed}")
            if d.what_next:
                lines.append(f"Next: {d.what_next}")
            body = "\n".join(f"  {line}" for line in lines)
            turns.append(f"Turn {d.turn_number}:\n{body}")
        parts.append("## Recent History\n" + "\n\n".join(turns))

    return "\n\n".join(parts)


def format_project_memory(memory: ProjectMemory, max_tasks: int = 5) -> str:
    lines = ["## Project Memory"]
    if memory.project_summary:
        lines.append(f"Summary: {memory.project_summary}")
    if memory.game_type:
        lines.append(f"Game type: {memory.game_type}")
    if memory.tech_stack:
        lines.append(f"Tech stack: {', '.join(memory.tech_stack)}")
    if memory.completed_tasks:
        lines.append("Recently completed:")
        lines.extend(f"- {t.task}" for t in memory.completed_tasks[:max_tasks])
    if memory.key_entities:
        entities = ", ".join(f"{e.name} ({e.type})" for e in memory.key_entities[:10])
        lines.append(f"Key entities: {entities}")
    return "\n".join(lines) if len(lines) > 1 else ""


def format_file_size(size: int) -> str:
    if size < 1024:
        return f"{size}B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f}KB"
    return f"{size / (1024 * 1024):.1f}MB"


def _asset_line(asset: Asset) -> str:
    parts = [f"- **{asset.display_name}**: `{asset.public_path}`"]
    if asset.asset_type == AssetType.TWO_D and asset.width and asset.height:
        parts.append(f"({asset.width}×{asset.height})")
    if asset.is_sprite_sheet and asset.frame_count:
        parts.append(f"[{asset.frame_count} frames, {asset.frame_width}×{asset.frame_height}]")
    if asset.asset_type == AssetType.THREE_D and asset.animations:
        parts.append(f"[Animations: {', '.join(asset.animations)}]")
    if asset.description:
        parts.append(f"- {asset.description}")
    return " ".join(parts)


# (section key or "models_3d", heading) in display order
_MANIFEST_SECTIONS = [
    ("characters", "Characters"),
    ("backgrounds", "Backgrounds"),
    ("items", "Items"),
    ("tiles", "Tiles"),
    ("ui", "UI Elements"),
    ("effects", "Effects"),
    ("models_3d", "3D Models"),
    ("textures", "Textures"),
    ("skyboxes", "Skyboxes"),
    ("audio", "Audio"),
]


def format_asset_manifest(manifest: AssetManifest) -> str:
    """Full manifest with usage snippets."""
    if manifest.total_count == 0:
        return ""

    lines = [
        "## AVAILABLE GAME ASSETS",
        "",
        f"Total: {manifest.total_count} assets ({format_file_size(manifest.total_size)})",
        "",
    ]
    for key, heading in _MANIFEST_SECTIONS:
        assets = manifest.models_3d if key == "models_3d" else manifest.categories.get(key, [])
        if assets:
            lines.append(f"### {heading}")
            lines.extend(_asset_line(a) for a in assets)
            lines.append("")

    lines += [
        "### HOW TO USE ASSETS",
        "",
        "**React/JSX:**",
        "```jsx",
        '<img src="/assets/characters/player.png" alt="Player" />',
        "```",
        "",
        "**Canvas 2D:**",
        "```javascript",
        "const img = new Image();",
        "img.src = '/assets/characters/player.png';",
        "img.onload = () => ctx.drawImage(img, x, y);",
        "```",
        "",
    ]
    if manifest.sprite_sheets:
        lines += [
            "**Phaser 3 (Sprite Sheet):**",
            "```javascript",
            "// In preload():",
            "this.load.spritesheet('player', '/assets/characters/player.png', {",
            "  frameWidth: 32,",
            "  frameHeight: 48",
            "});",
            "```",
            "",
        ]
    if manifest.models_3d:
        lines += [
            "**Three.js / React Three Fiber:**",
            "```jsx",
            "import { useGLTF } from '@react-three/drei';",
            "",
            "function Model() {",
            "  const { scene } = useGLTF('/assets/models/character.glb');",
            "  return <primitive object={scene} />;",
            "}",
            "```",
            "",
        ]
    lines += [
        "**IMPORTANT:**",
        "1. Always use the exact paths shown above",
        "2. Preload assets before using them",
        "3. For sprite sheets, use the provided frame dimensions",
    ]
    return "\n".join(lines)


def format_asset_manifest_compact(manifest: AssetManifest) -> str:
    """One line per asset."""
    if manifest.total_count == 0:
        return ""
    lines = ["ASSETS:"]
    for asset in manifest.assets:
        line = asset.public_path
        if asset.asset_type == AssetType.TWO_D and asset.width and asset.height:
            line += f" ({asset.width}×{asset.height})"
        if asset.is_sprite_sheet and asset.frame_count:
            line += f" [sprite:{asset.frame_count}f@{asset.frame_width}×{asset.frame_height}]"
        if asset.asset_type == AssetType.THREE_D and asset.animations:
            line += f" [anims:{','.join(asset.animations)}]"
        lines.append(line)
    return "\n".join(lines)
