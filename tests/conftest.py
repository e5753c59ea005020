"""Shared test fixtures for ctxengine."""

from __future__ import annotations

from pathlib import Path

import pytest

from ctxengine.changes.store import InMemoryChangeStore, SQLiteChangeStore

INDEX_PAGE = """import { useState } from "react";
import GameBoard from "@/components/GameBoard";
import { ScoreDisplay } from "@/components/ScoreDisplay";
import { useGameLoop } from "@/hooks/useGameLoop";

export default function Index() {
  const [score, setScore] = useState(0);
  const [paused, setPaused] = useState(false);

  useGameLoop(() => {
    if (!paused) setScore((s) => s + 1);
  });

  const handlePause = () => setPaused(!paused);

  return (
    <div className="game">
      <GameBoard />
      <ScoreDisplay score={score} />
      <button onClick={handlePause}>Pause</button>
    </div>
  );
}
"""

GAME_BOARD = """import Player from "./Player";
import { BOARD_SIZE } from "@/lib/constants";

export default function GameBoard() {
  return (
    <div className="board" style={{ width: BOARD_SIZE }}>
      <Player />
    </div>
  );
}
"""

PLAYER = """import { useState } from "react";
import { clamp } from "@/lib/math";
import { BOARD_SIZE, PLAYER_SPEED } from "@/lib/constants";

export default function Player() {
  const [x, setX] = useState(0);
  const move = (dx: number) => setX(clamp(x + dx * PLAYER_SPEED, 0, BOARD_SIZE));
  return <div className="player" style={{ left: x }} onClick={() => move(1)} />;
}
"""

SCORE_DISPLAY = """interface ScoreDisplayProps {
  score: number;
}

export const ScoreDisplay = ({ score }: ScoreDisplayProps) => {
  return <div className="score">Score: {score}</div>;
};
"""

GAME_LOOP = """import { useEffect } from "react";

export function useGameLoop(tick: () => void, interval = 100) {
  useEffect(() => {
    const id = setInterval(tick, interval);
    return () => clearInterval(id);
  }, [tick, interval]);
}
"""

CONSTANTS = """export const BOARD_SIZE = 400;
export const PLAYER_SPEED = 5;
"""

MATH = """export function clamp(value: number, min: number, max: number): number {
  return Math.min(Math.max(value, min), max);
}
"""

APP = """import Index from "./pages/Index";

export default function App() {
  return <Index />;
}
"""

STYLES = """.game { display: flex; }
.player { background: red; }
"""

PACKAGE_JSON = """{"name": "snake", "dependencies": {"react": "^18.2.0"}}
"""


def _sample_files() -> dict[str, str]:
    return {
        "/src/pages/Index.tsx": INDEX_PAGE,
        "/src/components/GameBoard.tsx": GAME_BOARD,
        "/src/components/Player.tsx": PLAYER,
        "/src/components/ScoreDisplay.tsx": SCORE_DISPLAY,
        "/src/hooks/useGameLoop.ts": GAME_LOOP,
        "/src/lib/constants.ts": CONSTANTS,
        "/src/lib/math.ts": MATH,
        "/src/App.tsx": APP,
        "/src/index.css": STYLES,
        "/package.json": PACKAGE_JSON,
    }


@pytest.fixture
def sample_files() -> dict[str, str]:
    """A small React/TS game as a ``path -> content`` map."""
    return _sample_files()


@pytest.fixture
def large_component() -> str:
    """A component well past the outline and large-file thresholds."""
    lines = [
        'import { useState } from "react";',
        'import { clamp } from "@/lib/math";',
        "",
        "interface EnemyProps {",
        "  speed: number;",
        "  color: string;",
        "}",
        "",
        "export default function Enemy({ speed, color }: EnemyProps) {",
        "  const [y, setY] = useState(0);",
        "  const handleHit = () => setY(0);",
        "  const advance = (dy: number) => setY(clamp(y + dy * speed, 0, 400));",
    ]
    lines += [f"  // step {i}: enemy patrols the board" for i in range(200)]
    lines += [
        "  return <div className={color} onClick={handleHit} />;",
        "}",
    ]
    return "\n".join(lines) + "\n"


@pytest.fixture
def memory_store() -> InMemoryChangeStore:
    return InMemoryChangeStore()


@pytest.fixture
def sqlite_store(tmp_path: Path):
    store = SQLiteChangeStore(tmp_path / "changes.db")
    yield store
    store.close()


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """The sample project written to disk, plus a few files the scan must skip."""
    for path, content in _sample_files().items():
        target = tmp_path / path.lstrip("/")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)

    (tmp_path / "node_modules" / "react").mkdir(parents=True)
    (tmp_path / "node_modules" / "react" / "index.js").write_text("module.exports = {};\n")
    (tmp_path / "dist").mkdir()
    (tmp_path / "dist" / "bundle.js").write_text("console.log('built');\n")
    (tmp_path / "README.md").write_text("# Snake\n")
    return tmp_path
