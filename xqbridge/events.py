"""
Typed values and event dataclasses shared by the adapter and its consumers.

The adapter returns these. The CLI, the web app, or a test harness consumes them.
Everything is frozen so values can cross async boundaries and be serialized
to JSON via dataclasses.asdict().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

Side = Literal["r", "b"]
PieceType = Literal["K", "A", "E", "H", "R", "C", "P"]
LoadState = Literal["unloaded", "loading", "ready", "failed"]
FailureKind = Literal[
    "load_failure",
    "engine_unavailable",
    "invalid_result",
    "search_failure",
    "invalid_board",
]

BOARD_ROWS = 10
BOARD_COLS = 9
BOARD_CELLS = BOARD_ROWS * BOARD_COLS

PIECE_TYPES: tuple[str, ...] = ("K", "A", "E", "H", "R", "C", "P")
SIDES: tuple[str, ...] = ("r", "b")


@dataclass(frozen=True)
class Piece:
    type: PieceType
    side: Side


@dataclass(frozen=True)
class HostMove:
    """A move in host coordinates: linear cell indices in [0, 90)."""
    src: int
    dst: int

    def as_dict(self) -> dict[str, int]:
        return {"from": self.src, "to": self.dst}


@dataclass(frozen=True)
class SearchOutcome:
    """
    Result of one search invocation.

    Exactly one of move / failure is set. get_best_move() collapses this to
    the move (or None); tests and diagnostics can inspect the failure kind.
    """
    move: HostMove | None = None
    failure: FailureKind | None = None
    detail: str = ""
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.move is not None


@dataclass(frozen=True)
class EngineStatusEvent:
    state: LoadState
    attempts: int
    last_error: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class SuggestionEvent:
    cells: tuple[Piece | None, ...]
    side: Side
    position: str        # serialized position sent to the engine
    outcome: SearchOutcome
    timestamp: datetime = field(default_factory=datetime.now)


# Union type for pattern matching in consumers
AdapterEvent = EngineStatusEvent | SuggestionEvent
