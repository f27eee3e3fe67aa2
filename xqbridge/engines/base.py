"""
Abstract engine capability interface.

The adapter never looks the engine up on a global. Whatever backs the
search (scripts run into a namespace, an in-process object, a test fake)
is wrapped in an EngineCapabilities instance and injected.

Square numbering is the engine's own: a 16-column grid where the playable
9x10 area starts at FILE_LEFT / RANK_TOP. Moves pack source and destination
into one integer; 0 is the null move.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any

from xqbridge.events import FailureKind

FILE_LEFT = 3
RANK_TOP = 3
NULL_MOVE = 0

LoadStep = Callable[[], Awaitable[None]]


class EngineCapabilities(ABC):
    """The four capabilities the adapter needs from an engine, plus two optional ones."""

    @abstractmethod
    def make_position(self, fen: str) -> Any:
        """Build the engine's position object from a serialized position string."""
        ...

    @abstractmethod
    def search(self, position: Any, hash_level: int, depth: int, millis: int) -> int:
        """
        Run an iterative-deepening search and return the packed best move.

        Args:
            position: Object returned by make_position().
            hash_level: Transposition table size hint (2**hash_level entries).
            depth: Upper bound on search depth.
            millis: Wall-clock budget; the engine returns its best-so-far move.

        Returns NULL_MOVE (0) when the engine has nothing to play.
        """
        ...

    @abstractmethod
    def src(self, mv: int) -> int:
        ...

    @abstractmethod
    def dst(self, mv: int) -> int:
        ...

    def file_x(self, sq: int) -> int:
        return sq & 15

    def rank_y(self, sq: int) -> int:
        return sq >> 4

    @property
    def reentrant(self) -> bool:
        """True if search() may run concurrently against the same engine state."""
        return False


class EngineError(Exception):
    """Raised when loading or driving the engine fails."""

    def __init__(self, kind: FailureKind, message: str, cause: Exception | None = None) -> None:
        self.kind = kind
        self.cause = cause
        super().__init__(f"[{kind}] {message}")
