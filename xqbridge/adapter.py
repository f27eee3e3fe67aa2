"""
EngineAdapter: the host-facing entry point.

Host contract (never raises):
    ready = await adapter.init_engine()
    move  = await adapter.get_best_move(board, "r")   # HostMove | None

Per call: ensure the engine is loaded (single-flight) -> serialize the board ->
build the engine position -> time-bounded search in a worker thread ->
decode and range-check the result.

Load failures surface from ensure_loaded(). Everything after a successful
load is absorbed into a SearchOutcome with a typed failure kind, and
get_best_move() reports it to the host only as None.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable, Sequence

from xqbridge.config import EngineConfig
from xqbridge.engines import create_engine
from xqbridge.engines.base import EngineCapabilities, EngineError
from xqbridge.events import FailureKind, HostMove, Piece, SearchOutcome, Side
from xqbridge.loader import EngineLoader
from xqbridge.translator import decode_move, serialize

logger = logging.getLogger(__name__)

CapabilitiesFactory = Callable[[], EngineCapabilities | None]


class EngineAdapter:
    """
    Args:
        loader: Single-flight loader for the engine runtime.
        capabilities: Called after a successful load; returns the engine's
                      capabilities or None if any required one is missing.
        hash_level: Transposition table size hint passed to every search.
        max_depth: Depth cap; generous so the time limit is what ends a search.
        time_limit_ms: Wall-clock budget per search.
    """

    def __init__(
        self,
        loader: EngineLoader,
        capabilities: CapabilitiesFactory,
        *,
        hash_level: int = 15,
        max_depth: int = 64,
        time_limit_ms: int = 900,
    ) -> None:
        self._loader = loader
        self._capabilities = capabilities
        self.hash_level = hash_level
        self.max_depth = max_depth
        self.time_limit_ms = time_limit_ms
        # One search at a time unless the engine is reentrant. Held by the worker
        # thread for the whole search, regardless of caller cancellation.
        self._search_lock = threading.Lock()

    @classmethod
    def from_config(cls, engine_cfg: EngineConfig) -> EngineAdapter:
        engine = create_engine(engine_cfg)
        return cls(
            EngineLoader(engine.load_steps()),
            engine.capabilities,
            hash_level=engine_cfg.hash_level,
            max_depth=engine_cfg.max_depth,
            time_limit_ms=engine_cfg.time_limit_ms,
        )

    @property
    def loader(self) -> EngineLoader:
        return self._loader

    # ------------------------------------------------------------------ #
    # Lifecycle                                                            #
    # ------------------------------------------------------------------ #

    async def ensure_loaded(self) -> None:
        """
        Raises:
            EngineError(kind="load_failure"): so the caller can retry or degrade.
        """
        await self._loader.ensure_loaded()

    async def init_engine(self) -> bool:
        """True once the engine is loaded and exposes every required capability."""
        try:
            await self._loader.ensure_loaded()
        except EngineError as exc:
            logger.warning("Engine unavailable: %s", exc)
            return False
        if self._capabilities() is None:
            logger.warning("Engine loaded but required capabilities are missing")
            return False
        return True

    # ------------------------------------------------------------------ #
    # Search                                                               #
    # ------------------------------------------------------------------ #

    async def get_best_move(self, board: Sequence[Piece | None], side: Side) -> HostMove | None:
        outcome = await self.best_move(board, side)
        return outcome.move

    async def best_move(self, board: Sequence[Piece | None], side: Side) -> SearchOutcome:
        """Run one search and report either the move or why there is none."""
        started = time.perf_counter()

        def failed(kind: FailureKind, detail: str) -> SearchOutcome:
            elapsed = (time.perf_counter() - started) * 1000
            logger.warning("best_move produced no move [%s]: %s", kind, detail)
            return SearchOutcome(failure=kind, detail=detail, elapsed_ms=elapsed)

        try:
            await self._loader.ensure_loaded()
        except EngineError as exc:
            return failed("load_failure", str(exc))

        caps = self._capabilities()
        if caps is None:
            return failed("engine_unavailable", "required engine capabilities are missing")

        try:
            fen = serialize(board, side)
        except (ValueError, TypeError, AttributeError) as exc:
            return failed("invalid_board", str(exc))

        try:
            mv = await self._search(caps, fen)
        except Exception as exc:
            logger.debug("Search raised for %s", fen, exc_info=True)
            return failed("search_failure", f"{type(exc).__name__}: {exc}")

        try:
            move = decode_move(mv, caps)
        except Exception as exc:
            return failed("invalid_result", f"could not decode {mv!r}: {exc}")
        if move is None:
            if not mv:
                return failed("invalid_result", "engine returned the null move")
            return failed("invalid_result", f"move {mv!r} decodes outside the board")

        elapsed = (time.perf_counter() - started) * 1000
        logger.info("best_move %s -> %d-%d (%.0f ms)", fen, move.src, move.dst, elapsed)
        return SearchOutcome(move=move, elapsed_ms=elapsed)

    async def _search(self, caps: EngineCapabilities, fen: str) -> int:
        def run() -> int:
            position = caps.make_position(fen)
            return caps.search(position, self.hash_level, self.max_depth, self.time_limit_ms)

        def work() -> int:
            if caps.reentrant:
                return run()
            with self._search_lock:
                return run()

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, work)
