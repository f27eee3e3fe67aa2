import asyncio
import threading
import time
import unittest

from xqbridge.adapter import EngineAdapter
from xqbridge.board import XiangqiBoard
from xqbridge.engines.base import EngineCapabilities, EngineError
from xqbridge.events import HostMove, Piece
from xqbridge.loader import EngineLoader
from xqbridge.translator import encode_square


def _pack(src_sq: int, dst_sq: int) -> int:
    return src_sq + (dst_sq << 8)


class _FakeCaps(EngineCapabilities):
    def __init__(self, result: int = 0, *, raises: Exception | None = None,
                 delay: float = 0.0, reentrant: bool = False) -> None:
        self.result = result
        self.raises = raises
        self.delay = delay
        self._reentrant = reentrant
        self.positions: list[str] = []
        self.search_args: list[tuple[int, int, int]] = []
        self._active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    @property
    def reentrant(self) -> bool:
        return self._reentrant

    def make_position(self, fen):
        self.positions.append(fen)
        return fen

    def search(self, position, hash_level, depth, millis):
        with self._lock:
            self._active += 1
            self.max_active = max(self.max_active, self._active)
        try:
            self.search_args.append((hash_level, depth, millis))
            if self.delay:
                time.sleep(self.delay)
            if self.raises is not None:
                raise self.raises
            return self.result
        finally:
            with self._lock:
                self._active -= 1

    def src(self, mv):
        return mv & 255

    def dst(self, mv):
        return mv >> 8


def _adapter(caps: EngineCapabilities | None, steps=None, **kwargs) -> EngineAdapter:
    return EngineAdapter(EngineLoader(steps or []), lambda: caps, **kwargs)


def _king_board() -> XiangqiBoard:
    cells = [None] * 90
    cells[4] = Piece("K", "r")
    return XiangqiBoard(cells)


class EngineAdapterTests(unittest.IsolatedAsyncioTestCase):
    async def test_returns_decoded_move(self) -> None:
        caps = _FakeCaps(_pack(encode_square(0), encode_square(89)))
        adapter = _adapter(caps)

        move = await adapter.get_best_move(_king_board().cells, "r")

        self.assertEqual(move, HostMove(src=0, dst=89))
        self.assertEqual(caps.positions, ["4K4/9/9/9/9/9/9/9/9/9 w"])

    async def test_search_uses_configured_limits(self) -> None:
        caps = _FakeCaps(_pack(encode_square(4), encode_square(13)))
        adapter = _adapter(caps)
        await adapter.get_best_move(_king_board().cells, "b")
        self.assertEqual(caps.search_args, [(15, 64, 900)])
        self.assertTrue(caps.positions[0].endswith(" b"))

        custom = _FakeCaps(_pack(encode_square(4), encode_square(13)))
        await _adapter(custom, hash_level=10, max_depth=8, time_limit_ms=250).get_best_move(
            _king_board().cells, "r"
        )
        self.assertEqual(custom.search_args, [(10, 8, 250)])

    async def test_missing_capabilities_yield_none(self) -> None:
        adapter = _adapter(None)

        self.assertIsNone(await adapter.get_best_move(XiangqiBoard.starting().cells, "r"))
        outcome = await adapter.best_move(XiangqiBoard.starting().cells, "r")
        self.assertEqual(outcome.failure, "engine_unavailable")
        self.assertFalse(await adapter.init_engine())

    async def test_null_move_yields_none(self) -> None:
        adapter = _adapter(_FakeCaps(0))
        outcome = await adapter.best_move(_king_board().cells, "r")
        self.assertIsNone(outcome.move)
        self.assertEqual(outcome.failure, "invalid_result")
        self.assertIsNone(await adapter.get_best_move(_king_board().cells, "r"))

    async def test_out_of_range_move_is_discarded(self) -> None:
        margin = 0x22  # file 2, rank 2: inside the engine grid, outside the board
        adapter = _adapter(_FakeCaps(_pack(encode_square(4), margin)))
        outcome = await adapter.best_move(_king_board().cells, "r")
        self.assertIsNone(outcome.move)
        self.assertEqual(outcome.failure, "invalid_result")

    async def test_search_exception_is_absorbed(self) -> None:
        adapter = _adapter(_FakeCaps(raises=RuntimeError("table corrupted")))
        outcome = await adapter.best_move(_king_board().cells, "r")
        self.assertEqual(outcome.failure, "search_failure")
        self.assertIn("table corrupted", outcome.detail)
        self.assertIsNone(await adapter.get_best_move(_king_board().cells, "r"))

    async def test_load_failure(self) -> None:
        async def broken() -> None:
            raise EngineError("load_failure", "search script missing")

        adapter = _adapter(_FakeCaps(1), steps=[broken])

        self.assertFalse(await adapter.init_engine())
        outcome = await adapter.best_move(_king_board().cells, "r")
        self.assertEqual(outcome.failure, "load_failure")
        with self.assertRaises(EngineError) as ctx:
            await adapter.ensure_loaded()
        self.assertEqual(ctx.exception.kind, "load_failure")

    async def test_invalid_board_is_absorbed(self) -> None:
        adapter = _adapter(_FakeCaps(1))
        outcome = await adapter.best_move([None] * 12, "r")
        self.assertEqual(outcome.failure, "invalid_board")

    async def test_init_engine_true_when_ready(self) -> None:
        adapter = _adapter(_FakeCaps(1))
        self.assertTrue(await adapter.init_engine())
        self.assertTrue(adapter.loader.is_ready)

    async def test_concurrent_calls_share_one_load(self) -> None:
        loads = 0

        async def step() -> None:
            nonlocal loads
            await asyncio.sleep(0.01)
            loads += 1

        caps = _FakeCaps(_pack(encode_square(4), encode_square(13)))
        adapter = _adapter(caps, steps=[step])

        moves = await asyncio.gather(
            *(adapter.get_best_move(_king_board().cells, "r") for _ in range(10))
        )

        self.assertEqual(loads, 1)
        self.assertTrue(all(m == HostMove(4, 13) for m in moves))

    async def test_searches_are_serialized_by_default(self) -> None:
        caps = _FakeCaps(_pack(encode_square(4), encode_square(13)), delay=0.02)
        adapter = _adapter(caps)

        await asyncio.gather(*(adapter.get_best_move(_king_board().cells, "r") for _ in range(4)))

        self.assertEqual(caps.max_active, 1)
        self.assertEqual(len(caps.search_args), 4)

    async def test_cancelled_caller_does_not_release_the_engine_early(self) -> None:
        caps = _FakeCaps(_pack(encode_square(4), encode_square(13)), delay=0.3)
        adapter = _adapter(caps)

        first = asyncio.create_task(adapter.get_best_move(_king_board().cells, "r"))
        await asyncio.sleep(0.05)
        first.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await first

        move = await adapter.get_best_move(_king_board().cells, "r")

        self.assertEqual(move, HostMove(4, 13))
        self.assertEqual(caps.max_active, 1)
        self.assertEqual(len(caps.search_args), 2)

    async def test_reentrant_engine_skips_the_search_lock(self) -> None:
        caps = _FakeCaps(_pack(encode_square(4), encode_square(13)), reentrant=True)
        adapter = _adapter(caps)

        with adapter._search_lock:
            move = await adapter.get_best_move(_king_board().cells, "r")

        self.assertEqual(move, HostMove(4, 13))


if __name__ == "__main__":
    unittest.main()
