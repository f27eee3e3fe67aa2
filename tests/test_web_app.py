import asyncio
import json
import unittest
from unittest.mock import patch

from fastapi import HTTPException

from xqbridge.adapter import EngineAdapter
from xqbridge.engines.base import EngineCapabilities
from xqbridge.loader import EngineLoader
from xqbridge.translator import encode_square
from xqbridge.web import app as web_app


class _Caps(EngineCapabilities):
    def __init__(self, result: int) -> None:
        self.result = result
        self.positions: list[str] = []

    def make_position(self, fen):
        self.positions.append(fen)
        return fen

    def search(self, position, hash_level, depth, millis):
        return self.result

    def src(self, mv):
        return mv & 255

    def dst(self, mv):
        return mv >> 8


def _adapter(caps: EngineCapabilities | None) -> EngineAdapter:
    return EngineAdapter(EngineLoader([]), lambda: caps)


class WebAppTests(unittest.IsolatedAsyncioTestCase):
    async def test_best_move_from_board_cells(self) -> None:
        caps = _Caps(encode_square(4) + (encode_square(13) << 8))
        board: list = [None] * 90
        board[4] = {"type": "K", "side": "r"}

        with patch.object(web_app, "adapter", _adapter(caps)):
            body = await web_app.best_move({"board": board, "side": "r"})

        self.assertEqual(body["move"], {"from": 4, "to": 13})
        self.assertIsNone(body["failure"])
        self.assertEqual(caps.positions, ["4K4/9/9/9/9/9/9/9/9/9 w"])

    async def test_best_move_from_fen_with_side_override(self) -> None:
        caps = _Caps(encode_square(4) + (encode_square(13) << 8))
        with patch.object(web_app, "adapter", _adapter(caps)):
            await web_app.best_move({"fen": "4k4/9/9/9/9/9/9/9/9/9 w", "side": "b"})

        self.assertEqual(caps.positions, ["4k4/9/9/9/9/9/9/9/9/9 b"])

    async def test_engine_failure_is_null_move_not_error(self) -> None:
        with patch.object(web_app, "adapter", _adapter(None)):
            body = await web_app.best_move({"fen": "4K4/9/9/9/9/9/9/9/9/9 w"})

        self.assertIsNone(body["move"])
        self.assertEqual(body["failure"], "engine_unavailable")

    async def test_init_engine(self) -> None:
        with patch.object(web_app, "adapter", _adapter(_Caps(0))):
            self.assertEqual(await web_app.init_engine(), {"ready": True})
        with patch.object(web_app, "adapter", _adapter(None)):
            self.assertEqual(await web_app.init_engine(), {"ready": False})

    async def test_startup_preload_is_held_until_done(self) -> None:
        adapter = _adapter(_Caps(0))
        with patch.object(web_app, "adapter", adapter), \
                patch.object(web_app, "configure_logging"):
            await web_app._startup()
            self.assertEqual(len(web_app._background_tasks), 1)
            task = next(iter(web_app._background_tasks))
            self.assertTrue(await task)
            await asyncio.sleep(0)

        self.assertTrue(adapter.loader.is_ready)
        self.assertEqual(web_app._background_tasks, set())

    def test_status_is_json(self) -> None:
        with patch.object(web_app, "adapter", _adapter(None)):
            response = web_app.get_status()
        data = json.loads(response.body)
        self.assertEqual(data["state"], "unloaded")
        self.assertEqual(data["attempts"], 0)

    def test_bad_requests_are_400(self) -> None:
        bad_payloads = [
            {},
            {"board": [None] * 10},
            {"board": [None] * 90, "side": "w"},
            {"fen": "not/a/position"},
            {"board": [{"type": "K", "side": "red"}] + [None] * 89},
            {"board": [{"type": "Q", "side": "r"}] + [None] * 89},
        ]
        for payload in bad_payloads:
            with self.assertRaises(HTTPException) as ctx:
                web_app._parse_request(payload)
            self.assertEqual(ctx.exception.status_code, 400)


if __name__ == "__main__":
    unittest.main()
