"""
FastAPI application: the HTTP boundary for browser-based hosts.

Exposes:
  GET  /api/engine/status      Loader state, attempt count, last load error
  POST /api/engine/init        {"ready": bool}; never fails
  POST /api/engine/best-move   {"board": [90 cells], "side": "r"} or {"fen": "..."}
                               → {"move": {"from", "to"} | null, "failure": kind | null}

Hosts treat "move": null as "engine declines or cannot move" and fall back
to their own move logic. Any HTTP client (a browser board, another service)
can call /api directly.
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import os
from datetime import date, datetime
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.responses import Response

from xqbridge.adapter import EngineAdapter
from xqbridge.board import XiangqiBoard
from xqbridge.config import Config, configure_logging, load_config
from xqbridge.events import Side
from xqbridge.translator import parse_position

_CONFIG_PATH = Path(os.environ.get("XQBRIDGE_CONFIG", "config.yaml"))

config = load_config(_CONFIG_PATH) if _CONFIG_PATH.exists() else Config()
adapter = EngineAdapter.from_config(config.engine)

logger = logging.getLogger("xqbridge")

app = FastAPI(title="xqbridge")
# Strong references to fire-and-forget tasks so they are not collected mid-flight.
_background_tasks: set[asyncio.Task] = set()


@app.on_event("startup")
async def _startup() -> None:
    """Set up logging and start loading the engine so the first request is fast."""
    configure_logging(config)
    logger.info("Preloading engine scripts: %s", config.engine.scripts.load_order())
    task = asyncio.create_task(adapter.init_engine())
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)


def _to_json(data: dict) -> str:
    """json.dumps with datetime → ISO-string support."""
    def _default(obj: object) -> str:
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
    return json.dumps(data, default=_default)


def _parse_request(payload: dict) -> tuple[XiangqiBoard, Side]:
    """Pull a board and side out of a best-move request, or raise HTTPException(400)."""
    try:
        if payload.get("fen"):
            board, side = parse_position(str(payload["fen"]))
            if payload.get("side"):
                side = payload["side"]
        else:
            raw_board = payload.get("board")
            if not isinstance(raw_board, list):
                raise ValueError("board (list of 90 cells) or fen is required")
            board = XiangqiBoard.from_dicts(raw_board)
            side = payload.get("side", "r")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if side not in ("r", "b"):
        raise HTTPException(status_code=400, detail=f"side must be 'r' or 'b', got {side!r}")
    return board, side


# --------------------------------------------------------------------------- #
# REST                                                                         #
# --------------------------------------------------------------------------- #

@app.get("/api/engine/status")
def get_status() -> Response:
    status = dataclasses.asdict(adapter.loader.status())
    return Response(content=_to_json(status), media_type="application/json")


@app.post("/api/engine/init")
async def init_engine() -> dict:
    return {"ready": await adapter.init_engine()}


@app.post("/api/engine/best-move")
async def best_move(payload: dict) -> dict:
    board, side = _parse_request(payload)
    outcome = await adapter.best_move(board.cells, side)
    return {
        "move": outcome.move.as_dict() if outcome.move else None,
        "failure": outcome.failure,
        "elapsed_ms": round(outcome.elapsed_ms, 1),
    }
