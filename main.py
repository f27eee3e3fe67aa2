"""
xqbridge: command-line entry point.

Wires together:  config → engine adapter → best-move search → CLI display

Usage:
    uv run python main.py
    uv run python main.py --fen "rheakaehr/9/1c5c1/p1p1p1p1p/9/9/P1P1P1P1P/1C5C1/9/RHEAKAEHR w"
    uv run python main.py --side b --config ./config.yaml
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from xqbridge.adapter import EngineAdapter
from xqbridge.board import XiangqiBoard
from xqbridge.cli.display import console, display_event
from xqbridge.config import configure_logging, load_config
from xqbridge.events import Side, SuggestionEvent
from xqbridge.translator import parse_position, serialize


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ask a xiangqi engine for its best move.")
    parser.add_argument("--fen", help="Position string; defaults to the opening position")
    parser.add_argument("--side", choices=("r", "b"), help="Side to move (overrides the FEN marker)")
    parser.add_argument("--config", default="config.yaml", help="Path to config.yaml")
    return parser.parse_args(argv)


async def _main(args: argparse.Namespace) -> int:
    try:
        config = load_config(Path(args.config))
    except FileNotFoundError as exc:
        console.print(f"[red]Error:[/] {exc}")
        return 1
    except ValueError as exc:
        console.print(f"[red]Config error:[/] {exc}")
        return 1

    configure_logging(config)

    if args.fen:
        try:
            board, side = parse_position(args.fen)
        except ValueError as exc:
            console.print(f"[red]Bad position:[/] {exc}")
            return 1
    else:
        board, side = XiangqiBoard.starting(), "r"
    if args.side:
        side = args.side
    side_to_move: Side = side

    adapter = EngineAdapter.from_config(config.engine)

    ready = await adapter.init_engine()
    display_event(adapter.loader.status())
    if not ready:
        return 2

    outcome = await adapter.best_move(board.cells, side_to_move)
    display_event(
        SuggestionEvent(
            cells=board.cells,
            side=side_to_move,
            position=serialize(board.cells, side_to_move),
            outcome=outcome,
        )
    )
    return 0 if outcome.ok else 3


def main() -> None:
    args = _parse_args()
    sys.exit(asyncio.run(_main(args)))


if __name__ == "__main__":
    main()
