"""
Rich-based CLI event consumer.

This is the ONLY place where terminal output happens.
It translates adapter events into formatted Rich output.
"""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from xqbridge.board import row_col
from xqbridge.events import (
    BOARD_COLS,
    BOARD_ROWS,
    AdapterEvent,
    EngineStatusEvent,
    Piece,
    SuggestionEvent,
)

console = Console(legacy_windows=False)

# Traditional glyphs, red then black
_GLYPHS: dict[tuple[str, str], str] = {
    ("K", "r"): "帥", ("K", "b"): "將",
    ("A", "r"): "仕", ("A", "b"): "士",
    ("E", "r"): "相", ("E", "b"): "象",
    ("H", "r"): "傌", ("H", "b"): "馬",
    ("R", "r"): "俥", ("R", "b"): "車",
    ("C", "r"): "炮", ("C", "b"): "砲",
    ("P", "r"): "兵", ("P", "b"): "卒",
}

_FAILURE_TEXT = {
    "load_failure": "engine could not be loaded",
    "engine_unavailable": "engine is missing required capabilities",
    "invalid_result": "engine returned no usable move",
    "search_failure": "engine search failed",
    "invalid_board": "board could not be serialized",
}


def display_event(event: AdapterEvent) -> None:
    """Dispatch an adapter event to the appropriate display function."""
    match event:
        case EngineStatusEvent():
            _engine_status(event)
        case SuggestionEvent():
            _suggestion(event)


# --------------------------------------------------------------------------- #
# Display functions                                                            #
# --------------------------------------------------------------------------- #

def _engine_status(event: EngineStatusEvent) -> None:
    styles = {"ready": "green", "loading": "yellow", "failed": "red", "unloaded": "dim"}
    style = styles.get(event.state, "white")
    body = f"[{style}]{event.state}[/]  [dim](attempts: {event.attempts})[/]"
    if event.last_error:
        body += f"\n[red]{event.last_error}[/]"
    console.print(
        Panel(body, title="[bold] Engine [/]", border_style=style, expand=False)
    )


def _suggestion(event: SuggestionEvent) -> None:
    outcome = event.outcome
    highlight: set[int] = set()
    if outcome.move is not None:
        highlight = {outcome.move.src, outcome.move.dst}

    console.print()
    console.print(
        Panel(
            render_board(event.cells, highlight),
            subtitle=f"[dim]{event.position}[/]",
            border_style="dim",
            expand=False,
        )
    )

    mover = "[bold red]Red[/]" if event.side == "r" else "[bold bright_black]Black[/]"
    if outcome.move is not None:
        src_row, src_col = row_col(outcome.move.src)
        dst_row, dst_col = row_col(outcome.move.dst)
        console.print(
            f"  [green]✓[/] {mover}: [bold]{outcome.move.src} → {outcome.move.dst}[/]"
            f"  [dim](row {src_row} col {src_col} → row {dst_row} col {dst_col},"
            f" {outcome.elapsed_ms:.0f} ms)[/]"
        )
    else:
        reason = _FAILURE_TEXT.get(outcome.failure or "", "no move")
        console.print(f"  [red]✗[/] {mover}: no move, {reason}")
        if outcome.detail:
            console.print(f"    [dim]{outcome.detail}[/]")


def render_board(cells: tuple[Piece | None, ...], highlight: set[int] | None = None) -> Table:
    """Render the 10x9 grid; highlighted cells get a reversed background."""
    highlight = highlight or set()
    table = Table(show_header=True, show_edge=False, box=None, padding=(0, 1))
    table.add_column("", style="dim", justify="right")
    for c in range(BOARD_COLS):
        table.add_column(str(c), justify="center")

    for r in range(BOARD_ROWS):
        row: list[Text | str] = [str(r)]
        for c in range(BOARD_COLS):
            i = r * BOARD_COLS + c
            piece = cells[i]
            if piece is None:
                label = Text("·", style="dim")
            else:
                glyph = _GLYPHS.get((piece.type, piece.side), "?")
                label = Text(glyph, style="bold red" if piece.side == "r" else "bold")
            if i in highlight:
                label.stylize("reverse")
            row.append(label)
        table.add_row(*row)
        if r == 4:
            table.add_row("", *(Text("~", style="blue") for _ in range(BOARD_COLS)))
    return table
