"""
Board/move translation between host format and engine format.

Host side:   90 cells, row-major, index = row * 9 + col, black on row 0.
Engine side: a FEN-like string (rows joined by '/', empty runs as digits,
             uppercase = red, trailing " w" / " b" side marker) and squares
             on a 16-wide grid offset by FILE_LEFT / RANK_TOP.

Everything here is pure and deterministic, so it is tested on its own,
independently of search timing.
"""

from __future__ import annotations

from collections.abc import Sequence

from xqbridge.board import XiangqiBoard, index_of, row_col
from xqbridge.engines.base import FILE_LEFT, NULL_MOVE, RANK_TOP, EngineCapabilities
from xqbridge.events import BOARD_CELLS, BOARD_COLS, BOARD_ROWS, HostMove, Piece, Side

PIECE_CHARS: dict[str, str] = {
    "K": "k",  # King
    "A": "a",  # Advisor
    "E": "e",  # Elephant
    "H": "h",  # Horse
    "R": "r",  # Rook
    "C": "c",  # Cannon
    "P": "p",  # Pawn
}
_CHAR_PIECES = {ch: kind for kind, ch in PIECE_CHARS.items()}

# Red moves first and maps to the engine's "white" marker. Fixed, never inferred.
SIDE_MARKERS: dict[str, str] = {"r": "w", "b": "b"}
_MARKER_SIDES = {marker: side for side, marker in SIDE_MARKERS.items()}

ROW_DELIMITER = "/"


# --------------------------------------------------------------------------- #
# Host board -> engine position                                                #
# --------------------------------------------------------------------------- #

def piece_to_char(piece: Piece) -> str:
    try:
        ch = PIECE_CHARS[piece.type]
    except KeyError:
        raise ValueError(f"Unknown piece type: {piece.type!r}") from None
    if piece.side == "r":
        return ch.upper()
    if piece.side == "b":
        return ch
    raise ValueError(f"Unknown piece side: {piece.side!r}")


def placement(board: Sequence[Piece | None]) -> str:
    """Row-by-row placement field, without a side marker."""
    if len(board) != BOARD_CELLS:
        raise ValueError(f"Board must have {BOARD_CELLS} cells, got {len(board)}")
    rows: list[str] = []
    for r in range(BOARD_ROWS):
        row = ""
        empty = 0
        for c in range(BOARD_COLS):
            p = board[index_of(r, c)]
            if p is None:
                empty += 1
                continue
            if empty:
                row += str(empty)
                empty = 0
            row += piece_to_char(p)
        if empty:
            row += str(empty)
        rows.append(row)
    return ROW_DELIMITER.join(rows)


def ensure_side_suffix(position: str, side: Side) -> str:
    """
    Attach the side-to-move marker.

    If position already carries a marker (anything after the first space),
    it is replaced rather than appended to.
    """
    suffix = " " + SIDE_MARKERS[side]
    sp = position.find(" ")
    if sp >= 0:
        return position[:sp] + suffix
    return position + suffix


def serialize(board: Sequence[Piece | None], side: Side) -> str:
    """Serialize a 90-cell board plus side to move into the engine's position string."""
    if side not in SIDE_MARKERS:
        raise ValueError(f"side must be 'r' or 'b', got {side!r}")
    return ensure_side_suffix(placement(board), side)


def parse_position(text: str) -> tuple[XiangqiBoard, Side]:
    """
    Parse a position string produced by serialize() (or typed by a user).

    The side marker is optional and defaults to red.

    Raises:
        ValueError: wrong number of rows, a row not totalling 9 columns,
                    an unknown piece letter, or an unknown side marker.
    """
    fields = text.strip().split()
    if not fields:
        raise ValueError("Empty position string")
    rows = fields[0].split(ROW_DELIMITER)
    if len(rows) != BOARD_ROWS:
        raise ValueError(f"Expected {BOARD_ROWS} rows, got {len(rows)}")

    cells: list[Piece | None] = []
    for r, row in enumerate(rows):
        width = 0
        for ch in row:
            if ch.isdigit():
                run = int(ch)
                cells.extend([None] * run)
                width += run
                continue
            kind = _CHAR_PIECES.get(ch.lower())
            if kind is None:
                raise ValueError(f"Unknown piece letter {ch!r} in row {r}")
            cells.append(Piece(kind, "r" if ch.isupper() else "b"))  # type: ignore[arg-type]
            width += 1
        if width != BOARD_COLS:
            raise ValueError(f"Row {r} spans {width} columns, expected {BOARD_COLS}")

    side: Side = "r"
    if len(fields) > 1:
        marker = fields[1]
        if marker not in _MARKER_SIDES:
            raise ValueError(f"Unknown side marker {marker!r}")
        side = _MARKER_SIDES[marker]  # type: ignore[assignment]
    return XiangqiBoard(cells), side


# --------------------------------------------------------------------------- #
# Engine squares <-> host indices                                              #
# --------------------------------------------------------------------------- #

def encode_square(index: int) -> int:
    """Host cell index -> engine square (default 16-wide layout)."""
    if not 0 <= index < BOARD_CELLS:
        raise ValueError(f"Cell index out of range: {index}")
    row, col = row_col(index)
    return ((row + RANK_TOP) << 4) + col + FILE_LEFT


def decode_square(sq: int, caps: EngineCapabilities) -> int | None:
    """Engine square -> host cell index, or None for a margin / off-grid square."""
    col = caps.file_x(sq) - FILE_LEFT
    row = caps.rank_y(sq) - RANK_TOP
    if not (0 <= row < BOARD_ROWS and 0 <= col < BOARD_COLS):
        return None
    return index_of(row, col)


def decode_move(mv: int | None, caps: EngineCapabilities) -> HostMove | None:
    """
    Decode a packed engine move into host indices.

    Returns None for the null move, or when either endpoint lands outside
    the playable grid; a half-valid move is never returned.
    """
    if not mv or mv == NULL_MOVE:
        return None
    src = decode_square(caps.src(mv), caps)
    dst = decode_square(caps.dst(mv), caps)
    if src is None or dst is None:
        return None
    return HostMove(src=src, dst=dst)
