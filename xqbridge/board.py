"""
Thin container for the host-side xiangqi board.

The host owns a flat list of 90 cells (row-major over 10 rows x 9 columns,
black's back rank on row 0). XiangqiBoard guards the length invariant and
gives the rest of the codebase row/col helpers without exposing the list.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from xqbridge.events import (
    BOARD_CELLS,
    BOARD_COLS,
    BOARD_ROWS,
    PIECE_TYPES,
    SIDES,
    Piece,
    Side,
)

_BACK_RANK = ("R", "H", "E", "A", "K", "A", "E", "H", "R")


def index_of(row: int, col: int) -> int:
    return row * BOARD_COLS + col


def row_col(index: int) -> tuple[int, int]:
    return divmod(index, BOARD_COLS)


class XiangqiBoard:
    """Immutable view over 90 cells; each cell is None or a Piece."""

    def __init__(self, cells: Sequence[Piece | None]) -> None:
        if len(cells) != BOARD_CELLS:
            raise ValueError(
                f"A xiangqi board has exactly {BOARD_CELLS} cells, got {len(cells)}"
            )
        for i, cell in enumerate(cells):
            if cell is None:
                continue
            if not isinstance(cell, Piece):
                raise ValueError(f"Cell {i} must be a Piece or None, got {cell!r}")
            if cell.type not in PIECE_TYPES:
                raise ValueError(f"Cell {i} has unknown piece type {cell.type!r}")
            if cell.side not in SIDES:
                raise ValueError(f"Cell {i} has unknown side {cell.side!r}, expected 'r' or 'b'")
        self._cells: tuple[Piece | None, ...] = tuple(cells)

    @classmethod
    def empty(cls) -> XiangqiBoard:
        return cls([None] * BOARD_CELLS)

    @classmethod
    def starting(cls) -> XiangqiBoard:
        cells: list[Piece | None] = [None] * BOARD_CELLS
        for side, back, cannon, pawn in (("b", 0, 2, 3), ("r", 9, 7, 6)):
            for col, kind in enumerate(_BACK_RANK):
                cells[index_of(back, col)] = Piece(kind, side)  # type: ignore[arg-type]
            for col in (1, 7):
                cells[index_of(cannon, col)] = Piece("C", side)  # type: ignore[arg-type]
            for col in (0, 2, 4, 6, 8):
                cells[index_of(pawn, col)] = Piece("P", side)  # type: ignore[arg-type]
        return cls(cells)

    @classmethod
    def from_dicts(cls, raw: Sequence[dict | None]) -> XiangqiBoard:
        """Build from JSON-style cells: null or {"type": "K", "side": "r"}."""
        cells: list[Piece | None] = []
        for i, item in enumerate(raw):
            if item is None:
                cells.append(None)
                continue
            try:
                cells.append(Piece(type=item["type"], side=item["side"]))
            except (KeyError, TypeError) as exc:
                raise ValueError(f"Cell {i} is not a valid piece: {item!r}") from exc
        return cls(cells)

    # ------------------------------------------------------------------ #
    # Queries                                                              #
    # ------------------------------------------------------------------ #

    @property
    def cells(self) -> tuple[Piece | None, ...]:
        return self._cells

    def __len__(self) -> int:
        return BOARD_CELLS

    def __getitem__(self, index: int) -> Piece | None:
        return self._cells[index]

    def __iter__(self) -> Iterator[Piece | None]:
        return iter(self._cells)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, XiangqiBoard):
            return self._cells == other._cells
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._cells)

    def piece_at(self, row: int, col: int) -> Piece | None:
        if not (0 <= row < BOARD_ROWS and 0 <= col < BOARD_COLS):
            raise IndexError(f"Square ({row}, {col}) is off the board")
        return self._cells[index_of(row, col)]

    def pieces(self, side: Side | None = None) -> list[tuple[int, Piece]]:
        return [
            (i, p) for i, p in enumerate(self._cells)
            if p is not None and (side is None or p.side == side)
        ]

    def rows(self) -> list[tuple[Piece | None, ...]]:
        return [
            self._cells[r * BOARD_COLS:(r + 1) * BOARD_COLS]
            for r in range(BOARD_ROWS)
        ]

    def __repr__(self) -> str:
        return f"XiangqiBoard(pieces={len(self.pieces())})"
