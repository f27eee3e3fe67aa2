import unittest

from rich.console import Console

from xqbridge.board import XiangqiBoard
from xqbridge.cli import display
from xqbridge.events import EngineStatusEvent, HostMove, SearchOutcome, SuggestionEvent


class DisplayTests(unittest.TestCase):
    def setUp(self) -> None:
        self.console = Console(record=True, width=100)
        self._orig = display.console
        display.console = self.console
        self.addCleanup(setattr, display, "console", self._orig)

    def test_render_board_has_river_row(self) -> None:
        table = display.render_board(XiangqiBoard.starting().cells)
        self.assertEqual(table.row_count, 11)

    def test_suggestion_with_move(self) -> None:
        board = XiangqiBoard.starting()
        display.display_event(
            SuggestionEvent(
                cells=board.cells,
                side="r",
                position="rheakaehr/... w",
                outcome=SearchOutcome(move=HostMove(64, 67), elapsed_ms=12.0),
            )
        )
        text = self.console.export_text()
        self.assertIn("64 → 67", text)
        self.assertIn("帥", text)

    def test_suggestion_without_move(self) -> None:
        display.display_event(
            SuggestionEvent(
                cells=XiangqiBoard.empty().cells,
                side="b",
                position="9/9/9/9/9/9/9/9/9/9 b",
                outcome=SearchOutcome(failure="invalid_result", detail="engine returned the null move"),
            )
        )
        text = self.console.export_text()
        self.assertIn("no move", text)
        self.assertIn("null move", text)

    def test_engine_status(self) -> None:
        display.display_event(EngineStatusEvent(state="failed", attempts=2, last_error="boom"))
        text = self.console.export_text()
        self.assertIn("failed", text)
        self.assertIn("boom", text)


if __name__ == "__main__":
    unittest.main()
