"""
Shared fixtures. The app reads its settings at import time, so the test
environment is fixed here before anything imports it.
"""
import os
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("TASK_QUEUE", "inline")
os.environ.setdefault("AI_THINK_DELAY", "0")

from ultimate.logic import UltimateTicTacToe
from ultimate.session import RenderSink


class RecordingSink(RenderSink):
    """Keeps what a session drew, like a browser would."""

    def __init__(self):
        self.cells = {}
        self.outcomes = {}
        self.playable = None
        self.status = None
        self.undo_enabled = None
        self.last_move = None

    def mark_cell(self, board, cell, symbol): self.cells[(board, cell)] = symbol
    def clear_cell(self, board, cell): self.cells.pop((board, cell), None)
    def mark_board(self, board, outcome): self.outcomes[board] = outcome
    def mark_playable(self, boards): self.playable = list(boards)
    def show_status(self, text): self.status = text
    def set_undo_enabled(self, enabled): self.undo_enabled = enabled
    def highlight_last_move(self, last_move): self.last_move = last_move


def play(game, moves):
    """Apply (board, cell) pairs for whoever is to move."""
    for b, c in moves:
        game.apply_move(b, c)
    return game


# X takes the top row of board 0 on move 9, O playing elsewhere in between.
TOP_ROW_BOARD_0 = [(4, 4), (4, 0), (0, 0), (0, 4), (4, 1), (1, 0), (0, 2), (2, 0), (0, 1)]


def seed_boards(game, outcomes):
    """Write decided sub-boards straight into the engine (for end-game setups)."""
    fills = {
        "X": ["X", "X", "X", "O", "O", None, None, None, None],
        "O": ["O", "O", "O", "X", "X", None, None, None, None],
        "D": ["X", "O", "X", "X", "O", "O", "O", "X", "X"],
    }
    for b, outcome in outcomes.items():
        game.boards[b] = list(fills[outcome])
        game.board_winners[b] = outcome
    return game


@pytest.fixture
def game():
    return UltimateTicTacToe()


@pytest.fixture
def sink():
    return RecordingSink()
