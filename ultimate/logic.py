from dataclasses import dataclass
from typing import Optional

from .board import X, DRAW, SYMBOLS, other, winning_line, outcome_of
from .errors import (MoveError, InvalidMove, GameOver, WrongBoard,
                     BoardAlreadyDecided, CellOccupied)
from .history import UndoStack


@dataclass(frozen=True)
class MoveRecord:
    """Everything needed to replay one move and to invert it."""
    board: int
    cell: int
    symbol: str
    prev_forced: Optional[int]
    prev_player: str

    def to_dict(self):
        return {"board": self.board, "cell": self.cell, "player": self.symbol}


@dataclass(frozen=True)
class Transition:
    """What a single apply or undo changed. Rendering and publishing read this
    instead of hooking into the engine."""
    record: MoveRecord
    undone: bool
    board_outcome: Optional[str]     # outcome of record.board after the change
    board_changed: bool              # that outcome differs from before
    game_winner: Optional[str]
    forced_board: Optional[int]
    current_player: str


def _is_index(i):
    return isinstance(i, int) and not isinstance(i, bool) and 0 <= i < 9

def _win_line(cells, outcome):
    return list(winning_line(cells, outcome)) if outcome in SYMBOLS else None


class UltimateTicTacToe:
    def __init__(self):
        self.boards = [[None]*9 for _ in range(9)]
        self.board_winners = [None]*9
        self.board_win_lines = [None]*9   # which 3 cells formed each mini-board win
        self.current_player = X
        self.forced_board = None
        self.game_winner = None
        self.game_win_line = None          # which 3 mini-boards formed the meta-win
        self.last_move = None              # [board, cell]
        self.move_history = UndoStack()

    @property
    def phase(self):
        if self.game_winner is None: return "in_progress"
        return "draw" if self.game_winner == DRAW else "won"

    @property
    def can_undo(self):
        return not self.move_history.is_empty()

    def check_game_winner(self, symbol):
        line = winning_line(self.board_winners, symbol)
        if line:
            self.game_win_line = list(line)
            return symbol
        if all(self.board_winners): return DRAW
        return None

    def apply_move(self, b, c, symbol=None):
        """Validate and play `symbol` (default: the player to move) at board b, cell c.

        Raises a MoveError subclass; checks run in a fixed order and the first
        failing one is reported.
        """
        if symbol is None: symbol = self.current_player
        if symbol not in SYMBOLS:
            raise InvalidMove(f"unknown symbol {symbol!r}")
        if not (_is_index(b) and _is_index(c)):
            raise InvalidMove(f"board/cell out of range: {b!r}, {c!r}")
        if self.game_winner:
            raise GameOver("game is already decided")
        if self.forced_board is not None and b != self.forced_board:
            raise WrongBoard(f"must play in board {self.forced_board}, not {b}")
        if self.board_winners[b]:
            raise BoardAlreadyDecided(f"board {b} is already decided")
        if self.boards[b][c] is not None:
            raise CellOccupied(f"board {b} cell {c} is taken")

        record = MoveRecord(b, c, symbol, self.forced_board, self.current_player)
        self.boards[b][c] = symbol
        self.move_history.push(record)
        self.last_move = [b, c]

        winner = outcome_of(self.boards[b], symbol)
        if winner:
            self.board_winners[b] = winner
            self.board_win_lines[b] = _win_line(self.boards[b], winner)
        self.game_winner = self.check_game_winner(symbol)
        if not self.game_winner:
            # The cell just played picks the opponent's board; a decided one means free choice.
            self.forced_board = c if self.board_winners[c] is None else None
            self.current_player = other(self.current_player)
        return self._transition(record, False, bool(winner))

    def make_move(self, b, c):
        """Play for the current player; refused moves are a silent False."""
        try:
            self.apply_move(b, c)
        except MoveError:
            return False
        return True

    def undo_move(self):
        """Revert the most recent move. Raises NothingToUndo on an empty history."""
        record = self.move_history.pop()
        b, c = record.board, record.cell
        before = self.board_winners[b]
        self.boards[b][c] = None
        self.board_winners[b] = outcome_of(self.boards[b])
        self.board_win_lines[b] = _win_line(self.boards[b], self.board_winners[b])
        self.forced_board = record.prev_forced
        self.current_player = record.prev_player
        self.game_winner = None
        self.game_win_line = None
        prev = self.move_history.peek()
        self.last_move = [prev.board, prev.cell] if prev else None
        return self._transition(record, True, before != self.board_winners[b])

    def _transition(self, record, undone, changed):
        return Transition(record=record, undone=undone,
                          board_outcome=self.board_winners[record.board],
                          board_changed=changed, game_winner=self.game_winner,
                          forced_board=self.forced_board,
                          current_player=self.current_player)

    def playable_boards(self):
        if self.game_winner: return []
        if self.forced_board is not None: return [self.forced_board]
        return [b for b in range(9) if not self.board_winners[b]]

    def get_valid_moves(self):
        moves = []
        for b in self.playable_boards():
            for c in range(9):
                if self.boards[b][c] is None: moves.append((b, c))
        return moves

    def filled_cells(self):
        return sum(cell is not None for board in self.boards for cell in board)

    def state(self):
        return {
            "boards": self.boards,
            "winners": self.board_winners,
            "boardWinLines": self.board_win_lines,
            "player": self.current_player,
            "forced": self.forced_board,
            "playable": self.playable_boards(),
            "phase": self.phase,
            "gameWinner": self.game_winner,
            "gameWinLine": self.game_win_line,
            "lastMove": self.last_move,
            "moveHistory": self.move_history.to_list(),
            "canUndo": self.can_undo,
        }
