"""One participant's game: engine, render sink, computer opponent and log sync."""
import logging

from .ai import AI_THINK_DELAY, get_ai_move
from .board import DRAW
from .config import LOCAL, AI, REMOTE
from .errors import ConfigError, MoveError, NothingToUndo
from .logic import UltimateTicTacToe
from .sync import SyncAdapter
from .tasks import InlineQueue

logger = logging.getLogger(__name__)


class RenderSink:
    """Where a session draws. Every capability defaults to doing nothing."""

    def mark_cell(self, board, cell, symbol): pass
    def clear_cell(self, board, cell): pass
    def mark_board(self, board, outcome): pass      # outcome None means back in play
    def mark_playable(self, boards): pass
    def show_status(self, text): pass
    def set_undo_enabled(self, enabled): pass
    def highlight_last_move(self, last_move): pass  # [board, cell] or None


def status_text(game, mode, local_symbol):
    if game.game_winner == DRAW: return "It's a tie!"
    if game.game_winner: return f"{game.game_winner} wins the Ultimate Tic-Tac-Toe!"
    p = game.current_player
    if mode == LOCAL: return f"Player {p}'s turn"
    if p == local_symbol: return f"Your turn ({p})"
    return f"Computer's turn ({p})" if mode == AI else f"Opponent's turn ({p})"


class GameSession:
    """Owns a fresh UltimateTicTacToe and routes every change to it through `queue`.

    Callers that care about ordering submit `click`/`undo` to `session.queue`
    rather than calling them directly; remote moves and the computer's reply
    are queued by the session itself.
    """

    def __init__(self, config, sink=None, queue=None, log=None, rng=None,
                 think_delay=AI_THINK_DELAY, origin_id=None):
        self.config = config
        self.sink = sink or RenderSink()
        self.queue = queue if queue is not None else InlineQueue()
        self.rng = rng
        self.think_delay = think_delay
        self.game = UltimateTicTacToe()
        self.sync = None
        self.refresh()
        if config.mode == REMOTE:
            if log is None:
                raise ConfigError("remote play needs a move log")
            self.sync = SyncAdapter(self.game, log, origin_id=origin_id,
                                    submit=self.queue.submit, on_applied=self._render)
        elif config.mode == AI and self.game.current_player == config.ai_symbol:
            self._schedule_ai()

    def status(self):
        return status_text(self.game, self.config.mode, self.config.local_symbol)

    def _my_turn(self):
        if self.config.mode == LOCAL: return True
        return self.game.current_player == self.config.local_symbol

    def click(self, b, c):
        """Human input. Illegal or out-of-turn clicks are ignored."""
        if self.game.game_winner or not self._my_turn(): return False
        try:
            t = self.game.apply_move(b, c)
        except MoveError as e:
            logger.debug("ignored click %s/%s: %s", b, c, e)
            return False
        self._render(t)
        if self.sync: self.sync.publish(t.record)
        if self.config.mode == AI and not self.game.game_winner:
            self._schedule_ai()
        return True

    def undo(self):
        """Take back the last move. Against the computer, take back until it is
        the human's turn again. Never published to the move log."""
        g = self.game
        try:
            self._render(g.undo_move())
        except NothingToUndo:
            return False
        if self.config.mode == AI:
            while g.current_player == self.config.ai_symbol and g.can_undo:
                self._render(g.undo_move())
            if g.current_player == self.config.ai_symbol:
                self._schedule_ai()
        return True

    def _schedule_ai(self):
        self.queue.submit(self._ai_turn, self.think_delay)

    def _ai_turn(self):
        g = self.game
        # Undo may have run while this move was waiting.
        if g.game_winner or g.current_player != self.config.ai_symbol:
            logger.debug("stale computer move dropped")
            return
        move = get_ai_move(g, self.rng)
        if move is None:
            logger.warning("computer found no legal move in a live game")
            return
        try:
            t = g.apply_move(*move)
        except MoveError as e:
            logger.warning("computer move %s refused: %s", move, e)
            return
        self._render(t)

    def _render(self, t):
        r, g, s = t.record, self.game, self.sink
        if t.undone: s.clear_cell(r.board, r.cell)
        else: s.mark_cell(r.board, r.cell, r.symbol)
        if t.board_changed: s.mark_board(r.board, t.board_outcome)
        s.highlight_last_move(g.last_move)
        s.mark_playable(g.playable_boards())
        s.show_status(self.status())
        s.set_undo_enabled(g.can_undo)

    def refresh(self):
        """Draw the current state onto a blank surface."""
        g, s = self.game, self.sink
        for b in range(9):
            for c in range(9):
                if g.boards[b][c]: s.mark_cell(b, c, g.boards[b][c])
            if g.board_winners[b]: s.mark_board(b, g.board_winners[b])
        s.highlight_last_move(g.last_move)
        s.mark_playable(g.playable_boards())
        s.show_status(self.status())
        s.set_undo_enabled(g.can_undo)

    def state(self):
        s = self.game.state()
        s["mode"] = self.config.mode
        s["localSymbol"] = self.config.local_symbol
        s["room"] = self.config.room
        s["status"] = self.status()
        return s

    def close(self):
        if self.sync: self.sync.close()
        self.queue.close()
