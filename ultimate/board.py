"""Board model: win patterns shared by sub-boards and the meta-board.

Cells hold None, "X" or "O". Sub-board outcomes hold None (still in play),
"X", "O" or "D" (drawn), so the same test runs on both levels.
"""

X, O = "X", "O"
DRAW = "D"
SYMBOLS = (X, O)

WIN_LINES = [
    (0,1,2),(3,4,5),(6,7,8),
    (0,3,6),(1,4,7),(2,5,8),
    (0,4,8),(2,4,6)
]


def other(symbol):
    return O if symbol == X else X


def winning_line(cells, symbol):
    """Return the first triple fully held by `symbol`, or None."""
    for a, b, c in WIN_LINES:
        if cells[a] == cells[b] == cells[c] == symbol:
            return (a, b, c)
    return None


def evaluate_line(cells, symbol):
    return winning_line(cells, symbol) is not None


def outcome_of(cells, symbol=None):
    """Outcome token for a 3x3 grid. With `symbol`, only that side is tested
    (only the mover can complete a line with the mark just placed)."""
    for s in ((symbol,) if symbol else SYMBOLS):
        if evaluate_line(cells, s):
            return s
    if all(cells):
        return DRAW
    return None
