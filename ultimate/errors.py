class MoveError(Exception):
    """A move the engine refused. Expected and recoverable, never fatal."""


class InvalidMove(MoveError, ValueError):
    """Index out of 0..8 or a symbol other than X/O."""


class GameOver(MoveError):
    pass


class WrongBoard(MoveError):
    pass


class BoardAlreadyDecided(MoveError):
    pass


class CellOccupied(MoveError):
    pass


class UndoError(Exception):
    pass


class NothingToUndo(UndoError):
    pass


class ConfigError(ValueError):
    pass
