from dataclasses import dataclass
from typing import Optional

from .board import X, SYMBOLS, other
from .errors import ConfigError

LOCAL, AI, REMOTE = "local", "ai", "remote"
MODES = (LOCAL, AI, REMOTE)

# Mode names sent by the old browser client.
_MODE_ALIASES = {"two": LOCAL, "computer": AI}


@dataclass(frozen=True)
class GameConfig:
    """Chosen once before a game starts."""
    mode: str = LOCAL
    local_symbol: str = X
    room: Optional[str] = None

    def __post_init__(self):
        if self.mode not in MODES:
            raise ConfigError(f"unknown mode {self.mode!r}")
        if self.local_symbol not in SYMBOLS:
            raise ConfigError(f"symbol must be X or O, not {self.local_symbol!r}")
        if self.mode == REMOTE and not self.room:
            raise ConfigError("remote play needs a room code")

    @property
    def ai_symbol(self):
        return other(self.local_symbol) if self.mode == AI else None

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ConfigError("settings must be an object")
        mode = str(data.get("mode") or LOCAL).strip().lower()
        mode = _MODE_ALIASES.get(mode, mode)
        symbol = str(data.get("symbol") or X).strip().upper()
        room = str(data.get("room") or "").strip() or None
        return cls(mode=mode, local_symbol=symbol, room=room if mode == REMOTE else None)
