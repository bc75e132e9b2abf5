"""Move log sync between two peers.

A move log is an append-only ordered list of entries shared by the peers of a
room. Every peer subscribes to it, including to its own appends, so entries
carry the appender's origin id and a peer drops the ones it wrote itself.
Arrival order is the only ordering: a remote move that is no longer legal when
it arrives is logged and lost.
"""
import logging
import random
import string
from collections import deque

from .board import SYMBOLS
from .errors import MoveError

logger = logging.getLogger(__name__)


def new_origin_id():
    return ''.join(random.choices(string.ascii_uppercase + string.digits, k=10))


def make_entry(record, origin_id):
    return {
        "subBoardIndex": record.board,
        "cellIndex":     record.cell,
        "symbol":        record.symbol,
        "originId":      origin_id,
    }


def parse_entry(entry):
    """Return (board, cell, symbol, origin_id) or raise ValueError."""
    try:
        b, c = entry["subBoardIndex"], entry["cellIndex"]
        symbol, origin = entry["symbol"], entry["originId"]
    except (KeyError, TypeError) as e:
        raise ValueError(f"malformed move entry: {entry!r}") from e
    for i in (b, c):
        if not isinstance(i, int) or isinstance(i, bool) or not 0 <= i < 9:
            raise ValueError(f"index out of range in move entry: {entry!r}")
    if symbol not in SYMBOLS:
        raise ValueError(f"bad symbol in move entry: {entry!r}")
    return b, c, symbol, str(origin)


class MoveLog:
    """Append-only log. Subscribers get every entry once, in log order."""

    def append(self, entry):
        raise NotImplementedError

    def subscribe(self, callback):
        """Register `callback(entry)`; returns a function that unsubscribes."""
        raise NotImplementedError


class MemoryMoveLog(MoveLog):
    """In-process log. Subscribing replays the backlog first, so late joiners catch up."""

    def __init__(self, entries=None):
        self.entries = [dict(e) for e in entries or []]
        self._subscribers = []
        self._outbox = deque()
        self._delivering = False

    def __len__(self):
        return len(self.entries)

    def append(self, entry):
        entry = dict(entry)
        self.entries.append(entry)
        self._outbox.append(entry)
        # An append made from inside a callback waits its turn, so every
        # subscriber sees the same order.
        if self._delivering: return
        self._delivering = True
        try:
            while self._outbox:
                e = self._outbox.popleft()
                for callback in list(self._subscribers):
                    callback(dict(e))
        finally:
            self._delivering = False

    def subscribe(self, callback):
        for e in list(self.entries):
            callback(dict(e))
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe


class SyncAdapter:
    """Connects one engine to a move log.

    `submit` queues ingestion onto the owner's mutation queue (default: run
    inline). `on_applied(transition)` is called for every remote move that the
    engine accepted.
    """

    def __init__(self, game, log, origin_id=None, submit=None, on_applied=None):
        self.game = game
        self.log = log
        self.origin_id = origin_id or new_origin_id()
        self.on_applied = on_applied
        self._submit = submit or (lambda task: task())
        self._unsubscribe = log.subscribe(self._receive)

    def publish(self, record):
        entry = make_entry(record, self.origin_id)
        logger.debug("publishing %s", entry)
        self.log.append(entry)

    def _receive(self, entry):
        self._submit(lambda: self.ingest(entry))

    def ingest(self, entry):
        """Apply one log entry. Returns the Transition, or None if it was dropped."""
        try:
            b, c, symbol, origin = parse_entry(entry)
        except ValueError as e:
            logger.warning("dropping log entry: %s", e)
            return None
        if origin == self.origin_id:
            return None
        try:
            transition = self.game.apply_move(b, c, symbol)
        except MoveError as e:
            logger.warning("dropping remote move %s at %s/%s from %s: %s",
                           symbol, b, c, origin, e)
            return None
        if self.on_applied: self.on_applied(transition)
        return transition

    def close(self):
        self._unsubscribe()
