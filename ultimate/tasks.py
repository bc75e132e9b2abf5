"""Single-consumer mutation queues.

Every change to a session's game runs as one task on its queue, so two
mutations never interleave. Remote moves and the computer's delayed reply are
just submissions with different delays.
"""
import contextlib
import heapq
import itertools
import logging

import gevent
from gevent.queue import Queue

logger = logging.getLogger(__name__)


class ManualQueue:
    """Queue driven by the caller on a virtual clock (for tests and replays)."""

    def __init__(self):
        self.now = 0.0
        self._heap = []
        self._seq = itertools.count()

    def submit(self, task, delay=0.0):
        heapq.heappush(self._heap, (self.now + max(0.0, delay), next(self._seq), task))

    def __len__(self):
        return len(self._heap)

    def run_pending(self):
        """Run every task due by `now`, including ones those tasks submit."""
        ran = 0
        while self._heap and self._heap[0][0] <= self.now:
            _, _, task = heapq.heappop(self._heap)
            task()
            ran += 1
        return ran

    def advance(self, seconds):
        self.now += seconds
        return self.run_pending()

    def run_all(self):
        ran = 0
        while self._heap:
            due, _, task = heapq.heappop(self._heap)
            self.now = max(self.now, due)
            task()
            ran += 1
        return ran

    def close(self):
        self._heap.clear()


class InlineQueue(ManualQueue):
    """Runs tasks as they are submitted and ignores delays. A task submitted
    from inside another runs once the outer one has finished."""

    def __init__(self):
        super().__init__()
        self._running = False

    def submit(self, task, delay=0.0):
        super().submit(task)
        if self._running: return
        self._running = True
        try:
            self.run_pending()
        finally:
            self._running = False


class GeventQueue:
    """One consumer greenlet per queue; delayed tasks wait in gevent timers.

    `context` is entered around each task (the app passes app.app_context so
    tasks can reach the database).
    """

    def __init__(self, context=None):
        self._context = context or contextlib.nullcontext
        self._inbox = Queue()
        self._timers = []
        self._worker = gevent.spawn(self._consume)

    def submit(self, task, delay=0.0):
        if delay > 0:
            self._timers = [t for t in self._timers if not t.dead]
            self._timers.append(gevent.spawn_later(delay, self._inbox.put, task))
        else:
            self._inbox.put(task)

    def _consume(self):
        while True:
            task = self._inbox.get()
            if task is None: return
            try:
                with self._context():
                    task()
            except Exception:
                logger.exception("game task failed")

    def close(self):
        for t in self._timers: t.kill()
        self._timers = []
        self._inbox.put(None)
