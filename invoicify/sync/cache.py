import copy
import logging
import threading
from collections import namedtuple

logger = logging.getLogger(__name__)

Snapshot = namedtuple('Snapshot', ['data', 'total_count', 'generation'])


class QueryCache:
    """Local copy of one query result.

    State only changes through the message methods below, under a lock, so
    readers never observe a half-applied write. ``generation`` identifies
    the fetch whose result is currently held; fetch tokens are handed out in
    request order and a response older than the one applied is dropped.
    """

    def __init__(self, data=None):
        self._lock = threading.RLock()
        self.data = data
        self.total_count = None
        self.generation = 0
        self.stale = True
        self._issued = 0

    def begin_fetch(self):
        with self._lock:
            self._issued += 1
            return self._issued

    def fetch_result(self, token, data, total_count=None):
        with self._lock:
            if token < self.generation:
                logger.debug('Dropping stale response %s (have %s)', token, self.generation)
                return False
            self.data = data
            self.total_count = total_count
            self.generation = token
            self.stale = False
            return True

    def snapshot(self):
        with self._lock:
            return Snapshot(copy.deepcopy(self.data), self.total_count, self.generation)

    def optimistic_apply(self, update):
        """Apply ``update(data, total_count) -> (data, total_count)`` and return the prior snapshot."""
        with self._lock:
            before = self.snapshot()
            self.data, self.total_count = update(copy.deepcopy(self.data), self.total_count)
            return before

    def reconcile(self, update):
        with self._lock:
            self.data, self.total_count = update(self.data, self.total_count)

    def rollback(self, snapshot):
        with self._lock:
            if snapshot.generation != self.generation:
                # A newer fetch already replaced the optimistic state
                logger.debug('Skipping rollback; cache refetched since snapshot')
                return False
            self.data = snapshot.data
            self.total_count = snapshot.total_count
            return True

    def invalidate(self):
        with self._lock:
            self.stale = True
