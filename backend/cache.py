"""In-memory cache for successful GET responses from the REST backend.

Entries are keyed by request path plus a stable serialisation of the query
parameters. An entry is served while it is younger than the TTL; stale entries
are not evicted, they are simply skipped and overwritten by the next
successful fetch.

Payloads are copied on the way in and on the way out, so a caller that
mutates what it got back never changes what the next reader sees.
"""
import copy
import logging
import threading
import time
from urllib.parse import urlencode

logger = logging.getLogger(__name__)

DEFAULT_TTL = 5 * 60


class ResponseCache:

    def __init__(self, ttl=DEFAULT_TTL, clock=time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries = {}
        self._lock = threading.Lock()

    @staticmethod
    def key_for(path, params=None):
        if not params:
            return path
        items = sorted((k, v) for k, v in dict(params).items() if v is not None)
        if not items:
            return path
        return f"{path}?{urlencode(items, doseq=True)}"

    def lookup(self, key):
        """Return the payload stored under ``key`` if it is still fresh, else None."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        payload, stored_at = entry
        if self._clock() - stored_at >= self.ttl:
            logger.debug('Cache stale: %s', key)
            return None
        logger.debug('Cache hit: %s', key)
        return copy.deepcopy(payload)

    def store(self, key, payload):
        with self._lock:
            self._entries[key] = (copy.deepcopy(payload), self._clock())

    def invalidate(self, path):
        """Drop ``path`` and every key that starts with it (all parameterised variants)."""
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(path)]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.debug('Cache invalidated %d entr%s under %s', len(doomed), 'y' if len(doomed) == 1 else 'ies', path)
        return len(doomed)

    def clear_all(self):
        with self._lock:
            self._entries.clear()

    def __len__(self):
        return len(self._entries)

    def __contains__(self, key):
        return key in self._entries
