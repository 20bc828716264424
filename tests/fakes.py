import threading
import time
from collections import deque

from redis.exceptions import ConnectionError as RedisConnectionError


def _decode(value):
    # mimics a client created with decode_responses=True
    if isinstance(value, bytes):
        return value.decode('utf8')
    return str(value)


class FakeRedis:
    """
    In-memory stand-in for the few Redis commands used by the queue, the cache and the health check.

    - lists: rpush / blpop / llen (blpop blocks on a condition variable, so several threads can consume)
    - strings: get / setex (expiry follows time.time(), freezegun can move it)
    """

    def __init__(self):
        self._lists = {}
        self._values = {}
        self._lock = threading.Condition()
        self.calls = []

    def ping(self):
        return True

    def rpush(self, key, *values):
        with self._lock:
            self.calls.append(('rpush', key))
            items = self._lists.setdefault(key, deque())
            items.extend(_decode(value) for value in values)
            self._lock.notify_all()
            return len(items)

    def blpop(self, keys, timeout=0):
        if isinstance(keys, str):
            keys = [keys]
        deadline = None if not timeout else time.monotonic() + timeout
        with self._lock:
            self.calls.append(('blpop', tuple(keys)))
            while True:
                for key in keys:
                    items = self._lists.get(key)
                    if items:
                        return key, items.popleft()
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    return None
                self._lock.wait(remaining)

    def llen(self, key):
        with self._lock:
            return len(self._lists.get(key, ()))

    def get(self, key):
        entry = self._values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and time.time() >= expires_at:
            del self._values[key]
            return None
        return value

    def setex(self, key, ttl, value):
        self.calls.append(('setex', key))
        self._values[key] = (_decode(value), time.time() + int(ttl))
        return True

    def set(self, key, value):
        self._values[key] = (_decode(value), None)
        return True

    def flushall(self):
        with self._lock:
            self._lists.clear()
            self._values.clear()
            self.calls.clear()

    def close(self):
        pass


class FailingRedis:
    """ Redis client whose every command fails as if the server was down """

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise RedisConnectionError(f'fake redis is down ({name})')
        return fail
