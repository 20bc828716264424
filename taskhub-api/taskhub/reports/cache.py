import logging
from typing import Optional

import orjson
from redis import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)


def project_summary_key(project_id: str) -> str:
    return f'project:{project_id}:summary'


class SummaryCache:
    """
    Best-effort JSON cache on top of Redis.
    Any Redis failure is logged and reported as a cache miss (get) or ignored (set),
    callers then fall back to recomputing the value.
    """

    def __init__(self, redis: Redis, ttl: int = 60):
        self._redis = redis
        self.ttl = ttl

    def get(self, key: str) -> Optional[dict]:
        try:
            raw = self._redis.get(key)
        except RedisError as exc:
            logger.warning(f'cache get failed for {key}: {exc}')
            return None
        if raw is None:
            return None
        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.warning(f'discarding undecodable cache entry {key}')
            return None

    def set(self, key: str, value: dict, ttl: int = None):
        try:
            self._redis.setex(key, ttl or self.ttl, orjson.dumps(value))
        except RedisError as exc:
            logger.warning(f'cache set failed for {key}: {exc}')
