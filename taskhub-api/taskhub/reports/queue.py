"""
Report job queue.

Jobs are JSON records pushed to the tail of a Redis list and popped from its head with BLPOP,
so the queue is FIFO and a job is delivered to exactly one consumer. There is no acknowledgment:
once popped, a job is owned by the dispatcher that popped it.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import orjson
from redis import Redis
from redis.exceptions import RedisError

from taskhub.errors import QueueUnavailableError
from taskhub.models.report import ReportType
from taskhub.utils.helpers import utc_isoformat

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_KEY = 'report:queue'


class InvalidJobError(ValueError):
    pass


@dataclass(frozen=True)
class ReportJob:
    report_id: str
    project_id: str
    report_type: ReportType
    requested_at: datetime

    def to_dict(self) -> dict:
        return {
            'reportId': self.report_id,
            'projectId': self.project_id,
            'reportType': self.report_type.value,
            'requestedAt': utc_isoformat(self.requested_at),
        }

    def to_payload(self) -> bytes:
        return orjson.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> 'ReportJob':
        try:
            requested_at = datetime.fromisoformat(data['requestedAt'].replace('Z', '+00:00'))
            # stored as naive UTC like every other timestamp
            if requested_at.tzinfo is not None:
                requested_at = requested_at.astimezone(timezone.utc).replace(tzinfo=None)
            return cls(
                report_id=str(data['reportId']),
                project_id=str(data['projectId']),
                report_type=ReportType(data['reportType']),
                requested_at=requested_at,
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise InvalidJobError(f'malformed report job: {data!r}') from exc

    @classmethod
    def from_payload(cls, payload) -> 'ReportJob':
        try:
            data = orjson.loads(payload)
        except orjson.JSONDecodeError as exc:
            raise InvalidJobError(f'report job is not valid JSON: {payload!r}') from exc
        if not isinstance(data, dict):
            raise InvalidJobError(f'report job is not an object: {payload!r}')
        return cls.from_dict(data)

    @classmethod
    def for_report(cls, report) -> 'ReportJob':
        return cls(
            report_id=report._id,
            project_id=report.project,
            report_type=report.report_type,
            requested_at=report.requested_at,
        )


class ReportQueue:
    def __init__(self, redis: Redis, key: str = DEFAULT_QUEUE_KEY):
        self._redis = redis
        self.key = key

    def enqueue(self, job: ReportJob):
        """ Appends the job to the tail of the queue, raises QueueUnavailableError if Redis is unreachable """
        try:
            self._redis.rpush(self.key, job.to_payload())
        except RedisError as exc:
            logger.error(f'failed to enqueue report job {job.report_id}: {exc}')
            raise QueueUnavailableError() from exc

    def dequeue(self, timeout: int = 5) -> Optional[ReportJob]:
        """
        Blocks up to `timeout` seconds for the oldest job.
        Returns None on timeout, raises InvalidJobError for payloads that cannot be decoded.
        """
        item = self._redis.blpop([self.key], timeout=timeout)
        if item is None:
            return None
        _key, payload = item
        return ReportJob.from_payload(payload)

    def __len__(self):
        return self._redis.llen(self.key)
