import logging
import threading
from concurrent.futures import Executor, TimeoutError as FutureTimeoutError
from concurrent.futures.process import BrokenProcessPool
from typing import Callable

from redis.exceptions import RedisError

from taskhub.reports.queue import ReportQueue, ReportJob, InvalidJobError
from taskhub.reports.worker import process_report_job

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Pops report jobs from the queue and runs each one in an executor provided by `executor_factory`,
    waiting for its completion before popping the next one.

    Job failures are logged and never stop the loop, only stop() does. Several dispatchers
    (in separate processes) can consume the same queue, each job is popped by exactly one of them.
    """

    def __init__(
            self,
            queue: ReportQueue,
            executor_factory: Callable[[], Executor],
            dequeue_timeout: int = 5,
            error_backoff: float = 1.0,
            poll_interval: float = 0.5,
            job_function: Callable[[dict], object] = process_report_job,
    ):
        self.queue = queue
        self.executor_factory = executor_factory
        self.dequeue_timeout = dequeue_timeout
        self.error_backoff = error_backoff
        self.poll_interval = poll_interval
        self.job_function = job_function

        self._executor = None
        self._stop = threading.Event()
        self.processed = 0
        self.failed = 0

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    def stop(self):
        """ Stops dequeuing, an in-flight job is not waited for """
        self._stop.set()

    def run(self):
        logger.info(f'dispatcher started, listening on {self.queue.key}')
        self._executor = self.executor_factory()
        try:
            while not self._stop.is_set():
                job = self._next_job()
                if job is not None:
                    self.dispatch(job)
        finally:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
            logger.info(f'dispatcher stopped ({self.processed} processed, {self.failed} failed)')

    def _next_job(self):
        try:
            return self.queue.dequeue(timeout=self.dequeue_timeout)
        except InvalidJobError as exc:
            logger.error(f'dropping malformed job: {exc}')
        except RedisError as exc:
            logger.error(f'error reading from report queue: {exc}')
            # wait a bit before retrying, wakes up immediately on stop()
            self._stop.wait(self.error_backoff)
        return None

    def dispatch(self, job: ReportJob) -> bool:
        """ Runs one job to completion, returns True on success """
        log_extra = {'report_id': job.report_id}
        logger.info('job received from queue', extra=log_extra)

        try:
            future = self._submit(job, log_extra)
            while True:
                try:
                    future.result(timeout=self.poll_interval)
                    break
                except FutureTimeoutError:
                    if self._stop.is_set():
                        logger.warning('shutting down, abandoning in-flight job', extra=log_extra)
                        return False

        except BrokenProcessPool:
            self.failed += 1
            logger.exception('worker process died while processing job', extra=log_extra)
            self._replace_executor()
            return False

        except Exception as exc:
            self.failed += 1
            logger.error(f'error processing job: {exc!r}', extra=log_extra)
            return False

        self.processed += 1
        logger.info('job completed successfully', extra=log_extra)
        return True

    def _submit(self, job: ReportJob, log_extra: dict):
        try:
            return self._executor.submit(self.job_function, job.to_dict())
        except BrokenProcessPool:
            # the worker process died while idle, the job never started: retry it once on a new pool
            logger.warning('worker pool broken before submitting job, restarting it', extra=log_extra)
            self._replace_executor()
            return self._executor.submit(self.job_function, job.to_dict())

    def _replace_executor(self):
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._executor = self.executor_factory()
