import logging.config
import multiprocessing
import signal
from concurrent.futures import ProcessPoolExecutor
from functools import partial

import mongoengine
from redis import Redis

from taskhub.logs import report_worker_logging_config
from taskhub.reports.dispatcher import Dispatcher
from taskhub.reports.queue import ReportQueue
from taskhub.reports.worker import init_worker_process
from config import Config

logger = logging.getLogger('taskhub.report_worker')

# configure application logging
logging.config.dictConfig(report_worker_logging_config)


def create_executor(config=Config):
    # one job at a time, each in a fresh process started with "spawn": no state is inherited
    # from the dispatcher and a crashing job cannot take the dispatcher down
    return ProcessPoolExecutor(
        max_workers=1,
        max_tasks_per_child=1,
        mp_context=multiprocessing.get_context('spawn'),
        initializer=init_worker_process,
        initargs=(config.MONGODB_URI, config.MONGODB_DB, report_worker_logging_config, config.MONGODB_CONNECT_KWARGS),
    )


def main(config=Config):
    mongoengine.connect(db=config.MONGODB_DB, host=config.MONGODB_URI, **config.MONGODB_CONNECT_KWARGS)
    redis = Redis.from_url(config.REDIS_URL, decode_responses=True)

    dispatcher = Dispatcher(
        ReportQueue(redis, key=config.REPORT_QUEUE_KEY),
        executor_factory=partial(create_executor, config),
        dequeue_timeout=config.REPORT_DEQUEUE_TIMEOUT,
    )

    def handle_signal(signum, _frame):
        logger.info(f'received {signal.Signals(signum).name}, stopping')
        dispatcher.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        dispatcher.run()
    finally:
        redis.close()
        mongoengine.disconnect()


if __name__ == '__main__':
    main()
