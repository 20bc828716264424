import logging.config
from celery.signals import after_setup_task_logger

from taskhub import create_app
from taskhub import celery
from taskhub.tasks import requeue_unqueued_reports
from taskhub.logs import logging_config_celery

app = create_app()
app.app_context().push()


# configure application logging
def initialize_logging(logger=None, loglevel=logging.INFO, **kwargs):
    logging.config.dictConfig(logging_config_celery)


after_setup_task_logger.connect(initialize_logging)


@celery.on_after_configure.connect
def setup_scheduled_tasks(sender, **kwargs):
    # relay reports whose queue push was never confirmed, every minute
    sender.add_periodic_task(
        60.0,
        requeue_unqueued_reports.s(),
        name='requeue_unqueued_reports'
    )


if __name__ == '__main__':
    # the embedded beat scheduler (-B) runs the periodic tasks, start a single instance
    argv = [
        'worker',
        '--beat',
        '--loglevel=INFO',
    ]
    celery.worker_main(argv)
