from celery.utils.log import get_task_logger
from flask import current_app

from taskhub import celery

logger = get_task_logger(__name__)


@celery.task
def requeue_unqueued_reports():
    """
    Pushes again the jobs of PENDING reports whose enqueue was never confirmed
    (the web process stopped between saving the report and pushing its job).
    """
    report_service = current_app.extensions['report_service']
    relay_delay = current_app.config['REPORT_RELAY_DELAY']

    requeued = report_service.requeue_unqueued(older_than=relay_delay)

    if requeued:
        logger.warning(f'requeued {requeued} unconfirmed reports')
    else:
        logger.info('no unconfirmed reports')
    return {'requeued_reports': requeued}
