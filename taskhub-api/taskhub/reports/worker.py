"""
Report job execution.

process_report_job() runs inside an isolated execution unit (a worker process in production,
see init_worker_process()) and talks back to the dispatcher through its return value or exception only.
"""
import logging
import logging.config
from datetime import datetime
from typing import Optional

import mongoengine

from taskhub.models import Report, ReportStatus, Task, User
from taskhub.reports.queue import ReportJob
from taskhub.reports.summary import build_report_summary

logger = logging.getLogger(__name__)


def init_worker_process(mongodb_uri: str, mongodb_db: str, logging_config: dict = None, connect_kwargs: dict = None):
    """ Initializer of worker processes: each process opens its own MongoDB connection """
    if logging_config:
        logging.config.dictConfig(logging_config)
    mongoengine.connect(db=mongodb_db, host=mongodb_uri, **(connect_kwargs or {}))


def process_report_job(job_data: dict) -> Optional[dict]:
    """
    Computes and stores the summary of one report job.
    Returns the summary, or None when the report was deleted or already taken since the job was enqueued.
    Any failure marks the report FAILED (best-effort) and is re-raised to the caller.
    """
    job = ReportJob.from_dict(job_data)
    log_extra = {'report_id': job.report_id}

    if not Report.transition(job.report_id, ReportStatus.PENDING, ReportStatus.PROCESSING):
        logger.warning(f'report {job.report_id} is missing or no longer pending, skipping job', extra=log_extra)
        return None

    logger.info(f'processing {job.report_type.value} report for project {job.project_id}', extra=log_extra)

    try:
        tasks = list(Task.objects(project=job.project_id))
        assignee_names = User.display_names(task.assignee for task in tasks)
        summary = build_report_summary(tasks, assignee_names)

        completed = Report.transition(
            job.report_id, ReportStatus.PROCESSING, ReportStatus.COMPLETED,
            summary=summary,
            completed_at=datetime.utcnow(),
        )
    except Exception as exc:
        logger.exception(f'error processing report: {exc}', extra=log_extra)
        mark_failed(job.report_id, str(exc) or exc.__class__.__name__)
        raise

    if not completed:
        # the report row was removed while the summary was being computed
        logger.warning('report disappeared before completion, summary discarded', extra=log_extra)
        return None

    logger.info(f'completed report with {summary["totalTasks"]} tasks', extra=log_extra)
    return summary


def mark_failed(report_id: str, error_message: str):
    try:
        failed = Report.transition(report_id, ReportStatus.PROCESSING, ReportStatus.FAILED, error_message=error_message)
    except Exception:
        # the report stays PROCESSING, nothing reconciles it
        logger.exception('could not mark report as failed', extra={'report_id': report_id})
        return
    if not failed:
        logger.warning('report was not PROCESSING, FAILED status not recorded', extra={'report_id': report_id})
