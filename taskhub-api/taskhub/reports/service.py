import logging
from datetime import datetime, timedelta
from typing import List

from taskhub.errors import ForbiddenError, NotFoundError, QueueUnavailableError
from taskhub.models import Project, Report, ReportStatus, ReportType, Task
from taskhub.reports.cache import SummaryCache, project_summary_key
from taskhub.reports.queue import ReportQueue, ReportJob
from taskhub.reports.summary import build_project_summary

logger = logging.getLogger(__name__)


def require_project_access(project_id: str, user_id: str, msg: str = None) -> Project:
    """ Returns the project if the user owns it or is a member, deleted and unknown projects are forbidden too """
    project = Project.active_objects(_id=project_id).first()
    if project is None or not project.has_access(user_id):
        raise ForbiddenError(msg or 'You do not have access to this project')
    return project


class ReportService:
    """
    Report creation, reads and the cached project summary.
    Queue and cache are injected so the same service runs against any Redis connection.
    """

    def __init__(self, queue: ReportQueue, cache: SummaryCache, summary_ttl: int = 60):
        self.queue = queue
        self.cache = cache
        self.summary_ttl = summary_ttl

    def create(self, project_id: str, user_id: str, report_type: ReportType) -> Report:
        require_project_access(project_id, user_id)

        report = Report(project=project_id, user=user_id, report_type=report_type, status=ReportStatus.PENDING)
        report.save()

        try:
            self.queue.enqueue(ReportJob.for_report(report))
        except QueueUnavailableError:
            # no PENDING report may outlive a failed enqueue, the caller gets a retryable error instead
            report.delete()
            logger.warning(f'report {report._id} discarded, queue unavailable')
            raise

        report.mark_enqueued()
        logger.info(f'queued {report.report_type.value} report {report._id} for project {project_id}')
        return report

    def find_by_id(self, report_id: str, user_id: str) -> Report:
        report = Report.get_or_none(_id=report_id)
        if report is None:
            raise NotFoundError('Report not found')
        require_project_access(report.project, user_id, msg='You do not have access to this report')
        return report

    def find_by_project(self, project_id: str, user_id: str, skip: int = 0, take: int = 10) -> List[Report]:
        require_project_access(project_id, user_id)
        return list(Report.objects(project=project_id).order_by('-requested_at').skip(skip).limit(take))

    def count_by_project(self, project_id: str, user_id: str) -> int:
        require_project_access(project_id, user_id)
        return Report.objects(project=project_id).count()

    def get_project_summary(self, project_id: str, user_id: str) -> dict:
        require_project_access(project_id, user_id)

        cache_key = project_summary_key(project_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        summary = build_project_summary(Task.objects(project=project_id).only('status', 'due_date'))
        self.cache.set(cache_key, summary, self.summary_ttl)
        return summary

    def requeue_unqueued(self, older_than: timedelta) -> int:
        """
        Outbox relay: pushes again the jobs of PENDING reports whose enqueue was never confirmed
        (the web process died between saving the report and pushing its job).
        A job pushed twice is harmless, only the first one can claim the report.
        """
        threshold = datetime.utcnow() - older_than
        requeued = 0
        for report in Report.objects(status=ReportStatus.PENDING, enqueued_at=None, requested_at__lte=threshold):
            self.queue.enqueue(ReportJob.for_report(report))
            report.mark_enqueued()
            requeued += 1
            logger.info(f'requeued unconfirmed report {report._id}')
        return requeued
