from datetime import datetime
from enum import Enum

import mongoengine as db

from taskhub.models.base_document import BaseDocument


class ReportType(str, Enum):
    WEEKLY = 'WEEKLY'
    MONTHLY = 'MONTHLY'


class ReportStatus(str, Enum):
    PENDING = 'PENDING'
    PROCESSING = 'PROCESSING'
    COMPLETED = 'COMPLETED'
    FAILED = 'FAILED'

    @property
    def is_terminal(self) -> bool:
        return self in (ReportStatus.COMPLETED, ReportStatus.FAILED)


# the only valid status transitions, anything else is rejected by Report.transition()
ALLOWED_TRANSITIONS = {
    ReportStatus.PENDING: {ReportStatus.PROCESSING},
    ReportStatus.PROCESSING: {ReportStatus.COMPLETED, ReportStatus.FAILED},
    ReportStatus.COMPLETED: set(),
    ReportStatus.FAILED: set(),
}


class InvalidTransition(Exception):
    pass


class Report(BaseDocument):
    """
    Lifecycle record of an asynchronously generated project report.
    project, user, report_type and requested_at never change after creation.
    status (with summary, completed_at and error_message) is written by the report worker only,
    one conditional single-document update per transition.
    """
    meta = {
        'collection': 'reports',
        'indexes': [
            ('project', '-requested_at'),
            ('status', 'enqueued_at'),
        ]
    }

    project = db.StringField(required=True)
    user = db.StringField(required=True)
    report_type = db.EnumField(ReportType, required=True, default=ReportType.WEEKLY)
    status = db.EnumField(ReportStatus, required=True, default=ReportStatus.PENDING)

    summary = db.DictField(null=True, default=None)
    error_message = db.StringField(null=True)

    requested_at = db.DateTimeField(required=True, default=lambda: datetime.utcnow())
    completed_at = db.DateTimeField(null=True)
    # set once the queue push for this report is confirmed
    enqueued_at = db.DateTimeField(null=True)

    @classmethod
    def transition(cls, report_id: str, current: ReportStatus, new: ReportStatus, **fields) -> bool:
        """
        Atomically moves a report from `current` to `new` status, setting any extra `fields`.
        Returns False when the report does not exist or is no longer in `current` status.
        """
        if new not in ALLOWED_TRANSITIONS[current]:
            raise InvalidTransition(f'{current.value} -> {new.value}')

        updates = {f'set__{name}': value for name, value in fields.items()}
        updated = cls.objects(_id=report_id, status=current).update_one(set__status=new, **updates)
        return updated == 1

    def mark_enqueued(self, timestamp: datetime = None):
        timestamp = timestamp or datetime.utcnow()
        Report.objects(_id=self._id, enqueued_at=None).update_one(set__enqueued_at=timestamp)
        self.enqueued_at = timestamp
