from datetime import datetime
from enum import Enum

import mongoengine as db
from mongoengine import EmbeddedDocument

from taskhub.models.base_document import BaseDocument, generate_unique_id


class TaskStatus(str, Enum):
    TODO = 'TODO'
    IN_PROGRESS = 'IN_PROGRESS'
    DONE = 'DONE'


class TaskPriority(str, Enum):
    LOW = 'LOW'
    MEDIUM = 'MEDIUM'
    HIGH = 'HIGH'


class Attachment(EmbeddedDocument):
    id = db.StringField(required=True, default=generate_unique_id)
    file_name = db.StringField(required=True, max_length=255)
    file_url = db.URLField(required=True)
    file_size = db.IntField(min_value=0, null=True)
    mime_type = db.StringField(max_length=127, null=True)
    created_at = db.DateTimeField(required=True, default=lambda: datetime.utcnow())


class Task(BaseDocument):
    meta = {
        'collection': 'tasks',
        'ordering': ['-created_at'],
        'indexes': [
            'project',
            ('project', 'status'),
            'assignee',
        ]
    }

    project = db.StringField(required=True)
    title = db.StringField(required=True, max_length=200)
    description = db.StringField(max_length=5000, null=True)

    status = db.EnumField(TaskStatus, required=True, default=TaskStatus.TODO)
    priority = db.EnumField(TaskPriority, null=True)
    due_date = db.DateTimeField(null=True)
    assignee = db.StringField(null=True)  # Reference to User document ID

    tags = db.ListField(db.StringField(max_length=50), default=list)
    attachments = db.EmbeddedDocumentListField(Attachment, default=list)

    updated_at = db.DateTimeField(default=lambda: datetime.utcnow())

    def save(self, *args, **kwargs):
        self.updated_at = datetime.utcnow()
        return super().save(*args, **kwargs)

    def is_overdue(self, now: datetime) -> bool:
        return self.due_date is not None and self.due_date < now and self.status != TaskStatus.DONE

    def add_attachment(self, **fields) -> Attachment:
        attachment = Attachment(**fields)
        self.attachments.append(attachment)
        self.save()
        return attachment

    def remove_attachment(self, attachment_id: str) -> bool:
        remaining = [a for a in self.attachments if a.id != attachment_id]
        if len(remaining) == len(self.attachments):
            return False
        self.attachments = remaining
        self.save()
        return True
