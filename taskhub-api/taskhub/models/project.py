from datetime import datetime
from enum import Enum

import mongoengine as db
from mongoengine import EmbeddedDocument, queryset_manager

from taskhub.models.base_document import BaseDocument


class MemberRole(str, Enum):
    OWNER = 'OWNER'
    MEMBER = 'MEMBER'


class ProjectMember(EmbeddedDocument):
    user = db.StringField(required=True)
    role = db.EnumField(MemberRole, required=True, default=MemberRole.MEMBER)
    joined_at = db.DateTimeField(required=True, default=lambda: datetime.utcnow())


class Project(BaseDocument):
    meta = {
        'collection': 'projects',
        'indexes': [
            'owner',
            'members.user',
            '-updated_at',
        ]
    }

    name = db.StringField(required=True, max_length=150)
    description = db.StringField(max_length=2000, null=True)

    owner = db.StringField(required=True)
    members = db.EmbeddedDocumentListField(ProjectMember, default=list)

    updated_at = db.DateTimeField(default=lambda: datetime.utcnow())
    deleted_at = db.DateTimeField(null=True)

    @queryset_manager
    def active_objects(cls, queryset):
        """ Projects that were not soft deleted """
        return queryset.filter(deleted_at=None)

    @classmethod
    def visible_to(cls, user_id: str):
        return cls.active_objects.filter(db.Q(owner=user_id) | db.Q(members__user=user_id))

    def save(self, *args, **kwargs):
        self.updated_at = datetime.utcnow()
        return super().save(*args, **kwargs)

    def is_owner(self, user_id: str) -> bool:
        return self.owner == user_id

    def is_member(self, user_id: str) -> bool:
        return any(member.user == user_id for member in self.members)

    def has_access(self, user_id: str) -> bool:
        return self.is_owner(user_id) or self.is_member(user_id)

    def add_member(self, user_id: str, role: MemberRole = MemberRole.MEMBER) -> ProjectMember:
        member = ProjectMember(user=user_id, role=role)
        self.members.append(member)
        self.save()
        return member

    def remove_member(self, user_id: str) -> bool:
        remaining = [member for member in self.members if member.user != user_id]
        if len(remaining) == len(self.members):
            return False
        self.members = remaining
        self.save()
        return True

    def soft_delete(self):
        self.deleted_at = datetime.utcnow()
        self.save()
