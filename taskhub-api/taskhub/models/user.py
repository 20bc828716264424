import re
from datetime import datetime

import bcrypt
import mongoengine as db

from taskhub.models.base_document import BaseDocument


def validate_email(email: str):
    if not re.fullmatch(r'[A-Za-z0-9._%+-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}', email):
        raise db.errors.ValidationError(f'Invalid email address: {email}')


class User(BaseDocument):
    meta = {
        'collection': 'users',
        'indexes': [
            {'fields': ['email'], 'unique': True},
            {'fields': ['google_id'], 'unique': True, 'sparse': True},
        ]
    }

    # authentication
    email = db.StringField(required=True, validation=validate_email, max_length=254)
    # not set for accounts created through Google sign-in
    password = db.BinaryField()
    google_id = db.StringField()

    # profile
    name = db.StringField(required=True, max_length=100)
    avatar_url = db.URLField(null=True)

    updated_at = db.DateTimeField(default=lambda: datetime.utcnow())
    last_login = db.DateTimeField(null=True)

    def clean(self):
        # emails are compared case-insensitively
        if self.email:
            self.email = self.email.strip().lower()
        # if password field is a string, hash it before saving
        if isinstance(self.password, str):
            self.password = bcrypt.hashpw(self.password.encode('utf8'), bcrypt.gensalt())

    def save(self, *args, **kwargs):
        self.updated_at = datetime.utcnow()
        return super().save(*args, **kwargs)

    def check_password(self, input_password: str) -> bool:
        if not self.password or isinstance(self.password, str):
            return False
        return bcrypt.checkpw(input_password.encode('utf8'), self.password)

    @classmethod
    def find_by_email(cls, email: str):
        return cls.objects(email=email.strip().lower()).first()

    @classmethod
    def display_names(cls, user_ids) -> dict:
        """ Maps user ids to display names, unknown ids are left out """
        ids = {user_id for user_id in user_ids if user_id}
        if not ids:
            return {}
        return {user._id: user.name for user in cls.objects(_id__in=list(ids)).only('_id', 'name')}
