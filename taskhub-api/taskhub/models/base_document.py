from datetime import datetime

import mongoengine as db
from bson import ObjectId


def generate_unique_id():
    return str(ObjectId())


class BaseDocument(db.Document):
    DoesNotExist: db.DoesNotExist
    meta = {
        'abstract': True,
    }

    _id = db.StringField(primary_key=True)
    created_at = db.DateTimeField(required=True, default=lambda: datetime.utcnow())

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # ids are generated client-side so they are known before the first save
        if '_id' not in kwargs:
            self._id = generate_unique_id()

    @classmethod
    def get_or_none(cls, **query):
        return cls.objects(**query).first()
