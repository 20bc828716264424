import mongoengine as db

from taskhub.models.base_document import BaseDocument


class RefreshToken(BaseDocument):
    """
    Issued refresh tokens, identified by their JWT id (jti).
    A refresh JWT is accepted only while its row exists: rotation and logout delete it.
    Expired rows are purged by MongoDB through the TTL index on expires_at.
    """
    meta = {
        'collection': 'refresh_tokens',
        'indexes': [
            {'fields': ['jti'], 'unique': True},
            'user',
            {'fields': ['expires_at'], 'expireAfterSeconds': 0},
        ]
    }

    jti = db.StringField(required=True)
    user = db.StringField(required=True)
    expires_at = db.DateTimeField(required=True)

    @classmethod
    def revoke(cls, jti: str) -> bool:
        return cls.objects(jti=jti).delete() > 0
