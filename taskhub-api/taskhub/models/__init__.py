from taskhub.models.project import Project, ProjectMember, MemberRole
from taskhub.models.refresh_token import RefreshToken
from taskhub.models.report import Report, ReportStatus, ReportType
from taskhub.models.task import Task, TaskStatus, TaskPriority, Attachment
from taskhub.models.user import User

# MongoEngine field options are sometimes counter-intuitive and not well documented
# Here a combination of options and the resulting behavior is documented for future reference
#
# *** Simple Fields (StringField, IntField, etc.) ***
#
#   + A field that has a default value and is always saved to the DB *
#         field = db.DateTimeField(required=True, default=lambda: datetime.utcnow()) OR
#         field = db.IntField(required=True, default=0)
#
#   + A field that can also be None:
#         field = db.StringField(null=True)
#     When `null`, the field is not saved into the database, queries on `field=None`
#     still match documents where the key is missing
#
# *** Status fields ***
#
#   Report.status is never assigned and saved through the document instance: every transition goes
#   through Report.transition(), a conditional update_one() on {_id, status}, so concurrent writers
#   cannot overwrite each other's status
#
