from taskhub.domains.auth import bp as auth_blueprint
from taskhub.domains.user import bp as user_blueprint
from taskhub.domains.project import bp as project_blueprint
from taskhub.domains.task import bp as task_blueprint
from taskhub.domains.report import bp as report_blueprint
