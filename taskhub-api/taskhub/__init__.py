from datetime import datetime, date
from enum import Enum
import logging
import uuid

import mongoengine
from flask import Flask, make_response, jsonify, request, current_app, g as g_context
from flask.json.provider import DefaultJSONProvider
from flask_cors import CORS
from flask_redis import FlaskRedis
from flask_marshmallow import Marshmallow
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_limiter.errors import RateLimitExceeded
from jsonschema import ValidationError as SchemaValidationError
from apispec import APISpec
from apispec.ext.marshmallow import MarshmallowPlugin
from authlib.integrations.flask_client import OAuth
from redis import Redis
from redis.exceptions import RedisError
from celery import Celery

from config import Config
from taskhub.errors import ApiError


logger = logging.getLogger(__name__)

# Redis client shared by the report queue, the summary cache and the health check
# NOTE: FlaskRedis exposes a Redis client instance, but it is not a subclass of Redis
#       FlaskRedis | Redis typing is used to let the IDE provide autocompletion for Redis methods
redis_client: FlaskRedis | Redis = FlaskRedis(decode_responses=True, config_prefix='REDIS')

# using marshmallow to marshall JSON responses
ma = Marshmallow()

# request rate limiting, counters live in Redis (RATELIMIT_STORAGE_URI)
limiter = Limiter(key_func=get_remote_address)

# social sign-in (Google), client credentials are read from GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET
oauth = OAuth()

api_spec = APISpec(
    title="TaskHub API",
    version="1.0.0",
    openapi_version="3.0.2",
    plugins=[MarshmallowPlugin()],
)

celery = Celery(
    __name__,
    backend=Config.CELERY_RESULT_BACKEND,
    broker=Config.CELERY_BROKER_URL,
)
celery.autodiscover_tasks(packages=['taskhub.tasks'])

celery_conf = {
    'task_serializer': 'json',
    'accept_content': ['json'],
    'timezone': 'UTC',
    'task_time_limit': 60 * 10  # seconds - maintenance tasks are short
}


def init_g_context():
    # add request timestamp information to the g_context
    # useful for having a consistent timestamp across the request lifecycle
    g_context.utc_now = datetime.utcnow()

    # reuse the request id assigned by a reverse proxy when present
    g_context.request_id = request.headers.get('X-Request-Id') or uuid.uuid4().hex

    # ensure current_user is always available, at worst None if not authenticated
    # when the user is logged in, a loader in flask_jwt_extended module will set this
    g_context.current_user = None


# after_request handler to append Application-User-Id and Application-Request-Id headers
def append_application_headers(response):
    user = g_context.get('current_user')
    response.headers['Application-User-Id'] = user._id if user else 'unauthenticated'
    response.headers['Application-Request-Id'] = g_context.get('request_id', '')
    return response


# handle jsonschema validation error
def handle_bad_request(error):
    if isinstance(error.description, SchemaValidationError):
        return make_response(
            jsonify({
                'msg': 'Bad Object',
                'schema_error': error.description.message
            }),
            400
        )

    # handle other "Bad Request"-errors
    return make_response(jsonify({'msg': error.description or 'Bad Request'}), 400)


def handle_api_error(error: ApiError):
    if error.status_code >= 500:
        logger.error(f'{request.method} {request.path} failed: {error.msg}')
    return make_response(jsonify(error.to_dict()), error.status_code)


def handle_rate_limit_exceeded(error: RateLimitExceeded):
    return make_response(jsonify({'msg': 'Too many requests, please try again later.', 'limit': error.description}), 429)


def handle_not_found(error):
    return make_response(jsonify({'msg': 'Route not found'}), 404)


# document level validation (field formats checked by MongoEngine on save)
def handle_document_validation_error(error: mongoengine.ValidationError):
    return make_response(jsonify({'msg': 'Bad Object', 'schema_error': error.message}), 400)


def handle_not_unique_error(error: mongoengine.NotUniqueError):
    return make_response(jsonify({'msg': 'Resource already exists'}), 409)


class CustomJSONProvider(DefaultJSONProvider):
    @staticmethod
    def default(obj):
        # encode date/datetime objects to ISO format strings
        # MongoDB saves timestamps with millisecond precision, using timespec='milliseconds' for consistency
        if isinstance(obj, datetime):
            return obj.isoformat(timespec='milliseconds')
        if isinstance(obj, date):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return DefaultJSONProvider.default(obj)


def init_mongo(app):
    mongoengine.connect(
        db=app.config['MONGODB_DB'],
        host=app.config['MONGODB_URI'],
        **app.config.get('MONGODB_CONNECT_KWARGS', {})
    )


def init_mongo_indexes():
    from taskhub.models import User, RefreshToken, Project, Task, Report

    for model in (User, RefreshToken, Project, Task, Report):
        model.ensure_indexes()


def init_oauth(app):
    oauth.init_app(app)
    oauth.register(
        'google',
        authorize_url='https://accounts.google.com/o/oauth2/v2/auth',
        access_token_url='https://oauth2.googleapis.com/token',
        userinfo_endpoint='https://openidconnect.googleapis.com/v1/userinfo',
        jwks_uri='https://www.googleapis.com/oauth2/v3/certs',
        client_kwargs={'scope': 'openid email profile'},
    )


def init_celery(app):
    celery.conf.update(**celery_conf)
    celery.conf.update(
        broker_url=app.config['CELERY_BROKER_URL'],
        result_backend=app.config['CELERY_RESULT_BACKEND'],
    )

    class ContextTask(celery.Task):
        def __call__(self, *args, **kwargs):
            with app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = ContextTask
    return celery


def init_report_service(app):
    from taskhub.reports.cache import SummaryCache
    from taskhub.reports.queue import ReportQueue
    from taskhub.reports.service import ReportService

    queue = ReportQueue(redis_client, key=app.config['REPORT_QUEUE_KEY'])
    cache = SummaryCache(redis_client, ttl=app.config['SUMMARY_CACHE_TTL'])
    app.extensions['report_queue'] = queue
    app.extensions['report_service'] = ReportService(queue, cache, summary_ttl=app.config['SUMMARY_CACHE_TTL'])


def get_report_service():
    return current_app.extensions['report_service']


def health():
    try:
        queue_depth = len(current_app.extensions['report_queue'])
        status = 'ok'
    except RedisError as exc:
        logger.warning(f'health check could not reach redis: {exc}')
        queue_depth = None
        status = 'degraded'

    return jsonify({
        'status': status,
        'timestamp': datetime.utcnow(),
        'reportQueue': queue_depth,
    }), 200


def create_base_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # configure a custom JSON encoder to handle datetime objects
    app.json_provider_class = CustomJSONProvider
    app.json = app.json_provider_class(app)

    CORS(app, resources={r"/*": {"origins": [app.config['FRONTEND_URL']]}}, supports_credentials=True)

    from taskhub.jwt import jwt

    init_mongo(app)
    redis_client.init_app(app)
    jwt.init_app(app)
    ma.init_app(app)
    limiter.init_app(app)
    init_oauth(app)

    app.before_request(init_g_context)
    app.after_request(append_application_headers)
    app.register_error_handler(400, handle_bad_request)
    app.register_error_handler(404, handle_not_found)
    app.register_error_handler(mongoengine.ValidationError, handle_document_validation_error)
    app.register_error_handler(mongoengine.NotUniqueError, handle_not_unique_error)
    app.register_error_handler(ApiError, handle_api_error)
    app.register_error_handler(RateLimitExceeded, handle_rate_limit_exceeded)

    return app


def create_app(config_class=Config):
    app = create_base_app(config_class)

    init_celery(app)
    init_report_service(app)

    # dev tools for development environment (JSON schemas and response schemas)
    if app.config['WEBAPP_ENV'] == 'development':
        from taskhub.devtools import bp as devtools_blueprint
        app.register_blueprint(devtools_blueprint, url_prefix='/docs')

    from taskhub import domains

    app.add_url_rule('/health', 'health', limiter.exempt(health))
    app.register_blueprint(domains.auth_blueprint, url_prefix='/auth')
    app.register_blueprint(domains.user_blueprint, url_prefix='/users')
    app.register_blueprint(domains.project_blueprint, url_prefix='/projects')
    app.register_blueprint(domains.task_blueprint, url_prefix='/tasks')
    app.register_blueprint(domains.report_blueprint, url_prefix='/reports')

    return app
