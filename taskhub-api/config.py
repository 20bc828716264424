import os
from datetime import timedelta

from taskhub.utils.helpers import str_to_bool

basedir = os.path.abspath(os.path.dirname(__file__))


class Config(object):
    # application environment (development/production)
    # NOTE: WEBAPP_ENV relaxes some of the security settings in development mode, hence the default is production
    WEBAPP_ENV = os.getenv('WEBAPP_ENV', 'production')
    assert WEBAPP_ENV in ['development', 'production']

    # application database - MongoDB (MongoEngine)
    MONGODB_URI = os.getenv('MONGODB_URI', 'mongodb://localhost:27017')
    MONGODB_DB = os.getenv('MONGODB_DB', 'taskhub')
    # extra keyword arguments forwarded to mongoengine.connect()
    MONGODB_CONNECT_KWARGS = {}

    # Redis: report queue, summary cache and rate limit counters
    REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/0')

    # celery configs (periodic maintenance only, report jobs go through REPORT_QUEUE_KEY)
    CELERY_BROKER_URL = os.getenv('CELERY_BROKER_URL', REDIS_URL)
    CELERY_RESULT_BACKEND = os.getenv('CELERY_RESULT_BACKEND', REDIS_URL)

    # report pipeline
    REPORT_QUEUE_KEY = os.getenv('REPORT_QUEUE_KEY', 'report:queue')
    REPORT_DEQUEUE_TIMEOUT = int(os.getenv('REPORT_DEQUEUE_TIMEOUT', 5))  # seconds
    SUMMARY_CACHE_TTL = int(os.getenv('SUMMARY_CACHE_TTL', 60))  # seconds
    # unconfirmed PENDING reports older than this are re-enqueued by the relay task
    REPORT_RELAY_DELAY = timedelta(seconds=int(os.getenv('REPORT_RELAY_DELAY', 60)))

    # JWT token settings
    JWT_SECRET_KEY = os.environ['JWT_SECRET_KEY']
    JWT_ALGORITHM = 'HS256'
    JWT_DECODE_ALGORITHMS = ['HS256']
    JWT_TOKEN_LOCATION = ['headers']
    JWT_HEADER_NAME = 'Authorization'
    JWT_HEADER_TYPE = 'Bearer'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=int(os.getenv('JWT_ACCESS_TOKEN_EXPIRES', 15)))
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=int(os.getenv('JWT_REFRESH_TOKEN_EXPIRES', 7)))

    # Google sign-in, disabled unless the client credentials are set
    GOOGLE_CLIENT_ID = os.getenv('GOOGLE_CLIENT_ID')
    GOOGLE_CLIENT_SECRET = os.getenv('GOOGLE_CLIENT_SECRET')
    # defaults to the /auth/google/callback URL of the current host
    GOOGLE_CALLBACK_URL = os.getenv('GOOGLE_CALLBACK_URL')
    # signs the session cookie holding the OAuth state between the redirect and the callback
    SECRET_KEY = os.getenv('SECRET_KEY', JWT_SECRET_KEY)

    # other security configs
    CORS_HEADERS = 'Content-Type'
    FRONTEND_URL = os.getenv('FRONTEND_URL', 'http://localhost:3000')

    # rate limiting (flask-limiter)
    RATELIMIT_ENABLED = str_to_bool(os.getenv('RATELIMIT_ENABLED', 'true'))
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', REDIS_URL)
    RATELIMIT_HEADERS_ENABLED = True
    RATELIMIT_DEFAULT = '1000 per 15 minutes' if WEBAPP_ENV == 'development' else '100 per 15 minutes'
    AUTH_RATE_LIMIT = '50 per 15 minutes' if WEBAPP_ENV == 'development' else '5 per 15 minutes'

    # ---------------------------------------------------------

    # view configs
    PAGE_SIZE = int(os.getenv('PAGE_SIZE', 10))
    MAX_PAGE_SIZE = 100
