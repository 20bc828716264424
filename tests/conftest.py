import os
import logging.config

import pytest
import mongomock
import mongoengine

os.environ.setdefault('JWT_SECRET_KEY', 'test-jwt-secret-key-with-enough-length')
os.environ.setdefault('WEBAPP_ENV', 'development')

# add taskhub-api to Python path for all tests
# NOTE: marking taskhub-api as source root in the IDE also does the trick
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "taskhub-api"))
sys.path.insert(0, str(Path(__file__).parent))


from taskhub import create_app, redis_client, limiter
from flask import g
from flask_jwt_extended import create_access_token
from config import Config
from fakes import FakeRedis
from test_data.load import load_test_data, OWNER_ID, MEMBER_ID, OUTSIDER_ID


class TestConfig(Config):
    __test__ = False

    TESTING = True
    WEBAPP_ENV = 'development'
    MONGODB_DB = 'taskhub-test'
    MONGODB_CONNECT_KWARGS = {'mongo_client_class': mongomock.MongoClient}
    RATELIMIT_STORAGE_URI = 'memory://'
    RATELIMIT_DEFAULT = '10000 per minute'
    AUTH_RATE_LIMIT = '1000 per minute'
    GOOGLE_CLIENT_ID = 'google-client-id'
    GOOGLE_CLIENT_SECRET = 'google-client-secret'


# simplified logging config for tests
# NOTE: the webapp config relies on filters reading the request context, plain records are enough here
logging.config.dictConfig({
    'version': 1,
    'disable_existing_loggers': False,
    'handlers': {
        'webapp': {
            'level': 'INFO',
            'class': 'logging.StreamHandler',
            'stream': 'ext://sys.stdout'
        }
    },
    'loggers': {
        'taskhub': {
            'level': 'INFO',
            'handlers': ['webapp'],
            'propagate': True
        }
    }
})


@pytest.fixture(scope='session')
def fake_redis():
    return FakeRedis()


@pytest.fixture(scope='session')
def flask_app(fake_redis):
    flask_app = create_app(TestConfig)

    # every Redis consumer (queue, cache, health check) goes through the FlaskRedis proxy
    redis_client._redis_client = fake_redis

    # add post request handler to clean the g context
    # NOTE: this is necessary cause the test client (differently from the actual app) does not clean the g context
    #       see: https://github.com/pallets/flask/issues/2567
    @flask_app.teardown_request
    def clean_g_context(response):
        for key in list(iter(g)):
            g.pop(key, None)

    with flask_app.test_request_context():
        yield flask_app

    mongoengine.disconnect()


@pytest.fixture(scope='session')
def test_client(flask_app):
    # Create a test client using the Flask application configured for testing
    yield flask_app.test_client()


@pytest.fixture(scope='module')
def init_database(flask_app):
    # load test data
    load_test_data()
    yield
    mongoengine.get_connection().drop_database(TestConfig.MONGODB_DB)


@pytest.fixture(autouse=True)
def clean_redis(fake_redis, flask_app):
    fake_redis.flushall()
    limiter.reset()
    yield


@pytest.fixture(scope='session')
def report_service(flask_app):
    return flask_app.extensions['report_service']


def auth_header(user_id: str) -> dict:
    return {'Authorization': f'Bearer {create_access_token(identity=user_id)}'}


@pytest.fixture
def owner_headers(flask_app):
    return auth_header(OWNER_ID)


@pytest.fixture
def member_headers(flask_app):
    return auth_header(MEMBER_ID)


@pytest.fixture
def outsider_headers(flask_app):
    return auth_header(OUTSIDER_ID)
