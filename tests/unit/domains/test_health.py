from unittest.mock import patch

from taskhub import redis_client
from fakes import FailingRedis


def test_health(test_client, fake_redis):
    fake_redis.rpush('report:queue', '{}', '{}')

    response = test_client.get('/health')
    assert response.status_code == 200
    assert response.json['status'] == 'ok'
    assert response.json['reportQueue'] == 2
    assert response.json['timestamp']


def test_health_redis_down(test_client):
    with patch.object(redis_client, '_redis_client', FailingRedis()):
        response = test_client.get('/health')

    assert response.status_code == 200
    assert response.json['status'] == 'degraded'
    assert response.json['reportQueue'] is None


def test_request_id_header(test_client):
    response = test_client.get('/health', headers={'X-Request-Id': 'abc123'})
    assert response.headers['Application-Request-Id'] == 'abc123'
    assert response.headers['Application-User-Id'] == 'unauthenticated'

    response = test_client.get('/health')
    assert len(response.headers['Application-Request-Id']) == 32


def test_unknown_route(test_client):
    response = test_client.get('/does-not-exist')
    assert response.status_code == 404
    assert response.json == {'msg': 'Route not found'}
