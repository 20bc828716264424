from datetime import datetime, timedelta
import pytest
import freezegun

from taskhub import limiter
from taskhub.models import User, RefreshToken
from test_data.load import PASSWORD


@pytest.fixture(scope='function')
def test_client_unauthenticated(flask_app):
    # Create a test client using the Flask application configured for testing
    with flask_app.test_client() as testing_client:
        yield testing_client


@pytest.fixture(scope='function')
def login_tokens(test_client, init_database):
    r = test_client.post('/auth/login', json={'email': 'alice@example.com', 'password': PASSWORD})
    assert r.status_code == 200
    return r.json


def bearer(token: str) -> dict:
    return {'Authorization': f'Bearer {token}'}


def test_register(test_client, init_database):
    response = test_client.post('/auth/register', json={
        'email': 'Dave@Example.com',
        'password': 'supersecret',
        'name': 'Dave'
    })
    assert response.status_code == 201
    assert response.json['user']['email'] == 'dave@example.com'
    assert 'password' not in response.json['user']
    assert response.json['accessToken']
    assert response.json['refreshToken']

    user = User.find_by_email('dave@example.com')
    assert user.check_password('supersecret')
    assert RefreshToken.objects(user=user._id).count() == 1


def test_register_duplicate_email(test_client, init_database):
    response = test_client.post('/auth/register', json={
        'email': 'ALICE@example.com',
        'password': 'supersecret',
        'name': 'Another Alice'
    })
    assert response.status_code == 409


def test_register_invalid_body(test_client, init_database):
    response = test_client.post('/auth/register', json={'email': 'eve@example.com', 'password': 'short'})
    assert response.status_code == 400
    assert response.json['msg'] == 'Bad Object'
    assert 'schema_error' in response.json


def test_register_invalid_email(test_client, init_database):
    response = test_client.post('/auth/register', json={
        'email': 'not-an-email',
        'password': 'supersecret',
        'name': 'Eve'
    })
    assert response.status_code == 400


def test_login(test_client, init_database):
    response = test_client.post('/auth/login', json={'email': 'alice@example.com', 'password': PASSWORD})
    assert response.status_code == 200
    assert response.json['user']['name'] == 'Alice Owner'
    assert User.objects(email='alice@example.com').get().last_login is not None


@pytest.mark.parametrize('email,password', [
    ('alice@example.com', 'wrong-password'),
    ('nobody@example.com', PASSWORD),
])
def test_login_invalid_credentials(test_client, init_database, email, password):
    response = test_client.post('/auth/login', json={'email': email, 'password': password})
    assert response.status_code == 401
    assert response.json['msg'] == 'Invalid email or password'


def test_refresh_rotates_token(test_client, login_tokens):
    old_refresh = login_tokens['refreshToken']

    response = test_client.post('/auth/refresh', headers=bearer(old_refresh))
    assert response.status_code == 200
    assert response.json['refreshToken'] != old_refresh

    # the old refresh token was revoked by the rotation
    response = test_client.post('/auth/refresh', headers=bearer(old_refresh))
    assert response.status_code == 401
    assert response.json['msg'] == 'Token has been revoked'


def test_refresh_requires_refresh_token(test_client, login_tokens):
    response = test_client.post('/auth/refresh', headers=bearer(login_tokens['accessToken']))
    assert response.status_code == 422


def test_logout(test_client, login_tokens):
    response = test_client.post('/auth/logout', headers=bearer(login_tokens['refreshToken']))
    assert response.status_code == 200

    response = test_client.post('/auth/refresh', headers=bearer(login_tokens['refreshToken']))
    assert response.status_code == 401


def test_jwt_expiration(flask_app, test_client, login_tokens):
    """Test authenticated endpoints are blocked when the access token expires"""
    now = datetime.utcnow()
    expiration = flask_app.config['JWT_ACCESS_TOKEN_EXPIRES'] + timedelta(seconds=1)
    # jumping ahead in time after JWT expiration
    with freezegun.freeze_time(now + expiration):
        r = test_client.get('/users/me', headers=bearer(login_tokens['accessToken']))
        assert r.status_code == 401
        assert r.json['msg'] == 'Token has expired'


def test_jwt_missing(init_database, test_client_unauthenticated):
    r = test_client_unauthenticated.get('/users/me')
    assert r.status_code == 401
    assert r.json['msg'] == 'Missing Authorization Header'


def test_login_rate_limit(flask_app, test_client, init_database):
    flask_app.config['AUTH_RATE_LIMIT'] = '2 per minute'
    try:
        for _ in range(2):
            r = test_client.post('/auth/login', json={'email': 'alice@example.com', 'password': 'wrong-password'})
            assert r.status_code == 401

        r = test_client.post('/auth/login', json={'email': 'alice@example.com', 'password': PASSWORD})
        assert r.status_code == 429
        assert 'msg' in r.json
    finally:
        flask_app.config['AUTH_RATE_LIMIT'] = '1000 per minute'
        limiter.reset()
