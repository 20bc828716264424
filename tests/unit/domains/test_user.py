from taskhub.models import User
from test_data.load import OWNER_ID, MEMBER_ID


def test_user_get(init_database, test_client, owner_headers):
    response = test_client.get('/users/me', headers=owner_headers)
    assert response.status_code == 200
    assert response.json['id'] == OWNER_ID
    assert response.json['email'] == 'alice@example.com'
    assert 'password' not in response.json
    assert response.headers['Application-User-Id'] == OWNER_ID


def test_user_patch(init_database, test_client, member_headers):
    response = test_client.patch('/users/me', headers=member_headers, json={
        'name': 'Robert Member',
        'avatarUrl': 'https://cdn.example.com/avatars/bob.png',
    })
    assert response.status_code == 200
    assert response.json['name'] == 'Robert Member'

    user = User.objects(_id=MEMBER_ID).get()
    assert user.name == 'Robert Member'
    assert user.avatar_url == 'https://cdn.example.com/avatars/bob.png'


def test_user_patch_unknown_field(init_database, test_client, member_headers):
    response = test_client.patch('/users/me', headers=member_headers, json={'email': 'bob@evil.com'})
    assert response.status_code == 400


def test_user_patch_invalid_avatar(init_database, test_client, member_headers):
    response = test_client.patch('/users/me', headers=member_headers, json={'avatarUrl': 'not a url'})
    assert response.status_code == 400


def test_users_list(init_database, test_client, owner_headers):
    response = test_client.get('/users', headers=owner_headers)
    assert response.status_code == 200
    names = [user['name'] for user in response.json['users']]
    assert names == sorted(names)
    assert len(names) == 3
    assert all('password' not in user for user in response.json['users'])


def test_users_list_pagination(init_database, test_client, owner_headers):
    response = test_client.get('/users?skip=1&take=1', headers=owner_headers)
    assert response.status_code == 200
    assert len(response.json['users']) == 1
