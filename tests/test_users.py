from http import HTTPStatus

import pytest

from tests.utils import PASSWORD, bearer

pytestmark = pytest.mark.anyio


async def test_list_users_requires_admin(async_client, user_headers):
    response = await async_client.get('/api/users/', headers=user_headers)

    assert response.status_code == HTTPStatus.FORBIDDEN


async def test_list_and_filter_users(async_client, register, admin_headers):
    await register('one@example.com')
    await register('two@example.com', is_organizer=True)

    response = await async_client.get('/api/users/', headers=admin_headers)
    assert response.status_code == HTTPStatus.OK
    assert response.json()['total'] == 3

    response = await async_client.get('/api/users/', params={'role': 'organizer'}, headers=admin_headers)
    assert [user['email'] for user in response.json()['users']] == ['two@example.com']


async def test_search_users(async_client, register, admin_headers):
    await register('jamie@example.com')

    response = await async_client.get('/api/users/search/JAMIE', headers=admin_headers)

    assert [user['email'] for user in response.json()] == ['jamie@example.com']


async def test_read_own_account_only(async_client, register):
    me = await register('me@example.com')
    other = await register('other@example.com')
    headers = bearer(me['access_token'])

    response = await async_client.get(f"/api/users/{me['user']['id']}", headers=headers)
    assert response.status_code == HTTPStatus.OK

    response = await async_client.get(f"/api/users/{other['user']['id']}", headers=headers)
    assert response.status_code == HTTPStatus.FORBIDDEN


async def test_change_role(async_client, register, admin_headers):
    user = await register('promote@example.com')

    response = await async_client.put(
        f"/api/users/{user['user']['id']}/role", json={'role': 'organizer'}, headers=admin_headers
    )

    assert response.status_code == HTTPStatus.OK
    assert response.json()['role'] == 'organizer'


async def test_admin_cannot_demote_self(async_client, admin_headers):
    me = (await async_client.get('/api/auth/me', headers=admin_headers)).json()

    response = await async_client.put(
        f"/api/users/{me['id']}/role", json={'role': 'user'}, headers=admin_headers
    )

    assert response.status_code == HTTPStatus.BAD_REQUEST


async def test_deactivate_revokes_sessions_and_blocks_login(async_client, register, admin_headers):
    user = await register('gone@example.com')
    user_id = user['user']['id']

    response = await async_client.put(f'/api/users/{user_id}/deactivate', headers=admin_headers)
    assert response.status_code == HTTPStatus.OK
    assert response.json()['is_active'] is False

    response = await async_client.get('/api/auth/me', headers=bearer(user['access_token']))
    assert response.status_code == HTTPStatus.UNAUTHORIZED

    response = await async_client.post(
        '/api/auth/login', json={'email': 'gone@example.com', 'password': PASSWORD}
    )
    assert response.status_code == HTTPStatus.UNAUTHORIZED

    response = await async_client.put(f'/api/users/{user_id}/activate', headers=admin_headers)
    assert response.json()['is_active'] is True


async def test_unknown_user(async_client, admin_headers):
    response = await async_client.get(
        '/api/users/00000000-0000-0000-0000-000000000000', headers=admin_headers
    )

    assert response.status_code == HTTPStatus.NOT_FOUND
