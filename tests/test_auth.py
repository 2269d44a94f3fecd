from http import HTTPStatus

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select, update

from crowd_ticketing.models import UserSession
from tests.utils import PASSWORD, bearer

pytestmark = pytest.mark.anyio


async def test_register_returns_token_and_profile(async_client):
    response = await async_client.post(
        '/api/auth/register',
        json={
            'email': 'Ana@Example.com',
            'password': PASSWORD,
            'first_name': 'Ana',
            'last_name': 'Silva',
        },
    )

    assert response.status_code == HTTPStatus.CREATED
    data = response.json()
    assert data['token_type'] == 'bearer'
    assert data['expires_in'] > 0
    assert data['user']['email'] == 'ana@example.com'
    assert data['user']['role'] == 'user'


async def test_register_organizer_gets_organizer_role(register):
    data = await register('host@example.com', is_organizer=True)

    assert data['user']['role'] == 'organizer'


async def test_register_duplicate_email(async_client, register):
    await register('dup@example.com')

    response = await async_client.post(
        '/api/auth/register',
        json={'email': 'dup@example.com', 'password': PASSWORD, 'first_name': 'A', 'last_name': 'B'},
    )

    assert response.status_code == HTTPStatus.CONFLICT
    assert response.json()['error']['error_code'] == 'CONFLICT'


async def test_register_short_password(async_client):
    response = await async_client.post(
        '/api/auth/register',
        json={'email': 'short@example.com', 'password': '123', 'first_name': 'A', 'last_name': 'B'},
    )

    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


async def test_login(async_client, register):
    await register('login@example.com')

    response = await async_client.post(
        '/api/auth/login', json={'email': 'login@example.com', 'password': PASSWORD}
    )

    assert response.status_code == HTTPStatus.OK
    assert response.json()['user']['last_login'] is not None


async def test_login_wrong_password(async_client, register):
    await register('login@example.com')

    response = await async_client.post(
        '/api/auth/login', json={'email': 'login@example.com', 'password': 'wrong-password'}
    )

    assert response.status_code == HTTPStatus.UNAUTHORIZED
    assert response.json() == {'detail': 'Invalid credentials'}


async def test_me_requires_token(async_client):
    response = await async_client.get('/api/auth/me')

    assert response.status_code == HTTPStatus.UNAUTHORIZED


async def test_me_with_garbage_token(async_client):
    response = await async_client.get('/api/auth/me', headers=bearer('not-a-jwt'))

    assert response.status_code == HTTPStatus.UNAUTHORIZED


async def test_update_me(async_client, user_headers):
    response = await async_client.put(
        '/api/auth/me',
        json={'first_name': 'Renamed', 'preferences': {'newsletter': True}},
        headers=user_headers,
    )

    assert response.status_code == HTTPStatus.OK
    assert response.json()['first_name'] == 'Renamed'
    assert response.json()['preferences'] == {'newsletter': True}


async def test_logout_revokes_token(async_client, user_headers):
    response = await async_client.post('/api/auth/logout', headers=user_headers)
    assert response.status_code == HTTPStatus.OK

    response = await async_client.get('/api/auth/me', headers=user_headers)
    assert response.status_code == HTTPStatus.UNAUTHORIZED


async def test_idle_session_expires(async_client, async_session, register):
    data = await register('idle@example.com')
    await async_session.execute(
        update(UserSession).values(last_used=datetime.now(timezone.utc) - timedelta(hours=25))
    )
    await async_session.commit()

    response = await async_client.get('/api/auth/me', headers=bearer(data['access_token']))

    assert response.status_code == HTTPStatus.UNAUTHORIZED
    assert response.json() == {'detail': 'Session expired'}
    assert await async_session.scalar(select(UserSession.revoked)) is True


async def test_change_password(async_client, register):
    data = await register('pw@example.com')
    headers = bearer(data['access_token'])

    response = await async_client.post(
        '/api/auth/change-password',
        json={'current_password': 'wrong-password', 'new_password': 'another1'},
        headers=headers,
    )
    assert response.status_code == HTTPStatus.UNAUTHORIZED

    response = await async_client.post(
        '/api/auth/change-password',
        json={'current_password': PASSWORD, 'new_password': 'another1'},
        headers=headers,
    )
    assert response.status_code == HTTPStatus.OK

    response = await async_client.post(
        '/api/auth/login', json={'email': 'pw@example.com', 'password': 'another1'}
    )
    assert response.status_code == HTTPStatus.OK


async def test_sessions_and_revoke_others(async_client, register):
    first = await register('multi@example.com')
    second = await async_client.post(
        '/api/auth/login', json={'email': 'multi@example.com', 'password': PASSWORD}
    )
    first_headers = bearer(first['access_token'])
    second_headers = bearer(second.json()['access_token'])

    response = await async_client.get('/api/auth/sessions', headers=first_headers)
    assert response.status_code == HTTPStatus.OK
    sessions = response.json()
    assert len(sessions) == 2
    assert sum(1 for session in sessions if session['is_current']) == 1

    response = await async_client.post('/api/auth/revoke-all-sessions', headers=first_headers)
    assert response.status_code == HTTPStatus.OK

    assert (await async_client.get('/api/auth/me', headers=second_headers)).status_code == HTTPStatus.UNAUTHORIZED
    assert (await async_client.get('/api/auth/me', headers=first_headers)).status_code == HTTPStatus.OK


async def test_auth_status(async_client, user_headers):
    response = await async_client.get('/api/auth/auth-status', headers=user_headers)

    assert response.status_code == HTTPStatus.OK
    data = response.json()
    assert data['is_online'] is True
    assert data['active_sessions'] == 1
    assert len(data['login_history']) == 1
