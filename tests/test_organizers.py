from http import HTTPStatus

import pytest

from tests.utils import bearer

pytestmark = pytest.mark.anyio

PROFILE = {
    'name': 'Night Owl Events',
    'bio': 'Late shows and rooftop parties.',
    'website': 'https://nightowl.example.com',
    'phone': '+1 512 555 0100',
    'social_links': {'instagram': '@nightowl'},
}


async def test_create_profile_upgrades_user(async_client, register):
    user = await register('owl@example.com')
    headers = bearer(user['access_token'])

    response = await async_client.post('/api/organizer/profile', json=PROFILE, headers=headers)

    assert response.status_code == HTTPStatus.CREATED
    assert response.json()['contact_email'] == 'owl@example.com'
    assert response.json()['is_active'] is True

    me = (await async_client.get('/api/auth/me', headers=headers)).json()
    assert me['role'] == 'organizer'


async def test_one_profile_per_user(async_client, organizer_headers):
    await async_client.post('/api/organizer/profile', json=PROFILE, headers=organizer_headers)

    response = await async_client.post('/api/organizer/profile', json=PROFILE, headers=organizer_headers)

    assert response.status_code == HTTPStatus.CONFLICT


async def test_public_and_private_views(async_client, register, user_headers):
    owner = await register('owl@example.com')
    owner_headers = bearer(owner['access_token'])
    await async_client.post('/api/organizer/profile', json=PROFILE, headers=owner_headers)
    url = f"/api/organizer/profile/{owner['user']['id']}"

    public = (await async_client.get(url, headers=user_headers)).json()
    assert public['name'] == 'Night Owl Events'
    assert 'contact_email' not in public

    private = (await async_client.get(url, headers=owner_headers)).json()
    assert private['contact_email'] == 'owl@example.com'


async def test_events_use_profile_name(async_client, organizer_headers, event_payload):
    await async_client.post('/api/organizer/profile', json=PROFILE, headers=organizer_headers)

    response = await async_client.post('/api/events/', json=event_payload(), headers=organizer_headers)

    assert response.json()['organizer_name'] == 'Night Owl Events'


async def test_update_and_deactivate(async_client, register, organizer_headers):
    profile = (await async_client.post('/api/organizer/profile', json=PROFILE, headers=organizer_headers)).json()
    url = f"/api/organizer/profile/{profile['id']}"

    response = await async_client.put(url, json={'bio': 'Now with matinees.'}, headers=organizer_headers)
    assert response.status_code == HTTPStatus.OK
    assert response.json()['bio'] == 'Now with matinees.'

    stranger = await register('stranger@example.com')
    response = await async_client.put(url, json={'bio': 'Nope'}, headers=bearer(stranger['access_token']))
    assert response.status_code == HTTPStatus.FORBIDDEN

    response = await async_client.delete(url, headers=organizer_headers)
    assert response.status_code == HTTPStatus.OK

    response = await async_client.get(f"/api/organizer/profile/{profile['user_id']}")
    assert response.status_code == HTTPStatus.NOT_FOUND


async def test_missing_profile(async_client):
    response = await async_client.get('/api/organizer/profile/00000000-0000-0000-0000-000000000000')

    assert response.status_code == HTTPStatus.NOT_FOUND
