from http import HTTPStatus

import pytest

from tests.utils import bearer

pytestmark = pytest.mark.anyio


def app_payload(**overrides) -> dict:
    payload = {
        'name': 'Ticket Scanner',
        'description': 'Scan QR tickets at the door from any phone.',
        'short_description': 'Door check-in',
        'category': 'productivity',
        'icon': 'https://cdn.example.com/icons/scanner.png',
        'screenshots': ['https://cdn.example.com/shots/scanner-1.png'],
        'pricing': {'type': 'free'},
        'technical': {
            'webhook_url': 'https://hooks.example.com/scanner',
            'permissions': [{'name': 'read_orders', 'required': True}],
        },
        'tags': ['QR', 'check-in', 'qr'],
    }
    payload.update(overrides)
    return payload


async def create_app(async_client, headers, **overrides) -> dict:
    response = await async_client.post('/api/apps/', json=app_payload(**overrides), headers=headers)
    assert response.status_code == HTTPStatus.CREATED, response.text
    return response.json()


async def moderate(async_client, headers, app_id, **body):
    return await async_client.patch(f'/api/apps/{app_id}/moderation', json=body, headers=headers)


async def publish_app(async_client, organizer_headers, admin_headers, **overrides) -> dict:
    app = await create_app(async_client, organizer_headers, **overrides)
    response = await async_client.post(f"/api/apps/{app['id']}/submit", headers=organizer_headers)
    assert response.status_code == HTTPStatus.OK, response.text
    response = await moderate(async_client, admin_headers, app['id'], status='approved')
    assert response.status_code == HTTPStatus.OK, response.text
    return response.json()


async def test_new_app_is_an_unlisted_draft(async_client, organizer_headers):
    app = await create_app(async_client, organizer_headers)

    assert app['status'] == 'draft'
    assert app['slug'] == 'ticket-scanner'
    assert app['is_public'] is False
    assert app['developer_name'] == 'Test Organizer'
    assert app['tags'] == ['qr', 'check-in']
    assert app['icon'] == 'https://cdn.example.com/icons/scanner.png'
    assert app['technical']['permissions'][0]['name'] == 'read_orders'

    response = await async_client.get('/api/apps/')
    assert response.json()['total'] == 0

    response = await async_client.get(f"/api/apps/{app['id']}")
    assert response.status_code == HTTPStatus.NOT_FOUND

    response = await async_client.get(f"/api/apps/{app['id']}", headers=organizer_headers)
    assert response.status_code == HTTPStatus.OK

    response = await async_client.get('/api/apps/mine', headers=organizer_headers)
    assert [mine['id'] for mine in response.json()] == [app['id']]


async def test_attendees_cannot_create_apps(async_client, user_headers):
    response = await async_client.post('/api/apps/', json=app_payload(), headers=user_headers)

    assert response.status_code == HTTPStatus.FORBIDDEN


async def test_free_app_cannot_have_a_price(async_client, organizer_headers):
    response = await async_client.post(
        '/api/apps/', json=app_payload(pricing={'type': 'free', 'price': '9.99'}), headers=organizer_headers
    )

    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


async def test_slugs_are_unique(async_client, organizer_headers):
    first = await create_app(async_client, organizer_headers)
    second = await create_app(async_client, organizer_headers)

    assert first['slug'] == 'ticket-scanner'
    assert second['slug'] == 'ticket-scanner-1'


async def test_approved_app_is_listed(async_client, organizer_headers, admin_headers):
    app = await publish_app(async_client, organizer_headers, admin_headers)

    assert app['status'] == 'approved'
    assert app['is_public'] is True
    assert app['published_at'] is not None

    response = await async_client.get('/api/apps/')
    data = response.json()
    assert data['total'] == 1
    assert data['apps'][0]['id'] == app['id']

    response = await async_client.get('/api/apps/categories')
    assert response.json() == [{'category': 'productivity', 'count': 1}]

    response = await async_client.get(f"/api/apps/developer/{app['developer_id']}")
    assert len(response.json()) == 1


async def test_only_drafts_and_rejected_apps_can_be_submitted(async_client, organizer_headers, admin_headers):
    app = await create_app(async_client, organizer_headers)
    await async_client.post(f"/api/apps/{app['id']}/submit", headers=organizer_headers)

    response = await async_client.post(f"/api/apps/{app['id']}/submit", headers=organizer_headers)
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json()['error']['error_code'] == 'INVALID_STATUS_TRANSITION'

    await moderate(async_client, admin_headers, app['id'], status='rejected')
    response = await async_client.post(f"/api/apps/{app['id']}/submit", headers=organizer_headers)
    assert response.status_code == HTTPStatus.OK
    assert response.json()['status'] == 'review'


async def test_only_the_developer_submits(async_client, organizer_headers, register):
    app = await create_app(async_client, organizer_headers)
    other = bearer((await register('other@example.com', is_organizer=True))['access_token'])

    response = await async_client.post(f"/api/apps/{app['id']}/submit", headers=other)

    assert response.status_code == HTTPStatus.FORBIDDEN


async def test_moderation_needs_admin(async_client, organizer_headers, admin_headers):
    app = await create_app(async_client, organizer_headers)

    response = await moderate(async_client, organizer_headers, app['id'], status='approved')
    assert response.status_code == HTTPStatus.FORBIDDEN

    response = await moderate(async_client, admin_headers, app['id'])
    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


async def test_suspended_app_leaves_the_marketplace(async_client, organizer_headers, admin_headers):
    app = await publish_app(async_client, organizer_headers, admin_headers)

    response = await moderate(async_client, admin_headers, app['id'], status='suspended')
    assert response.json()['is_public'] is False

    response = await async_client.get('/api/apps/')
    assert response.json()['total'] == 0
    response = await async_client.get(f"/api/apps/{app['id']}")
    assert response.status_code == HTTPStatus.NOT_FOUND


async def test_featured_search_and_category_filters(async_client, organizer_headers, admin_headers):
    scanner = await publish_app(async_client, organizer_headers, admin_headers)
    mailer = await publish_app(
        async_client, organizer_headers, admin_headers,
        name='Mail Blast', description='Email your attendees.', category='marketing', tags=['email'],
    )
    await moderate(async_client, admin_headers, mailer['id'], is_featured=True)

    response = await async_client.get('/api/apps/featured')
    assert [app['id'] for app in response.json()] == [mailer['id']]

    response = await async_client.get('/api/apps/', params={'featured': True})
    assert [app['id'] for app in response.json()['apps']] == [mailer['id']]

    response = await async_client.get('/api/apps/', params={'search': 'check-in'})
    assert [app['id'] for app in response.json()['apps']] == [scanner['id']]

    response = await async_client.get('/api/apps/', params={'category': 'marketing'})
    assert [app['id'] for app in response.json()['apps']] == [mailer['id']]

    response = await async_client.get('/api/apps/categories')
    assert {row['category']: row['count'] for row in response.json()} == {'productivity': 1, 'marketing': 1}


async def test_update_app(async_client, organizer_headers, register):
    app = await create_app(async_client, organizer_headers)
    other = bearer((await register('other@example.com', is_organizer=True))['access_token'])

    response = await async_client.put(f"/api/apps/{app['id']}", json={'version': '1.1.0'}, headers=other)
    assert response.status_code == HTTPStatus.FORBIDDEN

    response = await async_client.put(
        f"/api/apps/{app['id']}",
        json={'version': '1.1.0', 'pricing': {'type': 'paid', 'price': '4.99', 'billing_cycle': 'monthly'}},
        headers=organizer_headers,
    )
    assert response.status_code == HTTPStatus.OK
    data = response.json()
    assert data['version'] == '1.1.0'
    assert data['pricing']['type'] == 'paid'
    assert data['pricing']['billing_cycle'] == 'monthly'


async def test_viewing_counts_views(async_client, organizer_headers, admin_headers):
    app = await publish_app(async_client, organizer_headers, admin_headers)

    await async_client.get(f"/api/apps/{app['id']}")
    response = await async_client.get(f"/api/apps/{app['id']}")

    assert response.json()['views'] == 2


async def test_install_and_uninstall(async_client, organizer_headers, admin_headers, user_headers):
    app = await publish_app(async_client, organizer_headers, admin_headers)
    url = f"/api/apps/{app['id']}/install"

    response = await async_client.post(url, headers=user_headers)
    assert response.status_code == HTTPStatus.OK
    assert response.json()['app_name'] == 'Ticket Scanner'
    assert response.json()['is_active'] is True

    await async_client.post(url, headers=user_headers)
    listed = (await async_client.get(f"/api/apps/{app['id']}")).json()
    assert (listed['installations'], listed['active_users']) == (1, 1)

    response = await async_client.delete(url, headers=user_headers)
    assert response.status_code == HTTPStatus.OK
    response = await async_client.delete(url, headers=user_headers)
    assert response.status_code == HTTPStatus.NOT_FOUND

    listed = (await async_client.get(f"/api/apps/{app['id']}")).json()
    assert (listed['installations'], listed['active_users']) == (1, 0)

    await async_client.post(url, headers=user_headers)
    listed = (await async_client.get(f"/api/apps/{app['id']}")).json()
    assert (listed['installations'], listed['active_users']) == (2, 1)


async def test_unapproved_app_cannot_be_installed_or_reviewed(async_client, organizer_headers, user_headers):
    app = await create_app(async_client, organizer_headers)

    response = await async_client.post(f"/api/apps/{app['id']}/install", headers=user_headers)
    assert response.status_code == HTTPStatus.NOT_FOUND

    response = await async_client.post(f"/api/apps/{app['id']}/reviews", json={'rating': 5}, headers=user_headers)
    assert response.status_code == HTTPStatus.NOT_FOUND


async def test_reviews_update_the_rating(async_client, organizer_headers, admin_headers, user_headers):
    app = await publish_app(async_client, organizer_headers, admin_headers)
    url = f"/api/apps/{app['id']}/reviews"

    response = await async_client.post(url, json={'rating': 5, 'title': 'Great'}, headers=user_headers)
    assert response.status_code == HTTPStatus.CREATED
    assert response.json()['user_name'] == 'Test Buyer'
    await async_client.post(url, json={'rating': 2}, headers=organizer_headers)

    # A second review by the same user replaces the first.
    await async_client.post(url, json={'rating': 4, 'comment': 'Still good'}, headers=user_headers)

    response = await async_client.get(url)
    data = response.json()
    assert data['total'] == 2
    assert sorted(review['rating'] for review in data['reviews']) == [2, 4]
    assert data['rating'] == {
        'average': 3.0,
        'count': 2,
        'distribution': {'five': 0, 'four': 1, 'three': 0, 'two': 1, 'one': 0},
    }

    listed = (await async_client.get(f"/api/apps/{app['id']}")).json()
    assert (listed['rating_average'], listed['rating_count']) == (3.0, 2)


async def test_review_rating_range(async_client, organizer_headers, admin_headers, user_headers):
    app = await publish_app(async_client, organizer_headers, admin_headers)

    response = await async_client.post(f"/api/apps/{app['id']}/reviews", json={'rating': 6}, headers=user_headers)

    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY

