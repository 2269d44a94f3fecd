from http import HTTPStatus

import pytest

from tests.utils import bearer

pytestmark = pytest.mark.anyio

INFLUENCER = {
    'contact_info': {'full_name': 'Maya Lopez', 'email': 'Maya@Example.com'},
    'business_info': {'business_name': 'Maya Eats', 'social_media': {'instagram': '@mayaeats'}},
    'influencer_details': {
        'niche': 'food',
        'follower_count': {'instagram': 12000, 'tiktok': 3000},
        'avg_engagement_rate': 4.5,
        'content_types': ['reels'],
    },
}

VENUE = {
    'contact_info': {'full_name': 'Sam Park', 'email': 'sam@example.com'},
    'business_info': {'business_name': 'The Loft'},
    'venue_details': {
        'venue_type': 'rooftop',
        'capacity': 250,
        'location': {'address': '9 High St', 'city': 'Austin', 'state': 'TX', 'zip_code': '78701'},
        'licenses': {'liquor_license': True},
    },
}


async def apply(async_client, headers, application_type, payload):
    return await async_client.post(f'/api/monetize/apply/{application_type}', json=payload, headers=headers)


async def test_apply_as_influencer(async_client, user_headers):
    response = await apply(async_client, user_headers, 'influencer', INFLUENCER)

    assert response.status_code == HTTPStatus.CREATED
    data = response.json()
    assert data['status'] == 'pending'
    assert data['contact_email'] == 'maya@example.com'
    assert data['business_name'] == 'Maya Eats'
    assert data['total_followers'] == 15000
    assert data['venue_details'] is None
    assert data['partnership_terms'] is None


async def test_apply_needs_details_for_type(async_client, user_headers):
    response = await apply(async_client, user_headers, 'venue', INFLUENCER)

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert 'venue_details' in response.json()['error']['details']['field_errors']


async def test_unknown_application_type(async_client, user_headers):
    response = await apply(async_client, user_headers, 'sponsor', INFLUENCER)

    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


async def test_one_open_application_per_type(async_client, user_headers):
    await apply(async_client, user_headers, 'influencer', INFLUENCER)

    response = await apply(async_client, user_headers, 'influencer', INFLUENCER)
    assert response.status_code == HTTPStatus.CONFLICT

    response = await apply(async_client, user_headers, 'venue', VENUE)
    assert response.status_code == HTTPStatus.CREATED

    response = await async_client.get('/api/monetize/my-applications', headers=user_headers)
    assert len(response.json()) == 2


async def test_can_reapply_after_rejection(async_client, user_headers, admin_headers):
    application = (await apply(async_client, user_headers, 'venue', VENUE)).json()
    await async_client.patch(
        f"/api/monetize/admin/application/{application['id']}/status",
        json={'status': 'rejected'},
        headers=admin_headers,
    )

    response = await apply(async_client, user_headers, 'venue', VENUE)

    assert response.status_code == HTTPStatus.CREATED


async def test_admin_endpoints_require_admin(async_client, user_headers):
    response = await async_client.get('/api/monetize/admin/stats', headers=user_headers)

    assert response.status_code == HTTPStatus.FORBIDDEN
    assert response.json() == {'detail': 'Access denied. Admin privileges required.'}


async def test_approval_sets_terms_and_other_statuses_clear_them(async_client, user_headers, admin_headers):
    application = (await apply(async_client, user_headers, 'influencer', INFLUENCER)).json()
    url = f"/api/monetize/admin/application/{application['id']}/status"

    response = await async_client.patch(
        url, json={'status': 'approved', 'notes': 'Great fit'}, headers=admin_headers
    )
    assert response.status_code == HTTPStatus.OK
    data = response.json()
    assert data['partnership_terms'] == {
        'commission_rate': 0.0,
        'minimum_revenue': 0.0,
        'contract_duration': 12,
    }
    assert data['approval_date'] is not None
    assert data['reviewed_by'] is not None

    response = await async_client.patch(url, json={'status': 'under_review'}, headers=admin_headers)
    data = response.json()
    assert data['status'] == 'under_review'
    assert data['partnership_terms'] is None
    assert data['reviewer_notes'] == 'Great fit'

    response = await async_client.patch(
        url,
        json={'status': 'approved', 'partnership_terms': {'commission_rate': 12.5, 'contract_duration': 6}},
        headers=admin_headers,
    )
    assert response.json()['partnership_terms']['commission_rate'] == 12.5
    assert response.json()['partnership_terms']['contract_duration'] == 6


async def test_invalid_status(async_client, user_headers, admin_headers):
    application = (await apply(async_client, user_headers, 'influencer', INFLUENCER)).json()

    response = await async_client.patch(
        f"/api/monetize/admin/application/{application['id']}/status",
        json={'status': 'archived'},
        headers=admin_headers,
    )

    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


async def test_unknown_application(async_client, admin_headers):
    response = await async_client.get(
        '/api/monetize/admin/application/00000000-0000-0000-0000-000000000000', headers=admin_headers
    )

    assert response.status_code == HTTPStatus.NOT_FOUND


async def test_stats_list_and_search(async_client, register, user_headers, admin_headers):
    influencer = (await apply(async_client, user_headers, 'influencer', INFLUENCER)).json()
    other = await register('venue-owner@example.com')
    await apply(async_client, bearer(other['access_token']), 'venue', VENUE)
    await async_client.patch(
        f"/api/monetize/admin/application/{influencer['id']}/status",
        json={'status': 'approved'},
        headers=admin_headers,
    )

    stats = (await async_client.get('/api/monetize/admin/stats', headers=admin_headers)).json()
    assert stats['total'] == 2
    assert stats['approved'] == 1
    assert stats['pending'] == 1
    assert stats['influencers'] == 1
    assert stats['venues'] == 1
    assert stats['recent'] == 2

    response = await async_client.get(
        '/api/monetize/admin/applications', params={'type': 'venue'}, headers=admin_headers
    )
    assert response.json()['total'] == 1
    assert response.json()['applications'][0]['business_name'] == 'The Loft'

    response = await async_client.get(
        '/api/monetize/admin/applications',
        params={'status': 'approved', 'sort_by': 'last_updated', 'sort_order': 'asc'},
        headers=admin_headers,
    )
    assert [item['id'] for item in response.json()['applications']] == [influencer['id']]

    response = await async_client.get(
        '/api/monetize/admin/search', params={'q': 'loft'}, headers=admin_headers
    )
    assert [item['contact_name'] for item in response.json()] == ['Sam Park']

    response = await async_client.get(
        '/api/monetize/admin/search', params={'q': 'MAYA@'}, headers=admin_headers
    )
    assert len(response.json()) == 1
