from uuid import UUID, uuid4

import pytest

from crowd_ticketing.services.notification_service import NotificationService
from tests.utils import order_payload

pytestmark = pytest.mark.anyio


@pytest.fixture
def outbox(monkeypatch):
    sent = []

    async def fake_send(self, to_email, subject, html_content, text_content):
        sent.append({'to': to_email, 'subject': subject, 'text': text_content, 'html': html_content})
        return True

    monkeypatch.setattr(NotificationService, '_send_email', fake_send)
    return sent


async def test_order_confirmation(async_client, async_session, user_headers, published_event, outbox):
    order = (await async_client.post(
        '/api/orders/', json=order_payload(published_event, {'General Admission': 3}), headers=user_headers
    )).json()

    assert await NotificationService(async_session).send_order_confirmation(UUID(order['id']))

    assert outbox[0]['to'] == 'buyer@example.com'
    assert order['order_number'] in outbox[0]['subject']
    assert '3 x General Admission @ 50.00' in outbox[0]['text']
    assert 'Total: 166.35 USD' in outbox[0]['text']
    assert 'Skyline Terrace' in outbox[0]['html']


async def test_application_status_email(async_client, async_session, user_headers, admin_headers, outbox):
    application = (await async_client.post(
        '/api/monetize/apply/influencer',
        json={
            'contact_info': {'full_name': 'Maya Lopez', 'email': 'maya@example.com'},
            'influencer_details': {'niche': 'food'},
        },
        headers=user_headers,
    )).json()
    await async_client.patch(
        f"/api/monetize/admin/application/{application['id']}/status",
        json={'status': 'approved', 'partnership_terms': {'commission_rate': 10}},
        headers=admin_headers,
    )

    assert await NotificationService(async_session).send_application_status(UUID(application['id']))

    assert outbox[0]['to'] == 'maya@example.com'
    assert outbox[0]['subject'] == 'Your influencer application is approved'
    assert 'Commission rate: 10.0%' in outbox[0]['text']


async def test_missing_records_are_skipped(async_session, outbox):
    service = NotificationService(async_session)

    assert await service.send_order_confirmation(uuid4()) is False
    assert await service.send_application_status(uuid4()) is False
    assert outbox == []


async def test_without_smtp_nothing_is_sent(async_session):
    service = NotificationService(async_session)

    assert await service._send_email('someone@example.com', 'Hi', '<p>Hi</p>', 'Hi') is False
