from http import HTTPStatus

import pytest

from crowd_ticketing.config import get_settings
from crowd_ticketing.tasks import notification_tasks
from crowd_ticketing.tasks.celery_app import celery_app
from tests.utils import order_payload


@pytest.fixture
def notifications_on(monkeypatch):
    monkeypatch.setattr(get_settings(), 'notifications_enabled', True)


def test_tasks_are_registered():
    assert 'send_order_confirmation_task' in celery_app.tasks
    assert 'send_application_status_task' in celery_app.tasks
    assert celery_app.conf.beat_schedule['cleanup-stale-sessions']['task'] == 'cleanup_stale_sessions_task'


def test_cleanup_task_reports_errors_instead_of_raising(monkeypatch):
    def broken_engine():
        raise RuntimeError('database unavailable')

    monkeypatch.setattr(notification_tasks, 'create_database_engine', broken_engine)

    result = notification_tasks.cleanup_stale_sessions_task.run()

    assert result == {'revoked_count': 0, 'error': 'database unavailable'}


@pytest.mark.anyio
async def test_order_enqueues_confirmation(async_client, user_headers, published_event, notifications_on, monkeypatch):
    queued = []
    monkeypatch.setattr(notification_tasks.send_order_confirmation_task, 'delay', queued.append)

    response = await async_client.post(
        '/api/orders/', json=order_payload(published_event, {'VIP': 1}), headers=user_headers
    )

    assert response.status_code == HTTPStatus.CREATED
    assert queued == [response.json()['id']]


@pytest.mark.anyio
async def test_enqueue_failure_does_not_fail_order(async_client, user_headers, published_event, notifications_on, monkeypatch):
    def broker_down(order_id):
        raise ConnectionError('broker unreachable')

    monkeypatch.setattr(notification_tasks.send_order_confirmation_task, 'delay', broker_down)

    response = await async_client.post(
        '/api/orders/', json=order_payload(published_event, {'VIP': 1}), headers=user_headers
    )

    assert response.status_code == HTTPStatus.CREATED
