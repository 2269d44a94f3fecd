"""
Celery tasks for notifications and session housekeeping.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from .celery_app import celery_app
from ..database import create_database_engine, create_session_factory
from ..services.notification_service import NotificationService
from ..services.user_service import UserService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def task_session() -> AsyncGenerator[AsyncSession, None]:
    """A session on a dedicated engine; every task run has its own event loop."""
    engine = create_database_engine()
    session_factory = create_session_factory(engine)
    try:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
    finally:
        await engine.dispose()


def run_async(coro):
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@celery_app.task(bind=True, name="send_order_confirmation_task")
def send_order_confirmation_task(self, order_id: str):
    """
    Task to send an order confirmation email.

    Args:
        order_id: ID of the confirmed order
    """
    async def _send_confirmation():
        try:
            logger.info(f"Sending order confirmation for {order_id}")

            async with task_session() as session:
                success = await NotificationService(session).send_order_confirmation(UUID(order_id))

            if success:
                return {"order_id": order_id, "status": "sent"}
            logger.error(f"Failed to send order confirmation for {order_id}")
            return {"order_id": order_id, "status": "failed"}

        except Exception as e:
            logger.error(f"Error in order confirmation task: {e}")
            return {"order_id": order_id, "status": "error", "error": str(e)}

    return run_async(_send_confirmation())


@celery_app.task(bind=True, name="send_application_status_task")
def send_application_status_task(self, application_id: str):
    """
    Task to email an applicant about a review decision.

    Args:
        application_id: ID of the reviewed application
    """
    async def _send_status():
        try:
            logger.info(f"Sending application status for {application_id}")

            async with task_session() as session:
                success = await NotificationService(session).send_application_status(UUID(application_id))

            return {"application_id": application_id, "status": "sent" if success else "failed"}

        except Exception as e:
            logger.error(f"Error in application status task: {e}")
            return {"application_id": application_id, "status": "error", "error": str(e)}

    return run_async(_send_status())


@celery_app.task(bind=True, name="cleanup_stale_sessions_task")
def cleanup_stale_sessions_task(self):
    """Periodic task revoking idle sessions and clearing stale online flags."""
    async def _cleanup():
        try:
            async with task_session() as session:
                revoked = await UserService(session).cleanup_stale_sessions()
            logger.info(f"Revoked {revoked} stale sessions")
            return {"revoked_count": revoked}

        except Exception as e:
            logger.error(f"Error in session cleanup task: {e}")
            return {"revoked_count": 0, "error": str(e)}

    return run_async(_cleanup())
