"""API endpoints for the Crowd Ticketing platform."""

from fastapi import APIRouter
from .auth import router as auth_router
from .users import router as users_router
from .organizers import router as organizers_router
from .events import router as events_router
from .orders import router as orders_router
from .monetize import router as monetize_router
from .finance import router as finance_router
from .apps import router as apps_router

api_router = APIRouter(prefix="/api")

api_router.include_router(auth_router)
api_router.include_router(users_router)
api_router.include_router(organizers_router)
api_router.include_router(events_router)
api_router.include_router(orders_router)
api_router.include_router(monetize_router)
api_router.include_router(finance_router)
api_router.include_router(apps_router)

__all__ = ["api_router"]
