"""
FastAPI dependencies for authentication and authorization.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User, UserSession
from ..utils.auth import verify_token
from ..services.user_service import UserService


# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> UserSession:
    """
    Resolve the session behind the bearer token.

    The token must be a valid JWT whose ``jti`` names a session that has not
    been revoked, and the owning account must be active.

    Raises:
        HTTPException: 401 if any of these checks fail
    """
    if credentials is None:
        raise _credentials_exception("Access denied. No token provided.")

    token_data = verify_token(credentials.credentials)
    if token_data is None:
        raise _credentials_exception()

    user_service = UserService(db)
    session = await user_service.get_session_by_token_id(token_data.token_id)
    if session is None or str(session.user_id) != token_data.user_id:
        raise _credentials_exception()

    if session.revoked:
        raise _credentials_exception("Session has been logged out")

    if not session.user.is_active:
        raise _credentials_exception("Account is deactivated")

    if user_service.is_session_idle(session):
        await user_service.close_session(session)
        raise _credentials_exception("Session expired")

    await user_service.touch_session(session)
    # Plain values for error logging, which may run after a rollback has
    # expired the ORM instances.
    request.state.user_info = {"user_id": str(session.user.id), "role": session.user.role.value}
    return session


async def get_current_user(session: UserSession = Depends(get_current_session)) -> User:
    """Get the current authenticated user."""
    return session.user


async def get_optional_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[User]:
    """The authenticated user if a usable token was sent, otherwise None."""
    if credentials is None:
        return None
    try:
        session = await get_current_session(request, credentials, db)
    except HTTPException:
        return None
    return session.user


async def get_current_organizer(current_user: User = Depends(get_current_user)) -> User:
    """
    Get the current user if they may manage events.

    Raises:
        HTTPException: 403 for plain attendee accounts
    """
    if not current_user.can_organize:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Organizer account required"
        )
    return current_user


async def get_current_admin_user(current_user: User = Depends(get_current_user)) -> User:
    """
    Get the current admin user.

    Raises:
        HTTPException: If user is not an admin
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin privileges required."
        )
    return current_user
