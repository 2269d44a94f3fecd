"""
Authentication API endpoints.
"""

from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings
from ..database import get_db
from ..middleware.logging import get_client_ip
from ..models.user import User, UserSession
from ..schemas.auth import (
    AuthStatusResponse,
    PasswordChange,
    SessionInfo,
    TokenResponse,
    UserLogin,
    UserProfile,
    UserProfileUpdate,
    UserRegistration,
)
from ..schemas.common import MessageResponse
from ..services.user_service import UserService
from ..utils.dependencies import get_current_session, get_current_user


router = APIRouter(prefix="/auth", tags=["authentication"])


def _token_response(user: User, token: str) -> TokenResponse:
    return TokenResponse(
        access_token=token,
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserProfile.model_validate(user)
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: UserRegistration,
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Register a new account and log it in.

    Accounts registered with ``is_organizer`` get the organizer role.
    Returns 409 if the email is already registered.
    """
    user_service = UserService(db)
    user = await user_service.create_user(user_data)
    _, token = await user_service.open_session(
        user,
        user_agent=request.headers.get("user-agent"),
        ip_address=get_client_ip(request),
    )
    return _token_response(user, token)


@router.post("/login", response_model=TokenResponse)
async def login_user(
    login_data: UserLogin,
    request: Request,
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Authenticate user and return access token.

    Raises:
        HTTPException: 401 if credentials are invalid or the account is deactivated
    """
    user_service = UserService(db)

    user = await user_service.authenticate_user(login_data.email, login_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is deactivated"
        )

    _, token = await user_service.open_session(
        user,
        user_agent=request.headers.get("user-agent"),
        ip_address=get_client_ip(request),
    )
    return _token_response(user, token)


@router.post("/logout", response_model=MessageResponse)
async def logout_user(
    session: UserSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Revoke the token used for this request."""
    await UserService(db).close_session(session)
    return MessageResponse(message="Logout successful")


@router.get("/me", response_model=UserProfile)
async def get_current_user_profile(current_user: User = Depends(get_current_user)) -> Any:
    return UserProfile.model_validate(current_user)


@router.put("/me", response_model=UserProfile)
async def update_current_user_profile(
    update_data: UserProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Update the caller's name, phone, location or preferences."""
    updated_user = await UserService(db).update_user_profile(current_user, update_data)
    return UserProfile.model_validate(updated_user)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    password_data: PasswordChange,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Change current user's password.

    Returns 401 if the current password is incorrect.
    """
    await UserService(db).change_password(
        current_user,
        password_data.current_password,
        password_data.new_password
    )
    return MessageResponse(message="Password changed successfully")


@router.get("/auth-status", response_model=AuthStatusResponse)
async def get_auth_status(
    session: UserSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Online flag, activity timestamps and recent login history."""
    user_service = UserService(db)
    user = session.user
    history = await user_service.list_sessions(user.id, active_only=False)

    return AuthStatusResponse(
        user_id=user.id,
        is_online=user.is_online,
        last_activity=user.last_activity,
        last_login=user.last_login,
        last_logout=user.last_logout,
        active_sessions=await user_service.count_active_sessions(user.id),
        login_history=[_session_info(item, session) for item in history],
    )


@router.get("/sessions", response_model=List[SessionInfo])
async def list_active_sessions(
    session: UserSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
) -> Any:
    sessions = await UserService(db).list_sessions(session.user_id, active_only=True)
    return [_session_info(item, session) for item in sessions]


@router.post("/revoke-all-sessions", response_model=MessageResponse)
async def revoke_other_sessions(
    session: UserSession = Depends(get_current_session),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Log out every other device; the calling token stays valid."""
    revoked = await UserService(db).revoke_sessions(session.user_id, keep_session_id=session.id)
    return MessageResponse(message=f"Revoked {revoked} other sessions")


def _session_info(item: UserSession, current: UserSession) -> SessionInfo:
    info = SessionInfo.model_validate(item)
    info.is_current = item.id == current.id
    return info
