"""
User service for accounts, login sessions and admin account management.
"""

import logging
import uuid
from datetime import timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..config import get_settings
from ..models.base import as_utc, utcnow
from ..models.user import User, UserRole, UserSession
from ..schemas.auth import UserRegistration, UserProfileUpdate
from ..utils.auth import create_access_token, get_password_hash
from ..utils.exceptions import AuthenticationError, ConflictError, UserNotFoundError, ValidationError
from ..utils.logging_config import log_security_event

logger = logging.getLogger(__name__)


class UserService:
    """Service class for user operations."""

    def __init__(self, db: AsyncSession):
        """
        Initialize the user service.

        Args:
            db: Database session
        """
        self.db = db
        self.settings = get_settings()

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    async def create_user(self, user_data: UserRegistration) -> User:
        """
        Create a new user.

        Args:
            user_data: User registration data

        Returns:
            The created user

        Raises:
            ConflictError: If the email is already registered
        """
        if await self.get_user_by_email(user_data.email):
            raise ConflictError("User already exists with this email")

        user = User(
            email=user_data.email,
            first_name=user_data.first_name,
            last_name=user_data.last_name,
            phone=user_data.phone,
            location=user_data.location,
            preferences={},
            role=UserRole.ORGANIZER if user_data.is_organizer else UserRole.USER,
            password_hash=get_password_hash(user_data.password)
        )
        self.db.add(user)
        await self.db.flush()

        logger.info(f"Registered user {user.id} with role {user.role.value}")
        return user

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def authenticate_user(self, email: str, password: str) -> Optional[User]:
        """
        Authenticate a user with email and password.

        Returns:
            The user if the credentials match, None otherwise
        """
        user = await self.get_user_by_email(email)
        if not user or not user.verify_password(password):
            log_security_event("login_failed", {"email": email})
            return None
        return user

    async def update_user_profile(self, user: User, update_data: UserProfileUpdate) -> User:
        for field, value in update_data.model_dump(exclude_unset=True).items():
            if field == "preferences":
                value = {**(user.preferences or {}), **(value or {})}
            setattr(user, field, value)

        await self.db.commit()
        return user

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        """
        Change a user's password.

        Raises:
            AuthenticationError: If the current password is wrong
        """
        if not user.verify_password(current_password):
            raise AuthenticationError("Current password is incorrect")

        user.set_password(new_password)
        await self.db.commit()
        log_security_event("password_changed", {"user_id": str(user.id)}, severity="INFO")

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    async def open_session(
        self,
        user: User,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> Tuple[UserSession, str]:
        """
        Record a login and issue its access token.

        Args:
            user: The authenticated user
            user_agent: Client user agent
            ip_address: Client IP address

        Returns:
            The new session and the encoded JWT
        """
        now = utcnow()
        session = UserSession(
            user_id=user.id,
            token_id=uuid.uuid4().hex,
            user_agent=(user_agent or "")[:512] or None,
            ip_address=ip_address,
            last_used=now,
        )
        self.db.add(session)

        user.last_login = now
        user.last_activity = now
        user.is_online = True
        await self.db.flush()

        await self._trim_login_history(user.id)
        await self.db.commit()

        token = create_access_token(
            data={
                "sub": str(user.id),
                "email": user.email,
                "role": user.role.value,
                "jti": session.token_id,
            },
            expires_delta=timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )

        log_security_event(
            "login",
            {"user_id": str(user.id), "ip_address": ip_address, "session_id": str(session.id)},
            severity="INFO",
        )
        return session, token

    async def _trim_login_history(self, user_id: UUID) -> None:
        """Keep only the most recent closed sessions as login history."""
        keep = (
            select(UserSession.id)
            .where(UserSession.user_id == user_id)
            .order_by(UserSession.created_at.desc())
            .limit(self.settings.login_history_limit)
        )
        await self.db.execute(
            delete(UserSession)
            .where(
                UserSession.user_id == user_id,
                UserSession.revoked.is_(True),
                UserSession.id.not_in(keep),
            )
            .execution_options(synchronize_session=False)
        )

    async def get_session_by_token_id(self, token_id: str) -> Optional[UserSession]:
        result = await self.db.execute(
            select(UserSession)
            .options(selectinload(UserSession.user))
            .where(UserSession.token_id == token_id)
        )
        return result.scalar_one_or_none()

    def is_session_idle(self, session: UserSession) -> bool:
        """True once a session has gone unused for longer than the idle expiry."""
        last_seen = as_utc(session.last_used or session.created_at)
        cutoff = utcnow() - timedelta(hours=self.settings.session_idle_expiry_hours)
        return last_seen < cutoff

    async def touch_session(self, session: UserSession) -> None:
        """Mark the session and its user as recently active."""
        now = utcnow()
        session.last_used = now
        session.user.last_activity = now
        session.user.is_online = True
        await self.db.commit()

    async def close_session(self, session: UserSession) -> None:
        """
        Revoke one session (logout).

        The user goes offline once no other active session remains.
        """
        now = utcnow()
        session.revoked = True
        session.logout_at = now
        await self.db.flush()

        user = session.user
        if await self.count_active_sessions(user.id) == 0:
            user.is_online = False
            user.last_logout = now

        await self.db.commit()
        log_security_event("logout", {"user_id": str(user.id), "session_id": str(session.id)}, severity="INFO")

    async def count_active_sessions(self, user_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(UserSession.id)).where(
                UserSession.user_id == user_id,
                UserSession.revoked.is_(False),
            )
        )
        return result.scalar_one()

    async def list_sessions(self, user_id: UUID, active_only: bool = True) -> List[UserSession]:
        query = select(UserSession).where(UserSession.user_id == user_id)
        if active_only:
            query = query.where(UserSession.revoked.is_(False))
        query = query.order_by(UserSession.created_at.desc())
        if not active_only:
            query = query.limit(self.settings.login_history_limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def revoke_sessions(self, user_id: UUID, keep_session_id: Optional[UUID] = None) -> int:
        """
        Revoke every active session of a user except ``keep_session_id``.

        Returns:
            Number of sessions revoked
        """
        conditions = [UserSession.user_id == user_id, UserSession.revoked.is_(False)]
        if keep_session_id is not None:
            conditions.append(UserSession.id != keep_session_id)

        result = await self.db.execute(
            update(UserSession)
            .where(*conditions)
            .values(revoked=True, logout_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        revoked = result.rowcount or 0
        log_security_event("sessions_revoked", {"user_id": str(user_id), "count": revoked})
        return revoked

    async def cleanup_stale_sessions(self) -> int:
        """
        Revoke sessions idle for longer than the configured expiry and mark
        users without remaining sessions offline.

        Returns:
            Number of sessions revoked
        """
        now = utcnow()
        cutoff = now - timedelta(hours=self.settings.session_idle_expiry_hours)

        result = await self.db.execute(
            update(UserSession)
            .where(UserSession.revoked.is_(False), UserSession.last_used < cutoff)
            .values(revoked=True, logout_at=now)
            .execution_options(synchronize_session=False)
        )

        still_active = select(UserSession.user_id).where(UserSession.revoked.is_(False))
        await self.db.execute(
            update(User)
            .where(User.is_online.is_(True), User.id.not_in(still_active))
            .values(is_online=False)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        revoked = result.rowcount or 0
        if revoked:
            logger.info(f"Revoked {revoked} idle sessions")
        return revoked

    # ------------------------------------------------------------------
    # Admin management
    # ------------------------------------------------------------------

    async def get_user_or_raise(self, user_id: UUID) -> User:
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise UserNotFoundError(str(user_id))
        return user

    async def list_users(
        self,
        page: int = 1,
        size: int = 20,
        role: Optional[UserRole] = None,
    ) -> Tuple[List[User], int]:
        conditions = []
        if role is not None:
            conditions.append(User.role == role)

        total = (
            await self.db.execute(select(func.count(User.id)).where(*conditions))
        ).scalar_one()
        result = await self.db.execute(
            select(User)
            .where(*conditions)
            .order_by(User.created_at.desc())
            .offset((page - 1) * size)
            .limit(size)
        )
        return list(result.scalars().all()), total

    async def search_users(self, query: str, limit: int = 20) -> List[User]:
        term = f"%{query.strip()}%"
        result = await self.db.execute(
            select(User)
            .where(or_(
                User.email.ilike(term),
                User.first_name.ilike(term),
                User.last_name.ilike(term),
            ))
            .order_by(User.email)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def set_role(self, user_id: UUID, role: UserRole, acting_admin: User) -> User:
        user = await self.get_user_or_raise(user_id)
        if user.id == acting_admin.id and role != UserRole.ADMIN:
            raise ValidationError("Admins cannot remove their own admin role")

        user.role = role
        await self.db.commit()
        log_security_event(
            "role_changed",
            {"user_id": str(user.id), "role": role.value, "changed_by": str(acting_admin.id)},
        )
        return user

    async def set_active(self, user_id: UUID, is_active: bool, acting_admin: User) -> User:
        """Activate or deactivate an account; deactivation revokes all its sessions."""
        user = await self.get_user_or_raise(user_id)
        if user.id == acting_admin.id and not is_active:
            raise ValidationError("Admins cannot deactivate their own account")

        user.is_active = is_active
        if not is_active:
            user.is_online = False
        await self.db.commit()

        if not is_active:
            await self.revoke_sessions(user.id)

        log_security_event(
            "account_activated" if is_active else "account_deactivated",
            {"user_id": str(user.id), "changed_by": str(acting_admin.id)},
        )
        return user
