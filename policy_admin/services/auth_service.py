# policy_admin/services/auth_service.py
from __future__ import annotations

import logging
from collections.abc import Collection
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from policy_admin.core.errors import (
    AccountDisabled,
    AccountNotFound,
    DuplicateEmail,
    Forbidden,
    InvalidCredentials,
    NotFound,
    ValidationError,
)
from policy_admin.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from policy_admin.models.admin import Administrator
from policy_admin.models.enums import AdminRole
from policy_admin.schemas.auth import MIN_PASSWORD_LENGTH, AdminCreate, AdminRead, normalize_email

logger = logging.getLogger(__name__)


def issue_token(admin: Administrator) -> str:
    return create_access_token(admin.id, email=admin.email, role=admin.role.value)


class AuthService:
    """Administrator authentication, session tokens and role gating."""

    # --- helpers ---

    @staticmethod
    async def _by_email(session: AsyncSession, email: str) -> Administrator | None:
        stmt = select(Administrator).where(Administrator.email == normalize_email(email))
        res = await session.scalars(stmt)
        return res.first()

    @staticmethod
    async def _by_id(session: AsyncSession, admin_id: int) -> Administrator | None:
        return await session.get(Administrator, admin_id)

    # --- sessions ---

    @staticmethod
    async def login(session: AsyncSession, email: str, password: str) -> tuple[str, AdminRead]:
        """
        Authenticate by credentials and issue a session token.

        Unknown email and wrong password fail with the same InvalidCredentials
        message so the response never reveals which accounts exist.
        """
        admin = await AuthService._by_email(session, email)
        if admin is None or not verify_password(password, admin.password_hash):
            logger.warning("Failed login attempt for %s", normalize_email(email))
            raise InvalidCredentials()

        if not admin.is_active:
            logger.warning("Login refused for deactivated account %s", admin.email)
            raise AccountDisabled()

        admin.last_login = datetime.now(timezone.utc)
        await session.flush()

        logger.info("Administrator %s logged in", admin.email)
        return issue_token(admin), AdminRead.model_validate(admin)

    @staticmethod
    async def verify(session: AsyncSession, token: str) -> Administrator:
        """
        Resolve a bearer token to a live administrator.

        Tokens are not revoked server-side; an account removed or deactivated
        after issuance is caught here.
        """
        admin_id = decode_access_token(token)
        admin = await AuthService._by_id(session, admin_id)
        if admin is None:
            raise AccountNotFound()
        if not admin.is_active:
            raise AccountDisabled()
        return admin

    @staticmethod
    def authorize(admin: Administrator, required_roles: Collection[AdminRole]) -> None:
        if admin.role not in required_roles:
            logger.info(
                "Administrator %s (%s) denied; requires one of %s",
                admin.email,
                admin.role.value,
                sorted(r.value for r in required_roles),
            )
            raise Forbidden()

    @staticmethod
    async def change_password(
        session: AsyncSession,
        admin_id: int,
        current_password: str,
        new_password: str,
    ) -> str:
        """Replace the stored hash (fresh salt) and return a new token."""
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        admin = await AuthService._by_id(session, admin_id)
        if admin is None:
            raise AccountNotFound()
        if not verify_password(current_password, admin.password_hash):
            raise InvalidCredentials("Current password is incorrect")

        admin.password_hash = hash_password(new_password)
        await session.flush()

        logger.info("Administrator %s changed password", admin.email)
        return issue_token(admin)

    # --- accounts ---

    @staticmethod
    async def get_profile(session: AsyncSession, admin_id: int) -> AdminRead:
        admin = await AuthService._by_id(session, admin_id)
        if admin is None:
            raise AccountNotFound()
        return AdminRead.model_validate(admin)

    @staticmethod
    async def create_admin(session: AsyncSession, data: AdminCreate) -> AdminRead:
        """Provision an administrator. Email uniqueness is left to the database."""
        entity = Administrator(
            name=data.name.strip(),
            email=normalize_email(data.email),
            password_hash=hash_password(data.password),
            role=data.role,
            is_active=True,
        )
        session.add(entity)
        try:
            await session.flush()
        except IntegrityError as exc:
            await session.rollback()
            raise DuplicateEmail() from exc

        await session.refresh(entity)
        logger.info("Administrator %s created with role %s", entity.email, entity.role.value)
        return AdminRead.model_validate(entity)

    @staticmethod
    async def list_admins(session: AsyncSession) -> list[AdminRead]:
        res = await session.scalars(select(Administrator).order_by(Administrator.id))
        return [AdminRead.model_validate(a) for a in res]

    @staticmethod
    async def set_active(
        session: AsyncSession,
        admin_id: int,
        is_active: bool,
        *,
        acting_admin_id: int,
    ) -> AdminRead:
        if admin_id == acting_admin_id and not is_active:
            raise ValidationError("You cannot deactivate your own account")

        admin = await AuthService._by_id(session, admin_id)
        if admin is None:
            raise NotFound("Administrator not found")

        admin.is_active = is_active
        await session.flush()
        await session.refresh(admin)
        logger.info(
            "Administrator %s %s", admin.email, "activated" if is_active else "deactivated"
        )
        return AdminRead.model_validate(admin)
