from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from policy_admin.core.config import Settings, get_settings
from policy_admin.core.security import hash_password
from policy_admin.models.admin import Administrator
from policy_admin.models.enums import AdminRole
from policy_admin.schemas.auth import normalize_email

logger = logging.getLogger(__name__)


async def ensure_default_admin(session: AsyncSession, settings: Settings | None = None) -> bool:
    """
    Create the configured bootstrap administrator if it does not exist yet.

    Returns True when an account was created. Safe to call on every startup.
    """
    settings = settings or get_settings()
    email = normalize_email(settings.ADMIN_EMAIL)

    res = await session.scalars(select(Administrator).where(Administrator.email == email))
    if res.first() is not None:
        logger.info("Bootstrap administrator %s already exists", email)
        return False

    session.add(
        Administrator(
            name=settings.ADMIN_NAME,
            email=email,
            password_hash=hash_password(settings.DEFAULT_ADMIN_PASSWORD),
            role=AdminRole.SUPER_ADMIN,
            is_active=True,
        )
    )
    await session.commit()
    logger.info("Bootstrap administrator %s created", email)
    return True
