from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from policy_admin.core.errors import NotAuthenticated
from policy_admin.db import get_session
from policy_admin.models.admin import Administrator
from policy_admin.models.enums import AdminRole
from policy_admin.services.auth_service import AuthService

# auto_error=False: a missing header must produce our own 401 envelope
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_admin(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
) -> Administrator:
    """Resolve `Authorization: Bearer <token>` to an active administrator."""
    if credentials is None or not credentials.credentials:
        raise NotAuthenticated()
    return await AuthService.verify(session, credentials.credentials)


def require_roles(*roles: AdminRole) -> Callable[..., Awaitable[Administrator]]:
    """Dependency factory: authenticated administrator whose role is in `roles`."""
    allowed = frozenset(roles)

    async def _dependency(admin: Administrator = Depends(get_current_admin)) -> Administrator:
        AuthService.authorize(admin, allowed)
        return admin

    return _dependency
