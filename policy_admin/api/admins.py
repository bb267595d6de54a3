from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from policy_admin.api.deps import require_roles
from policy_admin.api.responses import success
from policy_admin.db import get_session
from policy_admin.models.admin import Administrator
from policy_admin.models.enums import AdminRole
from policy_admin.schemas.auth import AdminCreate, AdminStatusUpdate
from policy_admin.services.auth_service import AuthService

router = APIRouter(prefix="/api/admins", tags=["admins"])

super_admin_only = require_roles(AdminRole.SUPER_ADMIN)


@router.get("")
async def list_admins(
    _: Administrator = Depends(super_admin_only),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    admins = await AuthService.list_admins(session)
    return success({"admins": [a.to_json() for a in admins]}, results=len(admins))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_admin(
    payload: AdminCreate,
    _: Administrator = Depends(super_admin_only),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    admin = await AuthService.create_admin(session, payload)
    await session.commit()
    return success({"admin": admin.to_json()})


@router.patch("/{admin_id}/status")
async def set_admin_status(
    admin_id: int,
    payload: AdminStatusUpdate,
    current: Administrator = Depends(super_admin_only),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Activate or deactivate an account. Deactivation takes effect on the next request."""
    admin = await AuthService.set_active(
        session, admin_id, payload.is_active, acting_admin_id=current.id
    )
    await session.commit()
    return success({"admin": admin.to_json()})
