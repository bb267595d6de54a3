from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from policy_admin.api.deps import get_current_admin
from policy_admin.api.responses import success
from policy_admin.db import get_session
from policy_admin.models.admin import Administrator
from policy_admin.schemas.auth import ChangePasswordRequest, LoginRequest
from policy_admin.services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login")
async def login(
    payload: LoginRequest,
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """
    Exchange email + password for a bearer token.

    Response:
        {"status": "success", "token": "...", "data": {"admin": {...}}}
    """
    token, admin = await AuthService.login(session, payload.email, payload.password)
    await session.commit()
    return success({"admin": admin.to_json()}, token=token)


@router.get("/profile")
async def profile(
    current: Administrator = Depends(get_current_admin),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    admin = await AuthService.get_profile(session, current.id)
    return success({"admin": admin.to_json()})


@router.post("/logout")
async def logout(_: Administrator = Depends(get_current_admin)) -> dict[str, Any]:
    # Tokens are stateless; the client discards its copy.
    return success(message="Logged out successfully")


@router.post("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    current: Administrator = Depends(get_current_admin),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    token = await AuthService.change_password(
        session, current.id, payload.current_password, payload.new_password
    )
    await session.commit()
    return success(token=token, message="Password updated successfully")
