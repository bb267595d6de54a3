from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from policy_admin.api.deps import get_current_admin, require_roles
from policy_admin.api.responses import success
from policy_admin.db import get_session
from policy_admin.models.admin import Administrator
from policy_admin.models.enums import EDITOR_ROLES, MANAGER_ROLES, PolicyStatus, PolicyType
from policy_admin.schemas.policy import BulkStatusUpdate, PolicyCreate, PolicyUpdate
from policy_admin.services.policy_service import DEFAULT_SORT, PolicyService

router = APIRouter(prefix="/api/policies", tags=["policies"])

can_edit = require_roles(*EDITOR_ROLES)
can_manage = require_roles(*MANAGER_ROLES)


# --- public ---


@router.get("/public/{slug}")
async def get_public_policy(
    slug: str,
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Read a published page by slug without a token. Counts one view."""
    policy = await PolicyService.get_public_by_slug(session, slug)
    await session.commit()
    return success({"policy": policy.to_json()})


# --- collection ---


@router.get("")
async def list_policies(
    _: Administrator = Depends(get_current_admin),
    session: AsyncSession = Depends(get_session),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    type: PolicyType | None = Query(None, description="Filter by policy type"),
    status_: PolicyStatus | None = Query(None, alias="status", description="Filter by status"),
    search: str | None = Query(None, description="Substring match on title/content/keywords"),
    sort: str = Query(DEFAULT_SORT, description="Field name, '-' prefix for descending"),
) -> dict[str, Any]:
    result = await PolicyService.list(
        session,
        search=search,
        type=type,
        status=status_,
        page=page,
        limit=limit,
        sort=sort,
    )
    return success(
        {"policies": [p.to_json() for p in result.items]},
        results=len(result.items),
        total=result.total,
        totalPages=result.total_pages,
        currentPage=result.page,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_policy(
    payload: PolicyCreate,
    admin: Administrator = Depends(can_edit),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    policy = await PolicyService.create(session, payload, admin.id)
    await session.commit()
    return success({"policy": policy.to_json()})


@router.patch("/bulk/status")
async def bulk_update_status(
    payload: BulkStatusUpdate,
    admin: Administrator = Depends(can_manage),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    result = await PolicyService.bulk_update_status(
        session, payload.policy_ids, payload.status, admin.id
    )
    await session.commit()
    data = result.to_json()
    data["message"] = f"{result.modified_count} policies updated to {payload.status.value}"
    return success(data)


# --- statistics & lookups ---


@router.get("/stats/summary")
async def policy_stats(
    _: Administrator = Depends(get_current_admin),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    stats = await PolicyService.aggregate_stats(session)
    return success(stats.to_json())


@router.get("/dashboard/stats")
async def dashboard_stats(
    _: Administrator = Depends(get_current_admin),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    stats = await PolicyService.dashboard_stats(session)
    return success(stats.to_json())


@router.get("/types/list")
async def policy_types(_: Administrator = Depends(get_current_admin)) -> dict[str, Any]:
    return success({"policyTypes": [t.to_json() for t in PolicyService.policy_types()]})


@router.get("/statuses/list")
async def policy_statuses(_: Administrator = Depends(get_current_admin)) -> dict[str, Any]:
    return success({"statuses": [s.to_json() for s in PolicyService.statuses()]})


@router.get("/search/quick")
async def quick_search(
    _: Administrator = Depends(get_current_admin),
    session: AsyncSession = Depends(get_session),
    q: str | None = Query(None, description="At least two characters"),
) -> dict[str, Any]:
    policies = await PolicyService.quick_search(session, q)
    return success({"policies": [p.to_json() for p in policies]})


@router.get("/recent/list")
async def recent_policies(
    _: Administrator = Depends(get_current_admin),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    policies = await PolicyService.recent(session)
    return success({"policies": [p.to_json() for p in policies]})


@router.get("/type/{policy_type}")
async def policies_by_type(
    policy_type: PolicyType,
    _: Administrator = Depends(get_current_admin),
    session: AsyncSession = Depends(get_session),
    status_: PolicyStatus | None = Query(None, alias="status"),
) -> dict[str, Any]:
    policies = await PolicyService.list_by_type(session, policy_type, status_)
    return success({"policies": [p.to_json() for p in policies], "count": len(policies)})


# --- single document ---


@router.get("/{policy_id}")
async def get_policy(
    policy_id: int,
    _: Administrator = Depends(get_current_admin),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    policy = await PolicyService.get(session, policy_id)
    return success({"policy": policy.to_json()})


@router.patch("/{policy_id}")
async def update_policy(
    policy_id: int,
    payload: PolicyUpdate,
    admin: Administrator = Depends(can_edit),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    policy = await PolicyService.update(session, policy_id, payload, admin.id)
    await session.commit()
    return success({"policy": policy.to_json()})


@router.delete("/{policy_id}")
async def delete_policy(
    policy_id: int,
    _: Administrator = Depends(can_manage),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Soft delete: the document is hidden from every listing but kept in storage."""
    await PolicyService.soft_delete(session, policy_id)
    await session.commit()
    return success(message="Policy deleted successfully")


@router.post("/{policy_id}/restore")
async def restore_policy(
    policy_id: int,
    _: Administrator = Depends(can_manage),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    policy = await PolicyService.restore(session, policy_id)
    await session.commit()
    return success({"policy": policy.to_json()})


@router.post("/{policy_id}/duplicate", status_code=status.HTTP_201_CREATED)
async def duplicate_policy(
    policy_id: int,
    admin: Administrator = Depends(can_edit),
    session: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    policy = await PolicyService.duplicate(session, policy_id, admin.id)
    await session.commit()
    return success({"policy": policy.to_json()})
