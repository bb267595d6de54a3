# policy_admin/services/policy_service.py
from __future__ import annotations

import builtins
import logging
import math
import re
import time
from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy import String, asc, case, column, desc, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement, Select

from policy_admin.core.errors import DuplicateSlug, NotFound, ValidationError
from policy_admin.core.slug import slugify
from policy_admin.models.enums import PolicyStatus, PolicyType
from policy_admin.models.policy import PolicyDocument
from policy_admin.schemas.policy import (
    BulkStatusResult,
    DashboardStats,
    LookupItem,
    PolicyCreate,
    PolicyPage,
    PolicyRead,
    PolicyStats,
    PolicyStatsSummary,
    PolicyTypeStats,
    PolicyUpdate,
)

logger = logging.getLogger(__name__)

SortField = str  # "createdAt" | "updatedAt" | "publishedAt" | "title" | "views" | "id"
SortOrder = str  # "asc" | "desc"

DEFAULT_SORT = "-createdAt"
COPY_SUFFIX = " (Copy)"
TITLE_MAX_LENGTH = 200
SLUG_MAX_LENGTH = 255
QUICK_SEARCH_MIN_LENGTH = 2
QUICK_SEARCH_LIMIT = 10
RECENT_LIMIT = 5

_COPY_MARKER = re.compile(r"-copy-\d+$")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _dialect(session: AsyncSession) -> str:
    return session.get_bind().dialect.name


def _copy_slug(slug: str, stamp: int) -> str:
    """`<base>-copy-<stamp>` within SLUG_MAX_LENGTH; an earlier copy marker is replaced."""
    suffix = f"-copy-{stamp}"
    base = _COPY_MARKER.sub("", slug)
    base = base[: SLUG_MAX_LENGTH - len(suffix)].rstrip("-")
    return base + suffix


class PolicyService:
    """Business logic for policy documents: CRUD, lifecycle, search and statistics."""

    # --- helpers ---

    @staticmethod
    def _parse_sort(sort: str | None) -> tuple[SortField, SortOrder]:
        """Split "-createdAt" style values into (field, order)."""
        sort = (sort or DEFAULT_SORT).strip() or DEFAULT_SORT
        if sort.startswith("-"):
            return sort[1:], "desc"
        return sort.lstrip("+"), "asc"

    @staticmethod
    def _sort_clause(field: SortField, order: SortOrder) -> ColumnElement:
        field_map = {
            "createdAt": PolicyDocument.created_at,
            "created_at": PolicyDocument.created_at,
            "updatedAt": PolicyDocument.updated_at,
            "updated_at": PolicyDocument.updated_at,
            "publishedAt": PolicyDocument.published_at,
            "published_at": PolicyDocument.published_at,
            "title": PolicyDocument.title,
            "views": PolicyDocument.views,
            "id": PolicyDocument.id,
        }
        col = field_map.get(field, PolicyDocument.created_at)
        return asc(col) if order == "asc" else desc(col)

    @staticmethod
    def _keyword_match(like: str, dialect: str) -> ColumnElement:
        """EXISTS over the individual keywords, never the serialized JSON text."""
        if dialect == "postgresql":
            elements = func.json_array_elements_text(PolicyDocument.keywords)
        else:
            elements = func.json_each(PolicyDocument.keywords)
        keyword = elements.table_valued(column("value", String)).alias("keyword")
        return (
            select(1)
            .select_from(keyword)
            .where(keyword.c.value.ilike(like, escape="\\"))
            .correlate(PolicyDocument)
            .exists()
        )

    @staticmethod
    def _search_clause(term: str, dialect: str) -> ColumnElement:
        like = f"%{_escape_like(term.strip())}%"
        return or_(
            PolicyDocument.title.ilike(like, escape="\\"),
            PolicyDocument.content.ilike(like, escape="\\"),
            PolicyService._keyword_match(like, dialect),
        )

    @staticmethod
    def _active() -> ColumnElement:
        return PolicyDocument.is_active.is_(True)

    @staticmethod
    def _select() -> Select:
        # Always re-read column values; rows may have been changed by bulk UPDATEs
        return select(PolicyDocument).execution_options(populate_existing=True)

    @staticmethod
    def _resolve_slug(slug: str | None, title: str) -> str:
        resolved = slugify(slug) if slug else slugify(title)
        if not resolved:
            raise ValidationError("Slug must contain at least one letter or digit")
        return resolved

    @staticmethod
    async def _slug_taken(session: AsyncSession, slug: str) -> bool:
        stmt = select(func.count()).select_from(PolicyDocument).where(
            PolicyDocument.slug == slug, PolicyService._active()
        )
        return bool(await session.scalar(stmt))

    @staticmethod
    async def _flush_unique(session: AsyncSession) -> None:
        """Flush, turning a slug uniqueness violation into DuplicateSlug."""
        try:
            await session.flush()
        except IntegrityError as exc:
            await session.rollback()
            if "slug" in str(exc.orig).lower():
                raise DuplicateSlug() from exc
            raise

    @staticmethod
    async def _get_entity(
        session: AsyncSession, policy_id: int, *, active: bool = True
    ) -> PolicyDocument:
        stmt = PolicyService._select().where(
            PolicyDocument.id == policy_id, PolicyDocument.is_active.is_(active)
        )
        res = await session.scalars(stmt)
        entity = res.first()
        if entity is None:
            raise NotFound("Policy not found")
        return entity

    @staticmethod
    async def _read(session: AsyncSession, policy_id: int) -> PolicyRead:
        res = await session.scalars(PolicyService._select().where(PolicyDocument.id == policy_id))
        return PolicyRead.model_validate(res.one())

    @staticmethod
    async def _fetch(session: AsyncSession, stmt: Select) -> builtins.list[PolicyRead]:
        res = await session.scalars(stmt)
        return [PolicyRead.model_validate(x) for x in res]

    # --- CRUD ---

    @staticmethod
    async def list(
        session: AsyncSession,
        *,
        search: str | None = None,
        type: PolicyType | None = None,
        status: PolicyStatus | None = None,
        page: int = 1,
        limit: int = 10,
        sort: str | None = DEFAULT_SORT,
    ) -> PolicyPage:
        """
        Page through active documents.

        `search` is a case-insensitive substring match on title, content or
        keywords. `total` counts every match, not just the current page.
        """
        page = max(page, 1)
        limit = max(limit, 1)

        conditions: builtins.list[ColumnElement] = [PolicyService._active()]
        if type is not None:
            conditions.append(PolicyDocument.type == type)
        if status is not None:
            conditions.append(PolicyDocument.status == status)
        if search and search.strip():
            conditions.append(PolicyService._search_clause(search, _dialect(session)))

        count_stmt = select(func.count()).select_from(PolicyDocument).where(*conditions)
        total = (await session.scalar(count_stmt)) or 0

        field, order = PolicyService._parse_sort(sort)
        stmt = (
            PolicyService._select()
            .where(*conditions)
            .order_by(PolicyService._sort_clause(field, order), desc(PolicyDocument.id))
            .limit(limit)
            .offset((page - 1) * limit)
        )
        items = await PolicyService._fetch(session, stmt)
        return PolicyPage(
            items=items,
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        )

    @staticmethod
    async def get(session: AsyncSession, policy_id: int) -> PolicyRead:
        entity = await PolicyService._get_entity(session, policy_id)
        return PolicyRead.model_validate(entity)

    @staticmethod
    async def get_public_by_slug(session: AsyncSession, slug: str) -> PolicyRead:
        """Published, active documents only. Every successful read counts a view."""
        slug = slug.strip().lower()
        visible = (
            PolicyDocument.slug == slug,
            PolicyService._active(),
            PolicyDocument.status == PolicyStatus.PUBLISHED,
        )
        bump = (
            update(PolicyDocument)
            .where(*visible)
            # keep updated_at: a view is not an edit
            .values(views=PolicyDocument.views + 1, updated_at=PolicyDocument.updated_at)
            .execution_options(synchronize_session=False)
        )
        res = await session.execute(bump)
        if not res.rowcount:
            raise NotFound("Policy not found")

        found = await session.scalars(PolicyService._select().where(*visible))
        return PolicyRead.model_validate(found.one())

    @staticmethod
    async def create(
        session: AsyncSession, data: PolicyCreate, acting_admin_id: int
    ) -> PolicyRead:
        entity = PolicyDocument(
            title=data.title,
            slug=PolicyService._resolve_slug(data.slug, data.title),
            content=data.content,
            type=data.type,
            status=data.status,
            language=data.language,
            meta_title=data.meta_title,
            meta_description=data.meta_description,
            keywords=list(data.keywords),
            last_updated_by_id=acting_admin_id,
            published_at=_now() if data.status == PolicyStatus.PUBLISHED else None,
            is_active=True,
            views=0,
        )
        session.add(entity)
        await PolicyService._flush_unique(session)

        logger.info("Policy %s (%s) created by admin %s", entity.id, entity.slug, acting_admin_id)
        return await PolicyService._read(session, entity.id)

    @staticmethod
    async def update(
        session: AsyncSession,
        policy_id: int,
        data: PolicyUpdate,
        acting_admin_id: int,
    ) -> PolicyRead:
        entity = await PolicyService._get_entity(session, policy_id)
        changes = data.model_dump(exclude_unset=True)

        if "title" in changes and changes["title"] != entity.title:
            entity.title = changes["title"]
            if "slug" not in changes:
                entity.slug = PolicyService._resolve_slug(None, entity.title)
        if "slug" in changes:
            entity.slug = PolicyService._resolve_slug(changes["slug"], entity.title)

        if "status" in changes:
            new_status = changes["status"]
            # published_at records the first publication only
            if new_status == PolicyStatus.PUBLISHED and entity.published_at is None:
                entity.published_at = _now()
            entity.status = new_status

        for field in (
            "content",
            "type",
            "language",
            "meta_title",
            "meta_description",
            "keywords",
        ):
            if field in changes:
                setattr(entity, field, changes[field])

        entity.last_updated_by_id = acting_admin_id
        await PolicyService._flush_unique(session)
        # The FK changed underneath an already loaded relationship
        session.expire(entity, ["last_updated_by"])

        logger.info("Policy %s updated by admin %s", policy_id, acting_admin_id)
        return await PolicyService._read(session, policy_id)

    @staticmethod
    async def soft_delete(session: AsyncSession, policy_id: int) -> None:
        entity = await PolicyService._get_entity(session, policy_id)
        entity.is_active = False
        await session.flush()
        logger.info("Policy %s deactivated", policy_id)

    @staticmethod
    async def restore(session: AsyncSession, policy_id: int) -> PolicyRead:
        """Reactivate a soft-deleted document; its slug must still be free."""
        entity = await PolicyService._get_entity(session, policy_id, active=False)
        entity.is_active = True
        await PolicyService._flush_unique(session)
        logger.info("Policy %s restored", policy_id)
        return await PolicyService._read(session, policy_id)

    @staticmethod
    async def duplicate(
        session: AsyncSession, policy_id: int, acting_admin_id: int
    ) -> PolicyRead:
        """Copy a document as a new draft with a "(Copy)" title and a unique slug."""
        original = await PolicyService._get_entity(session, policy_id)

        # Copies of copies share one base; step the stamp until the slug is free
        stamp = int(time.time() * 1000)
        slug = _copy_slug(original.slug, stamp)
        while await PolicyService._slug_taken(session, slug):
            stamp += 1
            slug = _copy_slug(original.slug, stamp)

        title = original.title[: TITLE_MAX_LENGTH - len(COPY_SUFFIX)] + COPY_SUFFIX
        copy = PolicyDocument(
            title=title,
            slug=slug,
            content=original.content,
            type=original.type,
            status=PolicyStatus.DRAFT,
            language=original.language,
            meta_title=original.meta_title,
            meta_description=original.meta_description,
            keywords=list(original.keywords or []),
            last_updated_by_id=acting_admin_id,
            published_at=None,
            is_active=True,
            views=0,
        )
        session.add(copy)
        await PolicyService._flush_unique(session)

        logger.info("Policy %s duplicated as %s", policy_id, copy.id)
        return await PolicyService._read(session, copy.id)

    # --- bulk ---

    @staticmethod
    async def bulk_update_status(
        session: AsyncSession,
        policy_ids: Iterable[int],
        status: PolicyStatus,
        acting_admin_id: int,
    ) -> BulkStatusResult:
        """
        Apply one status to many active documents.

        Unknown or deleted ids are ignored. Documents already in `status`
        count as matched but not modified. Publishing keeps an existing
        published_at and fills it only where it is still unset.
        """
        ids = set(policy_ids)
        if not ids:
            raise ValidationError("Policy IDs array is required")

        scope = (PolicyDocument.id.in_(ids), PolicyService._active())
        matched = (
            await session.scalar(select(func.count()).select_from(PolicyDocument).where(*scope))
        ) or 0

        values: dict = {"status": status, "last_updated_by_id": acting_admin_id}
        if status == PolicyStatus.PUBLISHED:
            values["published_at"] = func.coalesce(PolicyDocument.published_at, _now())

        stmt = (
            update(PolicyDocument)
            .where(*scope, PolicyDocument.status != status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        res = await session.execute(stmt)
        modified = res.rowcount or 0

        logger.info(
            "Bulk status %s by admin %s: matched=%d modified=%d",
            status.value,
            acting_admin_id,
            matched,
            modified,
        )
        return BulkStatusResult(matched_count=matched, modified_count=modified)

    # --- statistics ---

    @staticmethod
    def _status_count(status: PolicyStatus) -> ColumnElement:
        return func.coalesce(func.sum(case((PolicyDocument.status == status, 1), else_=0)), 0)

    @staticmethod
    async def aggregate_stats(session: AsyncSession) -> PolicyStats:
        """Per-type and overall counts over active documents."""
        by_type_stmt = (
            select(
                PolicyDocument.type,
                func.count(PolicyDocument.id),
                PolicyService._status_count(PolicyStatus.PUBLISHED),
                PolicyService._status_count(PolicyStatus.DRAFT),
                PolicyService._status_count(PolicyStatus.ARCHIVED),
            )
            .where(PolicyService._active())
            .group_by(PolicyDocument.type)
            .order_by(PolicyDocument.type)
        )
        rows = (await session.execute(by_type_stmt)).all()
        by_type = [
            PolicyTypeStats(
                type=ptype,
                type_display=PolicyType(ptype).label,
                total=total,
                published=published,
                draft=draft,
                archived=archived,
            )
            for ptype, total, published, draft, archived in rows
        ]

        summary_stmt = select(
            func.count(PolicyDocument.id),
            PolicyService._status_count(PolicyStatus.PUBLISHED),
            PolicyService._status_count(PolicyStatus.DRAFT),
            PolicyService._status_count(PolicyStatus.ARCHIVED),
            func.coalesce(func.sum(PolicyDocument.views), 0),
        ).where(PolicyService._active())
        total, published, draft, archived, views = (await session.execute(summary_stmt)).one()

        return PolicyStats(
            by_type=by_type,
            summary=PolicyStatsSummary(
                total_policies=total,
                total_published=published,
                total_draft=draft,
                total_archived=archived,
                total_views=views,
            ),
        )

    @staticmethod
    async def dashboard_stats(session: AsyncSession) -> DashboardStats:
        stats = await PolicyService.aggregate_stats(session)
        recent_stmt = (
            PolicyService._select()
            .where(PolicyService._active())
            .order_by(desc(PolicyDocument.created_at), desc(PolicyDocument.id))
            .limit(RECENT_LIMIT)
        )
        return DashboardStats(
            summary=stats.summary,
            recent_policies=await PolicyService._fetch(session, recent_stmt),
            policies_by_type={s.type.value: s.total for s in stats.by_type},
        )

    # --- lookups ---

    @staticmethod
    async def quick_search(session: AsyncSession, q: str | None) -> builtins.list[PolicyRead]:
        if not q or len(q.strip()) < QUICK_SEARCH_MIN_LENGTH:
            raise ValidationError(
                f"Search query must be at least {QUICK_SEARCH_MIN_LENGTH} characters"
            )
        stmt = (
            PolicyService._select()
            .where(PolicyService._active(), PolicyService._search_clause(q, _dialect(session)))
            .order_by(desc(PolicyDocument.created_at), desc(PolicyDocument.id))
            .limit(QUICK_SEARCH_LIMIT)
        )
        return await PolicyService._fetch(session, stmt)

    @staticmethod
    async def recent(
        session: AsyncSession, limit: int = RECENT_LIMIT
    ) -> builtins.list[PolicyRead]:
        stmt = (
            PolicyService._select()
            .where(PolicyService._active())
            .order_by(desc(PolicyDocument.updated_at), desc(PolicyDocument.id))
            .limit(limit)
        )
        return await PolicyService._fetch(session, stmt)

    @staticmethod
    async def list_by_type(
        session: AsyncSession,
        policy_type: PolicyType,
        status: PolicyStatus | None = None,
    ) -> builtins.list[PolicyRead]:
        stmt = PolicyService._select().where(
            PolicyService._active(), PolicyDocument.type == policy_type
        )
        if status is not None:
            stmt = stmt.where(PolicyDocument.status == status)
        stmt = stmt.order_by(desc(PolicyDocument.created_at), desc(PolicyDocument.id))
        return await PolicyService._fetch(session, stmt)

    @staticmethod
    def policy_types() -> builtins.list[LookupItem]:
        return [LookupItem(value=t.value, label=t.label) for t in PolicyType]

    @staticmethod
    def statuses() -> builtins.list[LookupItem]:
        return [LookupItem(value=s.value, label=s.label) for s in PolicyStatus]
