import asyncio

import pytest
from conftest import create_admin
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from policy_admin.core.errors import DuplicateSlug, NotFound, ValidationError
from policy_admin.db import json_dumps
from policy_admin.models import Base
from policy_admin.models.enums import AdminRole, PolicyStatus, PolicyType
from policy_admin.models.policy import PolicyDocument
from policy_admin.schemas.policy import PolicyCreate, PolicyRead, PolicyUpdate
from policy_admin.services.policy_service import SLUG_MAX_LENGTH, PolicyService


def _payload(title="Privacy Policy v1", **overrides) -> PolicyCreate:
    data = {
        "title": title,
        "content": "We respect your privacy.",
        "type": PolicyType.PRIVACY_POLICY,
    }
    data.update(overrides)
    return PolicyCreate(**data)


@pytest.fixture
async def admin(test_session):
    return await create_admin(test_session, "editor@example.com", AdminRole.EDITOR)


async def _create(session, admin, title="Privacy Policy v1", **overrides):
    policy = await PolicyService.create(session, _payload(title, **overrides), admin.id)
    await session.commit()
    return policy


@pytest.mark.anyio
async def test_create_derives_slug_and_defaults(test_session, admin):
    policy = await _create(test_session, admin)

    assert policy.slug == "privacy-policy-v1"
    assert policy.status == PolicyStatus.DRAFT
    assert policy.published_at is None
    assert policy.language == "en"
    assert policy.views == 0
    assert policy.is_active is True
    assert policy.type_display == "Privacy Policy"
    assert policy.last_updated_by is not None
    assert policy.last_updated_by.email == "editor@example.com"


@pytest.mark.anyio
async def test_create_published_sets_published_at(test_session, admin):
    policy = await _create(test_session, admin, status=PolicyStatus.PUBLISHED)
    assert policy.published_at is not None


@pytest.mark.anyio
async def test_explicit_slug_is_normalized(test_session, admin):
    policy = await _create(test_session, admin, slug="My Custom  Slug!")
    assert policy.slug == "my-custom-slug"


@pytest.mark.anyio
async def test_slug_without_letters_is_rejected(test_session, admin):
    with pytest.raises(ValidationError):
        await PolicyService.create(test_session, _payload("!!!"), admin.id)


@pytest.mark.anyio
async def test_second_create_with_same_title_fails(test_session, admin):
    await _create(test_session, admin)

    with pytest.raises(DuplicateSlug) as exc:
        await PolicyService.create(test_session, _payload(), admin.id)
    assert exc.value.status_code == 400

    total = (await PolicyService.list(test_session)).total
    assert total == 1


@pytest.mark.anyio
async def test_publish_sets_published_at_once(test_session, admin):
    policy = await _create(test_session, admin)

    published = await PolicyService.update(
        test_session, policy.id, PolicyUpdate(status=PolicyStatus.PUBLISHED), admin.id
    )
    await test_session.commit()
    first_published_at = published.published_at
    assert first_published_at is not None

    again = await PolicyService.update(
        test_session, policy.id, PolicyUpdate(status=PolicyStatus.PUBLISHED), admin.id
    )
    assert again.published_at == first_published_at

    # Archive and re-publish: the first publication date survives
    await PolicyService.update(
        test_session, policy.id, PolicyUpdate(status=PolicyStatus.ARCHIVED), admin.id
    )
    republished = await PolicyService.update(
        test_session, policy.id, PolicyUpdate(status=PolicyStatus.PUBLISHED), admin.id
    )
    assert republished.published_at == first_published_at


@pytest.mark.anyio
async def test_update_is_partial_and_records_editor(test_session, admin):
    policy = await _create(test_session, admin, keywords=["privacy", "data"])
    other = await create_admin(test_session, "manager@example.com", AdminRole.ADMIN)

    updated = await PolicyService.update(
        test_session, policy.id, PolicyUpdate(meta_title="Privacy"), other.id
    )

    assert updated.meta_title == "Privacy"
    assert updated.title == policy.title
    assert updated.content == policy.content
    assert updated.keywords == ["privacy", "data"]
    assert updated.slug == policy.slug
    assert updated.last_updated_by.email == "manager@example.com"


@pytest.mark.anyio
async def test_title_change_regenerates_slug(test_session, admin):
    policy = await _create(test_session, admin)

    updated = await PolicyService.update(
        test_session, policy.id, PolicyUpdate(title="Privacy Policy v2"), admin.id
    )
    assert updated.slug == "privacy-policy-v2"

    explicit = await PolicyService.update(
        test_session,
        policy.id,
        PolicyUpdate(title="Privacy Policy v3", slug="privacy"),
        admin.id,
    )
    assert explicit.slug == "privacy"


@pytest.mark.anyio
async def test_update_missing_or_deleted_is_not_found(test_session, admin):
    policy = await _create(test_session, admin)
    await PolicyService.soft_delete(test_session, policy.id)
    await test_session.commit()

    with pytest.raises(NotFound):
        await PolicyService.update(test_session, policy.id, PolicyUpdate(title="X"), admin.id)
    with pytest.raises(NotFound):
        await PolicyService.update(test_session, 9999, PolicyUpdate(title="X"), admin.id)


@pytest.mark.anyio
async def test_soft_delete_hides_but_keeps_row(test_session, admin):
    policy = await _create(test_session, admin, status=PolicyStatus.PUBLISHED)
    await PolicyService.soft_delete(test_session, policy.id)
    await test_session.commit()

    with pytest.raises(NotFound):
        await PolicyService.get(test_session, policy.id)
    with pytest.raises(NotFound):
        await PolicyService.soft_delete(test_session, policy.id)
    with pytest.raises(NotFound):
        await PolicyService.get_public_by_slug(test_session, policy.slug)

    assert (await PolicyService.list(test_session)).total == 0
    stats = await PolicyService.aggregate_stats(test_session)
    assert stats.summary.total_policies == 0

    row = await test_session.scalar(select(PolicyDocument).where(PolicyDocument.id == policy.id))
    assert row is not None and row.is_active is False


@pytest.mark.anyio
async def test_deleted_slug_can_be_reused_and_restore_checks_it(test_session, admin):
    first = await _create(test_session, admin)
    await PolicyService.soft_delete(test_session, first.id)
    await test_session.commit()

    second = await _create(test_session, admin)
    assert second.slug == first.slug

    with pytest.raises(DuplicateSlug):
        await PolicyService.restore(test_session, first.id)

    await PolicyService.soft_delete(test_session, second.id)
    await test_session.commit()
    restored = await PolicyService.restore(test_session, first.id)
    assert restored.is_active is True
    assert restored.id == first.id


@pytest.mark.anyio
async def test_restore_requires_deleted_document(test_session, admin):
    policy = await _create(test_session, admin)
    with pytest.raises(NotFound):
        await PolicyService.restore(test_session, policy.id)


@pytest.mark.anyio
async def test_duplicate_creates_draft_copy(test_session, admin):
    policy = await _create(
        test_session,
        admin,
        status=PolicyStatus.PUBLISHED,
        meta_title="Meta",
        keywords=["a", "b"],
    )

    copy = await PolicyService.duplicate(test_session, policy.id, admin.id)

    assert copy.id != policy.id
    assert copy.title == "Privacy Policy v1 (Copy)"
    assert copy.slug.startswith("privacy-policy-v1-copy-")
    assert copy.status == PolicyStatus.DRAFT
    assert copy.published_at is None
    assert copy.views == 0
    assert copy.content == policy.content
    assert copy.type == policy.type
    assert copy.meta_title == "Meta"
    assert copy.keywords == ["a", "b"]


@pytest.mark.anyio
async def test_duplicate_keeps_title_within_limit(test_session, admin):
    policy = await _create(test_session, admin, title="T" * 200)
    copy = await PolicyService.duplicate(test_session, policy.id, admin.id)
    assert len(copy.title) == 200
    assert copy.title.endswith(" (Copy)")


@pytest.mark.anyio
async def test_duplicate_of_duplicate_keeps_slug_within_limit(test_session, admin):
    policy = await _create(test_session, admin, title="T" * 200)
    assert len(policy.slug) == 200

    slugs = set()
    current = policy
    for _ in range(4):
        current = await PolicyService.duplicate(test_session, current.id, admin.id)
        await test_session.commit()
        assert len(current.slug) <= SLUG_MAX_LENGTH
        assert current.slug.count("-copy-") == 1
        assert current.slug.startswith("t" * 200)
        slugs.add(current.slug)

    assert len(slugs) == 4


@pytest.mark.anyio
async def test_duplicate_of_long_slug_is_truncated(test_session, admin):
    policy = await _create(test_session, admin, slug="s" * SLUG_MAX_LENGTH)

    copy = await PolicyService.duplicate(test_session, policy.id, admin.id)
    assert len(copy.slug) <= SLUG_MAX_LENGTH
    assert copy.slug.startswith("sss")
    assert "-copy-" in copy.slug


@pytest.mark.anyio
async def test_public_read_counts_views(test_session, admin):
    draft = await _create(test_session, admin, title="Refund Policy", type=PolicyType.REFUND_POLICY)
    published = await _create(test_session, admin, status=PolicyStatus.PUBLISHED)

    with pytest.raises(NotFound):
        await PolicyService.get_public_by_slug(test_session, draft.slug)

    first = await PolicyService.get_public_by_slug(test_session, published.slug)
    second = await PolicyService.get_public_by_slug(test_session, published.slug)
    assert first.views == 1
    assert second.views == 2
    assert second.updated_at == published.updated_at


@pytest.mark.anyio
async def test_list_filters_search_and_pagination(test_session, admin):
    await _create(test_session, admin, title="Privacy Policy", keywords=["gdpr"])
    await _create(
        test_session,
        admin,
        title="Refund Policy",
        type=PolicyType.REFUND_POLICY,
        status=PolicyStatus.PUBLISHED,
        content="Money back within 30 days.",
    )
    await _create(
        test_session,
        admin,
        title="Shipping Policy",
        type=PolicyType.SHIPPING_POLICY,
        content="We ship worldwide.",
    )

    page = await PolicyService.list(test_session, limit=2, sort="title")
    assert page.total == 3
    assert page.total_pages == 2
    assert [p.title for p in page.items] == ["Privacy Policy", "Refund Policy"]

    page2 = await PolicyService.list(test_session, page=2, limit=2, sort="title")
    assert [p.title for p in page2.items] == ["Shipping Policy"]

    by_type = await PolicyService.list(test_session, type=PolicyType.REFUND_POLICY)
    assert [p.title for p in by_type.items] == ["Refund Policy"]

    by_status = await PolicyService.list(test_session, status=PolicyStatus.DRAFT)
    assert by_status.total == 2

    # Case-insensitive, across title, content and keywords
    assert (await PolicyService.list(test_session, search="MONEY")).total == 1
    assert (await PolicyService.list(test_session, search="gdpr")).total == 1
    assert (await PolicyService.list(test_session, search="policy")).total == 3
    assert (await PolicyService.list(test_session, search="100%")).total == 0

    empty = await PolicyService.list(test_session, search="nothing-matches")
    assert empty.total == 0
    assert empty.total_pages == 0


@pytest.mark.anyio
async def test_keyword_search_matches_single_keywords(test_session, admin):
    await _create(test_session, admin, title="Privacy", keywords=["alpha", "beta"])
    await _create(test_session, admin, title="Refund", keywords=["données", "remboursement"])

    assert (await PolicyService.list(test_session, search="données")).total == 1
    assert (await PolicyService.list(test_session, search="alpha")).total == 1
    assert (await PolicyService.list(test_session, search="ALPHA")).total == 1

    # Stored JSON punctuation never matches across keywords
    assert (await PolicyService.list(test_session, search='", "')).total == 0
    assert (await PolicyService.list(test_session, search='alpha", "beta')).total == 0
    assert (await PolicyService.list(test_session, search="[")).total == 0

    found = await PolicyService.quick_search(test_session, "donn")
    assert [p.title for p in found] == ["Refund"]


@pytest.mark.anyio
async def test_timestamps_are_utc_aware(test_session, admin):
    policy = await _create(test_session, admin, status=PolicyStatus.PUBLISHED)
    assert policy.created_at.tzinfo is not None
    assert policy.updated_at.tzinfo is not None
    assert policy.published_at.utcoffset().total_seconds() == 0

    fetched = await PolicyService.get(test_session, policy.id)
    assert fetched.published_at == policy.published_at


@pytest.mark.anyio
async def test_concurrent_creates_with_same_title_conflict(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'concurrent.db'}",
        poolclass=NullPool,
        json_serializer=json_dumps,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    async with session_factory() as session:
        owner = await create_admin(session, "editor@example.com", AdminRole.EDITOR)

    async def attempt():
        async with session_factory() as session:
            try:
                policy = await PolicyService.create(session, _payload(), owner.id)
                await session.commit()
            except DuplicateSlug as exc:
                return exc
            return policy

    try:
        results = await asyncio.gather(attempt(), attempt())
    finally:
        await engine.dispose()

    assert sum(isinstance(r, PolicyRead) for r in results) == 1
    assert sum(isinstance(r, DuplicateSlug) for r in results) == 1


@pytest.mark.anyio
async def test_bulk_update_ignores_missing_ids(test_session, admin):
    p1 = await _create(test_session, admin, title="One")
    p2 = await _create(test_session, admin, title="Two")

    result = await PolicyService.bulk_update_status(
        test_session, [p1.id, p2.id, 9999], PolicyStatus.ARCHIVED, admin.id
    )
    await test_session.commit()

    assert result.matched_count == 2
    assert result.modified_count == 2
    assert (await PolicyService.get(test_session, p1.id)).status == PolicyStatus.ARCHIVED
    assert (await PolicyService.get(test_session, p2.id)).status == PolicyStatus.ARCHIVED


@pytest.mark.anyio
async def test_bulk_publish_keeps_first_publication(test_session, admin):
    already = await _create(test_session, admin, title="Already", status=PolicyStatus.PUBLISHED)
    draft = await _create(test_session, admin, title="Draft")
    gone = await _create(test_session, admin, title="Gone")
    await PolicyService.soft_delete(test_session, gone.id)
    await test_session.commit()

    result = await PolicyService.bulk_update_status(
        test_session, [already.id, draft.id, gone.id], PolicyStatus.PUBLISHED, admin.id
    )
    await test_session.commit()

    assert result.matched_count == 2
    assert result.modified_count == 1
    assert (await PolicyService.get(test_session, already.id)).published_at == already.published_at
    assert (await PolicyService.get(test_session, draft.id)).published_at is not None


@pytest.mark.anyio
async def test_bulk_update_requires_ids(test_session, admin):
    with pytest.raises(ValidationError):
        await PolicyService.bulk_update_status(test_session, [], PolicyStatus.DRAFT, admin.id)


@pytest.mark.anyio
async def test_stats_and_dashboard(test_session, admin):
    await _create(test_session, admin, title="Privacy", status=PolicyStatus.PUBLISHED)
    await _create(test_session, admin, title="Privacy Draft")
    await _create(
        test_session,
        admin,
        title="Refund",
        type=PolicyType.REFUND_POLICY,
        status=PolicyStatus.ARCHIVED,
    )
    await PolicyService.get_public_by_slug(test_session, "privacy")
    await test_session.commit()

    stats = await PolicyService.aggregate_stats(test_session)
    assert stats.summary.total_policies == 3
    assert stats.summary.total_published == 1
    assert stats.summary.total_draft == 1
    assert stats.summary.total_archived == 1
    assert stats.summary.total_views == 1

    privacy = next(s for s in stats.by_type if s.type == PolicyType.PRIVACY_POLICY)
    assert (privacy.total, privacy.published, privacy.draft) == (2, 1, 1)
    assert privacy.type_display == "Privacy Policy"

    dashboard = await PolicyService.dashboard_stats(test_session)
    assert dashboard.policies_by_type == {"privacy_policy": 2, "refund_policy": 1}
    assert len(dashboard.recent_policies) == 3
    assert dashboard.summary.total_policies == 3


@pytest.mark.anyio
async def test_quick_search_recent_and_by_type(test_session, admin):
    await _create(test_session, admin, title="Privacy Policy")
    await _create(
        test_session,
        admin,
        title="Cancellation Policy",
        type=PolicyType.CANCELLATION_POLICY,
        status=PolicyStatus.PUBLISHED,
    )

    with pytest.raises(ValidationError):
        await PolicyService.quick_search(test_session, "p")
    with pytest.raises(ValidationError):
        await PolicyService.quick_search(test_session, None)

    found = await PolicyService.quick_search(test_session, "cancel")
    assert [p.title for p in found] == ["Cancellation Policy"]

    recent = await PolicyService.recent(test_session)
    assert len(recent) == 2

    by_type = await PolicyService.list_by_type(test_session, PolicyType.CANCELLATION_POLICY)
    assert [p.title for p in by_type] == ["Cancellation Policy"]
    assert await PolicyService.list_by_type(
        test_session, PolicyType.CANCELLATION_POLICY, PolicyStatus.DRAFT
    ) == []


def test_lookups_cover_every_enum_member():
    types = PolicyService.policy_types()
    assert [t.value for t in types] == [t.value for t in PolicyType]
    assert types[0].label == "Terms & Conditions"

    statuses = PolicyService.statuses()
    assert [(s.value, s.label) for s in statuses] == [
        ("draft", "Draft"),
        ("published", "Published"),
        ("archived", "Archived"),
    ]
