from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from policy_admin.models.admin import Administrator
from policy_admin.models.base import Base, enum_column_type
from policy_admin.models.enums import PolicyStatus, PolicyType


class PolicyDocument(Base):
    """
    Published policy page (terms, privacy, refunds, ...).

    Soft-delete is implemented via `is_active`:
      - Active records: is_active = true
      - Deleted records: is_active = false (kept for history, never removed)

    The slug is unique among active documents only, so a deleted document
    does not block re-creating a page with the same title.
    """

    __tablename__ = "policy_documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    type: Mapped[PolicyType] = mapped_column(
        enum_column_type(PolicyType, "policy_type"), nullable=False, index=True
    )
    status: Mapped[PolicyStatus] = mapped_column(
        enum_column_type(PolicyStatus, "policy_status"),
        nullable=False,
        default=PolicyStatus.DRAFT,
        index=True,
    )
    language: Mapped[str] = mapped_column(String(10), nullable=False, default="en")

    meta_title: Mapped[str | None] = mapped_column(String(150), nullable=True)
    meta_description: Mapped[str | None] = mapped_column(String(300), nullable=True)
    keywords: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    # Weak reference: lookup only, no cascade
    last_updated_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("administrators.id"), nullable=True
    )
    last_updated_by: Mapped[Administrator | None] = relationship(lazy="selectin")

    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        Index(
            "uq_policy_documents_active_slug",
            "slug",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    @property
    def type_display(self) -> str:
        return self.type.label

    def __repr__(self) -> str:  # pragma: no cover
        return f"<PolicyDocument id={self.id} slug={self.slug!r} status={self.status.value}>"
