# policy_admin/schemas/policy.py
from __future__ import annotations

from pydantic import Field, field_validator

from policy_admin.models.enums import PolicyStatus, PolicyType
from policy_admin.schemas.base import CamelModel, UtcDateTime


def _required_text(value: str | None, label: str) -> str:
    if value is None or not value.strip():
        raise ValueError(f"{label} is required")
    return value


def _clean_keywords(value: list[str] | None) -> list[str] | None:
    if value is None:
        return None
    return [k.strip() for k in value if k and k.strip()]


class PolicyBase(CamelModel):
    title: str = Field(..., max_length=200)
    slug: str | None = Field(default=None, max_length=255)
    content: str
    type: PolicyType
    status: PolicyStatus = PolicyStatus.DRAFT
    language: str = Field(default="en", min_length=2, max_length=10)
    meta_title: str | None = Field(default=None, max_length=150)
    meta_description: str | None = Field(default=None, max_length=300)
    keywords: list[str] = Field(default_factory=list)


class PolicyCreate(PolicyBase):
    @field_validator("title")
    @classmethod
    def _title_required(cls, v: str) -> str:
        return _required_text(v, "Title").strip()

    @field_validator("content")
    @classmethod
    def _content_required(cls, v: str) -> str:
        return _required_text(v, "Content")

    @field_validator("keywords")
    @classmethod
    def _keywords(cls, v: list[str]) -> list[str]:
        return _clean_keywords(v) or []


class PolicyUpdate(CamelModel):
    """
    Partial update. Only fields present in the payload are applied;
    callers read them with `model_dump(exclude_unset=True)`.
    """

    title: str | None = Field(default=None, max_length=200)
    slug: str | None = Field(default=None, max_length=255)
    content: str | None = None
    type: PolicyType | None = None
    status: PolicyStatus | None = None
    language: str | None = Field(default=None, min_length=2, max_length=10)
    meta_title: str | None = Field(default=None, max_length=150)
    meta_description: str | None = Field(default=None, max_length=300)
    keywords: list[str] | None = None

    @field_validator("title")
    @classmethod
    def _title_required(cls, v: str | None) -> str:
        return _required_text(v, "Title").strip()

    @field_validator("content")
    @classmethod
    def _content_required(cls, v: str | None) -> str:
        return _required_text(v, "Content")

    @field_validator("type", "status", "language")
    @classmethod
    def _not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name.capitalize()} cannot be null")
        return v

    @field_validator("keywords")
    @classmethod
    def _keywords(cls, v: list[str] | None) -> list[str]:
        return _clean_keywords(v) or []


class AdminSummary(CamelModel):
    id: int
    name: str
    email: str


class PolicyRead(CamelModel):
    id: int
    title: str
    slug: str
    content: str
    type: PolicyType
    type_display: str
    status: PolicyStatus
    language: str
    meta_title: str | None = None
    meta_description: str | None = None
    keywords: list[str] = Field(default_factory=list)
    last_updated_by: AdminSummary | None = None
    published_at: UtcDateTime | None = None
    is_active: bool
    views: int = 0
    created_at: UtcDateTime
    updated_at: UtcDateTime


class PolicyPage(CamelModel):
    items: list[PolicyRead]
    total: int
    page: int
    limit: int
    total_pages: int


class BulkStatusUpdate(CamelModel):
    policy_ids: list[int] = Field(..., min_length=1)
    status: PolicyStatus


class BulkStatusResult(CamelModel):
    matched_count: int
    modified_count: int


class PolicyTypeStats(CamelModel):
    type: PolicyType
    type_display: str
    total: int = 0
    published: int = 0
    draft: int = 0
    archived: int = 0


class PolicyStatsSummary(CamelModel):
    total_policies: int = 0
    total_published: int = 0
    total_draft: int = 0
    total_archived: int = 0
    total_views: int = 0


class PolicyStats(CamelModel):
    by_type: list[PolicyTypeStats]
    summary: PolicyStatsSummary


class DashboardStats(CamelModel):
    summary: PolicyStatsSummary
    recent_policies: list[PolicyRead]
    policies_by_type: dict[str, int]


class LookupItem(CamelModel):
    value: str
    label: str
