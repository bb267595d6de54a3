"""Enumerations shared by the ORM, the API schemas and the lookup endpoints."""

from __future__ import annotations

from enum import Enum


class PolicyType(str, Enum):
    TERMS_CONDITIONS = "terms_conditions"
    PRIVACY_POLICY = "privacy_policy"
    CLIENT_POLICY = "client_policy"
    REFUND_POLICY = "refund_policy"
    SHIPPING_POLICY = "shipping_policy"
    CANCELLATION_POLICY = "cancellation_policy"

    @property
    def label(self) -> str:
        return _POLICY_TYPE_LABELS[self]


_POLICY_TYPE_LABELS: dict[PolicyType, str] = {
    PolicyType.TERMS_CONDITIONS: "Terms & Conditions",
    PolicyType.PRIVACY_POLICY: "Privacy Policy",
    PolicyType.CLIENT_POLICY: "Client Policy",
    PolicyType.REFUND_POLICY: "Refund Policy",
    PolicyType.SHIPPING_POLICY: "Shipping Policy",
    PolicyType.CANCELLATION_POLICY: "Cancellation Policy",
}


class PolicyStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class AdminRole(str, Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    EDITOR = "editor"


# Role sets used to gate document operations
EDITOR_ROLES: frozenset[AdminRole] = frozenset(
    {AdminRole.SUPER_ADMIN, AdminRole.ADMIN, AdminRole.EDITOR}
)
MANAGER_ROLES: frozenset[AdminRole] = frozenset({AdminRole.SUPER_ADMIN, AdminRole.ADMIN})
