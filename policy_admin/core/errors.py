"""
Error taxonomy shared by the services and the HTTP layer.

Services raise these; the exception handlers installed in
``policy_admin.main.create_app`` turn them into the JSON error envelope
``{"status": "error", "message": ...}`` with the matching status code.
"""

from __future__ import annotations

from collections.abc import Iterable


class AppError(Exception):
    """Base class for every error that maps onto a client-facing response."""

    status_code: int = 500
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    """Malformed input. Carries every violated constraint, not just the first."""

    status_code = 400
    default_message = "Validation failed"

    def __init__(self, issues: Iterable[str] | str) -> None:
        if isinstance(issues, str):
            issues = [issues]
        self.issues = list(issues)
        super().__init__(", ".join(self.issues) or None)


class InvalidCredentials(AppError):
    status_code = 401
    default_message = "Incorrect email or password"


class AccountDisabled(AppError):
    status_code = 401
    default_message = "Your account has been deactivated."


class AccountNotFound(AppError):
    status_code = 401
    default_message = "The admin belonging to this token no longer exists."


class TokenInvalid(AppError):
    status_code = 401
    default_message = "Invalid token. Please log in again."


class TokenExpired(AppError):
    status_code = 401
    default_message = "Your token has expired. Please log in again."


class NotAuthenticated(AppError):
    status_code = 401
    default_message = "You are not logged in. Please log in to get access."


class Forbidden(AppError):
    status_code = 403
    default_message = "You do not have permission to perform this action."


class NotFound(AppError):
    status_code = 404
    default_message = "Not found"


class DuplicateSlug(AppError):
    status_code = 400
    default_message = "A policy with this slug already exists"


class DuplicateEmail(AppError):
    status_code = 400
    default_message = "An administrator with this email already exists"
