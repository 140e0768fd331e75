"""
errors.py — AppError hierarchy and error code registry.

Every error returned by the RoomLedger API uses a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - 404 means "does not exist"; it is never reused for "operation failed".
  - NotificationError never reaches a client. Services catch it at the
    point where the notification is sent.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


class RuleViolationError(AppError):
    """Caller-fixable business rule violation (422). Never retried."""

    def __init__(self, code: str, message: str, field: str | None = None) -> None:
        super().__init__(code, message, 422, field=field)


class NotFoundError(AppError):
    """A referenced expense, split, tenant or group does not resolve (404)."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(code, message, 404)


class PersistenceError(AppError):
    """
    Store-level failure (connection loss, constraint violation, rollback).

    Raised only after the session has been rolled back, so no partial
    rows are visible to later reads.
    """

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.PERSISTENCE_ERROR, message, 500)


class NotificationError(Exception):
    """Raised by a NotificationDispatch backend when delivery or storage fails."""


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
# IMPORTANT: these are the string values sent in the API response.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    INVALID_AMOUNT_PRECISION   = "INVALID_AMOUNT_PRECISION"
    INVALID_STATUS             = "INVALID_STATUS"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    GROUP_NOT_FOUND            = "GROUP_NOT_FOUND"
    TENANT_NOT_FOUND           = "TENANT_NOT_FOUND"
    EXPENSE_NOT_FOUND          = "EXPENSE_NOT_FOUND"
    SPLIT_NOT_FOUND            = "SPLIT_NOT_FOUND"

    # ── Business Rule Violations (422) ────────────────────────────────────
    EMPTY_PARTICIPANTS         = "EMPTY_PARTICIPANTS"
    CREATOR_NOT_PARTICIPANT    = "CREATOR_NOT_PARTICIPANT"
    DUPLICATE_PARTICIPANT      = "DUPLICATE_PARTICIPANT"
    INVALID_AMOUNT             = "INVALID_AMOUNT"
    EMPTY_SPLITS               = "EMPTY_SPLITS"

    # ── Auth Errors (401) ──────────────────────────────────────────────────
    TOKEN_MISSING              = "TOKEN_MISSING"
    TOKEN_INVALID              = "TOKEN_INVALID"
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"

    # ── System Errors (500) ────────────────────────────────────────────────
    PERSISTENCE_ERROR          = "PERSISTENCE_ERROR"
    INTERNAL_ERROR             = "INTERNAL_ERROR"
