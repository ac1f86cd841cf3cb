"""
auth/errors.py -- Error taxonomy shared by the service layer and the API.

Services raise these; api/main.py renders every AppError as
{"message": ..., "code": ...} with the matching status code. Nothing in auth/
imports FastAPI to do that, which keeps the rules testable without HTTP.
"""

from __future__ import annotations


class AppError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    @property
    def headers(self) -> dict[str, str] | None:
        return None


class ValidationError(AppError):
    """Malformed input or a business-rule violation (400)."""

    status_code = 400
    code = "bad_request"


class Unauthorized(AppError):
    """Missing, invalid or expired credentials (401)."""

    status_code = 401
    code = "unauthorized"

    @property
    def headers(self) -> dict[str, str] | None:
        return {"WWW-Authenticate": "Bearer"}


class InvalidToken(Unauthorized):
    """Token failed verification.

    Expired, tampered, malformed and wrong-kind tokens all raise this one type.
    Callers never branch on the reason: every failure is treated as invalid.
    """

    code = "invalid_token"


class Forbidden(AppError):
    """Authenticated but not allowed: disabled account or insufficient role (403)."""

    status_code = 403
    code = "forbidden"


class NotFound(AppError):
    status_code = 404
    code = "not_found"


class Conflict(AppError):
    """Duplicate value on a unique field (409)."""

    status_code = 409
    code = "conflict"


class PayloadTooLarge(AppError):
    """Upload exceeds the configured size limit (413)."""

    status_code = 413
    code = "payload_too_large"
