"""
Error taxonomy for the tenancy core.
Each kind carries a stable code and HTTP status so callers can tell
"pick another name" from "not yours" from "something is broken".
"""
from __future__ import annotations


class TenancyError(Exception):
    code = "ERROR"
    status = 500

    def __init__(self, message: str = "", details: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self, request_id: str = "") -> dict:
        return {"code": self.code, "message": self.message, "details": self.details, "requestId": request_id}


class ValidationError(TenancyError):
    """Missing or malformed input; never retried."""

    code = "BAD_REQUEST"
    status = 400


class InvalidCredentialsError(TenancyError):
    code = "UNAUTHORIZED"
    status = 401


class TokenInvalidError(TenancyError):
    """Bad signature, bad structure or expired. One kind, the message tells which."""

    code = "TOKEN_INVALID"
    status = 401


class ForbiddenError(TenancyError):
    code = "FORBIDDEN"
    status = 403


class NotFoundError(TenancyError):
    code = "NOT_FOUND"
    status = 404


class ConflictError(TenancyError):
    code = "CONFLICT"
    status = 409


class StorageError(TenancyError):
    """The document store failed; fatal for the current request."""

    code = "STORAGE_ERROR"
    status = 500
