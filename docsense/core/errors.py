"""Error types raised by the service layer.

Each error is an ``HTTPException`` carrying a stable ``code`` so clients can tell
an expired token apart from a used-up or unknown one.
"""
from fastapi import HTTPException, status


class DocsenseError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "error"
    default_detail = "Request failed"

    def __init__(self, detail: str | None = None, headers: dict[str, str] | None = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail, headers=headers)


class ValidationFailed(DocsenseError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
    default_detail = "Validation error"


class Unauthenticated(DocsenseError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthenticated"
    default_detail = "Authentication required"

    def __init__(self, detail: str | None = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(DocsenseError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_detail = "Access denied"


class NotFound(DocsenseError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Not found"


class Conflict(DocsenseError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_detail = "Conflict"


class InvalidState(DocsenseError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_state"
    default_detail = "Request has already been processed"


class TokenExpired(DocsenseError):
    status_code = status.HTTP_410_GONE
    code = "expired"
    default_detail = "Download token has expired"


class LimitExceeded(DocsenseError):
    status_code = status.HTTP_410_GONE
    code = "limit_exceeded"
    default_detail = "Download limit exceeded"
