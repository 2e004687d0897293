from fastapi import HTTPException
from typing import Optional


class QueryHubException(Exception):
    """Base exception for the lookup service"""

    def __init__(self, message: str, code: str = "INTERNAL_ERROR", details: Optional[str] = None):
        self.message = message
        self.code = code
        self.details = details
        super().__init__(self.message)


class AuthenticationError(QueryHubException):
    """Authentication related errors"""

    def __init__(self, message: str = "Invalid or missing admin session"):
        super().__init__(message, "AUTHENTICATION_FAILED")


class ValidationError(QueryHubException):
    """Malformed or missing input parameter"""

    def __init__(self, message: str):
        super().__init__(message, "INVALID_REQUEST")


class BlockedError(QueryHubException):
    """Lookup hit a protected identity"""

    def __init__(self, message: str = "Query not authorized"):
        super().__init__(message, "QUERY_BLOCKED")


class MaintenanceError(QueryHubException):
    """Query type administratively disabled"""

    def __init__(self, query_type: str):
        super().__init__(f"{query_type} endpoint is under maintenance", "MAINTENANCE")


class UpstreamError(QueryHubException):
    """Upstream lookup failed or returned an unparseable payload"""

    def __init__(self, message: str):
        super().__init__(message, "UPSTREAM_ERROR")


class NotFoundError(QueryHubException):
    """Lookup by id found nothing"""

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} {identifier} not found", "NOT_FOUND")


class DuplicateError(QueryHubException):
    """Identity is already protected"""

    def __init__(self, message: str = "User already protected"):
        super().__init__(message, "ALREADY_PROTECTED")


class TooManyRequestsError(QueryHubException):
    """Admission cap reached"""

    def __init__(self, message: str = "Too many concurrent requests. Please try again later."):
        super().__init__(message, "TOO_MANY_REQUESTS")


class StorageError(QueryHubException):
    """I/O failure reading or writing a partition document"""

    def __init__(self, message: str):
        super().__init__(message, "STORAGE_ERROR")


STATUS_CODE_MAP = {
    "AUTHENTICATION_FAILED": 401,
    "NOT_FOUND": 404,
    "INVALID_REQUEST": 400,
    "ALREADY_PROTECTED": 409,
    "TOO_MANY_REQUESTS": 429,
    "UPSTREAM_ERROR": 502,
    "MAINTENANCE": 503,
    "QUERY_BLOCKED": 200,
    "STORAGE_ERROR": 500,
    "INTERNAL_ERROR": 500,
}


def error_body(exc: QueryHubException) -> dict:
    return {"error": {"code": exc.code, "message": exc.message, "details": exc.details}}


def create_http_exception(exc: QueryHubException) -> HTTPException:
    """Convert QueryHubException to HTTPException"""
    status_code = STATUS_CODE_MAP.get(exc.code, 500)

    return HTTPException(status_code=status_code, detail=error_body(exc))
