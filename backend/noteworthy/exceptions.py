"""
Noteworthy Backend - Custom Exception Hierarchy
=================================================

What:  Defines application-specific exceptions for every failure kind a
       service can report.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by security helpers and services; caught by global handlers.

Exception Hierarchy:
    NoteworthyError (base)
    ├── AuthenticationError  → 401 Unauthorized (uniform, no detail leaked)
    ├── ValidationError      → 400 Bad Request (client can fix)
    ├── NotFoundError        → 404 Not Found (absent OR not owned by caller)
    ├── ConflictError        → 409 Conflict (duplicate sibling name, email)
    ├── CycleError           → 409 Conflict (reparent would create a cycle)
    └── UnavailableError     → 503 Service Unavailable (retry later)

Every exception exposes a stable machine-readable `kind` used by the HTTP layer
and by callers that dispatch on error type without importing the classes.
"""

from typing import Any, Dict, Optional


class NoteworthyError(Exception):
    """
    Base exception for all Noteworthy application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned for auth errors)
    """

    kind = "internal_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class AuthenticationError(NoteworthyError):
    """
    Raised when a credential is missing, malformed, forged, or expired.

    The message is identical for every cause so the response cannot be used
    as an oracle for *why* a token or password was rejected. The optional
    `reason` is kept for server-side logging only.
    HTTP:    401 Unauthorized
    """

    kind = "authentication_failure"
    DEFAULT_MESSAGE = "Could not validate credentials"

    def __init__(self, reason: Optional[str] = None):
        super().__init__(message=self.DEFAULT_MESSAGE)
        self.reason = reason


class ValidationError(NoteworthyError):
    """
    Raised when client input fails validation.

    When:    Empty note content, empty/too-long folder name, weak password,
             malformed email, empty search query.
    HTTP:    400 Bad Request
    """

    kind = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(NoteworthyError):
    """
    Raised when a requested resource does not exist for the caller.

    A row owned by another user produces exactly the same error as a row that
    does not exist at all: ownership is never disclosed.
    HTTP:    404 Not Found
    """

    kind = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource


class ConflictError(NoteworthyError):
    """
    Raised when a write would violate a uniqueness rule.

    When:    A sibling folder already has the name; the email is registered.
    HTTP:    409 Conflict
    """

    kind = "conflict"

    def __init__(
        self,
        message: str = "The resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class CycleError(NoteworthyError):
    """
    Raised when a folder reparent would make the folder its own ancestor.
    HTTP:    409 Conflict
    """

    kind = "cycle_error"

    def __init__(
        self,
        folder_id: Optional[str] = None,
        parent_id: Optional[str] = None,
    ):
        if folder_id is not None and folder_id == parent_id:
            message = "A folder cannot be its own parent"
        else:
            message = "A folder cannot be moved into one of its own subfolders"
        ctx: Dict[str, Any] = {}
        if folder_id:
            ctx["folder_id"] = folder_id
        if parent_id:
            ctx["parent_id"] = parent_id
        super().__init__(message=message, context=ctx)


class UnavailableError(NoteworthyError):
    """
    Raised when the storage layer times out or fails transiently.

    The surrounding transaction has been rolled back, so the caller may retry
    the whole operation.
    HTTP:    503 Service Unavailable (with Retry-After)
    """

    kind = "unavailable"

    def __init__(
        self,
        message: str = "The service is temporarily unavailable. Please try again.",
        retry_after: Optional[int] = 1,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
