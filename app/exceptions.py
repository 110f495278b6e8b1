"""
Snipper exception hierarchy.

Services raise these; the handlers registered in ``app.main`` turn them into
JSON error bodies with the matching status code.

    SnipperError (base)
    ├── ValidationError        → 400 Bad Request
    ├── UnauthenticatedError   → 401 Unauthorized
    ├── ForbiddenError         → 403 Forbidden
    ├── NotFoundError          → 404 Not Found
    └── ConflictError          → 409 Conflict

``NotFoundError`` is also used where a resource exists but must stay hidden
from the caller (private snippet on the public path, someone else's
snippet on update/delete), so its message never depends on the reason.
"""

from __future__ import annotations

from typing import Any


class SnipperError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing description (safe to return in the response)
        context:  Debug info for logs only, never returned to the client
    """

    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(self, message: str = "An unexpected error occurred", context: dict[str, Any] | None = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(SnipperError):
    status_code = 400
    error = "Validation Failed"

    def __init__(
        self,
        message: str = "Validation failed",
        field: str | None = None,
        errors: dict[str, str] | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field
        self.errors = errors or ({field: message} if field else None)


class UnauthenticatedError(SnipperError):
    status_code = 401
    error = "Unauthorized"

    def __init__(self, message: str = "Authentication required", context: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, context=context)


class ForbiddenError(SnipperError):
    status_code = 403
    error = "Forbidden"

    def __init__(
        self,
        message: str = "You don't have permission to access this resource",
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message=message, context=context)


class NotFoundError(SnipperError):
    status_code = 404
    error = "Not Found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: str | int | None = None,
        message: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id is not None:
                message = f"{resource.capitalize()} not found with id: {resource_id}"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)


class ConflictError(SnipperError):
    status_code = 409
    error = "Conflict"

    def __init__(self, message: str = "Resource already exists", field: str | None = None, context: dict[str, Any] | None = None) -> None:
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field
