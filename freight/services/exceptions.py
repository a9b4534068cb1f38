"""
Service-layer errors for dispatch operations.

Views catch `ServiceError` and show `message` in a banner. Field-level input
problems use Django's own `ValidationError` and never reach the database.
"""

from typing import Any, Dict, Iterable, Optional


class ServiceError(Exception):
    """Base exception for dispatch business rule failures."""

    default_code = "SERVICE_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)


class AuthenticationRequired(ServiceError):
    default_code = "AUTHENTICATION_REQUIRED"

    def __init__(self, message: str = "You must be signed in to do that."):
        super().__init__(message)


class ScheduleError(ServiceError):
    """Pickup/delivery times are out of order. Form-level, nothing written."""

    default_code = "SCHEDULE_ERROR"

    def __init__(self, message: str = "Pickup dates must be earlier than delivery dates"):
        super().__init__(message)


class DuplicateLoadTender(ServiceError):
    default_code = "DUPLICATE_LOAD_TENDER"

    def __init__(self, load_tender_number: str = ""):
        super().__init__(
            "This load tender number already exists",
            details={"load_tender_number": load_tender_number},
        )


class DuplicateEntry(ServiceError):
    default_code = "DUPLICATE_ENTRY"

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "A duplicate entry was found. Please check your data and try again.",
            details=details,
        )


class OriginalLegNotFound(ServiceError):
    default_code = "ORIGINAL_LEG_NOT_FOUND"

    def __init__(self, order_number: str = ""):
        super().__init__(
            "Failed to find original leg",
            details={"order_number": order_number},
        )


class AssignmentConflict(ServiceError):
    """
    Driver or vehicle already sits on an active manifest.

    Advisory: callers show the conflicts and may resubmit with confirm=True.
    """

    default_code = "ASSIGNMENT_CONFLICT"

    def __init__(self, conflicts: Iterable):
        self.conflicts = list(conflicts)
        lines = [
            f"{conflict.resource.capitalize()} is already assigned to manifest "
            f"#{conflict.manifest_number}"
            for conflict in self.conflicts
        ]
        super().__init__(
            "; ".join(lines),
            details={
                "conflicts": [
                    {"resource": c.resource, "manifest_number": c.manifest_number}
                    for c in self.conflicts
                ]
            },
        )
