"""
Mithaq — Domain exceptions.

Every error the compatibility core raises derives from
``CompatibilityError``.  The API layer maps each subclass onto an HTTP
status via ``status_code``.
"""

from __future__ import annotations


class CompatibilityError(Exception):
    """Base class for all compatibility-domain failures."""

    status_code: int = 500
    message: str = "Compatibility operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)


class ResponsesNotFound(CompatibilityError):
    """One or both users have not completed the questionnaire."""

    status_code = 404
    message = "Could not find compatibility responses for one or both users"

    def __init__(self, missing_user_ids: list[str]) -> None:
        self.missing_user_ids = list(missing_user_ids)
        super().__init__(
            f"{self.message}: {', '.join(self.missing_user_ids)}"
        )


class InvalidResponse(CompatibilityError):
    status_code = 422
    message = "The response data is invalid or incomplete"


class ReportNotFound(CompatibilityError):
    status_code = 404
    message = "Compatibility report not found"

    def __init__(self, report_id: str) -> None:
        self.report_id = report_id
        super().__init__(f"Compatibility report {report_id} not found")


class PersistenceFailure(CompatibilityError):
    """The storage backend could not be reached or rejected the operation."""

    status_code = 503
    message = "Compatibility storage is unavailable"


class SaveFailed(PersistenceFailure):
    """A write did not complete; in-memory state is not yet durable."""

    message = "Failed to save compatibility data"
