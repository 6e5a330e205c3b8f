"""
Custom Exception Classes for the Portfolio API.

Pipeline errors carry the HTTP status and field-level detail that the
contact endpoint renders; HTTP exceptions cover the remaining routes.
"""
from typing import Any, Optional

from fastapi import HTTPException, status


class ContactPipelineError(Exception):
    """Base class for errors that abort the contact submission pipeline."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Unable to process your message. Please try again later."

    def __init__(
        self,
        message: Optional[str] = None,
        errors: Optional[list[dict[str, Any]]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message or self.default_message
        self.errors = errors or []
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_response(self, debug: bool = False) -> dict[str, Any]:
        """Render the error as the endpoint's JSON body."""
        body: dict[str, Any] = {"success": False, "message": self.message}
        if self.errors:
            body["errors"] = self.errors
        if debug and self.__cause__ is not None:
            body["error"] = str(self.__cause__)
        return body


class ValidationFailure(ContactPipelineError):
    """Raised when submitted form data is missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Please check the form for errors"


class PersistenceFailure(ContactPipelineError):
    """
    Raised when the submission store rejects or cannot save a record.

    400 when the store rejected the data shape, 500 when it was unreachable.
    """

    default_message = "Unable to process your message. Please try again later."

    @classmethod
    def rejected(cls, errors: list[dict[str, Any]]) -> "PersistenceFailure":
        return cls(
            message="Please check your information and try again",
            errors=errors,
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class NotificationFailure(Exception):
    """Raised inside delivery channels; never escapes the notification gateway."""


class SubmissionValidationError(Exception):
    """Raised by the submission store when a record fails schema validation."""

    def __init__(self, errors: list[dict[str, Any]]):
        self.errors = errors
        fields = ", ".join(e["field"] for e in errors)
        super().__init__(f"Submission failed validation: {fields}")


class NotFoundError(HTTPException):
    """Exception raised when a requested resource is not found."""

    def __init__(self, resource: str, id: str = None):
        detail = f"{resource} not found" + (f": {id}" if id else "")
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

