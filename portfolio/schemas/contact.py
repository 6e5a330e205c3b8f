"""Contact form schemas."""
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from portfolio.models import SubmissionStatus, as_utc


class CamelModel(BaseModel):
    """Response model serialized with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ContactFormRequest(BaseModel):
    """
    Contact form submission request.

    Fields are loosely typed on purpose: required-field and format checks
    happen in the pipeline so JSON and form posts report errors the same way.
    """
    model_config = ConfigDict(extra="ignore")

    name: Optional[Any] = None
    email: Optional[Any] = None
    message: Optional[Any] = None
    subject: Optional[Any] = None
    phone: Optional[Any] = None
    company: Optional[Any] = None


class FieldError(BaseModel):
    field: str
    message: str


class EmailNotificationsResponse(CamelModel):
    admin_sent: bool
    user_sent: bool
    email_enabled: bool
    service: str
    error: Optional[str] = None


class ContactSubmissionData(CamelModel):
    id: UUID
    name: str
    email: str
    created_at: datetime
    email_notifications: EmailNotificationsResponse


class ContactFormResponse(BaseModel):
    """Contact form submission response."""
    success: bool
    message: str
    data: ContactSubmissionData


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    errors: Optional[list[FieldError]] = None


class SubmissionResponse(CamelModel):
    """Full submission record, as shown by the development routes."""
    id: UUID
    name: str
    email: str
    subject: str
    message: str
    phone: Optional[str] = None
    company: Optional[str] = None
    ip_address: str
    user_agent: str
    referrer: Optional[str] = None
    status: SubmissionStatus
    category: str
    submission_hash: Optional[str] = None
    is_rapid_submission: bool
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def serialize_timestamp(self, value: datetime) -> str:
        return as_utc(value).isoformat()


class StatusUpdateRequest(BaseModel):
    status: SubmissionStatus


class SubmissionStats(BaseModel):
    total: int = 0
    new: int = 0
    read: int = 0
    replied: int = 0
    today: int = 0
    responseRate: float = Field(default=0, description="Share of submissions read or replied, in percent")
