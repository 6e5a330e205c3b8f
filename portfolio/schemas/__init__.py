"""
Portfolio Pydantic Schemas
Request/Response models for API endpoints.
"""
from portfolio.schemas.contact import (
    ContactFormRequest,
    ContactFormResponse,
    ErrorResponse,
    StatusUpdateRequest,
    SubmissionResponse,
    SubmissionStats,
)
from portfolio.schemas.content import (
    ListResponse,
    ProjectResponse,
    SkillResponse,
    create_list_response,
)

__all__ = [
    # Contact
    "ContactFormRequest",
    "ContactFormResponse",
    "ErrorResponse",
    "StatusUpdateRequest",
    "SubmissionResponse",
    "SubmissionStats",
    # Content
    "ListResponse",
    "ProjectResponse",
    "SkillResponse",
    "create_list_response",
]
