"""
Portfolio services: submission storage, contact pipeline, email rendering, content.
"""

from portfolio.services.contact_pipeline import (
    ContactPipeline,
    ContactResult,
    EmailNotifications,
    SubmissionOrigin,
    validate_contact_input,
)
from portfolio.services.content import (
    DEFAULT_PROJECTS,
    SKILLS,
    list_projects,
    list_skills,
)
from portfolio.services.email import EmailTemplateService
from portfolio.services.rate_guard import RapidCheck, RateGuard
from portfolio.services.submission_store import SubmissionCreate, SubmissionStore

__all__ = [
    "ContactPipeline",
    "ContactResult",
    "EmailNotifications",
    "SubmissionOrigin",
    "validate_contact_input",
    "DEFAULT_PROJECTS",
    "SKILLS",
    "list_projects",
    "list_skills",
    "EmailTemplateService",
    "RapidCheck",
    "RateGuard",
    "SubmissionCreate",
    "SubmissionStore",
]
