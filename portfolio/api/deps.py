"""
FastAPI Dependencies
Shared dependencies for settings, storage and notification delivery.
"""
from typing import Annotated, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from delivery.gateway import NotificationGateway
from portfolio.core.config import Settings
from portfolio.core.rate_limit import get_client_ip, get_request_settings
from portfolio.database import get_db
from portfolio.services.contact_pipeline import ContactPipeline, SubmissionOrigin
from portfolio.services.email import EmailTemplateService
from portfolio.services.submission_store import SubmissionStore

UNKNOWN_CLIENT = "unknown"


def get_config(request: Request) -> Settings:
    return get_request_settings(request)


def get_gateway(request: Request) -> NotificationGateway:
    """Notification gateway created with the application."""
    return request.app.state.gateway


def get_templates(request: Request) -> EmailTemplateService:
    return request.app.state.templates


# Type aliases for cleaner dependency injection
AsyncSessionDep = Annotated[AsyncSession, Depends(get_db)]
SettingsDep = Annotated[Settings, Depends(get_config)]


def get_submission_store(db: AsyncSessionDep, config: SettingsDep) -> SubmissionStore:
    return SubmissionStore(db, config)


SubmissionStoreDep = Annotated[SubmissionStore, Depends(get_submission_store)]


def get_contact_pipeline(
    store: SubmissionStoreDep,
    config: SettingsDep,
    gateway: Annotated[NotificationGateway, Depends(get_gateway)],
    templates: Annotated[EmailTemplateService, Depends(get_templates)],
) -> ContactPipeline:
    return ContactPipeline(store=store, gateway=gateway, templates=templates, config=config)


ContactPipelineDep = Annotated[ContactPipeline, Depends(get_contact_pipeline)]


def get_submission_origin(request: Request) -> SubmissionOrigin:
    """Provenance of the request: client address, user agent and referrer."""
    ip_address: Optional[str] = get_client_ip(request)
    if ip_address == UNKNOWN_CLIENT:
        ip_address = None
    return SubmissionOrigin(
        ip_address=ip_address,
        user_agent=request.headers.get("User-Agent"),
        referrer=request.headers.get("Referer"),
    )
