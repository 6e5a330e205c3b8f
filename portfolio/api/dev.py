"""
Development-only endpoints for exercising the contact form.

Mounted only when ENVIRONMENT=development and ENABLE_DEV_ROUTES=true.
"""

import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Query, Request

from portfolio.api.deps import SubmissionStoreDep
from portfolio.core.exceptions import NotFoundError, PersistenceFailure, SubmissionValidationError
from portfolio.database import get_database
from portfolio.models import SubmissionStatus, as_utc
from portfolio.schemas.contact import StatusUpdateRequest, SubmissionResponse, SubmissionStats
from portfolio.schemas.content import create_list_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dev", tags=["development"])

TEST_MESSAGE = "This is a test message from the development endpoint."


def serialize(submission: Any) -> dict[str, Any]:
    return SubmissionResponse.model_validate(submission).model_dump(by_alias=True, mode="json")


@router.get("/contacts/all")
async def list_contacts(
    store: SubmissionStoreDep,
    status: Optional[SubmissionStatus] = None,
    limit: int = Query(50, ge=1, le=200),
) -> dict[str, Any]:
    """Newest submissions first, spam excluded."""
    submissions = await store.find_by_status_excluding(status=status, limit=limit)
    return create_list_response([serialize(s) for s in submissions])


@router.get("/contacts/{submission_id}")
async def get_contact(submission_id: UUID, store: SubmissionStoreDep) -> dict[str, Any]:
    submission = await store.get(submission_id)
    if submission is None:
        raise NotFoundError("Contact", str(submission_id))
    return {"success": True, "data": serialize(submission)}


@router.patch("/contacts/{submission_id}/status")
async def update_contact_status(
    submission_id: UUID,
    update: StatusUpdateRequest,
    store: SubmissionStoreDep,
) -> dict[str, Any]:
    """Mark a submission read, replied, archived or spam."""
    submission = await store.update_status(submission_id, update.status)
    if submission is None:
        raise NotFoundError("Contact", str(submission_id))
    logger.info(f"Contact {submission_id} marked {update.status.value}")
    return {"success": True, "data": serialize(submission)}


@router.delete("/contacts")
async def clear_contacts(store: SubmissionStoreDep) -> dict[str, Any]:
    deleted = await store.delete_all()
    logger.info(f"Cleared {deleted} contacts")
    return {"success": True, "message": f"Cleared {deleted} contacts", "deletedCount": deleted}


@router.post("/test-contact")
async def create_test_contact(
    store: SubmissionStoreDep,
    payload: Optional[dict[str, Any]] = Body(default=None),
) -> dict[str, Any]:
    """Insert a canned submission, bypassing validation of the public form."""
    payload = payload or {}
    record = {
        "name": payload.get("name") or "Test User",
        "email": payload.get("email") or f"test{int(time.time() * 1000)}@example.com",
        "message": TEST_MESSAGE,
        "phone": "+1234567890",
        "company": "Test Company",
        "ip_address": "127.0.0.1",
        "user_agent": "Dev-Test/1.0",
    }
    try:
        submission = await store.insert(record)
    except SubmissionValidationError as e:
        raise PersistenceFailure.rejected(e.errors) from e
    return {"success": True, "message": "Test contact created", "data": serialize(submission)}


@router.get("/check-rate")
async def check_rate(
    store: SubmissionStoreDep,
    email: Optional[str] = None,
    ip: str = "127.0.0.1",
    minutes: int = Query(5, ge=1, le=1440),
) -> dict[str, Any]:
    """Submissions the rapid-submission check would count for a sender."""
    since = datetime.now(timezone.utc) - timedelta(minutes=minutes)
    submissions = await store.find_recent(email, ip, since)
    return {
        "success": True,
        "count": len(submissions),
        "timeWindow": f"{minutes} minutes",
        "email": email,
        "ip": ip,
        "data": [
            {
                "id": str(s.id),
                "email": s.email,
                "createdAt": as_utc(s.created_at).isoformat(),
                "message": s.message[:50] + "...",
            }
            for s in submissions
        ],
    }


@router.get("/db-stats")
async def db_stats(store: SubmissionStoreDep, request: Request) -> dict[str, Any]:
    stats = SubmissionStats(**await store.get_stats())
    return {
        "success": True,
        "data": stats.model_dump(),
        "database": get_database(request).get_status(),
    }


@router.post("/reset-testing")
async def reset_testing(store: SubmissionStoreDep) -> dict[str, Any]:
    """Delete example.com test senders and everything from the last hour."""
    deleted = await store.delete_test_submissions(since=datetime.now(timezone.utc) - timedelta(hours=1))
    logger.info(f"Reset testing: deleted {deleted} records")
    return {"success": True, "message": "Testing reset complete", "deletedCount": deleted}
