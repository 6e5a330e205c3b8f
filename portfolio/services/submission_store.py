"""
Submission Store
Persistence and queries for contact form submissions.
"""
import hashlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from sqlalchemy import case, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from portfolio.core.config import Settings, settings as default_settings
from portfolio.core.exceptions import SubmissionValidationError
from portfolio.models import (
    DEFAULT_SUBJECT,
    UNKNOWN,
    ContactSubmission,
    SubmissionCategory,
    SubmissionStatus,
)

logger = logging.getLogger(__name__)

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"


# =============================================================================
# Record Schema
# =============================================================================


class SubmissionCreate(BaseModel):
    """
    Shape of a submission as the store accepts it.

    Unknown fields are rejected and every bound is enforced here, before
    the database is touched.
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    message: str = Field(..., min_length=10, max_length=2000)
    subject: str = Field(default=DEFAULT_SUBJECT, max_length=200)
    phone: Optional[str] = None
    company: Optional[str] = None
    ip_address: str = Field(default=UNKNOWN, max_length=45)
    user_agent: str = Field(default=UNKNOWN, max_length=500)
    referrer: Optional[str] = Field(default=None, max_length=500)
    category: SubmissionCategory = SubmissionCategory.GENERAL
    is_rapid_submission: bool = False

    @field_validator("email", mode="before")
    @classmethod
    def lowercase_email(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("phone", "company", "referrer", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("subject", mode="before")
    @classmethod
    def default_subject(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_SUBJECT
        return v

    @field_validator("ip_address", "user_agent", mode="before")
    @classmethod
    def default_unknown(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return UNKNOWN
        return v


def validation_errors(exc: ValidationError) -> list[dict[str, str]]:
    """Flatten pydantic errors into [{field, message}] pairs."""
    return [
        {
            "field": ".".join(str(part) for part in error["loc"]) or "record",
            "message": error["msg"],
        }
        for error in exc.errors()
    ]


def submission_hash(email: str, message: str, timestamp: datetime) -> str:
    """Triage fingerprint of a submission. Not unique by construction."""
    millis = int(timestamp.timestamp() * 1000)
    return hashlib.md5(f"{email}:{message[:50]}:{millis}".encode("utf-8")).hexdigest()


# =============================================================================
# Store
# =============================================================================


class SubmissionStore:
    """Data access for ContactSubmission rows, bound to one session."""

    def __init__(self, db: AsyncSession, config: Optional[Settings] = None):
        self.db = db
        self.config = config or default_settings

    async def insert(self, record: Union[SubmissionCreate, dict[str, Any]]) -> ContactSubmission:
        """
        Validate and persist a submission, committing immediately.

        Raises:
            SubmissionValidationError: If the record fails schema validation.
            SQLAlchemyError: If the database rejects or cannot take the write.
        """
        if isinstance(record, SubmissionCreate):
            record = record.model_dump()
        try:
            data = SubmissionCreate.model_validate(record)
        except ValidationError as e:
            raise SubmissionValidationError(validation_errors(e)) from e

        now = datetime.now(timezone.utc)
        submission = ContactSubmission(
            **data.model_dump(exclude={"category"}),
            category=data.category.value,
            status=SubmissionStatus.NEW.value,
            submission_hash=submission_hash(data.email, data.message, now),
            created_at=now,
            updated_at=now,
        )

        self.db.add(submission)
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        if self.config.log_contact_submissions:
            logger.info(f"Contact saved: {submission.name} <{submission.email}> [{submission.id}]")

        return submission

    async def count_recent(self, email: str, client_address: Optional[str], since: datetime) -> int:
        """
        Count submissions created after `since` by the same sender.

        A sender matches on email (case-insensitive) or on client address;
        an absent or "Unknown" address matches on email alone.
        """
        identity = [func.lower(ContactSubmission.email) == email.strip().lower()]
        if client_address and client_address != UNKNOWN:
            identity.append(ContactSubmission.ip_address == client_address)

        query = (
            select(func.count())
            .select_from(ContactSubmission)
            .where(ContactSubmission.created_at > since, or_(*identity))
        )
        result = await self.db.execute(query)
        return result.scalar_one()

    async def rollback(self) -> None:
        """Discard the session's current transaction after a failed statement."""
        await self.db.rollback()

    async def find_recent(self, email: Optional[str], client_address: Optional[str], since: datetime) -> list[ContactSubmission]:
        """The submissions count_recent would count, newest first."""
        identity = []
        if email:
            identity.append(func.lower(ContactSubmission.email) == email.strip().lower())
        if client_address and client_address != UNKNOWN:
            identity.append(ContactSubmission.ip_address == client_address)
        if not identity:
            return []

        query = (
            select(ContactSubmission)
            .where(ContactSubmission.created_at > since, or_(*identity))
            .order_by(ContactSubmission.created_at.desc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def find_by_status_excluding(
        self,
        status: Optional[SubmissionStatus] = None,
        excluded: Optional[SubmissionStatus] = SubmissionStatus.SPAM,
        limit: int = 50,
    ) -> list[ContactSubmission]:
        """List submissions newest first, optionally filtered by status."""
        query = select(ContactSubmission)
        if status is not None:
            query = query.where(ContactSubmission.status == SubmissionStatus(status).value)
        if excluded is not None:
            query = query.where(ContactSubmission.status != SubmissionStatus(excluded).value)
        query = query.order_by(ContactSubmission.created_at.desc()).limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get(self, submission_id: UUID, include_spam: bool = False) -> Optional[ContactSubmission]:
        query = select(ContactSubmission).where(ContactSubmission.id == submission_id)
        if not include_spam:
            query = query.where(ContactSubmission.status != SubmissionStatus.SPAM.value)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def update_status(self, submission_id: UUID, status: SubmissionStatus) -> Optional[ContactSubmission]:
        """Move a submission to a new status. Spam rows remain reachable here."""
        submission = await self.get(submission_id, include_spam=True)
        if submission is None:
            return None

        submission.status = SubmissionStatus(status).value
        submission.updated_at = datetime.now(timezone.utc)
        await self.db.commit()
        return submission

    async def get_stats(self) -> dict[str, Any]:
        """Totals per status, submissions in the last 24 hours, and response rate."""
        day_ago = datetime.now(timezone.utc) - timedelta(hours=24)

        def count_where(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        query = select(
            func.count(ContactSubmission.id),
            count_where(ContactSubmission.status == SubmissionStatus.NEW.value),
            count_where(ContactSubmission.status == SubmissionStatus.READ.value),
            count_where(ContactSubmission.status == SubmissionStatus.REPLIED.value),
            count_where(ContactSubmission.created_at > day_ago),
        )
        total, new, read, replied, today = (await self.db.execute(query)).one()

        response_rate = (read + replied) / total * 100 if total else 0
        return {
            "total": total,
            "new": new,
            "read": read,
            "replied": replied,
            "today": today,
            "responseRate": response_rate,
        }

    async def delete_all(self) -> int:
        result = await self.db.execute(delete(ContactSubmission))
        await self.db.commit()
        return result.rowcount

    async def delete_test_submissions(self, since: datetime) -> int:
        """Delete example.com test senders and anything created after `since`."""
        result = await self.db.execute(
            delete(ContactSubmission).where(
                or_(
                    ContactSubmission.email.ilike("test%@example.com"),
                    ContactSubmission.created_at > since,
                )
            )
        )
        await self.db.commit()
        return result.rowcount
