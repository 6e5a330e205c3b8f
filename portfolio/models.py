"""
Portfolio Database Models
SQLAlchemy ORM models for contact submissions and portfolio projects.
"""
import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    TIMESTAMP,
    Boolean,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Stored timestamps may come back naive from SQLite; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SubmissionStatus(str, enum.Enum):
    """Lifecycle states of a contact submission."""

    NEW = "new"
    READ = "read"
    REPLIED = "replied"
    ARCHIVED = "archived"
    SPAM = "spam"


class SubmissionCategory(str, enum.Enum):
    """Coarse topic of a contact submission."""

    GENERAL = "general"
    JOB = "job"
    COLLABORATION = "collaboration"
    QUESTION = "question"
    OTHER = "other"


class ProjectStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    UPCOMING = "upcoming"
    ARCHIVED = "archived"


DEFAULT_SUBJECT = "Portfolio Inquiry"
UNKNOWN = "Unknown"


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class ContactSubmission(Base):
    """
    A single contact-form entry.

    Everything except status and updated_at is fixed at creation time,
    including the rapid-submission flag.
    """

    __tablename__ = "contact_submissions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
        doc="Unique identifier for the submission",
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        index=True,
        doc="Sender's name",
    )
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        doc="Sender's email, trimmed and lower-cased",
    )
    subject: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        default=DEFAULT_SUBJECT,
    )
    message: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    company: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Provenance captured from the transport
    ip_address: Mapped[str] = mapped_column(
        String(45),
        nullable=False,
        default=UNKNOWN,
        index=True,
    )
    user_agent: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        default=UNKNOWN,
    )
    referrer: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SubmissionStatus.NEW.value,
        index=True,
    )
    category: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SubmissionCategory.GENERAL.value,
    )
    submission_hash: Mapped[Optional[str]] = mapped_column(
        String(32),
        nullable=True,
        index=True,
        doc="Triage fingerprint; intentionally not unique",
    )
    is_rapid_submission: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        Index("ix_contact_submissions_email_created", "email", "created_at"),
        Index("ix_contact_submissions_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ContactSubmission {self.name} - {self.email}>"


class Project(Base):
    """A portfolio project shown on the public site."""

    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(), primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(String(1000), nullable=False)
    short_description: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    technologies: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    features: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    start_date: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    end_date: Mapped[str] = mapped_column(String(50), nullable=False, default="Present")
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ProjectStatus.ACTIVE.value,
        index=True,
    )
    github_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    live_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (Index("ix_projects_featured_order", "featured", "display_order"),)

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if not self.short_description and self.description:
            self.short_description = self.description[:197] + "..."

    @property
    def is_live(self) -> bool:
        return not self.end_date or self.end_date == "Present"

    def __repr__(self) -> str:
        return f"<Project {self.title}>"
