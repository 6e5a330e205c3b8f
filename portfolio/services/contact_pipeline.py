"""
Contact Submission Pipeline
Validate, flag rapid senders, persist, notify, and build the response.
"""
import asyncio
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from delivery.gateway import NotificationGateway
from portfolio.core.config import Settings, settings as default_settings
from portfolio.core.exceptions import PersistenceFailure, SubmissionValidationError, ValidationFailure
from portfolio.models import UNKNOWN, ContactSubmission, as_utc
from portfolio.services.email import EmailTemplateService
from portfolio.services.rate_guard import RateGuard
from portfolio.services.submission_store import EMAIL_PATTERN, SubmissionStore

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(EMAIL_PATTERN)

# Form fields copied from the request; anything else is ignored
FORM_FIELDS = ("name", "email", "message", "subject", "phone", "company")

MESSAGE_CONFIRMATION_SENT = (
    "Thank you for reaching out! Your message has been received and a confirmation email has been sent to you."
)
MESSAGE_ADMIN_NOTIFIED = "Thank you for reaching out! Your message has been received. I'll get back to you soon via email."
MESSAGE_RECEIVED = "Thank you for reaching out! Your message has been received. I'll get back to you soon."


@dataclass
class SubmissionOrigin:
    """Transport-level provenance of a submission."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None


@dataclass
class EmailNotifications:
    admin_sent: bool = False
    user_sent: bool = False
    email_enabled: bool = False
    service: str = "none"
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "adminSent": self.admin_sent,
            "userSent": self.user_sent,
            "emailEnabled": self.email_enabled,
            "service": self.service,
            "error": self.error,
        }


@dataclass
class ContactResult:
    submission: ContactSubmission
    notifications: EmailNotifications
    message: str
    success: bool = True

    def to_response(self) -> dict[str, Any]:
        """JSON body returned to the client."""
        return {
            "success": self.success,
            "message": self.message,
            "data": {
                "id": str(self.submission.id),
                "name": self.submission.name,
                "email": self.submission.email,
                "createdAt": as_utc(self.submission.created_at).isoformat(),
                "emailNotifications": self.notifications.to_dict(),
            },
        }


def _clean(value: Any) -> Optional[str]:
    """Trimmed string value, or None when absent, blank, or not a string."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def validate_contact_input(data: Mapping[str, Any]) -> dict[str, Optional[str]]:
    """
    Check the required form fields and return the trimmed values.

    Raises:
        ValidationFailure: Listing every offending field.
    """
    cleaned = {name: _clean(data.get(name)) for name in FORM_FIELDS}
    errors: list[dict[str, str]] = []

    if not cleaned["name"]:
        errors.append({"field": "name", "message": "Name is required"})

    if not cleaned["email"]:
        errors.append({"field": "email", "message": "Email is required"})
    elif not EMAIL_RE.match(cleaned["email"]):
        errors.append({"field": "email", "message": "Please enter a valid email address"})
    else:
        cleaned["email"] = cleaned["email"].lower()

    if not cleaned["message"]:
        errors.append({"field": "message", "message": "Message is required"})

    if errors:
        raise ValidationFailure(errors=errors)
    return cleaned


def response_message(notifications: EmailNotifications) -> str:
    if notifications.user_sent:
        return MESSAGE_CONFIRMATION_SENT
    if notifications.admin_sent:
        return MESSAGE_ADMIN_NOTIFIED
    return MESSAGE_RECEIVED


class ContactPipeline:
    """
    Orchestrates a contact form submission.

    Nothing after a successful insert can fail the request: notification
    problems are logged and reported in the response body instead.
    """

    def __init__(
        self,
        store: SubmissionStore,
        gateway: NotificationGateway,
        templates: Optional[EmailTemplateService] = None,
        config: Optional[Settings] = None,
        rate_guard: Optional[RateGuard] = None,
    ):
        self.config = config or default_settings
        self.store = store
        self.gateway = gateway
        self.templates = templates or EmailTemplateService(self.config)
        self.rate_guard = rate_guard or RateGuard(store, self.config)

    async def submit(self, data: Mapping[str, Any], origin: Optional[SubmissionOrigin] = None) -> ContactResult:
        """
        Run a submission through the full pipeline.

        Raises:
            ValidationFailure: Required fields are missing or malformed.
            PersistenceFailure: The store rejected the record or is unreachable.
        """
        origin = origin or SubmissionOrigin()
        cleaned = validate_contact_input(data)
        logger.info(f"Contact form submission from {cleaned['name']} <{cleaned['email']}>")

        rapid = await self.rate_guard.check(cleaned["email"], origin.ip_address)
        if rapid.is_rapid:
            logger.warning(f"Rapid submission detected ({rapid.count} in {rapid.window_label}) from {cleaned['email']}")

        record = {
            **cleaned,
            "ip_address": origin.ip_address or UNKNOWN,
            "user_agent": origin.user_agent or UNKNOWN,
            "referrer": origin.referrer,
            "is_rapid_submission": rapid.is_rapid,
        }
        submission = await self._persist(record)
        logger.info(f"Contact saved to database: {submission.id}")

        notifications = await self.notify(submission)
        return ContactResult(
            submission=submission,
            notifications=notifications,
            message=response_message(notifications),
        )

    async def _persist(self, record: dict[str, Any]) -> ContactSubmission:
        try:
            return await self.store.insert(record)
        except SubmissionValidationError as e:
            logger.error(f"Contact rejected by store: {e}")
            raise PersistenceFailure.rejected(e.errors) from e
        except Exception as e:
            logger.error(f"Failed to save contact: {e}")
            raise PersistenceFailure() from e

    # =========================================================================
    # Notifications
    # =========================================================================

    async def notify(self, submission: ContactSubmission) -> EmailNotifications:
        """Send the admin alert and the sender acknowledgment concurrently."""
        notifications = EmailNotifications(
            email_enabled=self.config.email_enabled,
            service=self.gateway.provider_name,
        )
        if not self.config.email_enabled:
            logger.info("Email notifications disabled (EMAIL_ENABLED=false)")
            return notifications

        (admin_sent, admin_error), (user_sent, user_error) = await asyncio.gather(
            self.send_admin_alert(submission),
            self.send_confirmation(submission),
        )
        notifications.admin_sent = admin_sent
        notifications.user_sent = user_sent
        notifications.error = admin_error or user_error

        logger.info(
            f"Email results via {notifications.service}: "
            f"admin={'sent' if admin_sent else 'failed'}, user={'sent' if user_sent else 'failed'}"
        )
        return notifications

    async def send_admin_alert(self, submission: ContactSubmission) -> tuple[bool, Optional[str]]:
        recipient = self.config.admin_recipient
        if not recipient:
            logger.warning("No admin email configured")
            return False, None
        try:
            subject, html, text = self.templates.render_admin_alert(submission)
            sent = await self.gateway.send(recipient, subject, html, text, reply_to=submission.email)
            return sent, None
        except Exception as e:
            logger.error(f"Admin notification error: {e}")
            return False, str(e)

    async def send_confirmation(self, submission: ContactSubmission) -> tuple[bool, Optional[str]]:
        try:
            subject, html, text = self.templates.render_confirmation(submission)
            sent = await self.gateway.send(submission.email, subject, html, text)
            return sent, None
        except Exception as e:
            logger.error(f"User confirmation error: {e}")
            return False, str(e)
