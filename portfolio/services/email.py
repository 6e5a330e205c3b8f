"""
Portfolio Email Template Service
Jinja2 rendering of contact notification emails.
"""
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import structlog
from jinja2 import Environment, FileSystemLoader, TemplateNotFound, select_autoescape

from portfolio.core.config import Settings, settings as default_settings
from portfolio.models import ContactSubmission


logger = structlog.get_logger(__name__)


# Template directory path
TEMPLATES_DIR = Path(__file__).parent.parent / "templates"

EXCERPT_LENGTH = 200


def message_excerpt(message: str, length: int = EXCERPT_LENGTH) -> str:
    """First `length` characters of a message, with an ellipsis when cut."""
    if len(message) <= length:
        return message
    return message[:length] + "..."


def format_received_at(created_at: datetime) -> str:
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return created_at.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


class EmailTemplateService:
    """
    Service for rendering contact notification emails.

    Rendering is a pure function of the submission and site settings:
    dates and the copyright year come from the submission's created_at,
    and HTML templates escape every user-provided value.
    """

    ADMIN_TEMPLATE = "contact_admin"
    CONFIRMATION_TEMPLATE = "contact_confirmation"

    def __init__(self, config: Optional[Settings] = None, templates_dir: Optional[Path] = None):
        self.config = config or default_settings
        self.templates_dir = templates_dir or TEMPLATES_DIR
        self._env: Optional[Environment] = None

    @property
    def env(self) -> Environment:
        """Lazy-loaded Jinja2 environment."""
        if self._env is None:
            self._env = Environment(
                loader=FileSystemLoader(str(self.templates_dir)),
                autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=True),
                trim_blocks=True,
                lstrip_blocks=True,
                keep_trailing_newline=False,
            )
        return self._env

    def _get_base_context(self, submission: ContactSubmission) -> dict[str, Any]:
        """Context variables available in all templates."""
        return {
            "site_name": self.config.site_name,
            "owner_name": self.config.owner_name,
            "contact_email": self.config.contact_email,
            "frontend_url": self.config.frontend_url,
            "current_year": submission.created_at.year,
            "received_at": format_received_at(submission.created_at),
        }

    def render_template(self, template_name: str, context: dict[str, Any]) -> str:
        """
        Render a single template file.

        Raises:
            TemplateNotFound: If the template file doesn't exist.
        """
        return self.env.get_template(template_name).render(**context)

    def render_email(self, template_name: str, submission: ContactSubmission, **extra: Any) -> tuple[str, str]:
        """
        Render both HTML and plain-text versions of an email template.

        Args:
            template_name: Base name of the template (without extension).
            submission: The submission the email is about.
            **extra: Additional template variables.

        Returns:
            Tuple of (html_content, text_content).
        """
        context = {**self._get_base_context(submission), "submission": submission, **extra}
        html_content = self.render_template(f"{template_name}.html", context)

        try:
            text_content = self.render_template(f"{template_name}.txt", context).strip()
        except TemplateNotFound:
            logger.warning("plain_text_template_not_found", template=f"{template_name}.txt")
            text_content = ""

        return html_content, text_content

    # ==========================================================================
    # Contact notifications
    # ==========================================================================

    def admin_alert_subject(self, submission: ContactSubmission) -> str:
        return f"New Contact: {submission.name} - {submission.subject}"

    def confirmation_subject(self) -> str:
        return f"Thank you for contacting {self.config.site_name}"

    def render_admin_alert(self, submission: ContactSubmission) -> tuple[str, str, str]:
        """
        Render the alert sent to the site owner for a new submission.

        Returns:
            Tuple of (subject, html_content, text_content).
        """
        html_content, text_content = self.render_email(self.ADMIN_TEMPLATE, submission)
        return self.admin_alert_subject(submission), html_content, text_content

    def render_confirmation(self, submission: ContactSubmission) -> tuple[str, str, str]:
        """
        Render the acknowledgment sent back to the submitter.

        Returns:
            Tuple of (subject, html_content, text_content).
        """
        html_content, text_content = self.render_email(
            self.CONFIRMATION_TEMPLATE,
            submission,
            excerpt=message_excerpt(submission.message),
        )
        return self.confirmation_subject(), html_content, text_content
