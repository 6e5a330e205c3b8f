"""
Portfolio Notification Delivery Channels
Channel implementations for webmail SMTP, Resend, and Brevo.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import formataddr
from typing import Any, Optional

import aiosmtplib
import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from delivery.models import DeliveryState, DeliveryStatus, EmailContent
from portfolio.core.config import EmailProvider, Settings, settings as default_settings
from portfolio.core.exceptions import NotificationFailure

# Sandbox sender that Resend accepts without a verified domain
RESEND_DEFAULT_FROM = "onboarding@resend.dev"


class BaseChannel(ABC):
    """Abstract base class for email delivery channels."""

    provider: EmailProvider

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.logger = structlog.get_logger().bind(channel=self.provider.value)

    @abstractmethod
    async def send(self, content: EmailContent) -> DeliveryStatus:
        """Send content through this channel. Must not raise."""
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """Check if this channel has the credentials it needs."""
        pass

    async def close(self) -> None:
        """Release any held connections."""
        return None

    def _new_status(self, content: EmailContent) -> DeliveryStatus:
        return DeliveryStatus(provider=self.provider.value, to_email=content.to_email)

    def _mark_sent(self, status: DeliveryStatus, message_id: Optional[str] = None) -> DeliveryStatus:
        status.status = DeliveryState.SENT
        status.sent_at = datetime.now(timezone.utc)
        status.provider_message_id = message_id
        return status

    def _mark_failed(self, status: DeliveryStatus, error: str) -> DeliveryStatus:
        status.status = DeliveryState.FAILED
        status.error_message = error
        self.logger.error("email_send_failed", to=status.to_email, error=error)
        return status


class SMTPChannel(BaseChannel):
    """
    SMTP delivery through a webmail account (Gmail with an app password).

    Sends a multipart/alternative message with plain text first so that
    clients without HTML support still get a readable body.
    """

    provider = EmailProvider.GMAIL

    def is_configured(self) -> bool:
        return bool(self.config.email_user and self.config.email_password)

    def build_message(self, content: EmailContent) -> EmailMessage:
        """Build the MIME message for an email."""
        sender = content.from_email or self.config.sender_address
        message = EmailMessage()
        message["From"] = formataddr((content.from_name, sender)) if content.from_name else sender
        message["To"] = formataddr((content.to_name, content.to_email)) if content.to_name else content.to_email
        message["Subject"] = content.subject
        if content.reply_to:
            message["Reply-To"] = content.reply_to

        message.set_content(content.body_text)
        message.add_alternative(content.body_html, subtype="html")
        return message

    async def send(self, content: EmailContent) -> DeliveryStatus:
        status = self._new_status(content)

        if not self.is_configured():
            return self._mark_failed(status, "SMTP credentials not configured")

        try:
            message = self.build_message(content)
        except Exception as e:
            return self._mark_failed(status, f"Failed to build message: {str(e)}")

        # App passwords are displayed in groups of four; the spaces are not part of it
        password = self.config.email_password.replace(" ", "")
        implicit_tls = self.config.smtp_port == 465

        try:
            _, response = await aiosmtplib.send(
                message,
                hostname=self.config.smtp_host,
                port=self.config.smtp_port,
                username=self.config.email_user,
                password=password,
                use_tls=implicit_tls,
                start_tls=not implicit_tls,
                timeout=self.config.smtp_timeout,
            )
        except Exception as e:
            return self._mark_failed(status, str(e))

        self.logger.info("email_sent", to=content.to_email, subject=content.subject[:50], response=response)
        return self._mark_sent(status, message.get("Message-ID"))


class HTTPAPIChannel(BaseChannel):
    """
    Shared plumbing for transactional-email HTTP APIs.

    Timeouts and network errors are retried with exponential backoff;
    error responses from the API are not.
    """

    MAX_RETRIES: int = 3
    RETRYABLE_ERRORS: tuple[type[Exception], ...] = (httpx.TimeoutException, httpx.NetworkError)

    def __init__(self, config: Optional[Settings] = None, http_client: Optional[httpx.AsyncClient] = None):
        super().__init__(config)
        self._http_client = http_client
        self.retry_wait = wait_exponential(multiplier=1, min=1, max=8)

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-loaded HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(30.0, connect=10.0),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
            )
        return self._http_client

    @property
    @abstractmethod
    def endpoint(self) -> str:
        pass

    @abstractmethod
    def build_headers(self) -> dict[str, str]:
        pass

    @abstractmethod
    def build_payload(self, content: EmailContent) -> dict[str, Any]:
        pass

    @staticmethod
    def extract_message_id(body: Any) -> Optional[str]:
        if not isinstance(body, dict):
            return None
        return body.get("id") or body.get("messageId")

    async def send(self, content: EmailContent) -> DeliveryStatus:
        status = self._new_status(content)

        if not self.is_configured():
            return self._mark_failed(status, f"{self.provider.value} API key not configured")

        try:
            payload = self.build_payload(content)
        except Exception as e:
            return self._mark_failed(status, f"Failed to build message: {str(e)}")

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.MAX_RETRIES),
                wait=self.retry_wait,
                retry=retry_if_exception_type(self.RETRYABLE_ERRORS),
                before_sleep=lambda retry_state: self.logger.warning(
                    "email_send_retrying",
                    to=content.to_email,
                    attempt=retry_state.attempt_number,
                ),
                reraise=True,
            ):
                with attempt:
                    response = await self.http_client.post(
                        self.endpoint,
                        json=payload,
                        headers=self.build_headers(),
                    )
                status.retry_count = attempt.retry_state.attempt_number - 1

            if response.status_code >= 400:
                raise NotificationFailure(f"HTTP {response.status_code}: {response.text[:200]}")
        except Exception as e:
            return self._mark_failed(status, str(e) or e.__class__.__name__)

        try:
            message_id = self.extract_message_id(response.json())
        except ValueError:
            message_id = None

        self.logger.info(
            "email_sent",
            to=content.to_email,
            subject=content.subject[:50],
            message_id=message_id,
            status_code=response.status_code,
        )
        return self._mark_sent(status, message_id)

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


class ResendChannel(HTTPAPIChannel):
    """Resend transactional email API."""

    provider = EmailProvider.RESEND

    @property
    def endpoint(self) -> str:
        return self.config.resend_api_url

    def is_configured(self) -> bool:
        return bool(self.config.resend_api_key)

    def build_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.resend_api_key}"}

    def build_payload(self, content: EmailContent) -> dict[str, Any]:
        sender = content.from_email or self.config.email_from or RESEND_DEFAULT_FROM
        payload: dict[str, Any] = {
            "from": formataddr((content.from_name, sender)) if content.from_name else sender,
            "to": [content.to_email],
            "subject": content.subject,
            "html": content.body_html,
            "text": content.body_text,
        }
        if content.reply_to:
            payload["reply_to"] = content.reply_to
        return payload


class BrevoChannel(HTTPAPIChannel):
    """Brevo (formerly Sendinblue) transactional email API."""

    provider = EmailProvider.BREVO

    @property
    def endpoint(self) -> str:
        return self.config.brevo_api_url

    def is_configured(self) -> bool:
        # Brevo rejects messages without a sender address
        return bool(self.config.brevo_api_key and self.config.sender_address)

    def build_headers(self) -> dict[str, str]:
        return {"api-key": self.config.brevo_api_key, "accept": "application/json"}

    def build_payload(self, content: EmailContent) -> dict[str, Any]:
        recipient: dict[str, str] = {"email": content.to_email}
        if content.to_name:
            recipient["name"] = content.to_name
        payload: dict[str, Any] = {
            "sender": {
                "email": content.from_email or self.config.sender_address,
                "name": content.from_name or self.config.from_name,
            },
            "to": [recipient],
            "subject": content.subject,
            "htmlContent": content.body_html,
            "textContent": content.body_text,
        }
        if content.reply_to:
            payload["replyTo"] = {"email": content.reply_to}
        return payload


CHANNEL_CLASSES: dict[EmailProvider, type[BaseChannel]] = {
    EmailProvider.GMAIL: SMTPChannel,
    EmailProvider.RESEND: ResendChannel,
    EmailProvider.BREVO: BrevoChannel,
}


def build_channel(provider: EmailProvider, config: Optional[Settings] = None) -> BaseChannel:
    """Instantiate the channel implementation for a provider."""
    return CHANNEL_CLASSES[provider](config)
