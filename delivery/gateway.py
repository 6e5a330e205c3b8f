"""
Portfolio Notification Gateway
Routes outgoing email to the provider selected by configuration.
"""
from typing import Optional

import structlog

from delivery.channels import BaseChannel, build_channel
from delivery.models import DeliveryState, DeliveryStatus, EmailContent
from portfolio.core.config import EmailProvider, Settings, settings as default_settings


class NotificationGateway:
    """
    Send email through one of several interchangeable providers.

    The provider is resolved from EMAIL_SERVICE on every call, so a
    changed configuration takes effect without rebuilding the gateway.
    send() reports success as a boolean and never raises.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        channels: Optional[dict[EmailProvider, BaseChannel]] = None,
    ):
        self.config = config or default_settings
        self._channels: dict[EmailProvider, BaseChannel] = dict(channels or {})
        self.logger = structlog.get_logger().bind(component="notification_gateway")

    @property
    def provider(self) -> EmailProvider:
        return self.config.email_service

    @property
    def provider_name(self) -> str:
        return self.provider.value

    def channel_for(self, provider: EmailProvider) -> BaseChannel:
        """Get the channel for a provider, creating it on first use."""
        if provider not in self._channels:
            self._channels[provider] = build_channel(provider, self.config)
        return self._channels[provider]

    async def deliver(self, content: EmailContent) -> DeliveryStatus:
        """Send prepared content and return the full delivery status."""
        if self.config.email_test_mode:
            self.logger.info("email_test_mode_send", to=content.to_email, subject=content.subject[:50])
            return DeliveryStatus(
                provider=self.provider_name,
                to_email=content.to_email,
                status=DeliveryState.SENT,
            )

        try:
            channel = self.channel_for(self.provider)
            if not channel.is_configured():
                self.logger.warning("email_channel_not_configured", provider=self.provider_name, to=content.to_email)
                return DeliveryStatus(
                    provider=self.provider_name,
                    to_email=content.to_email,
                    status=DeliveryState.SKIPPED,
                    error_message=f"{self.provider_name} is not configured",
                )
            return await channel.send(content)
        except Exception as e:
            self.logger.error("email_gateway_error", provider=self.provider_name, to=content.to_email, error=str(e))
            return DeliveryStatus(
                provider=self.provider_name,
                to_email=content.to_email,
                status=DeliveryState.FAILED,
                error_message=str(e),
            )

    async def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str,
        reply_to: Optional[str] = None,
    ) -> bool:
        """
        Send an email.

        Args:
            to: Recipient address.
            subject: Subject line.
            html: HTML body.
            text: Plain-text body.
            reply_to: Optional Reply-To address.

        Returns:
            True when the provider accepted the message.
        """
        try:
            content = EmailContent(
                subject=subject,
                body_html=html,
                body_text=text,
                to_email=to,
                from_name=self.config.from_name,
                reply_to=reply_to,
            )
        except Exception as e:
            self.logger.error("email_content_invalid", to=to, error=str(e))
            return False

        status = await self.deliver(content)
        return status.succeeded

    async def close(self) -> None:
        for channel in self._channels.values():
            await channel.close()
        self._channels.clear()
