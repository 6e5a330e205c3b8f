"""
Portfolio Notification Delivery
Provider-agnostic email delivery for contact notifications.
"""
from delivery.channels import (
    BaseChannel,
    BrevoChannel,
    ResendChannel,
    SMTPChannel,
    build_channel,
)
from delivery.gateway import NotificationGateway
from delivery.models import DeliveryState, DeliveryStatus, EmailContent

__all__ = [
    # Gateway
    "NotificationGateway",
    # Channels
    "BaseChannel",
    "SMTPChannel",
    "ResendChannel",
    "BrevoChannel",
    "build_channel",
    # Models
    "DeliveryState",
    "DeliveryStatus",
    "EmailContent",
]
