"""
Portfolio Notification Delivery Models
Pydantic models for outgoing email payloads and delivery tracking.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class DeliveryState(str, Enum):
    """Outcome of a single send attempt."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"  # channel not configured


class EmailContent(BaseModel):
    """Rendered email ready to hand to a channel."""

    subject: str = Field(..., min_length=1, max_length=400)
    body_html: str
    body_text: str
    to_email: str
    to_name: Optional[str] = None
    from_email: Optional[str] = None
    from_name: Optional[str] = None
    reply_to: Optional[str] = None


class DeliveryStatus(BaseModel):
    """Track delivery status for one email."""

    delivery_id: UUID = Field(default_factory=uuid4)
    provider: str
    to_email: str
    status: DeliveryState = DeliveryState.PENDING
    sent_at: Optional[datetime] = None
    error_message: Optional[str] = None
    provider_message_id: Optional[str] = None
    retry_count: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status == DeliveryState.SENT
