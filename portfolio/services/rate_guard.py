"""
Rapid submission detection.

The guard never blocks a submission. It only reports whether the sender
has been unusually busy so the record can be flagged for review.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from portfolio.core.config import Settings, settings as default_settings
from portfolio.services.submission_store import SubmissionStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RapidCheck:
    count: int
    is_rapid: bool
    window_label: str


class RateGuard:
    def __init__(self, store: SubmissionStore, config: Optional[Settings] = None):
        self.store = store
        self.config = config or default_settings

    @property
    def threshold(self) -> int:
        return self.config.rapid_submission_threshold

    async def check(
        self,
        email: str,
        client_address: Optional[str],
        window_minutes: Optional[int] = None,
    ) -> RapidCheck:
        """
        Count the sender's submissions in the trailing window.

        Fails open: any store error is logged and reported as zero
        recent submissions. The shared session is rolled back so the
        insert that follows starts a clean transaction.
        """
        minutes = window_minutes or self.config.rapid_submission_window_minutes
        label = f"{minutes} minutes"
        since = datetime.now(timezone.utc) - timedelta(minutes=minutes)

        try:
            count = await self.store.count_recent(email, client_address, since)
        except Exception as e:
            logger.warning(f"Error checking rapid submissions: {e}")
            await self.store.rollback()
            return RapidCheck(count=0, is_rapid=False, window_label=label)

        return RapidCheck(count=count, is_rapid=count >= self.threshold, window_label=label)
