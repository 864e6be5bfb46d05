"""
Voting period keeper: start the next voting period once the current one has ended.
"""

import logging
import time
from typing import Optional

from farmsync.utils import epoch_to_datetime

logger = logging.getLogger(__name__)


class VotingPeriodKeeper:
    """Advances the Voter to a new period when the current one is over."""

    def __init__(self, reader, writer):
        self.reader = reader
        self.writer = writer

    def ensure_voting_period_advanced(self, now: Optional[int] = None) -> bool:
        """
        Start a new voting period if the current one has ended.

        Args:
            now: Unix timestamp to compare against (default: current time)

        Returns:
            True if startNewVotingPeriod was sent, False if the period is still open
        """
        now = int(now if now is not None else time.time())
        period = self.reader.get_current_voting_period()
        start_time, end_time = self.reader.get_period_window(period)
        logger.info(
            f"Voting period {period}: {epoch_to_datetime(start_time):%Y-%m-%d %H:%M} -> "
            f"{epoch_to_datetime(end_time):%Y-%m-%d %H:%M} UTC"
        )

        if now <= end_time:
            logger.info(f"Voting period {period} still open ({end_time - now}s left)")
            return False

        logger.info("Starting new voting period")
        self.writer.start_new_voting_period()
        return True
