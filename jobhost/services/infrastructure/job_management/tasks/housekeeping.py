"""Housekeeping jobs showing instance-scoped (sync and async) registration."""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from jobhost.lib.logger import configure_logger
from jobhost.services.infrastructure.job_management.decorators import (
    RecurringJobProvider,
    recurring_job,
)


class HousekeepingJobs(RecurringJobProvider):
    """Periodic cleanup of an in-process cache of recent entries."""

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        retention: timedelta = timedelta(hours=1),
    ):
        self.logger = logger or configure_logger(__name__)
        self.retention = retention
        self.entries: Dict[str, datetime] = {}
        self.runs = 0

    def touch(self, key: str) -> None:
        self.entries[key] = datetime.now(timezone.utc)

    @recurring_job("0 * * * *")
    def purge_expired(self) -> int:
        """Drop entries older than the retention window."""
        cutoff = datetime.now(timezone.utc) - self.retention
        expired = [key for key, seen in self.entries.items() if seen < cutoff]
        for key in expired:
            del self.entries[key]
        self.runs += 1
        self.logger.info(
            "Purged expired entries",
            extra={"purged": len(expired), "remaining": len(self.entries), "event_type": "purge"},
        )
        return len(expired)

    @recurring_job("30 2 * * *", timezone="UTC", job_id="housekeeping.compact")
    async def compact(self) -> int:
        # Yield to the loop between batches so other jobs keep running
        compacted = 0
        for key in sorted(self.entries):
            compacted += 1
            if compacted % 100 == 0:
                await asyncio.sleep(0)
        self.logger.info(
            "Compacted entries", extra={"compacted": compacted, "event_type": "compact"}
        )
        return compacted
