"""Heartbeat jobs showing static and class method registration."""

from datetime import datetime, timezone

from jobhost.lib.logger import configure_logger
from jobhost.services.infrastructure.job_management.decorators import (
    RecurringJobProvider,
    recurring_job,
)

logger = configure_logger(__name__)


class HeartbeatJobs(RecurringJobProvider):
    """Liveness signals emitted by the job host."""

    started_at = datetime.now(timezone.utc)

    @staticmethod
    @recurring_job("*/1 * * * *")
    def beat():
        logger.info("Heartbeat", extra={"event_type": "heartbeat"})

    @classmethod
    @recurring_job("*/5 * * * *", queue="critical")
    def report_uptime(cls):
        uptime = datetime.now(timezone.utc) - cls.started_at
        logger.info(
            "Job host uptime",
            extra={"uptime_seconds": int(uptime.total_seconds()), "event_type": "uptime"},
        )
        return uptime

    @staticmethod
    @recurring_job("*/10 * * * *", enabled=False)
    def legacy_ping():
        # Kept registered as disabled so existing schedules get removed
        logger.info("Legacy ping", extra={"event_type": "legacy_ping"})
