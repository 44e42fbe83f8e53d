"""Scheduler sinks: the APScheduler adapter and an in-memory sink for dry runs."""

import inspect
from typing import Any, Callable, Dict, Iterable, List, Optional

from apscheduler.schedulers.base import STATE_STOPPED, BaseScheduler
from apscheduler.triggers.cron import CronTrigger

from jobhost.lib.logger import configure_logger

from .base import RecurringJobDescriptor, SchedulerRejectedError

logger = configure_logger(__name__)


def build_cron_trigger(expression: str, timezone: Optional[str] = None) -> CronTrigger:
    """Build a CronTrigger from a five field crontab or a six field (seconds first) expression.

    Raises:
        ValueError: If the expression does not have five or six fields or a
            field value is invalid
    """
    fields = expression.split()
    if len(fields) == 5:
        return CronTrigger.from_crontab(expression, timezone=timezone)
    if len(fields) == 6:
        second, minute, hour, day, month, day_of_week = fields
        return CronTrigger(
            second=second,
            minute=minute,
            hour=hour,
            day=day,
            month=month,
            day_of_week=day_of_week,
            timezone=timezone,
        )
    raise ValueError(
        f"Wrong number of fields in cron expression '{expression}': "
        f"got {len(fields)}, expected 5 or 6"
    )


def _validated_trigger(
    identifier: str, cron_expression: str, timezone: Optional[str]
) -> CronTrigger:
    try:
        return build_cron_trigger(cron_expression, timezone)
    except Exception as e:
        raise SchedulerRejectedError(
            f"Invalid schedule for {identifier} "
            f"(cron='{cron_expression}', timezone={timezone}): {str(e)}"
        ) from e


class APSchedulerSink:
    """SchedulerSink writing recurring jobs into an APScheduler instance.

    Queues map to executor aliases on the scheduler. Jobs are keyed by their
    identifier, so registering the same identifier again replaces the job.
    """

    def __init__(
        self,
        scheduler: BaseScheduler,
        queues: Optional[Iterable[str]] = None,
        misfire_grace_time: Optional[int] = None,
    ):
        self.scheduler = scheduler
        self.queues = set(queues) if queues is not None else None
        self.misfire_grace_time = misfire_grace_time

    def add_or_update(
        self,
        identifier: str,
        target: Callable[[], Any],
        cron_expression: str,
        timezone: Optional[str],
        queue: str,
    ) -> None:
        if self.queues is not None and queue not in self.queues:
            raise SchedulerRejectedError(
                f"Unknown queue '{queue}' for {identifier}; "
                f"configured queues: {', '.join(sorted(self.queues))}"
            )
        trigger = _validated_trigger(identifier, cron_expression, timezone)

        job_kwargs = {}
        if self.misfire_grace_time is not None:
            job_kwargs["misfire_grace_time"] = self.misfire_grace_time

        updated = self.scheduler.get_job(identifier) is not None
        self.scheduler.add_job(
            target,
            trigger,
            id=identifier,
            name=identifier,
            executor=queue,
            replace_existing=True,
            **job_kwargs,
        )
        if updated and self.scheduler.state == STATE_STOPPED:
            # A stopped scheduler queues jobs without replacing; drop the older pending entry
            self.scheduler.remove_job(identifier)
        logger.debug(
            "Updated scheduled job" if updated else "Added scheduled job",
            extra={"job_id": identifier, "trigger": str(trigger), "event_type": "job_upsert"},
        )

    def remove_if_exists(self, identifier: str) -> None:
        if self.scheduler.get_job(identifier) is None:
            return
        self.scheduler.remove_job(identifier)
        logger.info(
            "Removed scheduled job", extra={"job_id": identifier, "event_type": "job_removed"}
        )


class InMemorySchedulerSink:
    """SchedulerSink that keeps jobs in a dict; ``trigger`` fires a job manually."""

    def __init__(self, queues: Optional[Iterable[str]] = None):
        self.queues = set(queues) if queues is not None else None
        self._jobs: Dict[str, RecurringJobDescriptor] = {}

    def add_or_update(
        self,
        identifier: str,
        target: Callable[[], Any],
        cron_expression: str,
        timezone: Optional[str],
        queue: str,
    ) -> None:
        if self.queues is not None and queue not in self.queues:
            raise SchedulerRejectedError(f"Unknown queue '{queue}' for {identifier}")
        _validated_trigger(identifier, cron_expression, timezone)
        self._jobs[identifier] = RecurringJobDescriptor(
            identifier=identifier,
            cron_expression=cron_expression,
            target=target,
            timezone=timezone,
            queue=queue,
        )

    def remove_if_exists(self, identifier: str) -> None:
        self._jobs.pop(identifier, None)

    def get(self, identifier: str) -> Optional[RecurringJobDescriptor]:
        return self._jobs.get(identifier)

    def list_jobs(self) -> List[RecurringJobDescriptor]:
        return list(self._jobs.values())

    async def trigger(self, identifier: str) -> Any:
        """Run a registered job's target once and return its result."""
        result = self._jobs[identifier].target()
        if inspect.isawaitable(result):
            result = await result
        return result
