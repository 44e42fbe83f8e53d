"""Job host startup service: builds the scheduler, registers recurring jobs, runs until signalled."""

import asyncio
import inspect
import signal
import sys
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Type

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from jobhost.config import Config, config
from jobhost.lib.logger import configure_logger, setup_scheduler_logging
from jobhost.services.infrastructure.job_management.auto_discovery import (
    collect_job_types,
    get_registration_summary,
)
from jobhost.services.infrastructure.job_management.base import RegistrationResult
from jobhost.services.infrastructure.job_management.registrar import (
    RecurringJobRegistrar,
)
from jobhost.services.infrastructure.job_management.scheduler_sink import (
    APSchedulerSink,
)

logger = configure_logger(__name__)

shutdown_event = asyncio.Event()


def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    logger.info(
        "Shutdown signal received - initiating graceful shutdown",
        extra={"signal": signum, "event_type": "shutdown_signal"},
    )
    shutdown_event.set()


def create_scheduler(app_config: Optional[Config] = None) -> AsyncIOScheduler:
    """Create an AsyncIOScheduler with one executor per configured queue."""
    app_config = app_config or config
    scheduler_config = app_config.scheduler
    executors = {queue: AsyncIOExecutor() for queue in scheduler_config.queues}
    job_defaults = {
        "coalesce": scheduler_config.coalesce,
        "max_instances": scheduler_config.max_instances,
        "misfire_grace_time": scheduler_config.misfire_grace_time,
    }
    kwargs: Dict[str, Any] = {"executors": executors, "job_defaults": job_defaults}
    if scheduler_config.default_timezone:
        kwargs["timezone"] = scheduler_config.default_timezone
    return AsyncIOScheduler(**kwargs)


class JobHostService:
    """Hosts the recurring job scheduler for the lifetime of the process."""

    def __init__(
        self,
        scheduler: Optional[AsyncIOScheduler] = None,
        app_config: Optional[Config] = None,
    ):
        self.config = app_config or config
        self.scheduler = scheduler or create_scheduler(self.config)
        self.registrar = RecurringJobRegistrar(
            default_timezone=self.config.scheduler.default_timezone,
            default_queue=self.config.scheduler.default_queue,
            instance_lifetime=self.config.registration.instance_lifetime,
            remove_disabled=self.config.registration.remove_disabled,
        )
        self.sink = APSchedulerSink(
            self.scheduler,
            queues=self.config.scheduler.queues,
            misfire_grace_time=self.config.scheduler.misfire_grace_time,
        )
        self.job_types: List[Type] = []
        self.last_result: Optional[RegistrationResult] = None
        self.started_at: Optional[datetime] = None

    def initialize_job_system(self) -> RegistrationResult:
        """Discover job types and run one registration pass against the scheduler."""
        self.job_types = collect_job_types(self.config.registration.job_packages)
        result = self.registrar.register(self.job_types, self.sink)
        self.last_result = result

        logger.info(
            "Job system initialized",
            extra={
                "discovered_types": len(self.job_types),
                "registered": result.registered_count,
                "skipped": result.skipped_count,
                "failed": result.failed_count,
                "event_type": "job_system_init",
            },
        )
        for failure in result.failures:
            logger.error(
                "Recurring job failed to register",
                extra={
                    "job_id": failure.identifier,
                    "error": failure.error,
                    "event_type": "registration_failure",
                },
            )
        return result

    def start(self) -> None:
        """Register jobs and start the scheduler."""
        setup_scheduler_logging()
        try:
            result = self.initialize_job_system()
        except Exception as e:
            logger.error(
                "Failed to initialize job system",
                extra={"error": str(e), "event_type": "job_system_init_error"},
                exc_info=True,
            )
            raise

        if not result.registered:
            logger.warning(
                "No jobs were scheduled - scheduler will not be started",
                extra={"event_type": "no_jobs_scheduled"},
            )
            return

        self.scheduler.start()
        self.started_at = datetime.now(timezone.utc)
        logger.info(
            "Job scheduler started successfully",
            extra={"active_jobs": len(self.scheduler.get_jobs()), "event_type": "scheduler_started"},
        )
        for job in self.scheduler.get_jobs():
            logger.debug(
                "Scheduled job details",
                extra={
                    "job_id": job.id,
                    "next_run": str(getattr(job, "next_run_time", None)),
                    "event_type": "job_schedule_detail",
                },
            )

    def shutdown(self, wait: bool = True) -> None:
        """Stop the scheduler if it is running."""
        logger.info("Initiating shutdown sequence", extra={"event_type": "shutdown_start"})
        try:
            if self.scheduler and self.scheduler.running:
                self.scheduler.shutdown(wait=wait)
                logger.info("Job scheduler stopped", extra={"event_type": "scheduler_stopped"})
        except Exception as e:
            logger.error(
                "Error during shutdown",
                extra={"error": str(e), "event_type": "shutdown_error"},
                exc_info=True,
            )
        logger.info("Shutdown complete", extra={"event_type": "shutdown_complete"})

    def get_health_status(self) -> Dict[str, Any]:
        """Get health status of the job host."""
        running = bool(self.scheduler and self.scheduler.running)
        if self.last_result is None:
            return {
                "status": "unhealthy",
                "message": "Job system not initialized",
                "jobs": {"registered": 0, "skipped": 0, "failed": 0},
                "uptime": 0,
            }

        uptime = 0
        if self.started_at:
            uptime = int((datetime.now(timezone.utc) - self.started_at).total_seconds())

        if not running:
            status = "unhealthy"
        elif self.last_result.failures:
            status = "degraded"
        else:
            status = "healthy"

        return {
            "status": status,
            "message": "Job scheduler running" if running else "Job scheduler stopped",
            "jobs": {
                "registered": self.last_result.registered_count,
                "skipped": self.last_result.skipped_count,
                "failed": self.last_result.failed_count,
                "active": len(self.scheduler.get_jobs()) if running else 0,
            },
            "summary": get_registration_summary(self.job_types, self.registrar),
            "uptime": uptime,
        }

    async def trigger_job(self, identifier: str) -> Dict[str, Any]:
        """Run a registered job once, outside its schedule."""
        job = self.scheduler.get_job(identifier)
        if job is None:
            return {"success": False, "error": f"Job {identifier} is not registered"}

        logger.info(
            "Manually triggering job", extra={"job_id": identifier, "event_type": "manual_trigger"}
        )
        try:
            outcome = job.func()
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as e:
            logger.error(
                "Manually triggered job failed",
                extra={"job_id": identifier, "error": str(e), "event_type": "manual_trigger_error"},
                exc_info=True,
            )
            return {"success": False, "error": str(e)}
        return {"success": True, "result": outcome}


# Global instance, created on first use so importing has no side effects
startup_service: Optional[JobHostService] = None


def get_startup_service() -> JobHostService:
    """Get or create the job host singleton."""
    global startup_service
    if startup_service is None:
        startup_service = JobHostService()
    return startup_service


async def run() -> JobHostService:
    """Start the job host using the global service."""
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    service = get_startup_service()
    try:
        service.start()
        logger.info(
            "Job host running - Press Ctrl+C to stop",
            extra={"event_type": "services_running"},
        )
        return service
    except Exception as e:
        logger.error(
            "Failed to start job host",
            extra={"error": str(e), "event_type": "services_start_error"},
            exc_info=True,
        )
        raise


async def shutdown() -> None:
    """Shutdown the global job host."""
    get_startup_service().shutdown()


async def run_standalone() -> None:
    """Run the job host until SIGINT/SIGTERM."""
    try:
        await run()
        await shutdown_event.wait()
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt", extra={"event_type": "keyboard_interrupt"})
    except Exception as e:
        logger.error(
            "Critical error in standalone mode",
            extra={"error": str(e), "event_type": "critical_error"},
            exc_info=True,
        )
        sys.exit(1)
    finally:
        await shutdown()
