from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from jobhost.config import Config, RegistrationConfig, SchedulerConfig
from jobhost.services.infrastructure import startup_service as startup_module
from jobhost.services.infrastructure.startup_service import (
    JobHostService,
    create_scheduler,
)

TASKS_PACKAGE = "jobhost.services.infrastructure.job_management.tasks"
HEARTBEAT = f"{TASKS_PACKAGE}.heartbeat.HeartbeatJobs"
HOUSEKEEPING = f"{TASKS_PACKAGE}.housekeeping.HousekeepingJobs"


@pytest.fixture
def app_config():
    return Config(
        scheduler=SchedulerConfig(
            default_timezone="UTC",
            default_queue="default",
            queues=["default", "critical"],
            coalesce=True,
            max_instances=1,
            misfire_grace_time=60,
        ),
        registration=RegistrationConfig(
            job_packages=[TASKS_PACKAGE],
            instance_lifetime="singleton",
            remove_disabled=True,
        ),
    )


@pytest.fixture
def mock_scheduler():
    scheduler = MagicMock(spec=AsyncIOScheduler)
    scheduler.running = False
    scheduler.get_job.return_value = None
    scheduler.get_jobs.return_value = []
    return scheduler


@pytest.fixture
def service(mock_scheduler, app_config):
    return JobHostService(scheduler=mock_scheduler, app_config=app_config)


class TestCreateScheduler:
    def test_one_executor_per_queue(self, app_config):
        scheduler = create_scheduler(app_config)

        assert isinstance(scheduler, AsyncIOScheduler)
        assert set(scheduler._executors) == {"default", "critical"}
        assert scheduler._job_defaults["misfire_grace_time"] == 60
        assert scheduler._job_defaults["coalesce"] is True


class TestJobHostService:
    def test_initialize_job_system_registers_sample_jobs(self, service, mock_scheduler):
        """Test the registration pass over the sample job package."""
        result = service.initialize_job_system()

        assert [d.identifier for d in result.registered] == [
            f"{HEARTBEAT}.beat",
            f"{HEARTBEAT}.report_uptime",
            "housekeeping.compact",
            f"{HOUSEKEEPING}.purge_expired",
        ]
        assert result.skipped == [f"{HEARTBEAT}.legacy_ping"]
        assert result.failures == []
        assert mock_scheduler.add_job.call_count == 4
        assert service.last_result is result

    def test_add_job_uses_queue_as_executor(self, service, mock_scheduler):
        service.initialize_job_system()

        executors = {
            call.kwargs["id"]: call.kwargs["executor"]
            for call in mock_scheduler.add_job.call_args_list
        }
        assert executors[f"{HEARTBEAT}.report_uptime"] == "critical"
        assert executors[f"{HEARTBEAT}.beat"] == "default"

    def test_start_starts_scheduler(self, service, mock_scheduler):
        """Test scheduler start when jobs were registered."""
        service.start()

        mock_scheduler.start.assert_called_once()
        assert service.started_at is not None

    def test_start_without_jobs(self, service, mock_scheduler):
        """Test scheduler is not started when nothing was registered."""
        with patch.object(startup_module, "collect_job_types", return_value=[]):
            service.start()

        mock_scheduler.start.assert_not_called()

    def test_start_failure_propagates(self, service):
        with patch.object(
            startup_module, "collect_job_types", side_effect=RuntimeError("discovery failed")
        ):
            with pytest.raises(RuntimeError) as exc_info:
                service.start()
        assert str(exc_info.value) == "discovery failed"

    def test_shutdown_stops_running_scheduler(self, service, mock_scheduler):
        mock_scheduler.running = True

        service.shutdown()

        mock_scheduler.shutdown.assert_called_once_with(wait=True)

    def test_shutdown_skips_stopped_scheduler(self, service, mock_scheduler):
        service.shutdown()

        mock_scheduler.shutdown.assert_not_called()

    def test_health_before_initialization(self, service):
        status = service.get_health_status()

        assert status["status"] == "unhealthy"
        assert status["jobs"]["registered"] == 0

    def test_health_after_start(self, service, mock_scheduler):
        service.start()
        mock_scheduler.running = True

        status = service.get_health_status()

        assert status["status"] == "healthy"
        assert status["jobs"]["registered"] == 4
        assert status["jobs"]["skipped"] == 1
        assert status["summary"]["total_jobs"] == 5

    def test_health_degraded_on_failures(self, service, mock_scheduler):
        mock_scheduler.add_job.side_effect = [None, RuntimeError("store offline"), None, None]
        service.start()
        mock_scheduler.running = True

        status = service.get_health_status()

        assert status["status"] == "degraded"
        assert status["jobs"]["failed"] == 1


class TestTriggerJob:
    @pytest.mark.asyncio
    async def test_trigger_registered_job(self, app_config):
        service = JobHostService(app_config=app_config)
        service.initialize_job_system()

        outcome = await service.trigger_job(f"{HEARTBEAT}.report_uptime")

        assert outcome["success"] is True
        assert isinstance(outcome["result"], timedelta)

    @pytest.mark.asyncio
    async def test_trigger_async_job(self, app_config):
        service = JobHostService(app_config=app_config)
        service.initialize_job_system()

        outcome = await service.trigger_job("housekeeping.compact")

        assert outcome == {"success": True, "result": 0}

    @pytest.mark.asyncio
    async def test_trigger_unknown_job(self, app_config):
        service = JobHostService(app_config=app_config)

        outcome = await service.trigger_job("Nope.nothing")

        assert outcome["success"] is False


@pytest.mark.asyncio
async def test_global_shutdown():
    """Test global shutdown function."""
    with patch.object(startup_module, "startup_service") as mock_service:
        await startup_module.shutdown()
        mock_service.shutdown.assert_called_once()


@pytest.mark.asyncio
async def test_global_run_starts_service():
    """Test global run function."""
    with patch.object(startup_module, "startup_service") as mock_service, patch.object(
        startup_module.signal, "signal"
    ):
        service = await startup_module.run()

    assert service is mock_service
    mock_service.start.assert_called_once()
