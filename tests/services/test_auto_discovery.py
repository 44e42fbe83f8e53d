"""Tests for job provider auto-discovery."""

from unittest.mock import patch

from jobhost.services.infrastructure.job_management import auto_discovery
from jobhost.services.infrastructure.job_management.auto_discovery import (
    collect_job_types,
    discover_job_modules,
    get_registration_summary,
)
from jobhost.services.infrastructure.job_management.registrar import (
    RecurringJobRegistrar,
)
from jobhost.services.infrastructure.job_management.tasks.heartbeat import (
    HeartbeatJobs,
)
from jobhost.services.infrastructure.job_management.tasks.housekeeping import (
    HousekeepingJobs,
)

TASKS_PACKAGE = "jobhost.services.infrastructure.job_management.tasks"
HEARTBEAT = f"{TASKS_PACKAGE}.heartbeat.HeartbeatJobs"
HOUSEKEEPING = f"{TASKS_PACKAGE}.housekeeping.HousekeepingJobs"


class TestDiscoverJobModules:
    def test_imports_every_task_module(self):
        modules = discover_job_modules(TASKS_PACKAGE)

        assert f"{TASKS_PACKAGE}.heartbeat" in modules
        assert f"{TASKS_PACKAGE}.housekeeping" in modules

    def test_missing_package_returns_nothing(self):
        assert discover_job_modules("jobhost.no_such_package") == []

    def test_plain_module_is_returned_as_is(self):
        module = f"{TASKS_PACKAGE}.heartbeat"

        assert discover_job_modules(module) == [module]

    def test_failing_module_is_skipped(self):
        real_import = auto_discovery.importlib.import_module

        def flaky_import(name, *args, **kwargs):
            if name.endswith(".housekeeping"):
                raise RuntimeError("boom")
            return real_import(name, *args, **kwargs)

        with patch.object(auto_discovery.importlib, "import_module", side_effect=flaky_import):
            modules = discover_job_modules(TASKS_PACKAGE)

        assert f"{TASKS_PACKAGE}.heartbeat" in modules
        assert f"{TASKS_PACKAGE}.housekeeping" not in modules


class TestCollectJobTypes:
    def test_collects_sample_providers(self):
        types = collect_job_types([TASKS_PACKAGE])

        assert HeartbeatJobs in types
        assert HousekeepingJobs in types
        assert types.index(HeartbeatJobs) < types.index(HousekeepingJobs)


class TestRegistrationSummary:
    def test_summarizes_sample_jobs(self):
        registrar = RecurringJobRegistrar(default_timezone="UTC")

        summary = get_registration_summary([HeartbeatJobs, HousekeepingJobs], registrar)

        assert summary["total_types"] == 2
        assert summary["total_jobs"] == 5
        assert summary["enabled_jobs"] == 4
        assert summary["disabled_jobs"] == 1
        assert summary["disabled"] == [f"{HEARTBEAT}.legacy_ping"]
        assert summary["jobs_by_queue"] == {
            "default": [
                f"{HEARTBEAT}.beat",
                "housekeeping.compact",
                f"{HOUSEKEEPING}.purge_expired",
            ],
            "critical": [f"{HEARTBEAT}.report_uptime"],
        }
