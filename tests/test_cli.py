"""Tests for the recurring job CLI."""

import json

import pytest

from jobhost.cli import TaskCLI
from jobhost.services.infrastructure.job_management.registrar import (
    RecurringJobRegistrar,
)

TASKS_PACKAGE = "jobhost.services.infrastructure.job_management.tasks"
HEARTBEAT = f"{TASKS_PACKAGE}.heartbeat.HeartbeatJobs"
HOUSEKEEPING = f"{TASKS_PACKAGE}.housekeeping.HousekeepingJobs"


@pytest.fixture
def cli():
    return TaskCLI(registrar=RecurringJobRegistrar(default_timezone="UTC"))


@pytest.mark.asyncio
async def test_list_json(cli, capsys):
    code = await cli.main(["--package", TASKS_PACKAGE, "list", "--format", "json"])

    assert code == 0
    jobs = json.loads(capsys.readouterr().out)
    identifiers = {job["identifier"]: job for job in jobs}
    assert identifiers[f"{HEARTBEAT}.legacy_ping"]["enabled"] is False
    assert identifiers[f"{HEARTBEAT}.report_uptime"]["queue"] == "critical"
    assert identifiers["housekeeping.compact"]["timezone"] == "UTC"


@pytest.mark.asyncio
async def test_list_table_filters(cli, capsys):
    code = await cli.main(
        ["--package", TASKS_PACKAGE, "list", "--queue", "critical", "--enabled-only"]
    )

    assert code == 0
    out = capsys.readouterr().out
    assert "Recurring Jobs (1 total)" in out
    assert f"{HEARTBEAT}.report_uptime" in out


@pytest.mark.asyncio
async def test_register_prints_result(cli, capsys):
    code = await cli.main(["--package", TASKS_PACKAGE, "register"])

    assert code == 0
    result = json.loads(capsys.readouterr().out)
    assert result["registered_count"] == 4
    assert result["skipped"] == [f"{HEARTBEAT}.legacy_ping"]


@pytest.mark.asyncio
async def test_run_job(cli, capsys):
    code = await cli.main(
        ["--package", TASKS_PACKAGE, "run", f"{HOUSEKEEPING}.purge_expired"]
    )

    assert code == 0
    out = capsys.readouterr().out
    assert f"Running job: {HOUSEKEEPING}.purge_expired" in out
    assert "Result: 0" in out


@pytest.mark.asyncio
async def test_run_unknown_job(cli, capsys):
    code = await cli.main(["--package", TASKS_PACKAGE, "run", "Nope.nothing"])

    assert code == 1
    assert "not found" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_no_command_prints_help(cli, capsys):
    code = await cli.main([])

    assert code == 0
    assert "usage" in capsys.readouterr().out.lower()
