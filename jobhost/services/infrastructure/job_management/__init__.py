"""Recurring job management for the job host.

This module provides:
- The ``@recurring_job`` decorator and ``RecurringJobProvider`` marker type
- Auto-discovery of provider types from job packages
- The registrar that scans types and upserts their recurring jobs
- Scheduler sinks for APScheduler and in-memory dry runs
"""

from .auto_discovery import (
    collect_job_types,
    discover_job_modules,
    get_registration_summary,
)
from .base import (
    DEFAULT_QUEUE,
    InstanceLifetime,
    InstantiationError,
    InvalidArgumentError,
    RecurringJobDescriptor,
    RecurringJobError,
    RegistrationFailure,
    RegistrationResult,
    SchedulerRejectedError,
    SchedulerSink,
)
from .decorators import (
    RecurringJobMarker,
    RecurringJobProvider,
    get_marker,
    provided_types,
    recurring_job,
)
from .registrar import RecurringJobRegistrar
from .scheduler_sink import APSchedulerSink, InMemorySchedulerSink, build_cron_trigger

__all__ = [
    # Data model and errors
    "DEFAULT_QUEUE",
    "InstanceLifetime",
    "InstantiationError",
    "InvalidArgumentError",
    "RecurringJobDescriptor",
    "RecurringJobError",
    "RegistrationFailure",
    "RegistrationResult",
    "SchedulerRejectedError",
    "SchedulerSink",
    # Marking
    "RecurringJobMarker",
    "RecurringJobProvider",
    "get_marker",
    "provided_types",
    "recurring_job",
    # Registration
    "RecurringJobRegistrar",
    # Sinks
    "APSchedulerSink",
    "InMemorySchedulerSink",
    "build_cron_trigger",
    # Auto-discovery
    "collect_job_types",
    "discover_job_modules",
    "get_registration_summary",
]
