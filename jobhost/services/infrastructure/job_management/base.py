from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

DEFAULT_QUEUE = "default"


class RecurringJobError(Exception):
    """Base class for recurring job registration errors."""


class InvalidArgumentError(RecurringJobError, ValueError):
    """Raised when the registrar is called with missing or malformed arguments."""


class InstantiationError(RecurringJobError):
    """Raised when the type declaring an instance job method cannot be instantiated."""


class SchedulerRejectedError(RecurringJobError):
    """Raised when the scheduler refuses a job (bad cron, time zone or queue)."""


class InstanceLifetime(Enum):
    """How instances backing instance-scoped job methods are obtained."""

    SINGLETON = "singleton"
    PER_CALL = "per_call"

    def __str__(self):
        return self.value


@dataclass
class RecurringJobDescriptor:
    """A single recurring job ready to be handed to a scheduler.

    Descriptors are rebuilt on every registration pass; the scheduler owns
    persistent state, keyed by ``identifier``.
    """

    identifier: str
    cron_expression: str
    target: Callable[[], Any]
    timezone: Optional[str] = None
    queue: str = DEFAULT_QUEUE
    enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logs and CLI output."""
        return {
            "identifier": self.identifier,
            "cron_expression": self.cron_expression,
            "timezone": self.timezone,
            "queue": self.queue,
            "enabled": self.enabled,
        }


@dataclass
class RegistrationFailure:
    """A job that could not be registered, with the reason."""

    identifier: str
    error: str
    exception: Optional[Exception] = None


@dataclass
class RegistrationResult:
    """Outcome of one registration pass."""

    registered: List[RecurringJobDescriptor] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failures: List[RegistrationFailure] = field(default_factory=list)

    @property
    def registered_count(self) -> int:
        return len(self.registered)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def success(self) -> bool:
        return not self.failures

    def add_failure(
        self, identifier: str, exception: Exception
    ) -> RegistrationFailure:
        failure = RegistrationFailure(
            identifier=identifier, error=str(exception), exception=exception
        )
        self.failures.append(failure)
        return failure

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses and CLI output."""
        return {
            "registered_count": self.registered_count,
            "skipped_count": self.skipped_count,
            "failed_count": self.failed_count,
            "registered": [descriptor.to_dict() for descriptor in self.registered],
            "skipped": list(self.skipped),
            "failures": [
                {"identifier": failure.identifier, "error": failure.error}
                for failure in self.failures
            ],
        }


@runtime_checkable
class SchedulerSink(Protocol):
    """Scheduler capability the registrar writes recurring jobs into."""

    def add_or_update(
        self,
        identifier: str,
        target: Callable[[], Any],
        cron_expression: str,
        timezone: Optional[str],
        queue: str,
    ) -> None:
        """Insert or replace the recurring job keyed by ``identifier``."""
        ...

    def remove_if_exists(self, identifier: str) -> None:
        """Remove the recurring job keyed by ``identifier`` if it is registered."""
        ...
