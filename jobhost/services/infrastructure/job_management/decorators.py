"""Recurring job marking decorators and the job provider marker type."""

import inspect
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Type, TypeVar

from jobhost.lib.logger import configure_logger

from .base import InvalidArgumentError

logger = configure_logger(__name__)

F = TypeVar("F")

MARKER_ATTR = "__recurring_job__"


@dataclass(frozen=True)
class RecurringJobMarker:
    """Recurring job metadata attached to a method by ``@recurring_job``."""

    cron: str
    timezone: Optional[str] = None
    queue: Optional[str] = None
    enabled: bool = True
    job_id: Optional[str] = None


def _unwrap(member: Any) -> Any:
    if isinstance(member, (staticmethod, classmethod)):
        return member.__func__
    return member


def recurring_job(
    cron: str,
    timezone: Optional[str] = None,
    queue: Optional[str] = None,
    enabled: bool = True,
    job_id: Optional[str] = None,
) -> Callable[[F], F]:
    """Mark a method to be registered as a recurring job.

    Works on plain, static and class methods, above or below the
    ``staticmethod``/``classmethod`` wrapper. The method itself is returned
    unchanged; only the metadata is attached.

    Args:
        cron: Five or six field cron expression
        timezone: IANA time zone name, defaults to the registrar's default
        queue: Queue (executor) name, defaults to the registrar's default
        enabled: When False the method is skipped during registration
        job_id: Explicit identifier overriding the derived ``module.Type.method``

    Example:
        class MaintenanceJobs(RecurringJobProvider):
            @staticmethod
            @recurring_job("*/5 * * * *", queue="critical")
            def heartbeat():
                ...
    """
    if not isinstance(cron, str) or not cron.strip():
        raise InvalidArgumentError("recurring_job requires a non-empty cron expression")

    marker = RecurringJobMarker(
        cron=cron.strip(),
        timezone=timezone,
        queue=queue,
        enabled=enabled,
        job_id=job_id,
    )

    def decorator(member: F) -> F:
        func = _unwrap(member)
        if not callable(func):
            raise InvalidArgumentError(
                f"recurring_job can only decorate callables, got {type(member).__name__}"
            )
        setattr(func, MARKER_ATTR, marker)
        return member

    return decorator


def get_marker(member: Any) -> Optional[RecurringJobMarker]:
    """Return the recurring job marker of a class attribute, if any."""
    marker = getattr(_unwrap(member), MARKER_ATTR, None)
    if isinstance(marker, RecurringJobMarker):
        return marker
    return None


class RecurringJobProvider:
    """Marker base class for types that declare recurring jobs.

    Subclasses are picked up by ``provided_types`` once their module is
    imported, so a composition root can register every job type without
    listing them by hand.
    """


def provided_types(base: Type = RecurringJobProvider) -> List[Type]:
    """List every concrete subclass of ``base``, ordered by module and name."""
    found = {}
    pending = list(base.__subclasses__())
    while pending:
        cls = pending.pop()
        pending.extend(cls.__subclasses__())
        if inspect.isabstract(cls):
            continue
        found[(cls.__module__, cls.__qualname__)] = cls

    types = [found[key] for key in sorted(found)]
    logger.debug(
        "Collected job provider types",
        extra={"provider_count": len(types), "event_type": "provider_query"},
    )
    return types
