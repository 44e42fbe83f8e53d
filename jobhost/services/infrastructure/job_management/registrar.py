"""Recurring job registrar: scans job types and upserts their recurring jobs."""

import functools
import inspect
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Type, Union

from tzlocal import get_localzone_name

from jobhost.lib.logger import configure_logger

from .base import (
    DEFAULT_QUEUE,
    InstanceLifetime,
    InstantiationError,
    InvalidArgumentError,
    RecurringJobDescriptor,
    RegistrationResult,
    SchedulerRejectedError,
    SchedulerSink,
)
from .decorators import RecurringJobMarker, get_marker

logger = configure_logger(__name__)

MarkedMember = Tuple[Type, str, Any, RecurringJobMarker]


def _default_factory(cls: Type) -> Any:
    return cls()


class RecurringJobRegistrar:
    """Discovers ``@recurring_job`` methods and registers them with a scheduler.

    A registration pass is stateless apart from the instance cache used by
    ``InstanceLifetime.SINGLETON``; idempotence comes from the scheduler's
    upsert keyed by the job identifier.
    """

    def __init__(
        self,
        default_timezone: Optional[str] = None,
        default_queue: str = DEFAULT_QUEUE,
        instance_lifetime: Union[InstanceLifetime, str] = InstanceLifetime.SINGLETON,
        instance_factory: Optional[Callable[[Type], Any]] = None,
        remove_disabled: bool = False,
    ):
        if isinstance(instance_lifetime, str):
            try:
                instance_lifetime = InstanceLifetime(instance_lifetime.lower())
            except ValueError:
                raise InvalidArgumentError(
                    f"Unknown instance lifetime: {instance_lifetime}"
                )
        if not default_queue:
            raise InvalidArgumentError("default_queue must not be empty")

        self.default_timezone = default_timezone
        self.default_queue = default_queue
        self.instance_lifetime = instance_lifetime
        self.instance_factory = instance_factory or _default_factory
        self.remove_disabled = remove_disabled
        self._instances: Dict[Type, Any] = {}

    def discover(self, types: Iterable[Type]) -> List[RecurringJobDescriptor]:
        """Build descriptors for every marked method of ``types``.

        Disabled methods are included with ``enabled=False``. Raises
        ``InstantiationError`` if an enabled instance method's type cannot be
        instantiated; use ``register`` for per-method failure isolation.
        """
        type_list = self._validate_types(types)
        timezone = self._resolve_default_timezone()
        return [
            self._build_descriptor(cls, name, member, marker, timezone)
            for cls, name, member, marker in self.iter_marked(type_list)
        ]

    def register(
        self, types: Iterable[Type], scheduler: SchedulerSink
    ) -> RegistrationResult:
        """Scan ``types`` and upsert each enabled recurring job into ``scheduler``.

        Args:
            types: Classes to scan for ``@recurring_job`` methods
            scheduler: Sink exposing ``add_or_update``

        Returns:
            RegistrationResult with registered descriptors, skipped identifiers
            and per-method failures

        Raises:
            InvalidArgumentError: If ``types`` or ``scheduler`` is missing or
                malformed. Nothing is registered in that case.
        """
        type_list = self._validate_types(types)
        self._validate_scheduler(scheduler)
        timezone = self._resolve_default_timezone()

        result = RegistrationResult()
        for cls, name, member, marker in self.iter_marked(type_list):
            identifier = self.build_identifier(cls, name, marker)

            if not marker.enabled:
                self._skip(identifier, scheduler, result)
                continue

            try:
                descriptor = self._build_descriptor(cls, name, member, marker, timezone)
            except Exception as e:
                error = e
                if not isinstance(e, InstantiationError):
                    error = InstantiationError(f"Could not bind {identifier}: {str(e)}")
                    error.__cause__ = e
                logger.error(
                    "Could not bind recurring job target",
                    extra={
                        "job_id": identifier,
                        "error": str(e),
                        "event_type": "instantiation_error",
                    },
                )
                result.add_failure(identifier, error)
                continue

            self._add(descriptor, scheduler, result)

        self._log_summary(result, len(type_list))
        return result

    def register_descriptors(
        self, descriptors: Iterable[RecurringJobDescriptor], scheduler: SchedulerSink
    ) -> RegistrationResult:
        """Register an explicit table of descriptors without scanning any type."""
        if descriptors is None:
            raise InvalidArgumentError("descriptors must not be None")
        descriptor_list = list(descriptors)
        for descriptor in descriptor_list:
            if not isinstance(descriptor, RecurringJobDescriptor):
                raise InvalidArgumentError(
                    f"Expected RecurringJobDescriptor, got {type(descriptor).__name__}"
                )
        self._validate_scheduler(scheduler)

        result = RegistrationResult()
        for descriptor in descriptor_list:
            if not descriptor.enabled:
                self._skip(descriptor.identifier, scheduler, result)
                continue
            self._add(descriptor, scheduler, result)

        self._log_summary(result, 0)
        return result

    @staticmethod
    def build_identifier(
        cls: Type, name: str, marker: Optional[RecurringJobMarker] = None
    ) -> str:
        """Stable job identifier: explicit ``job_id`` or ``module.Type.method``."""
        if marker is not None and marker.job_id:
            return marker.job_id
        return f"{cls.__module__}.{cls.__qualname__}.{name}"

    def _validate_types(self, types: Any) -> List[Type]:
        if types is None:
            raise InvalidArgumentError("types must not be None")
        if isinstance(types, (str, bytes)):
            raise InvalidArgumentError("types must be a sequence of classes, not a string")
        try:
            type_list = list(types)
        except TypeError:
            raise InvalidArgumentError(
                f"types must be iterable, got {type(types).__name__}"
            )
        for cls in type_list:
            if not inspect.isclass(cls):
                raise InvalidArgumentError(f"Expected a class, got {cls!r}")
        return type_list

    def _validate_scheduler(self, scheduler: Any) -> None:
        if scheduler is None:
            raise InvalidArgumentError("scheduler must not be None")
        if not callable(getattr(scheduler, "add_or_update", None)):
            raise InvalidArgumentError(
                f"scheduler {type(scheduler).__name__} does not provide add_or_update"
            )

    def _resolve_default_timezone(self) -> str:
        return self.default_timezone or get_localzone_name()

    def iter_marked(self, types: List[Type]) -> Iterator[MarkedMember]:
        """Yield ``(cls, name, member, marker)`` for each marked public member, in name order."""
        for cls in types:
            for name in sorted(dir(cls)):
                if name.startswith("_"):
                    continue
                try:
                    member = inspect.getattr_static(cls, name)
                except AttributeError:
                    continue
                marker = get_marker(member)
                if marker is not None:
                    yield cls, name, member, marker

    def _build_descriptor(
        self,
        cls: Type,
        name: str,
        member: Any,
        marker: RecurringJobMarker,
        default_timezone: str,
    ) -> RecurringJobDescriptor:
        return RecurringJobDescriptor(
            identifier=self.build_identifier(cls, name, marker),
            cron_expression=marker.cron,
            target=self._bind_target(cls, name, member, resolve=marker.enabled),
            timezone=marker.timezone or default_timezone,
            queue=marker.queue or self.default_queue,
            enabled=marker.enabled,
        )

    def _bind_target(
        self, cls: Type, name: str, member: Any, resolve: bool = True
    ) -> Callable[[], Any]:
        if isinstance(member, staticmethod):
            return member.__func__
        if isinstance(member, classmethod):
            return getattr(cls, name)

        if resolve and self.instance_lifetime is InstanceLifetime.SINGLETON:
            instance = self._resolve_instance(cls, cached=True)
            target = getattr(instance, name, None)
            if not callable(target):
                raise InstantiationError(
                    f"{type(instance).__name__} instance for {cls.__qualname__} "
                    f"has no method {name}"
                )
            return target
        if resolve:
            # Probe once so an unbuildable type fails at registration, not on trigger
            self._resolve_instance(cls, cached=False)
        return self._per_call_target(cls, name)

    def _per_call_target(self, cls: Type, name: str) -> Callable[[], Any]:
        method = getattr(cls, name)
        cached = self.instance_lifetime is InstanceLifetime.SINGLETON

        if inspect.iscoroutinefunction(method):

            @functools.wraps(method)
            async def run_job():
                instance = self._resolve_instance(cls, cached=cached)
                return await getattr(instance, name)()

        else:

            @functools.wraps(method)
            def run_job():
                instance = self._resolve_instance(cls, cached=cached)
                return getattr(instance, name)()

        return run_job

    def _resolve_instance(self, cls: Type, cached: bool) -> Any:
        if cached and cls in self._instances:
            return self._instances[cls]
        try:
            instance = self.instance_factory(cls)
        except Exception as e:
            raise InstantiationError(
                f"Could not instantiate {cls.__qualname__}: {str(e)}"
            ) from e
        if instance is None:
            raise InstantiationError(
                f"Instance factory returned None for {cls.__qualname__}"
            )
        if cached:
            self._instances[cls] = instance
        return instance

    def _add(
        self,
        descriptor: RecurringJobDescriptor,
        scheduler: SchedulerSink,
        result: RegistrationResult,
    ) -> None:
        try:
            scheduler.add_or_update(
                descriptor.identifier,
                descriptor.target,
                descriptor.cron_expression,
                descriptor.timezone,
                descriptor.queue,
            )
        except Exception as e:
            error = e
            if not isinstance(e, SchedulerRejectedError):
                error = SchedulerRejectedError(str(e))
                error.__cause__ = e
            logger.error(
                "Scheduler rejected recurring job",
                extra={
                    "job_id": descriptor.identifier,
                    "cron": descriptor.cron_expression,
                    "error": str(e),
                    "event_type": "scheduler_rejected",
                },
            )
            result.add_failure(descriptor.identifier, error)
            return

        result.registered.append(descriptor)
        logger.info(
            "Recurring job registered",
            extra={
                "job_id": descriptor.identifier,
                "cron": descriptor.cron_expression,
                "timezone": descriptor.timezone,
                "queue": descriptor.queue,
                "event_type": "job_registered",
            },
        )

    def _skip(
        self, identifier: str, scheduler: SchedulerSink, result: RegistrationResult
    ) -> None:
        result.skipped.append(identifier)
        logger.info(
            "Recurring job disabled - skipping",
            extra={"job_id": identifier, "event_type": "job_disabled"},
        )
        if not self.remove_disabled:
            return

        remove = getattr(scheduler, "remove_if_exists", None)
        if remove is None:
            return
        try:
            remove(identifier)
        except Exception as e:
            logger.error(
                "Failed to remove disabled recurring job",
                extra={"job_id": identifier, "error": str(e), "event_type": "remove_error"},
            )
            result.add_failure(identifier, e)

    def _log_summary(self, result: RegistrationResult, type_count: int) -> None:
        log = logger.warning if result.failures else logger.info
        log(
            "Recurring job registration pass complete",
            extra={
                "types_scanned": type_count,
                "registered": result.registered_count,
                "skipped": result.skipped_count,
                "failed": result.failed_count,
                "event_type": "registration_complete",
            },
        )
