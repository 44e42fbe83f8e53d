import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from jobhost.lib.logger import configure_logger

logger = configure_logger(__name__)

load_dotenv()


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class SchedulerConfig:
    """Configuration for the hosted APScheduler instance."""

    # Empty means the local system time zone
    default_timezone: Optional[str] = os.getenv("JOBHOST_DEFAULT_TIMEZONE") or None
    default_queue: str = os.getenv("JOBHOST_DEFAULT_QUEUE", "default")
    queues: List[str] = field(
        default_factory=lambda: _split_list(
            os.getenv("JOBHOST_QUEUES", "default,critical")
        )
    )
    coalesce: bool = os.getenv("JOBHOST_COALESCE", "true").lower() == "true"
    max_instances: int = int(os.getenv("JOBHOST_MAX_INSTANCES", "1"))
    misfire_grace_time: int = int(os.getenv("JOBHOST_MISFIRE_GRACE_TIME", "60"))


@dataclass
class RegistrationConfig:
    """Configuration for the recurring job registration pass."""

    job_packages: List[str] = field(
        default_factory=lambda: _split_list(
            os.getenv(
                "JOBHOST_JOB_PACKAGES",
                "jobhost.services.infrastructure.job_management.tasks",
            )
        )
    )
    instance_lifetime: str = os.getenv("JOBHOST_INSTANCE_LIFETIME", "singleton")
    remove_disabled: bool = (
        os.getenv("JOBHOST_REMOVE_DISABLED_JOBS", "true").lower() == "true"
    )


@dataclass
class Config:
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    registration: RegistrationConfig = field(default_factory=RegistrationConfig)

    def __post_init__(self):
        if self.scheduler.default_queue not in self.scheduler.queues:
            # The default queue always needs an executor
            self.scheduler.queues.insert(0, self.scheduler.default_queue)

    @classmethod
    def load(cls) -> "Config":
        """Load and validate configuration"""
        config = cls()
        logger.info("Configuration loaded successfully")
        return config


# Global configuration instance
config = Config.load()
