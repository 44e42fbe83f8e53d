"""Auto-discovery of recurring job provider types."""

import importlib
import pkgutil
from typing import Any, Dict, Iterable, List, Optional, Type

from jobhost.lib.logger import configure_logger

from .decorators import RecurringJobProvider, provided_types
from .registrar import RecurringJobRegistrar

logger = configure_logger(__name__)


def discover_job_modules(package: str) -> List[str]:
    """Import every module of ``package`` so its provider classes get defined.

    Modules that fail to import are logged and skipped.

    Returns:
        Names of the modules that were imported
    """
    try:
        package_module = importlib.import_module(package)
    except ImportError as e:
        logger.warning(
            f"Job package {package} could not be imported: {str(e)}",
            extra={"event_type": "package_import_error"},
        )
        return []

    package_path = getattr(package_module, "__path__", None)
    if package_path is None:
        # A plain module, nothing further to walk
        return [package]

    discovered_modules = []
    for module_info in pkgutil.iter_modules(package_path):
        if module_info.name.startswith("__"):
            continue

        full_module_name = f"{package}.{module_info.name}"
        try:
            logger.debug(f"Importing job module: {full_module_name}")
            importlib.import_module(full_module_name)
            discovered_modules.append(full_module_name)
        except ImportError as e:
            logger.warning(f"Failed to import job module {full_module_name}: {str(e)}")
        except Exception as e:
            logger.error(
                f"Error importing job module {full_module_name}: {str(e)}",
                exc_info=True,
            )

    return discovered_modules


def collect_job_types(
    packages: Iterable[str], base: Type = RecurringJobProvider
) -> List[Type]:
    """Import the given job packages and return every provider type they define."""
    discovered_modules = []
    for package in packages:
        discovered_modules.extend(discover_job_modules(package))

    types = provided_types(base)
    if types:
        logger.info(
            f"Auto-discovered {len(types)} job provider types from {len(discovered_modules)} modules",
            extra={"event_type": "job_discovery"},
        )
        for cls in types:
            logger.debug(f"  - {cls.__module__}.{cls.__qualname__}")
    else:
        logger.warning(
            "No job provider types were discovered",
            extra={"event_type": "job_discovery"},
        )
    return types


def get_registration_summary(
    types: Iterable[Type], registrar: Optional[RecurringJobRegistrar] = None
) -> Dict[str, Any]:
    """Summarize the recurring jobs declared by ``types`` without registering them."""
    registrar = registrar or RecurringJobRegistrar()
    type_list = list(types)

    summary = {
        "total_types": len(type_list),
        "total_jobs": 0,
        "enabled_jobs": 0,
        "disabled_jobs": 0,
        "jobs_by_queue": {},
        "disabled": [],
    }

    for cls, name, _member, marker in registrar.iter_marked(type_list):
        identifier = registrar.build_identifier(cls, name, marker)
        summary["total_jobs"] += 1
        if not marker.enabled:
            summary["disabled_jobs"] += 1
            summary["disabled"].append(identifier)
            continue
        summary["enabled_jobs"] += 1
        queue = marker.queue or registrar.default_queue
        summary["jobs_by_queue"].setdefault(queue, []).append(identifier)

    return summary
