"""
Command-line interface for inspecting and running recurring jobs.

Usage:
    python run_task.py list                        # List discovered recurring jobs
    python run_task.py register                    # Run a registration pass without a scheduler
    python run_task.py run <identifier>            # Run a job's target once
"""

import argparse
import asyncio
import json
from datetime import datetime
from typing import List, Optional, Sequence

from jobhost.config import config
from jobhost.lib.logger import configure_logger
from jobhost.services.infrastructure.job_management import (
    InMemorySchedulerSink,
    RecurringJobRegistrar,
    collect_job_types,
)

logger = configure_logger(__name__)


class TaskCLI:
    """Command-line interface for recurring job management."""

    def __init__(self, registrar: Optional[RecurringJobRegistrar] = None):
        self.registrar = registrar or RecurringJobRegistrar(
            default_timezone=config.scheduler.default_timezone,
            default_queue=config.scheduler.default_queue,
            instance_lifetime=config.registration.instance_lifetime,
        )

    def setup_argparser(self) -> argparse.ArgumentParser:
        """Set up command-line argument parser."""
        parser = argparse.ArgumentParser(
            description="CLI tool for inspecting and running recurring jobs",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
    python run_task.py list
    python run_task.py list --format json --queue critical
    python run_task.py register
    python run_task.py run housekeeping.compact
            """,
        )
        parser.add_argument(
            "--package",
            action="append",
            dest="packages",
            help="Job package to scan (repeatable, defaults to configured packages)",
        )

        subparsers = parser.add_subparsers(dest="command", help="Available commands")

        list_parser = subparsers.add_parser("list", help="List discovered recurring jobs")
        list_parser.add_argument(
            "--format",
            choices=["table", "json"],
            default="table",
            help="Output format (default: table)",
        )
        list_parser.add_argument("--queue", help="Filter by queue")
        list_parser.add_argument(
            "--enabled-only", action="store_true", help="Show only enabled jobs"
        )

        subparsers.add_parser(
            "register", help="Run a registration pass against an in-memory scheduler"
        )

        run_parser = subparsers.add_parser("run", help="Run a recurring job once")
        run_parser.add_argument("identifier", help="Identifier of the job to run")
        run_parser.add_argument(
            "--timeout", type=int, default=300, help="Timeout in seconds (default: 300)"
        )

        return parser

    def print_table(self, headers: List[str], rows: List[List[str]], title: str = None):
        """Print data in table format."""
        if title:
            print(f"\n{title}")
            print("=" * len(title))

        if not rows:
            print("No data available")
            return

        col_widths = [len(header) for header in headers]
        for row in rows:
            for i, cell in enumerate(row):
                col_widths[i] = max(col_widths[i], len(str(cell)))

        header_row = " | ".join(
            header.ljust(col_widths[i]) for i, header in enumerate(headers)
        )
        print(f"\n{header_row}")
        print("-" * len(header_row))

        for row in rows:
            print(" | ".join(str(cell).ljust(col_widths[i]) for i, cell in enumerate(row)))

        print()

    def _job_types(self, args) -> list:
        packages = args.packages or config.registration.job_packages
        return collect_job_types(packages)

    def list_jobs(self, args) -> None:
        """List all discovered recurring jobs."""
        descriptors = self.registrar.discover(self._job_types(args))

        if args.queue:
            descriptors = [d for d in descriptors if d.queue == args.queue]
        if args.enabled_only:
            descriptors = [d for d in descriptors if d.enabled]

        if args.format == "json":
            print(json.dumps([d.to_dict() for d in descriptors], indent=2))
            return

        headers = ["Identifier", "Cron", "Time Zone", "Queue", "Status"]
        rows = [
            [
                d.identifier,
                d.cron_expression,
                d.timezone,
                d.queue,
                "Enabled" if d.enabled else "Disabled",
            ]
            for d in descriptors
        ]
        self.print_table(headers, rows, f"Recurring Jobs ({len(rows)} total)")

    def register_jobs(self, args) -> int:
        """Run a registration pass against an in-memory scheduler."""
        sink = InMemorySchedulerSink(queues=config.scheduler.queues)
        result = self.registrar.register(self._job_types(args), sink)
        print(json.dumps(result.to_dict(), indent=2))
        return 0 if result.success else 1

    async def run_job(self, args) -> int:
        """Run one recurring job's target once."""
        sink = InMemorySchedulerSink()
        self.registrar.register(self._job_types(args), sink)

        if sink.get(args.identifier) is None:
            print(f"Job '{args.identifier}' not found.")
            print("Use 'python run_task.py list' to see available jobs.")
            return 1

        print(f"Running job: {args.identifier}")
        start_time = datetime.now()
        try:
            outcome = await asyncio.wait_for(
                sink.trigger(args.identifier), timeout=args.timeout
            )
        except asyncio.TimeoutError:
            print(f"\nJob timed out after {args.timeout} seconds")
            return 1
        except Exception as e:
            logger.error(f"Job execution error: {str(e)}", exc_info=True)
            print(f"\nJob failed with error: {str(e)}")
            return 1

        duration = (datetime.now() - start_time).total_seconds()
        print(f"\nJob completed in {duration:.2f} seconds")
        print(f"Result: {outcome}")
        return 0

    async def main(self, argv: Optional[Sequence[str]] = None) -> int:
        """Main CLI entry point."""
        parser = self.setup_argparser()
        args = parser.parse_args(argv)

        if not args.command:
            parser.print_help()
            return 0

        try:
            if args.command == "list":
                self.list_jobs(args)
                return 0
            if args.command == "register":
                return self.register_jobs(args)
            if args.command == "run":
                return await self.run_job(args)
            parser.print_help()
            return 0
        except KeyboardInterrupt:
            print("\nOperation cancelled by user")
            return 130
        except Exception as e:
            logger.error(f"CLI error: {str(e)}", exc_info=True)
            print(f"Error: {str(e)}")
            return 1


def main() -> int:
    """Console script entry point."""
    return asyncio.run(TaskCLI().main())
