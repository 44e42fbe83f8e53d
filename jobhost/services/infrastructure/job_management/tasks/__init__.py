"""Sample recurring jobs.

Jobs are discovered by importing every module in this package and collecting
the ``RecurringJobProvider`` subclasses they define. To add a job:

1. Create a new .py file in this directory
2. Subclass ``RecurringJobProvider``
3. Decorate public methods with ``@recurring_job("<cron>", ...)``

Example:
    class ReportJobs(RecurringJobProvider):
        @staticmethod
        @recurring_job("0 6 * * *", timezone="Europe/Berlin")
        def send_daily_report():
            ...
"""

__all__ = []  # Auto-discovery imports the modules
