"""Weekly planner with recurring cron reminders."""

__version__ = "0.1.0"
