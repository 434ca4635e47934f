"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Subtask, Weekday)
- task_store.py: SQLite-backed storage + query/update helpers
- task_api.py: CRUD glue that keeps reminders in sync with stored tasks
"""
