# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Keep the Matrix password in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.
"""

ENV_VARS = {
    # App / logging
    "PLANNER_APP_NAME": "App display name (default: weekly-planner).",
    "PLANNER_LOG_LEVEL": "Logging level (default: INFO).",
    # Connectors
    "PLANNER_CONSOLE_ENABLED": "Enable the interactive console (true/false, default: true).",
    "PLANNER_MATRIX_ENABLED": "Deliver reminders to a Matrix room instead of the console (true/false).",
    # Reminders
    "PLANNER_REMINDER_TITLE_PREFIX": "Prefix prepended to the task label when a reminder fires (default: 'Reminder: ').",
    "PLANNER_REJECT_INVALID_SCHEDULE": (
        "true: refuse to save a task whose cron expression is invalid; "
        "false: save it without a reminder (default: true)."
    ),
    "PLANNER_PREVIEW_COUNT": "How many occurrences /crontest shows (default: 5).",
    "PLANNER_MAX_SLEEP_SECONDS": "Longest single sleep slice of the reminder clock (default: 60).",
    # Matrix
    "PLANNER_MATRIX_HOMESERVER": "Matrix homeserver URL.",
    "PLANNER_MATRIX_USER_ID": "Matrix user ID (bot).",
    "PLANNER_MATRIX_PASSWORD": "Password for first login (session stored locally).",
    "PLANNER_MATRIX_ROOM_ID": "Room that receives reminders.",
    # Paths (gitignored)
    "PLANNER_DATA_DIR": "Local data directory (default: .local/planner).",
    "PLANNER_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/planner.sqlite3).",
    "PLANNER_MATRIX_STORE_PATH": "Matrix session store path (default: <data_dir>/matrix_store).",
}
