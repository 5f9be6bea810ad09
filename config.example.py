# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets; keep the Matrix password in .env (gitignored).

Planner data such as the reset time and the reminder flag is not configured here:
it is stored with the planner state and changed with /reset and /notify.
"""

ENV_VARS = {
    # App / logging
    "FOCUS135_APP_NAME": "App display name (default: focus135).",
    "FOCUS135_LOG_LEVEL": "Logging level (default: INFO).",
    # Paths (gitignored)
    "FOCUS135_DATA_DIR": "Local data directory (default: .local/focus135).",
    "FOCUS135_DB_PATH": "Planner state SQLite path (default: <data_dir>/planner.sqlite3).",
    "FOCUS135_MATRIX_STORE_PATH": "Matrix session directory (default: <data_dir>/matrix_store).",
    # Daily clock
    "FOCUS135_TICK_SECONDS": "Seconds between clock ticks, clamped to 1..240 (default: 60).",
    # Connectors
    "FOCUS135_CONSOLE_ENABLED": "Enable the console connector (true/false, default: true).",
    "FOCUS135_NOTIFY_BACKEND": "Where reminders go: console or matrix (default: console).",
    # Matrix
    "FOCUS135_MATRIX_HOMESERVER": "Matrix homeserver URL.",
    "FOCUS135_MATRIX_USER_ID": "Matrix user ID (bot).",
    "FOCUS135_MATRIX_PASSWORD": "Password for first login (session stored locally).",
    "FOCUS135_MATRIX_ROOM": "Room ID that receives the reminders.",
}
