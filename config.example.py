# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "GYMLOG_APP_NAME": "App display name (default: gym-log).",
    "GYMLOG_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Connectors
    "GYMLOG_CONSOLE_ENABLED": "Run the console connector (true/false, default: true).",
    # Paths (gitignored)
    "GYMLOG_DATA_DIR": "Local data directory (default: .local/gym_log).",
    "GYMLOG_DB_PATH": "Record store SQLite path (default: <data_dir>/gym_log.sqlite3).",
    "GYMLOG_EXPORT_DIR": "Where /export writes backups (default: <data_dir>/backups).",
}
