# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "DAYROUTE_APP_NAME": "App display name (default: dayroute).",
    "DAYROUTE_LOG_LEVEL": "Console logging level (default: INFO).",
    # Storage
    "DAYROUTE_STORAGE": "Storage backend: memory | sqlite (default: memory).",
    "DAYROUTE_DATA_DIR": "Local data directory for logs and DB (default: .local/dayroute).",
    "DAYROUTE_DB_PATH": "SQLite path (default: <data_dir>/schedules.sqlite3).",
    # Operator / admin
    "DAYROUTE_OPERATOR_NAME": "Name stored on generated schedules (default: Nathan).",
    "DAYROUTE_ADMIN_PASSWORD": "Password for /reset and /regenerate (default: admin).",
    # Delay handling
    "DAYROUTE_DELAY_POLICY": "mark_only | shift_forward (default: mark_only).",
    "DAYROUTE_AUTO_DELAY_THRESHOLD_MINUTES": "Minutes overdue before an automatic delay (default: 5).",
    "DAYROUTE_MONITOR_INTERVAL_SECONDS": "Delay monitor polling interval (default: 60).",
    # Day template
    "DAYROUTE_DAY_START": "First task start, HH:mm (default: 08:00).",
    "DAYROUTE_DAY_END": "Latest task end, HH:mm (default: 19:00).",
    "DAYROUTE_LUNCH_START": "Lunch break start, HH:mm (default: 13:40).",
    "DAYROUTE_LUNCH_END": "Lunch break end, HH:mm (default: 14:40).",
    "DAYROUTE_HOME_LOCATION": "Start location id (default: ertsfeld).",
    "DAYROUTE_LUNCH_LOCATION": "Lunch location id (default: lugano).",
    "DAYROUTE_POST_LUNCH_LOCATION": "First stop after lunch (default: bellinzona).",
    "DAYROUTE_WORK_MIN_MINUTES": "Shortest work task (default: 30).",
    "DAYROUTE_WORK_MAX_MINUTES": "Longest work task (default: 90).",
    "DAYROUTE_GENERATOR_MAX_ITERATIONS": "Hard stop for the generator loop (default: 500).",
    "DAYROUTE_RANDOM_SEED": "Seed for reproducible schedules (default: unset).",
}
