import os

from .config import db_config_from_env, env_flag, env_float, env_int

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = db_config_from_env()

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = env_flag("AUTO_INIT_DB", True)

# Submission queue
QUEUE_AUTOSTART = env_flag("QUEUE_AUTOSTART", True)
QUEUE_MAX_RETRIES = env_int("QUEUE_MAX_RETRIES", 3)
QUEUE_BACKOFF_BASE_MS = env_int("QUEUE_BACKOFF_BASE_MS", 500)
QUEUE_HISTORY_MAX_AGE_SECONDS = env_int("QUEUE_HISTORY_MAX_AGE_SECONDS", 24 * 60 * 60)
QUEUE_HISTORY_MAX_ITEMS = env_int("QUEUE_HISTORY_MAX_ITEMS", 1000)
QUEUE_MAX_PENDING_AGE_SECONDS = env_int("QUEUE_MAX_PENDING_AGE_SECONDS", 60)
QUEUE_MAX_FAILED_RATIO = env_float("QUEUE_MAX_FAILED_RATIO", 0.1)
