from .config import db_config_from_env

SECRET_KEY = "test-secret"

DB_CONFIG = db_config_from_env(database="work_report_test")

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False

# Tests drive the queue synchronously with drain().
QUEUE_AUTOSTART = False
QUEUE_MAX_RETRIES = 3
QUEUE_BACKOFF_BASE_MS = 0
QUEUE_HISTORY_MAX_AGE_SECONDS = 60 * 60
QUEUE_HISTORY_MAX_ITEMS = 100
QUEUE_MAX_PENDING_AGE_SECONDS = 60
QUEUE_MAX_FAILED_RATIO = 0.1
