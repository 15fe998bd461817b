from __future__ import annotations

import importlib
import logging
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .common.logging_utils import configure_logging
from .container import build_container
from .database.bootstrap import apply_schema, list_tables
from .database.connection import DBConfig
from .submission_queue.controller import register as register_queue
from .submission_queue.model import QueueSettings
from .work_reports.controller import register as register_work_reports

logger = logging.getLogger(__name__)


def queue_settings_from(settings) -> QueueSettings:
    defaults = QueueSettings()
    return QueueSettings(
        max_retries=int(getattr(settings, "QUEUE_MAX_RETRIES", defaults.max_retries)),
        backoff_base_ms=int(getattr(settings, "QUEUE_BACKOFF_BASE_MS", defaults.backoff_base_ms)),
        history_max_age=timedelta(
            seconds=int(getattr(settings, "QUEUE_HISTORY_MAX_AGE_SECONDS", defaults.history_max_age.total_seconds()))
        ),
        history_max_items=int(getattr(settings, "QUEUE_HISTORY_MAX_ITEMS", defaults.history_max_items)),
        max_pending_age=timedelta(
            seconds=int(getattr(settings, "QUEUE_MAX_PENDING_AGE_SECONDS", defaults.max_pending_age.total_seconds()))
        ),
        max_failed_ratio=float(getattr(settings, "QUEUE_MAX_FAILED_RATIO", defaults.max_failed_ratio)),
    )


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    logger.info("settings=%s db=%s", settings_module, DBConfig.from_dict(db_config).describe())

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        schema_path = Path(__file__).resolve().parents[2] / "database" / "schema.sql"
        apply_schema(db_config, schema_path=schema_path)
        logger.info("schema ready (tables=%s)", len(list_tables(db_config)))

    container = build_container(db_config=db_config, queue_settings=queue_settings_from(settings))
    app.extensions["work_report_container"] = container

    register_work_reports(app, container)
    register_queue(app, container)

    if bool(getattr(settings, "QUEUE_AUTOSTART", True)):
        container.report_queue.start()

    return app
