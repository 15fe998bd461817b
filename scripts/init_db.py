"""Create the work-report database and apply database/schema.sql.

Usage: APP_ENV=production python scripts/init_db.py [--schema path/to/schema.sql]
"""

from __future__ import annotations

import argparse
import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
for path in (REPO_ROOT, REPO_ROOT / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from dotenv import load_dotenv

from config import get_settings_module

from work_report_system.common.logging_utils import configure_logging
from work_report_system.database.bootstrap import apply_schema, list_tables
from work_report_system.database.connection import DBConfig

logger = logging.getLogger("init_db")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--schema", type=Path, default=REPO_ROOT / "database" / "schema.sql")
    args = parser.parse_args(argv)

    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    db_config = dict(settings.DB_CONFIG)

    apply_schema(db_config, schema_path=args.schema)
    tables = list_tables(db_config)
    logger.info("Schema ready on %s (tables=%s)", DBConfig.from_dict(db_config).describe(), ", ".join(tables))
    return 0


if __name__ == "__main__":
    sys.exit(main())
