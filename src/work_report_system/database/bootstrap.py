from __future__ import annotations

import logging
import re
from contextlib import closing
from pathlib import Path
from typing import List

import mysql.connector

from .connection import DBConfig

logger = logging.getLogger(__name__)

# The target database comes from DB_CONFIG, not from the schema file.
_DATABASE_STATEMENT = re.compile(r"^\s*(CREATE\s+DATABASE|USE)\b", re.IGNORECASE)


def split_statements(sql: str) -> List[str]:
    """Split a schema script into statements.

    Handles `--` comment lines and `;` terminators; quoted semicolons are not
    expected in schema files.
    """

    lines = [line for line in sql.splitlines() if not line.lstrip().startswith("--")]
    statements = [part.strip() for part in "\n".join(lines).split(";")]
    return [s for s in statements if s and not _DATABASE_STATEMENT.match(s)]


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    with closing(mysql.connector.connect(**target.connect_kwargs(with_database=False))) as conn:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> int:
    """Create the database if needed and run every statement of `schema_path`.

    Statements are expected to be idempotent (CREATE ... IF NOT EXISTS).
    Returns the number of statements executed.
    """

    ensure_database_exists(db_config)

    schema_path = Path(schema_path)
    statements = split_statements(schema_path.read_text(encoding="utf-8"))

    target = DBConfig.from_dict(db_config)
    with closing(mysql.connector.connect(**target.connect_kwargs())) as conn:
        cur = conn.cursor()
        for stmt in statements:
            cur.execute(stmt)
        conn.commit()

    logger.info("Applied %s (%s statements) to %s", schema_path.name, len(statements), target.describe())
    return len(statements)


def list_tables(db_config: dict) -> List[str]:
    target = DBConfig.from_dict(db_config)
    with closing(mysql.connector.connect(**target.connect_kwargs())) as conn:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
