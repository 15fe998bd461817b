from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

import mysql.connector


@dataclass(frozen=True)
class DBConfig:
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = ""
    database: str = "work_report_db"
    connect_timeout: int = 5

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        defaults = cls()
        return cls(
            host=str(db_config.get("host", defaults.host)),
            port=int(db_config.get("port", defaults.port)),
            user=str(db_config.get("user", defaults.user)),
            password=str(db_config.get("password", defaults.password)),
            database=str(db_config.get("database", defaults.database)),
            connect_timeout=int(db_config.get("connect_timeout", defaults.connect_timeout)),
        )

    def connect_kwargs(self, *, with_database: bool = True) -> Dict[str, Any]:
        # connection_timeout bounds every storage call made through a fresh connection.
        kwargs: Dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "connection_timeout": self.connect_timeout,
        }
        if with_database:
            kwargs["database"] = self.database
        return kwargs

    def describe(self) -> str:
        return f"{self.user}@{self.host}:{self.port}/{self.database}"


class DatabaseConnection:
    """DB connection factory owned by the container.

    Note: We create short-lived connections per operation (safe for simple Flask apps
    and for the queue worker thread, which never shares a connection with requests).
    """

    def __init__(self, config: DBConfig):
        self._config = config

    @property
    def config(self) -> DBConfig:
        return self._config

    def connect(self):
        return mysql.connector.connect(**self._config.connect_kwargs())
