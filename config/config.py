"""Shared helpers for the per-environment settings modules."""

import os


def env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, str(default)))


def env_float(name: str, default: float) -> float:
    return float(os.environ.get(name, str(default)))


def env_flag(name: str, default: bool) -> bool:
    return bool(int(os.environ.get(name, "1" if default else "0")))


def db_config_from_env(*, password: str = "", database: str = "work_report_db") -> dict:
    return {
        "host": os.environ.get("DB_HOST", "localhost"),
        "port": env_int("DB_PORT", 3306),
        "user": os.environ.get("DB_USER", "root"),
        "password": os.environ.get("DB_PASSWORD", password),
        "database": os.environ.get("DB_NAME", database),
        "connect_timeout": env_int("DB_CONNECT_TIMEOUT", 5),
    }
