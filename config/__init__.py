import os

_ALIASES = {
    "prod": "production",
    "production": "production",
    "test": "testing",
    "testing": "testing",
}


def get_settings_module() -> str:
    """Settings module for APP_ENV; unknown or missing values mean development."""
    env = os.getenv("APP_ENV", "development").strip().lower()
    return f"config.{_ALIASES.get(env, 'development')}"
