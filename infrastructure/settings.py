"""Runtime configuration read from environment variables"""
import os
from datetime import time


class ImproperlyConfigured(Exception):
    pass


def get_env(var_name: str, default=None, required: bool = False):
    value = os.environ.get(var_name, default)
    if required and value in (None, ""):
        raise ImproperlyConfigured(f"Missing required environment variable: {var_name}")
    return value


def _get_int(var_name: str, default: int) -> int:
    raw = get_env(var_name, str(default))
    try:
        return int(raw)
    except ValueError:
        raise ImproperlyConfigured(f"{var_name} must be an integer, got {raw!r}")


def _get_time(var_name: str, default: str) -> time:
    raw = get_env(var_name, default)
    try:
        return time.fromisoformat(raw)
    except ValueError:
        raise ImproperlyConfigured(f"{var_name} must be HH:MM, got {raw!r}")


# Auth
SECRET_KEY = get_env("RESERVATION_SECRET_KEY", "change-me-in-production")
ALGORITHM = get_env("RESERVATION_TOKEN_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = _get_int("RESERVATION_TOKEN_EXPIRE_MINUTES", 30)

# Scheduling
OPENING_TIME = _get_time("RESERVATION_OPENING_TIME", "06:00")
SLOT_STEP_MINUTES = _get_int("RESERVATION_SLOT_STEP_MINUTES", 15)

# Logging
LOG_LEVEL = get_env("RESERVATION_LOG_LEVEL", "INFO").upper()
