# backend/payroll_ops/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/payroll_ops.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///payroll_ops.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Payroll calendar: a known historical payday (Friday) and the cadence
    PAYDAY_ANCHOR = os.environ.get("PAYDAY_ANCHOR", "2025-01-10")
    PAYDAY_CYCLE_DAYS = int(os.environ.get("PAYDAY_CYCLE_DAYS", "14"))

    # Bounded wait on the identifier lock
    ID_LOCK_TIMEOUT_SECONDS = float(os.environ.get("ID_LOCK_TIMEOUT_SECONDS", "10"))

    UNDO_WINDOW_HOURS = int(os.environ.get("UNDO_WINDOW_HOURS", "12"))
    UNDO_MAX_ENTRIES = int(os.environ.get("UNDO_MAX_ENTRIES", "10"))

    MAX_ORDER_ITEMS = 5
    MAX_PAYMENT_PLAN = 3

    OVERCHARGE_EPSILON_CENTS = 1

    NOTIFICATIONS_ENABLED = _env_bool("NOTIFICATIONS_ENABLED", True)
