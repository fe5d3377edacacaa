# backend/bazaar/config.py
from __future__ import annotations
import os


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Product, ledger and QA tables live in the same relational store
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///bazaar.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Applied to products registered without an explicit threshold
    DEFAULT_LOW_STOCK_THRESHOLD = _int_env("LOW_STOCK_THRESHOLD", 10)

    LEDGER_RECENT_LIMIT = _int_env("LEDGER_RECENT_LIMIT", 50)
    LEDGER_MAX_LIMIT = _int_env("LEDGER_MAX_LIMIT", 500)

    # Lock timeouts and optimistic version conflicts
    DB_RETRY_ATTEMPTS = _int_env("DB_RETRY_ATTEMPTS", 3)

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
