# backend/unitledger/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/unitledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///unitledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Location stamped on admitted units when no store is flagged as a warehouse
    DEFAULT_WAREHOUSE_LOCATION = os.environ.get("DEFAULT_WAREHOUSE_LOCATION", "Main Warehouse")

    # Optimistic-concurrency retry policy for read-modify-write cycles
    WRITE_RETRY_ATTEMPTS = int(os.environ.get("WRITE_RETRY_ATTEMPTS", "3"))
    WRITE_RETRY_BACKOFF = float(os.environ.get("WRITE_RETRY_BACKOFF", "0.1"))

    LEDGER_ORDER_CATEGORY = os.environ.get("LEDGER_ORDER_CATEGORY", "Order Income")
    LEDGER_SALE_CATEGORY = os.environ.get("LEDGER_SALE_CATEGORY", "Sales Income")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
