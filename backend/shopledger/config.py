# backend/shopledger/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/shopledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///shopledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # How long a SQLite connection waits on a write lock
    SQLITE_BUSY_TIMEOUT_MS = int(os.environ.get("SQLITE_BUSY_TIMEOUT_MS", "5000"))

    # Client sync: quiet window before a save, full refetch period, network timeout
    SYNC_DEBOUNCE_SECONDS = float(os.environ.get("SYNC_DEBOUNCE_SECONDS", "5"))
    SYNC_REFETCH_SECONDS = float(os.environ.get("SYNC_REFETCH_SECONDS", "30"))
    SYNC_TIMEOUT_SECONDS = float(os.environ.get("SYNC_TIMEOUT_SECONDS", "8"))

    # Price of a product created from a B2B shipment = remote cost x markup
    B2B_PRICE_MARKUP = os.environ.get("B2B_PRICE_MARKUP", "1.5")

    # Shop-wide reorder point for products without their own minStock
    LOW_STOCK_THRESHOLD = os.environ.get("LOW_STOCK_THRESHOLD", "5")
