# backend/candleworks/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/candleworks.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///candleworks.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Fallbacks used until a settings row has been saved
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))
    BIRTHDAY_DISCOUNT_PERCENT = os.environ.get("BIRTHDAY_DISCOUNT_PERCENT", "0")
    JAR_DISCOUNT_PER_UNIT = os.environ.get("JAR_DISCOUNT_PER_UNIT", "0")

    # Regex matched against product names; matches are made to order only and
    # never auto-filled by the production planner. Empty disables the filter.
    MAKE_TO_ORDER_PATTERN = os.environ.get("MAKE_TO_ORDER_PATTERN", "")
