# backend/pharmapos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/pharmapos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///pharmapos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Alert thresholds (reporting only)
    LOW_STOCK_THRESHOLD = int(os.environ.get("LOW_STOCK_THRESHOLD", "10"))
    EXPIRY_MONTHS_AHEAD = int(os.environ.get("EXPIRY_MONTHS_AHEAD", "3"))

    TRANSACTION_NUMBER_PREFIX = os.environ.get("TRANSACTION_NUMBER_PREFIX", "TRX-")

    # independent | guarded | deactivate (see products_service.delete_product)
    PRODUCT_DELETE_POLICY = os.environ.get("PRODUCT_DELETE_POLICY", "independent")
