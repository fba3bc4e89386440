# backend/kickledger/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/kickledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///kickledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Store's share under percentage_split when neither the consignor nor the
    # checkout supplies one (basis points: 2000 = 20%)
    DEFAULT_COMMISSION_RATE_BPS = int(os.environ.get("DEFAULT_COMMISSION_RATE_BPS", "2000"))

    # "total" takes commission from the sale price, "profit" from sale minus cost
    DEFAULT_COMMISSION_BASIS = os.environ.get("DEFAULT_COMMISSION_BASIS", "total")

    PAGE_SIZE_DEFAULT = 20
    PAGE_SIZE_MAX = 100
