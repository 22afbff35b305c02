# backend/brokerage/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/brokerage.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",  # optional alternative location
        "sqlite:///brokerage.sqlite3",  # default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Partner markup on paper sourced through the preferred partner
    PAPER_MARKUP_RATE = os.environ.get("PAPER_MARKUP_RATE", "0.18")

    # Share of gross profit paid to the intermediary on non-partner jobs
    INTERMEDIARY_CUT_RATE = os.environ.get("INTERMEDIARY_CUT_RATE", "0.35")

    # Reported by the default (log-only) invoice dispatcher
    DOWNSTREAM_INVOICE_RECIPIENT = os.environ.get(
        "DOWNSTREAM_INVOICE_RECIPIENT", "accounting@partner.example"
    )
