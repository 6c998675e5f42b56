"""
Application configuration.
This module defines the configuration settings for the Flask application, including database connection, secret key,
business header used on printed bills, and the font used for Gujarati PDFs. It uses environment variables for anything
deployment specific and defaults for development. In production, set SECRET_KEY and DATABASE_URL.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


class Config:
    """Base configuration shared by all environments."""

    # IMPORTANT: change this in production
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me-please")

    # Database: SQLite for development (simple file in project folder)
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'billing.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # CSRF protection for forms
    WTF_CSRF_ENABLED = True

    # App UI name (used in templates)
    APP_NAME = "Route & Vendor Billing"

    # UI / PDF language: "en" or "gu"
    DEFAULT_LANGUAGE = os.environ.get("DEFAULT_LANGUAGE", "en")

    # TTF with Gujarati glyphs (e.g. NotoSansGujarati-Regular.ttf). Without it GU PDFs use Helvetica.
    PDF_GUJARATI_FONT = os.environ.get(
        "PDF_GUJARATI_FONT",
        str(BASE_DIR / "billing" / "static" / "fonts" / "NotoSansGujarati-Regular.ttf"),
    )

    # Header block printed at the top of every PDF page
    BUSINESS_DETAILS = {
        "en": {
            "name": os.environ.get("BUSINESS_NAME", "MY BUSINESS"),
            "address": os.environ.get("BUSINESS_ADDRESS", ""),
            "address2": os.environ.get("BUSINESS_ADDRESS2", ""),
            "gstin": os.environ.get("BUSINESS_GSTIN", ""),
            "contact": os.environ.get("BUSINESS_CONTACT", ""),
        },
        "gu": {
            "name": os.environ.get("BUSINESS_NAME_GU", os.environ.get("BUSINESS_NAME", "MY BUSINESS")),
            "address": os.environ.get("BUSINESS_ADDRESS_GU", ""),
            "address2": os.environ.get("BUSINESS_ADDRESS2_GU", ""),
            "gstin": os.environ.get("BUSINESS_GSTIN_GU", ""),
            "contact": os.environ.get("BUSINESS_CONTACT_GU", ""),
        },
    }


class TestConfig(Config):
    """Configuration used by the test-suite (in-memory DB, no CSRF)."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    WTF_CSRF_ENABLED = False
    PDF_GUJARATI_FONT = ""
