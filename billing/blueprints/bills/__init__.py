"""
billing/blueprints/bills/__init__.py

Blueprint package export. Bill entry, summary, deletes and PDF downloads.
"""

from __future__ import annotations

from .routes import bills_bp  # noqa: F401
