"""
billing/blueprints/catalog/__init__.py

Blueprint package export (routes, vendors, items master data).
"""

from __future__ import annotations

from .routes import catalog_bp  # noqa: F401
