"""
billing/blueprints/imports/__init__.py

Blueprint package export. Bulk CSV / Excel import.
"""

from __future__ import annotations

from .routes import imports_bp  # noqa: F401
