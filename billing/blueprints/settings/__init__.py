"""
billing/blueprints/settings/__init__.py

Blueprint package export. UI language and theme.
"""

from __future__ import annotations

from .routes import settings_bp  # noqa: F401
