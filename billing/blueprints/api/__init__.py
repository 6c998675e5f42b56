"""
billing/blueprints/api/__init__.py

Blueprint package export. JSON endpoints (/api/<table>).
"""

from __future__ import annotations

from .routes import api_bp  # noqa: F401
