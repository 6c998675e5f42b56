"""
billing/__init__.py

Flask application factory for the Route & Vendor Billing app.

- Thin CRUD layer over the relational store (SQLAlchemy + migrations).
- SQLite is used for development; any SQLAlchemy URL works via DATABASE_URL.
- HTML forms are CSRF-protected; the JSON blueprint (/api) is exempt.

Navigation is a single flat bar; labels follow the UI language chosen in Settings.
"""

from __future__ import annotations

from flask import Flask, redirect, session, url_for

from .extensions import csrf, db, migrate
from .i18n import LANGUAGES, current_language, format_date, translate
from .aggregation import format_money, format_percent


# -------------------------------------------------------------------
# NAVIGATION STRUCTURE
# -------------------------------------------------------------------
NAV_ITEMS = [
    {"key": "billing", "endpoint": "bills.new_bill"},
    {"key": "summary", "endpoint": "bills.summary"},
    {"key": "routes", "endpoint": "catalog.routes_list"},
    {"key": "vendors", "endpoint": "catalog.vendors_list"},
    {"key": "items", "endpoint": "catalog.items_list"},
    {"key": "import", "endpoint": "imports.import_page"},
    {"key": "settings", "endpoint": "settings.preferences"},
]

THEMES = ("light", "dark")


def create_app(config_object: str | object = "config.Config") -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    # ----------------------------------------------------------------------
    # Blueprints
    # ----------------------------------------------------------------------
    from .blueprints.api import api_bp
    from .blueprints.bills import bills_bp
    from .blueprints.catalog import catalog_bp
    from .blueprints.imports import imports_bp
    from .blueprints.settings import settings_bp

    csrf.exempt(api_bp)

    app.register_blueprint(catalog_bp)
    app.register_blueprint(bills_bp)
    app.register_blueprint(imports_bp)
    app.register_blueprint(settings_bp)
    app.register_blueprint(api_bp)

    # ----------------------------------------------------------------------
    # Template helpers
    # ----------------------------------------------------------------------
    app.jinja_env.filters["money"] = format_money
    app.jinja_env.filters["percent"] = format_percent
    app.jinja_env.filters["ddmmyyyy"] = format_date

    @app.context_processor
    def inject_globals():
        """Navigation, language and theme for every template."""
        lang = current_language()
        theme = session.get("theme") if session.get("theme") in THEMES else THEMES[0]
        return {
            "config": app.config,
            "nav_items": NAV_ITEMS,
            "lang": lang,
            "languages": LANGUAGES,
            "theme": theme,
            "t": lambda key: translate(key, lang),
        }

    # ----------------------------------------------------------------------
    # Home
    # ----------------------------------------------------------------------
    @app.route("/")
    def index():
        """Home: the bill entry page."""
        return redirect(url_for("bills.new_bill"))

    return app
