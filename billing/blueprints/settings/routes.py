"""
billing/blueprints/settings/routes.py

User preferences kept in the session:
- UI language ("en" / "gu"), also the default language of PDF downloads
- Theme ("light" / "dark")
"""

from __future__ import annotations

from flask import Blueprint, flash, redirect, render_template, request, session, url_for

from ... import THEMES
from ...i18n import LANGUAGES
from ...utils import safe_next_url

settings_bp = Blueprint("settings", __name__, url_prefix="/settings")


@settings_bp.route("/", methods=["GET", "POST"])
def preferences():
    """Language and theme selection."""
    if request.method == "POST":
        lang = request.form.get("lang")
        theme = request.form.get("theme")

        if lang is not None:
            if lang not in LANGUAGES:
                flash("Invalid language.", "danger")
                return redirect(url_for("settings.preferences"))
            session["lang"] = lang

        if theme is not None:
            if theme not in THEMES:
                flash("Invalid theme.", "danger")
                return redirect(url_for("settings.preferences"))
            session["theme"] = theme

        flash("Preferences saved.", "success")
        return redirect(safe_next_url(request.form.get("next"), "settings.preferences"))

    return render_template("settings/preferences.html", themes=THEMES)


@settings_bp.route("/toggle-theme", methods=["POST"])
def toggle_theme():
    """Navbar light/dark switch."""
    session["theme"] = "light" if session.get("theme") == "dark" else "dark"
    return redirect(safe_next_url(request.form.get("next"), "settings.preferences"))
