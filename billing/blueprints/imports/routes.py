"""
billing/blueprints/imports/routes.py

Bulk import page: one upload field per table, sample CSV downloads and a
per-table result report.
"""

from __future__ import annotations

from flask import Blueprint, Response, abort, flash, render_template, request

from ...importer import TABLES, TEMPLATES, import_tables, template_csv

imports_bp = Blueprint("imports", __name__, url_prefix="/import")


@imports_bp.route("/", methods=["GET", "POST"])
def import_page():
    results = None
    if request.method == "POST":
        results = import_tables(request.files)
        if not results:
            flash("Choose at least one file to import.", "warning")
        elif all(r["success"] for r in results.values()):
            flash("Import completed.", "success")
        else:
            flash("Import finished with errors. See the results below.", "danger")

    return render_template("imports/import.html", tables=TABLES, templates=TEMPLATES, results=results)


@imports_bp.route("/template/<table>.csv")
def download_template(table: str):
    if table not in TEMPLATES:
        abort(404)
    return Response(
        template_csv(table),
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={table}_template.csv"},
    )
