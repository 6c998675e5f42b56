"""
billing/blueprints/bills/routes.py

Bill entry and the bills summary.

Includes:
- Billing page: route -> vendor, date (defaults to today), per-item quantities
- Summary page: item-wise summary, grand total, every bill with its lines
- Deletes: one bill, one bill line, all bills
- PDF downloads: summary or a single bill, English or Gujarati

IMPORTANT:
- Bill lines capture the item's rate at the moment the bill is created.
- The summary and the PDFs use the same aggregation functions.
"""

from __future__ import annotations

from datetime import date
from io import BytesIO

from flask import Blueprint, abort, flash, redirect, render_template, request, send_file, url_for

from ... import store
from ...aggregation import bill_lines, bill_totals, grand_total, item_wise_summary, summary_totals
from ...exceptions import BillingError, RecordNotFoundError
from ...export import build_bill_pdf, build_summary_pdf, pdf_filename, summary_filename
from ...i18n import current_language, normalize_language
from ...utils import parse_int

bills_bp = Blueprint("bills", __name__, url_prefix="/bills")

QTY_PREFIX = "qty_"


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def _quantities_from_form(form) -> list[dict]:
    """Bill lines from qty_<item_id> fields; blank and zero quantities are skipped."""
    lines = []
    for key, raw in form.items():
        if not key.startswith(QTY_PREFIX):
            continue
        item_id = parse_int(key[len(QTY_PREFIX):], "item")
        quantity = parse_int(raw, "quantity")
        if not quantity:
            continue
        lines.append({"item_id": item_id, "quantity": quantity})
    return lines


def _pdf_language() -> str:
    return normalize_language(request.args.get("lang") or current_language())


def _send_pdf(pdf_bytes: bytes, filename: str):
    return send_file(
        BytesIO(pdf_bytes),
        mimetype="application/pdf",
        as_attachment=True,
        download_name=filename,
    )


# ---------------------------------------------------------------------
# BILL ENTRY
# ---------------------------------------------------------------------
@bills_bp.route("/new", methods=["GET", "POST"])
def new_bill():
    """Create a bill for a vendor on a date with per-item quantities."""
    if request.method == "POST":
        route_id = request.form.get("route_id") or None
        try:
            lines = _quantities_from_form(request.form)
            bill = store.create_bill(
                vendor_id=request.form.get("vendor_id") or None,
                bill_date=request.form.get("date") or None,
                lines=lines,
            )
        except BillingError as exc:
            flash(str(exc), "danger")
            return redirect(url_for("bills.new_bill", route_id=route_id))

        flash(f"Bill created for {bill.vendor.name} ({len(bill.items)} item(s)).", "success")
        return redirect(url_for("bills.summary"))

    route_id = request.args.get("route_id", type=int)
    query = (request.args.get("q") or "").strip().lower()

    items = store.list_items()
    if query:
        items = [i for i in items if query in i.name_en.lower() or query in (i.name_gu or "").lower()]

    return render_template(
        "bills/new_bill.html",
        routes=store.list_routes(),
        vendors=store.list_vendors(route_id=route_id) if route_id else [],
        items=items,
        route_id=route_id,
        q=query,
        today=date.today().isoformat(),
    )


# ---------------------------------------------------------------------
# SUMMARY
# ---------------------------------------------------------------------
@bills_bp.route("/summary")
def summary():
    lang = current_language()
    bills = store.list_bills()
    lookup = store.item_lookup()

    summary_rows = item_wise_summary(bills, lookup, lang)
    bill_views = []
    for bill in bills:
        rows = bill_lines(bill.items, lookup, lang)
        bill_views.append({"bill": bill, "rows": rows, "totals": bill_totals(rows)})

    return render_template(
        "bills/summary.html",
        summary_rows=summary_rows,
        summary_totals=summary_totals(summary_rows),
        bill_views=bill_views,
        grand_total=grand_total(bills),
    )


@bills_bp.route("/<int:bill_id>/delete", methods=["POST"])
def bill_delete(bill_id: int):
    try:
        store.delete_record("bills", bill_id)
    except BillingError as exc:
        flash(str(exc), "danger")
    else:
        flash("Bill deleted.", "success")
    return redirect(url_for("bills.summary"))


@bills_bp.route("/lines/<int:line_id>/delete", methods=["POST"])
def bill_line_delete(line_id: int):
    try:
        store.delete_record("bill_items", line_id)
    except BillingError as exc:
        flash(str(exc), "danger")
    else:
        flash("Bill item deleted.", "success")
    return redirect(url_for("bills.summary"))


@bills_bp.route("/delete-all", methods=["POST"])
def bills_delete_all():
    try:
        count = store.delete_all_bills()
    except BillingError as exc:
        flash(str(exc), "danger")
    else:
        flash(f"{count} bill(s) deleted.", "success")
    return redirect(url_for("bills.summary"))


# ---------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------
@bills_bp.route("/summary.pdf")
def summary_pdf():
    lang = _pdf_language()
    pdf = build_summary_pdf(store.list_bills(), store.item_lookup(), lang)
    return _send_pdf(pdf, summary_filename(lang))


@bills_bp.route("/<int:bill_id>/pdf")
def bill_pdf(bill_id: int):
    lang = _pdf_language()
    try:
        bill = store.get_record("bills", bill_id)
    except RecordNotFoundError:
        abort(404)
    pdf = build_bill_pdf(bill, store.item_lookup(), lang)
    return _send_pdf(pdf, pdf_filename(bill.vendor.name, bill.date, lang))
