"""
billing/blueprints/catalog/routes.py

Master data pages: Routes, Vendors, Items.

- Routes / Vendors: plain CRUD (flash + redirect).
- Items: optimistic add / edit / delete / bulk rate update. The list is loaded into
  an OptimisticCollection, the action is applied locally and then persisted; on
  failure the page is rendered from the reverted collection with the error flashed.

Deletes are integrity-checked by the store (items on bills, vendors with bills,
routes with vendors cannot be deleted).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List

from flask import Blueprint, abort, flash, redirect, render_template, request, url_for

from ... import store
from ...exceptions import BillingError
from ...models import CATEGORIES
from ...state import OptimisticCollection
from ...utils import parse_decimal, parse_text

catalog_bp = Blueprint("catalog", __name__, url_prefix="/catalog")

ITEM_FIELDS = ("name_en", "name_gu", "rate", "category", "has_gst", "gst_percentage")
ITEM_SORTS = ("name_asc", "name_desc", "rate_asc", "rate_desc")


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def _form_value(key: str):
    """Last submitted value (checkbox + hidden fallback pairs send two)."""
    values = request.form.getlist(key)
    return values[-1] if values else None


def _contains(haystack, needle: str) -> bool:
    return needle in (haystack or "").lower()


# ---------------------------------------------------------------------
# ROUTES
# ---------------------------------------------------------------------
@catalog_bp.route("/routes")
def routes_list():
    routes = store.list_routes()
    return render_template("catalog/routes_list.html", routes=routes)


@catalog_bp.route("/routes/new", methods=["POST"])
def route_create():
    try:
        store.create_route(request.form.get("name"))
    except BillingError as exc:
        flash(str(exc), "danger")
    else:
        flash("Route added.", "success")
    return redirect(url_for("catalog.routes_list"))


@catalog_bp.route("/routes/<int:route_id>/edit", methods=["POST"])
def route_edit(route_id: int):
    try:
        store.update_record("routes", route_id, {"name": request.form.get("name")})
    except BillingError as exc:
        flash(str(exc), "danger")
    else:
        flash("Route updated.", "success")
    return redirect(url_for("catalog.routes_list"))


@catalog_bp.route("/routes/<int:route_id>/delete", methods=["POST"])
def route_delete(route_id: int):
    try:
        store.delete_record("routes", route_id)
    except BillingError as exc:
        flash(str(exc), "danger")
    else:
        flash("Route deleted.", "success")
    return redirect(url_for("catalog.routes_list"))


# ---------------------------------------------------------------------
# VENDORS
# ---------------------------------------------------------------------
def filter_vendors(vendors, route_id=None, query=None, sort="asc"):
    """Route filter, free-text search (name, contact, address) and name sort."""
    needle = (query or "").strip().lower()
    result = []
    for vendor in vendors:
        if route_id and vendor.route_id != route_id:
            continue
        if needle and not (
            _contains(vendor.name, needle)
            or _contains(vendor.contact, needle)
            or _contains(vendor.address, needle)
        ):
            continue
        result.append(vendor)
    result.sort(key=lambda v: (v.name or "").lower(), reverse=(sort == "desc"))
    return result


@catalog_bp.route("/vendors")
def vendors_list():
    route_id = request.args.get("route_id", type=int)
    query = (request.args.get("q") or "").strip()
    sort = request.args.get("sort") if request.args.get("sort") in ("asc", "desc") else "asc"

    vendors = filter_vendors(store.list_vendors(), route_id=route_id, query=query, sort=sort)
    return render_template(
        "catalog/vendors_list.html",
        vendors=vendors,
        routes=store.list_routes(),
        route_id=route_id,
        q=query,
        sort=sort,
    )


@catalog_bp.route("/vendors/new", methods=["POST"])
def vendor_create():
    try:
        store.create_vendor(
            name=request.form.get("name"),
            route_id=request.form.get("route_id"),
            contact=request.form.get("contact"),
            address=request.form.get("address"),
        )
    except BillingError as exc:
        flash(str(exc), "danger")
    else:
        flash("Vendor added.", "success")
    return redirect(url_for("catalog.vendors_list"))


@catalog_bp.route("/vendors/<int:vendor_id>/edit", methods=["POST"])
def vendor_edit(vendor_id: int):
    changes = {key: request.form.get(key) for key in ("name", "contact", "address", "route_id") if key in request.form}
    try:
        store.update_record("vendors", vendor_id, changes)
    except BillingError as exc:
        flash(str(exc), "danger")
    else:
        flash("Vendor updated.", "success")
    return redirect(url_for("catalog.vendors_list"))


@catalog_bp.route("/vendors/<int:vendor_id>/delete", methods=["POST"])
def vendor_delete(vendor_id: int):
    try:
        store.delete_record("vendors", vendor_id)
    except BillingError as exc:
        flash(str(exc), "danger")
    else:
        flash("Vendor deleted.", "success")
    return redirect(url_for("catalog.vendors_list"))


# ---------------------------------------------------------------------
# ITEMS (optimistic)
# ---------------------------------------------------------------------
def filter_items(records: List[Dict[str, Any]], query=None, sort="name_asc") -> List[Dict[str, Any]]:
    """Search English or Gujarati name; sort by name or rate."""
    needle = (query or "").strip().lower()
    if needle:
        records = [r for r in records if _contains(r.get("name_en"), needle) or _contains(r.get("name_gu"), needle)]

    field, _, direction = (sort if sort in ITEM_SORTS else "name_asc").partition("_")
    if field == "rate":
        key = lambda r: Decimal(str(r.get("rate") or 0))  # noqa: E731
    else:
        key = lambda r: (r.get("name_en") or "").lower()  # noqa: E731
    return sorted(records, key=key, reverse=(direction == "desc"))


def group_by_category(records: List[Dict[str, Any]]):
    """[(category, records)] in catalog order; empty categories are left out."""
    groups = []
    for category in CATEGORIES:
        members = [r for r in records if r.get("category") == category]
        if members:
            groups.append((category, members))
    return groups


def _load_items() -> OptimisticCollection:
    return OptimisticCollection(store.to_dict(item) for item in store.list_items())


def _list_args() -> Dict[str, str]:
    return {
        "q": (request.values.get("q") or "").strip(),
        "sort": request.values.get("sort") if request.values.get("sort") in ITEM_SORTS else "name_asc",
    }


def _render_items(collection: OptimisticCollection):
    args = _list_args()
    records = filter_items(collection.records, query=args["q"], sort=args["sort"])
    return render_template(
        "catalog/items_list.html",
        groups=group_by_category(records),
        categories=CATEGORIES,
        **args,
    )


def _redirect_items():
    args = {k: v for k, v in _list_args().items() if v}
    return redirect(url_for("catalog.items_list", **args))


@catalog_bp.route("/items")
def items_list():
    return _render_items(_load_items())


@catalog_bp.route("/items/new", methods=["POST"])
def item_create():
    collection = _load_items()
    row = {key: _form_value(key) for key in ITEM_FIELDS}
    try:
        collection.add(row, lambda: store.to_dict(store.create_records("items", [row])[0]))
    except BillingError as exc:
        flash(str(exc), "danger")
        return _render_items(collection)

    flash("Item added.", "success")
    return _redirect_items()


@catalog_bp.route("/items/<int:item_id>/edit", methods=["POST"])
def item_edit(item_id: int):
    """Inline edit; any subset of the item fields (e.g. only category)."""
    collection = _load_items()
    changes = {key: _form_value(key) for key in ITEM_FIELDS if key in request.form}
    try:
        collection.update(item_id, changes, lambda: store.update_record("items", item_id, changes))
    except KeyError:
        abort(404)
    except BillingError as exc:
        flash(str(exc), "danger")
        return _render_items(collection)

    flash("Item updated.", "success")
    return _redirect_items()


@catalog_bp.route("/items/<int:item_id>/delete", methods=["POST"])
def item_delete(item_id: int):
    collection = _load_items()
    try:
        collection.remove(item_id, lambda: store.delete_record("items", item_id))
    except KeyError:
        abort(404)
    except BillingError as exc:
        flash(str(exc), "danger")
        return _render_items(collection)

    flash("Item deleted.", "success")
    return _redirect_items()


@catalog_bp.route("/items/bulk-rate", methods=["POST"])
def items_bulk_rate():
    """Set one rate for every item of a category (single store call)."""
    collection = _load_items()
    category = parse_text(request.form.get("category"))
    raw_rate = request.form.get("rate")
    try:
        rate = parse_decimal(raw_rate, "rate")
        updated = collection.update_where(
            lambda r: r.get("category") == category,
            {"rate": rate},
            lambda: store.bulk_update_rate(category, raw_rate),
        )
    except BillingError as exc:
        flash(str(exc), "danger")
        return _render_items(collection)

    flash(f"Rate updated for {updated} item(s) in {category}.", "success")
    return _redirect_items()
