"""
billing/blueprints/api/routes.py

JSON endpoints over the five tables (routes, vendors, items, bills, bill_items).

    GET    /api/<table>               whole table (bills include nested "items")
    POST   /api/<table>               one object or a list, inserted as one batch
    PUT    /api/<table>               {"id": ..., <changes>}
    DELETE /api/<table>?id=...        delete one; DELETE /api/bills without id deletes all bills
    POST   /api/items/bulk-update     {"category": ..., "rate": ...} -> {"count": n}

Errors are returned as {"error": message} with:
    400 ValidationError, 404 RecordNotFoundError, 409 ReferentialIntegrityError, 500 StoreError

This blueprint is CSRF-exempt (see create_app).
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from ... import store
from ...exceptions import (
    BillingError,
    RecordNotFoundError,
    ReferentialIntegrityError,
    StoreError,
    ValidationError,
)

api_bp = Blueprint("api", __name__, url_prefix="/api")


def _status_for(exc: BillingError) -> int:
    if isinstance(exc, RecordNotFoundError):
        return 404
    if isinstance(exc, ReferentialIntegrityError):
        return 409
    if isinstance(exc, StoreError):
        return 500
    return 400


@api_bp.errorhandler(BillingError)
def _billing_error(exc: BillingError):
    return jsonify({"error": str(exc)}), _status_for(exc)


def _json_body():
    body = request.get_json(silent=True)
    if body is None:
        raise ValidationError("Request body must be JSON.")
    return body


# ---------------------------------------------------------------------
# Bulk operations
# ---------------------------------------------------------------------
@api_bp.route("/items/bulk-update", methods=["POST"])
def items_bulk_update():
    body = _json_body()
    if not isinstance(body, dict):
        raise ValidationError("Expected an object with category and rate.")
    count = store.bulk_update_rate(body.get("category"), body.get("rate"))
    return jsonify({"success": True, "count": count})


# ---------------------------------------------------------------------
# Table CRUD
# ---------------------------------------------------------------------
@api_bp.route("/<table>", methods=["GET"])
def list_table(table: str):
    return jsonify([store.to_dict(record) for record in store.list_records(table)])


@api_bp.route("/<table>", methods=["POST"])
def create_rows(table: str):
    body = _json_body()
    rows = body if isinstance(body, list) else [body]
    if not all(isinstance(row, dict) for row in rows):
        raise ValidationError("Each row must be an object.")
    created = store.create_records(table, rows)
    return jsonify([store.to_dict(record) for record in created]), 201


@api_bp.route("/<table>", methods=["PUT"])
def update_row(table: str):
    body = _json_body()
    if not isinstance(body, dict) or body.get("id") in (None, ""):
        raise ValidationError("id is required.")
    changes = {key: value for key, value in body.items() if key != "id"}
    record = store.update_record(table, body["id"], changes)
    return jsonify(store.to_dict(record))


@api_bp.route("/<table>", methods=["DELETE"])
def delete_row(table: str):
    record_id = request.args.get("id")
    if record_id is None:
        body = request.get_json(silent=True)
        if isinstance(body, dict):
            record_id = body.get("id")

    if record_id in (None, ""):
        if table == "bills":
            return jsonify({"success": True, "count": store.delete_all_bills()})
        raise ValidationError("id is required.")

    store.delete_record(table, record_id)
    return jsonify({"success": True})
