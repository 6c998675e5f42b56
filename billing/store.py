"""
billing/store.py

Data access layer for the five record kinds (routes, vendors, items, bills, bill_items).

Every business operation is a single select/insert/update/delete request. Views, the JSON
endpoints and the import pipeline all go through this module, so input coercion,
reference checks, audit logging and error translation live in one place.

Transactions:
- Each public write is one transaction: flush -> log_action -> commit.
- On failure the session is rolled back and the error is translated:
    * IntegrityError on delete   -> ReferentialIntegrityError (human readable)
    * other SQLAlchemyError      -> StoreError (generic message, details kept)
- ValidationError is raised before anything reaches the database.
"""

from __future__ import annotations

from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import joinedload, selectinload

from .audit import log_action, serialize_model
from .exceptions import (
    BillingError,
    RecordNotFoundError,
    ReferentialIntegrityError,
    StoreError,
    ValidationError,
)
from .extensions import db
from .models import CATEGORIES, DEFAULT_CATEGORY, Bill, BillItem, Item, Route, Vendor
from .utils import parse_bool, parse_date, parse_decimal, parse_int, parse_text

TABLES = {
    "routes": Route,
    "vendors": Vendor,
    "items": Item,
    "bills": Bill,
    "bill_items": BillItem,
}

DELETE_BLOCKED_MESSAGES = {
    "routes": "Cannot delete this route because vendors are assigned to it. Move or delete those vendors first.",
    "vendors": "Cannot delete this vendor because it has bills. Delete those bills first.",
    "items": (
        "Cannot delete this item because it is part of one or more bills. "
        "Please remove it from all bills first."
    ),
}

# table -> (referencing model, referencing column)
BLOCKING_REFERENCES = {
    "routes": (Vendor, "route_id"),
    "vendors": (Bill, "vendor_id"),
    "items": (BillItem, "item_id"),
}

CENTS = Decimal("0.01")

# table -> {column: (referenced model, label)}
REFERENCES = {
    "vendors": {"route_id": (Route, "route")},
    "bills": {"vendor_id": (Vendor, "vendor")},
    "bill_items": {"bill_id": (Bill, "bill"), "item_id": (Item, "item")},
}


# ---------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------
def _required(value, field: str):
    if value is None:
        raise ValidationError(f"{field} is required.")
    return value


def _non_negative(value, field: str):
    if value is not None and value < 0:
        raise ValidationError(f"{field} cannot be negative.")
    return value


def _required_text(row: Mapping, field: str):
    return _required(parse_text(row.get(field)), field)


def _optional_text(row: Mapping, field: str):
    return parse_text(row.get(field))


def _required_id(row: Mapping, field: str):
    return _required(parse_int(row.get(field), field), field)


def _two_places(value, field: str):
    # money and GST columns are stored with scale 2
    if value is not None and value != value.quantize(CENTS):
        raise ValidationError(f"{field} must have at most 2 decimal places.")
    return value


def _rate(row: Mapping, field: str):
    return _two_places(_non_negative(_required(parse_decimal(row.get(field), field), field), field), field)


def _optional_amount(row: Mapping, field: str):
    return _two_places(_non_negative(parse_decimal(row.get(field), field), field), field)


def _flag(row: Mapping, field: str):
    return bool(parse_bool(row.get(field), field))


def _category(row: Mapping, field: str):
    value = parse_text(row.get(field)) or DEFAULT_CATEGORY
    for category in CATEGORIES:
        if category.lower() == value.lower():
            return category
    raise ValidationError(f"{field} must be one of: {', '.join(CATEGORIES)}.")


def _quantity(row: Mapping, field: str):
    value = _required(parse_int(row.get(field), field), field)
    if value <= 0:
        raise ValidationError(f"{field} must be a positive whole number.")
    return value


def _bill_date(row: Mapping, field: str):
    return _required(parse_date(row.get(field), field), field)


FIELDS = {
    "routes": {"name": _required_text},
    "vendors": {
        "name": _required_text,
        "route_id": _required_id,
        "contact": _optional_text,
        "address": _optional_text,
    },
    "items": {
        "name_en": _required_text,
        "name_gu": _required_text,
        "rate": _rate,
        "category": _category,
        "has_gst": _flag,
        "gst_percentage": _optional_amount,
    },
    "bills": {"vendor_id": _required_id, "date": _bill_date},
    "bill_items": {
        "bill_id": _required_id,
        "item_id": _required_id,
        "quantity": _quantity,
        "price": _optional_amount,
    },
}


def _model_for(table: str):
    model = TABLES.get(table)
    if model is None:
        raise RecordNotFoundError(f"Unknown table '{table}'.")
    return model


def _coerce(table: str, row: Mapping[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Coerce a raw mapping into column values. Unknown keys are ignored."""
    fields = FIELDS[table]
    keys = [key for key in fields if key in row] if partial else list(fields)
    return {key: fields[key](row, key) for key in keys}


def _has(row: Mapping, key: str) -> bool:
    return parse_text(row.get(key)) is not None


def _id_by_name(model, column, name, label: str) -> int:
    name = parse_text(name)
    record = db.session.query(model).filter(column == name).order_by(model.id.asc()).first()
    if record is None:
        raise ValidationError(f"Unknown {label} '{name}'.")
    return record.id


def _resolve_references(table: str, row: Mapping[str, Any]) -> Dict[str, Any]:
    """Accept name columns (route_name, vendor_name, item_name_en) in place of ids."""
    row = dict(row)
    if table == "vendors" and not _has(row, "route_id") and _has(row, "route_name"):
        row["route_id"] = _id_by_name(Route, Route.name, row["route_name"], "route")
    if table == "bills" and not _has(row, "vendor_id") and _has(row, "vendor_name"):
        row["vendor_id"] = _id_by_name(Vendor, Vendor.name, row["vendor_name"], "vendor")
    if table == "bill_items" and not _has(row, "item_id") and _has(row, "item_name_en"):
        row["item_id"] = _id_by_name(Item, Item.name_en, row["item_name_en"], "item")
    return row


def _check_references(table: str, values: Mapping[str, Any]) -> None:
    for column, (model, label) in REFERENCES.get(table, {}).items():
        if column in values and db.session.get(model, values[column]) is None:
            raise ValidationError(f"Unknown {label} (id {values[column]}).")


def _build_line(row: Mapping[str, Any], bill: Optional[Bill] = None) -> BillItem:
    """Build a bill line; the unit price is captured from the item's current rate when not given."""
    row = _resolve_references("bill_items", row)
    values = {
        "item_id": _required_id(row, "item_id"),
        "quantity": _quantity(row, "quantity"),
        "price": _optional_amount(row, "price"),
    }
    if bill is None:
        values["bill_id"] = _required_id(row, "bill_id")
    _check_references("bill_items", values)

    if values["price"] is None:
        values["price"] = db.session.get(Item, values["item_id"]).rate

    line = BillItem(**values)
    if bill is not None:
        bill.items.append(line)
    return line


def _build(table: str, row: Mapping[str, Any]):
    if table == "bill_items":
        return _build_line(row)

    row = _resolve_references(table, row)
    values = _coerce(table, row)
    _check_references(table, values)
    instance = TABLES[table](**values)

    if table == "bills":
        for line in row.get("items") or []:
            _build_line(line, bill=instance)
    return instance


def _get(model, record_id):
    record_id = parse_int(record_id, "id")
    instance = db.session.get(model, record_id) if record_id is not None else None
    if instance is None:
        raise RecordNotFoundError()
    return instance


def _delete_logged(instance) -> None:
    """Delete a record and audit it. A bill's lines go with it and are audited too."""
    records = [instance]
    if isinstance(instance, Bill):
        records.extend(instance.items)
    snapshots = [(record, serialize_model(record)) for record in records]

    db.session.delete(instance)
    db.session.flush()
    for record, before in snapshots:
        log_action(record, "DELETE", before=before)


# ---------------------------------------------------------------------
# Transactions & error translation
# ---------------------------------------------------------------------
def _integrity_error(exc: IntegrityError, delete_message: Optional[str]) -> StoreError:
    details = str(getattr(exc, "orig", exc))
    lowered = details.lower()
    if delete_message and "foreign key" in lowered:
        return ReferentialIntegrityError(delete_message, details=details)
    if "unique" in lowered:
        return StoreError("A record with the same value already exists.", details=details)
    return StoreError(details=details)


@contextmanager
def _transaction(delete_message: Optional[str] = None):
    """One store request: commit on success, rollback + translate on failure."""
    try:
        yield
        db.session.commit()
    except BillingError:
        db.session.rollback()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.warning("Store rejected write: %s", getattr(exc, "orig", exc))
        raise _integrity_error(exc, delete_message) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error("Store failure: %s", exc)
        raise StoreError(details=str(exc)) from exc


def _read(query_func):
    try:
        return query_func()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error("Store read failure: %s", exc)
        raise StoreError(details=str(exc)) from exc


# ---------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------
def list_routes() -> List[Route]:
    return _read(lambda: Route.query.order_by(Route.name.asc()).all())


def list_vendors(route_id: Optional[int] = None) -> List[Vendor]:
    def query():
        q = Vendor.query.options(joinedload(Vendor.route))
        if route_id:
            q = q.filter(Vendor.route_id == route_id)
        return q.order_by(Vendor.name.asc()).all()

    return _read(query)


def list_items() -> List[Item]:
    return _read(lambda: Item.query.order_by(Item.name_en.asc()).all())


def list_bills() -> List[Bill]:
    """Bills with their lines, newest first."""
    return _read(
        lambda: Bill.query.options(selectinload(Bill.items), joinedload(Bill.vendor))
        .order_by(Bill.date.desc(), Bill.id.desc())
        .all()
    )


def list_records(table: str) -> list:
    """Whole-table select used by the JSON endpoints."""
    model = _model_for(table)
    if model is Bill:
        return _read(lambda: Bill.query.options(selectinload(Bill.items)).order_by(Bill.id.asc()).all())
    return _read(lambda: model.query.order_by(model.id.asc()).all())


def get_record(table: str, record_id):
    model = _model_for(table)
    return _read(lambda: _get(model, record_id))


def item_lookup() -> Dict[int, Item]:
    return {item.id: item for item in list_items()}


def to_dict(instance) -> Dict[str, Any]:
    """Column values of a record as a plain dict (dates as ISO strings). Bills include their lines."""
    data = {}
    for column in instance.__table__.columns:
        value = getattr(instance, column.name)
        if hasattr(value, "isoformat"):
            value = value.isoformat()
        data[column.name] = value
    if isinstance(instance, Bill):
        data["items"] = [to_dict(line) for line in instance.items]
    return data


# ---------------------------------------------------------------------
# Generic writes
# ---------------------------------------------------------------------
def create_records(table: str, rows: Iterable[Mapping[str, Any]]) -> list:
    """
    Insert a batch of rows into one table as a single request.

    Rows are raw mappings (form data, JSON bodies, import rows). A `bills` row may
    carry a nested `items` list of lines.
    """
    _model_for(table)
    rows = list(rows)
    if not rows:
        raise ValidationError("Nothing to insert.")

    created = []
    with _transaction():
        for index, row in enumerate(rows, start=1):
            try:
                instance = _build(table, row)
            except ValidationError as exc:
                if len(rows) > 1:
                    raise ValidationError(f"Row {index}: {exc}") from exc
                raise
            db.session.add(instance)
            created.append(instance)

        db.session.flush()
        for instance in created:
            log_action(instance, "CREATE", after=serialize_model(instance))
            if isinstance(instance, Bill):
                for line in instance.items:
                    log_action(line, "CREATE", after=serialize_model(line))

    current_app.logger.info("Inserted %d row(s) into %s", len(created), table)
    return created


def update_record(table: str, record_id, changes: Mapping[str, Any]):
    """Update the given columns of one record."""
    model = _model_for(table)
    with _transaction():
        instance = _get(model, record_id)
        values = _coerce(table, _resolve_references(table, changes), partial=True)
        if not values:
            raise ValidationError("Nothing to update.")
        _check_references(table, values)

        before = serialize_model(instance)
        for key, value in values.items():
            setattr(instance, key, value)

        db.session.flush()
        log_action(instance, "UPDATE", before=before, after=serialize_model(instance))
    return instance


def delete_record(table: str, record_id) -> None:
    """Delete one record. Records still referenced elsewhere are protected."""
    model = _model_for(table)
    delete_message = DELETE_BLOCKED_MESSAGES.get(table)
    with _transaction(delete_message=delete_message):
        instance = _get(model, record_id)

        blocking = BLOCKING_REFERENCES.get(table)
        if blocking:
            ref_model, ref_column = blocking
            in_use = (
                db.session.query(ref_model.id)
                .filter(getattr(ref_model, ref_column) == instance.id)
                .first()
            )
            if in_use is not None:
                raise ReferentialIntegrityError(delete_message)

        _delete_logged(instance)


# ---------------------------------------------------------------------
# Entity shortcuts used by the views
# ---------------------------------------------------------------------
def create_route(name) -> Route:
    return create_records("routes", [{"name": name}])[0]


def create_vendor(name, route_id, contact=None, address=None) -> Vendor:
    row = {"name": name, "route_id": route_id, "contact": contact, "address": address}
    return create_records("vendors", [row])[0]


def create_item(name_en, name_gu, rate, category=DEFAULT_CATEGORY, has_gst=False, gst_percentage=None) -> Item:
    row = {
        "name_en": name_en,
        "name_gu": name_gu,
        "rate": rate,
        "category": category,
        "has_gst": has_gst,
        "gst_percentage": gst_percentage,
    }
    return create_records("items", [row])[0]


def create_bill(vendor_id, bill_date, lines: Iterable[Mapping[str, Any]]) -> Bill:
    """Create a bill with its lines; each line captures the item's current rate."""
    lines = list(lines)
    if not vendor_id or not bill_date or not lines:
        raise ValidationError("Please select a vendor, date, and add at least one item.")
    return create_records("bills", [{"vendor_id": vendor_id, "date": bill_date, "items": lines}])[0]


def bulk_update_rate(category, rate) -> int:
    """Set the rate of every item in a category. Returns the number of items updated."""
    if parse_text(category) is None:
        raise ValidationError("category is required.")
    category = _category({"category": category}, "category")
    rate = _rate({"rate": rate}, "rate")

    with _transaction():
        items = Item.query.filter_by(category=category).all()
        snapshots = [(item, serialize_model(item)) for item in items]
        for item in items:
            item.rate = rate
        db.session.flush()
        for item, before in snapshots:
            log_action(item, "UPDATE", before=before, after=serialize_model(item))

    current_app.logger.info("Bulk rate update: %s -> %s (%d items)", category, rate, len(items))
    return len(items)


def delete_all_bills() -> int:
    """Delete every bill and its lines. Returns the number of bills removed."""
    with _transaction():
        bills = Bill.query.all()
        for bill in bills:
            _delete_logged(bill)
    return len(bills)
