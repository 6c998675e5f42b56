"""
Route Billing – Domain Models

Master data:
- Route   (delivery path grouping vendors)
- Vendor  (belongs to exactly one Route)
- Item    (bilingual catalog entry with rate, category and optional GST %)

Transactions:
- Bill     (vendor + date)
- BillItem (bill line; captures the item's unit price at billing time)

Audit:
- AuditLog (before/after snapshots of every mutation)

IMPORTANT:
- Items referenced by bill lines cannot be deleted (ondelete RESTRICT).
  The same applies to Routes with Vendors and Vendors with Bills.
- Deleting a Bill removes its lines.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from .extensions import db


CATEGORIES = ("Fryums", "Namkeen", "Others")
DEFAULT_CATEGORY = "Others"


# ---------------------------------------------------------------------
# Master data
# ---------------------------------------------------------------------
class Route(db.Model):
    """Operational grouping of vendors (e.g. a delivery path)."""

    __tablename__ = "routes"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    vendors = db.relationship("Vendor", back_populates="route", lazy=True, passive_deletes=True)

    def __repr__(self):
        return f"<Route {self.name}>"


class Vendor(db.Model):
    __tablename__ = "vendors"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False, index=True)

    route_id = db.Column(
        db.Integer,
        db.ForeignKey("routes.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    contact = db.Column(db.String(120))
    address = db.Column(db.String(255))

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    route = db.relationship("Route", back_populates="vendors")
    bills = db.relationship("Bill", back_populates="vendor", lazy=True, passive_deletes=True)

    def __repr__(self):
        return f"<Vendor {self.name}>"


class Item(db.Model):
    """Catalog item. Names are kept in English and Gujarati."""

    __tablename__ = "items"

    id = db.Column(db.Integer, primary_key=True)

    name_en = db.Column(db.String(255), nullable=False, index=True)
    name_gu = db.Column(db.String(255), nullable=False)

    rate = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    category = db.Column(db.String(20), nullable=False, default=DEFAULT_CATEGORY, index=True)

    has_gst = db.Column(db.Boolean, nullable=False, default=False)
    # Stored as percent (e.g. 5.00 means 5%)
    gst_percentage = db.Column(db.Numeric(5, 2), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<Item {self.name_en} ({self.category})>"


# ---------------------------------------------------------------------
# Bills
# ---------------------------------------------------------------------
class Bill(db.Model):
    __tablename__ = "bills"

    id = db.Column(db.Integer, primary_key=True)

    vendor_id = db.Column(
        db.Integer,
        db.ForeignKey("vendors.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    date = db.Column(db.Date, nullable=False, default=date.today, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    vendor = db.relationship("Vendor", back_populates="bills")

    items = db.relationship(
        "BillItem",
        back_populates="bill",
        cascade="all, delete-orphan",
        order_by="BillItem.id",
    )

    def __repr__(self):
        return f"<Bill {self.id} vendor={self.vendor_id} {self.date}>"


class BillItem(db.Model):
    """Bill line. `price` is the item's rate captured when the bill was made."""

    __tablename__ = "bill_items"

    id = db.Column(db.Integer, primary_key=True)

    bill_id = db.Column(
        db.Integer,
        db.ForeignKey("bills.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    item_id = db.Column(
        db.Integer,
        db.ForeignKey("items.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    quantity = db.Column(db.Integer, nullable=False, default=1)
    price = db.Column(db.Numeric(12, 2), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    bill = db.relationship("Bill", back_populates="items")
    item = db.relationship("Item")

    __table_args__ = (db.CheckConstraint("quantity > 0", name="ck_bill_items_quantity_positive"),)


# ---------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------
class AuditLog(db.Model):
    """Audit trail of mutations (who/what/when, with before/after snapshots)."""

    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)

    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.Integer, nullable=False, index=True)

    action = db.Column(db.String(20), nullable=False, index=True)

    before_data = db.Column(db.Text, nullable=True)
    after_data = db.Column(db.Text, nullable=True)

    ip_address = db.Column(db.String(45), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
