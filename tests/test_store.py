"""
Store tests: coercion/validation, reference resolution, integrity-protected deletes,
price capture, bulk rate update and audit logging.
"""

from datetime import date
from decimal import Decimal

import pytest

from billing import store
from billing.exceptions import (
    RecordNotFoundError,
    ReferentialIntegrityError,
    StoreError,
    ValidationError,
)
from billing.extensions import db
from billing.models import AuditLog, Bill, BillItem, Item, Vendor


class TestCreate:

    def test_item_defaults(self, app):
        item = store.create_item("Chakri", "ચકરી", "15")

        assert item.category == "Others"
        assert item.has_gst is False
        assert item.gst_percentage is None
        assert item.rate == Decimal("15")

    def test_category_is_case_insensitive(self, app):
        item = store.create_item("Sev", "સેવ", "10", category="namkeen")
        assert item.category == "Namkeen"

    def test_invalid_category_rejected(self, app):
        with pytest.raises(ValidationError, match="category must be one of"):
            store.create_item("Sev", "સેવ", "10", category="Sweets")

    @pytest.mark.parametrize("rate, message", [("-1", "cannot be negative"), ("abc", "must be a number"), ("", "is required")])
    def test_bad_rate_rejected(self, app, rate, message):
        with pytest.raises(ValidationError, match=message):
            store.create_item("Sev", "સેવ", rate)
        assert Item.query.count() == 0

    @pytest.mark.parametrize("field", ["rate", "gst_percentage"])
    def test_more_than_two_decimals_rejected(self, app, field):
        row = {"name_en": "Sev", "name_gu": "સેવ", "rate": "10", "has_gst": True, "gst_percentage": "5"}
        row[field] = "3.333"

        with pytest.raises(ValidationError, match="at most 2 decimal places"):
            store.create_records("items", [row])
        assert Item.query.count() == 0

    def test_two_decimal_rate_is_stored_exactly(self, app):
        item = store.create_item("Sev", "સેવ", "3.35")
        db.session.expire_all()

        assert db.session.get(Item, item.id).rate == Decimal("3.35")

    def test_vendor_requires_route(self, app):
        with pytest.raises(ValidationError, match="route_id is required"):
            store.create_vendor("Shree Traders", None)

    def test_vendor_unknown_route(self, app):
        with pytest.raises(ValidationError, match="Unknown route"):
            store.create_vendor("Shree Traders", 999)

    def test_duplicate_route_name(self, route):
        with pytest.raises(StoreError, match="same value already exists"):
            store.create_route("North")

    def test_batch_reports_failing_row(self, app):
        rows = [{"name": "East"}, {"name": ""}]
        with pytest.raises(ValidationError, match="Row 2: name is required"):
            store.create_records("routes", rows)
        # single request: nothing from the batch is kept
        assert store.list_routes() == []

    def test_names_resolve_to_references(self, route, namkeen):
        vendor = store.create_records("vendors", [{"name": "Patel Stores", "route_name": "North"}])[0]
        bill = store.create_records("bills", [{"vendor_name": "Patel Stores", "date": "01/05/2024"}])[0]
        line = store.create_records("bill_items", [{"bill_id": bill.id, "item_name_en": "Sev", "quantity": "3"}])[0]

        assert vendor.route_id == route.id
        assert bill.date == date(2024, 5, 1)
        assert line.item_id == namkeen.id
        assert line.price == Decimal("10")

    def test_unknown_table(self, app):
        with pytest.raises(RecordNotFoundError):
            store.create_records("customers", [{"name": "x"}])

    def test_creation_is_audited(self, route):
        entry = AuditLog.query.filter_by(entity_type="Route", entity_id=route.id).one()
        assert entry.action == "CREATE"
        assert '"North"' in entry.after_data


class TestBills:

    def test_lines_capture_current_rate(self, bill, namkeen):
        store.update_record("items", namkeen.id, {"rate": "15"})
        db.session.expire_all()

        line = BillItem.query.filter_by(bill_id=bill.id, item_id=namkeen.id).one()
        assert line.price == Decimal("10")
        assert db.session.get(Item, namkeen.id).rate == Decimal("15")

    @pytest.mark.parametrize("vendor_id, bill_date, lines", [(None, "2024-05-01", [{}]), (1, None, [{}]), (1, "2024-05-01", [])])
    def test_missing_vendor_date_or_lines(self, app, vendor_id, bill_date, lines):
        with pytest.raises(ValidationError, match="Please select a vendor, date, and add at least one item."):
            store.create_bill(vendor_id, bill_date, lines)

    def test_quantity_must_be_positive(self, vendor, namkeen):
        with pytest.raises(ValidationError, match="positive whole number"):
            store.create_bill(vendor.id, date(2024, 5, 1), [{"item_id": namkeen.id, "quantity": 0}])
        assert Bill.query.count() == 0

    def test_delete_bill_removes_lines(self, bill):
        store.delete_record("bills", bill.id)
        assert Bill.query.count() == 0
        assert BillItem.query.count() == 0

    def test_bill_delete_audits_each_line(self, bill):
        line_ids = {line.id for line in bill.items}
        store.delete_record("bills", bill.id)

        deleted = AuditLog.query.filter_by(entity_type="BillItem", action="DELETE").all()
        assert {entry.entity_id for entry in deleted} == line_ids
        assert all(entry.before_data for entry in deleted)

    def test_delete_single_line(self, bill):
        first, second = [line.id for line in bill.items]
        store.delete_record("bill_items", first)
        db.session.expire_all()

        assert [line.id for line in db.session.get(Bill, bill.id).items] == [second]

    def test_delete_all_bills(self, bill, vendor, namkeen):
        store.create_bill(vendor.id, date(2024, 5, 2), [{"item_id": namkeen.id, "quantity": 1}])

        assert store.delete_all_bills() == 2
        assert Bill.query.count() == 0
        assert BillItem.query.count() == 0
        assert AuditLog.query.filter_by(entity_type="Bill", action="DELETE").count() == 2
        assert AuditLog.query.filter_by(entity_type="BillItem", action="DELETE").count() == 3

    def test_list_bills_newest_first(self, bill, vendor, namkeen):
        newer = store.create_bill(vendor.id, date(2024, 6, 1), [{"item_id": namkeen.id, "quantity": 1}])
        assert [b.id for b in store.list_bills()] == [newer.id, bill.id]


class TestDelete:

    def test_item_on_a_bill_cannot_be_deleted(self, bill, namkeen):
        with pytest.raises(ReferentialIntegrityError) as excinfo:
            store.delete_record("items", namkeen.id)

        assert "part of one or more bills" in excinfo.value.message
        assert db.session.get(Item, namkeen.id) is not None

    def test_unused_item_is_deleted_and_audited(self, fryums):
        item_id = fryums.id
        store.delete_record("items", item_id)

        assert db.session.get(Item, item_id) is None
        assert AuditLog.query.filter_by(entity_type="Item", entity_id=item_id, action="DELETE").count() == 1

    def test_route_with_vendors_is_protected(self, vendor, route):
        with pytest.raises(ReferentialIntegrityError, match="vendors are assigned"):
            store.delete_record("routes", route.id)

    def test_vendor_with_bills_is_protected(self, bill, vendor):
        with pytest.raises(ReferentialIntegrityError, match="has bills"):
            store.delete_record("vendors", vendor.id)
        assert db.session.get(Vendor, vendor.id) is not None

    def test_unknown_id(self, app):
        with pytest.raises(RecordNotFoundError):
            store.delete_record("items", 12345)


class TestUpdate:

    def test_partial_update(self, vendor):
        store.update_record("vendors", vendor.id, {"contact": "  111  "})
        db.session.expire_all()

        updated = db.session.get(Vendor, vendor.id)
        assert updated.contact == "111"
        assert updated.name == "Shree Traders"

    def test_nothing_to_update(self, vendor):
        with pytest.raises(ValidationError, match="Nothing to update"):
            store.update_record("vendors", vendor.id, {"unknown": "x"})

    def test_update_is_audited_with_before_and_after(self, namkeen):
        store.update_record("items", namkeen.id, {"rate": "12"})
        entry = AuditLog.query.filter_by(entity_type="Item", action="UPDATE").one()
        assert '"10' in entry.before_data
        assert '"12' in entry.after_data


class TestBulkRateUpdate:

    def test_updates_only_the_category(self, namkeen, fryums):
        other = store.create_item("Gathiya", "ગાંઠિયા", "30", category="Namkeen")

        count = store.bulk_update_rate("Namkeen", "50")
        db.session.expire_all()

        assert count == 2
        assert db.session.get(Item, namkeen.id).rate == Decimal("50")
        assert db.session.get(Item, other.id).rate == Decimal("50")
        assert db.session.get(Item, fryums.id).rate == Decimal("20")

    def test_empty_category_updates_nothing(self, fryums):
        assert store.bulk_update_rate("Others", "5") == 0

    def test_invalid_input(self, app):
        with pytest.raises(ValidationError):
            store.bulk_update_rate("", "5")
        with pytest.raises(ValidationError):
            store.bulk_update_rate("Namkeen", "-5")


class TestToDict:

    def test_bill_includes_lines(self, bill):
        data = store.to_dict(bill)

        assert data["date"] == "2024-05-01"
        assert len(data["items"]) == 2
        assert {line["quantity"] for line in data["items"]} == {1, 2}
