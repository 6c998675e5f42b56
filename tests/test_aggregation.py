"""
Aggregation tests: per-line GST figures, bill totals, the item-wise summary
(current-rate columns) and display formatting.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from billing.aggregation import (
    bill_lines,
    bill_totals,
    compute_line,
    format_money,
    format_percent,
    grand_total,
    item_display_name,
    item_wise_summary,
    summary_totals,
)


def make_item(item_id, rate, gst=None, name_en="Sev", name_gu="સેવ"):
    return SimpleNamespace(id=item_id, rate=Decimal(rate), gst_percentage=None if gst is None else Decimal(gst),
                           name_en=name_en, name_gu=name_gu)


def make_line(item_id, quantity, price, line_id=None):
    return SimpleNamespace(id=line_id, item_id=item_id, quantity=quantity, price=Decimal(price))


def make_bill(*lines):
    return SimpleNamespace(items=list(lines))


class TestComputeLine:
    """Line formula: without = P*Q, tax = without*G/100, with = without + tax."""

    def test_with_gst(self):
        figures = compute_line(Decimal("10"), 3, Decimal("5"))
        assert figures["without_tax"] == Decimal("30")
        assert figures["tax_amount"] == Decimal("1.5")
        assert figures["with_tax"] == Decimal("31.5")

    def test_without_gst(self):
        figures = compute_line(Decimal("12.50"), 4, None)
        assert figures["without_tax"] == Decimal("50")
        assert figures["tax_amount"] == 0
        assert figures["with_tax"] == Decimal("50")

    def test_fractional_values_are_not_rounded(self):
        figures = compute_line(Decimal("3.33"), 3, Decimal("18"))
        assert figures["without_tax"] == Decimal("9.99")
        assert figures["tax_amount"] == Decimal("1.7982")
        assert abs(figures["with_tax"] - Decimal("11.7882")) < Decimal("1e-9")


class TestBillLines:

    def test_rows_use_captured_price_and_item_gst(self):
        lookup = {1: make_item(1, "15", "5")}
        rows = bill_lines([make_line(1, 2, "10", line_id=7)], lookup)

        assert rows[0]["line_id"] == 7
        assert rows[0]["rate"] == Decimal("10")
        assert rows[0]["without_tax"] == Decimal("20")
        assert rows[0]["tax_amount"] == Decimal("1")

    def test_missing_item_renders_as_na_with_zero_gst(self):
        rows = bill_lines([make_line(99, 2, "10")], {})

        assert rows[0]["name"] == "N/A"
        assert rows[0]["gst_percentage"] == 0
        assert rows[0]["with_tax"] == Decimal("20")

    def test_totals_are_column_sums(self):
        lookup = {1: make_item(1, "10", "5"), 2: make_item(2, "20")}
        rows = bill_lines([make_line(1, 2, "10"), make_line(2, 1, "20")], lookup)
        totals = bill_totals(rows)

        assert totals == {
            "without_tax": Decimal("40"),
            "tax_amount": Decimal("1"),
            "with_tax": Decimal("41"),
        }

    def test_gujarati_name_falls_back_to_english(self):
        item = make_item(1, "10", name_gu="")
        assert item_display_name(item, "gu") == "Sev"
        assert item_display_name(make_item(1, "10"), "gu") == "સેવ"
        assert item_display_name(None, "gu") == "N/A"


class TestItemWiseSummary:

    def test_quantity_and_amount_accumulate_tax_columns_use_current_rate(self):
        # Two bills of 2 x item at historical price 10; item now costs 12 with 5% GST.
        lookup = {1: make_item(1, "12", "5")}
        bills = [make_bill(make_line(1, 2, "10")), make_bill(make_line(1, 2, "10"))]

        rows = item_wise_summary(bills, lookup)

        assert len(rows) == 1
        row = rows[0]
        assert row["quantity"] == 4
        assert row["amount"] == Decimal("40")
        assert row["rate"] == Decimal("12")
        assert row["without_tax"] == Decimal("48")
        assert row["tax_amount"] == Decimal("2.4")
        assert row["with_tax"] == Decimal("50.4")

    def test_lines_with_missing_items_are_skipped(self):
        lookup = {1: make_item(1, "10")}
        bills = [make_bill(make_line(1, 1, "10"), make_line(2, 5, "3"))]

        rows = item_wise_summary(bills, lookup)

        assert [r["item_id"] for r in rows] == [1]
        # still part of the grand total
        assert grand_total(bills) == Decimal("25")

    def test_first_seen_order_and_totals(self):
        lookup = {1: make_item(1, "10", name_en="A"), 2: make_item(2, "5", "10", name_en="B")}
        bills = [make_bill(make_line(2, 1, "5"), make_line(1, 3, "10"))]

        rows = item_wise_summary(bills, lookup)
        totals = summary_totals(rows)

        assert [r["name"] for r in rows] == ["B", "A"]
        assert totals["quantity"] == 4
        assert totals["amount"] == Decimal("35")
        assert totals["tax_amount"] == Decimal("0.5")

    def test_empty(self):
        assert item_wise_summary([], {}) == []
        assert summary_totals([])["quantity"] == 0
        assert grand_total([]) == 0


class TestFormatting:

    @pytest.mark.parametrize(
        "value, expected",
        [(Decimal("2.345"), "2.35"), (Decimal("10"), "10.00"), (None, "0.00"), (1.5, "1.50")],
    )
    def test_format_money(self, value, expected):
        assert format_money(value) == expected

    @pytest.mark.parametrize(
        "value, expected",
        [(Decimal("5.00"), "5%"), (Decimal("2.50"), "2.5%"), (None, "0%")],
    )
    def test_format_percent(self, value, expected):
        assert format_percent(value) == expected
