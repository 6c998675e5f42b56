"""
billing/aggregation.py

Bill aggregation and GST computation used by the summary page and the PDF export.

Per line (captured price P, quantity Q, item GST G%):
    without_tax = P * Q
    tax_amount  = without_tax * G / 100
    with_tax    = without_tax + tax_amount

G defaults to 0 when the item no longer exists or has no GST. Missing lookups
never raise; they degrade to "N/A" and zero tax.

The item-wise (cross-bill) summary groups lines by item id and accumulates the
quantity and the historical pre-tax amount. Its tax columns are recomputed from
the item's CURRENT rate and GST, not the captured price, so they can differ from
the per-bill figures once a rate changes. Keep it that way.

All arithmetic is Decimal and unrounded. Rounding to 2 places happens in
format_money() only.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping, Optional

ZERO = Decimal("0")
HUNDRED = Decimal("100")
MISSING_NAME = "N/A"


def _to_decimal(value) -> Decimal:
    """Convert Numeric/None to Decimal safely."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _money(x: Decimal) -> Decimal:
    return x.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def format_money(value) -> str:
    """Display formatting: two decimal places."""
    return f"{_money(_to_decimal(value)):.2f}"


def format_percent(value) -> str:
    """Display a GST percentage without trailing zeros (5.00 -> '5%', 2.50 -> '2.5%')."""
    pct = _to_decimal(value)
    if pct == pct.to_integral_value():
        text = str(pct.quantize(Decimal("1")))
    else:
        text = format(pct.normalize(), "f")
    return f"{text}%"


def gst_percentage_of(item: Optional[Any]) -> Decimal:
    if item is None:
        return ZERO
    return _to_decimal(getattr(item, "gst_percentage", None))


def item_display_name(item: Optional[Any], lang: str = "en") -> str:
    """Item name in the requested language; Gujarati falls back to English."""
    if item is None:
        return MISSING_NAME
    if lang == "gu":
        return getattr(item, "name_gu", None) or getattr(item, "name_en", None) or MISSING_NAME
    return getattr(item, "name_en", None) or MISSING_NAME


def compute_line(price, quantity, gst_percentage) -> Dict[str, Decimal]:
    """Monetary figures of one bill line."""
    without_tax = _to_decimal(price) * _to_decimal(quantity)
    tax_amount = without_tax * (_to_decimal(gst_percentage) / HUNDRED)
    return {
        "without_tax": without_tax,
        "tax_amount": tax_amount,
        "with_tax": without_tax + tax_amount,
    }


def bill_lines(lines: Iterable[Any], item_lookup: Mapping[Any, Any], lang: str = "en") -> List[Dict[str, Any]]:
    """
    Display rows for a bill's lines, in line order.

    Each row uses the captured line price; GST comes from the item lookup.
    """
    rows = []
    for line in lines or []:
        item = item_lookup.get(line.item_id)
        gst = gst_percentage_of(item)
        price = _to_decimal(line.price)
        row = {
            "line_id": getattr(line, "id", None),
            "item_id": line.item_id,
            "name": item_display_name(item, lang),
            "quantity": line.quantity,
            "rate": price,
            "gst_percentage": gst,
        }
        row.update(compute_line(price, line.quantity, gst))
        rows.append(row)
    return rows


def _sum_columns(rows: Iterable[Mapping[str, Any]]) -> Dict[str, Decimal]:
    totals = {"without_tax": ZERO, "tax_amount": ZERO, "with_tax": ZERO}
    for row in rows:
        for key in totals:
            totals[key] += row[key]
    return totals


def bill_totals(rows: Iterable[Mapping[str, Any]]) -> Dict[str, Decimal]:
    """Column sums of bill_lines() rows."""
    return _sum_columns(rows)


def item_wise_summary(bills: Iterable[Any], item_lookup: Mapping[Any, Any], lang: str = "en") -> List[Dict[str, Any]]:
    """
    Cross-bill rollup grouped by item id (first-seen order).

    - quantity / amount: accumulated from the lines (amount = sum of captured price * qty)
    - rate / gst_percentage / without_tax / tax_amount / with_tax: from the item's current data
    Lines whose item no longer exists are skipped.
    """
    grouped: Dict[Any, Dict[str, Any]] = {}
    for bill in bills or []:
        for line in bill.items or []:
            item = item_lookup.get(line.item_id)
            if item is None:
                continue
            entry = grouped.setdefault(line.item_id, {"item_id": line.item_id, "quantity": 0, "amount": ZERO})
            entry["quantity"] += line.quantity
            entry["amount"] += _to_decimal(line.price) * _to_decimal(line.quantity)

    rows = []
    for item_id, entry in grouped.items():
        item = item_lookup[item_id]
        rate = _to_decimal(getattr(item, "rate", None))
        gst = gst_percentage_of(item)
        row = dict(entry)
        row.update(
            {
                "name": item_display_name(item, lang),
                "rate": rate,
                "gst_percentage": gst,
            }
        )
        row.update(compute_line(rate, entry["quantity"], gst))
        rows.append(row)
    return rows


def summary_totals(rows: Iterable[Mapping[str, Any]]) -> Dict[str, Decimal]:
    """Column sums of item_wise_summary() rows (including the historical amount)."""
    rows = list(rows)
    totals = _sum_columns(rows)
    totals["quantity"] = sum((row["quantity"] for row in rows), 0)
    totals["amount"] = sum((row["amount"] for row in rows), ZERO)
    return totals


def grand_total(bills: Iterable[Any]) -> Decimal:
    """Sum of captured price * quantity over every line of every bill."""
    total = ZERO
    for bill in bills or []:
        for line in bill.items or []:
            total += _to_decimal(line.price) * _to_decimal(line.quantity)
    return total
