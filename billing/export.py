"""
billing/export.py

Printable PDF documents (ReportLab platypus).

- Summary document: business header + "Overall Summary" item-wise table on the
  first page, then one page per bill.
- Bill document: one page for a single bill.

Both run the same aggregation as the summary page, so on-screen and printed
figures always agree. Labels, the business header and item names follow the
document language ("en" / "gu").
"""

from __future__ import annotations

import logging
import os
import re
from io import BytesIO
from typing import Any, Iterable, List, Mapping, Optional
from xml.sax.saxutils import escape

from flask import current_app
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .aggregation import bill_lines, bill_totals, format_money, format_percent, item_wise_summary, summary_totals
from .i18n import format_date, normalize_language, translate

logger = logging.getLogger(__name__)

GUJARATI_FONT_NAME = "NotoSansGujarati"
FALLBACK_FONT = "Helvetica"
FALLBACK_FONT_BOLD = "Helvetica-Bold"

HEADER_BG = colors.HexColor("#2359a3")
GRID_COLOR = colors.HexColor("#b0b6be")

LINE_COLUMNS = ("item", "quantity", "rate", "gst_percent", "gst_amount", "without_gst", "with_gst")
COL_WIDTHS = [52 * mm, 18 * mm, 20 * mm, 16 * mm, 24 * mm, 25 * mm, 25 * mm]

_registered_fonts = {}


# ---------------------------------------------------------------------
# Fonts
# ---------------------------------------------------------------------
def _font_for(lang: str) -> tuple[str, str]:
    """(regular, bold) font names for a document language."""
    if lang != "gu":
        return FALLBACK_FONT, FALLBACK_FONT_BOLD

    path = current_app.config.get("PDF_GUJARATI_FONT") or ""
    if path in _registered_fonts:
        name = _registered_fonts[path]
        return name, name

    name = None
    if path and os.path.exists(path):
        try:
            pdfmetrics.registerFont(TTFont(GUJARATI_FONT_NAME, path))
            name = GUJARATI_FONT_NAME
        except Exception as exc:  # reportlab raises plain TTFError/ValueError/OSError
            logger.warning("Could not register Gujarati font %s: %s", path, exc)
    else:
        logger.warning("Gujarati font not found (%r); PDF will use %s", path, FALLBACK_FONT)

    if name is None:
        return FALLBACK_FONT, FALLBACK_FONT_BOLD
    _registered_fonts[path] = name
    return name, name


def _styles(font: str, bold: str) -> dict:
    base = getSampleStyleSheet()
    return {
        "title": ParagraphStyle("BillTitle", parent=base["Title"], fontName=bold, fontSize=16),
        "heading": ParagraphStyle("BillHeading", parent=base["Heading2"], fontName=bold),
        "text": ParagraphStyle("BillText", parent=base["Normal"], fontName=font, fontSize=9, leading=12),
        "cell": ParagraphStyle("BillCell", parent=base["Normal"], fontName=font, fontSize=8, leading=10),
    }


# ---------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------
def _business_header(business: Mapping[str, Any], styles: dict) -> List[Any]:
    flow = []
    if business.get("name"):
        flow.append(Paragraph(f"<b>{escape(business['name'])}</b>", styles["title"]))
    for key in ("address", "address2"):
        if business.get(key):
            flow.append(Paragraph(escape(business[key]), styles["text"]))
    extra = [business.get(k) for k in ("gstin", "contact") if business.get(k)]
    if extra:
        flow.append(Paragraph(escape(" | ".join(extra)), styles["text"]))
    flow.append(Spacer(1, 8))
    return flow


def _table(data: List[List[Any]], font: str, bold: str, widths=None) -> Table:
    table = Table(data, repeatRows=1, colWidths=widths or COL_WIDTHS)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), HEADER_BG),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONTNAME", (0, 0), (-1, 0), bold),
                ("FONTNAME", (0, 1), (-1, -1), font),
                ("FONTNAME", (0, -1), (-1, -1), bold),
                ("FONTSIZE", (0, 0), (-1, -1), 8),
                ("ALIGN", (1, 0), (-1, -1), "RIGHT"),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ("GRID", (0, 0), (-1, -1), 0.3, GRID_COLOR),
                ("BACKGROUND", (0, -1), (-1, -1), colors.whitesmoke),
            ]
        )
    )
    return table


def _header_row(lang: str) -> List[str]:
    return [translate(key, lang) for key in LINE_COLUMNS]


def _figures(row: Mapping[str, Any]) -> List[str]:
    return [
        format_money(row["tax_amount"]),
        format_money(row["without_tax"]),
        format_money(row["with_tax"]),
    ]


def _bill_block(bill, item_lookup, lang: str, styles: dict, font: str, bold: str) -> List[Any]:
    vendor = getattr(bill, "vendor", None)
    info = [
        (translate("vendor_name", lang), getattr(vendor, "name", None) or "N/A"),
        (translate("address", lang), getattr(vendor, "address", None) or "-"),
        (translate("contact", lang), getattr(vendor, "contact", None) or "-"),
        (translate("bill_date", lang), format_date(bill.date)),
    ]
    flow = [Paragraph(f"<b>{escape(label)}:</b> {escape(value)}", styles["text"]) for label, value in info]
    flow.append(Spacer(1, 6))

    rows = bill_lines(bill.items, item_lookup, lang)
    totals = bill_totals(rows)

    data = [_header_row(lang)]
    for row in rows:
        data.append(
            [
                Paragraph(escape(row["name"]), styles["cell"]),
                str(row["quantity"]),
                format_money(row["rate"]),
                format_percent(row["gst_percentage"]),
                *_figures(row),
            ]
        )
    data.append([translate("total", lang), "", "", "", *_figures(totals)])
    flow.append(_table(data, font, bold))
    return flow


def _summary_block(bills, item_lookup, lang: str, styles: dict, font: str, bold: str) -> List[Any]:
    flow = [Paragraph(escape(translate("overall_summary", lang)), styles["heading"]), Spacer(1, 4)]

    rows = item_wise_summary(bills, item_lookup, lang)
    totals = summary_totals(rows)

    header = _header_row(lang)
    header[1] = translate("total_quantity", lang)
    data = [header]
    for row in rows:
        data.append(
            [
                Paragraph(escape(row["name"]), styles["cell"]),
                str(row["quantity"]),
                format_money(row["rate"]),
                format_percent(row["gst_percentage"]),
                *_figures(row),
            ]
        )
    data.append([translate("total", lang), str(totals["quantity"]), "", "", *_figures(totals)])
    flow.append(_table(data, font, bold))
    return flow


def _render(flow: List[Any]) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=12 * mm,
        rightMargin=12 * mm,
        topMargin=14 * mm,
        bottomMargin=14 * mm,
    )
    doc.build(flow)
    return buffer.getvalue()


def _business_for(lang: str, business: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    if business is not None:
        return business
    details = current_app.config.get("BUSINESS_DETAILS") or {}
    return details.get(lang) or details.get("en") or {}


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------
def build_summary_pdf(
    bills: Iterable[Any],
    item_lookup: Mapping[Any, Any],
    lang: str = "en",
    business: Optional[Mapping[str, Any]] = None,
) -> bytes:
    """Overall summary page followed by one page per bill."""
    lang = normalize_language(lang)
    bills = list(bills)
    font, bold = _font_for(lang)
    styles = _styles(font, bold)
    header = _business_header(_business_for(lang, business), styles)

    flow = list(header)
    flow.extend(_summary_block(bills, item_lookup, lang, styles, font, bold))
    for bill in bills:
        flow.append(PageBreak())
        flow.extend(header)
        flow.extend(_bill_block(bill, item_lookup, lang, styles, font, bold))

    current_app.logger.info("Summary PDF built (%s, %d bills)", lang, len(bills))
    return _render(flow)


def build_bill_pdf(
    bill,
    item_lookup: Mapping[Any, Any],
    lang: str = "en",
    business: Optional[Mapping[str, Any]] = None,
) -> bytes:
    """Single-bill document."""
    lang = normalize_language(lang)
    font, bold = _font_for(lang)
    styles = _styles(font, bold)

    flow = _business_header(_business_for(lang, business), styles)
    flow.extend(_bill_block(bill, item_lookup, lang, styles, font, bold))
    return _render(flow)


def _slug(text: str) -> str:
    return re.sub(r"[^\w-]+", "_", (text or "").strip(), flags=re.UNICODE).strip("_") or "vendor"


def pdf_filename(vendor_name: str, bill_date, lang: str = "en") -> str:
    """bill_<vendor>_<dd-mm-yyyy>_<lang>.pdf"""
    date_part = format_date(bill_date).replace("/", "-")
    return f"bill_{_slug(vendor_name)}_{date_part}_{normalize_language(lang)}.pdf"


def summary_filename(lang: str = "en") -> str:
    return f"summary_{normalize_language(lang)}.pdf"
