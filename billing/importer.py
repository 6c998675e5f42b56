"""
billing/importer.py

Bulk import of CSV / Excel (.xlsx, .xls) files, one file per table.

Tables are processed in dependency order (routes, vendors, items, bills, bill_items)
so that name columns in later tables resolve against rows imported just before.
Each table's rows go to the store as ONE create request. Outcomes are tracked per
table; a failing table never stops the others and nothing is rolled back across
tables.
"""

from __future__ import annotations

import csv
import io
import logging
from typing import Any, Dict, List, Mapping, Optional

import xlrd
from openpyxl import load_workbook

from . import store
from .exceptions import BillingError, ImportFileError

logger = logging.getLogger(__name__)

TABLES = ("routes", "vendors", "items", "bills", "bill_items")

TEMPLATES = {
    "routes": ["name"],
    "vendors": ["name", "route_name", "contact", "address"],
    "items": ["name_en", "name_gu", "rate", "has_gst", "gst_percentage", "category"],
    "bills": ["vendor_name", "date"],
    "bill_items": ["bill_id", "item_name_en", "quantity"],
}

CSV_EXTENSIONS = (".csv",)
EXCEL_EXTENSIONS = (".xlsx",)
LEGACY_EXCEL_EXTENSIONS = (".xls",)


def _header(value) -> str:
    return str(value or "").strip().lower()


def _read_bytes(stream) -> bytes:
    if isinstance(stream, (bytes, bytearray)):
        return bytes(stream)
    return stream.read()


def _rows_from_csv(data: bytes) -> List[Dict[str, Any]]:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ImportFileError("CSV file must be UTF-8 encoded.") from exc

    reader = csv.DictReader(io.StringIO(text))
    rows = []
    for row in reader:
        cleaned = {_header(k): v for k, v in row.items() if k is not None}
        if not any((v or "").strip() for v in cleaned.values() if isinstance(v, str)):
            continue  # skip empty rows
        rows.append(cleaned)
    return rows


def _sheet_rows(header_row, body) -> List[Dict[str, Any]]:
    """First row is the header; blank rows are skipped."""
    if header_row is None:
        return []
    headers = [_header(c) for c in header_row]

    rows = []
    for row in body:
        if not any(v is not None and str(v).strip() != "" for v in row):
            continue
        rows.append({h: v for h, v in zip(headers, row) if h})
    return rows


def _rows_from_excel(data: bytes) -> List[Dict[str, Any]]:
    try:
        wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except Exception as exc:  # openpyxl raises zipfile/KeyError/InvalidFileException variants
        raise ImportFileError("Could not read the Excel file.") from exc

    try:
        ws = wb.worksheets[0]
        header_row = next(ws.iter_rows(min_row=1, max_row=1, values_only=True), None)
        return _sheet_rows(header_row, ws.iter_rows(min_row=2, values_only=True))
    finally:
        wb.close()


def _xls_value(cell, datemode):
    if cell.ctype == xlrd.XL_CELL_DATE:
        return xlrd.xldate_as_datetime(cell.value, datemode)
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
        return None
    return cell.value


def _rows_from_xls(data: bytes) -> List[Dict[str, Any]]:
    """Legacy .xls workbooks (BIFF) through xlrd; first sheet only."""
    try:
        book = xlrd.open_workbook(file_contents=data)
        sheet = book.sheet_by_index(0)
    except Exception as exc:  # xlrd raises XLRDError, CompDocError or struct.error
        raise ImportFileError("Could not read the Excel file.") from exc

    rows = [[_xls_value(cell, book.datemode) for cell in sheet.row(index)] for index in range(sheet.nrows)]
    if not rows:
        return []
    return _sheet_rows(rows[0], rows[1:])


def parse_upload(filename: Optional[str], stream) -> List[Dict[str, Any]]:
    """
    Read an uploaded file into a list of row dicts keyed by lower-cased header.

    `.csv` uses the header row; `.xlsx` and `.xls` use the first worksheet, first row = header.
    """
    name = (filename or "").strip().lower()
    if name.endswith(CSV_EXTENSIONS):
        return _rows_from_csv(_read_bytes(stream))
    if name.endswith(EXCEL_EXTENSIONS):
        return _rows_from_excel(_read_bytes(stream))
    if name.endswith(LEGACY_EXCEL_EXTENSIONS):
        return _rows_from_xls(_read_bytes(stream))
    raise ImportFileError(f"Unsupported file type: {filename or '(none)'}. Use .csv, .xlsx or .xls.")


def import_table(table: str, filename: Optional[str], stream) -> Dict[str, Any]:
    """Import one table; returns {"success": True, "count": n} or {"success": False, "error": msg}."""
    try:
        rows = parse_upload(filename, stream)
        if not rows:
            raise ImportFileError("The file has no data rows.")
        created = store.create_records(table, rows)
    except BillingError as exc:
        logger.warning("Import of %s failed: %s", table, exc)
        return {"success": False, "error": str(exc)}
    return {"success": True, "count": len(created)}


def import_tables(files: Mapping[str, Any]) -> Dict[str, Dict[str, Any]]:
    """
    Import every table that has an uploaded file, in dependency order.

    `files` maps table name -> werkzeug FileStorage (or any object with
    `.filename` and `.read()`). Tables without a file are not attempted.
    """
    results: Dict[str, Dict[str, Any]] = {}
    for table in TABLES:
        upload = files.get(table)
        if upload is None or not getattr(upload, "filename", None):
            continue
        results[table] = import_table(table, upload.filename, upload)
    return results


def template_csv(table: str) -> str:
    """Header-only CSV template for one table."""
    if table not in TEMPLATES:
        raise ImportFileError(f"Unknown table '{table}'.")
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(TEMPLATES[table])
    return output.getvalue()
