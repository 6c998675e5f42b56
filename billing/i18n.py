"""
UI / document labels for the two supported languages (English "en", Gujarati "gu").

translate() falls back to English, then to the key itself.
"""

from __future__ import annotations

from datetime import date, datetime

from flask import current_app, has_request_context, session

LANGUAGES = {"en": "English", "gu": "ગુજરાતી"}
DEFAULT_LANGUAGE = "en"

LABELS = {
    "en": {
        "billing": "Billing",
        "summary": "Summary",
        "routes": "Routes",
        "vendors": "Vendors",
        "items": "Items",
        "import": "Import",
        "settings": "Settings",
        "route": "Route",
        "vendor": "Vendor",
        "vendor_name": "Vendor Name",
        "address": "Address",
        "contact": "Contact",
        "bill_date": "Bill Date",
        "date": "Date",
        "item": "Item",
        "quantity": "Quantity",
        "total_quantity": "Total Quantity",
        "rate": "Rate",
        "price": "Price",
        "category": "Category",
        "gst_percent": "GST %",
        "gst_amount": "GST Amount",
        "without_gst": "Without GST",
        "with_gst": "With GST",
        "amount": "Amount",
        "total": "Total",
        "grand_total": "Grand Total",
        "overall_summary": "Overall Summary",
        "create_bill": "Create Bill",
        "delete_bill": "Delete Bill",
        "delete_all_bills": "Delete All Bills",
        "search": "Search...",
        "add": "Add",
        "save": "Save",
        "edit": "Edit",
        "cancel": "Cancel",
        "delete": "Delete",
        "select_route": "Select Route",
        "select_vendor": "Select Vendor",
        "no_items": "No items found.",
        "no_bills": "No bills yet.",
        "name_en": "Name (English)",
        "name_gu": "Name (Gujarati)",
        "has_gst": "GST applicable",
        "set_rate": "Set rate for all",
        "download_summary": "Download Summary",
        "download_bill": "Download Bill",
        "upload": "Import files",
        "download_sample": "Download Sample",
        "language": "Language",
        "theme": "Theme",
        "light": "Light",
        "dark": "Dark",
        "all_routes": "All Routes",
        "sort": "Sort",
        "name": "Name",
        "bills": "Bills",
        "actions": "Actions",
        "import_results": "Import Results",
    },
    "gu": {
        "billing": "બિલિંગ",
        "summary": "સારાંશ",
        "routes": "રૂટ્સ",
        "vendors": "વિક્રેતાઓ",
        "items": "વસ્તુઓ",
        "import": "આયાત",
        "settings": "સેટિંગ્સ",
        "route": "રૂટ",
        "vendor": "વિક્રેતા",
        "vendor_name": "વેન્ડરનું નામ",
        "address": "સરનામું",
        "contact": "સંપર્ક",
        "bill_date": "બિલની તારીખ",
        "date": "તારીખ",
        "item": "વસ્તુ",
        "quantity": "જથ્થો",
        "total_quantity": "કુલ જથ્થો",
        "rate": "ભાવ",
        "price": "ભાવ",
        "category": "શ્રેણી",
        "gst_percent": "GST %",
        "gst_amount": "GST રકમ",
        "without_gst": "GST વગર",
        "with_gst": "GST સાથે",
        "amount": "રકમ",
        "total": "કુલ",
        "grand_total": "કુલ રકમ",
        "overall_summary": "એકંદરે સારાંશ",
        "create_bill": "બિલ બનાવો",
        "delete_bill": "બિલ કાઢી નાખો",
        "delete_all_bills": "બધા બિલ કાઢી નાખો",
        "search": "શોધો...",
        "add": "ઉમેરો",
        "save": "સાચવો",
        "edit": "ફેરફાર",
        "cancel": "રદ કરો",
        "delete": "કાઢી નાખો",
        "select_route": "રૂટ પસંદ કરો",
        "select_vendor": "વિક્રેતા પસંદ કરો",
        "no_items": "કોઈ વસ્તુ મળી નથી.",
        "no_bills": "હજી કોઈ બિલ નથી.",
        "name_en": "નામ (અંગ્રેજી)",
        "name_gu": "નામ (ગુજરાતી)",
        "has_gst": "GST લાગુ",
        "set_rate": "બધા માટે ભાવ સેટ કરો",
        "download_summary": "સારાંશ ડાઉનલોડ કરો",
        "download_bill": "બિલ ડાઉનલોડ કરો",
        "upload": "ફાઇલો આયાત કરો",
        "download_sample": "નમૂનો ડાઉનલોડ કરો",
        "language": "ભાષા",
        "theme": "થીમ",
        "light": "લાઇટ",
        "dark": "ડાર્ક",
        "all_routes": "બધા રૂટ્સ",
        "sort": "ક્રમ",
        "name": "નામ",
        "bills": "બિલ",
        "actions": "ક્રિયાઓ",
        "import_results": "આયાત પરિણામ",
    },
}


def normalize_language(lang: str | None) -> str:
    return lang if lang in LANGUAGES else DEFAULT_LANGUAGE


def translate(key: str, lang: str | None = None) -> str:
    lang = normalize_language(lang)
    return LABELS[lang].get(key) or LABELS[DEFAULT_LANGUAGE].get(key) or key


def format_date(value) -> str:
    """dd/mm/yyyy, as printed on bills."""
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    return str(value or "")


def current_language() -> str:
    """Language chosen in Settings (session), else the configured default."""
    if has_request_context() and session.get("lang"):
        return normalize_language(session["lang"])
    return normalize_language(current_app.config.get("DEFAULT_LANGUAGE"))
