"""PDF export: documents render for both languages and follow the naming scheme."""

import os
import shutil
from datetime import date

import pytest
import reportlab

from billing import export, store
from billing.export import build_bill_pdf, build_summary_pdf, pdf_filename, summary_filename


class TestDocuments:

    @pytest.mark.parametrize("lang", ["en", "gu"])
    def test_summary_pdf(self, bill, lang):
        pdf = build_summary_pdf(store.list_bills(), store.item_lookup(), lang)
        assert pdf.startswith(b"%PDF")

    @pytest.mark.parametrize("lang", ["en", "gu"])
    def test_bill_pdf(self, bill, lang):
        pdf = build_bill_pdf(bill, store.item_lookup(), lang)
        assert pdf.startswith(b"%PDF")

    def test_summary_without_bills(self, app):
        assert build_summary_pdf([], {}, "en").startswith(b"%PDF")

    def test_missing_item_does_not_break_the_document(self, bill):
        # lookup without any items: lines render as N/A
        assert build_bill_pdf(bill, {}, "en").startswith(b"%PDF")

    def test_explicit_business_header(self, bill):
        business = {"name": "A & B Traders", "address": "Station Road", "gstin": "24ABCDE1234F1Z5"}
        assert build_bill_pdf(bill, store.item_lookup(), "en", business=business).startswith(b"%PDF")


class TestFilenames:

    def test_bill_filename(self):
        assert pdf_filename("Shree Traders", date(2024, 5, 1), "gu") == "bill_Shree_Traders_01-05-2024_gu.pdf"

    def test_bill_filename_strips_path_characters(self):
        assert pdf_filename("A/B Stores", date(2024, 12, 31)) == "bill_A_B_Stores_31-12-2024_en.pdf"

    def test_summary_filename(self):
        assert summary_filename("gu") == "summary_gu.pdf"
        assert summary_filename("fr") == "summary_en.pdf"


class TestGujaratiFont:

    def test_font_installed_after_a_miss_is_picked_up(self, app, tmp_path, monkeypatch):
        monkeypatch.setattr(export, "_registered_fonts", {})
        font_path = tmp_path / "gujarati.ttf"
        app.config["PDF_GUJARATI_FONT"] = str(font_path)

        assert export._font_for("gu") == (export.FALLBACK_FONT, export.FALLBACK_FONT_BOLD)

        shutil.copy(os.path.join(os.path.dirname(reportlab.__file__), "fonts", "Vera.ttf"), font_path)

        assert export._font_for("gu") == (export.GUJARATI_FONT_NAME, export.GUJARATI_FONT_NAME)
