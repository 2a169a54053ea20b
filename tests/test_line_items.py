"""
Tests for the digitized payload parser.
"""

from datetime import date
from decimal import Decimal

import pytest

from clearclaim.core.line_items import LineItemParser, get_parser
from clearclaim.core.models import ItemCategory

from conftest import make_invoice, make_prescription


@pytest.fixture
def parser() -> LineItemParser:
    return LineItemParser()


class TestAmounts:
    """Tests for money parsing."""

    def test_currency_strings(self, parser: LineItemParser) -> None:
        """Test currency symbols and separators."""
        assert parser.parse_amount("₹1,200.50") == Decimal("1200.50")
        assert parser.parse_amount("Rs. 300/-") == Decimal("300")
        assert parser.parse_amount("INR 45") == Decimal("45")
        assert parser.parse_amount("(150)") == Decimal("-150")

    def test_non_numeric(self, parser: LineItemParser) -> None:
        """Test values with nothing to parse."""
        assert parser.parse_amount("free") is None
        assert parser.parse_amount(None) is None
        assert parser.parse_amount(True) is None

    def test_numbers(self, parser: LineItemParser) -> None:
        """Test int and float inputs."""
        assert parser.parse_amount(12) == Decimal("12")
        assert parser.parse_amount(0.1) == Decimal("0.1")

    def test_item_amount_fallbacks(self, parser: LineItemParser) -> None:
        """Test total cost, then unit cost times quantity, then zero."""
        assert parser.item_amount({"total_cost": "500", "unit_cost": 1}) == Decimal("500")
        assert parser.item_amount({"unit_cost": "25.5", "quantity": 4}) == Decimal("102.0")
        assert parser.item_amount({"mrp": 80}) == Decimal("80")
        assert parser.item_amount({"name": "Dolo"}) == Decimal("0")


class TestDates:
    """Tests for date parsing."""

    def test_formats(self, parser: LineItemParser) -> None:
        """Test the supported invoice date formats."""
        assert parser.parse_date("2025-12-10") == date(2025, 12, 10)
        assert parser.parse_date("10/12/2025") == date(2025, 12, 10)
        assert parser.parse_date("10 Dec 2025") == date(2025, 12, 10)
        assert parser.parse_date("2025-12-10T09:30:00Z") == date(2025, 12, 10)

    def test_unparseable(self, parser: LineItemParser) -> None:
        """Test that bad dates yield None."""
        assert parser.parse_date("sometime") is None
        assert parser.parse_date("") is None
        assert parser.parse_date(None) is None


class TestInvoiceItems:
    """Tests for invoice line item extraction."""

    def test_items_in_order(self, parser: LineItemParser) -> None:
        """Test extraction keeps invoice order and indexes."""
        invoice = make_invoice(
            medicines=[
                {"medicine_name": "Dolo 650", "unit_cost": 2, "quantity": 15},
                {"name": "Pantop", "total_cost": "₹140"},
            ]
        )
        items = parser.invoice_items(invoice, ItemCategory.MEDICINE)

        assert [i.index for i in items] == [0, 1]
        assert [i.name for i in items] == ["Dolo 650", "Pantop"]
        assert items[0].amount == Decimal("30")
        assert items[0].to_matching_input() == {
            "index": 0,
            "name": "Dolo 650",
            "unit_cost": 2.0,
            "quantity": 15.0,
        }

    def test_wrapped_payload(self, parser: LineItemParser) -> None:
        """Test a payload still wrapped in its document envelope."""
        wrapped = {"data": make_invoice(lab_tests=[{"test_name": "CBC", "amount": 300}])}
        items = parser.invoice_items(wrapped, ItemCategory.LAB)

        assert items[0].name == "CBC"
        assert items[0].amount == Decimal("300")

    def test_missing_sections(self, parser: LineItemParser) -> None:
        """Test payloads without line items."""
        assert parser.invoice_items(None, ItemCategory.OTHER) == []
        assert parser.invoice_items({"billing_info": None}, ItemCategory.OTHER) == []
        assert parser.invoice_items({"billing_info": "n/a"}, ItemCategory.OTHER) == []

    def test_invoice_fields(self, parser: LineItemParser) -> None:
        """Test invoice date and reimbursement type."""
        invoice = make_invoice(invoice_date="05/09/2025", reimbursement_type="  Dental ")

        assert parser.invoice_date(invoice) == date(2025, 9, 5)
        assert parser.reimbursement_type(invoice) == "Dental"
        assert parser.reimbursement_type(make_invoice(reimbursement_type=None)) is None


class TestPrescription:
    """Tests for prescription and lab report extraction."""

    def test_prescribed_items(self, parser: LineItemParser) -> None:
        """Test prescribed medicines and lab tests."""
        prescription = make_prescription(medicines=["Azee 500"], lab_tests=["CBC", "ESR"])

        medicines = parser.prescribed_medicines(prescription)
        assert medicines[0].to_matching_input() == {
            "index": 0,
            "name": "Azee 500",
            "dosage": "1-0-1",
        }
        assert [t.name for t in parser.prescribed_lab_tests(prescription)] == ["CBC", "ESR"]

    def test_diagnosis_context(self, parser: LineItemParser) -> None:
        """Test the context sent for other services."""
        context = parser.diagnosis_context(make_prescription(diagnosis="Sprained ankle"))

        assert context == {
            "diagnosis": "Sprained ankle",
            "clinical_summary": "Fever for three days",
        }

    def test_lab_report_tests(self, parser: LineItemParser) -> None:
        """Test names from a lab report, skipping blanks."""
        report = {"lab_tests": ["Lipid Profile", {"test_name": "TSH"}, ""]}

        assert parser.lab_report_tests(report) == ["Lipid Profile", "TSH"]
        assert parser.lab_report_tests(None) == []

    def test_parser_singleton(self) -> None:
        """Test the shared parser accessor."""
        assert get_parser() is get_parser()
