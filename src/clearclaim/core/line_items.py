"""
Line-item parser for digitized claim documents.
Pulls typed invoice items, prescribed items, dates and amounts out of the
loosely structured payloads returned by the digitization service.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from .models import ItemCategory

# Invoice bucket name for each category under billing_info.line_items
INVOICE_BUCKETS: dict[ItemCategory, str] = {
    ItemCategory.MEDICINE: "medicines",
    ItemCategory.LAB: "lab_tests",
    ItemCategory.OTHER: "others",
}


@dataclass
class InvoiceLineItem:
    """A billed line item in one category."""

    index: int
    category: ItemCategory
    name: str
    amount: Decimal
    unit_cost: Decimal | None = None
    quantity: Decimal | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    def to_matching_input(self) -> dict[str, Any]:
        """Minimal shape sent to the matching collaborator."""
        return {
            "index": self.index,
            "name": self.name,
            "unit_cost": float(self.unit_cost) if self.unit_cost is not None else None,
            "quantity": float(self.quantity) if self.quantity is not None else None,
        }


@dataclass
class PrescribedItem:
    """A medicine or lab test written on the prescription."""

    index: int
    name: str
    dosage: str | None = None

    def to_matching_input(self) -> dict[str, Any]:
        data: dict[str, Any] = {"index": self.index, "name": self.name}
        if self.dosage is not None:
            data["dosage"] = self.dosage
        return data


class LineItemParser:
    """
    Parser for digitized prescription, invoice and lab report payloads.
    Uses regex patterns to normalise amounts and dates.
    """

    # Currency markers stripped before number parsing
    CURRENCY_PATTERN = re.compile(r"(₹|rs\.?|inr|/-)", re.IGNORECASE)
    NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")

    # Cost fields, most specific first
    TOTAL_FIELDS = ("total_cost", "total_amount", "total", "amount", "net_amount")
    UNIT_COST_FIELDS = ("unit_cost", "unit_price", "rate", "mrp")
    QUANTITY_FIELDS = ("quantity", "qty")
    NAME_FIELDS = ("name", "medicine_name", "test_name", "item_name", "description")

    DATE_FORMATS = (
        "%Y-%m-%d",
        "%d/%m/%Y",
        "%d-%m-%Y",
        "%d.%m.%Y",
        "%d/%m/%y",
        "%d-%m-%y",
        "%d %b %Y",
        "%d %B %Y",
        "%b %d, %Y",
        "%B %d, %Y",
    )
    ISO_PREFIX = re.compile(r"^(\d{4}-\d{2}-\d{2})[T ]")

    def parse_amount(self, value: Any) -> Decimal | None:
        """
        Parse a money value that may carry currency symbols or separators.

        Args:
            value: Number, numeric string ("₹1,200.50", "Rs. 300/-") or None

        Returns:
            Decimal amount, or None when nothing numeric is present
        """
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, Decimal):
            return value
        if isinstance(value, (int, float)):
            return Decimal(str(value))
        if not isinstance(value, str):
            return None

        text = self.CURRENCY_PATTERN.sub("", value).replace(",", "").strip()
        negative = text.startswith("(") and text.endswith(")")
        match = self.NUMBER_PATTERN.search(text)
        if not match:
            return None
        try:
            amount = Decimal(match.group(0))
        except InvalidOperation:
            return None
        return -abs(amount) if negative else amount

    def parse_date(self, value: Any) -> date | None:
        """Parse an invoice or policy date; unparseable values yield None."""
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if not isinstance(value, str) or not value.strip():
            return None

        text = value.strip()
        iso = self.ISO_PREFIX.match(text)
        if iso:
            text = iso.group(1)
        for fmt in self.DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        return None

    @staticmethod
    def unwrap(payload: Any) -> dict[str, Any]:
        """Return the field payload, accepting both document and data shapes."""
        if not isinstance(payload, dict):
            return {}
        inner = payload.get("data")
        if isinstance(inner, dict) and not any(
            key in payload for key in ("billing_info", "medical_info", "invoice_metadata")
        ):
            return inner
        return payload

    def _first(self, item: dict[str, Any], fields: tuple[str, ...]) -> Any:
        for key in fields:
            if item.get(key) not in (None, ""):
                return item[key]
        return None

    def item_name(self, item: Any) -> str:
        if isinstance(item, str):
            return item.strip()
        if isinstance(item, dict):
            value = self._first(item, self.NAME_FIELDS)
            return str(value).strip() if value is not None else ""
        return ""

    def item_amount(self, item: dict[str, Any]) -> Decimal:
        """Total cost of an item, derived from unit cost and quantity if needed."""
        total = self.parse_amount(self._first(item, self.TOTAL_FIELDS))
        if total is not None:
            return total

        unit_cost = self.parse_amount(self._first(item, self.UNIT_COST_FIELDS))
        if unit_cost is None:
            return Decimal("0")
        quantity = self.parse_amount(self._first(item, self.QUANTITY_FIELDS))
        return unit_cost * (quantity if quantity is not None else Decimal("1"))

    def raw_invoice_items(self, invoice_data: Any, category: ItemCategory) -> list[Any]:
        payload = self.unwrap(invoice_data)
        billing = payload.get("billing_info") or {}
        line_items = (billing.get("line_items") or {}) if isinstance(billing, dict) else {}
        items = line_items.get(INVOICE_BUCKETS[category]) if isinstance(line_items, dict) else None
        return items if isinstance(items, list) else []

    def invoice_items(self, invoice_data: Any, category: ItemCategory) -> list[InvoiceLineItem]:
        """Extract the invoice line items of one category, in invoice order."""
        parsed: list[InvoiceLineItem] = []
        for idx, item in enumerate(self.raw_invoice_items(invoice_data, category)):
            raw = item if isinstance(item, dict) else {"name": item}
            parsed.append(
                InvoiceLineItem(
                    index=idx,
                    category=category,
                    name=self.item_name(raw),
                    amount=self.item_amount(raw),
                    unit_cost=self.parse_amount(self._first(raw, self.UNIT_COST_FIELDS)),
                    quantity=self.parse_amount(self._first(raw, self.QUANTITY_FIELDS)),
                    raw=raw,
                )
            )
        return parsed

    def _medical_info(self, prescription_data: Any) -> dict[str, Any]:
        info = self.unwrap(prescription_data).get("medical_info")
        return info if isinstance(info, dict) else {}

    def prescribed_medicines(self, prescription_data: Any) -> list[PrescribedItem]:
        """Medicines on the prescription, with dosage where given."""
        medicines = self._medical_info(prescription_data).get("medicines") or []
        items: list[PrescribedItem] = []
        for idx, med in enumerate(medicines):
            dosage = None
            if isinstance(med, dict):
                dosage = med.get("medicine_dosage") or med.get("dosage")
            items.append(PrescribedItem(index=idx, name=self.item_name(med), dosage=dosage))
        return items

    def prescribed_lab_tests(self, prescription_data: Any) -> list[PrescribedItem]:
        """Lab tests on the prescription."""
        tests = self._medical_info(prescription_data).get("lab_tests") or []
        return [PrescribedItem(index=idx, name=self.item_name(t)) for idx, t in enumerate(tests)]

    def diagnosis_context(self, prescription_data: Any) -> dict[str, str]:
        """Diagnosis and clinical summary used to justify other services."""
        info = self._medical_info(prescription_data)
        return {
            "diagnosis": info.get("diagnosis_primary") or "",
            "clinical_summary": info.get("clinical_summary") or "",
        }

    def lab_report_tests(self, lab_report_data: Any) -> list[str]:
        """Test names found on the lab report, if one was supplied."""
        tests = self.unwrap(lab_report_data).get("lab_tests") or []
        return [name for name in (self.item_name(t) for t in tests) if name]

    def invoice_date_text(self, invoice_data: Any) -> str | None:
        metadata = self.unwrap(invoice_data).get("invoice_metadata") or {}
        value = metadata.get("invoice_date") if isinstance(metadata, dict) else None
        return str(value) if value not in (None, "") else None

    def invoice_date(self, invoice_data: Any) -> date | None:
        return self.parse_date(self.invoice_date_text(invoice_data))

    def reimbursement_type(self, invoice_data: Any) -> str | None:
        value = self.unwrap(invoice_data).get("reimbursement_type")
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None


# Singleton instance
_parser_instance: LineItemParser | None = None


def get_parser() -> LineItemParser:
    """Get the singleton parser instance."""
    global _parser_instance
    if _parser_instance is None:
        _parser_instance = LineItemParser()
    return _parser_instance
