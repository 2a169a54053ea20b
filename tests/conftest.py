"""
Shared fixtures: bundled policies, digitized payloads and collaborator fakes.
"""

import asyncio
import json
import logging
from collections.abc import Iterator
from datetime import date
from typing import Any

import pytest

from clearclaim.collaborators.digitization import DigitizationResponse
from clearclaim.collaborators.prompts import (
    LAB_TEST_MATCHING_SYSTEM_PROMPT,
    MEDICINE_MATCHING_SYSTEM_PROMPT,
    OTHERS_MATCHING_SYSTEM_PROMPT,
)
from clearclaim.core.models import PolicyData
from clearclaim.exceptions import MatchingError
from clearclaim.policies.catalog import get_default_catalog

NIVA_BUPA = "Niva Bupa"
ADITYA_BIRLA = "Aditya Birla Health Insurance"

# Inside the Niva Bupa window (2025-08-01 .. 2026-07-31)
IN_WINDOW = date(2026, 1, 15)


def make_invoice(
    medicines: list[dict[str, Any]] | None = None,
    lab_tests: list[dict[str, Any]] | None = None,
    others: list[dict[str, Any]] | None = None,
    invoice_date: str | None = "2025-12-10",
    reimbursement_type: str | None = "Prescribed Medicines",
) -> dict[str, Any]:
    """Build a digitized invoice payload."""
    invoice: dict[str, Any] = {
        "invoice_metadata": {"invoice_number": "INV-001", "invoice_date": invoice_date},
        "billing_info": {
            "line_items": {
                "medicines": medicines or [],
                "lab_tests": lab_tests or [],
                "others": others or [],
            }
        },
    }
    if reimbursement_type is not None:
        invoice["reimbursement_type"] = reimbursement_type
    return invoice


def make_prescription(
    medicines: list[str] | None = None,
    lab_tests: list[str] | None = None,
    diagnosis: str = "Viral fever",
) -> dict[str, Any]:
    """Build a digitized prescription payload."""
    return {
        "medical_info": {
            "diagnosis_primary": diagnosis,
            "clinical_summary": "Fever for three days",
            "medicines": [
                {"medicine_name": name, "medicine_dosage": "1-0-1"} for name in medicines or []
            ],
            "lab_tests": [{"test_name": name} for name in lab_tests or []],
        }
    }


def match(index: int, name: str, matched: bool = True, **extra: Any) -> dict[str, Any]:
    """Build a match result in the collaborator's camelCase shape."""
    return {
        "index": index,
        "name": name,
        "isPrescriptionMatch": matched,
        "remark": "Matched" if matched else "Not in prescription",
        "reason": "",
        **extra,
    }


@pytest.fixture
def niva_bupa() -> PolicyData:
    return get_default_catalog().require(NIVA_BUPA)


@pytest.fixture
def aditya_birla() -> PolicyData:
    return get_default_catalog().require(ADITYA_BIRLA)


@pytest.fixture
def capped_policy() -> PolicyData:
    """Policy with a 10,000 pharmacy limit and an OTC exclusion clause."""
    return PolicyData.model_validate(
        {
            "policy_basic_info": {
                "insurer_name": "Capped Care",
                "policy_start_date": "2025-01-01",
                "policy_end_date": "2027-12-31",
                "sum_insured": 50000,
            },
            "policy_coverage": {
                "covered_benefits": ["Prescribed Pharmacy", "Prescribed Diagnostics"],
                "coverage_limits": [
                    {"benefit_name": "Prescribed Pharmacy", "limit_amount": 10000},
                    {"benefit_name": "Prescribed Diagnostics", "limit_amount": 0},
                ],
            },
            "policy_exclusions": {
                "excluded_conditions": [
                    "Over-the-counter (OTC) medicines purchased without prescription",
                    "Cosmetic treatment",
                ]
            },
        }
    )


@pytest.fixture
def claim_payload() -> dict[str, Any]:
    """A valid intake payload for the Aditya Birla policy."""
    return {
        "patient_details": {"name": "Asha Rao"},
        "prescription_urls": [{"url": "https://files.example/rx.jpg", "document_id": 1}],
        "invoice_urls": [{"url": "https://files.example/invoice.jpg", "document_id": 2}],
        "support_document_urls": [],
        "user_raised_amount": "3500",
        "request_date": "2025-12-12",
        "policy_documents": [{"policy_name": ADITYA_BIRLA}],
    }


class FakeDigitizer:
    """Digitizer returning a canned response, optionally blocking until released."""

    def __init__(
        self,
        documents: list[dict[str, Any]] | None = None,
        success: bool = True,
        message: str = "",
        error: Exception | None = None,
        gate: asyncio.Event | None = None,
    ) -> None:
        self.documents = documents or []
        self.success = success
        self.message = message
        self.error = error
        self.gate = gate
        self.calls: list[dict[str, Any]] = []

    async def extract_documents(
        self,
        urls: list[str],
        mode: str,
        detect_fraud: bool,
        fields: dict[str, Any],
    ) -> DigitizationResponse:
        self.calls.append(
            {"urls": urls, "mode": mode, "detect_fraud": detect_fraud, "fields": fields}
        )
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return DigitizationResponse.model_validate(
            {
                "success": self.success,
                "request_id": "req-1",
                "message": self.message,
                "data": {"documents": self.documents},
            }
        )


class FakeMatchingClient:
    """Matching client answering per category, keyed by system prompt."""

    def __init__(
        self,
        medicines: Any = None,
        lab_tests: Any = None,
        others: Any = None,
        error: str | None = None,
    ) -> None:
        self.answers = {
            MEDICINE_MATCHING_SYSTEM_PROMPT: medicines,
            LAB_TEST_MATCHING_SYSTEM_PROMPT: lab_tests,
            OTHERS_MATCHING_SYSTEM_PROMPT: others,
        }
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        if self.error is not None:
            raise MatchingError(self.error)
        answer = self.answers.get(system_prompt)
        if answer is None:
            return "[]"
        return answer if isinstance(answer, str) else json.dumps(answer)


@pytest.fixture
def claim_documents() -> list[dict[str, Any]]:
    """Digitized documents for a prescription plus invoice claim."""
    return [
        {
            "document_type": "prescription",
            "data": make_prescription(medicines=["Paracetamol 650mg"]),
        },
        {
            "document_type": "invoice",
            "data": make_invoice(
                medicines=[
                    {"name": "Paracetamol 650mg", "unit_cost": 100, "quantity": 30},
                    {"name": "Vitamin C Supplement", "total_cost": "₹500"},
                ]
            ),
        },
    ]


@pytest.fixture
def root_logger() -> Iterator[logging.Logger]:
    """Root logger, restored to its previous level and handlers afterwards."""
    root = logging.getLogger()
    level = root.level
    handlers = list(root.handlers)
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
