#!/usr/bin/env python3
"""
Sample Adjudication Script.
Demonstrates usage of the ClearClaim engine and lifecycle controller.
"""

import asyncio
import json
from datetime import date
from typing import Any

from clearclaim import (
    AdjudicationEngine,
    AdjudicationFormatter,
    ClaimLifecycleController,
)
from clearclaim.collaborators.digitization import DigitizationResponse
from clearclaim.storage import InMemoryClaimStore, InMemoryWorkQueue
from clearclaim.utils import setup_logging

# Adjudication date inside the Niva Bupa policy year
AS_OF = date(2026, 1, 15)

PRESCRIPTION = {
    "medical_info": {
        "diagnosis_primary": "Acute pharyngitis",
        "clinical_summary": "Sore throat and fever for two days",
        "medicines": [
            {"medicine_name": "Paracetamol 650mg", "medicine_dosage": "1-0-1"},
            {"medicine_name": "Vitamin C 500mg", "medicine_dosage": "0-0-1"},
        ],
        "lab_tests": [{"test_name": "CBC"}],
    }
}

INVOICE = {
    "reimbursement_type": "Prescribed Medicines",
    "invoice_metadata": {"invoice_number": "PH-20931", "invoice_date": "12/12/2025"},
    "billing_info": {
        "line_items": {
            "medicines": [
                {"name": "Paracetamol 650mg", "unit_cost": 100, "quantity": 30},
                {"name": "Vitamin C Supplement", "total_cost": "₹2,000"},
            ],
            "lab_tests": [{"name": "Complete Blood Count", "total_cost": 450}],
            "others": [
                {"name": "Consultation Fee", "total_cost": 800},
                {"name": "Discount", "total_cost": -150},
            ],
        }
    },
}

MATCHES: dict[str, list[dict[str, Any]]] = {
    "medicines": [
        {"index": 0, "name": "Paracetamol 650mg", "isPrescriptionMatch": True},
        {"index": 1, "name": "Vitamin C Supplement", "isPrescriptionMatch": True},
    ],
    "lab_tests": [
        {"index": 0, "name": "Complete Blood Count", "isPrescriptionMatch": True},
    ],
    "others": [
        {"index": 0, "name": "Consultation Fee", "isPrescriptionMatch": True},
        {"index": 1, "name": "Discount", "isPrescriptionMatch": True},
    ],
}


class CannedDigitizer:
    """Returns the sample prescription and invoice for any request."""

    async def extract_documents(
        self, urls: list[str], mode: str, detect_fraud: bool, fields: dict[str, Any]
    ) -> DigitizationResponse:
        return DigitizationResponse.model_validate(
            {
                "success": True,
                "request_id": "demo",
                "data": {
                    "documents": [
                        {"document_type": "prescription", "data": PRESCRIPTION},
                        {"document_type": "invoice", "data": INVOICE},
                    ]
                },
            }
        )


class CannedMatcher:
    """Answers each matching prompt from the sample match results."""

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        if "LAB REPORT TESTS" in user_prompt:
            return json.dumps(MATCHES["lab_tests"])
        if "PRESCRIPTION DETAILS" in user_prompt:
            return json.dumps(MATCHES["others"])
        return f"```json\n{json.dumps(MATCHES['medicines'])}\n```"


def adjudicate_directly() -> None:
    """Run the engine on already-digitized data."""
    engine = AdjudicationEngine()
    result = engine.adjudicate(PRESCRIPTION, INVOICE, None, "Niva Bupa", MATCHES, as_of=AS_OF)

    formatter = AdjudicationFormatter(result, claim_id="DEMO-001")
    print(formatter.to_text())

    print()
    print("-" * 70)
    print("JSON Output (first 500 chars):")
    print("-" * 70)
    json_output = formatter.to_json()
    print(json_output[:500] + "..." if len(json_output) > 500 else json_output)


async def run_lifecycle() -> None:
    """Drive a claim from intake to submission."""
    controller = ClaimLifecycleController(
        store=InMemoryClaimStore(),
        queue=InMemoryWorkQueue(),
        digitizer=CannedDigitizer(),
        matching_client=CannedMatcher(),
        today=lambda: AS_OF,
    )

    claim = await controller.create_claim(
        {
            "patient_details": {"name": "Ravi Kumar"},
            "prescription_urls": [{"url": "https://files.example/rx-20931.jpg"}],
            "invoice_urls": [{"url": "https://files.example/ph-20931.jpg"}],
            "user_raised_amount": "3600",
            "request_date": "2025-12-14",
            "policy_documents": [{"policy_name": "Niva Bupa"}],
        }
    )
    print(f"Created claim {claim.claim_id} ({claim.status.value})")

    await controller.wait_for_background()
    claim = await controller.get_claim(claim.claim_id)
    print(f"After processing: {claim.status.value}")
    print(claim.adjudication_result.explanation)

    claim = await controller.submit_claim(claim.claim_id)
    print(f"After submission: {claim.status.value}")


def main() -> None:
    """Run sample adjudication demonstration."""
    setup_logging("WARNING")

    print("=" * 70)
    print("CLEARCLAIM - SAMPLE ADJUDICATION")
    print("=" * 70)
    print()

    adjudicate_directly()

    print()
    print("-" * 70)
    print("LIFECYCLE DEMO")
    print("-" * 70)
    asyncio.run(run_lifecycle())


if __name__ == "__main__":
    main()
