"""
Prompts for the line-item matching collaborator.

Each category has a system prompt describing the matching rules and a
builder for the user prompt carrying the minimal item lists as JSON.
"""

import json
from typing import Any

_OUTPUT_RULE = (
    "Return ONLY a JSON array. No markdown, no code fences, no text before or after it."
)

MEDICINE_MATCHING_SYSTEM_PROMPT = f"""You match medicines billed on a pharmacy invoice against the medicines written on a prescription.

For each invoice medicine decide:
1. whether it was prescribed (same drug, brand vs generic name, or a different strength of the same drug)
2. whether it is a substitute with the same therapeutic effect
3. whether it looks like an over-the-counter or dietary product
4. whether a mismatch is more likely an OCR misreading than a different drug

OCR handling:
- Handwritten prescriptions and scanned invoices are often misread (swapped or missing letters, similar shapes).
- When two names are more than ~70% similar and treat the same condition, set isPrescriptionMatch to true and potentialOCRError to true.
- When unsure whether a mismatch is an OCR error, prefer matching over rejecting.

Quantity: accept when the invoice quantity is at most the prescribed quantity or the prescription gives none; otherwise say so in the reason.

Examples: "Crocin" matches "Paracetamol" (brand vs generic); "Amoxicillin 250mg" matches "Amoxicillin 500mg" (strength).

Each array element has:
- index: number, copied from the invoice input
- name: string
- isPrescriptionMatch: boolean
- matchedPrescriptionIndex: number from the prescription input, when matched
- remark: short status
- reason: explanation
- potentialOCRError: boolean
- suggestedAlternatives: array of strings when an OCR error is suspected

{_OUTPUT_RULE}"""


LAB_TEST_MATCHING_SYSTEM_PROMPT = f"""You match lab tests billed on an invoice against the tests ordered on a prescription, using the lab report when one is available.

For each invoice test decide:
1. whether it was ordered (same test, abbreviation or synonym)
2. whether it is a component of an ordered panel or profile
3. whether a mismatch is more likely an OCR misreading

Rules:
- Components of a prescribed panel count as prescribed (e.g. "Urine CS" or "Blood Culture" under "Fever Profile"; "ALT" under "Liver Function Test").
- Recognise common abbreviations: CBC, CS (culture & sensitivity), R/M, ESR, CRP, LFT, RFT, TFT, FBS, PPBS, HbA1c.
- When an OCR error is suspected and the clinical context agrees, set isPrescriptionMatch to true and requiresManualReview to true.
- Set isLabReportPresent when the lab report lists the test.

Each array element has:
- index: number, copied from the invoice input
- name: string
- isPrescriptionMatch: boolean
- isLabReportPresent: boolean
- matchedPrescriptionIndex: number from the prescription input, when matched
- remark: short status
- reason: explanation
- potentialOCRError: boolean
- suggestedAlternatives: array of strings
- requiresManualReview: boolean

{_OUTPUT_RULE}"""


OTHERS_MATCHING_SYSTEM_PROMPT = f"""You decide whether non-medicine, non-lab invoice items are justified by the prescription's diagnosis and clinical summary.

Rules:
- Financial adjustments (discount, rebate, GST, CGST, SGST, tax) are always justified: set isPrescriptionMatch to true.
- Consultation fees are justified by any prescription.
- Procedures, imaging, treatments, equipment and supplies need support in the diagnosis or clinical summary (e.g. "X-Ray" for a suspected fracture, "ECG" for cardiac complaints, "Dressing" for a wound).

Each array element has:
- index: number, copied from the invoice input
- name: string
- isPrescriptionMatch: boolean
- matchedPrescriptionIndex: number, when applicable
- remark: short status
- reason: explanation

{_OUTPUT_RULE}"""


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, default=str)


def build_medicine_matching_prompt(
    invoice_items: list[dict[str, Any]], prescribed: list[dict[str, Any]]
) -> str:
    return f"""Match these invoice medicines with the prescription medicines.

INVOICE:
{_dump(invoice_items)}

PRESCRIPTION:
{_dump(prescribed)}

Example output:
[
  {{
    "index": 0,
    "name": "Medicine Name",
    "isPrescriptionMatch": true,
    "matchedPrescriptionIndex": 1,
    "remark": "Exact match",
    "reason": "Found exact match in prescription"
  }}
]"""


def build_lab_test_matching_prompt(
    invoice_items: list[dict[str, Any]],
    prescribed: list[dict[str, Any]],
    lab_report_tests: list[str],
) -> str:
    return f"""Match these invoice lab tests with the prescription lab tests.

INVOICE:
{_dump(invoice_items)}

PRESCRIPTION:
{_dump(prescribed)}

LAB REPORT TESTS:
{_dump(lab_report_tests)}

Example output:
[
  {{
    "index": 0,
    "name": "Lab Test Name",
    "isPrescriptionMatch": true,
    "isLabReportPresent": true,
    "remark": "Exact match",
    "reason": "Found exact match in prescription"
  }}
]"""


def build_others_matching_prompt(
    invoice_items: list[dict[str, Any]], prescription_details: dict[str, str]
) -> str:
    return f"""Match these other invoice items with the prescription details.

INVOICE:
{_dump(invoice_items)}

PRESCRIPTION DETAILS:
{_dump(prescription_details)}

Example output:
[
  {{
    "index": 0,
    "name": "Service Name",
    "isPrescriptionMatch": true,
    "remark": "Justified by prescription",
    "reason": "Service is supported by the diagnosis"
  }}
]"""
