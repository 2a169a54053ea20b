"""
Field schemas sent to the digitization service.

The service classifies documents itself, so the invoice schema is applied
uniformly to every document of a claim. The prescription and lab report
schemas describe the shapes the parser reads from those documents.
"""

from typing import Any


def _field(field_type: str, description: str, **extra: Any) -> dict[str, Any]:
    return {"type": field_type, "description": description, **extra}


PRESCRIPTION_EXTRACTION_FIELDS: dict[str, Any] = {
    "patient_info": {
        "patient_name": _field("string", "Patient's full name as written on prescription"),
        "prescription_date": _field("date", "Date when prescription was issued"),
    },
    "doctor_info": {
        "doctor_name": _field("string", "Doctor's full name"),
        "doctor_vertical": _field("string", "Doctor's specialization/vertical"),
    },
    "medical_info": {
        "diagnosis_primary": _field("string", "Primary diagnosis condition name"),
        "primary_icd_code": _field("string", "Primary diagnosis ICD-10 code"),
        "diagnosis_secondary": _field("array", "List of secondary diagnosis condition names"),
        "secondary_diagnosis_icd_code": _field("array", "List of secondary diagnosis ICD-10 codes"),
        "clinical_summary": _field("string", "Clinical summary or notes"),
        "medicines": _field("array", "List of prescribed medicines"),
        "lab_tests": _field("array", "List of prescribed lab tests"),
    },
    "clinic_info": {
        "clinic_name": _field("string", "Name of the clinic or hospital"),
        "clinic_address": _field("string", "Address of the clinic or hospital"),
        "clinic_contact_number": _field("array", "Contact number of the clinic or hospital"),
    },
}


LAB_REPORT_EXTRACTION_FIELDS: dict[str, Any] = {
    "lab_tests": _field(
        "array",
        "List of main laboratory test names that would appear on invoices/bills",
        items=_field("string", "Name of the main laboratory test or test panel"),
    ),
}


def invoice_extraction_fields(procedures: list[str] | None = None) -> dict[str, Any]:
    """
    Build the invoice schema.

    Args:
        procedures: Allowed reimbursement type labels (may be empty)

    Returns:
        Field schema dictionary
    """
    return {
        "reimbursement_type": _field(
            "string",
            "Reimbursement type based on services provided",
            enum=list(procedures or []),
        ),
        "invoice_metadata": {
            "invoice_number": _field("string", "Invoice number or bill reference number"),
            "invoice_date": _field("date", "Date when the invoice was issued"),
            "contact_number": _field("array", "Contact number of the clinic or hospital"),
        },
        "patient_provider_details": {
            "patient_name": _field("string", "Patient's full name as written on invoice"),
            "clinic_name": _field("string", "Name of the hospital, clinic, or healthcare provider"),
            "clinic_address": _field("string", "Address of the healthcare provider"),
            "doctor_name": _field("string", "Doctor's name (if mentioned on invoice)"),
        },
        "billing_info": {
            "line_items": _field(
                "object",
                "Categorized list of services/products grouped by type",
                properties={
                    "lab_tests": _field(
                        "array", "List of diagnostic tests and laboratory procedures"
                    ),
                    "medicines": _field("array", "List of medications and pharmaceutical items"),
                    "others": _field("array", "List of other medical services"),
                },
            ),
            "gross_total": _field("number", "Gross total amount before adjustments"),
            "tax_amount": _field("number", "Tax amount (if any)"),
            "discount_amount": _field("number", "Total discount or adjustment amount"),
            "final_amount": _field("number", "Final amount paid after all adjustments"),
        },
    }
