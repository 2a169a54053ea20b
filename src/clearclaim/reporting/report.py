"""
Adjudication Reporting Module.
Assembles adjudication results and formats them for output.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Any

from ..core.models import (
    BLOCKING_CODES,
    AdjudicationResult,
    ItemAdjudication,
    ItemCategory,
    ItemStatus,
    MatchingResults,
    PolicyValidation,
    RejectionReason,
)
from ..modules.limits import format_inr
from .explanation import ExplanationBuilder


class AdjudicationFormatter:
    """
    Formats adjudication results for various output formats.
    """

    STATUS_ICONS = {
        ItemStatus.APPROVED: "✅",
        ItemStatus.PARTIAL: "⚠️",
        ItemStatus.REJECTED: "❌",
        ItemStatus.FINANCIAL: "💱",
    }

    CATEGORY_LABELS = {
        ItemCategory.MEDICINE: "Medicines",
        ItemCategory.LAB: "Lab Tests",
        ItemCategory.OTHER: "Other Services",
    }

    def __init__(self, result: AdjudicationResult, claim_id: str | None = None) -> None:
        self.result = result
        self.claim_id = claim_id

    def decision_label(self) -> str:
        if not self.result.approved:
            return "REJECTED"
        if self.result.is_partial:
            return "PARTIALLY APPROVED"
        return "APPROVED"

    def to_text(self, include_items: bool = True) -> str:
        """
        Format the result as a plain text report.

        Args:
            include_items: Whether to include the per-item ledger

        Returns:
            Formatted text report
        """
        result = self.result
        lines: list[str] = []

        lines.append("=" * 70)
        lines.append("CLAIM ADJUDICATION REPORT")
        lines.append("=" * 70)
        lines.append("")
        if self.claim_id:
            lines.append(f"Claim ID: {self.claim_id}")
        lines.append(f"Processed: {result.processed_at.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        lines.append(f"Decision: {self.decision_label()}")
        lines.append("")

        lines.append("-" * 70)
        lines.append("SUMMARY")
        lines.append("-" * 70)
        lines.append(f"Total Claimed: {format_inr(result.total_claimed_amount)}")
        lines.append(f"Total Reimbursable: {format_inr(result.total_reimbursable_amount)}")
        lines.append(f"Approval: {result.approval_percentage}%")
        validation = result.policy_validation
        lines.append(
            f"Policy Active: {'yes' if validation.is_active else 'no'} | "
            f"Benefit Covered: {'yes' if validation.benefit_coverage else 'no'} | "
            f"Within Limits: {'yes' if validation.coverage_limits else 'no'}"
        )
        lines.append("")
        lines.append(result.explanation)
        lines.append("")

        if result.rejection_reasons:
            lines.append("-" * 70)
            lines.append("REJECTION REASONS")
            lines.append("-" * 70)
            for reason in result.rejection_reasons:
                lines.append(f"[{reason.value.value}] {reason.title}")
                lines.append(f"   {reason.reasoning}")
            lines.append("")

        if include_items and result.items:
            for category in ItemCategory:
                rows = [i for i in result.items if i.category == category]
                if not rows:
                    continue
                lines.append("-" * 70)
                lines.append(self.CATEGORY_LABELS[category].upper())
                lines.append("-" * 70)
                for row in rows:
                    lines.append(
                        f"{self.STATUS_ICONS.get(row.status, '•')} {row.name or '(unnamed)'}: "
                        f"{format_inr(row.reimbursable)} of {format_inr(row.claimed)}"
                    )
                    if row.reason:
                        lines.append(f"   {row.reason}")
                lines.append("")

        lines.append("=" * 70)
        lines.append("END OF REPORT")
        lines.append("=" * 70)

        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the result to a JSON-friendly dictionary.

        Returns:
            Dictionary representation of the result
        """
        result = self.result
        return {
            "claim_id": self.claim_id,
            "decision": self.decision_label().lower().replace(" ", "_"),
            "approved": result.approved,
            "total_claimed_amount": float(result.total_claimed_amount),
            "total_reimbursable_amount": float(result.total_reimbursable_amount),
            "approval_percentage": float(result.approval_percentage),
            "explanation": result.explanation,
            "notes": result.notes,
            "insights": list(result.insights),
            "rejection_reasons": [
                {"value": r.value.value, "title": r.title, "reasoning": r.reasoning}
                for r in result.rejection_reasons
            ],
            "policy_validation": result.policy_validation.model_dump(),
            "items": [
                {
                    "category": i.category.value,
                    "index": i.index,
                    "name": i.name,
                    "claimed": float(i.claimed),
                    "reimbursable": float(i.reimbursable),
                    "status": i.status.value,
                    "reason": i.reason,
                }
                for i in result.items
            ],
            "processed_at": result.processed_at.isoformat(),
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert the result to JSON."""
        return json.dumps(self.to_dict(), indent=indent)


class AdjudicationBuilder:
    """
    Builder for constructing adjudication results.

    Accumulates item rows, rejection reasons and insights, then applies the
    approval rule: a positive reimbursable total and no blocking reason.
    """

    def __init__(self, explainer: ExplanationBuilder | None = None) -> None:
        self.explainer = explainer or ExplanationBuilder()
        self.items: list[ItemAdjudication] = []
        self.rejection_reasons: list[RejectionReason] = []
        self.insights: list[str] = []
        self.validation = PolicyValidation()
        self.total_claimed = Decimal("0")
        self.total_reimbursable = Decimal("0")

    def add_item(self, item: ItemAdjudication) -> "AdjudicationBuilder":
        """Record an adjudicated item and update the totals."""
        self.items.append(item)
        self.total_claimed += item.claimed
        self.total_reimbursable += item.reimbursable
        return self

    def add_reason(self, reason: RejectionReason) -> "AdjudicationBuilder":
        self.rejection_reasons.append(reason)
        return self

    def add_insight(self, insight: str) -> "AdjudicationBuilder":
        self.insights.append(insight)
        return self

    def has_blocking_reason(self) -> bool:
        return any(r.value in BLOCKING_CODES for r in self.rejection_reasons)

    def is_approved(self) -> bool:
        return self.total_reimbursable > 0 and not self.has_blocking_reason()

    def build(
        self,
        matching_results: MatchingResults | None = None,
        processed_at: datetime | None = None,
    ) -> AdjudicationResult:
        """Build and return the final result."""
        approved = self.is_approved()
        partial = approved and self.total_reimbursable < self.total_claimed
        explanation = self.explainer.explain(
            approved,
            self.total_claimed,
            self.total_reimbursable,
            self.rejection_reasons,
            self.insights,
        )
        data: dict[str, Any] = {
            "approved": approved,
            "rejection_reasons": list(self.rejection_reasons),
            "notes": self.explainer.notes(approved, partial, len(self.rejection_reasons)),
            "total_claimed_amount": self.total_claimed,
            "total_reimbursable_amount": self.total_reimbursable,
            "explanation": explanation,
            "insights": list(self.insights),
            "items": list(self.items),
            "matching_results": matching_results or MatchingResults(),
            "policy_validation": self.validation,
        }
        if processed_at is not None:
            data["processed_at"] = processed_at
        return AdjudicationResult(**data)

    def get_formatter(self, claim_id: str | None = None) -> AdjudicationFormatter:
        """Get a formatter for the built result."""
        return AdjudicationFormatter(self.build(), claim_id=claim_id)
