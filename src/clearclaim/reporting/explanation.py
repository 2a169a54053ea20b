"""
Human-readable explanations of adjudication outcomes.
"""

from decimal import Decimal

from ..core.models import RejectionReason
from ..modules.limits import format_inr


class ExplanationBuilder:
    """
    Renders the explanation and notes attached to an adjudication result.

    Every explanation quotes both the reimbursable and the claimed total.
    """

    MAX_INSIGHTS = 5

    def approval_percentage(self, reimbursable: Decimal, claimed: Decimal) -> Decimal:
        if claimed <= 0:
            return Decimal("0")
        return (reimbursable / claimed * 100).quantize(Decimal("0.1"))

    def explain(
        self,
        approved: bool,
        claimed: Decimal,
        reimbursable: Decimal,
        rejection_reasons: list[RejectionReason],
        insights: list[str],
    ) -> str:
        """
        Build the explanation text.

        Args:
            approved: Final decision
            claimed: Total claimed amount
            reimbursable: Total reimbursable amount
            rejection_reasons: Reasons collected during adjudication
            insights: Partial-approval and sum-insured insights

        Returns:
            Full-approval, partial-approval or rejection phrasing
        """
        if not approved:
            return self._rejection(claimed, reimbursable, rejection_reasons)
        if reimbursable < claimed:
            return self._partial(claimed, reimbursable, rejection_reasons, insights)
        return (
            f"Claim approved in full. The reimbursable amount of {format_inr(reimbursable)} "
            f"covers the entire claimed amount of {format_inr(claimed)}."
        )

    def _partial(
        self,
        claimed: Decimal,
        reimbursable: Decimal,
        rejection_reasons: list[RejectionReason],
        insights: list[str],
    ) -> str:
        pct = self.approval_percentage(reimbursable, claimed)
        parts = [
            f"Claim partially approved: {format_inr(reimbursable)} of the claimed "
            f"{format_inr(claimed)} is reimbursable ({pct}%)."
        ]
        if rejection_reasons:
            parts.append(
                "Not reimbursed: " + "; ".join(r.title for r in rejection_reasons) + "."
            )
        shown = insights[: self.MAX_INSIGHTS]
        if shown:
            parts.append("Details: " + " ".join(shown))
            if len(insights) > len(shown):
                parts.append(f"(and {len(insights) - len(shown)} more)")
        return " ".join(parts)

    def _rejection(
        self,
        claimed: Decimal,
        reimbursable: Decimal,
        rejection_reasons: list[RejectionReason],
    ) -> str:
        text = (
            f"Claim rejected. Reimbursable amount is {format_inr(reimbursable)} "
            f"against a claimed amount of {format_inr(claimed)}."
        )
        if rejection_reasons:
            text += " Reasons: " + "; ".join(r.title for r in rejection_reasons) + "."
        else:
            text += " No line item qualified for reimbursement."
        return text

    def notes(self, approved: bool, partial: bool, reason_count: int) -> str:
        if not approved:
            return f"Adjudication failed with {reason_count} rejection reason(s)"
        if partial:
            return "Adjudication completed with partial approval"
        return "Adjudication completed successfully - all checks passed"
