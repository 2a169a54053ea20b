"""
Limit Allocator.
Computes the reimbursable portion of a covered item against its category cap.
"""

import logging
from decimal import Decimal

from ..core.models import CoverageLimit, ItemCategory, LimitAllocation, PolicyData
from ..core.text_rules import CATEGORY_BENEFIT_RULES, TextRuleBook, get_default_rulebook

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def format_inr(amount: Decimal) -> str:
    """Render an amount as rupees with thousands separators."""
    return f"₹{amount:,.2f}"


class LimitAllocator:
    """
    Applies per-category coverage limits to covered items.

    Allocation is sequential: the caller passes the amount already
    reimbursed in the category, so results depend on invoice order.
    """

    def __init__(self, rulebook: TextRuleBook | None = None) -> None:
        self.rulebook = rulebook or get_default_rulebook()

    def find_limit(self, policy: PolicyData, category: ItemCategory) -> CoverageLimit | None:
        """First coverage limit whose benefit serves the category."""
        rule_id = CATEGORY_BENEFIT_RULES.get(category)
        if rule_id is None:
            return None
        for limit in policy.policy_coverage.coverage_limits:
            if self.rulebook.matches(rule_id, limit.benefit_name):
                return limit
        return None

    def allocate(
        self,
        policy: PolicyData,
        category: ItemCategory,
        item_amount: Decimal,
        running_total: Decimal,
    ) -> LimitAllocation:
        """
        Allocate one item against its category limit.

        Args:
            policy: Policy terms holding the coverage limits
            category: Item category
            item_amount: Claimed amount of the item
            running_total: Amount already reimbursed in the category

        Returns:
            LimitAllocation with the reimbursable amount
        """
        limit = self.find_limit(policy, category)
        if limit is None or limit.is_unlimited:
            return LimitAllocation(
                within_limit=True, reimbursable=item_amount, used_before=running_total
            )

        remaining = limit.limit_amount - running_total
        if running_total + item_amount <= limit.limit_amount:
            return LimitAllocation(
                within_limit=True,
                reimbursable=item_amount,
                limit_amount=limit.limit_amount,
                used_before=running_total,
                remaining=remaining,
            )

        reimbursable = max(ZERO, remaining)
        shortfall = item_amount - reimbursable
        reason = (
            f"{limit.benefit_name} limit of {format_inr(limit.limit_amount)} exceeded: "
            f"{format_inr(running_total)} already used, {format_inr(reimbursable)} remaining, "
            f"{format_inr(shortfall)} not reimbursable"
        )
        logger.debug("Limit reached for %s: %s", category.value, reason)
        return LimitAllocation(
            within_limit=False,
            reimbursable=reimbursable,
            reason=reason,
            limit_amount=limit.limit_amount,
            used_before=running_total,
            remaining=reimbursable,
        )


class CategoryLedger:
    """Running reimbursed totals per item category."""

    def __init__(self) -> None:
        self._totals: dict[ItemCategory, Decimal] = {c: ZERO for c in ItemCategory}

    def used(self, category: ItemCategory) -> Decimal:
        return self._totals[category]

    def record(self, category: ItemCategory, amount: Decimal) -> Decimal:
        """Add a reimbursed amount and return the new category total."""
        self._totals[category] += amount
        return self._totals[category]

    def as_dict(self) -> dict[str, Decimal]:
        return {c.value: total for c, total in self._totals.items()}
