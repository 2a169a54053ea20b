"""
Coverage Resolver.
Decides whether a policy covers a single invoice line item.
"""

import logging

from ..core.models import CoverageDecision, ItemCategory, PolicyData
from ..core.text_rules import (
    CATEGORY_BENEFIT_RULES,
    OTC_EXCLUSION,
    OTC_PRODUCT,
    PROCEDURE_FEE,
    TextRuleBook,
    find_exclusion,
    get_default_rulebook,
)

logger = logging.getLogger(__name__)

CATEGORY_LABELS = {
    ItemCategory.MEDICINE: "Medicine",
    ItemCategory.LAB: "Lab test",
    ItemCategory.OTHER: "Service",
}


class CoverageResolver:
    """
    Applies the ordered coverage rules to a line item:

    1. medicines and lab tests must be justified by the prescription
    2. the item must not overlap a policy exclusion clause
    3. OTC/dietary medicines are refused when the policy excludes them
    4. medicines and lab tests need a matching benefit category
    """

    def __init__(self, rulebook: TextRuleBook | None = None) -> None:
        self.rulebook = rulebook or get_default_rulebook()

    def category_benefits(self, policy: PolicyData, category: ItemCategory) -> list[str]:
        """Covered benefit names that serve the item category."""
        rule_id = CATEGORY_BENEFIT_RULES.get(category)
        if rule_id is None:
            return []
        return [b for b in policy.covered_benefits if self.rulebook.matches(rule_id, b)]

    def resolve(
        self,
        policy: PolicyData,
        item_name: str,
        category: ItemCategory,
        is_prescription_match: bool,
    ) -> CoverageDecision:
        """
        Decide coverage for one line item.

        Args:
            policy: Policy terms to evaluate against
            item_name: Invoice line-item name
            category: Item category (medicine, lab or other)
            is_prescription_match: Matching verdict for the item

        Returns:
            CoverageDecision with the first rejection reason, if any
        """
        if category in (ItemCategory.MEDICINE, ItemCategory.LAB) and not is_prescription_match:
            return CoverageDecision(
                covered=False,
                reason=(
                    f'{CATEGORY_LABELS[category]} "{item_name}" is not prescribed '
                    "in the prescription"
                ),
            )

        exclusion = find_exclusion(item_name, policy.excluded_conditions)
        if exclusion is not None:
            return CoverageDecision(
                covered=False, reason=self._exclusion_reason(item_name, category, exclusion)
            )

        if category == ItemCategory.MEDICINE and self.rulebook.matches(OTC_PRODUCT, item_name):
            clause = self.rulebook.first_match(OTC_EXCLUSION, policy.excluded_conditions)
            if clause is not None:
                return CoverageDecision(
                    covered=False,
                    reason=(
                        f'Item "{item_name}" appears to be an OTC (over-the-counter) '
                        f'product which is not covered under policy exclusions: "{clause}"'
                    ),
                )

        if category in CATEGORY_BENEFIT_RULES and not self.category_benefits(policy, category):
            benefits = ", ".join(policy.covered_benefits)
            noun = "Medicines" if category == ItemCategory.MEDICINE else "Lab tests/Diagnostics"
            return CoverageDecision(
                covered=False,
                reason=f"{noun} are not covered under this policy. Available benefits: {benefits}",
            )

        return CoverageDecision(covered=True)

    def _exclusion_reason(self, item_name: str, category: ItemCategory, exclusion: str) -> str:
        if category == ItemCategory.OTHER and self.rulebook.matches(PROCEDURE_FEE, item_name):
            return f'Procedure fees are excluded under policy exclusions: "{exclusion}"'
        return f'Item "{item_name}" is excluded under policy: "{exclusion}"'
