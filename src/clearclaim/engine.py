"""
Adjudication Engine - Main Orchestrator.
Drives every invoice line item through coverage resolution and limit
allocation and assembles the claim decision.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any

from .core.line_items import InvoiceLineItem, LineItemParser, get_parser
from .core.models import (
    AdjudicationResult,
    ItemAdjudication,
    ItemCategory,
    ItemStatus,
    MatchingResults,
    MatchResult,
    PolicyData,
    RejectionCode,
    RejectionReason,
)
from .core.text_rules import TextRuleBook, get_default_rulebook, is_financial_item
from .modules.coverage import CoverageResolver
from .modules.limits import CategoryLedger, LimitAllocator, format_inr
from .modules.validity import BenefitMapper, PolicyValidityChecker
from .policies.catalog import PolicyCatalog, get_default_catalog
from .reporting.report import AdjudicationBuilder

logger = logging.getLogger(__name__)

# Aggregate rejection title per category
CATEGORY_REJECTION_TITLES = {
    ItemCategory.MEDICINE: "Medicines not covered under policy",
    ItemCategory.LAB: "Lab tests not covered under policy",
    ItemCategory.OTHER: "Services not covered under policy",
}


class AdjudicationEngine:
    """
    Main orchestrator for claim adjudication.

    Combines policy validity, benefit mapping, per-item coverage and
    sequential limit allocation into a single AdjudicationResult.
    """

    def __init__(
        self,
        catalog: PolicyCatalog | None = None,
        rulebook: TextRuleBook | None = None,
        parser: LineItemParser | None = None,
    ) -> None:
        """
        Initialize the Adjudication Engine.

        Args:
            catalog: Policy catalog (defaults to the bundled policies)
            rulebook: Keyword rules shared by coverage and limit checks
            parser: Line-item parser for digitized payloads
        """
        self._catalog = catalog
        self.rulebook = rulebook or get_default_rulebook()
        self.parser = parser or get_parser()

        # Initialize components lazily
        self._coverage_resolver: CoverageResolver | None = None
        self._limit_allocator: LimitAllocator | None = None
        self._validity_checker: PolicyValidityChecker | None = None
        self._benefit_mapper: BenefitMapper | None = None

    @property
    def catalog(self) -> PolicyCatalog:
        if self._catalog is None:
            self._catalog = get_default_catalog()
        return self._catalog

    @property
    def coverage_resolver(self) -> CoverageResolver:
        """Get or create the coverage resolver."""
        if self._coverage_resolver is None:
            self._coverage_resolver = CoverageResolver(self.rulebook)
        return self._coverage_resolver

    @property
    def limit_allocator(self) -> LimitAllocator:
        """Get or create the limit allocator."""
        if self._limit_allocator is None:
            self._limit_allocator = LimitAllocator(self.rulebook)
        return self._limit_allocator

    @property
    def validity_checker(self) -> PolicyValidityChecker:
        if self._validity_checker is None:
            self._validity_checker = PolicyValidityChecker()
        return self._validity_checker

    @property
    def benefit_mapper(self) -> BenefitMapper:
        if self._benefit_mapper is None:
            self._benefit_mapper = BenefitMapper()
        return self._benefit_mapper

    def adjudicate(
        self,
        prescription_data: dict[str, Any] | None,
        invoice_data: dict[str, Any] | None,
        lab_report_data: dict[str, Any] | None,
        policy_name: str,
        matching_results: MatchingResults | dict[str, Any] | None,
        as_of: date | None = None,
    ) -> AdjudicationResult:
        """
        Adjudicate a claim.

        Args:
            prescription_data: Digitized prescription payload
            invoice_data: Digitized invoice payload
            lab_report_data: Digitized lab report payload, if any
            policy_name: Name of the selected policy
            matching_results: Match results for medicines, lab tests and others
            as_of: Date used for the policy window check (defaults to today)

        Returns:
            The complete adjudication result
        """
        matches = self._coerce_matches(matching_results)
        builder = AdjudicationBuilder()
        logger.info(
            "Adjudicating for policy %r: %d medicine, %d lab, %d other match results",
            policy_name,
            len(matches.medicines),
            len(matches.lab_tests),
            len(matches.others),
        )

        policy = self.catalog.get(policy_name)
        if policy is None:
            logger.info("Policy not found: %r", policy_name)
            builder.add_reason(
                RejectionReason(
                    value=RejectionCode.POLICY_NOT_FOUND,
                    title="Policy not found",
                    reasoning=f'Policy "{policy_name}" not found in system',
                )
            )
            return builder.build(matches)

        # Policy window
        invoice_date_text = self.parser.invoice_date_text(invoice_data)
        window_reason = self.validity_checker.check(
            policy,
            as_of or date.today(),
            invoice_date=self.parser.parse_date(invoice_date_text),
            invoice_date_text=invoice_date_text,
        )
        if window_reason is not None:
            builder.add_reason(window_reason)
        builder.validation.is_active = window_reason is None
        builder.validation.is_date_valid = window_reason is None

        # Reimbursement type
        benefit_reason = self.benefit_mapper.check(
            policy, self.parser.reimbursement_type(invoice_data)
        )
        if benefit_reason is not None:
            builder.add_reason(benefit_reason)
        builder.validation.benefit_coverage = benefit_reason is None

        # Line items, category by category, in invoice order
        ledger = CategoryLedger()
        limits_reached = False
        aligned_by_category: dict[ItemCategory, list[MatchResult]] = {}
        for category in ItemCategory:
            items = self.parser.invoice_items(invoice_data, category)
            aligned = self.align_matches(items, matches.for_category(category))
            aligned_by_category[category] = aligned
            item_reasons: list[str] = []
            for item, match in zip(items, aligned):
                row, capped = self._adjudicate_item(policy, item, match, ledger)
                match.adjudicated_amount = row.reimbursable
                builder.add_item(row)
                limits_reached = limits_reached or capped
                if row.status == ItemStatus.REJECTED and row.reason:
                    item_reasons.append(row.reason)
                if row.status == ItemStatus.PARTIAL:
                    builder.add_insight(
                        f'"{row.name}" partially approved: {format_inr(row.reimbursable)} '
                        f"of {format_inr(row.claimed)}. {row.reason}"
                    )
            if item_reasons:
                builder.add_reason(
                    RejectionReason(
                        value=RejectionCode.BENEFIT_NOT_COVERED,
                        title=CATEGORY_REJECTION_TITLES[category],
                        reasoning="; ".join(item_reasons),
                    )
                )

        # Overall sum insured (0 = unlimited)
        sum_insured = policy.policy_basic_info.sum_insured
        exceeds_sum_insured = sum_insured > 0 and builder.total_reimbursable > sum_insured
        if exceeds_sum_insured:
            builder.add_insight(
                f"Total reimbursable amount {format_inr(builder.total_reimbursable)} exceeds "
                f"the policy sum insured of {format_inr(sum_insured)}"
            )
        builder.validation.coverage_limits = not limits_reached and not exceeds_sum_insured

        result = builder.build(
            MatchingResults(
                medicines=aligned_by_category[ItemCategory.MEDICINE],
                lab_tests=aligned_by_category[ItemCategory.LAB],
                others=aligned_by_category[ItemCategory.OTHER],
            )
        )
        logger.info(
            "Decision for policy %r: approved=%s, claimed=%s, reimbursable=%s, reasons=%d",
            policy_name,
            result.approved,
            result.total_claimed_amount,
            result.total_reimbursable_amount,
            len(result.rejection_reasons),
        )
        return result

    def _adjudicate_item(
        self,
        policy: PolicyData,
        item: InvoiceLineItem,
        match: MatchResult,
        ledger: CategoryLedger,
    ) -> tuple[ItemAdjudication, bool]:
        """
        Coverage, then limit allocation, for one line item.

        Returns the ledger row and whether the category limit cut the item.
        """
        row = ItemAdjudication(
            category=item.category,
            index=item.index,
            name=item.name,
            claimed=item.amount,
            reimbursable=Decimal("0"),
            status=ItemStatus.REJECTED,
        )

        # Billing adjustments pass straight through
        if is_financial_item(item.name, self.rulebook):
            row.reimbursable = item.amount
            row.status = ItemStatus.FINANCIAL
            return row, False

        decision = self.coverage_resolver.resolve(
            policy, item.name, item.category, match.is_prescription_match
        )
        if not decision.covered:
            row.reason = decision.reason
            return row, False

        allocation = self.limit_allocator.allocate(
            policy, item.category, item.amount, ledger.used(item.category)
        )
        ledger.record(item.category, allocation.reimbursable)
        row.reimbursable = allocation.reimbursable
        row.reason = allocation.reason
        if allocation.within_limit:
            row.status = ItemStatus.APPROVED
        elif allocation.reimbursable > 0:
            row.status = ItemStatus.PARTIAL
        return row, not allocation.within_limit

    @staticmethod
    def align_matches(
        items: list[InvoiceLineItem], results: list[MatchResult]
    ) -> list[MatchResult]:
        """
        Pair each invoice item with its match result.

        A result is paired with the item whose position equals its ``index``.
        Results without a usable index fall back to their list position.
        Items left without a result are treated as unmatched.
        """
        paired: dict[int, MatchResult] = {}
        unindexed: list[tuple[int, MatchResult]] = []
        for position, result in enumerate(results):
            idx = result.index
            if idx is not None and 0 <= idx < len(items) and idx not in paired:
                paired[idx] = result
            else:
                unindexed.append((position, result))
        for position, result in unindexed:
            # Out-of-range or duplicate indexes are dropped
            if result.index is None and position < len(items) and position not in paired:
                paired[position] = result

        aligned: list[MatchResult] = []
        for item in items:
            result = paired.get(item.index)
            if result is None:
                aligned.append(
                    MatchResult.unmatched(
                        item.index,
                        item.name,
                        remark="No match result",
                        reason="No matching result was returned for this item",
                    )
                )
                continue
            aligned.append(
                result.model_copy(update={"index": item.index, "name": result.name or item.name})
            )
        return aligned

    @staticmethod
    def _coerce_matches(matching_results: MatchingResults | dict[str, Any] | None) -> MatchingResults:
        if matching_results is None:
            return MatchingResults()
        if isinstance(matching_results, MatchingResults):
            return matching_results
        data = dict(matching_results)
        if "labTests" in data and "lab_tests" not in data:
            data["lab_tests"] = data.pop("labTests")
        return MatchingResults.model_validate(data)


# Convenience function for one-off adjudication
def adjudicate_claim(
    prescription_data: dict[str, Any] | None,
    invoice_data: dict[str, Any] | None,
    lab_report_data: dict[str, Any] | None,
    policy_name: str,
    matching_results: MatchingResults | dict[str, Any] | None,
    as_of: date | None = None,
) -> AdjudicationResult:
    """
    Convenience function for adjudicating against the bundled policies.

    Returns:
        The complete adjudication result
    """
    engine = AdjudicationEngine()
    return engine.adjudicate(
        prescription_data,
        invoice_data,
        lab_report_data,
        policy_name,
        matching_results,
        as_of=as_of,
    )
