"""
Keyword-based text rules for coverage decisions.

All matching is case-insensitive substring containment. Rules are kept in a
dictionary keyed by rule id so new keyword sets can be added or disabled at
runtime without touching the resolvers.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from .models import ItemCategory

# Rule ids used by the coverage resolver and limit allocator
PHARMACY_BENEFIT = "BEN-PHARMACY"
DIAGNOSTIC_BENEFIT = "BEN-DIAGNOSTIC"
FINANCIAL_ITEM = "ITEM-FINANCIAL"
OTC_PRODUCT = "ITEM-OTC"
PROCEDURE_FEE = "ITEM-PROCEDURE-FEE"
OTC_EXCLUSION = "EXCL-OTC"


@dataclass
class KeywordRule:
    """A named set of keywords matched against free text."""

    rule_id: str
    name: str
    keywords: list[str]
    description: str = ""
    enabled: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)


class TextRuleBook:
    """
    Dictionary-based registry of keyword rules.

    Keyword patterns are compiled once and cached.
    """

    def __init__(self) -> None:
        self._rules: dict[str, KeywordRule] = {}
        self._pattern_cache: dict[str, re.Pattern[str]] = {}

    def add_rule(self, rule: KeywordRule) -> None:
        """Add or replace a rule."""
        self._rules[rule.rule_id] = rule
        for keyword in rule.keywords:
            self._compile(keyword)

    def remove_rule(self, rule_id: str) -> bool:
        """Remove a rule from the book."""
        if rule_id not in self._rules:
            return False
        del self._rules[rule_id]
        return True

    def get_rule(self, rule_id: str) -> KeywordRule | None:
        return self._rules.get(rule_id)

    def enable_rule(self, rule_id: str) -> bool:
        if rule_id in self._rules:
            self._rules[rule_id].enabled = True
            return True
        return False

    def disable_rule(self, rule_id: str) -> bool:
        if rule_id in self._rules:
            self._rules[rule_id].enabled = False
            return True
        return False

    def _compile(self, keyword: str) -> re.Pattern[str]:
        if keyword not in self._pattern_cache:
            self._pattern_cache[keyword] = re.compile(re.escape(keyword), re.IGNORECASE)
        return self._pattern_cache[keyword]

    def matching_keyword(self, rule_id: str, text: str | None) -> str | None:
        """Return the first keyword of the rule found in text, if any."""
        rule = self._rules.get(rule_id)
        if rule is None or not rule.enabled or not text:
            return None
        for keyword in rule.keywords:
            if self._compile(keyword).search(text):
                return keyword
        return None

    def matches(self, rule_id: str, text: str | None) -> bool:
        """Check whether any keyword of the rule occurs in text."""
        return self.matching_keyword(rule_id, text) is not None

    def first_match(self, rule_id: str, texts: Iterable[str]) -> str | None:
        """Return the first text that matches the rule."""
        for text in texts:
            if self.matches(rule_id, text):
                return text
        return None

    def list_rules(self) -> list[dict[str, Any]]:
        """List all rules with their status."""
        return [
            {
                "rule_id": rule.rule_id,
                "name": rule.name,
                "keywords": list(rule.keywords),
                "enabled": rule.enabled,
                "description": rule.description,
            }
            for rule in self._rules.values()
        ]


# Keyword rule gating each item category's benefit; OTHER has no gate
CATEGORY_BENEFIT_RULES: dict[ItemCategory, str] = {
    ItemCategory.MEDICINE: PHARMACY_BENEFIT,
    ItemCategory.LAB: DIAGNOSTIC_BENEFIT,
}


def text_overlaps(item_name: str, phrase: str) -> bool:
    """
    Case-insensitive containment in either direction.

    Blank text never overlaps anything.
    """
    item = item_name.strip().lower()
    other = phrase.strip().lower()
    if not item or not other:
        return False
    return item in other or other in item


def find_exclusion(item_name: str, exclusions: Iterable[str]) -> str | None:
    """Return the first exclusion phrase overlapping the item name."""
    for exclusion in exclusions:
        if text_overlaps(item_name, exclusion):
            return exclusion
    return None


def build_default_rulebook() -> TextRuleBook:
    """Create a rule book holding the standard keyword sets."""
    book = TextRuleBook()
    book.add_rule(
        KeywordRule(
            rule_id=PHARMACY_BENEFIT,
            name="Pharmacy Benefit",
            keywords=["pharmacy", "medicine"],
            description="Benefit names that cover prescribed medicines",
        )
    )
    book.add_rule(
        KeywordRule(
            rule_id=DIAGNOSTIC_BENEFIT,
            name="Diagnostics Benefit",
            keywords=["diagnostic", "pathology", "radiology"],
            description="Benefit names that cover lab tests and imaging",
        )
    )
    book.add_rule(
        KeywordRule(
            rule_id=FINANCIAL_ITEM,
            name="Financial Adjustment",
            keywords=["discount", "gst", "tax", "cgst", "sgst"],
            description="Billing adjustments rather than medical services",
        )
    )
    book.add_rule(
        KeywordRule(
            rule_id=OTC_PRODUCT,
            name="Over-the-counter Product",
            keywords=["supplement", "vitamin", "protein", "glucose", "horlicks", "whey"],
            description="Medicine names that look like OTC or dietary products",
        )
    )
    book.add_rule(
        KeywordRule(
            rule_id=OTC_EXCLUSION,
            name="OTC Exclusion Clause",
            keywords=["supplement", "over-the-counter", "otc"],
            description="Exclusion clauses covering OTC and dietary products",
        )
    )
    book.add_rule(
        KeywordRule(
            rule_id=PROCEDURE_FEE,
            name="Procedure Fee",
            keywords=["procedure", "fee"],
            description="Service names describing procedure fees",
        )
    )
    return book


_default_rulebook: TextRuleBook | None = None


def get_default_rulebook() -> TextRuleBook:
    """Get the shared default rule book."""
    global _default_rulebook
    if _default_rulebook is None:
        _default_rulebook = build_default_rulebook()
    return _default_rulebook


def is_financial_item(name: str | None, rulebook: TextRuleBook | None = None) -> bool:
    """Discount/tax lines are billing adjustments, not medical services."""
    book = rulebook or get_default_rulebook()
    return book.matches(FINANCIAL_ITEM, name)
