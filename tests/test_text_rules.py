"""
Tests for keyword text rules.
"""

from clearclaim.core.text_rules import (
    FINANCIAL_ITEM,
    OTC_PRODUCT,
    PHARMACY_BENEFIT,
    KeywordRule,
    TextRuleBook,
    build_default_rulebook,
    find_exclusion,
    get_default_rulebook,
    is_financial_item,
    text_overlaps,
)


class TestTextOverlaps:
    """Tests for containment matching."""

    def test_either_direction(self) -> None:
        """Test containment both ways, ignoring case."""
        assert text_overlaps("Glucose", "Food supplements (e.g., Horlicks, Glucose)")
        assert text_overlaps("Dressing and wound care kit", "dressing")
        assert not text_overlaps("Paracetamol", "Cosmetic treatment")

    def test_blank_never_overlaps(self) -> None:
        """Test that blank names do not match every clause."""
        assert not text_overlaps("", "Cosmetic treatment")
        assert not text_overlaps("   ", "Cosmetic treatment")

    def test_find_exclusion_returns_first(self) -> None:
        """Test that the first overlapping clause is returned."""
        exclusions = ["Cosmetic surgery", "Whey protein powders", "Protein bars"]

        assert find_exclusion("protein", exclusions) == "Whey protein powders"
        assert find_exclusion("Insulin", exclusions) is None


class TestTextRuleBook:
    """Tests for the rule registry."""

    def test_default_rules(self) -> None:
        """Test the standard keyword sets."""
        book = build_default_rulebook()

        assert book.matches(PHARMACY_BENEFIT, "Prescribed Pharmacy")
        assert book.matches(OTC_PRODUCT, "Vitamin D3")
        assert book.matching_keyword(OTC_PRODUCT, "Whey Protein") == "protein"
        assert not book.matches(PHARMACY_BENEFIT, None)

    def test_disable_rule(self) -> None:
        """Test that disabled rules never match."""
        book = build_default_rulebook()
        book.disable_rule(OTC_PRODUCT)

        assert not book.matches(OTC_PRODUCT, "Vitamin D3")
        assert book.enable_rule(OTC_PRODUCT) is True
        assert book.matches(OTC_PRODUCT, "Vitamin D3")

    def test_add_and_remove(self) -> None:
        """Test registering a custom rule."""
        book = TextRuleBook()
        book.add_rule(KeywordRule(rule_id="X", name="Ayurveda", keywords=["ayurvedic"]))

        assert book.first_match("X", ["Allopathic", "Ayurvedic tonic"]) == "Ayurvedic tonic"
        assert book.list_rules()[0]["name"] == "Ayurveda"
        assert book.remove_rule("X") is True
        assert book.remove_rule("X") is False
        assert book.get_rule("X") is None

    def test_default_rulebook_is_shared(self) -> None:
        """Test the singleton accessor."""
        assert get_default_rulebook() is get_default_rulebook()


class TestFinancialItems:
    """Tests for billing adjustment detection."""

    def test_financial_names(self) -> None:
        """Test discount and tax names in any case."""
        for name in ("Discount", "GST", "cgst", "SGST 9%", "Tax"):
            assert is_financial_item(name)

    def test_substring_false_positive(self) -> None:
        """Test that containment also catches words embedding a keyword."""
        assert is_financial_item("Taxol injection")
        assert not is_financial_item("Paracetamol")
        assert not is_financial_item(None)

    def test_custom_rulebook(self) -> None:
        """Test detection against a caller's rule book."""
        book = TextRuleBook()
        book.add_rule(KeywordRule(rule_id=FINANCIAL_ITEM, name="Rebate", keywords=["rebate"]))

        assert is_financial_item("Rebate", book)
        assert not is_financial_item("Discount", book)
