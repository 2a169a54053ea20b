"""
Tests for the policy catalog.
"""

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from clearclaim.exceptions import ConfigurationError, PolicyNotFoundError
from clearclaim.policies.catalog import PolicyCatalog, get_default_catalog

from conftest import ADITYA_BIRLA, NIVA_BUPA


class TestBundledCatalog:
    """Tests for the policies shipped with the package."""

    def test_names(self) -> None:
        """Test the canonical policy names."""
        catalog = get_default_catalog()

        assert set(catalog.names()) == {NIVA_BUPA, ADITYA_BIRLA}
        assert len(catalog) == 2

    def test_niva_bupa_terms(self) -> None:
        """Test the loaded Niva Bupa terms."""
        policy = get_default_catalog().require(NIVA_BUPA)
        info = policy.policy_basic_info

        assert info.policy_start_date == date(2025, 8, 1)
        assert info.policy_end_date == date(2026, 7, 31)
        assert info.sum_insured == Decimal("25000")
        assert "Prescribed pharmacy (Allopathic only)" in policy.covered_benefits

    def test_aliases(self) -> None:
        """Test alias and case-insensitive lookup."""
        catalog = get_default_catalog()

        assert catalog.get("adityabirla") is catalog.get(ADITYA_BIRLA)
        assert "NIVA BUPA" in catalog
        assert catalog.get("") is None
        assert catalog.get(None) is None

    def test_require_unknown(self) -> None:
        """Test the error for an unknown policy."""
        with pytest.raises(PolicyNotFoundError) as exc_info:
            get_default_catalog().require("Star Health")

        assert "Invalid policy name: Star Health" in str(exc_info.value)
        assert exc_info.value.to_dict()["code"] == "CC_POLICY_NOT_FOUND"


class TestCatalogLoading:
    """Tests for building catalogs from documents and files."""

    def test_from_documents(self) -> None:
        """Test building from parsed documents."""
        catalog = PolicyCatalog.from_documents(
            [{"names": ["Basic OPD", "basic"], "policy": {"policy_basic_info": {"insurer_name": "B"}}}]
        )

        assert catalog.require("BASIC").insurer_name == "B"
        assert catalog.names() == ["Basic OPD"]

    def test_missing_names(self) -> None:
        """Test that a document needs names."""
        with pytest.raises(ConfigurationError):
            PolicyCatalog.from_documents([{"policy": {}}])

    def test_invalid_policy(self) -> None:
        """Test that invalid terms are reported as configuration errors."""
        with pytest.raises(ConfigurationError) as exc_info:
            PolicyCatalog.from_documents([{"names": ["Broken"], "policy": {}}])

        assert exc_info.value.details["policy_name"] == "Broken"

    def test_alias_to_unknown_policy(self) -> None:
        """Test that dangling aliases are refused."""
        with pytest.raises(ConfigurationError):
            PolicyCatalog({}, aliases={"x": "Nothing"})

    def test_from_directory(self, tmp_path: Path) -> None:
        """Test loading YAML policy files from a directory."""
        (tmp_path / "dental.yaml").write_text(
            "names: [Smile Plan]\n"
            "policy:\n"
            "  policy_basic_info:\n"
            "    insurer_name: Smile\n"
            "    sum_insured: 5000\n",
            encoding="utf-8",
        )
        catalog = PolicyCatalog.from_directory(tmp_path)

        assert catalog.require("smile plan").policy_basic_info.sum_insured == Decimal("5000")
