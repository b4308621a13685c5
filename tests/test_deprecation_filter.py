"""Tests for skipping versions that are already deprecated."""

import logging

from deprecation.filter import filter_deprecated
from registry.nuget.models import DeprecationInfo


LEGACY = DeprecationInfo(reasons=["Legacy"])


class TestFilterDeprecated:
    """Test filter_deprecated."""

    def test_already_deprecated_versions_are_skipped(self, caplog):
        """Test versions with a deprecation record are skipped and reported."""
        metadata = {"1.0.0": None, "1.1.0": LEGACY, "2.0.0": None}
        with caplog.at_level(logging.INFO):
            result = filter_deprecated(["1.0.0", "1.1.0", "2.0.0"], metadata)
        assert result.versions == ["1.0.0", "2.0.0"]
        assert result.skipped == ["1.1.0"]
        assert "Version 1.1.0 is already deprecated and will be skipped." in caplog.text
        assert "1 package version(s) are already deprecated" in caplog.text

    def test_overwrite_keeps_everything(self):
        """Test overwrite keeps deprecated versions."""
        metadata = {"1.0.0": LEGACY}
        result = filter_deprecated(["1.0.0"], metadata, overwrite=True)
        assert result.versions == ["1.0.0"]
        assert result.skipped == []

    def test_overwrite_does_not_need_metadata(self):
        """Test overwrite works without any metadata."""
        result = filter_deprecated(["1.0.0", "2.0.0"], None, overwrite=True)
        assert result.versions == ["1.0.0", "2.0.0"]

    def test_version_missing_from_metadata_is_kept_with_warning(self, caplog):
        """Test a version absent from metadata is assumed not deprecated."""
        with caplog.at_level(logging.WARNING):
            result = filter_deprecated(["3.0.0"], {"1.0.0": None})
        assert result.versions == ["3.0.0"]
        assert "Version 3.0.0 was not found in the package metadata" in caplog.text

    def test_lookup_is_case_insensitive(self):
        """Test pre-release labels match metadata keys regardless of case."""
        result = filter_deprecated(["2.0.0-BETA"], {"2.0.0-beta": LEGACY})
        assert result.versions == []
        assert result.skipped == ["2.0.0-BETA"]

    def test_input_order_preserved(self):
        """Test kept versions stay in input order."""
        versions = ["1.0.0", "1.5.0", "2.0.0"]
        result = filter_deprecated(versions, {v: None for v in versions})
        assert result.versions == versions

    def test_output_is_subset_of_input(self):
        """Test metadata for unrequested versions never adds output."""
        versions = ["1.0.0", "1.5.0", "2.0.0"]
        result = filter_deprecated(versions, {"1.5.0": LEGACY, "9.0.0": LEGACY})
        assert set(result.versions) <= set(versions)
        assert result.versions + result.skipped == ["1.0.0", "2.0.0", "1.5.0"]

    def test_everything_deprecated_yields_empty(self):
        """Test an all-deprecated input leaves nothing to do."""
        result = filter_deprecated(["1.0.0"], {"1.0.0": LEGACY})
        assert result.versions == []


class TestDeprecationInfo:
    """Test DeprecationInfo parsing."""

    def test_from_registration_json(self):
        """Test a catalogEntry.deprecation object is parsed."""
        info = DeprecationInfo.from_json({
            "reasons": ["Legacy", "CriticalBugs"],
            "message": "Use Contoso.NewLib",
            "alternatePackage": {"id": "Contoso.NewLib", "range": "[2.0.0, )"},
        })
        assert info.reasons == ["Legacy", "CriticalBugs"]
        assert info.alternate_package_id == "Contoso.NewLib"
        assert info.alternate_version_range == "[2.0.0, )"
