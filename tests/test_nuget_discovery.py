"""Tests for NuGet discovery functionality."""

import pytest

from registry.nuget.discovery import (
    expand_details_template,
    flat_container_index_url,
    get_resource_url,
    is_v3_service_index,
    registration_index_url,
    v2_find_packages_url,
)


class TestIsV3ServiceIndex:
    """Test service index detection."""

    def test_accepts_v3_document(self):
        """Test a minimal V3 index."""
        assert is_v3_service_index({"version": "3.0.0", "resources": []})

    @pytest.mark.parametrize("data", [
        None,
        [],
        {"version": "2.0.0", "resources": []},
        {"version": "3.0.0"},
        {"d": {"results": []}},
    ])
    def test_rejects_other_documents(self, data):
        """Test non-index payloads."""
        assert not is_v3_service_index(data)


class TestGetResourceUrl:
    """Test resource lookup by @type."""

    def test_prefers_earlier_types(self):
        """Test preference order wins over document order."""
        index = {"resources": [
            {"@id": "https://old/", "@type": "RegistrationsBaseUrl"},
            {"@id": "https://new/", "@type": "RegistrationsBaseUrl/3.6.0"},
        ]}

        url = get_resource_url(index, ["RegistrationsBaseUrl/3.6.0", "RegistrationsBaseUrl"])

        assert url == "https://new/"

    def test_type_list(self):
        """Test @type given as a list."""
        index = {"resources": [{"@id": "https://pub/", "@type": ["PackagePublish/2.0.0", "Other"]}]}

        assert get_resource_url(index, ["PackagePublish/2.0.0"]) == "https://pub/"

    def test_missing_resource(self):
        """Test a missing resource returns None."""
        index = {"resources": [{"@id": "https://search/", "@type": "SearchQueryService/3.0.0-beta"}]}

        assert get_resource_url(index, ["PackagePublish/2.0.0"]) is None

    def test_ignores_entries_without_id(self):
        """Test resources missing @id are skipped."""
        index = {"resources": [{"@type": "PackagePublish/2.0.0"}, "junk"]}

        assert get_resource_url(index, ["PackagePublish/2.0.0"]) is None


class TestUrlBuilders:
    """Test URL construction helpers."""

    def test_flat_container_lowercases_id(self):
        """Test the flat container URL uses the lowercased ID."""
        url = flat_container_index_url("https://api.nuget.org/v3-flatcontainer/", "Contoso.Lib")
        assert url == "https://api.nuget.org/v3-flatcontainer/contoso.lib/index.json"

    def test_registration_adds_trailing_slash(self):
        """Test a base URL without a trailing slash."""
        url = registration_index_url("https://api.nuget.org/v3/registration5", "Contoso.Lib")
        assert url == "https://api.nuget.org/v3/registration5/contoso.lib/index.json"

    def test_v2_query(self):
        """Test the OData query string."""
        url = v2_find_packages_url("https://feed.example.com/api/v2/", "Contoso.Lib")
        assert url == "https://feed.example.com/api/v2/FindPackagesById()?id='Contoso.Lib'&semVerLevel=2.0.0"

    def test_details_template(self):
        """Test template placeholders are filled."""
        url = expand_details_template("https://www.nuget.org/packages/{id}/{version}", "Contoso.Lib", "2.0.0-beta")
        assert url == "https://www.nuget.org/packages/Contoso.Lib/2.0.0-beta"
