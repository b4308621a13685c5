"""Tests for NuGet client functionality."""

from unittest.mock import MagicMock, patch

import pytest

from common.errors import RegistryReadError, TransportError
from registry.nuget.client import NuGetRegistryClient
from registry.nuget.models import DeprecationInfo
from versioning.parser import parse_version

SOURCE = "https://api.nuget.org/v3/index.json"
FLAT = "https://api.nuget.org/v3-flatcontainer/"
REG = "https://api.nuget.org/v3/registration5-semver1/"

SERVICE_INDEX = {
    "version": "3.0.0",
    "resources": [
        {"@id": FLAT, "@type": "PackageBaseAddress/3.0.0"},
        {"@id": REG, "@type": ["RegistrationsBaseUrl/3.6.0", "RegistrationsBaseUrl/Versioned"]},
        {"@id": "https://www.nuget.org/api/v2/package", "@type": "PackagePublish/2.0.0"},
        {"@id": "https://www.nuget.org/packages/{id}/{version}", "@type": "PackageDetailsUriTemplate/5.1.0"},
    ],
}


def _routes(mapping):
    """Build a get_json side effect answering from ``mapping``; unknown URLs 404."""
    def fake_get_json(url, **_kwargs):
        value = mapping.get(url)
        if isinstance(value, Exception):
            raise value
        if value is None:
            return 404, {}, None
        status, data = value
        return status, {}, data
    return fake_get_json


class TestServiceIndex:
    """Test V3 service index discovery."""

    @patch("registry.nuget.client.get_json")
    def test_v3_source(self, mock_get_json):
        """Test a V3 source exposes its resources."""
        mock_get_json.side_effect = _routes({SOURCE: (200, SERVICE_INDEX)})
        client = NuGetRegistryClient(SOURCE)

        assert client.is_v3()
        assert client.publish_url() == "https://www.nuget.org/api/v2/package"
        assert client.package_details_url("Contoso.Lib", "1.0.0") == "https://www.nuget.org/packages/Contoso.Lib/1.0.0"

    @patch("registry.nuget.client.get_json")
    def test_service_index_fetched_once(self, mock_get_json):
        """Test the service index is memoized per client."""
        mock_get_json.side_effect = _routes({SOURCE: (200, SERVICE_INDEX)})
        client = NuGetRegistryClient(SOURCE)

        client.is_v3()
        client.publish_url()
        client.package_details_url("A", "1.0.0")

        assert mock_get_json.call_count == 1

    @patch("registry.nuget.client.get_json")
    def test_non_v3_source(self, mock_get_json):
        """Test a source without a V3 index."""
        mock_get_json.side_effect = _routes({"https://feed.example.com/api/v2": (200, {"d": []})})
        client = NuGetRegistryClient("https://feed.example.com/api/v2")

        assert not client.is_v3()
        assert client.publish_url() is None
        assert client.package_details_url("A", "1.0.0") is None

    @patch("registry.nuget.client.get_json")
    def test_transport_failure_is_registry_read_error(self, mock_get_json):
        """Test transport errors surface with a source hint."""
        mock_get_json.side_effect = _routes({SOURCE: TransportError("connection refused")})
        client = NuGetRegistryClient(SOURCE)

        with pytest.raises(RegistryReadError, match="Check that the package source URL is correct"):
            client.is_v3()


class TestListVersions:
    """Test version listing."""

    @patch("registry.nuget.client.get_json")
    def test_flat_container(self, mock_get_json):
        """Test versions come from the lowercased flat container index."""
        mock_get_json.side_effect = _routes({
            SOURCE: (200, SERVICE_INDEX),
            FLAT + "contoso.lib/index.json": (200, {"versions": ["1.0.0", "2.0.0-beta", "2.0.0", "garbage"]}),
        })
        client = NuGetRegistryClient(SOURCE)

        versions = client.list_versions("Contoso.Lib")

        assert versions == {parse_version("1.0.0"), parse_version("2.0.0-beta"), parse_version("2.0.0")}

    @patch("registry.nuget.client.get_json")
    def test_unknown_package_is_empty(self, mock_get_json):
        """Test a 404 means the package has no versions."""
        mock_get_json.side_effect = _routes({SOURCE: (200, SERVICE_INDEX)})
        client = NuGetRegistryClient(SOURCE)

        assert client.list_versions("Missing.Package") == set()

    @patch("registry.nuget.client.get_json")
    def test_server_error(self, mock_get_json):
        """Test unexpected status codes raise."""
        mock_get_json.side_effect = _routes({
            SOURCE: (200, SERVICE_INDEX),
            FLAT + "contoso.lib/index.json": (500, None),
        })
        client = NuGetRegistryClient(SOURCE)

        with pytest.raises(RegistryReadError):
            client.list_versions("Contoso.Lib")

    @patch("registry.nuget.client.get_json")
    def test_missing_base_address(self, mock_get_json):
        """Test a V3 index without PackageBaseAddress."""
        mock_get_json.side_effect = _routes({SOURCE: (200, {"version": "3.0.0", "resources": []})})
        client = NuGetRegistryClient(SOURCE)

        with pytest.raises(RegistryReadError, match="PackageBaseAddress"):
            client.list_versions("Contoso.Lib")


class TestDeprecationMetadata:
    """Test reading existing deprecation records from registration metadata."""

    @patch("registry.nuget.client.get_json")
    def test_inlined_pages(self, mock_get_json):
        """Test leaves inlined in the registration index."""
        mock_get_json.side_effect = _routes({
            SOURCE: (200, SERVICE_INDEX),
            REG + "contoso.lib/index.json": (200, {"items": [{"items": [
                {"catalogEntry": {"version": "1.0.0"}},
                {"catalogEntry": {"version": "1.1.0", "deprecation": {"reasons": ["Legacy"], "message": "old"}}},
                {"catalogEntry": {"version": "2.0.0-Beta"}},
            ]}]}),
        })
        client = NuGetRegistryClient(SOURCE)

        metadata = client.get_deprecation_metadata("Contoso.Lib")

        assert metadata["1.0.0"] is None
        assert metadata["1.1.0"] == DeprecationInfo(reasons=["Legacy"], message="old")
        assert "2.0.0-Beta" in metadata

    @patch("registry.nuget.client.get_json")
    def test_referenced_pages_are_fetched(self, mock_get_json):
        """Test pages that are only referenced by @id."""
        page_url = REG + "contoso.lib/page/1.0.0/2.0.0.json"
        mock_get_json.side_effect = _routes({
            SOURCE: (200, SERVICE_INDEX),
            REG + "contoso.lib/index.json": (200, {"items": [{"@id": page_url, "count": 1}]}),
            page_url: (200, {"items": [
                {"catalogEntry": {"version": "1.0.0", "deprecation": {"reasons": ["CriticalBugs"]}}},
            ]}),
        })
        client = NuGetRegistryClient(SOURCE)

        metadata = client.get_deprecation_metadata("Contoso.Lib")

        assert metadata["1.0.0"].reasons == ["CriticalBugs"]

    @patch("registry.nuget.client.get_json")
    def test_unknown_package(self, mock_get_json):
        """Test an unknown package has no metadata."""
        mock_get_json.side_effect = _routes({SOURCE: (200, SERVICE_INDEX)})

        assert NuGetRegistryClient(SOURCE).get_deprecation_metadata("Nope") == {}

    @patch("registry.nuget.client.get_json")
    def test_failed_page_raises(self, mock_get_json):
        """Test a missing referenced page is an error."""
        mock_get_json.side_effect = _routes({
            SOURCE: (200, SERVICE_INDEX),
            REG + "contoso.lib/index.json": (200, {"items": [{"@id": REG + "contoso.lib/page.json"}]}),
        })

        with pytest.raises(RegistryReadError):
            NuGetRegistryClient(SOURCE).get_deprecation_metadata("Contoso.Lib")


V2 = "https://feed.example.com/api/v2"
V2_QUERY = V2 + "/FindPackagesById()?id='Contoso.Lib'&semVerLevel=2.0.0"
V2_NEXT = V2 + "/FindPackagesById()?id='Contoso.Lib'&semVerLevel=2.0.0&$skiptoken='Contoso.Lib','2.0.0'"


def _atom_feed(versions, next_url=None):
    """Build an OData Atom feed page like the ones V2 servers return."""
    entries = "".join(
        "<entry><id>x</id><m:properties>"
        f"<d:Id>Contoso.Lib</d:Id><d:Version>{version}</d:Version>"
        "</m:properties></entry>"
        for version in versions
    )
    link = f'<link rel="next" href="{next_url}" />' if next_url else ""
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<feed xml:base="https://feed.example.com/api/v2/" xmlns="http://www.w3.org/2005/Atom" '
        'xmlns:d="http://schemas.microsoft.com/ado/2007/08/dataservices" '
        'xmlns:m="http://schemas.microsoft.com/ado/2007/08/dataservices/metadata">'
        f"<title type=\"text\">FindPackagesById</title>{entries}{link}</feed>"
    )


def _text_routes(mapping):
    """Build a robust_get side effect answering from ``mapping``; unknown URLs 404."""
    def fake_robust_get(url, **_kwargs):
        value = mapping.get(url)
        if value is None:
            return 404, {}, ""
        status, text = value
        return status, {}, text
    return fake_robust_get


class TestListVersionsV2:
    """Test version listing on V2 (OData) feeds."""

    @patch("registry.nuget.client.robust_get")
    @patch("registry.nuget.client.get_json")
    def test_atom_feed(self, mock_get_json, mock_robust_get):
        """Test versions are read from Atom entry properties."""
        mock_get_json.side_effect = _routes({V2: (200, None)})
        mock_robust_get.side_effect = _text_routes({V2_QUERY: (200, _atom_feed(["1.0.0", "1.1.0-beta"]))})

        versions = NuGetRegistryClient(V2).list_versions("Contoso.Lib")

        assert versions == {parse_version("1.0.0"), parse_version("1.1.0-beta")}

    @patch("registry.nuget.client.robust_get")
    @patch("registry.nuget.client.get_json")
    def test_atom_feed_follows_next_links(self, mock_get_json, mock_robust_get):
        """Test every page of a paged feed is read."""
        mock_get_json.side_effect = _routes({V2: (200, None)})
        mock_robust_get.side_effect = _text_routes({
            V2_QUERY: (200, _atom_feed(["1.0.0", "2.0.0"], next_url=V2_NEXT)),
            V2_NEXT: (200, _atom_feed(["3.0.0"])),
        })

        versions = NuGetRegistryClient(V2).list_versions("Contoso.Lib")

        assert versions == {parse_version("1.0.0"), parse_version("2.0.0"), parse_version("3.0.0")}
        assert mock_robust_get.call_count == 2

    @patch("registry.nuget.client.robust_get")
    @patch("registry.nuget.client.get_json")
    def test_next_link_loop_stops(self, mock_get_json, mock_robust_get):
        """Test a page linking to itself is only read once."""
        mock_get_json.side_effect = _routes({V2: (200, None)})
        mock_robust_get.side_effect = _text_routes({V2_QUERY: (200, _atom_feed(["1.0.0"], next_url=V2_QUERY))})

        assert NuGetRegistryClient(V2).list_versions("Contoso.Lib") == {parse_version("1.0.0")}
        assert mock_robust_get.call_count == 1

    @patch("registry.nuget.client.robust_get")
    @patch("registry.nuget.client.get_json")
    def test_json_fallback(self, mock_get_json, mock_robust_get):
        """Test OData JSON responses are still understood."""
        mock_get_json.side_effect = _routes({V2: (200, None)})
        mock_robust_get.side_effect = _text_routes({
            V2_QUERY: (200, '{"d": {"results": [{"Version": "1.0.0"}, {"Version": "1.1.0"}]}}'),
        })

        assert NuGetRegistryClient(V2).list_versions("Contoso.Lib") == {parse_version("1.0.0"), parse_version("1.1.0")}

    @patch("registry.nuget.client.robust_get")
    @patch("registry.nuget.client.get_json")
    def test_unknown_package(self, mock_get_json, mock_robust_get):
        """Test a 404 from the feed means no versions."""
        mock_get_json.side_effect = _routes({V2: (200, None)})
        mock_robust_get.side_effect = _text_routes({})

        assert NuGetRegistryClient(V2).list_versions("Contoso.Lib") == set()

    @patch("registry.nuget.client.robust_get")
    @patch("registry.nuget.client.get_json")
    def test_unreadable_body_raises(self, mock_get_json, mock_robust_get):
        """Test a body that is neither Atom nor JSON is an error."""
        mock_get_json.side_effect = _routes({V2: (200, None)})
        mock_robust_get.side_effect = _text_routes({V2_QUERY: (200, "<html><body>login</body></html>")})

        with pytest.raises(RegistryReadError, match="Unexpected response 200"):
            NuGetRegistryClient(V2).list_versions("Contoso.Lib")

    def test_atom_feed_through_session(self):
        """Test a V2 feed answering every request with Atom over a real client stack."""
        response = MagicMock()
        response.status_code = 200
        response.headers = {"Content-Type": "application/atom+xml"}
        response.text = _atom_feed(["1.0.0", "2.0.0"])
        session = MagicMock()
        session.get.return_value = response

        client = NuGetRegistryClient(V2, session=session)

        assert not client.is_v3()
        assert client.list_versions("Contoso.Lib") == {parse_version("1.0.0"), parse_version("2.0.0")}
