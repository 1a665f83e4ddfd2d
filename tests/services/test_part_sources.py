"""Tests for the vendor catalog part sources."""

from unittest.mock import Mock, patch

import pytest
import requests

from partswap.exceptions import UpstreamUnavailableException
from partswap.models.component import PackageSource
from partswap.services.part_sources.base import (
    package_from_description,
    parse_spec_value,
    resolve_package,
    spec_key,
)
from partswap.services.part_sources.digikey import (
    DigiKeyPartSource,
    DigiKeySession,
    map_digikey_lifecycle,
)
from partswap.services.part_sources.mouser import MouserPartSource, map_mouser_lifecycle


def _response(payload) -> Mock:
    response = Mock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


MOUSER_PART = {
    "ManufacturerPartNumber": "TPS54331DR",
    "Manufacturer": "Texas Instruments",
    "Description": "Switching Voltage Regulators 3.5-28V 3A Step Down",
    "DataSheetUrl": "https://www.ti.com/lit/ds/symlink/tps54331.pdf",
    "LifecycleStatus": "New Product",
    "ProductAttributes": [
        {"AttributeName": "Package / Case", "AttributeValue": "SOIC-8"},
    ],
}


class TestVendorHelpers:
    """Test cases for the shared vendor parsing helpers."""

    def test_spec_key(self):
        assert spec_key(" Voltage - Input (Max) ") == "voltage_-_input_(max)"

    def test_parse_spec_value(self):
        assert parse_spec_value("36V") == 36.0
        assert parse_spec_value("2.5 A") == 2.5
        assert parse_spec_value("Adjustable") == "Adjustable"
        assert parse_spec_value(None) is None

    def test_package_prefers_parameters(self):
        package, source = resolve_package(
            {"Supplier Device Package": "8-SOIC", "Package / Case": "8-SOIC (0.154\", 3.90mm Width)"},
            "Buck converter in TSSOP-14",
        )
        assert package == "8-SOIC"
        assert source == PackageSource.API_PARAMS

    def test_package_from_description(self):
        package, source = resolve_package({"Package / Case": "-"}, "LDO regulator 1A SOT-223 Tape")
        assert package == "SOT-223"
        assert source == PackageSource.API_DESCRIPTION

    def test_no_package(self):
        assert resolve_package({}, None) == (None, None)
        assert package_from_description("Generic regulator") is None


class TestMouserPartSource:
    """Test cases for MouserPartSource."""

    def test_unconfigured_source_raises(self):
        source = MouserPartSource(api_key="")

        assert not source.is_configured
        with pytest.raises(UpstreamUnavailableException):
            source.lookup("TPS54331DR")

    def test_lookup_prefers_exact_match(self):
        source = MouserPartSource(api_key="secret")
        prefix_hit = dict(MOUSER_PART, ManufacturerPartNumber="TPS54331DRG4")
        payload = {"Errors": [], "SearchResults": {"NumberOfResult": 2, "Parts": [prefix_hit, MOUSER_PART]}}

        with patch("requests.post", return_value=_response(payload)) as post:
            part = source.lookup("tps54331dr")

        assert part.mpn == "TPS54331DR"
        assert part.source == "mouser"
        assert part.lifecycle_status == "Active"
        assert part.package_raw == "SOIC-8"
        assert part.package_source == PackageSource.API_PARAMS
        assert part.datasheet_url == "https://www.ti.com/lit/ds/symlink/tps54331.pdf"

        url = post.call_args.args[0]
        assert url.startswith("https://api.mouser.com/api/v1/search/partnumber?apikey=secret")
        assert post.call_args.kwargs["json"]["SearchByPartRequest"]["mouserPartNumber"] == "tps54331dr"

    def test_lookup_not_listed(self):
        source = MouserPartSource(api_key="secret")

        with patch("requests.post", return_value=_response({"SearchResults": {"Parts": []}})):
            assert source.lookup("NOPE") is None

    def test_api_errors_raise(self):
        source = MouserPartSource(api_key="secret")
        payload = {"Errors": [{"Message": "Invalid unique identifier."}]}

        with patch("requests.post", return_value=_response(payload)):
            with pytest.raises(UpstreamUnavailableException, match="Invalid unique identifier"):
                source.lookup("TPS54331DR")

    def test_network_error_raises(self):
        source = MouserPartSource(api_key="secret")

        with patch("requests.post", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(UpstreamUnavailableException, match="mouser is unavailable"):
                source.lookup("TPS54331DR")

    def test_search_skips_records_without_mpn(self):
        source = MouserPartSource(api_key="secret")
        payload = {"SearchResults": {"Parts": [MOUSER_PART, {"Manufacturer": "TI"}]}}

        with patch("requests.post", return_value=_response(payload)) as post:
            parts = source.search("TPS5433", limit=5)

        assert [part.mpn for part in parts] == ["TPS54331DR"]
        assert post.call_args.kwargs["json"]["SearchByKeywordRequest"]["records"] == 5

    def test_lifecycle_mapping(self):
        assert map_mouser_lifecycle("End of Life") == "Obsolete"
        assert map_mouser_lifecycle("Not Recommended for New Designs") == "NRND"
        assert map_mouser_lifecycle(None) == "Unknown"
        assert map_mouser_lifecycle("Something else") == "Unknown"


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


DIGIKEY_PRODUCT = {
    "ManufacturerProductNumber": "AZ1117CH-3.3TRG1",
    "Manufacturer": {"Id": 31, "Name": "Diodes Incorporated"},
    "Description": {"ProductDescription": "IC REG LINEAR 3.3V 1A SOT223"},
    "PrimaryDatasheet": "https://www.diodes.com/assets/Datasheets/AZ1117C.pdf",
    "ProductStatus": {"Id": 0, "Status": "Active"},
    "Parameters": [
        {"ParameterText": "Supplier Device Package", "ValueText": "SOT-223-3"},
        {"ParameterText": "Voltage - Input (Max)", "ValueText": "18V"},
        {"ParameterText": "Current - Output", "ValueText": "1A"},
    ],
}


class TestDigiKeySession:
    """Test cases for the DigiKey OAuth token cache."""

    def test_token_is_cached_until_refresh_margin(self):
        clock = FakeClock()
        session = DigiKeySession("id", "secret", clock=clock)
        tokens = [
            _response({"access_token": "first", "expires_in": 600}),
            _response({"access_token": "second", "expires_in": 600}),
        ]

        with patch("requests.post", side_effect=tokens) as post:
            assert session.get_token() == "first"
            clock.now += 500
            assert session.get_token() == "first"
            clock.now += 60
            assert session.get_token() == "second"

        assert post.call_count == 2
        assert post.call_args.kwargs["data"]["grant_type"] == "client_credentials"

    def test_invalidate_forces_new_token(self):
        session = DigiKeySession("id", "secret", clock=FakeClock())

        with patch("requests.post", return_value=_response({"access_token": "t", "expires_in": 600})) as post:
            session.get_token()
            session.invalidate()
            session.get_token()

        assert post.call_count == 2

    def test_malformed_token_response(self):
        session = DigiKeySession("id", "secret", clock=FakeClock())

        with patch("requests.post", return_value=_response({"error": "invalid_client"})):
            with pytest.raises(UpstreamUnavailableException, match="malformed"):
                session.get_token()


class TestDigiKeyPartSource:
    """Test cases for DigiKeyPartSource."""

    def test_unconfigured_source(self):
        source = DigiKeyPartSource(DigiKeySession("", ""))

        assert not source.is_configured
        with pytest.raises(UpstreamUnavailableException):
            source.search("AZ1117")

    def test_lookup(self):
        source = DigiKeyPartSource(DigiKeySession("client", "secret", clock=FakeClock()))
        responses = [
            _response({"access_token": "token", "expires_in": 600}),
            _response({"Products": [DIGIKEY_PRODUCT]}),
        ]

        with patch("requests.post", side_effect=responses) as post:
            part = source.lookup("AZ1117CH-3.3TRG1")

        assert part.mpn == "AZ1117CH-3.3TRG1"
        assert part.manufacturer == "Diodes Incorporated"
        assert part.description == "IC REG LINEAR 3.3V 1A SOT223"
        assert part.lifecycle_status == "Active"
        assert part.package_raw == "SOT-223-3"
        assert part.package_source == PackageSource.API_PARAMS
        assert part.specs["voltage_-_input_(max)"] == 18.0
        assert part.specs["current_-_output"] == 1.0

        search_call = post.call_args_list[1]
        assert search_call.kwargs["json"]["ExactManufacturerPartNumberMatch"] is True
        assert search_call.kwargs["headers"]["Authorization"] == "Bearer token"
        assert search_call.kwargs["headers"]["X-DIGIKEY-Client-Id"] == "client"

    def test_products_without_mpn_are_skipped(self):
        source = DigiKeyPartSource(DigiKeySession("client", "secret", clock=FakeClock()))
        responses = [
            _response({"access_token": "token", "expires_in": 600}),
            _response({"Products": [{"Manufacturer": {"Name": "X"}}, DIGIKEY_PRODUCT]}),
        ]

        with patch("requests.post", side_effect=responses):
            parts = source.search("AZ1117", limit=10)

        assert [part.mpn for part in parts] == ["AZ1117CH-3.3TRG1"]

    @pytest.mark.parametrize(
        "product,expected",
        [
            ({}, "Active"),
            ({"ProductStatus": {"Status": "Obsolete"}}, "Obsolete"),
            ({"ProductStatus": "Last Time Buy"}, "NRND"),
            ({"ProductStatus": "Not For New Designs"}, "NRND"),
            ({"ProductStatus": "Marketplace"}, "Unknown"),
            ({"ProductStatus": "Active", "Discontinued": True}, "Obsolete"),
        ],
    )
    def test_lifecycle_mapping(self, product, expected):
        assert map_digikey_lifecycle(product) == expected
