"""Common plumbing for vendor catalog lookups."""

import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any

import requests
from prometheus_client import Counter, Histogram

from partswap.exceptions import UpstreamUnavailableException
from partswap.models.component import PackageSource
from partswap.schemas.vendor import VendorPart

logger = logging.getLogger(__name__)

VENDOR_API_REQUESTS_TOTAL = Counter(
    "vendor_api_requests_total",
    "Vendor API requests by source, endpoint and status",
    ["source", "endpoint", "status"],
)
VENDOR_API_DURATION_SECONDS = Histogram(
    "vendor_api_duration_seconds",
    "Vendor API request duration in seconds",
    ["source", "endpoint"],
)

# Parameter names carrying the package, most specific first.
PACKAGE_PARAMETER_NAMES: tuple[str, ...] = (
    "supplier device package",
    "package / case",
    "package",
    "case/package",
)

_SPEC_VALUE_RE = re.compile(r"^([\d.]+)\s*([a-zA-Z]*)")
_SPEC_KEY_RE = re.compile(r"\s+")
_DESCRIPTION_PACKAGE_RE = re.compile(
    r"\b(\d{1,3}-(?:SOIC|TSSOP|MSOP|QFN|DFN|SOP|DIP|PDIP)"
    r"|(?:SOIC|TSSOP|MSOP|HTSSOP|QFN|VQFN|DFN|SOP|SOT|TSOT|TO|DIP|PDIP)-?\d{1,3}(?:-\d{1,2})?"
    r"|D2PAK|DPAK)\b",
    re.IGNORECASE,
)


def spec_key(parameter_name: str) -> str:
    """'Voltage - Input (Max)' -> 'voltage_-_input_(max)'"""
    return _SPEC_KEY_RE.sub("_", parameter_name.strip().lower())


def parse_spec_value(value: str | None) -> float | str | None:
    """Leading number of a vendor value ('36V' -> 36.0), else the text unchanged."""
    if value is None:
        return None

    match = _SPEC_VALUE_RE.match(value.strip())
    if match:
        try:
            return float(match.group(1))
        except ValueError:
            pass
    return value


def package_from_parameters(parameters: dict[str, str]) -> str | None:
    lowered = {name.strip().lower(): value for name, value in parameters.items() if value}
    for name in PACKAGE_PARAMETER_NAMES:
        value = lowered.get(name)
        if value and value.strip() not in ("-", "*"):
            return value.strip()
    return None


def package_from_description(description: str | None) -> str | None:
    if not description:
        return None
    match = _DESCRIPTION_PACKAGE_RE.search(description)
    return match.group(1) if match else None


def resolve_package(
    parameters: dict[str, str], description: str | None
) -> tuple[str | None, PackageSource | None]:
    """Raw package name and where it was found: parameters first, then description."""
    package = package_from_parameters(parameters)
    if package:
        return package, PackageSource.API_PARAMS

    package = package_from_description(description)
    if package:
        return package, PackageSource.API_DESCRIPTION

    return None, None


class PartSource(ABC):
    """A vendor catalog that can resolve a manufacturer part number."""

    name: str = ""

    def __init__(self, timeout: int = 30):
        self.timeout = timeout

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether credentials for this source are present."""
        pass

    @abstractmethod
    def lookup(self, mpn: str) -> VendorPart | None:
        """Best match for an exact MPN, or None when the vendor does not list it.

        Raises:
            UpstreamUnavailableException: The vendor could not be reached or
                answered with an error.
        """
        pass

    @abstractmethod
    def search(self, keyword: str, limit: int = 20) -> list[VendorPart]:
        """Keyword search, used to enumerate the variants of a part family."""
        pass

    def _post_json(
        self,
        endpoint: str,
        url: str,
        *,
        json_body: dict[str, Any] | None = None,
        form: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """POST to the vendor and decode the JSON body, recording request metrics."""
        start_time = time.perf_counter()
        try:
            response = requests.post(
                url,
                json=json_body,
                data=form,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            self._record_request(endpoint, "error", time.perf_counter() - start_time)
            raise UpstreamUnavailableException(self.name, f"{endpoint} request failed: {e}") from e
        except ValueError as e:
            self._record_request(endpoint, "error", time.perf_counter() - start_time)
            raise UpstreamUnavailableException(self.name, f"{endpoint} returned invalid JSON") from e

        self._record_request(endpoint, "success", time.perf_counter() - start_time)

        if not isinstance(payload, dict):
            raise UpstreamUnavailableException(self.name, f"{endpoint} returned an unexpected payload")
        return payload

    def _record_request(self, endpoint: str, status: str, duration: float) -> None:
        VENDOR_API_REQUESTS_TOTAL.labels(source=self.name, endpoint=endpoint, status=status).inc()
        VENDOR_API_DURATION_SECONDS.labels(source=self.name, endpoint=endpoint).observe(duration)

    def _require_configured(self) -> None:
        if not self.is_configured:
            raise UpstreamUnavailableException(self.name, "credentials are not configured")
