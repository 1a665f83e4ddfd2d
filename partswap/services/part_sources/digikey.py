"""DigiKey Product Information API (v4) part source."""

import logging
import threading
import time
from collections.abc import Callable
from typing import Any

import requests

from partswap.exceptions import UpstreamUnavailableException
from partswap.schemas.vendor import VendorPart
from partswap.services.part_sources.base import (
    VENDOR_API_REQUESTS_TOTAL,
    PartSource,
    parse_spec_value,
    resolve_package,
    spec_key,
)

logger = logging.getLogger(__name__)

DIGIKEY_TOKEN_URL = "https://api.digikey.com/v1/oauth2/token"
DIGIKEY_API_BASE_URL = "https://api.digikey.com/products/v4"

# Tokens are refreshed this many seconds before they expire.
TOKEN_REFRESH_MARGIN_SECONDS = 60


class DigiKeySession:
    """Process-wide OAuth client-credentials token for the DigiKey API."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        timeout: int = 30,
        clock: Callable[[], float] = time.time,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._access_token: str | None = None
        self._expires_at: float = 0.0

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def get_token(self) -> str:
        """Return a valid access token, fetching a new one when needed."""
        with self._lock:
            now = self._clock()
            if self._access_token and now < self._expires_at - TOKEN_REFRESH_MARGIN_SECONDS:
                return self._access_token

            logger.info("Requesting new DigiKey access token")
            data = self._request_token()
            try:
                self._access_token = str(data["access_token"])
                self._expires_at = now + float(data.get("expires_in", 0))
            except (KeyError, TypeError, ValueError) as e:
                raise UpstreamUnavailableException("digikey", "token response was malformed") from e

            return self._access_token

    def invalidate(self) -> None:
        with self._lock:
            self._access_token = None
            self._expires_at = 0.0

    def _request_token(self) -> dict[str, Any]:
        try:
            response = requests.post(
                DIGIKEY_TOKEN_URL,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            VENDOR_API_REQUESTS_TOTAL.labels(source="digikey", endpoint="token", status="error").inc()
            raise UpstreamUnavailableException("digikey", f"token request failed: {e}") from e

        VENDOR_API_REQUESTS_TOTAL.labels(source="digikey", endpoint="token", status="success").inc()
        if not isinstance(data, dict):
            raise UpstreamUnavailableException("digikey", "token response was malformed")
        return data


def map_digikey_lifecycle(part: dict[str, Any]) -> str:
    """Lifecycle word for a DigiKey product record.

    DigiKey only lists stocked products, so a missing status means Active.
    """
    if part.get("EndOfLife") is True or part.get("Discontinued") is True:
        return "Obsolete"

    status = part.get("ProductStatus")
    if isinstance(status, dict):
        status = status.get("Status") or status.get("status")
    if not status or not isinstance(status, str):
        return "Active"

    lower = status.lower()
    if "active" in lower or "in stock" in lower:
        return "Active"
    if "obsolete" in lower or "end of life" in lower or "discontinued" in lower:
        return "Obsolete"
    if (
        "nrnd" in lower
        or "not recommended" in lower
        or "last time buy" in lower
        or "not for new" in lower
    ):
        return "NRND"
    return "Unknown"


def _description_text(part: dict[str, Any]) -> str | None:
    description = part.get("Description")
    if isinstance(description, str):
        return description or None
    if isinstance(description, dict):
        return description.get("ProductDescription") or description.get("DetailedDescription") or None
    return part.get("ProductDescription") or part.get("DetailedDescription") or None


def _mpn(part: dict[str, Any]) -> str | None:
    mpn = (
        part.get("ManufacturerPartNumber")
        or part.get("ManufacturerProductNumber")
        or part.get("PartNumber")
    )
    if not mpn:
        variations = part.get("ProductVariations") or []
        if variations and isinstance(variations[0], dict):
            mpn = variations[0].get("ManufacturerPartNumber")
    return mpn.strip() if isinstance(mpn, str) and mpn.strip() else None


class DigiKeyPartSource(PartSource):
    """Looks parts up through the DigiKey keyword search endpoint."""

    name = "digikey"

    def __init__(self, session: DigiKeySession, timeout: int = 30):
        super().__init__(timeout=timeout)
        self.session = session

    @property
    def is_configured(self) -> bool:
        return self.session.is_configured

    def lookup(self, mpn: str) -> VendorPart | None:
        products = self._keyword_search(mpn, record_count=1, exact=True)
        for product in products:
            part = self.normalize_part(product)
            if part is not None:
                return part
        return None

    def search(self, keyword: str, limit: int = 20) -> list[VendorPart]:
        products = self._keyword_search(keyword, record_count=limit, exact=False)
        parts = [self.normalize_part(product) for product in products]
        return [part for part in parts if part is not None]

    def normalize_part(self, product: dict[str, Any]) -> VendorPart | None:
        """Convert a raw DigiKey product into a VendorPart; None when it has no MPN."""
        mpn = _mpn(product)
        if mpn is None:
            logger.warning("Skipping DigiKey product without a manufacturer part number")
            return None

        parameters: dict[str, str] = {}
        specs: dict[str, Any] = {}
        for parameter in product.get("Parameters") or []:
            if not isinstance(parameter, dict):
                continue
            name = parameter.get("ParameterText") or parameter.get("Parameter")
            value = parameter.get("ValueText") or parameter.get("Value")
            if not name or value is None:
                continue
            parameters[name] = str(value)
            specs[spec_key(name)] = parse_spec_value(str(value))

        manufacturer = product.get("Manufacturer")
        if isinstance(manufacturer, dict):
            manufacturer = manufacturer.get("Name")
        if not isinstance(manufacturer, str) or not manufacturer.strip():
            manufacturer = "Unknown"

        description = _description_text(product)
        package_raw, package_source = resolve_package(parameters, description)

        return VendorPart(
            source=self.name,
            mpn=mpn,
            manufacturer=manufacturer.strip(),
            description=description,
            datasheet_url=(
                product.get("PrimaryDatasheet")
                or product.get("DatasheetUrl")
                or product.get("PrimaryDatasheetUrl")
                or None
            ),
            lifecycle_status=map_digikey_lifecycle(product),
            package_raw=package_raw,
            package_source=package_source,
            specs=specs,
        )

    def _keyword_search(self, keywords: str, record_count: int, exact: bool) -> list[dict[str, Any]]:
        self._require_configured()

        body: dict[str, Any] = {
            "Keywords": keywords,
            "RecordCount": record_count,
            "RecordStartPosition": 0,
        }
        if exact:
            body["ExactManufacturerPartNumberMatch"] = True

        headers = {
            "Authorization": f"Bearer {self.session.get_token()}",
            "X-DIGIKEY-Client-Id": self.session.client_id,
        }
        response_data = self._post_json(
            "search/keyword",
            f"{DIGIKEY_API_BASE_URL}/search/keyword",
            json_body=body,
            headers=headers,
        )

        products = response_data.get("Products") or []
        logger.info(f"DigiKey search for '{keywords}' returned {len(products)} products")
        return [product for product in products if isinstance(product, dict)]
