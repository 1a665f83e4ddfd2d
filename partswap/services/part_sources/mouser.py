"""Mouser Search API part source."""

import logging
from typing import Any
from urllib.parse import quote_plus

from partswap.exceptions import UpstreamUnavailableException
from partswap.schemas.vendor import VendorPart
from partswap.services.part_sources.base import PartSource, resolve_package

logger = logging.getLogger(__name__)

MOUSER_LIFECYCLE_MAP: dict[str, str] = {
    "New Product": "Active",
    "Factory Special Order": "Active",
    "Not Recommended for New Designs": "NRND",
    "End of Life": "Obsolete",
    "Obsolete": "Obsolete",
}


def map_mouser_lifecycle(status: str | None) -> str:
    if not status:
        return "Unknown"
    return MOUSER_LIFECYCLE_MAP.get(status.strip(), "Unknown")


class MouserPartSource(PartSource):
    """Looks parts up through the Mouser Search API (v1)."""

    name = "mouser"

    MOUSER_API_BASE_URL = "https://api.mouser.com/api/v1"

    def __init__(self, api_key: str, timeout: int = 30):
        super().__init__(timeout=timeout)
        self.api_key = api_key

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def lookup(self, mpn: str) -> VendorPart | None:
        self._require_configured()

        body = {
            "SearchByPartRequest": {
                "mouserPartNumber": mpn,
                "partSearchOptions": "",
            }
        }
        parts = self._search_parts("partnumber", body)
        if not parts:
            return None

        # Mouser matches prefixes; prefer the exact MPN when it is present.
        wanted = mpn.strip().upper()
        for part in parts:
            if (part.get("ManufacturerPartNumber") or "").strip().upper() == wanted:
                return self.normalize_part(part)
        return self.normalize_part(parts[0])

    def search(self, keyword: str, limit: int = 20) -> list[VendorPart]:
        self._require_configured()

        body = {
            "SearchByKeywordRequest": {
                "keyword": keyword,
                "records": limit,
                "startingRecord": 0,
            }
        }
        parts = self._search_parts("keyword", body)
        return [self.normalize_part(part) for part in parts if part.get("ManufacturerPartNumber")]

    def normalize_part(self, part: dict[str, Any]) -> VendorPart:
        """Convert a raw Mouser part record into a VendorPart."""
        description = part.get("Description") or None
        parameters = {
            attribute.get("AttributeName", ""): attribute.get("AttributeValue", "")
            for attribute in part.get("ProductAttributes") or []
            if isinstance(attribute, dict)
        }
        package_raw, package_source = resolve_package(parameters, description)

        return VendorPart(
            source=self.name,
            mpn=(part.get("ManufacturerPartNumber") or "").strip(),
            manufacturer=(part.get("Manufacturer") or "Unknown").strip(),
            description=description,
            datasheet_url=part.get("DataSheetUrl") or None,
            lifecycle_status=map_mouser_lifecycle(part.get("LifecycleStatus")),
            package_raw=package_raw,
            package_source=package_source,
        )

    def _search_parts(self, endpoint: str, body: dict[str, Any]) -> list[dict[str, Any]]:
        url = f"{self.MOUSER_API_BASE_URL}/search/{endpoint}?apikey={quote_plus(self.api_key)}"
        response_data = self._post_json(endpoint, url, json_body=body)

        errors = response_data.get("Errors") or []
        if errors:
            error_msg = "; ".join(
                err.get("Message", str(err)) if isinstance(err, dict) else str(err) for err in errors
            )
            logger.warning(f"Mouser API returned errors: {error_msg}")
            raise UpstreamUnavailableException(self.name, error_msg)

        search_results = response_data.get("SearchResults") or {}
        parts = search_results.get("Parts") or []

        logger.info(
            f"Mouser {endpoint} search returned {len(parts)} parts "
            f"(total available: {search_results.get('NumberOfResult', 0)})"
        )
        return [part for part in parts if isinstance(part, dict)]
