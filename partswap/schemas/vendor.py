"""Normalized part record returned by a vendor source."""

from typing import Any

from pydantic import BaseModel, Field

from partswap.models.component import PackageSource


class VendorPart(BaseModel):
    """One vendor's view of a part, before normalization and persistence."""

    source: str = Field(description="Source tag, e.g. 'digikey'")
    mpn: str
    manufacturer: str
    description: str | None = None
    datasheet_url: str | None = None
    lifecycle_status: str | None = Field(default=None, description="Vendor lifecycle text, normalized on import")
    package_raw: str | None = None
    package_source: PackageSource | None = None
    specs: dict[str, Any] = Field(default_factory=dict)
