"""Component and pinout schemas for request/response validation."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from partswap.models.component import PackageSource, PinoutSource
from partswap.models.pinout import PinFunction
from partswap.utils.package_normalizer import LifecycleStatus, MountingStyle


class PinoutResponseSchema(BaseModel):
    """Schema for a single pin of a component."""

    model_config = ConfigDict(from_attributes=True)

    pin_number: int = Field(description="Pin number", json_schema_extra={"example": 1})
    pin_name: str = Field(description="Pin name as printed in the datasheet", json_schema_extra={"example": "BOOT"})
    pin_function: PinFunction = Field(description="Electrical role of the pin", json_schema_extra={"example": "BOOTSTRAP"})
    description: str | None = Field(default=None, description="Free-text pin description")
    source: str | None = Field(default=None, description="Where the pin data came from", json_schema_extra={"example": "pdf"})
    confidence: float | None = Field(default=None, description="Extraction confidence", json_schema_extra={"example": 0.8})


class ManufacturerSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str = Field(json_schema_extra={"example": "Texas Instruments"})


class ComponentListSchema(BaseModel):
    """Lightweight component representation for listings and replacement results."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Component ID", json_schema_extra={"example": 42})
    mpn: str = Field(description="Manufacturer part number", json_schema_extra={"example": "TPS54331DR"})
    manufacturer: ManufacturerSchema = Field(description="Manufacturer")
    description: str | None = Field(default=None, description="Free-text description")
    package_normalized: str | None = Field(default=None, description="Canonical package name", json_schema_extra={"example": "SOIC-8"})
    pin_count: int | None = Field(default=None, description="Number of pins", json_schema_extra={"example": 8})
    mounting_style: MountingStyle | None = Field(default=None, description="SMD or THT")
    lifecycle_status: LifecycleStatus = Field(description="Lifecycle status")
    specs: dict[str, Any] | None = Field(default=None, description="Electrical specs", json_schema_extra={"example": {"vin_max": 28, "iout_max": 3}})
    confidence_score: float | None = Field(default=None, description="Record confidence in [0,1]")


class ComponentResponseSchema(ComponentListSchema):
    """Full component details including pinouts."""

    datasheet_url: str | None = Field(default=None, description="Datasheet URL")
    package_raw: str | None = Field(default=None, description="Package string as reported by the vendor")
    package_source: PackageSource | None = Field(default=None, description="Where the package name came from")
    data_sources: list[str] | None = Field(default=None, description="Sources that contributed to this record", json_schema_extra={"example": ["digikey", "pdf"]})
    datasheet_cache_id: int | None = Field(default=None, description="Shared datasheet cache entry")
    mpn_suffix: str | None = Field(default=None, description="Package-variant suffix parsed from the MPN", json_schema_extra={"example": "H"})
    pinout_source: PinoutSource | None = Field(default=None, description="How the pinout was assigned")
    pinouts: list[PinoutResponseSchema] = Field(default_factory=list, description="Pins ordered by number")
    created_at: datetime | None = Field(default=None)
    updated_at: datetime | None = Field(default=None)


class ComponentListQuerySchema(BaseModel):
    package: str | None = Field(default=None, description="Filter by package (normalized before matching)")
    manufacturer: str | None = Field(default=None, description="Filter by manufacturer name")
    limit: int = Field(default=100, ge=1, le=1000)
    offset: int = Field(default=0, ge=0)


class ManualPinSchema(BaseModel):
    pin_number: int = Field(..., gt=0, json_schema_extra={"example": 1})
    pin_name: str = Field(..., min_length=1, max_length=100, json_schema_extra={"example": "VIN"})
    pin_function: str = Field(
        ...,
        description="Pin function; unknown values are stored as OTHER",
        json_schema_extra={"example": "INPUT_VOLTAGE"},
    )
    description: str | None = Field(default=None)


class ManualComponentCreateSchema(BaseModel):
    """Schema for importing a component by hand, pinout included."""

    mpn: str = Field(..., min_length=1, max_length=255, json_schema_extra={"example": "AZ1117CH-3.3TRG1"})
    manufacturer: str = Field(..., min_length=1, max_length=255, json_schema_extra={"example": "Diodes Inc"})
    description: str | None = Field(default=None)
    datasheet_url: str | None = Field(default=None, max_length=2048)
    package: str | None = Field(default=None, max_length=255, json_schema_extra={"example": "SOT223"})
    lifecycle_status: str | None = Field(default=None, json_schema_extra={"example": "Active"})
    specs: dict[str, Any] | None = Field(default=None, json_schema_extra={"example": {"vin_max": 15}})
    pinouts: list[ManualPinSchema] = Field(default_factory=list)


class BulkDeleteRequestSchema(BaseModel):
    ids: list[int] = Field(..., min_length=1, max_length=1000, description="Component IDs to delete")


class BulkDeleteResponseSchema(BaseModel):
    deleted_components: int = Field(json_schema_extra={"example": 3})
    deleted_pinouts: int = Field(json_schema_extra={"example": 24})
