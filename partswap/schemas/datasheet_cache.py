"""Datasheet cache administration schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from partswap.models.component import PinoutSource
from partswap.models.datasheet_cache import CacheStatus


class CacheStatsSchema(BaseModel):
    total: int = Field(json_schema_extra={"example": 120})
    completed: int = Field(json_schema_extra={"example": 110})
    failed: int = Field(json_schema_extra={"example": 6})
    processing: int = Field(json_schema_extra={"example": 1})
    pending: int = Field(json_schema_extra={"example": 3})
    total_tokens: int = Field(default=0, description="Tokens spent on completed extractions")
    total_cost: float = Field(default=0.0, description="Dollars spent on completed extractions")


class CacheEntrySummarySchema(BaseModel):
    """Cache entry without the extracted payload."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    datasheet_url: str
    status: CacheStatus
    page_count: int | None = None
    text_length: int | None = None
    extraction_model: str | None = None
    extraction_tokens: int | None = None
    extraction_cost: float | None = None
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime
    expires_at: datetime


class CacheEntryDetailSchema(CacheEntrySummarySchema):
    pinouts_by_package: dict[str, Any] | None = None
    specs: dict[str, Any] | None = None
    raw_text: str | None = Field(default=None, description="Only returned with include_raw_text=true")


class CacheEntryListSchema(BaseModel):
    entries: list[CacheEntrySummarySchema]
    total: int
    page: int
    page_size: int


class CacheListQuerySchema(BaseModel):
    status: CacheStatus | None = Field(default=None)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=25, ge=1, le=200)


class CacheEntryQuerySchema(BaseModel):
    include_raw_text: bool = Field(default=False)


class CacheComponentSchema(BaseModel):
    id: int
    mpn: str
    manufacturer: str
    package_normalized: str | None = None
    pinout_source: PinoutSource | None = None


class ReextractRequestSchema(BaseModel):
    mpn_hint: str | None = Field(default=None, description="Part number used as family hint; defaults to a linked component")


class ReextractResponseSchema(BaseModel):
    cache_id: int
    status: CacheStatus
    package_variants: int = Field(default=0)
    page_count: int = Field(default=0)
    text_length: int = Field(default=0)


class ClearCacheResponseSchema(BaseModel):
    deleted_count: int = Field(json_schema_extra={"example": 4})
