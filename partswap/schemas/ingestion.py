"""Schemas for part import requests, per-part results and job summaries."""

from pydantic import BaseModel, Field, field_validator


class ImportRequestSchema(BaseModel):
    """Import a list of MPNs from the vendor sources."""

    mpns: list[str] = Field(
        ...,
        min_length=1,
        description="Manufacturer part numbers to import",
        json_schema_extra={"example": ["TPS54331DR", "AZ1117CH-3.3TRG1"]},
    )
    extract_pinouts: bool = Field(default=True, description="Extract pinouts from the datasheet")
    skip_existing: bool = Field(default=True, description="Skip MPNs already in the database")

    @field_validator("mpns")
    @classmethod
    def strip_mpns(cls, value: list[str]) -> list[str]:
        mpns = [mpn.strip() for mpn in value if mpn and mpn.strip()]
        if not mpns:
            raise ValueError("at least one non-empty MPN is required")
        return mpns


class FamilyImportRequestSchema(BaseModel):
    """Import every catalog variant whose MPN starts with a base part number."""

    base_mpn: str = Field(..., min_length=2, max_length=100, json_schema_extra={"example": "AZ1117"})
    extract_pinouts: bool = Field(default=True)
    skip_existing: bool = Field(default=True)
    limit: int = Field(default=100, ge=1, le=200, description="Maximum search results to consider")


class ImportResult(BaseModel):
    """Outcome of importing one MPN."""

    success: bool = False
    mpn: str
    component_id: int | None = None
    created: bool = False
    skipped: bool = False
    data_sources: list[str] = Field(default_factory=list)
    pinouts_extracted: int = 0
    error: str | None = None


class ImportSummary(BaseModel):
    total: int = 0
    processed: int = 0
    added: int = 0
    skipped: int = 0
    updated: int = 0
    failed: int = 0
    pinouts_extracted: int = 0
    errors: list[str] = Field(default_factory=list)
    cancelled: bool = False


class FamilyImportSummary(BaseModel):
    base_mpn: str
    variants_found: int = 0
    variants: list[str] = Field(default_factory=list)
    imported: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)
    cancelled: bool = False
