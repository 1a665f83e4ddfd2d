"""Replacement search result schemas."""

from enum import Enum

from pydantic import BaseModel, Field

from partswap.models.pinout import PinFunction
from partswap.schemas.component import ComponentListSchema


class Severity(str, Enum):
    COMPATIBLE = "compatible"
    WARNING = "warning"
    INCOMPATIBLE = "incompatible"


class PinDifference(BaseModel):
    pin_number: int = Field(json_schema_extra={"example": 3})
    original_function: PinFunction
    replacement_function: PinFunction
    severity: Severity


class PinoutMatchResult(BaseModel):
    """Coverage of the original's pins by a candidate."""

    matched: int = Field(description="Original pins whose function the candidate repeats")
    total: int = Field(description="Number of pins of the original")
    score: float = Field(description="matched / total")
    differences: list[PinDifference] = Field(default_factory=list)


class SpecsMatchResult(BaseModel):
    compatible: list[str] = Field(default_factory=list, json_schema_extra={"example": ["Input voltage"]})
    incompatible: list[str] = Field(default_factory=list, json_schema_extra={"example": ["Iout max: 2A < 3A"]})
    warnings: list[str] = Field(default_factory=list, json_schema_extra={"example": ["Vout range: 0.8-5V vs 0.6-6V"]})
    score: float = Field(description="(compatible + 0.5 * warnings) / checks, 0.5 when nothing could be checked")


class ReplacementResult(BaseModel):
    """One ranked candidate for a replacement query."""

    component: ComponentListSchema
    match_score: float = Field(description="0.6 * pinout score + 0.4 * specs score", json_schema_extra={"example": 0.92})
    pinout_match: PinoutMatchResult
    specs_match: SpecsMatchResult


class ReplacementListSchema(BaseModel):
    original: ComponentListSchema
    results: list[ReplacementResult]
