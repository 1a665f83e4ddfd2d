"""Datasheet extraction payloads: LLM structured outputs and the cached per-package form."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from partswap.models.pinout import PinFunction

# Spec keys the extraction prompts ask for, all numeric and unit-less.
SPEC_KEYS: tuple[str, ...] = (
    "vin_min",
    "vin_max",
    "vout_min",
    "vout_max",
    "iout_max",
    "switching_freq_min",
    "switching_freq_max",
    "efficiency",
    "operating_temp_min",
    "operating_temp_max",
)


class ExtractedPin(BaseModel):
    """One pin as stored in a cache entry or produced by direct extraction."""

    pin_number: int = Field(gt=0)
    pin_name: str
    pin_function: str
    confidence: float | None = Field(default=None, ge=0, le=1)


class PackagePinout(BaseModel):
    """Pin list of one package variant plus the hints used to route it to a component."""

    pins: list[ExtractedPin] = Field(default_factory=list)
    aliases: list[str] = Field(default_factory=list)
    suffix_hints: list[str] = Field(default_factory=list)


class DatasheetExtraction(BaseModel):
    """Multi-package extraction result of one datasheet."""

    id: int | None = None
    pinouts_by_package: dict[str, PackagePinout] = Field(default_factory=dict)
    specs: dict[str, Any] = Field(default_factory=dict)
    page_count: int = 0
    text_length: int = 0


class PdfText(BaseModel):
    text: str
    page_count: int


class PackageExtractionResult(BaseModel):
    """What the LLM adapter hands back to the cache engine."""

    pinouts_by_package: dict[str, PackagePinout] = Field(default_factory=dict)
    specs: dict[str, Any] = Field(default_factory=dict)
    model: str | None = None
    tokens: int = 0
    cost: float | None = None


# Structured output models sent to OpenAI. Strict mode needs every field
# present and no extra keys, so maps are expressed as lists here.

class LLMPin(BaseModel):
    model_config = ConfigDict(extra="forbid")

    pin_number: int = Field(...)
    pin_name: str = Field(...)
    pin_function: PinFunction = Field(...)
    confidence: float | None = Field(...)


class LLMSpecs(BaseModel):
    model_config = ConfigDict(extra="forbid")

    vin_min: float | None = Field(..., description="Minimum input voltage (V)")
    vin_max: float | None = Field(..., description="Maximum input voltage (V)")
    vout_min: float | None = Field(..., description="Minimum output voltage (V)")
    vout_max: float | None = Field(..., description="Maximum output voltage (V)")
    iout_max: float | None = Field(..., description="Maximum output current (A)")
    switching_freq_min: float | None = Field(..., description="Minimum switching frequency (Hz)")
    switching_freq_max: float | None = Field(..., description="Maximum switching frequency (Hz)")
    efficiency: float | None = Field(..., description="Peak efficiency as a decimal")
    operating_temp_min: float | None = Field(..., description="Minimum operating temperature (C)")
    operating_temp_max: float | None = Field(..., description="Maximum operating temperature (C)")

    def to_spec_map(self) -> dict[str, Any]:
        """Only the values the model actually found."""
        return {key: value for key, value in self.model_dump().items() if value is not None}


class LLMPackage(BaseModel):
    model_config = ConfigDict(extra="forbid")

    package_name: str = Field(..., description="Package label as printed in the datasheet, e.g. SOT-223")
    pins: list[LLMPin] = Field(...)
    aliases: list[str] = Field(..., description="Other names for the same package")
    suffix_hints: list[str] = Field(..., description="MPN suffix letters that select this package")


class LLMMultiPackageResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    packages: list[LLMPackage] = Field(...)
    specs: LLMSpecs = Field(...)
    notes: str | None = Field(...)


class LLMPinoutResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    pinouts: list[LLMPin] = Field(...)


class LLMSpecsResponse(BaseModel):
    model_config = ConfigDict(extra="forbid")

    specs: LLMSpecs = Field(...)
    confidence: float | None = Field(...)
