"""SQLAlchemy models for the component replacement database."""

# Import all models here for Alembic auto-generation
from partswap.models.component import Component, PackageSource, PinoutSource
from partswap.models.datasheet_cache import CacheStatus, DatasheetCacheEntry
from partswap.models.llm_prompt import LLMPrompt
from partswap.models.manufacturer import Manufacturer
from partswap.models.pinout import PinFunction, Pinout

__all__: list[str] = [
    "CacheStatus",
    "Component",
    "DatasheetCacheEntry",
    "LLMPrompt",
    "Manufacturer",
    "PackageSource",
    "PinFunction",
    "Pinout",
    "PinoutSource",
]
