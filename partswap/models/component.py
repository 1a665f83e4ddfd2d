"""Component model for the replacement database."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column, relationship

from partswap.extensions import db
from partswap.utils.package_normalizer import LifecycleStatus, MountingStyle

if TYPE_CHECKING:
    from partswap.models.datasheet_cache import DatasheetCacheEntry
    from partswap.models.manufacturer import Manufacturer
    from partswap.models.pinout import Pinout


class PackageSource(str, Enum):
    """Where the package name of a component came from."""

    API_PARAMS = "api_params"
    API_DESCRIPTION = "api_description"
    DATASHEET = "datasheet"
    MANUAL = "manual"


class PinoutSource(str, Enum):
    """How the pinout of a component was assigned."""

    DATASHEET_CACHE = "datasheet_cache"
    DIRECT_EXTRACTION = "direct_extraction"
    MANUAL = "manual"


def _enum_values(enum_cls: type[Enum]) -> list[str]:
    return [item.value for item in enum_cls]


class Component(db.Model):  # type: ignore[name-defined]
    """Model representing one orderable part, keyed by (mpn, manufacturer)."""

    __tablename__ = "components"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    mpn: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    manufacturer_id: Mapped[int] = mapped_column(
        ForeignKey("manufacturers.id"), nullable=False
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    datasheet_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    lifecycle_status: Mapped[LifecycleStatus] = mapped_column(
        SQLEnum(
            LifecycleStatus,
            name="lifecycle_status",
            values_callable=_enum_values,
            native_enum=False,
        ),
        nullable=False,
        default=LifecycleStatus.UNKNOWN,
        server_default=LifecycleStatus.UNKNOWN.value,
    )

    package_raw: Mapped[str | None] = mapped_column(String(255), nullable=True)
    package_normalized: Mapped[str | None] = mapped_column(
        String(100), nullable=True, index=True
    )
    package_source: Mapped[PackageSource | None] = mapped_column(
        SQLEnum(
            PackageSource,
            name="package_source",
            values_callable=_enum_values,
            native_enum=False,
        ),
        nullable=True,
    )
    pin_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    mounting_style: Mapped[MountingStyle | None] = mapped_column(
        SQLEnum(
            MountingStyle,
            name="mounting_style",
            values_callable=_enum_values,
            native_enum=False,
        ),
        nullable=True,
    )
    specs: Mapped[dict[str, Any] | None] = mapped_column(
        JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=True
    )
    data_sources: Mapped[list[str] | None] = mapped_column(
        postgresql.ARRAY(Text).with_variant(JSON, "sqlite"), nullable=True
    )
    confidence_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    datasheet_cache_id: Mapped[int | None] = mapped_column(
        ForeignKey("datasheet_cache.id", ondelete="SET NULL"), nullable=True, index=True
    )
    mpn_suffix: Mapped[str | None] = mapped_column(String(20), nullable=True)
    pinout_source: Mapped[PinoutSource | None] = mapped_column(
        SQLEnum(
            PinoutSource,
            name="pinout_source",
            values_callable=_enum_values,
            native_enum=False,
        ),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False, server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("mpn", "manufacturer_id", name="uq_components_mpn_manufacturer"),
        CheckConstraint("pin_count > 0 OR pin_count IS NULL", name="ck_components_pin_count_positive"),
        CheckConstraint(
            "confidence_score IS NULL OR (confidence_score >= 0 AND confidence_score <= 1)",
            name="ck_components_confidence_range",
        ),
    )

    manufacturer: Mapped[Manufacturer] = relationship(
        "Manufacturer", back_populates="components", lazy="selectin"
    )
    pinouts: Mapped[list[Pinout]] = relationship(
        "Pinout",
        back_populates="component",
        cascade="all, delete-orphan",
        lazy="select",
        order_by="Pinout.pin_number",
    )
    datasheet_cache_entry: Mapped[DatasheetCacheEntry | None] = relationship(
        "DatasheetCacheEntry", back_populates="components", lazy="select"
    )

    def __repr__(self) -> str:
        return f"<Component {self.id}: {self.mpn} ({self.package_normalized})>"
