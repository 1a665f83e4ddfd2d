"""Shared datasheet extraction cache, one row per normalized datasheet URL."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, CheckConstraint, Float, Integer, String, Text, func
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Mapped, mapped_column, relationship

from partswap.extensions import db

if TYPE_CHECKING:
    from partswap.models.component import Component

DEFAULT_CACHE_TTL = timedelta(days=30)


def utc_now() -> datetime:
    """Naive UTC timestamp, matching the naive DateTime columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def _default_expiry() -> datetime:
    return utc_now() + DEFAULT_CACHE_TTL


class CacheStatus(str, Enum):
    """Extraction lifecycle of a cache entry."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class DatasheetCacheEntry(db.Model):  # type: ignore[name-defined]
    """Model holding the extraction result of one physical datasheet.

    The same entry is shared by every component variant documented in the
    datasheet; ``pinouts_by_package`` maps a package label to its pin list,
    aliases and MPN suffix hints.
    """

    __tablename__ = "datasheet_cache"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    datasheet_url: Mapped[str] = mapped_column(String(2048), unique=True, nullable=False)
    status: Mapped[CacheStatus] = mapped_column(
        SQLEnum(
            CacheStatus,
            name="datasheet_cache_status",
            values_callable=lambda enum_cls: [item.value for item in enum_cls],
            native_enum=False,
        ),
        nullable=False,
        default=CacheStatus.PENDING,
        index=True,
    )
    raw_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    page_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    text_length: Mapped[int | None] = mapped_column(Integer, nullable=True)
    pinouts_by_package: Mapped[dict[str, Any] | None] = mapped_column(
        JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=True
    )
    specs: Mapped[dict[str, Any] | None] = mapped_column(
        JSON().with_variant(postgresql.JSONB(), "postgresql"), nullable=True
    )
    extraction_model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    extraction_tokens: Mapped[int | None] = mapped_column(Integer, nullable=True)
    extraction_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False, server_default=func.now(), onupdate=func.now()
    )
    expires_at: Mapped[datetime] = mapped_column(
        nullable=False, default=_default_expiry, index=True
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="ck_datasheet_cache_status",
        ),
    )

    components: Mapped[list[Component]] = relationship(
        "Component", back_populates="datasheet_cache_entry", lazy="select"
    )

    def __repr__(self) -> str:
        return f"<DatasheetCacheEntry {self.id}: {self.status.value} {self.datasheet_url[:60]}>"
