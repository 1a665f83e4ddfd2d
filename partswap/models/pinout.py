"""Pinout model: one pin of one component."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Float, ForeignKey, String, Text, UniqueConstraint, func
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from partswap.extensions import db

if TYPE_CHECKING:
    from partswap.models.component import Component


class PinFunction(str, Enum):
    """Closed set of electrical roles a pin can have."""

    INPUT_VOLTAGE = "INPUT_VOLTAGE"
    OUTPUT_VOLTAGE = "OUTPUT_VOLTAGE"
    GROUND = "GROUND"
    ENABLE = "ENABLE"
    FEEDBACK = "FEEDBACK"
    BOOTSTRAP = "BOOTSTRAP"
    SWITCH_NODE = "SWITCH_NODE"
    COMPENSATION = "COMPENSATION"
    SOFT_START = "SOFT_START"
    POWER_GOOD = "POWER_GOOD"
    FREQUENCY = "FREQUENCY"
    SYNC = "SYNC"
    NC = "NC"
    ADJUST = "ADJUST"
    OTHER = "OTHER"


class Pinout(db.Model):  # type: ignore[name-defined]
    """Model representing a single pin assignment of a component."""

    __tablename__ = "pinouts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    component_id: Mapped[int] = mapped_column(
        ForeignKey("components.id", ondelete="CASCADE"), nullable=False, index=True
    )
    pin_number: Mapped[int] = mapped_column(nullable=False)
    pin_name: Mapped[str] = mapped_column(String(100), nullable=False)
    pin_function: Mapped[PinFunction] = mapped_column(
        SQLEnum(
            PinFunction,
            name="pin_function",
            values_callable=lambda enum_cls: [item.value for item in enum_cls],
            native_enum=False,
        ),
        nullable=False,
        default=PinFunction.OTHER,
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str | None] = mapped_column(String(50), nullable=True)
    confidence: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        nullable=False, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("component_id", "pin_number", name="uq_pinouts_component_pin"),
        CheckConstraint("pin_number > 0", name="ck_pinouts_pin_number_positive"),
        CheckConstraint(
            "confidence IS NULL OR (confidence >= 0 AND confidence <= 1)",
            name="ck_pinouts_confidence_range",
        ),
    )

    component: Mapped[Component] = relationship(
        "Component", back_populates="pinouts", lazy="select"
    )

    def __repr__(self) -> str:
        return f"<Pinout {self.component_id}#{self.pin_number} {self.pin_name} {self.pin_function.value}>"
