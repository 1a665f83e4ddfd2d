"""Manufacturer model."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from partswap.extensions import db

if TYPE_CHECKING:
    from partswap.models.component import Component


class Manufacturer(db.Model):  # type: ignore[name-defined]
    """Model representing a component manufacturer under its canonical name."""

    __tablename__ = "manufacturers"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        nullable=False, server_default=func.now()
    )

    components: Mapped[list["Component"]] = relationship(
        "Component", back_populates="manufacturer", lazy="select"
    )

    def __repr__(self) -> str:
        return f"<Manufacturer {self.id}: {self.name}>"
