"""Component, manufacturer and pinout persistence."""

import logging
from collections.abc import Iterable, Sequence
from typing import Any, Protocol

from sqlalchemy import delete, func, select
from sqlalchemy.orm import selectinload

from partswap.exceptions import RecordNotFoundException
from partswap.models.component import Component, PackageSource, PinoutSource
from partswap.models.manufacturer import Manufacturer
from partswap.models.pinout import Pinout
from partswap.schemas.component import ManualComponentCreateSchema
from partswap.services.base import BaseService
from partswap.utils.package_normalizer import (
    extract_pin_count,
    get_mounting_style,
    normalize_lifecycle,
    normalize_manufacturer,
    normalize_package,
)
from partswap.utils.pinout_matching import extract_mpn_suffix, map_to_pin_function

logger = logging.getLogger(__name__)

# Component columns an upsert may write
UPSERT_FIELDS = frozenset({
    "description",
    "datasheet_url",
    "lifecycle_status",
    "package_raw",
    "package_normalized",
    "package_source",
    "pin_count",
    "mounting_style",
    "specs",
    "data_sources",
    "confidence_score",
    "datasheet_cache_id",
    "mpn_suffix",
    "pinout_source",
})


class PinInput(Protocol):
    pin_number: int
    pin_name: str
    pin_function: Any


class ComponentService(BaseService):
    """Service class for component persistence operations."""

    def get_or_create_manufacturer(self, name: str) -> Manufacturer:
        """Find a manufacturer by canonical name, creating it when missing."""
        canonical = normalize_manufacturer(name) or name
        stmt = select(Manufacturer).where(func.lower(Manufacturer.name) == canonical.lower())
        manufacturer = self.db.execute(stmt).scalar_one_or_none()
        if manufacturer:
            return manufacturer

        manufacturer = Manufacturer(name=canonical)
        self.db.add(manufacturer)
        self.db.flush()
        logger.info(f"Created manufacturer {canonical}")
        return manufacturer

    def upsert_component(self, mpn: str, manufacturer_name: str, **fields: Any) -> tuple[Component, bool]:
        """Insert or update a component keyed on (mpn, manufacturer).

        Only fields passed with a non-None value are written, so a later
        source with less data does not erase what an earlier one found.

        Returns:
            The component and whether it was created
        """
        unknown = set(fields) - UPSERT_FIELDS
        if unknown:
            raise ValueError(f"Unknown component fields: {sorted(unknown)}")

        manufacturer = self.get_or_create_manufacturer(manufacturer_name)

        stmt = select(Component).where(
            Component.mpn == mpn,
            Component.manufacturer_id == manufacturer.id,
        )
        component = self.db.execute(stmt).scalar_one_or_none()
        created = component is None

        if component is None:
            component = Component(mpn=mpn, manufacturer=manufacturer)
            self.db.add(component)

        for key, value in fields.items():
            if value is not None:
                setattr(component, key, value)

        self.db.flush()
        return component, created

    def replace_pinouts(
        self,
        component: Component,
        pins: Iterable[PinInput],
        source: str,
        default_confidence: float | None = None,
    ) -> int:
        """Make the component's pinout equal to ``pins``, keyed by pin number.

        Existing rows for a pin number are updated in place, pin numbers
        no longer present are removed. Duplicate pin numbers keep the first
        occurrence. Returns the number of pins stored.
        """
        incoming: dict[int, PinInput] = {}
        for pin in pins:
            incoming.setdefault(pin.pin_number, pin)

        existing = {pinout.pin_number: pinout for pinout in component.pinouts}

        for pin_number, pinout in existing.items():
            if pin_number not in incoming:
                component.pinouts.remove(pinout)

        for pin_number, pin in incoming.items():
            confidence = getattr(pin, "confidence", None)
            if confidence is None:
                confidence = default_confidence
            values = {
                "pin_name": pin.pin_name,
                "pin_function": map_to_pin_function(pin.pin_function),
                "description": getattr(pin, "description", None),
                "source": source,
                "confidence": confidence,
            }
            pinout = existing.get(pin_number)
            if pinout is None:
                component.pinouts.append(Pinout(pin_number=pin_number, **values))
            else:
                for key, value in values.items():
                    setattr(pinout, key, value)

        self.db.flush()
        # reload so the in-memory collection follows pin_number order
        self.db.refresh(component, attribute_names=["pinouts"])
        return len(incoming)

    def get_component(self, component_id: int) -> Component:
        stmt = (
            select(Component)
            .options(selectinload(Component.pinouts))
            .where(Component.id == component_id)
        )
        component = self.db.execute(stmt).scalar_one_or_none()
        if not component:
            raise RecordNotFoundException("Component", component_id)
        return component

    def get_component_by_mpn(self, mpn: str) -> Component | None:
        """Case-insensitive MPN lookup; the oldest record wins when several manufacturers share an MPN."""
        stmt = (
            select(Component)
            .options(selectinload(Component.pinouts))
            .where(func.lower(Component.mpn) == mpn.strip().lower())
            .order_by(Component.id)
            .limit(1)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def require_component_by_mpn(self, mpn: str) -> Component:
        component = self.get_component_by_mpn(mpn)
        if not component:
            raise RecordNotFoundException("Component", mpn)
        return component

    def exists_by_mpn(self, mpn: str) -> bool:
        stmt = select(func.count(Component.id)).where(func.lower(Component.mpn) == mpn.strip().lower())
        return self.db.execute(stmt).scalar_one() > 0

    def get_components_by_package(self, package_normalized: str, exclude_id: int | None = None) -> list[Component]:
        """All components sharing a normalized package, pinouts loaded, in id order."""
        stmt = (
            select(Component)
            .options(selectinload(Component.pinouts))
            .where(Component.package_normalized == package_normalized)
            .order_by(Component.id)
        )
        if exclude_id is not None:
            stmt = stmt.where(Component.id != exclude_id)
        return list(self.db.execute(stmt).scalars().all())

    def list_components(
        self,
        package: str | None = None,
        manufacturer: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Component]:
        stmt = select(Component).order_by(Component.mpn, Component.id)

        if package:
            stmt = stmt.where(Component.package_normalized == normalize_package(package))
        if manufacturer:
            canonical = normalize_manufacturer(manufacturer) or manufacturer
            stmt = stmt.join(Component.manufacturer).where(
                func.lower(Manufacturer.name) == canonical.lower()
            )

        stmt = stmt.limit(limit).offset(offset)
        return list(self.db.execute(stmt).scalars().all())

    def import_manual_component(self, data: ManualComponentCreateSchema) -> Component:
        """Create or update a component from operator-supplied data, pinout included."""
        package_normalized = normalize_package(data.package) if data.package else None

        pin_count = extract_pin_count(package_normalized)
        if data.pinouts:
            pin_count = max(pin.pin_number for pin in data.pinouts)

        component, created = self.upsert_component(
            data.mpn.strip(),
            data.manufacturer,
            description=data.description,
            datasheet_url=data.datasheet_url,
            lifecycle_status=normalize_lifecycle(data.lifecycle_status),
            package_raw=data.package,
            package_normalized=package_normalized,
            package_source=PackageSource.MANUAL if data.package else None,
            pin_count=pin_count,
            mounting_style=get_mounting_style(package_normalized),
            specs=data.specs,
            data_sources=["manual"],
            confidence_score=1.0 if data.pinouts else None,
            mpn_suffix=extract_mpn_suffix(data.mpn),
            pinout_source=PinoutSource.MANUAL if data.pinouts else None,
        )

        if data.pinouts:
            self.replace_pinouts(component, data.pinouts, source="manual", default_confidence=1.0)

        logger.info(f"{'Created' if created else 'Updated'} component {component.mpn} manually with {len(data.pinouts)} pins")
        return component

    def bulk_delete(self, component_ids: Sequence[int]) -> tuple[int, int]:
        """Delete components by id, dependent pinouts first.

        Returns:
            (deleted components, deleted pinouts)
        """
        ids = list(set(component_ids))
        if not ids:
            return 0, 0

        pinout_result = self.db.execute(
            delete(Pinout).where(Pinout.component_id.in_(ids))
        )
        component_result = self.db.execute(
            delete(Component).where(Component.id.in_(ids))
        )
        self.db.expire_all()

        deleted_pinouts = pinout_result.rowcount or 0
        deleted_components = component_result.rowcount or 0
        logger.info(f"Bulk deleted {deleted_components} components and {deleted_pinouts} pinouts")
        return deleted_components, deleted_pinouts
