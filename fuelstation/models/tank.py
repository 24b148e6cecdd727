"""Tank database model."""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fuelstation.core.database import Base

if TYPE_CHECKING:
    from fuelstation.models.fuel_type import FuelType
    from fuelstation.models.inventory import TankInventoryEntry
    from fuelstation.models.pump import Pump


class Tank(Base):
    """Storage tank. ``current_volume`` only changes by applying a ledger entry."""

    __tablename__ = "tanks"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), index=True)
    fuel_type_id: Mapped[int] = mapped_column(ForeignKey("fuel_types.id"), index=True)

    capacity: Mapped[Decimal] = mapped_column(Numeric(precision=14, scale=4))
    current_volume: Mapped[Decimal] = mapped_column(
        Numeric(precision=14, scale=4),
        default=Decimal("0"),
    )
    low_level_threshold: Mapped[Decimal | None] = mapped_column(
        Numeric(precision=14, scale=4),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    # Relationships
    fuel_type: Mapped["FuelType"] = relationship(back_populates="tanks")
    pumps: Mapped[list["Pump"]] = relationship(back_populates="tank")
    inventory_entries: Mapped[list["TankInventoryEntry"]] = relationship(
        back_populates="tank",
        order_by="TankInventoryEntry.id",
    )

    def get_fill_percentage(self) -> Decimal:
        """Fill level as a percentage of capacity, clamped to 0-100."""
        if self.capacity <= 0:
            return Decimal("0")
        percentage = (self.current_volume / self.capacity * 100).quantize(Decimal("0.01"))
        return min(Decimal("100"), max(Decimal("0"), percentage))

    def get_is_low(self) -> bool:
        """Check if the tank is at or below its low level threshold."""
        if self.low_level_threshold is None:
            return False
        return self.current_volume <= self.low_level_threshold
