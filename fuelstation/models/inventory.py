"""TankInventoryEntry database model - the append-only tank ledger."""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fuelstation.core.database import Base
from fuelstation.models.enums import InventoryOperation

if TYPE_CHECKING:
    from fuelstation.models.meter_reading import MeterReading
    from fuelstation.models.tank import Tank


class TankInventoryEntry(Base):
    """Immutable record of one change to a tank's volume."""

    __tablename__ = "tank_inventory"
    # A reading is applied to its tank at most once
    __table_args__ = (UniqueConstraint("tank_id", "reading_id", name="uq_tank_inventory_reading"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    operation_type: Mapped[InventoryOperation] = mapped_column(String(20), index=True)

    previous_volume: Mapped[Decimal] = mapped_column(Numeric(precision=14, scale=4))
    change_amount: Mapped[Decimal] = mapped_column(Numeric(precision=14, scale=4))
    new_volume: Mapped[Decimal] = mapped_column(Numeric(precision=14, scale=4))

    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    applied_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        index=True,
    )
    applied_by: Mapped[int] = mapped_column()

    # Foreign keys
    tank_id: Mapped[int] = mapped_column(ForeignKey("tanks.id"), index=True)
    reading_id: Mapped[int | None] = mapped_column(
        ForeignKey("meter_readings.id"),
        nullable=True,
        index=True,
    )

    # Relationships
    tank: Mapped["Tank"] = relationship(back_populates="inventory_entries")
    reading: Mapped["MeterReading | None"] = relationship()
