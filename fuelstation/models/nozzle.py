"""Nozzle database model."""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fuelstation.core.database import Base
from fuelstation.models.enums import EquipmentStatus

if TYPE_CHECKING:
    from fuelstation.models.fuel_type import FuelType
    from fuelstation.models.meter_reading import MeterReading
    from fuelstation.models.pump import Pump


class Nozzle(Base):
    """Dispensing outlet on a pump, bound to one fuel type."""

    __tablename__ = "nozzles"
    __table_args__ = (UniqueConstraint("pump_id", "nozzle_number", name="uq_nozzle_pump_number"),)

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    nozzle_number: Mapped[int] = mapped_column()
    status: Mapped[EquipmentStatus] = mapped_column(
        String(20),
        default=EquipmentStatus.ACTIVE,
    )

    # Foreign keys
    pump_id: Mapped[int] = mapped_column(ForeignKey("pumps.id"), index=True)
    fuel_type_id: Mapped[int] = mapped_column(ForeignKey("fuel_types.id"))

    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))

    # Relationships
    pump: Mapped["Pump"] = relationship(back_populates="nozzles")
    fuel_type: Mapped["FuelType"] = relationship()
    readings: Mapped[list["MeterReading"]] = relationship(back_populates="nozzle")

    def get_accepts_readings(self) -> bool:
        """Check if readings may be recorded against this nozzle."""
        return (
            self.status == EquipmentStatus.ACTIVE
            and self.pump.status != EquipmentStatus.INACTIVE
        )
