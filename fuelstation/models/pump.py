"""Pump database model."""

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fuelstation.core.database import Base
from fuelstation.models.enums import EquipmentStatus

if TYPE_CHECKING:
    from fuelstation.models.nozzle import Nozzle
    from fuelstation.models.tank import Tank


class Pump(Base):
    """Dispenser unit drawing from a single tank."""

    __tablename__ = "pumps"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    status: Mapped[EquipmentStatus] = mapped_column(
        String(20),
        default=EquipmentStatus.ACTIVE,
        index=True,
    )

    # Foreign keys
    tank_id: Mapped[int] = mapped_column(ForeignKey("tanks.id"), index=True)

    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))

    # Relationships
    tank: Mapped["Tank"] = relationship(back_populates="pumps")
    nozzles: Mapped[list["Nozzle"]] = relationship(
        back_populates="pump",
        order_by="Nozzle.nozzle_number",
    )
