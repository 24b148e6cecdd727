"""FuelType database model."""

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fuelstation.core.database import Base

if TYPE_CHECKING:
    from fuelstation.models.tank import Tank


class FuelType(Base):
    """Grade of fuel sold at the station."""

    __tablename__ = "fuel_types"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, index=True)

    tanks: Mapped[list["Tank"]] = relationship(back_populates="fuel_type")
