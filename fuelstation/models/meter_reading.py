"""MeterReading database model - one row per nozzle per day."""

from datetime import UTC, date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fuelstation.core.database import Base
from fuelstation.models.enums import VerificationStatus

if TYPE_CHECKING:
    from fuelstation.models.nozzle import Nozzle


class MeterReading(Base):
    """Opening/closing totaliser pair for a nozzle on a reading date."""

    __tablename__ = "meter_readings"
    __table_args__ = (
        UniqueConstraint("nozzle_id", "reading_date", name="uq_meter_reading_nozzle_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    reading_date: Mapped[date] = mapped_column(index=True)

    # Totaliser values (using Decimal for precision)
    opening_reading: Mapped[Decimal] = mapped_column(Numeric(precision=14, scale=4))
    closing_reading: Mapped[Decimal] = mapped_column(Numeric(precision=14, scale=4))
    dispensed_volume: Mapped[Decimal] = mapped_column(Numeric(precision=14, scale=4))

    recorded_by: Mapped[int] = mapped_column()
    notes: Mapped[str] = mapped_column(Text, default="")
    backdating_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_backdated: Mapped[bool] = mapped_column(default=False)

    # Verification state, written only by the verification engine
    verification_status: Mapped[VerificationStatus] = mapped_column(
        String(20),
        default=VerificationStatus.PENDING,
        index=True,
    )
    verified_by: Mapped[int | None] = mapped_column(nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Foreign keys
    nozzle_id: Mapped[int] = mapped_column(ForeignKey("nozzles.id"), index=True)

    created_at: Mapped[datetime] = mapped_column(default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    # Relationships
    nozzle: Mapped["Nozzle"] = relationship(back_populates="readings")

    def get_is_pending(self) -> bool:
        """Check if the reading is still awaiting verification."""
        return self.verification_status == VerificationStatus.PENDING
