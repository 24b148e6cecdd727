"""Persistence for meter readings."""

from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fuelstation.models.enums import VerificationStatus
from fuelstation.models.meter_reading import MeterReading
from fuelstation.models.nozzle import Nozzle
from fuelstation.models.pump import Pump


class ReadingStore:
    """Reads and writes ``MeterReading`` rows on an explicit session.

    The store never commits; the recorder and the verification engine own
    the transaction boundary.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, reading_id: int) -> MeterReading | None:
        """Get a reading by ID."""
        return self.db.get(MeterReading, reading_id)

    def get_for_update(self, reading_id: int) -> MeterReading | None:
        """Get a reading by ID, locking its row for the current transaction."""
        return self.db.execute(
            select(MeterReading)
            .where(MeterReading.id == reading_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def find(self, nozzle_id: int, reading_date: date) -> MeterReading | None:
        """Get the reading for a nozzle on a date, if one exists."""
        return self.db.execute(
            select(MeterReading).where(
                MeterReading.nozzle_id == nozzle_id,
                MeterReading.reading_date == reading_date,
            )
        ).scalar_one_or_none()

    def add(self, reading: MeterReading) -> MeterReading:
        """Stage a new reading and flush it so constraint violations surface."""
        self.db.add(reading)
        self.db.flush()
        return reading

    def list_by_date(self, reading_date: date) -> list[MeterReading]:
        """All readings taken on a date, ordered by pump and nozzle."""
        return list(
            self.db.execute(
                select(MeterReading)
                .join(MeterReading.nozzle)
                .join(Nozzle.pump)
                .where(MeterReading.reading_date == reading_date)
                .order_by(Pump.name, Nozzle.nozzle_number)
            ).scalars()
        )

    def list_pending(self, reading_date: date | None = None) -> list[MeterReading]:
        """Readings awaiting verification, newest date first."""
        query = (
            select(MeterReading)
            .join(MeterReading.nozzle)
            .join(Nozzle.pump)
            .where(MeterReading.verification_status == VerificationStatus.PENDING)
        )
        if reading_date is not None:
            query = query.where(MeterReading.reading_date == reading_date)
        query = query.order_by(
            MeterReading.reading_date.desc(),
            Pump.name,
            Nozzle.nozzle_number,
        )
        return list(self.db.execute(query).scalars())

    def pending_dates(self) -> list[date]:
        """Distinct dates that still have pending readings, newest first."""
        return list(
            self.db.execute(
                select(MeterReading.reading_date)
                .where(MeterReading.verification_status == VerificationStatus.PENDING)
                .distinct()
                .order_by(MeterReading.reading_date.desc())
            ).scalars()
        )

    def closing_readings_on(self, reading_date: date) -> dict[int, Decimal]:
        """Map nozzle ID to its closing reading on a date."""
        rows = self.db.execute(
            select(MeterReading.nozzle_id, MeterReading.closing_reading).where(
                MeterReading.reading_date == reading_date
            )
        ).all()
        return {nozzle_id: closing for nozzle_id, closing in rows}

    def count_for_nozzles(self, nozzle_ids: list[int]) -> int:
        """Number of readings referencing any of the given nozzles."""
        if not nozzle_ids:
            return 0
        return self.db.execute(
            select(func.count(MeterReading.id)).where(MeterReading.nozzle_id.in_(nozzle_ids))
        ).scalar_one()
