"""Recording and editing of nozzle meter readings."""

import logging
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fuelstation.core.clock import Clock
from fuelstation.models.enums import VerificationStatus
from fuelstation.models.meter_reading import MeterReading
from fuelstation.models.nozzle import Nozzle
from fuelstation.services.backdating import BackdatingPolicy, split_notes
from fuelstation.services.errors import (
    DuplicateReading,
    InvalidReadingDate,
    InvalidReadingRange,
    InvalidReadingValue,
    InvalidStateTransition,
    ReadingNotFound,
    UnknownOrInactiveNozzle,
)
from fuelstation.services.quantities import parse_quantity
from fuelstation.services.reading_store import ReadingStore

logger = logging.getLogger(__name__)


def _parse_reading_pair(
    opening: Decimal | str | int,
    closing: Decimal | str | int,
) -> tuple[Decimal, Decimal]:
    """Parse opening and closing values and check their order."""
    values = {}
    for name, raw in (("opening", opening), ("closing", closing)):
        try:
            values[name] = parse_quantity(raw)
        except ValueError as exc:
            raise InvalidReadingValue(f"Invalid {name} reading: {exc}") from exc

    if values["closing"] < values["opening"]:
        raise InvalidReadingRange(
            f"Closing reading {values['closing']} must be greater than or equal to "
            f"opening reading {values['opening']}"
        )
    return values["opening"], values["closing"]


class ReadingRecorder:
    """Accepts new and edited readings for the verification queue."""

    def __init__(
        self,
        db: Session,
        store: ReadingStore,
        policy: BackdatingPolicy,
        clock: Clock,
    ) -> None:
        self.db = db
        self.store = store
        self.policy = policy
        self.clock = clock

    def record_reading(
        self,
        nozzle_id: int,
        reading_date: date,
        opening: Decimal | str | int,
        closing: Decimal | str | int,
        recorded_by: int,
        notes: str | None = None,
        backdating_reason: str | None = None,
    ) -> MeterReading:
        """Record a new pending reading for a nozzle and date.

        Raises:
            InvalidReadingValue, InvalidReadingRange: bad totaliser values
            InvalidReadingDate: reading date in the future
            UnknownOrInactiveNozzle: nozzle missing or out of service
            DuplicateReading: a reading already exists for the nozzle and date
            BackdatingReasonRequired: backdated without a justification
        """
        opening_value, closing_value = _parse_reading_pair(opening, closing)

        if reading_date > self.clock.today():
            raise InvalidReadingDate(f"Reading date {reading_date.isoformat()} is in the future")

        nozzle = self.db.get(Nozzle, nozzle_id)
        if nozzle is None or not nozzle.get_accepts_readings():
            raise UnknownOrInactiveNozzle(f"Nozzle {nozzle_id} does not exist or is not active")

        if self.store.find(nozzle_id, reading_date) is not None:
            logger.warning("Duplicate reading for nozzle %s on %s", nozzle_id, reading_date)
            raise DuplicateReading(
                f"A reading for nozzle {nozzle_id} on {reading_date.isoformat()} already exists"
            )

        if backdating_reason is None and self.policy.requires_justification(reading_date):
            # Older clients send the justification inside the notes string
            backdating_reason, notes = split_notes(notes)
        reason = self.policy.validate(reading_date, backdating_reason)

        reading = MeterReading(
            nozzle_id=nozzle_id,
            reading_date=reading_date,
            opening_reading=opening_value,
            closing_reading=closing_value,
            dispensed_volume=closing_value - opening_value,
            recorded_by=recorded_by,
            notes=(notes or "").strip(),
            backdating_reason=reason,
            is_backdated=reason is not None,
        )
        try:
            self.store.add(reading)
            self.db.commit()
        except IntegrityError as exc:
            # Lost a race with another insert for the same nozzle and date
            self.db.rollback()
            raise DuplicateReading(
                f"A reading for nozzle {nozzle_id} on {reading_date.isoformat()} already exists"
            ) from exc

        self.db.refresh(reading)
        logger.info(
            "Recorded reading %s: nozzle %s on %s, dispensed %s%s",
            reading.id,
            nozzle_id,
            reading_date,
            reading.dispensed_volume,
            " (backdated)" if reading.is_backdated else "",
        )
        return reading

    def edit_reading(
        self,
        reading_id: int,
        opening: Decimal | str | int,
        closing: Decimal | str | int,
        recorded_by: int,
        notes: str | None = None,
        backdating_reason: str | None = None,
    ) -> MeterReading:
        """Replace the values and free-form notes of a pending reading.

        An existing backdating justification is kept as it was. The reading row
        stays locked from the status check until the commit.
        """
        try:
            reading = self.store.get_for_update(reading_id)
            if reading is None:
                raise ReadingNotFound(f"Reading {reading_id} not found")
            if not reading.get_is_pending():
                raise InvalidStateTransition(
                    f"Reading {reading_id} is "
                    f"{VerificationStatus(reading.verification_status).value} "
                    "and can no longer be edited"
                )

            opening_value, closing_value = _parse_reading_pair(opening, closing)
            if backdating_reason is None and self.policy.requires_justification(
                reading.reading_date
            ):
                backdating_reason, notes = split_notes(notes)
            reason = self.policy.merge(
                reading.reading_date, reading.backdating_reason, backdating_reason
            )

            reading.opening_reading = opening_value
            reading.closing_reading = closing_value
            reading.dispensed_volume = closing_value - opening_value
            reading.recorded_by = recorded_by
            reading.notes = (notes or "").strip()
            reading.backdating_reason = reason
            reading.is_backdated = reason is not None

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(reading)
        logger.info("Edited reading %s: dispensed %s", reading.id, reading.dispensed_volume)
        return reading

    def suggest_opening_readings(self, reading_date: date) -> dict[int, Decimal]:
        """Previous day's closing reading per nozzle, to pre-fill openings."""
        return self.store.closing_readings_on(reading_date - timedelta(days=1))
