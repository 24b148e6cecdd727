"""Verification state machine for meter readings.

A pending reading either becomes ``verified``, which deducts its dispensed
volume from the tank behind its nozzle, or ``disputed``, which leaves the
tank alone. Both are terminal.

Verifying runs as one unit of work on the session: lock the reading, resolve
the tank, append the ledger entry and move the tank volume unless the entry
already exists, then mark the reading verified. It commits as a whole or is
rolled back as a whole.
"""

import logging
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy.orm import Session

from fuelstation.core.clock import Clock
from fuelstation.models.enums import InventoryOperation, VerificationStatus
from fuelstation.models.meter_reading import MeterReading
from fuelstation.services.errors import (
    BackdatingReasonRequired,
    DisputeReasonRequired,
    InvalidStateTransition,
    ReadingNotFound,
    ReconciliationError,
    VerificationFailed,
)
from fuelstation.services.inventory_ledger import InventoryLedger
from fuelstation.services.reading_store import ReadingStore
from fuelstation.services.tank_registry import TankRegistry

logger = logging.getLogger(__name__)


@dataclass
class VerificationFailure:
    """Outcome of one reading that could not be verified in a batch."""

    reading_id: int
    code: str
    message: str
    retryable: bool = False


@dataclass
class BulkVerifyResult:
    """Per-reading outcomes of a bulk verification."""

    succeeded: list[int] = field(default_factory=list)
    failed: list[VerificationFailure] = field(default_factory=list)


class VerificationEngine:
    """Moves readings out of ``pending`` and applies them to tank inventory."""

    def __init__(
        self,
        db: Session,
        store: ReadingStore,
        ledger: InventoryLedger,
        tanks: TankRegistry,
        clock: Clock,
    ) -> None:
        self.db = db
        self.store = store
        self.ledger = ledger
        self.tanks = tanks
        self.clock = clock

    def _load_pending(self, reading_id: int) -> MeterReading:
        reading = self.store.get_for_update(reading_id)
        if reading is None:
            raise ReadingNotFound(f"Reading {reading_id} not found")
        if not reading.get_is_pending():
            logger.warning(
                "Reading %s is already %s",
                reading_id,
                VerificationStatus(reading.verification_status).value,
            )
            raise InvalidStateTransition(
                f"Reading {reading_id} is already "
                f"{VerificationStatus(reading.verification_status).value}"
            )
        return reading

    def verify(self, reading_id: int, verified_by: int) -> MeterReading:
        """Verify a pending reading and deduct it from its tank exactly once.

        Raises:
            ReadingNotFound: no reading with this ID
            InvalidStateTransition: reading is not pending
            BackdatingReasonRequired: backdated reading lost its justification
            VerificationFailed: any other failure; nothing was changed
        """
        try:
            reading = self._apply_verification(reading_id, verified_by)
            self.db.commit()
        except ReconciliationError:
            self.db.rollback()
            raise
        except Exception as exc:
            self.db.rollback()
            logger.exception("Verification of reading %s rolled back", reading_id)
            raise VerificationFailed(f"Verification of reading {reading_id} failed: {exc}") from exc

        self.db.refresh(reading)
        logger.info("Reading %s verified by %s", reading.id, verified_by)
        return reading

    def _apply_verification(self, reading_id: int, verified_by: int) -> MeterReading:
        reading = self._load_pending(reading_id)
        if reading.is_backdated and not (reading.backdating_reason or "").strip():
            raise BackdatingReasonRequired(
                f"Backdated reading {reading_id} has no justification and cannot be verified"
            )

        tank_id = self.tanks.tank_id_for_nozzle(reading.nozzle_id)
        if tank_id is None:
            raise LookupError(f"No tank is connected to nozzle {reading.nozzle_id}")

        now = self.clock.now()
        if self.ledger.find(tank_id, reading.id) is None:
            tank = self.tanks.get_for_update(tank_id)
            if tank is None:
                raise LookupError(f"Tank {tank_id} not found")
            entry = self.ledger.append(
                tank,
                InventoryOperation.DISPENSING,
                -reading.dispensed_volume,
                applied_by=verified_by,
                applied_at=now,
                reading_id=reading.id,
            )
            self.tanks.apply(tank, entry)
            if tank.current_volume < 0:
                logger.warning("Tank %s volume is negative: %s", tank.id, tank.current_volume)
        else:
            logger.warning(
                "Reading %s was already applied to tank %s, skipping ledger entry",
                reading.id,
                tank_id,
            )

        reading.verification_status = VerificationStatus.VERIFIED
        reading.verified_by = verified_by
        reading.verified_at = now
        self.db.flush()
        return reading

    def dispute(self, reading_id: int, verified_by: int, reason: str) -> MeterReading:
        """Reject a pending reading. The tank and the ledger are not touched."""
        reason = (reason or "").strip()
        if not reason:
            raise DisputeReasonRequired("A reason is required to dispute a reading")

        try:
            reading = self._load_pending(reading_id)
            reading.verification_status = VerificationStatus.DISPUTED
            reading.verified_by = verified_by
            reading.verified_at = self.clock.now()
            reading.notes = reason
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(reading)
        logger.info("Reading %s disputed by %s", reading.id, verified_by)
        return reading

    def bulk_verify(self, reading_ids: list[int], verified_by: int) -> BulkVerifyResult:
        """Verify each reading in its own unit of work.

        A failure is recorded against its reading and does not undo the
        readings verified before it.
        """
        result = BulkVerifyResult()
        for reading_id in reading_ids:
            try:
                self.verify(reading_id, verified_by)
            except ReconciliationError as exc:
                result.failed.append(
                    VerificationFailure(
                        reading_id=reading_id,
                        code=exc.code,
                        message=exc.message,
                        retryable=exc.retryable,
                    )
                )
            else:
                result.succeeded.append(reading_id)

        logger.info(
            "Bulk verification: %d succeeded, %d failed",
            len(result.succeeded),
            len(result.failed),
        )
        return result

    def pending_readings(self, reading_date: date | None = None) -> list[MeterReading]:
        """The verification queue, optionally for a single date."""
        return self.store.list_pending(reading_date)

    def pending_dates(self) -> list[date]:
        """Dates that still have readings awaiting verification."""
        return self.store.pending_dates()
