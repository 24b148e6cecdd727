"""Append-only tank inventory ledger."""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from fuelstation.models.enums import InventoryOperation
from fuelstation.models.inventory import TankInventoryEntry
from fuelstation.models.tank import Tank
from fuelstation.services.quantities import quantize

logger = logging.getLogger(__name__)


class InventoryLedger:
    """Journal of tank volume changes.

    Entries are only ever inserted. The ``(tank_id, reading_id)`` unique
    constraint on the table guarantees a reading is applied at most once,
    whatever the caller checked beforehand.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def find(self, tank_id: int, reading_id: int) -> TankInventoryEntry | None:
        """Get the entry a reading produced against a tank, if any."""
        return self.db.execute(
            select(TankInventoryEntry).where(
                TankInventoryEntry.tank_id == tank_id,
                TankInventoryEntry.reading_id == reading_id,
            )
        ).scalar_one_or_none()

    def append(
        self,
        tank: Tank,
        operation_type: InventoryOperation,
        change_amount: Decimal,
        applied_by: int,
        applied_at: datetime,
        reading_id: int | None = None,
        reference: str | None = None,
        notes: str | None = None,
    ) -> TankInventoryEntry:
        """Record a change against the tank's current volume.

        The new volume is computed from the tank as loaded by the caller,
        which must hold the tank's row lock.
        """
        previous_volume = quantize(tank.current_volume)
        change_amount = quantize(change_amount)
        entry = TankInventoryEntry(
            tank_id=tank.id,
            operation_type=operation_type,
            reading_id=reading_id,
            reference=reference,
            previous_volume=previous_volume,
            change_amount=change_amount,
            new_volume=previous_volume + change_amount,
            notes=notes,
            applied_at=applied_at,
            applied_by=applied_by,
        )
        self.db.add(entry)
        self.db.flush()
        logger.info(
            "Ledger entry %s: tank %s %s %s -> %s",
            entry.id,
            tank.id,
            operation_type.value,
            change_amount,
            entry.new_volume,
        )
        return entry

    def count_for_tank(self, tank_id: int) -> int:
        """Number of ledger entries recorded against a tank."""
        return self.db.execute(
            select(func.count(TankInventoryEntry.id)).where(TankInventoryEntry.tank_id == tank_id)
        ).scalar_one()

    def entries_for_tank(
        self,
        tank_id: int,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[TankInventoryEntry], int]:
        """Get ledger history for a tank with pagination, newest first."""
        total = self.count_for_tank(tank_id)
        entries = self.db.execute(
            select(TankInventoryEntry)
            .where(TankInventoryEntry.tank_id == tank_id)
            .order_by(TankInventoryEntry.id.desc())
            .offset(offset)
            .limit(limit)
        ).scalars()
        return list(entries), total

    def replay(self, tank_id: int) -> tuple[Decimal, int]:
        """Rebuild a tank's volume from its ledger.

        Returns the ledger-derived volume and the number of entries whose
        ``previous_volume`` does not continue the chain from the entry
        before it.
        """
        entries = self.db.execute(
            select(TankInventoryEntry)
            .where(TankInventoryEntry.tank_id == tank_id)
            .order_by(TankInventoryEntry.id)
        ).scalars()

        volume = Decimal("0")
        broken_links = 0
        for entry in entries:
            if entry.previous_volume != volume:
                broken_links += 1
            volume = quantize(volume + entry.change_amount)
        return volume, broken_links
