"""Tank lookups and the single path that changes a tank's volume."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from fuelstation.models.inventory import TankInventoryEntry
from fuelstation.models.nozzle import Nozzle
from fuelstation.models.pump import Pump
from fuelstation.models.tank import Tank


class TankRegistry:
    """Current volume and capacity per tank."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, tank_id: int) -> Tank | None:
        """Get a tank by ID."""
        return self.db.get(Tank, tank_id)

    def get_for_update(self, tank_id: int) -> Tank | None:
        """Get a tank by ID with its row locked, reloading the current volume."""
        return self.db.execute(
            select(Tank)
            .where(Tank.id == tank_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def tank_id_for_nozzle(self, nozzle_id: int) -> int | None:
        """Resolve the tank feeding a nozzle through its pump."""
        return self.db.execute(
            select(Pump.tank_id).join(Nozzle, Nozzle.pump_id == Pump.id).where(Nozzle.id == nozzle_id)
        ).scalar_one_or_none()

    def apply(self, tank: Tank, entry: TankInventoryEntry) -> Tank:
        """Move the tank to the volume recorded by a ledger entry."""
        if entry.tank_id != tank.id:
            raise ValueError(f"Ledger entry {entry.id} belongs to tank {entry.tank_id}, not {tank.id}")
        if entry.previous_volume != tank.current_volume:
            raise ValueError(
                f"Ledger entry {entry.id} starts at {entry.previous_volume} "
                f"but tank {tank.id} holds {tank.current_volume}"
            )
        tank.current_volume = entry.new_volume
        self.db.flush()
        return tank
