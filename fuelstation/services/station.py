"""Station equipment service: fuel types, tanks, pumps and nozzles."""

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fuelstation.models.enums import InventoryOperation
from fuelstation.models.fuel_type import FuelType
from fuelstation.models.inventory import TankInventoryEntry
from fuelstation.models.nozzle import Nozzle
from fuelstation.models.pump import Pump
from fuelstation.models.tank import Tank
from fuelstation.schemas.inventory import DeliveryCreate, TankReconciliation
from fuelstation.schemas.station import (
    FuelTypeCreate,
    NozzleCreate,
    PumpCreate,
    PumpUpdate,
    TankCreate,
    TankUpdate,
)
from fuelstation.services.errors import (
    DuplicateEquipment,
    EquipmentInUse,
    FuelTypeNotFound,
    InvalidTankOperation,
    NozzleNotFound,
    PumpNotFound,
    TankNotFound,
)
from fuelstation.services.inventory_ledger import InventoryLedger
from fuelstation.services.quantities import quantize
from fuelstation.services.reading_store import ReadingStore
from fuelstation.services.tank_registry import TankRegistry

logger = logging.getLogger(__name__)


# Fuel types


def create_fuel_type(db: Session, fuel_type_data: FuelTypeCreate) -> FuelType:
    """Create a fuel type with a unique name."""
    existing = db.query(FuelType).filter(FuelType.name == fuel_type_data.name).first()
    if existing:
        raise DuplicateEquipment(f"Fuel type '{fuel_type_data.name}' already exists")
    fuel_type = FuelType(name=fuel_type_data.name)
    db.add(fuel_type)
    db.commit()
    db.refresh(fuel_type)
    return fuel_type


def get_fuel_types(db: Session) -> list[FuelType]:
    """Get all fuel types ordered by name."""
    return db.query(FuelType).order_by(FuelType.name).all()


def _get_fuel_type(db: Session, fuel_type_id: int) -> FuelType:
    fuel_type = db.get(FuelType, fuel_type_id)
    if not fuel_type:
        raise FuelTypeNotFound(f"Fuel type {fuel_type_id} not found")
    return fuel_type


# Tanks


def apply_stock_movement(
    db: Session,
    tank_id: int,
    operation_type: InventoryOperation,
    change_amount: Decimal,
    applied_by: int,
    applied_at: datetime,
    reference: str | None = None,
    notes: str | None = None,
) -> TankInventoryEntry:
    """Change a tank's volume through a ledger entry within the open transaction.

    The resulting volume must stay between zero and the tank's capacity.
    """
    tanks = TankRegistry(db)
    tank = tanks.get_for_update(tank_id)
    if tank is None:
        raise TankNotFound(f"Tank {tank_id} not found")

    new_volume = quantize(tank.current_volume + change_amount)
    if new_volume < 0:
        raise InvalidTankOperation(
            f"Tank {tank_id} holds {tank.current_volume}; cannot remove {-change_amount}"
        )
    if new_volume > tank.capacity:
        raise InvalidTankOperation(
            f"Tank {tank_id} would hold {new_volume}, above its capacity of {tank.capacity}"
        )

    entry = InventoryLedger(db).append(
        tank,
        operation_type,
        change_amount,
        applied_by=applied_by,
        applied_at=applied_at,
        reference=reference,
        notes=notes,
    )
    tanks.apply(tank, entry)
    return entry


def create_tank(
    db: Session,
    tank_data: TankCreate,
    created_by: int,
    created_at: datetime,
) -> Tank:
    """Register a tank; its opening stock is written as an initial ledger entry."""
    _get_fuel_type(db, tank_data.fuel_type_id)

    tank = Tank(
        name=tank_data.name,
        fuel_type_id=tank_data.fuel_type_id,
        capacity=tank_data.capacity,
        current_volume=Decimal("0"),
        low_level_threshold=tank_data.low_level_threshold,
    )
    db.add(tank)
    db.flush()  # Get tank.id

    try:
        if tank_data.initial_volume > 0:
            apply_stock_movement(
                db,
                tank.id,
                InventoryOperation.INITIAL,
                tank_data.initial_volume,
                applied_by=created_by,
                applied_at=created_at,
                notes="Opening stock",
            )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(tank)
    logger.info("Registered tank %s with %s", tank.id, tank.current_volume)
    return tank


def get_tank(db: Session, tank_id: int) -> Tank:
    """Get a tank by ID."""
    tank = TankRegistry(db).get(tank_id)
    if not tank:
        raise TankNotFound(f"Tank {tank_id} not found")
    return tank


def get_tanks(db: Session) -> list[Tank]:
    """Get all tanks ordered by name."""
    return db.query(Tank).order_by(Tank.name).all()


def update_tank(db: Session, tank_id: int, tank_data: TankUpdate) -> Tank:
    """Update a tank's name, capacity or low level threshold.

    Fields sent as null are left as they are.
    """
    tank = get_tank(db, tank_id)

    update_data = tank_data.model_dump(exclude_unset=True, exclude_none=True)
    capacity = update_data.get("capacity", tank.capacity)
    if capacity < tank.current_volume:
        raise InvalidTankOperation(
            f"Capacity {capacity} is below the current volume of {tank.current_volume}"
        )
    threshold = update_data.get("low_level_threshold", tank.low_level_threshold)
    if threshold is not None and threshold > capacity:
        raise InvalidTankOperation("Low level threshold must be between 0 and tank capacity")

    for field, value in update_data.items():
        setattr(tank, field, value)

    db.commit()
    db.refresh(tank)
    return tank


def record_delivery(
    db: Session,
    tank_id: int,
    delivery_data: DeliveryCreate,
    received_by: int,
    received_at: datetime,
) -> TankInventoryEntry:
    """Add delivered fuel to a tank through the ledger."""
    try:
        entry = apply_stock_movement(
            db,
            tank_id,
            InventoryOperation.DELIVERY,
            delivery_data.quantity,
            applied_by=received_by,
            applied_at=received_at,
            reference=delivery_data.reference,
            notes=delivery_data.notes,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(entry)
    return entry


def reconcile_tank(db: Session, tank_id: int) -> TankReconciliation:
    """Replay a tank's ledger and compare it with the stored current volume."""
    tank = get_tank(db, tank_id)
    ledger = InventoryLedger(db)
    ledger_volume, broken_links = ledger.replay(tank_id)
    entry_count = ledger.count_for_tank(tank_id)

    discrepancy = quantize(tank.current_volume - ledger_volume)
    if discrepancy != 0 or broken_links:
        logger.warning(
            "Tank %s does not reconcile: discrepancy %s, %d broken links",
            tank_id,
            discrepancy,
            broken_links,
        )

    return TankReconciliation(
        tank_id=tank_id,
        current_volume=tank.current_volume,
        ledger_volume=ledger_volume,
        discrepancy=discrepancy,
        entry_count=entry_count,
        broken_links=broken_links,
        is_consistent=discrepancy == 0 and broken_links == 0,
    )


# Pumps and nozzles


def create_pump(db: Session, pump_data: PumpCreate) -> Pump:
    """Create a pump drawing from an existing tank."""
    get_tank(db, pump_data.tank_id)

    existing = db.query(Pump).filter(Pump.name == pump_data.name).first()
    if existing:
        raise DuplicateEquipment(f"Pump '{pump_data.name}' already exists")

    pump = Pump(name=pump_data.name, tank_id=pump_data.tank_id, status=pump_data.status)
    db.add(pump)
    db.commit()
    db.refresh(pump)
    return pump


def get_pump(db: Session, pump_id: int) -> Pump:
    """Get a pump by ID."""
    pump = db.get(Pump, pump_id)
    if not pump:
        raise PumpNotFound(f"Pump {pump_id} not found")
    return pump


def get_pumps(db: Session, pump_status: str | None = None) -> list[Pump]:
    """Get all pumps, optionally filtered by status."""
    query = select(Pump)
    if pump_status:
        query = query.where(Pump.status == pump_status)
    return list(db.execute(query.order_by(Pump.name)).scalars())


def update_pump(db: Session, pump_id: int, pump_data: PumpUpdate) -> Pump:
    """Rename a pump or change its status. Null fields are left as they are."""
    pump = get_pump(db, pump_id)

    update_data = pump_data.model_dump(exclude_unset=True, exclude_none=True)
    new_name = update_data.get("name")
    if new_name and new_name != pump.name:
        existing = db.query(Pump).filter(Pump.name == new_name).first()
        if existing:
            raise DuplicateEquipment(f"Pump '{new_name}' already exists")

    for field, value in update_data.items():
        setattr(pump, field, value)

    db.commit()
    db.refresh(pump)
    return pump


def delete_pump(db: Session, pump_id: int) -> None:
    """Delete a pump and its nozzles, only if no readings reference them."""
    pump = get_pump(db, pump_id)
    nozzle_ids = [n.id for n in pump.nozzles]
    if ReadingStore(db).count_for_nozzles(nozzle_ids):
        raise EquipmentInUse(f"Pump {pump_id} has nozzles with meter readings")

    for nozzle in pump.nozzles:
        db.delete(nozzle)
    db.delete(pump)
    db.commit()
    logger.info("Deleted pump %s", pump_id)


def add_nozzle(db: Session, pump_id: int, nozzle_data: NozzleCreate) -> Nozzle:
    """Add a numbered nozzle to a pump."""
    get_pump(db, pump_id)
    _get_fuel_type(db, nozzle_data.fuel_type_id)

    nozzle = Nozzle(
        pump_id=pump_id,
        nozzle_number=nozzle_data.nozzle_number,
        fuel_type_id=nozzle_data.fuel_type_id,
        status=nozzle_data.status,
    )
    db.add(nozzle)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateEquipment(
            f"Pump {pump_id} already has nozzle #{nozzle_data.nozzle_number}"
        ) from exc
    db.refresh(nozzle)
    return nozzle


def get_nozzle(db: Session, nozzle_id: int) -> Nozzle:
    """Get a nozzle by ID."""
    nozzle = db.get(Nozzle, nozzle_id)
    if not nozzle:
        raise NozzleNotFound(f"Nozzle {nozzle_id} not found")
    return nozzle


def set_nozzle_status(db: Session, nozzle_id: int, nozzle_status: str) -> Nozzle:
    """Change a nozzle's status, the only field that may change once it has readings."""
    nozzle = get_nozzle(db, nozzle_id)
    nozzle.status = nozzle_status
    db.commit()
    db.refresh(nozzle)
    return nozzle


def delete_nozzle(db: Session, nozzle_id: int) -> None:
    """Delete a nozzle that has no readings."""
    nozzle = get_nozzle(db, nozzle_id)
    if ReadingStore(db).count_for_nozzles([nozzle.id]):
        raise EquipmentInUse(f"Nozzle {nozzle_id} has meter readings")
    db.delete(nozzle)
    db.commit()
