"""Fuel type and tank routes."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from fuelstation.api.dependencies import get_operator_id
from fuelstation.core.clock import Clock, get_clock
from fuelstation.core.database import get_db
from fuelstation.models.tank import Tank
from fuelstation.schemas.inventory import (
    DeliveryCreate,
    InventoryEntryResponse,
    TankLedgerHistory,
    TankReconciliation,
)
from fuelstation.schemas.station import (
    FuelTypeCreate,
    FuelTypeResponse,
    TankCreate,
    TankResponse,
    TankUpdate,
)
from fuelstation.services import station as station_service
from fuelstation.services.inventory_ledger import InventoryLedger

router = APIRouter(tags=["tanks"])


def _tank_response(tank: Tank) -> TankResponse:
    return TankResponse(
        id=tank.id,
        name=tank.name,
        fuel_type_id=tank.fuel_type_id,
        capacity=tank.capacity,
        current_volume=tank.current_volume,
        low_level_threshold=tank.low_level_threshold,
        fill_percentage=tank.get_fill_percentage(),
        is_low=tank.get_is_low(),
        created_at=tank.created_at,
        updated_at=tank.updated_at,
    )


@router.post(
    "/fuel-types",
    response_model=FuelTypeResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_fuel_type(
    fuel_type_data: FuelTypeCreate,
    db: Session = Depends(get_db),
):
    """Create a fuel type."""
    return station_service.create_fuel_type(db, fuel_type_data)


@router.get("/fuel-types", response_model=list[FuelTypeResponse])
def list_fuel_types(db: Session = Depends(get_db)):
    """List fuel types."""
    return station_service.get_fuel_types(db)


@router.post(
    "/tanks",
    response_model=TankResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_tank(
    tank_data: TankCreate,
    operator_id: int = Depends(get_operator_id),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> TankResponse:
    """Register a tank. Opening stock is written to the ledger."""
    tank = station_service.create_tank(db, tank_data, operator_id, clock.now())
    return _tank_response(tank)


@router.get("/tanks", response_model=list[TankResponse])
def list_tanks(db: Session = Depends(get_db)) -> list[TankResponse]:
    """List tanks with their fill levels."""
    return [_tank_response(t) for t in station_service.get_tanks(db)]


@router.get("/tanks/{tank_id}", response_model=TankResponse)
def get_tank(tank_id: int, db: Session = Depends(get_db)) -> TankResponse:
    """Get a tank by ID."""
    return _tank_response(station_service.get_tank(db, tank_id))


@router.patch("/tanks/{tank_id}", response_model=TankResponse)
def update_tank(
    tank_id: int,
    tank_data: TankUpdate,
    db: Session = Depends(get_db),
) -> TankResponse:
    """Update a tank's name, capacity or low level threshold."""
    return _tank_response(station_service.update_tank(db, tank_id, tank_data))


@router.get("/tanks/{tank_id}/ledger", response_model=TankLedgerHistory)
def get_tank_ledger(
    tank_id: int,
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> TankLedgerHistory:
    """Get the inventory ledger of a tank with pagination, newest first."""
    station_service.get_tank(db, tank_id)
    entries, total = InventoryLedger(db).entries_for_tank(tank_id, limit, offset)
    return TankLedgerHistory(
        tank_id=tank_id,
        entries=[InventoryEntryResponse.model_validate(e) for e in entries],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/tanks/{tank_id}/reconciliation", response_model=TankReconciliation)
def reconcile_tank(tank_id: int, db: Session = Depends(get_db)):
    """Check that the tank's ledger explains its current volume."""
    return station_service.reconcile_tank(db, tank_id)


@router.post(
    "/tanks/{tank_id}/deliveries",
    response_model=InventoryEntryResponse,
    status_code=status.HTTP_201_CREATED,
)
def record_delivery(
    tank_id: int,
    delivery_data: DeliveryCreate,
    operator_id: int = Depends(get_operator_id),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Record fuel received into a tank."""
    return station_service.record_delivery(db, tank_id, delivery_data, operator_id, clock.now())
