"""Pump and nozzle routes."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from fuelstation.core.database import get_db
from fuelstation.models.enums import EquipmentStatus
from fuelstation.schemas.station import (
    NozzleCreate,
    NozzleResponse,
    NozzleStatusUpdate,
    PumpCreate,
    PumpResponse,
    PumpUpdate,
)
from fuelstation.services import station as station_service

router = APIRouter(tags=["pumps"])


@router.post(
    "/pumps",
    response_model=PumpResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_pump(pump_data: PumpCreate, db: Session = Depends(get_db)):
    """Create a pump connected to a tank."""
    return station_service.create_pump(db, pump_data)


@router.get("/pumps", response_model=list[PumpResponse])
def list_pumps(
    pump_status: EquipmentStatus | None = Query(None, alias="status"),
    db: Session = Depends(get_db),
):
    """List pumps with their nozzles."""
    return station_service.get_pumps(db, pump_status)


@router.get("/pumps/{pump_id}", response_model=PumpResponse)
def get_pump(pump_id: int, db: Session = Depends(get_db)):
    """Get a pump by ID."""
    return station_service.get_pump(db, pump_id)


@router.patch("/pumps/{pump_id}", response_model=PumpResponse)
def update_pump(pump_id: int, pump_data: PumpUpdate, db: Session = Depends(get_db)):
    """Rename a pump or change its status."""
    return station_service.update_pump(db, pump_id, pump_data)


@router.delete("/pumps/{pump_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_pump(pump_id: int, db: Session = Depends(get_db)) -> None:
    """Delete a pump that has no meter readings."""
    station_service.delete_pump(db, pump_id)


@router.post(
    "/pumps/{pump_id}/nozzles",
    response_model=NozzleResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_nozzle(
    pump_id: int,
    nozzle_data: NozzleCreate,
    db: Session = Depends(get_db),
):
    """Add a nozzle to a pump."""
    return station_service.add_nozzle(db, pump_id, nozzle_data)


@router.patch("/nozzles/{nozzle_id}", response_model=NozzleResponse)
def set_nozzle_status(
    nozzle_id: int,
    nozzle_data: NozzleStatusUpdate,
    db: Session = Depends(get_db),
):
    """Change a nozzle's status."""
    return station_service.set_nozzle_status(db, nozzle_id, nozzle_data.status)


@router.delete("/nozzles/{nozzle_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_nozzle(nozzle_id: int, db: Session = Depends(get_db)) -> None:
    """Delete a nozzle that has no meter readings."""
    station_service.delete_nozzle(db, nozzle_id)
