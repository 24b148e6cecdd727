"""Request-scoped dependencies wiring the engine to a database session."""

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from fuelstation.core.clock import Clock, get_clock
from fuelstation.core.database import get_db
from fuelstation.services.backdating import BackdatingPolicy
from fuelstation.services.inventory_ledger import InventoryLedger
from fuelstation.services.reading_store import ReadingStore
from fuelstation.services.recorder import ReadingRecorder
from fuelstation.services.tank_registry import TankRegistry
from fuelstation.services.verification import VerificationEngine


def get_operator_id(
    x_operator_id: int = Header(..., ge=1, description="ID of the operator making the request"),
) -> int:
    """Operator identity supplied by the authenticating proxy."""
    return x_operator_id


def get_reading_recorder(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ReadingRecorder:
    """Recorder bound to the request's session."""
    return ReadingRecorder(db, ReadingStore(db), BackdatingPolicy(clock), clock)


def get_verification_engine(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> VerificationEngine:
    """Verification engine bound to the request's session."""
    return VerificationEngine(db, ReadingStore(db), InventoryLedger(db), TankRegistry(db), clock)
