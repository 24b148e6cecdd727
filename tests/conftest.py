"""Shared fixtures: in-memory database, fixed clock and a small station."""

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fuelstation.core.clock import FixedClock, get_clock
from fuelstation.core.database import Base, build_engine, get_db
from fuelstation.main import app
from fuelstation.models.fuel_type import FuelType
from fuelstation.models.nozzle import Nozzle
from fuelstation.models.pump import Pump
from fuelstation.models.tank import Tank
from fuelstation.schemas.station import TankCreate
from fuelstation.services import station as station_service
from fuelstation.services.backdating import BackdatingPolicy
from fuelstation.services.inventory_ledger import InventoryLedger
from fuelstation.services.reading_store import ReadingStore
from fuelstation.services.recorder import ReadingRecorder
from fuelstation.services.tank_registry import TankRegistry
from fuelstation.services.verification import VerificationEngine

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=UTC)
TODAY = date(2024, 6, 15)
YESTERDAY = date(2024, 6, 14)
OPERATOR_ID = 7
SUPERVISOR_ID = 3


@pytest.fixture
def test_db():
    """Create an in-memory test database."""
    db_engine = build_engine("sqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(bind=db_engine)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        db_engine.dispose()


@pytest.fixture
def clock():
    """Clock frozen at midday on the test date."""
    return FixedClock(NOW)


@pytest.fixture
def recorder(test_db, clock):
    return ReadingRecorder(test_db, ReadingStore(test_db), BackdatingPolicy(clock), clock)


@pytest.fixture
def verifier(test_db, clock):
    return VerificationEngine(
        test_db,
        ReadingStore(test_db),
        InventoryLedger(test_db),
        TankRegistry(test_db),
        clock,
    )


@pytest.fixture
def tank(test_db) -> Tank:
    """Diesel tank holding 10,000 litres, with one pump and one nozzle."""
    diesel = FuelType(name="Diesel")
    test_db.add(diesel)
    test_db.commit()
    return station_service.create_tank(
        test_db,
        TankCreate(
            name="Tank 1",
            fuel_type_id=diesel.id,
            capacity=Decimal("20000"),
            initial_volume=Decimal("10000.0000"),
            low_level_threshold=Decimal("2000"),
        ),
        created_by=SUPERVISOR_ID,
        created_at=NOW,
    )


@pytest.fixture
def pump(test_db, tank) -> Pump:
    pump = Pump(name="Pump A", tank_id=tank.id)
    test_db.add(pump)
    test_db.commit()
    test_db.refresh(pump)
    return pump


@pytest.fixture
def nozzle(test_db, pump, tank) -> Nozzle:
    nozzle = Nozzle(pump_id=pump.id, nozzle_number=1, fuel_type_id=tank.fuel_type_id)
    test_db.add(nozzle)
    test_db.commit()
    test_db.refresh(nozzle)
    return nozzle


@pytest.fixture
def second_nozzle(test_db, pump, tank) -> Nozzle:
    nozzle = Nozzle(pump_id=pump.id, nozzle_number=2, fuel_type_id=tank.fuel_type_id)
    test_db.add(nozzle)
    test_db.commit()
    test_db.refresh(nozzle)
    return nozzle


@pytest.fixture
def client(test_db, clock):
    """Create a test client with database and clock overrides."""

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()
