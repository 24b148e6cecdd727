"""Seed script to populate the database with a sample station."""

from datetime import timedelta
from decimal import Decimal

from fuelstation.core.clock import Clock
from fuelstation.core.database import Base, SessionLocal, engine
from fuelstation.models.enums import EquipmentStatus
from fuelstation.models.fuel_type import FuelType
from fuelstation.models.nozzle import Nozzle
from fuelstation.models.pump import Pump
from fuelstation.schemas.station import TankCreate
from fuelstation.services import station as station_service
from fuelstation.services.backdating import BackdatingPolicy
from fuelstation.services.reading_store import ReadingStore
from fuelstation.services.recorder import ReadingRecorder

SEED_OPERATOR_ID = 1


def seed_database() -> None:
    """Seed the database with tanks, pumps and a week of pending readings."""
    Base.metadata.create_all(bind=engine)
    clock = Clock()

    with SessionLocal() as db:
        # Check if data already exists
        if db.query(FuelType).first():
            print("Database already has data. Skipping seed.")
            return

        print("Seeding database...")

        petrol = FuelType(name="Petrol 92")
        diesel = FuelType(name="Auto Diesel")
        db.add_all([petrol, diesel])
        db.commit()

        petrol_tank = station_service.create_tank(
            db,
            TankCreate(
                name="Tank 1",
                fuel_type_id=petrol.id,
                capacity=Decimal("33000"),
                initial_volume=Decimal("21500"),
                low_level_threshold=Decimal("5000"),
            ),
            created_by=SEED_OPERATOR_ID,
            created_at=clock.now(),
        )
        diesel_tank = station_service.create_tank(
            db,
            TankCreate(
                name="Tank 2",
                fuel_type_id=diesel.id,
                capacity=Decimal("22500"),
                initial_volume=Decimal("18000"),
                low_level_threshold=Decimal("4000"),
            ),
            created_by=SEED_OPERATOR_ID,
            created_at=clock.now(),
        )
        print(f"Created tanks: {petrol_tank.name}, {diesel_tank.name}")

        pump_a = Pump(name="Pump A", tank_id=petrol_tank.id)
        pump_b = Pump(name="Pump B", tank_id=diesel_tank.id)
        pump_c = Pump(name="Pump C", tank_id=diesel_tank.id, status=EquipmentStatus.MAINTENANCE)
        db.add_all([pump_a, pump_b, pump_c])
        db.flush()

        nozzles = [
            Nozzle(pump_id=pump_a.id, nozzle_number=1, fuel_type_id=petrol.id),
            Nozzle(pump_id=pump_a.id, nozzle_number=2, fuel_type_id=petrol.id),
            Nozzle(pump_id=pump_b.id, nozzle_number=1, fuel_type_id=diesel.id),
            Nozzle(pump_id=pump_c.id, nozzle_number=1, fuel_type_id=diesel.id),
        ]
        db.add_all(nozzles)
        db.commit()

        print(f"Created 3 pumps with {len(nozzles)} nozzles")

        # Seven days of readings for the nozzles that are in service
        recorder = ReadingRecorder(db, ReadingStore(db), BackdatingPolicy(clock), clock)
        today = clock.today()
        totals = {nozzle.id: Decimal("120000.0000") + nozzle.id * 1000 for nozzle in nozzles[:3]}
        count = 0

        for days_ago in range(6, -1, -1):
            reading_date = today - timedelta(days=days_ago)
            for index, (nozzle_id, opening) in enumerate(totals.items()):
                dispensed = Decimal("350.2500") + Decimal(index * 75) + Decimal(days_ago * 12)
                closing = opening + dispensed
                recorder.record_reading(
                    nozzle_id,
                    reading_date,
                    str(opening),
                    str(closing),
                    recorded_by=SEED_OPERATOR_ID,
                    notes=f"Day {7 - days_ago} shift sheet",
                    backdating_reason="Seeded history" if days_ago else None,
                )
                totals[nozzle_id] = closing
                count += 1

        print(f"Created {count} pending readings")
        print("\nSeed data created successfully!")


if __name__ == "__main__":
    seed_database()
