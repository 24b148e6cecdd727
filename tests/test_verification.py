"""Tests for the verification state machine and ledger application."""

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from fuelstation.core.database import Base, build_engine
from fuelstation.models.enums import InventoryOperation, VerificationStatus
from fuelstation.models.fuel_type import FuelType
from fuelstation.models.inventory import TankInventoryEntry
from fuelstation.models.meter_reading import MeterReading
from fuelstation.models.nozzle import Nozzle
from fuelstation.models.pump import Pump
from fuelstation.models.tank import Tank
from fuelstation.schemas.station import TankCreate
from fuelstation.services import station as station_service
from fuelstation.services.backdating import BackdatingPolicy
from fuelstation.services.errors import (
    BackdatingReasonRequired,
    DisputeReasonRequired,
    InvalidStateTransition,
    ReadingNotFound,
    VerificationFailed,
)
from fuelstation.services.inventory_ledger import InventoryLedger
from fuelstation.services.reading_store import ReadingStore
from fuelstation.services.recorder import ReadingRecorder
from fuelstation.services.tank_registry import TankRegistry
from fuelstation.services.verification import VerificationEngine

from conftest import NOW, OPERATOR_ID, SUPERVISOR_ID, TODAY, YESTERDAY


def _dispensing_entries(test_db, reading_id: int) -> list[TankInventoryEntry]:
    return (
        test_db.query(TankInventoryEntry)
        .filter(
            TankInventoryEntry.reading_id == reading_id,
            TankInventoryEntry.operation_type == InventoryOperation.DISPENSING,
        )
        .all()
    )


def _tank_volume(test_db, tank_id: int) -> Decimal:
    tank = test_db.get(Tank, tank_id)
    test_db.refresh(tank)
    return tank.current_volume


@pytest.fixture
def reading(recorder, nozzle) -> MeterReading:
    """Pending reading dispensing 50.25 litres."""
    return recorder.record_reading(nozzle.id, TODAY, "100.0000", "150.2500", OPERATOR_ID)


class TestVerify:
    """Tests for VerificationEngine.verify."""

    def test_verify_deducts_dispensed_volume(self, verifier, reading, tank, test_db) -> None:
        assert _tank_volume(test_db, tank.id) == Decimal("10000.0000")

        verified = verifier.verify(reading.id, SUPERVISOR_ID)

        assert verified.verification_status == VerificationStatus.VERIFIED
        assert verified.verified_by == SUPERVISOR_ID
        assert verified.verified_at is not None
        assert _tank_volume(test_db, tank.id) == Decimal("9949.7500")

        entries = _dispensing_entries(test_db, reading.id)
        assert len(entries) == 1
        entry = entries[0]
        assert entry.tank_id == tank.id
        assert entry.previous_volume == Decimal("10000.0000")
        assert entry.change_amount == Decimal("-50.2500")
        assert entry.new_volume == Decimal("9949.7500")
        assert entry.applied_by == SUPERVISOR_ID

    def test_verify_twice_applies_once(self, verifier, reading, tank, test_db) -> None:
        verifier.verify(reading.id, SUPERVISOR_ID)
        with pytest.raises(InvalidStateTransition):
            verifier.verify(reading.id, SUPERVISOR_ID)

        assert _tank_volume(test_db, tank.id) == Decimal("9949.7500")
        assert len(_dispensing_entries(test_db, reading.id)) == 1

    def test_existing_ledger_entry_is_not_applied_again(
        self, verifier, reading, tank, test_db
    ) -> None:
        # Inventory effect already recorded by an earlier attempt
        test_db.add(
            TankInventoryEntry(
                tank_id=tank.id,
                operation_type=InventoryOperation.DISPENSING,
                reading_id=reading.id,
                previous_volume=Decimal("10000.0000"),
                change_amount=Decimal("-50.2500"),
                new_volume=Decimal("9949.7500"),
                applied_at=NOW,
                applied_by=SUPERVISOR_ID,
            )
        )
        tank.current_volume = Decimal("9949.7500")
        test_db.commit()

        verified = verifier.verify(reading.id, SUPERVISOR_ID)

        assert verified.verification_status == VerificationStatus.VERIFIED
        assert _tank_volume(test_db, tank.id) == Decimal("9949.7500")
        assert len(_dispensing_entries(test_db, reading.id)) == 1

    def test_ledger_rejects_second_entry_for_same_reading(self, reading, tank, test_db) -> None:
        for _ in range(2):
            test_db.add(
                TankInventoryEntry(
                    tank_id=tank.id,
                    operation_type=InventoryOperation.DISPENSING,
                    reading_id=reading.id,
                    previous_volume=Decimal("10000"),
                    change_amount=Decimal("-50.25"),
                    new_volume=Decimal("9949.75"),
                    applied_at=NOW,
                    applied_by=SUPERVISOR_ID,
                )
            )
        with pytest.raises(IntegrityError):
            test_db.commit()
        test_db.rollback()

    def test_verify_unknown_reading(self, verifier, nozzle) -> None:
        with pytest.raises(ReadingNotFound):
            verifier.verify(12345, SUPERVISOR_ID)

    def test_verify_disputed_reading_rejected(self, verifier, reading, tank, test_db) -> None:
        verifier.dispute(reading.id, SUPERVISOR_ID, "totaliser photo unreadable")
        with pytest.raises(InvalidStateTransition):
            verifier.verify(reading.id, SUPERVISOR_ID)
        assert _tank_volume(test_db, tank.id) == Decimal("10000.0000")

    def test_readings_on_same_tank_accumulate(
        self, recorder, verifier, nozzle, second_nozzle, tank, test_db
    ) -> None:
        first = recorder.record_reading(nozzle.id, TODAY, "100", "150.2500", OPERATOR_ID)
        second = recorder.record_reading(second_nozzle.id, TODAY, "0", "1000.1234", OPERATOR_ID)

        verifier.verify(second.id, SUPERVISOR_ID)
        verifier.verify(first.id, SUPERVISOR_ID)

        assert _tank_volume(test_db, tank.id) == Decimal("8949.6266")
        second_entry = _dispensing_entries(test_db, second.id)[0]
        first_entry = _dispensing_entries(test_db, first.id)[0]
        assert first_entry.previous_volume == second_entry.new_volume

    def test_verify_backdated_reading(self, recorder, verifier, nozzle, tank, test_db) -> None:
        reading = recorder.record_reading(
            nozzle.id, YESTERDAY, "10", "20", OPERATOR_ID, backdating_reason="late sheet"
        )
        verifier.verify(reading.id, SUPERVISOR_ID)
        assert _tank_volume(test_db, tank.id) == Decimal("9990.0000")

    def test_verify_next_day_needs_no_justification(
        self, verifier, reading, tank, clock, test_db
    ) -> None:
        clock.instant = NOW + timedelta(days=1)
        verifier.verify(reading.id, SUPERVISOR_ID)
        assert _tank_volume(test_db, tank.id) == Decimal("9949.7500")

    def test_backdated_reading_without_justification_not_verified(
        self, verifier, reading, tank, test_db
    ) -> None:
        reading.is_backdated = True
        reading.backdating_reason = None
        test_db.commit()

        with pytest.raises(BackdatingReasonRequired):
            verifier.verify(reading.id, SUPERVISOR_ID)

        test_db.refresh(reading)
        assert reading.verification_status == VerificationStatus.PENDING
        assert _tank_volume(test_db, tank.id) == Decimal("10000.0000")


class TestVerifyRollback:
    """A failing unit of work leaves every record as it was."""

    def test_failure_after_ledger_append_rolls_back(
        self, verifier, reading, tank, test_db, monkeypatch
    ) -> None:
        def broken_apply(self, tank, entry):
            raise RuntimeError("disk full")

        monkeypatch.setattr(TankRegistry, "apply", broken_apply)

        with pytest.raises(VerificationFailed) as exc_info:
            verifier.verify(reading.id, SUPERVISOR_ID)

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.retryable is True
        test_db.refresh(reading)
        assert reading.verification_status == VerificationStatus.PENDING
        assert reading.verified_by is None
        assert _dispensing_entries(test_db, reading.id) == []
        assert _tank_volume(test_db, tank.id) == Decimal("10000.0000")

    def test_missing_tank_fails_and_keeps_reading_pending(
        self, verifier, reading, pump, test_db
    ) -> None:
        pump.tank_id = 999
        test_db.commit()

        with pytest.raises(VerificationFailed):
            verifier.verify(reading.id, SUPERVISOR_ID)

        test_db.refresh(reading)
        assert reading.verification_status == VerificationStatus.PENDING

    def test_retry_after_failure_succeeds(
        self, verifier, reading, tank, test_db, monkeypatch
    ) -> None:
        original_apply = TankRegistry.apply
        calls = {"count": 0}

        def flaky_apply(self, tank, entry):
            calls["count"] += 1
            if calls["count"] == 1:
                raise RuntimeError("connection reset")
            return original_apply(self, tank, entry)

        monkeypatch.setattr(TankRegistry, "apply", flaky_apply)

        with pytest.raises(VerificationFailed):
            verifier.verify(reading.id, SUPERVISOR_ID)
        verifier.verify(reading.id, SUPERVISOR_ID)

        assert _tank_volume(test_db, tank.id) == Decimal("9949.7500")
        assert len(_dispensing_entries(test_db, reading.id)) == 1


class TestDispute:
    """Tests for VerificationEngine.dispute."""

    def test_dispute_leaves_tank_untouched(self, verifier, reading, tank, test_db) -> None:
        disputed = verifier.dispute(reading.id, SUPERVISOR_ID, "closing does not match photo")

        assert disputed.verification_status == VerificationStatus.DISPUTED
        assert disputed.verified_by == SUPERVISOR_ID
        assert disputed.verified_at is not None
        assert disputed.notes == "closing does not match photo"
        assert _tank_volume(test_db, tank.id) == Decimal("10000.0000")
        assert _dispensing_entries(test_db, reading.id) == []

    def test_dispute_keeps_backdating_reason(self, recorder, verifier, nozzle) -> None:
        reading = recorder.record_reading(
            nozzle.id, YESTERDAY, "1", "2", OPERATOR_ID, backdating_reason="late sheet"
        )
        disputed = verifier.dispute(reading.id, SUPERVISOR_ID, "wrong nozzle")
        assert disputed.backdating_reason == "late sheet"

    @pytest.mark.parametrize("reason", ["", "   "])
    def test_dispute_requires_reason(self, verifier, reading, test_db, reason) -> None:
        with pytest.raises(DisputeReasonRequired):
            verifier.dispute(reading.id, SUPERVISOR_ID, reason)
        test_db.refresh(reading)
        assert reading.verification_status == VerificationStatus.PENDING

    def test_dispute_verified_reading_rejected(self, verifier, reading) -> None:
        verifier.verify(reading.id, SUPERVISOR_ID)
        with pytest.raises(InvalidStateTransition):
            verifier.dispute(reading.id, SUPERVISOR_ID, "too late")

    def test_dispute_unknown_reading(self, verifier, nozzle) -> None:
        with pytest.raises(ReadingNotFound):
            verifier.dispute(4242, SUPERVISOR_ID, "no such reading")


class TestBulkVerify:
    """Tests for VerificationEngine.bulk_verify."""

    def test_failures_do_not_undo_successes(
        self, recorder, verifier, nozzle, second_nozzle, tank, test_db
    ) -> None:
        first = recorder.record_reading(nozzle.id, TODAY, "100", "150", OPERATOR_ID)
        second = recorder.record_reading(second_nozzle.id, TODAY, "0", "25.5", OPERATOR_ID)
        verifier.dispute(second.id, SUPERVISOR_ID, "duplicate sheet")

        result = verifier.bulk_verify([first.id, second.id, 9999], SUPERVISOR_ID)

        assert result.succeeded == [first.id]
        failures = {f.reading_id: f for f in result.failed}
        assert failures[second.id].code == "invalid_state_transition"
        assert failures[9999].code == "reading_not_found"
        assert all(not f.retryable for f in result.failed)
        assert _tank_volume(test_db, tank.id) == Decimal("9950.0000")

    def test_repeated_id_applied_once(self, verifier, reading, tank, test_db) -> None:
        result = verifier.bulk_verify([reading.id, reading.id], SUPERVISOR_ID)

        assert result.succeeded == [reading.id]
        assert [f.code for f in result.failed] == ["invalid_state_transition"]
        assert _tank_volume(test_db, tank.id) == Decimal("9949.7500")


class TestPendingQueue:
    """Tests for the verification queue queries."""

    def test_pending_readings_and_dates(
        self, recorder, verifier, nozzle, second_nozzle
    ) -> None:
        old = recorder.record_reading(
            nozzle.id, YESTERDAY, "1", "2", OPERATOR_ID, backdating_reason="late"
        )
        current = recorder.record_reading(nozzle.id, TODAY, "2", "3", OPERATOR_ID)
        done = recorder.record_reading(second_nozzle.id, TODAY, "5", "6", OPERATOR_ID)
        verifier.verify(done.id, SUPERVISOR_ID)

        assert [r.id for r in verifier.pending_readings()] == [current.id, old.id]
        assert [r.id for r in verifier.pending_readings(YESTERDAY)] == [old.id]
        assert verifier.pending_dates() == [TODAY, YESTERDAY]


class TestConcurrentVerification:
    """Racing verifications against one tank on a file-backed database."""

    READINGS = 10

    @pytest.fixture
    def session_factory(self, tmp_path):
        db_engine = build_engine(
            f"sqlite:///{tmp_path / 'station.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        Base.metadata.create_all(bind=db_engine)
        yield sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
        db_engine.dispose()

    def test_parallel_verifies_apply_each_reading_once(self, session_factory, clock) -> None:
        with session_factory() as db:
            diesel = FuelType(name="Diesel")
            db.add(diesel)
            db.commit()
            tank = station_service.create_tank(
                db,
                TankCreate(
                    name="Tank 1",
                    fuel_type_id=diesel.id,
                    capacity=Decimal("20000"),
                    initial_volume=Decimal("10000"),
                ),
                created_by=SUPERVISOR_ID,
                created_at=NOW,
            )
            tank_id = tank.id
            pump = Pump(name="Pump A", tank_id=tank_id)
            db.add(pump)
            db.flush()
            nozzles = [
                Nozzle(pump_id=pump.id, nozzle_number=number, fuel_type_id=diesel.id)
                for number in range(1, self.READINGS + 1)
            ]
            db.add_all(nozzles)
            db.commit()

            recorder = ReadingRecorder(db, ReadingStore(db), BackdatingPolicy(clock), clock)
            reading_ids = [
                recorder.record_reading(n.id, TODAY, "1000", "1001.2500", OPERATOR_ID).id
                for n in nozzles
            ]

        def verify(reading_id: int) -> str:
            with session_factory() as db:
                verifier = VerificationEngine(
                    db, ReadingStore(db), InventoryLedger(db), TankRegistry(db), clock
                )
                try:
                    verifier.verify(reading_id, SUPERVISOR_ID)
                except InvalidStateTransition:
                    return "already verified"
                return "verified"

        # Every reading is verified twice, all on the same tank
        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(verify, reading_ids * 2))

        assert outcomes.count("verified") == self.READINGS
        assert outcomes.count("already verified") == self.READINGS

        with session_factory() as db:
            assert db.get(Tank, tank_id).current_volume == Decimal("9987.5000")
            for reading_id in reading_ids:
                assert len(_dispensing_entries(db, reading_id)) == 1
            assert station_service.reconcile_tank(db, tank_id).is_consistent is True
