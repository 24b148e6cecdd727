"""MeterReading routes for recording and verification."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from fuelstation.api.dependencies import (
    get_operator_id,
    get_reading_recorder,
    get_verification_engine,
)
from fuelstation.core.database import get_db
from fuelstation.schemas.meter_reading import (
    BulkVerifyRequest,
    BulkVerifyResponse,
    DisputeRequest,
    MeterReadingCreate,
    MeterReadingResponse,
    MeterReadingUpdate,
    OpeningSuggestion,
)
from fuelstation.services.errors import ReadingNotFound
from fuelstation.services.reading_store import ReadingStore
from fuelstation.services.recorder import ReadingRecorder
from fuelstation.services.verification import VerificationEngine

router = APIRouter(prefix="/readings", tags=["meter-readings"])


@router.post(
    "/",
    response_model=MeterReadingResponse,
    status_code=status.HTTP_201_CREATED,
)
def record_reading(
    reading_data: MeterReadingCreate,
    operator_id: int = Depends(get_operator_id),
    recorder: ReadingRecorder = Depends(get_reading_recorder),
):
    """Record a nozzle's opening and closing readings for a date.

    Readings dated before today need a backdating reason.
    """
    return recorder.record_reading(
        nozzle_id=reading_data.nozzle_id,
        reading_date=reading_data.reading_date,
        opening=reading_data.opening_reading,
        closing=reading_data.closing_reading,
        recorded_by=operator_id,
        notes=reading_data.notes,
        backdating_reason=reading_data.backdating_reason,
    )


@router.get("/", response_model=list[MeterReadingResponse])
def list_readings_by_date(
    reading_date: date = Query(..., description="Date to list readings for"),
    db: Session = Depends(get_db),
):
    """Get all readings taken on a date."""
    return ReadingStore(db).list_by_date(reading_date)


@router.get("/pending", response_model=list[MeterReadingResponse])
def list_pending_readings(
    reading_date: date | None = Query(None, description="Only readings from this date"),
    engine: VerificationEngine = Depends(get_verification_engine),
):
    """Get readings awaiting verification."""
    return engine.pending_readings(reading_date)


@router.get("/pending/dates", response_model=list[date])
def list_pending_dates(
    engine: VerificationEngine = Depends(get_verification_engine),
):
    """Get the dates that still have readings awaiting verification."""
    return engine.pending_dates()


@router.get("/opening-suggestions", response_model=list[OpeningSuggestion])
def get_opening_suggestions(
    reading_date: date = Query(..., description="Date the new readings are for"),
    recorder: ReadingRecorder = Depends(get_reading_recorder),
):
    """Previous day's closing readings to use as opening values."""
    suggestions = recorder.suggest_opening_readings(reading_date)
    return [
        OpeningSuggestion(nozzle_id=nozzle_id, opening_reading=value)
        for nozzle_id, value in sorted(suggestions.items())
    ]


@router.post("/bulk-verify", response_model=BulkVerifyResponse)
def bulk_verify_readings(
    request: BulkVerifyRequest,
    operator_id: int = Depends(get_operator_id),
    engine: VerificationEngine = Depends(get_verification_engine),
):
    """Verify several readings; each succeeds or fails on its own."""
    result = engine.bulk_verify(request.reading_ids, operator_id)
    return BulkVerifyResponse.model_validate(result)


@router.get("/{reading_id}", response_model=MeterReadingResponse)
def get_reading(
    reading_id: int,
    db: Session = Depends(get_db),
):
    """Get a reading by ID."""
    reading = ReadingStore(db).get(reading_id)
    if not reading:
        raise ReadingNotFound(f"Reading {reading_id} not found")
    return reading


@router.put("/{reading_id}", response_model=MeterReadingResponse)
def edit_reading(
    reading_id: int,
    reading_data: MeterReadingUpdate,
    operator_id: int = Depends(get_operator_id),
    recorder: ReadingRecorder = Depends(get_reading_recorder),
):
    """Edit a pending reading. A saved backdating reason is kept."""
    return recorder.edit_reading(
        reading_id,
        opening=reading_data.opening_reading,
        closing=reading_data.closing_reading,
        recorded_by=operator_id,
        notes=reading_data.notes,
        backdating_reason=reading_data.backdating_reason,
    )


@router.post("/{reading_id}/verify", response_model=MeterReadingResponse)
def verify_reading(
    reading_id: int,
    operator_id: int = Depends(get_operator_id),
    engine: VerificationEngine = Depends(get_verification_engine),
):
    """Verify a reading and deduct its dispensed volume from the tank."""
    return engine.verify(reading_id, operator_id)


@router.post("/{reading_id}/dispute", response_model=MeterReadingResponse)
def dispute_reading(
    reading_id: int,
    request: DisputeRequest,
    operator_id: int = Depends(get_operator_id),
    engine: VerificationEngine = Depends(get_verification_engine),
):
    """Dispute a reading. Tank inventory is left unchanged."""
    return engine.dispute(reading_id, operator_id, request.reason)
