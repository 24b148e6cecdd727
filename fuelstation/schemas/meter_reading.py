"""MeterReading Pydantic schemas for request/response validation."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, computed_field

from fuelstation.models.enums import VerificationStatus
from fuelstation.services.backdating import compose_notes


class MeterReadingBase(BaseModel):
    """Base meter reading schema.

    Totaliser values are taken as decimal strings (or integers) and validated
    by the recorder; JSON floats are refused.
    """

    opening_reading: str | int
    closing_reading: str | int
    notes: str | None = None
    backdating_reason: str | None = None


class MeterReadingCreate(MeterReadingBase):
    """Schema for recording a nozzle reading."""

    nozzle_id: int
    reading_date: date


class MeterReadingUpdate(MeterReadingBase):
    """Schema for editing a pending reading."""

    pass


class MeterReadingResponse(BaseModel):
    """Schema for meter reading response."""

    id: int
    nozzle_id: int
    reading_date: date
    opening_reading: Decimal
    closing_reading: Decimal
    dispensed_volume: Decimal
    recorded_by: int
    notes: str
    backdating_reason: str | None
    is_backdated: bool
    verification_status: VerificationStatus
    verified_by: int | None
    verified_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field  # type: ignore[prop-decorator]
    @property
    def combined_notes(self) -> str:
        """Justification and notes in the single-string form older reports expect."""
        return compose_notes(self.backdating_reason, self.notes)


class DisputeRequest(BaseModel):
    """Schema for disputing a reading."""

    reason: str = Field(min_length=1)


class BulkVerifyRequest(BaseModel):
    """Schema for verifying several readings at once."""

    reading_ids: list[int] = Field(min_length=1)


class VerificationFailureResponse(BaseModel):
    """Why one reading in a batch was not verified."""

    reading_id: int
    code: str
    message: str
    retryable: bool

    model_config = {"from_attributes": True}


class BulkVerifyResponse(BaseModel):
    """Per-reading outcomes of a bulk verification."""

    succeeded: list[int]
    failed: list[VerificationFailureResponse]

    model_config = {"from_attributes": True}


class OpeningSuggestion(BaseModel):
    """Previous day's closing reading for a nozzle."""

    nozzle_id: int
    opening_reading: Decimal
