"""Error taxonomy for meter reading verification and tank reconciliation.

Every error is an ``HTTPException`` so request handlers can let it propagate
unchanged. ``detail`` carries a stable machine-readable ``code`` next to the
operator-facing message.

Kinds:
    - validation: caller-fixable input problems, never retried
    - state: stale or duplicate requests (already handled, unknown id)
    - atomicity: a unit of work failed and was rolled back; safe to retry
"""

from fastapi import HTTPException, status


class ReconciliationError(HTTPException):
    """Base class for all engine errors."""

    code = "reconciliation_error"
    kind = "validation"
    http_status = status.HTTP_400_BAD_REQUEST
    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(
            status_code=self.http_status,
            detail={"code": self.code, "message": message},
        )
        self.message = message

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


# Validation errors


class InvalidReadingValue(ReconciliationError):
    """Opening or closing value is not a non-negative decimal."""

    code = "invalid_reading_value"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class InvalidReadingRange(ReconciliationError):
    """Closing reading is below the opening reading."""

    code = "invalid_reading_range"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class InvalidReadingDate(ReconciliationError):
    """Reading date lies in the future."""

    code = "invalid_reading_date"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class UnknownOrInactiveNozzle(ReconciliationError):
    code = "unknown_or_inactive_nozzle"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class DuplicateReading(ReconciliationError):
    """A reading already exists for the nozzle and date; edit it instead."""

    code = "duplicate_reading"
    http_status = status.HTTP_409_CONFLICT


class BackdatingReasonRequired(ReconciliationError):
    code = "backdating_reason_required"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class DisputeReasonRequired(ReconciliationError):
    code = "dispute_reason_required"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class InvalidTankOperation(ReconciliationError):
    """Stock movement would leave the tank negative or above capacity."""

    code = "invalid_tank_operation"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class DuplicateEquipment(ReconciliationError):
    """A fuel type, pump or nozzle with the same identity already exists."""

    code = "duplicate_equipment"
    http_status = status.HTTP_409_CONFLICT


# State errors


class ReadingNotFound(ReconciliationError):
    code = "reading_not_found"
    kind = "state"
    http_status = status.HTTP_404_NOT_FOUND


class TankNotFound(ReconciliationError):
    code = "tank_not_found"
    kind = "state"
    http_status = status.HTTP_404_NOT_FOUND


class FuelTypeNotFound(ReconciliationError):
    code = "fuel_type_not_found"
    kind = "state"
    http_status = status.HTTP_404_NOT_FOUND


class PumpNotFound(ReconciliationError):
    code = "pump_not_found"
    kind = "state"
    http_status = status.HTTP_404_NOT_FOUND


class NozzleNotFound(ReconciliationError):
    code = "nozzle_not_found"
    kind = "state"
    http_status = status.HTTP_404_NOT_FOUND


class EquipmentInUse(ReconciliationError):
    """Pump or nozzle is referenced by meter readings and cannot be deleted."""

    code = "equipment_in_use"
    kind = "state"
    http_status = status.HTTP_409_CONFLICT


class InvalidStateTransition(ReconciliationError):
    """Reading is no longer pending (already verified or disputed)."""

    code = "invalid_state_transition"
    kind = "state"
    http_status = status.HTTP_409_CONFLICT


# Atomicity failures


class VerificationFailed(ReconciliationError):
    """The verification unit of work failed and was fully rolled back.

    The underlying exception is available as ``__cause__``.
    """

    code = "verification_failed"
    kind = "atomicity"
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True
