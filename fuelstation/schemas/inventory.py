"""Tank inventory ledger schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from fuelstation.models.enums import InventoryOperation


class InventoryEntryResponse(BaseModel):
    """Schema for a tank ledger entry."""

    id: int
    tank_id: int
    operation_type: InventoryOperation
    reading_id: int | None
    reference: str | None
    previous_volume: Decimal
    change_amount: Decimal
    new_volume: Decimal
    notes: str | None
    applied_at: datetime
    applied_by: int

    model_config = {"from_attributes": True}


class TankLedgerHistory(BaseModel):
    """Schema for paginated tank ledger history."""

    tank_id: int
    entries: list[InventoryEntryResponse]
    total: int
    limit: int
    offset: int


class DeliveryCreate(BaseModel):
    """Schema for recording fuel received into a tank."""

    quantity: Decimal = Field(gt=0, max_digits=14, decimal_places=4)
    reference: str | None = Field(default=None, max_length=100)
    notes: str | None = None


class TankReconciliation(BaseModel):
    """Comparison of a tank's stored volume with its replayed ledger."""

    tank_id: int
    current_volume: Decimal
    ledger_volume: Decimal
    discrepancy: Decimal  # current_volume - ledger_volume
    entry_count: int
    broken_links: int  # Entries whose previous volume does not follow the one before
    is_consistent: bool
