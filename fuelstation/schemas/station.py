"""Station equipment Pydantic schemas for request/response validation."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from fuelstation.models.enums import EquipmentStatus


class FuelTypeCreate(BaseModel):
    """Schema for creating a fuel type."""

    name: str = Field(min_length=1, max_length=50)


class FuelTypeResponse(BaseModel):
    """Schema for fuel type response."""

    id: int
    name: str

    model_config = {"from_attributes": True}


class TankCreate(BaseModel):
    """Schema for registering a tank with its opening stock."""

    name: str = Field(min_length=1, max_length=100)
    fuel_type_id: int
    capacity: Decimal = Field(gt=0, max_digits=14, decimal_places=4)
    initial_volume: Decimal = Field(default=Decimal("0"), ge=0, max_digits=14, decimal_places=4)
    low_level_threshold: Decimal | None = Field(
        default=None, ge=0, max_digits=14, decimal_places=4
    )

    @model_validator(mode="after")
    def check_volumes_within_capacity(self) -> "TankCreate":
        """Ensure opening stock and threshold fit in the tank."""
        if self.initial_volume > self.capacity:
            raise ValueError("Initial volume cannot exceed tank capacity")
        if self.low_level_threshold is not None and self.low_level_threshold > self.capacity:
            raise ValueError("Low level threshold must be between 0 and tank capacity")
        return self


class TankUpdate(BaseModel):
    """Schema for updating a tank. The current volume is not updatable."""

    name: str | None = None
    capacity: Decimal | None = Field(default=None, gt=0, max_digits=14, decimal_places=4)
    low_level_threshold: Decimal | None = Field(
        default=None, ge=0, max_digits=14, decimal_places=4
    )

    @model_validator(mode="after")
    def check_at_least_one_field(self) -> "TankUpdate":
        """Ensure at least one field is provided for update."""
        if all(v is None for v in [self.name, self.capacity, self.low_level_threshold]):
            raise ValueError("At least one field must be provided for update")
        return self


class TankResponse(BaseModel):
    """Schema for tank response."""

    id: int
    name: str
    fuel_type_id: int
    capacity: Decimal
    current_volume: Decimal
    low_level_threshold: Decimal | None
    fill_percentage: Decimal
    is_low: bool
    created_at: datetime
    updated_at: datetime


class PumpCreate(BaseModel):
    """Schema for creating a pump."""

    name: str = Field(min_length=1, max_length=100)
    tank_id: int
    status: EquipmentStatus = EquipmentStatus.ACTIVE


class PumpUpdate(BaseModel):
    """Schema for updating a pump. The tank cannot be changed."""

    name: str | None = None
    status: EquipmentStatus | None = None

    @model_validator(mode="after")
    def check_at_least_one_field(self) -> "PumpUpdate":
        """Ensure at least one field is provided for update."""
        if self.name is None and self.status is None:
            raise ValueError("At least one field must be provided for update")
        return self


class NozzleCreate(BaseModel):
    """Schema for adding a nozzle to a pump."""

    nozzle_number: int = Field(ge=1)
    fuel_type_id: int
    status: EquipmentStatus = EquipmentStatus.ACTIVE


class NozzleStatusUpdate(BaseModel):
    """Schema for changing a nozzle's status, the only mutable field."""

    status: EquipmentStatus


class NozzleResponse(BaseModel):
    """Schema for nozzle response."""

    id: int
    pump_id: int
    nozzle_number: int
    fuel_type_id: int
    status: EquipmentStatus
    created_at: datetime

    model_config = {"from_attributes": True}


class PumpResponse(BaseModel):
    """Schema for pump response."""

    id: int
    name: str
    tank_id: int
    status: EquipmentStatus
    created_at: datetime
    nozzles: list[NozzleResponse]

    model_config = {"from_attributes": True}
