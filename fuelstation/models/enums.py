"""Enum definitions for station equipment, readings and inventory."""

from enum import Enum


class EquipmentStatus(str, Enum):
    """Operational status of a pump or nozzle."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class VerificationStatus(str, Enum):
    """Verification state of a meter reading."""

    PENDING = "pending"  # Initial state for every recorded reading
    VERIFIED = "verified"  # Terminal: inventory effect applied
    DISPUTED = "disputed"  # Terminal: no inventory effect


class InventoryOperation(str, Enum):
    """Kind of tank inventory ledger entry."""

    INITIAL = "initial"  # Opening stock when the tank is registered
    DISPENSING = "dispensing"  # Verified meter reading
    DELIVERY = "delivery"  # Fuel received into the tank
    ADJUSTMENT = "adjustment"
