"""
Shared enums and constants used across the shipping layer.
"""

from enum import Enum


class TrackingStatus(str, Enum):
    """Normalized tracking status. Closed set: anything unmapped is UNKNOWN."""
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    ERROR = "error"
    UNKNOWN = "unknown"


class WeightUnit(str, Enum):
    """Weight measurement units"""
    LB = "lb"
    KG = "kg"


class DimensionUnit(str, Enum):
    """Dimension measurement units"""
    IN = "in"
    CM = "cm"


class UnitSystem(str, Enum):
    IMPERIAL = "imperial"
    METRIC = "metric"

    @property
    def weight_unit(self) -> WeightUnit:
        return WeightUnit.LB if self is UnitSystem.IMPERIAL else WeightUnit.KG

    @property
    def dimension_unit(self) -> DimensionUnit:
        return DimensionUnit.IN if self is UnitSystem.IMPERIAL else DimensionUnit.CM
