"""
Package Model

One physical parcel. Dimensions and weight carry no unit: the carrier picks
the unit system from the shipment's origin country.
"""

from typing import Optional

from pydantic import Field

from .base import ValueObject


class Package(ValueObject):
    """Package model for shipping"""
    length: float = Field(default=0, ge=0)
    width: float = Field(default=0, ge=0)
    height: float = Field(default=0, ge=0)
    weight: float = Field(default=0, ge=0)
    price: float = Field(default=0, ge=0)
    reference: Optional[str] = None

    def get_volume(self) -> float:
        """Calculate package volume"""
        return self.length * self.width * self.height
