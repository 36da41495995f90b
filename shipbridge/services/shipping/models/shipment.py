from typing import List

from pydantic import Field, field_validator

from .address import Address
from .base import ValueObject
from .package import Package


class Shipment(ValueObject):
    """A rate, label or tracking request unit.

    Accepts ``from``/``to`` as field names, e.g. ``Shipment.model_validate({"from": ..., "to": ...})``.
    """
    from_address: Address = Field(alias="from")
    to_address: Address = Field(alias="to")
    packages: List[Package] = Field(min_length=1)
    currency: str = "USD"

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @property
    def origin_country(self) -> str:
        return self.from_address.country_code

    @property
    def destination_country(self) -> str:
        return self.to_address.country_code

    @property
    def is_domestic(self) -> bool:
        return self.origin_country == self.destination_country

    @property
    def total_weight(self) -> float:
        return sum(package.weight for package in self.packages)

    @property
    def total_price(self) -> float:
        return sum(package.price for package in self.packages)
