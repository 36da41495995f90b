"""
Address Model

Shipping origin and destination addresses. Carriers translate these into
their own contact/address blocks when building payloads.
"""

from typing import Optional

from pydantic import Field, field_validator

from .base import ValueObject


class Address(ValueObject):
    """
    Standard address model for shipping operations

    Used for both origin and destination addresses
    """
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_name: Optional[str] = None
    street1: Optional[str] = None
    street2: Optional[str] = None
    street3: Optional[str] = None
    city: Optional[str] = None
    state_province: Optional[str] = None
    postal_code: Optional[str] = None
    country_code: str = Field(min_length=2, max_length=2)
    is_residential: bool = False
    phone: Optional[str] = None
    email: Optional[str] = None

    @field_validator("country_code", mode="before")
    @classmethod
    def normalize_country_code(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @property
    def full_name(self) -> str:
        """First and last name, falling back to the company name"""
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or (self.company_name or "")

    @property
    def street_lines(self) -> list:
        return [line for line in (self.street1, self.street2, self.street3) if line]
