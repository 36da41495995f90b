"""
Shipping Rate Model

Standardizes rate responses across carriers.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import Field

from .base import ValueObject


class Rate(ValueObject):
    """
    One carrier-quoted price for one service.

    ``rate`` is None when the carrier omitted a parseable price. Treat that as
    "unknown", never as zero.
    """
    carrier: Optional[Any] = Field(default=None, exclude=True, repr=False)
    response: Dict[str, Any] = Field(default_factory=dict, repr=False)
    service_name: str
    service_code: str
    rate: Optional[float] = None
    currency: Optional[str] = None
    delivery_days: Optional[int] = None
    delivery_date: Optional[date] = None
    delivery_date_guaranteed: bool = False

    @property
    def display_price(self) -> str:
        """
        Returns formatted price for display

        Examples:
            $2.99
            £10.50
            EUR 15.00 (unknown symbol)
        """
        if self.rate is None:
            return "n/a"

        currency_symbols = {
            "USD": "$",
            "EUR": "€",
            "GBP": "£",
            "CAD": "C$",
            "AUD": "A$"
        }

        currency = self.currency or ""
        symbol = currency_symbols.get(currency, f"{currency} " if currency else "")
        return f"{symbol}{self.rate:.2f}"


class RateResponse(ValueObject):
    response: Any = Field(default_factory=dict, repr=False)
    rates: List[Rate] = Field(default_factory=list)

    def cheapest(self) -> Optional[Rate]:
        """Lowest priced rate, ignoring rates without a price"""
        priced = [rate for rate in self.rates if rate.rate is not None]
        return min(priced, key=lambda rate: rate.rate) if priced else None
