"""
Tracking Models

Current and historical status for a shipment, normalized into the closed
TrackingStatus set.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from shipbridge.core.enums import TrackingStatus

from .base import ValueObject


class TrackingDetail(ValueObject):
    """One scan/event in a shipment's history"""
    location: str = ""
    description: str = ""
    date: Optional[datetime] = None
    status: TrackingStatus = TrackingStatus.UNKNOWN
    status_detail: str = ""


class Tracking(ValueObject):
    carrier: Optional[Any] = Field(default=None, exclude=True, repr=False)
    response: Any = Field(default_factory=dict, repr=False)
    tracking_number: str
    status: TrackingStatus = TrackingStatus.UNKNOWN
    status_detail: str = ""
    estimated_delivery: Optional[date] = None
    details: List[TrackingDetail] = Field(default_factory=list)
    signed_by: Optional[str] = None
    weight: Optional[float] = None
    weight_unit: Optional[str] = None

    @property
    def tracking_url(self) -> Optional[str]:
        """Public tracking page from the carrier that produced this record"""
        if self.carrier is None:
            return None
        return self.carrier.get_tracking_url(self.tracking_number)

    @property
    def is_delivered(self) -> bool:
        return self.status == TrackingStatus.DELIVERED


class TrackingResponse(ValueObject):
    """``response`` maps each requested tracking number to its raw carrier payload."""
    response: Dict[str, Any] = Field(default_factory=dict, repr=False)
    tracking: List[Tracking] = Field(default_factory=list)
