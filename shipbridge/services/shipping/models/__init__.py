from .address import Address
from .label import Label, LabelResponse
from .package import Package
from .package_box import PackageBox
from .rate import Rate, RateResponse
from .shipment import Shipment
from .tracking import Tracking, TrackingDetail, TrackingResponse

__all__ = [
    "Address",
    "Label",
    "LabelResponse",
    "Package",
    "PackageBox",
    "Rate",
    "RateResponse",
    "Shipment",
    "Tracking",
    "TrackingDetail",
    "TrackingResponse",
]
