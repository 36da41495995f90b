from .base import Carrier, CarrierClient, CredentialValidator, UnitPolicy
from .factory import available_carriers, get_carrier
from .transport import HttpClient, HttpxTransport

__all__ = [
    "Carrier",
    "CarrierClient",
    "CredentialValidator",
    "HttpClient",
    "HttpxTransport",
    "UnitPolicy",
    "available_carriers",
    "get_carrier",
]
