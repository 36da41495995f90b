from typing import Iterable, Optional


class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    pass

class ShippingServiceError(BaseServiceError):
    """Base exception for shipping carrier errors."""
    pass

class InvalidRequestError(ShippingServiceError):
    """Raised when a carrier is missing credentials an operation needs.

    Always raised before any network activity.
    """

    def __init__(self, carrier: str, missing_fields: Iterable[str]):
        self.carrier = carrier
        self.missing_fields = list(missing_fields)
        super().__init__(
            f"{carrier} is missing required configuration: {', '.join(self.missing_fields)}"
        )

class CarrierDispatchError(ShippingServiceError):
    """Raised when a carrier API call fails (network, non-2xx status or unparsable body)."""

    def __init__(self, message: str, endpoint: Optional[str] = None, status_code: Optional[int] = None):
        self.endpoint = endpoint
        self.status_code = status_code
        super().__init__(message)

class CarrierAuthenticationError(CarrierDispatchError):
    """Raised when a carrier token exchange fails."""
    pass

class UnsupportedCarrierError(ShippingServiceError, ValueError):
    """Raised when a carrier code is not registered."""
    pass
