from .dhl import DHLCarrier, DHLConfig
from .ups import UPSCarrier, UPSConfig

__all__ = ["DHLCarrier", "DHLConfig", "UPSCarrier", "UPSConfig"]
