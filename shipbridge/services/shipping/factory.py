"""
Shipping carrier factory to make carrier selection easy
"""
from typing import Dict, Optional

from shipbridge.core.config import Settings, get_settings
from shipbridge.core.diagnostics import DiagnosticSink
from shipbridge.core.exceptions import UnsupportedCarrierError

from .base import Carrier
from .carriers.dhl import DHLCarrier, DHLConfig
from .carriers.ups import UPSCarrier, UPSConfig
from .transport import HttpClient

CARRIERS: Dict[str, type] = {
    "dhl": DHLCarrier,
    "ups": UPSCarrier,
}

CONFIGS = {
    "dhl": DHLConfig,
    "ups": UPSConfig,
}


def available_carriers() -> list:
    return sorted(CARRIERS)


def get_carrier(
    carrier_code: str,
    settings: Optional[Settings] = None,
    transport: Optional[HttpClient] = None,
    diagnostics: Optional[DiagnosticSink] = None,
) -> Carrier:
    """
    Factory function to get the appropriate carrier by code

    Args:
        carrier_code: The code of the carrier to use ("ups", "dhl")
        settings: Settings to read credentials from; defaults to the cached settings
        transport: HTTP capability shared with the carrier
        diagnostics: Sink for normalization gaps

    Returns:
        A configured carrier instance

    Raises:
        UnsupportedCarrierError: If the carrier code is not supported
    """
    carrier_code = carrier_code.lower()
    if carrier_code not in CARRIERS:
        raise UnsupportedCarrierError(f"Carrier '{carrier_code}' is not supported")

    settings = settings or get_settings()
    config = CONFIGS[carrier_code].from_settings(settings)

    return CARRIERS[carrier_code](config, transport=transport, diagnostics=diagnostics)
