"""
Carrier Adapter Contract

Every carrier implementation satisfies the ``Carrier`` protocol:

- Getting shipping rates
- Purchasing labels
- Tracking shipments
- Identity: name, tracking URL, unit selection, service-code table

Shared behaviour is not inherited. Carriers compose the helpers below:
``CredentialValidator`` (fail fast on missing config), ``UnitPolicy``
(imperial vs metric by origin country) and ``CarrierClient`` (authenticate
and dispatch through the injected transport).
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from shipbridge.core.enums import DimensionUnit, UnitSystem, WeightUnit
from shipbridge.core.exceptions import InvalidRequestError

from .auth import AuthStrategy
from .models import LabelResponse, Rate, RateResponse, Shipment, TrackingResponse
from .transport import HttpClient, RequestOptions, dispatch

logger = logging.getLogger(__name__)

ServiceCodes = Mapping[str, Mapping[str, str]]


@runtime_checkable
class Carrier(Protocol):
    """Capability set every carrier adapter provides"""

    name: str
    code: str

    async def get_rates(self, shipment: Shipment) -> RateResponse:
        """
        Get available rates for a shipment

        Raises:
            InvalidRequestError: required credentials are missing
            CarrierDispatchError: the carrier call failed
        """
        ...

    async def get_labels(self, shipment: Shipment, rate: Rate, options: Optional[Dict[str, Any]] = None) -> LabelResponse:
        """
        Purchase labels for a shipment at the given rate

        Raises:
            InvalidRequestError: credentials or account number are missing
            CarrierDispatchError: the carrier call failed
        """
        ...

    async def get_tracking_status(
        self, tracking_numbers: Sequence[str], options: Optional[Dict[str, Any]] = None
    ) -> TrackingResponse:
        """Track shipments, one carrier call per tracking number"""
        ...

    def get_tracking_url(self, tracking_number: str) -> Optional[str]:
        ...

    def get_weight_unit(self, shipment: Shipment) -> WeightUnit:
        ...

    def get_dimension_unit(self, shipment: Shipment) -> DimensionUnit:
        ...

    def get_service_codes(self) -> ServiceCodes:
        ...


class CredentialValidator:
    """Checks that the config fields an operation needs are non-empty"""

    def __init__(self, carrier_name: str, config: Any):
        self.carrier_name = carrier_name
        self.config = config

    def missing(self, *fields: str) -> List[str]:
        return [field for field in fields if not getattr(self.config, field, None)]

    def validate(self, *fields: str) -> None:
        """
        Raises:
            InvalidRequestError: naming every missing field
        """
        missing = self.missing(*fields)
        if missing:
            logger.error(f"{self.carrier_name} request rejected, missing: {', '.join(missing)}")
            raise InvalidRequestError(self.carrier_name, missing)


class UnitPolicy:
    """Imperial units for shipments leaving the carrier's home market, metric otherwise"""

    def __init__(self, home_country: str):
        self.home_country = home_country.upper()

    def unit_system(self, shipment: Shipment) -> UnitSystem:
        if shipment.origin_country == self.home_country:
            return UnitSystem.IMPERIAL
        return UnitSystem.METRIC

    def weight_unit(self, shipment: Shipment) -> WeightUnit:
        return self.unit_system(shipment).weight_unit

    def dimension_unit(self, shipment: Shipment) -> DimensionUnit:
        return self.unit_system(shipment).dimension_unit


class CarrierClient:
    """
    Authenticated dispatch against one carrier base URL.

    ``default_headers`` is called per request so carriers can add per-call
    values such as transaction ids.
    """

    def __init__(
        self,
        base_url: str,
        auth: AuthStrategy,
        transport: HttpClient,
        default_headers: Optional[Callable[[], Dict[str, str]]] = None,
    ):
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self.auth = auth
        self.transport = transport
        self.default_headers = default_headers or (lambda: {})

    def url_for(self, endpoint: str) -> str:
        return f"{self.base_url}{endpoint.lstrip('/')}"

    async def send(
        self,
        method: str,
        endpoint: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        options: RequestOptions = {"headers": {**self.default_headers(), **(headers or {})}}
        if json is not None:
            options["json"] = json
        if params:
            options["params"] = params

        options = await self.auth.apply(options, self.transport)
        return await dispatch(self.transport, method, self.url_for(endpoint), options)
