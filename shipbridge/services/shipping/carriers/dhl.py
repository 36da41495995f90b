"""
DHL Carrier Implementation

This module implements the DHL Express (MyDHL API) integration.

Features:
- Rate calculation
- Shipment creation / label generation
- Shipment tracking

DHL API Docs:
 - https://developer.dhl.com/api-reference/dhl-express-mydhl-api#get-started-section/
 - https://developer.dhl.com/api-reference/dhl-express-mydhl-api#reference-docs-section
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from shipbridge.core.config import Settings, get_settings
from shipbridge.core.diagnostics import DiagnosticSink, LoggingDiagnosticSink
from shipbridge.core.enums import DimensionUnit, TrackingStatus, WeightUnit

from ..auth import AuthStrategy, BasicAuth
from ..base import CarrierClient, CredentialValidator, ServiceCodes, UnitPolicy
from ..models import (
    Address,
    Label,
    LabelResponse,
    Rate,
    RateResponse,
    Shipment,
    Tracking,
    TrackingDetail,
    TrackingResponse,
)
from ..normalize import (
    as_list,
    classify_status,
    decode_base64,
    deep_merge,
    get_path,
    join_location,
    mime_type_for,
    parse_date,
    parse_datetime,
    resolve_service_name,
    to_float,
    to_int,
    to_str,
)
from ..transport import HttpClient, HttpxTransport

logger = logging.getLogger(__name__)

PRODUCTION_BASE_URL = "https://express.api.dhl.com/mydhlapi/"
TEST_BASE_URL = "https://express.api.dhl.com/mydhlapi/test/"

RATES_ENDPOINT = "rates"
SHIPMENTS_ENDPOINT = "shipments"
TRACKING_ENDPOINT = "shipments/{tracking_number}/tracking"

# EU member states (post-Brexit)
EU_COUNTRY_CODES = {
    'AT',  # Austria
    'BE',  # Belgium
    'BG',  # Bulgaria
    'HR',  # Croatia
    'CY',  # Cyprus
    'CZ',  # Czech Republic
    'DK',  # Denmark
    'EE',  # Estonia
    'FI',  # Finland
    'FR',  # France
    'DE',  # Germany
    'GR',  # Greece
    'HU',  # Hungary
    'IE',  # Ireland
    'IT',  # Italy
    'LV',  # Latvia
    'LT',  # Lithuania
    'LU',  # Luxembourg
    'MT',  # Malta
    'NL',  # Netherlands
    'PL',  # Poland
    'PT',  # Portugal
    'RO',  # Romania
    'SK',  # Slovakia
    'SI',  # Slovenia
    'ES',  # Spain
    'SE',  # Sweden
}

# DHL Express Product Codes
EU_PRODUCTS = {
    'N': 'DHL Domestic Express',
    'P': 'DHL Express Worldwide',
    'D': 'DHL Express Worldwide (documents)',
    'U': 'DHL Express Worldwide EU',
    'K': 'DHL Express 9:00',
    'T': 'DHL Express 12:00',
    'E': 'DHL Express 9:00 (non-documents)',
    'H': 'DHL Economy Select',
    'W': 'DHL Economy Select EU',
}

SERVICE_CODES: Dict[str, Dict[str, str]] = {
    'GB': {
        'N': 'DHL Domestic Express',
        'P': 'DHL Express Worldwide',
        'D': 'DHL Express Worldwide (documents)',
        'K': 'DHL Express 9:00',
        'T': 'DHL Express 12:00',
        'E': 'DHL Express 9:00 (non-documents)',
        'H': 'DHL Economy Select',
    },
    **{country: EU_PRODUCTS for country in sorted(EU_COUNTRY_CODES)},
    'international': {
        'P': 'DHL Express Worldwide',
        'D': 'DHL Express Worldwide (documents)',
        'K': 'DHL Express 9:00',
        'T': 'DHL Express 12:00',
        'E': 'DHL Express 9:00 (non-documents)',
        'H': 'DHL Economy Select',
    },
}

# Event typeCode values
STATUS_MAP = {
    'PU': TrackingStatus.IN_TRANSIT,  # Picked up
    'PL': TrackingStatus.IN_TRANSIT,  # Processed at facility
    'DF': TrackingStatus.IN_TRANSIT,  # Departed facility
    'AF': TrackingStatus.IN_TRANSIT,  # Arrived at facility
    'AR': TrackingStatus.IN_TRANSIT,  # Arrived at delivery facility
    'WC': TrackingStatus.IN_TRANSIT,  # With delivery courier
    'CC': TrackingStatus.IN_TRANSIT,  # Awaiting collection
    'CR': TrackingStatus.IN_TRANSIT,  # Customs released
    'RR': TrackingStatus.IN_TRANSIT,  # Customs status updated
    'TR': TrackingStatus.IN_TRANSIT,  # Transferred
    'OK': TrackingStatus.DELIVERED,
    'OH': TrackingStatus.ERROR,       # On hold
    'NH': TrackingStatus.ERROR,       # Not home
    'BA': TrackingStatus.ERROR,       # Bad address
    'CA': TrackingStatus.ERROR,       # Closed on arrival
    'MS': TrackingStatus.ERROR,       # Missorted
    'HP': TrackingStatus.ERROR,       # Held for payment
    'CD': TrackingStatus.ERROR,       # Clearance delay
    'RT': TrackingStatus.ERROR,       # Returned to shipper
}

# Account billing price > published local price > base currency price
PRICE_CURRENCY_TYPES = ('BILLC', 'PULCL', 'BASEC')

# Delivery date is committed (rather than fastest possible)
COMMITTED_DELIVERY_TYPE = 'QDDC'

DEFAULT_IMAGE_OPTIONS = {
    "printerDPI": 300,
    "encodingFormat": "pdf",
    "imageOptions": [
        {
            "typeCode": "label",
            "templateName": "ECOM26_84_001",
            "isRequested": True
        },
    ]
}


class DHLConfig(BaseModel):
    """DHL Express credentials, fixed for the lifetime of a carrier"""

    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = None
    api_secret: Optional[str] = None
    account_number: Optional[str] = None
    test_mode: bool = True
    http_timeout: float = 30.0

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "DHLConfig":
        settings = settings or get_settings()
        return cls(
            api_key=settings.DHL_API_KEY or None,
            api_secret=settings.DHL_API_SECRET or None,
            account_number=settings.DHL_ACCOUNT_NUMBER or None,
            test_mode=settings.DHL_TEST_MODE,
            http_timeout=settings.HTTP_TIMEOUT,
        )


class DHLCarrier:
    """DHL Express carrier implementation."""

    name = "DHL Express"
    code = "dhl"

    def __init__(
        self,
        config: DHLConfig,
        transport: Optional[HttpClient] = None,
        auth: Optional[AuthStrategy] = None,
        diagnostics: Optional[DiagnosticSink] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """Initialize the DHL Express carrier.

        Args:
            config: Credentials
            transport: HTTP capability; defaults to httpx
            auth: Overrides basic auth built from the API key/secret
            diagnostics: Receives normalization gaps
            clock: Source of "now" for planned shipping dates
        """
        self.config = config
        self.transport = transport or HttpxTransport(timeout=config.http_timeout)
        self.diagnostics = diagnostics or LoggingDiagnosticSink()
        self.clock = clock
        self.validator = CredentialValidator(self.name, config)
        # Imperial only for US-origin shipments
        self.units = UnitPolicy(home_country='US')

        self.base_url = TEST_BASE_URL if config.test_mode else PRODUCTION_BASE_URL
        self.auth = auth or BasicAuth(config.api_key or "", config.api_secret or "")
        self.client = CarrierClient(self.base_url, self.auth, self.transport, default_headers=self._get_headers)

    # Identity

    def get_tracking_url(self, tracking_number: str) -> str:
        return f"https://www.dhl.com/global-en/home/tracking/tracking-express.html?submit=1&tracking-id={tracking_number}"

    def get_weight_unit(self, shipment: Shipment) -> WeightUnit:
        return self.units.weight_unit(shipment)

    def get_dimension_unit(self, shipment: Shipment) -> DimensionUnit:
        return self.units.dimension_unit(shipment)

    def get_service_codes(self) -> ServiceCodes:
        return SERVICE_CODES

    # Operations

    async def get_rates(self, shipment: Shipment) -> RateResponse:
        """Get DHL Express products and prices for a shipment"""
        self.validator.validate('api_key', 'api_secret')

        payload = self.build_rate_request(shipment, self._planned_shipping_date())
        data = await self.client.send("POST", RATES_ENDPOINT, json=payload)

        rates = []
        for product in as_list(get_path(data, 'products')):
            rate = self._parse_rate(shipment, product)
            if rate is not None:
                rates.append(rate)

        logger.info(f"DHL returned {len(rates)} rates")
        return RateResponse(response=data, rates=rates)

    async def get_labels(self, shipment: Shipment, rate: Rate, options: Optional[Dict[str, Any]] = None) -> LabelResponse:
        """Create a shipment. ``options`` is merged into outputImageProperties."""
        self.validator.validate('api_key', 'api_secret', 'account_number')

        payload = self.build_label_request(shipment, rate, self._planned_shipping_date(), options)
        data = await self.client.send(
            "POST", SHIPMENTS_ENDPOINT, json=payload, headers=self._message_reference_headers()
        )

        labels = self._parse_labels(data, rate)
        if labels:
            logger.info(f"Shipment created successfully! Tracking number: {labels[0].tracking_number}")
        else:
            logger.warning("DHL response contained no shipment tracking number")
        return LabelResponse(response=data, labels=labels)

    async def get_tracking_status(
        self, tracking_numbers: Sequence[str], options: Optional[Dict[str, Any]] = None
    ) -> TrackingResponse:
        """Track each number with its own request"""
        self.validator.validate('api_key', 'api_secret')

        params = {"trackingView": "all-checkpoints", "levelOfDetail": "all", **((options or {}).get('params') or {})}
        responses: Dict[str, Any] = {}
        tracking: List[Tracking] = []

        for tracking_number in tracking_numbers:
            tracking_number = tracking_number.replace(' ', '')
            data = await self.client.send(
                "GET", TRACKING_ENDPOINT.format(tracking_number=tracking_number), params=params
            )
            responses[tracking_number] = data

            for dhl_shipment in as_list(get_path(data, 'shipments')):
                tracking.append(self._parse_tracking(dhl_shipment, tracking_number, data))

        return TrackingResponse(response=responses, tracking=tracking)

    # Payload construction

    def build_rate_request(self, shipment: Shipment, planned_at: datetime) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "customerDetails": {
                "shipperDetails": self._get_rate_address(shipment.from_address),
                "receiverDetails": self._get_rate_address(shipment.to_address),
            },
            "plannedShippingDateAndTime": self._format_planned_date(planned_at),
            "unitOfMeasurement": self.units.unit_system(shipment).value,
            "isCustomsDeclarable": not shipment.is_domestic,
            "packages": self._get_packages(shipment),
        }

        # Account pricing, when configured
        if self.config.account_number:
            payload["accounts"] = [
                {
                    "typeCode": "shipper",
                    "number": self.config.account_number,
                }
            ]

        if not shipment.is_domestic:
            payload["monetaryAmount"] = [
                {
                    "typeCode": "declaredValue",
                    "value": shipment.total_price,
                    "currency": shipment.currency,
                }
            ]

        return payload

    def build_label_request(
        self,
        shipment: Shipment,
        rate: Rate,
        planned_at: datetime,
        options: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        content: Dict[str, Any] = {
            "packages": self._get_packages(shipment),
            "isCustomsDeclarable": not shipment.is_domestic,
            "description": "Shipment",
            "incoterm": "DAP",
            "unitOfMeasurement": self.units.unit_system(shipment).value,
        }
        if not shipment.is_domestic:
            content["declaredValue"] = shipment.total_price
            content["declaredValueCurrency"] = shipment.currency

        return {
            "plannedShippingDateAndTime": self._format_planned_date(planned_at),
            "pickup": {
                "isRequested": False
            },
            "productCode": rate.service_code,
            "accounts": [
                {
                    "number": self.config.account_number,
                    "typeCode": "shipper"
                }
            ],
            "outputImageProperties": deep_merge(DEFAULT_IMAGE_OPTIONS, options),
            "customerDetails": {
                "shipperDetails": self._get_party(shipment.from_address),
                "receiverDetails": self._get_party(shipment.to_address),
            },
            "content": content,
        }

    def _get_headers(self) -> Dict[str, str]:
        return {
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }

    def _message_reference_headers(self) -> Dict[str, str]:
        # Message reference must be 28-36 chars
        return {
            'Message-Reference': str(uuid.uuid4()),
            'Message-Reference-Date': self.clock().strftime("%Y-%m-%dT%H:%M:%S GMT+00:00"),
        }

    def _planned_shipping_date(self) -> datetime:
        # Next day, 10:00
        tomorrow = self.clock() + timedelta(days=1)
        return tomorrow.replace(hour=10, minute=0, second=0, microsecond=0)

    @staticmethod
    def _format_planned_date(planned_at: datetime) -> str:
        return planned_at.strftime("%Y-%m-%dT%H:%M:%S GMT+00:00")

    def _get_rate_address(self, address: Address) -> Dict[str, Any]:
        details = {
            "postalCode": address.postal_code or "",
            "cityName": address.city or "",
            "countryCode": address.country_code,
        }
        if address.state_province:
            details["provinceCode"] = address.state_province
        if address.street1:
            details["addressLine1"] = address.street1
        return details

    def _get_party(self, address: Address) -> Dict[str, Any]:
        postal_address: Dict[str, Any] = {
            "postalCode": address.postal_code or "",
            "cityName": address.city or "",
            "countryCode": address.country_code,
        }
        for index, line in enumerate(address.street_lines, start=1):
            postal_address[f"addressLine{index}"] = line
        if address.state_province:
            postal_address["provinceCode"] = address.state_province

        contact: Dict[str, Any] = {
            "fullName": address.full_name,
            "companyName": address.company_name or address.full_name,
            "phone": address.phone or "",
        }
        if address.email:
            contact["email"] = address.email

        return {
            "postalAddress": postal_address,
            "contactInformation": contact,
            "typeCode": "private" if address.is_residential else "business",
        }

    def _get_packages(self, shipment: Shipment) -> List[Dict[str, Any]]:
        return [
            {
                "weight": package.weight,
                "dimensions": {
                    "length": package.length,
                    "width": package.width,
                    "height": package.height,
                },
            }
            for package in shipment.packages
        ]

    # Normalization

    def _parse_rate(self, shipment: Shipment, product: Dict[str, Any]) -> Optional[Rate]:
        service_code = to_str(get_path(product, 'productCode'))
        if not service_code:
            self.diagnostics.record(self.name, 'Unable to find "productCode" for product', payload=product)
            return None

        service_name = resolve_service_name(SERVICE_CODES, shipment.origin_country, service_code)
        if not service_name:
            self.diagnostics.record(
                self.name,
                f'Unknown product code "{service_code}" for origin {shipment.origin_country}',
                payload=product,
            )
            return None

        price = self._select_price(product)

        return Rate(
            carrier=self,
            response=product,
            service_name=service_name,
            service_code=service_code,
            rate=to_float(get_path(price, 'price')),
            currency=to_str(get_path(price, 'priceCurrency')),
            delivery_days=to_int(get_path(product, 'deliveryCapabilities.totalTransitDays')),
            delivery_date=parse_date(get_path(product, 'deliveryCapabilities.estimatedDeliveryDateAndTime')),
            delivery_date_guaranteed=get_path(product, 'deliveryCapabilities.deliveryTypeCode') == COMMITTED_DELIVERY_TYPE,
        )

    @staticmethod
    def _select_price(product: Dict[str, Any]) -> Dict[str, Any]:
        prices = {
            to_str(get_path(entry, 'currencyType')): entry
            for entry in as_list(get_path(product, 'totalPrice'))
            if isinstance(entry, dict)
        }
        for currency_type in PRICE_CURRENCY_TYPES:
            entry = prices.get(currency_type)
            if entry is not None and get_path(entry, 'price') is not None:
                return entry
        return {}

    def _parse_labels(self, data: Any, rate: Rate) -> List[Label]:
        tracking_number = to_str(get_path(data, 'shipmentTrackingNumber'))
        if not tracking_number:
            return []

        document = next(
            (doc for doc in as_list(get_path(data, 'documents')) if get_path(doc, 'typeCode') == 'label'),
            {},
        )

        return [Label(
            carrier=self,
            response=data,
            rate=rate,
            tracking_number=tracking_number,
            label_id=tracking_number,
            label_data=decode_base64(get_path(document, 'content')),
            label_mime=mime_type_for(get_path(document, 'imageFormat'), 'application/pdf'),
        )]

    def _parse_tracking(self, dhl_shipment: Dict[str, Any], tracking_number: str, data: Any) -> Tracking:
        # Events come oldest first
        events = as_list(get_path(dhl_shipment, 'events'))
        latest = events[-1] if events else {}

        return Tracking(
            carrier=self,
            response=data,
            tracking_number=to_str(get_path(dhl_shipment, 'shipmentTrackingNumber')) or tracking_number,
            status=classify_status(STATUS_MAP, get_path(latest, 'typeCode')),
            status_detail=to_str(get_path(latest, 'description')) or '',
            estimated_delivery=parse_date(get_path(dhl_shipment, 'estimatedDeliveryDate')),
            details=[self._parse_event(event) for event in reversed(events)],
            signed_by=to_str(get_path(latest, 'signedBy')) or None,
            weight=to_float(get_path(dhl_shipment, 'totalWeight')),
            weight_unit=to_str(get_path(dhl_shipment, 'unitOfMeasurements')),
        )

    def _parse_event(self, event: Dict[str, Any]) -> TrackingDetail:
        description = to_str(get_path(event, 'description')) or ''
        return TrackingDetail(
            location=join_location(get_path(event, 'serviceArea.0.description')),
            description=description,
            date=parse_datetime(get_path(event, 'date'), get_path(event, 'time'), '%Y-%m-%d', '%H:%M:%S'),
            status=classify_status(STATUS_MAP, get_path(event, 'typeCode')),
            status_detail=description,
        )
