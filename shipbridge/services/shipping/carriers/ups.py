"""
UPS Carrier Implementation

This module implements the UPS REST API integration.

Features:
- Rate shopping (negotiated rates when an account number is configured)
- Label purchase
- Shipment tracking

Authentication is OAuth2 client credentials; the token is cached on the
carrier instance.

UPS API Docs: https://developer.ups.com/
"""

import logging
import secrets
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from shipbridge.core.config import Settings, get_settings
from shipbridge.core.diagnostics import DiagnosticSink, LoggingDiagnosticSink, VersionProvider, installed_version
from shipbridge.core.enums import DimensionUnit, TrackingStatus, WeightUnit

from ..auth import AuthStrategy, OAuth2ClientCredentials
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
    first_present,
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

PRODUCTION_BASE_URL = "https://onlinetools.ups.com/"
TEST_BASE_URL = "https://wwwcie.ups.com/"

TOKEN_ENDPOINT = "security/v1/oauth/token"
RATING_ENDPOINT = "api/rating/v1/Shop"
SHIPPING_ENDPOINT = "api/shipments/v1/ship"
TRACKING_ENDPOINT = "api/track/v1/details/{tracking_number}"

SERVICE_CODES: Dict[str, Dict[str, str]] = {
    'US': {  # United States
        '01': 'UPS Next Day Air',
        '02': 'UPS 2nd Day Air',
        '03': 'UPS Ground',
        '07': 'UPS Worldwide Express',
        '08': 'UPS Worldwide Expedited',
        '11': 'UPS Standard',
        '12': 'UPS 3 Day Select',
        '13': 'UPS Next Day Air Saver',
        '14': 'UPS Next Day Air Early',
        '54': 'UPS Worldwide Express Plus',
        '59': 'UPS 2nd Day Air A.M.',
        '65': 'UPS Worldwide Saver',
        '75': 'UPS Heavy Goods',
    },
    'CA': {  # Canada
        '01': 'UPS Express',
        '02': 'UPS Expedited',
        '07': 'UPS Worldwide Express',
        '08': 'UPS Worldwide Expedited',
        '11': 'UPS Standard',
        '12': 'UPS 3 Day Select',
        '13': 'UPS Express Saver',
        '14': 'UPS Express Early',
        '54': 'UPS Worldwide Express Plus',
        '65': 'UPS Express Saver',
        '70': 'UPS Access Point Economy',
    },
    'EU': {  # European Union
        '07': 'UPS Express',
        '08': 'UPS Expedited',
        '11': 'UPS Standard',
        '54': 'UPS Worldwide Express Plus',
        '65': 'UPS Worldwide Saver',
        '70': 'UPS Access Point Economy',
        '82': 'UPS Today Standard',
        '83': 'UPS Today Dedicated Courier',
        '84': 'UPS Today Intercity',
        '85': 'UPS Today Express',
        '86': 'UPS Today Express Saver',
        '01': 'UPS Next Day Air',
        '02': 'UPS 2nd Day Air',
        '03': 'UPS Ground',
        '14': 'UPS Next Day Air Early',
    },
    'PR': {  # Puerto Rico
        '01': 'UPS Next Day Air',
        '02': 'UPS 2nd Day Air',
        '03': 'UPS Ground',
        '07': 'UPS Worldwide Express',
        '08': 'UPS Worldwide Expedited',
        '14': 'UPS Next Day Air Early',
        '54': 'UPS Worldwide Express Plus',
        '65': 'UPS Worldwide Saver',
    },
    'MX': {  # Mexico
        '07': 'UPS Express',
        '08': 'UPS Expedited',
        '11': 'UPS Standard',
        '54': 'UPS Worldwide Express Plus',
        '65': 'UPS Worldwide Saver',
    },
    'international': {
        '07': 'UPS Worldwide Express',
        '08': 'UPS Worldwide Expedited',
        '11': 'UPS Standard',
        '54': 'UPS Worldwide Express Plus',
        '65': 'UPS Worldwide Saver',
    },
}

PICKUP_CODES = {
    '01': 'Daily Pickup',
    '03': 'Customer Counter',
    '06': 'One Time Pickup',
    '07': 'On Call Air',
    '19': 'Letter Center',
    '20': 'Air Service Center',
}

# Activity status.type codes
STATUS_MAP = {
    'I': TrackingStatus.IN_TRANSIT,   # In transit
    'P': TrackingStatus.IN_TRANSIT,   # Pickup
    'M': TrackingStatus.IN_TRANSIT,   # Manifest / billing info received
    'D': TrackingStatus.DELIVERED,
    'X': TrackingStatus.ERROR,        # Exception
}

# Negotiated with tax > negotiated > list with tax > list
RATE_PRICE_PATHS = (
    'NegotiatedRateCharges.TotalChargesWithTaxes.MonetaryValue',
    'NegotiatedRateCharges.TotalCharge.MonetaryValue',
    'TotalChargesWithTaxes.MonetaryValue',
    'TotalCharges.MonetaryValue',
)

WEIGHT_UNIT_CODES = {WeightUnit.LB: 'LBS', WeightUnit.KG: 'KGS'}
DIMENSION_UNIT_CODES = {DimensionUnit.IN: 'IN', DimensionUnit.CM: 'CM'}

PACKAGING_CUSTOMER_SUPPLIED = '02'
BILL_SHIPPER = '01'
DEFAULT_LABEL_FORMAT = 'GIF'


class UPSConfig(BaseModel):
    """UPS credentials and options, fixed for the lifetime of a carrier"""

    model_config = ConfigDict(frozen=True)

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    account_number: Optional[str] = None
    pickup_type: str = '01'
    add_declared_value: bool = False
    test_mode: bool = True
    http_timeout: float = 30.0

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "UPSConfig":
        settings = settings or get_settings()
        return cls(
            client_id=settings.UPS_CLIENT_ID or None,
            client_secret=settings.UPS_CLIENT_SECRET or None,
            account_number=settings.UPS_ACCOUNT_NUMBER or None,
            pickup_type=settings.UPS_PICKUP_TYPE,
            add_declared_value=settings.UPS_ADD_DECLARED_VALUE,
            test_mode=settings.UPS_TEST_MODE,
            http_timeout=settings.HTTP_TIMEOUT,
        )


class UPSCarrier:
    """UPS carrier implementation"""

    name = "UPS"
    code = "ups"

    def __init__(
        self,
        config: UPSConfig,
        transport: Optional[HttpClient] = None,
        auth: Optional[AuthStrategy] = None,
        diagnostics: Optional[DiagnosticSink] = None,
        version_provider: VersionProvider = installed_version,
    ):
        """Initialize the UPS carrier.

        Args:
            config: Credentials and options
            transport: HTTP capability; defaults to httpx
            auth: Overrides the OAuth2 client-credentials exchange (tests, proxies)
            diagnostics: Receives normalization gaps; defaults to the debug log
            version_provider: Supplies the version sent in ``transactionSrc``
        """
        self.config = config
        self.transport = transport or HttpxTransport(timeout=config.http_timeout)
        self.diagnostics = diagnostics or LoggingDiagnosticSink()
        self.version_provider = version_provider
        self.validator = CredentialValidator(self.name, config)
        self.units = UnitPolicy(home_country='US')

        self.base_url = TEST_BASE_URL if config.test_mode else PRODUCTION_BASE_URL
        self.auth = auth or OAuth2ClientCredentials(
            token_url=f"{self.base_url}{TOKEN_ENDPOINT}",
            client_id=config.client_id or "",
            client_secret=config.client_secret or "",
            extra_headers={"x-merchant-id": config.client_id or ""},
        )
        self.client = CarrierClient(self.base_url, self.auth, self.transport, default_headers=self._get_headers)

        if config.pickup_type not in PICKUP_CODES:
            logger.warning(f"Unrecognised UPS pickup type '{config.pickup_type}'")

    # Identity

    def get_tracking_url(self, tracking_number: str) -> str:
        return f"https://wwwapps.ups.com/WebTracking/track?track=yes&trackNums={tracking_number}"

    def get_weight_unit(self, shipment: Shipment) -> WeightUnit:
        return self.units.weight_unit(shipment)

    def get_dimension_unit(self, shipment: Shipment) -> DimensionUnit:
        return self.units.dimension_unit(shipment)

    def get_service_codes(self) -> ServiceCodes:
        return SERVICE_CODES

    # Operations

    async def get_rates(self, shipment: Shipment) -> RateResponse:
        """Get UPS rates for every service available between the two addresses"""
        self.validator.validate('client_id', 'client_secret')

        payload = self.build_rate_request(shipment)
        data = await self.client.send("POST", RATING_ENDPOINT, json=payload)

        rates = []
        for shipping_rate in as_list(get_path(data, 'RateResponse.RatedShipment')):
            rate = self._parse_rate(shipment, shipping_rate)
            if rate is not None:
                rates.append(rate)

        logger.info(f"UPS returned {len(rates)} rates")
        return RateResponse(response=data, rates=rates)

    async def get_labels(self, shipment: Shipment, rate: Rate, options: Optional[Dict[str, Any]] = None) -> LabelResponse:
        """Purchase a label. ``options`` is merged into the LabelSpecification block."""
        self.validator.validate('client_id', 'client_secret', 'account_number')

        payload = self.build_label_request(shipment, rate, options)
        data = await self.client.send("POST", SHIPPING_ENDPOINT, json=payload)

        image_format = get_path(payload, 'ShipmentRequest.LabelSpecification.LabelImageFormat.Code')
        labels = self._parse_labels(data, rate, image_format)

        if labels:
            logger.info(f"UPS label created. Tracking number: {labels[0].tracking_number}")
        else:
            logger.warning("UPS response contained no shipment identification number")
        return LabelResponse(response=data, labels=labels)

    async def get_tracking_status(
        self, tracking_numbers: Sequence[str], options: Optional[Dict[str, Any]] = None
    ) -> TrackingResponse:
        """Track each number with its own request"""
        self.validator.validate('client_id', 'client_secret')

        responses: Dict[str, Any] = {}
        tracking: List[Tracking] = []

        for tracking_number in tracking_numbers:
            tracking_number = tracking_number.replace(' ', '')
            data = await self.client.send(
                "GET",
                TRACKING_ENDPOINT.format(tracking_number=tracking_number),
                params=(options or {}).get('params'),
            )
            responses[tracking_number] = data

            for ups_shipment in as_list(get_path(data, 'trackResponse.shipment')):
                for package in as_list(get_path(ups_shipment, 'package')):
                    tracking.append(self._parse_tracking(package, tracking_number, data))

        return TrackingResponse(response=responses, tracking=tracking)

    # Payload construction

    def build_rate_request(self, shipment: Shipment) -> Dict[str, Any]:
        shipper = self._get_contact(shipment.from_address)

        payload: Dict[str, Any] = {
            'RateRequest': {
                'PickupType': {
                    'Code': self.config.pickup_type,
                },
                'Shipment': {
                    'Shipper': shipper,
                    'ShipFrom': self._get_contact(shipment.from_address),
                    'ShipTo': self._get_contact(shipment.to_address),
                    'NumOfPieces': len(shipment.packages),
                    'Package': self._get_packages(shipment),
                    'TaxInformationIndicator': 'Y',
                },
            },
        }

        # Negotiated rates need the account, but rating works without it
        if self.config.account_number:
            rate_shipment = payload['RateRequest']['Shipment']
            shipper['ShipperNumber'] = self.config.account_number
            rate_shipment['ShipmentRatingOptions'] = {
                'NegotiatedRatesIndicator': 'Y',
            }
            rate_shipment['PaymentDetails'] = {
                'ShipmentCharge': {
                    'Type': BILL_SHIPPER,
                    'BillShipper': {
                        'AccountNumber': self.config.account_number,
                    },
                },
            }

        return payload

    def build_label_request(
        self, shipment: Shipment, rate: Rate, options: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        shipper = self._get_contact(shipment.from_address)
        shipper['ShipperNumber'] = self.config.account_number

        # Rating uses `PackagingType`, shipping uses `Packaging`
        packages = []
        for package in self._get_packages(shipment):
            package['Packaging'] = package.pop('PackagingType')
            packages.append(package)

        return {
            'ShipmentRequest': {
                'Shipment': {
                    'Shipper': shipper,
                    'ShipFrom': self._get_contact(shipment.from_address),
                    'ShipTo': self._get_contact(shipment.to_address),
                    'NumOfPieces': len(shipment.packages),
                    'Package': packages,
                    'Service': {
                        'Code': rate.service_code,
                    },
                    'PaymentInformation': {
                        'ShipmentCharge': {
                            'Type': BILL_SHIPPER,
                            'BillShipper': {
                                'AccountNumber': self.config.account_number,
                            },
                        },
                    },
                },
                'LabelSpecification': deep_merge({
                    'LabelImageFormat': {
                        'Code': DEFAULT_LABEL_FORMAT,
                    },
                }, options),
            },
        }

    def _get_headers(self) -> Dict[str, str]:
        return {
            'Content-Type': 'application/json',
            'transId': secrets.token_hex(10),
            'transactionSrc': f"shipbridge {self.version_provider()}",
        }

    def _get_address(self, address: Address) -> Dict[str, Any]:
        ups_address: Dict[str, Any] = {
            'AddressLine': address.street_lines,
            'City': address.city,
            'StateProvinceCode': address.state_province,
            'PostalCode': address.postal_code,
            'CountryCode': address.country_code,
        }

        if address.is_residential:
            ups_address['ResidentialAddressIndicator'] = True

        return ups_address

    def _get_contact(self, address: Address) -> Dict[str, Any]:
        contact: Dict[str, Any] = {
            'Name': address.full_name,
            'AttentionName': address.full_name,
            'Address': self._get_address(address),
        }

        if address.phone:
            contact['Phone'] = {'Number': address.phone}

        if address.email:
            contact['EMailAddress'] = address.email

        return contact

    def _get_packages(self, shipment: Shipment) -> List[Dict[str, Any]]:
        weight_code = WEIGHT_UNIT_CODES[self.get_weight_unit(shipment)]
        dimension_code = DIMENSION_UNIT_CODES[self.get_dimension_unit(shipment)]

        packages = []
        for package in shipment.packages:
            ups_package: Dict[str, Any] = {
                'PackagingType': {
                    'Code': PACKAGING_CUSTOMER_SUPPLIED,
                },
                'Dimensions': {
                    'UnitOfMeasurement': {
                        'Code': dimension_code,
                    },
                    'Length': package.length,
                    'Width': package.width,
                    'Height': package.height,
                },
                'PackageWeight': {
                    'UnitOfMeasurement': {
                        'Code': weight_code,
                    },
                    'Weight': package.weight,
                },
            }

            if self.config.add_declared_value:
                ups_package['PackageServiceOptions'] = {
                    'DeclaredValue': {
                        'CurrencyCode': shipment.currency,
                        'MonetaryValue': str(package.price),
                    },
                }

            packages.append(ups_package)

        return packages

    # Normalization

    def _parse_rate(self, shipment: Shipment, shipping_rate: Dict[str, Any]) -> Optional[Rate]:
        service_code = to_str(get_path(shipping_rate, 'Service.Code'))
        if not service_code:
            self.diagnostics.record(self.name, 'Unable to find "Service.Code" for rate', payload=shipping_rate)
            return None

        service_name = resolve_service_name(SERVICE_CODES, shipment.origin_country, service_code)
        if not service_name:
            self.diagnostics.record(
                self.name,
                f'Unknown service code "{service_code}" for origin {shipment.origin_country}',
                payload=shipping_rate,
            )
            return None

        return Rate(
            carrier=self,
            response=shipping_rate,
            service_name=service_name,
            service_code=service_code,
            rate=to_float(first_present(shipping_rate, *RATE_PRICE_PATHS)),
            currency=to_str(get_path(shipping_rate, 'TotalCharges.CurrencyCode')),
            delivery_days=to_int(get_path(shipping_rate, 'GuaranteedDelivery.BusinessDaysInTransit')),
            delivery_date_guaranteed=get_path(shipping_rate, 'GuaranteedDelivery') is not None,
        )

    def _parse_labels(self, data: Any, rate: Rate, image_format: Optional[str]) -> List[Label]:
        shipment_id = to_str(get_path(data, 'ShipmentResponse.ShipmentResults.ShipmentIdentificationNumber'))
        if not shipment_id:
            return []

        labels = []
        for package_result in as_list(get_path(data, 'ShipmentResponse.ShipmentResults.PackageResults')):
            label_data = decode_base64(get_path(package_result, 'ShippingLabel.GraphicImage'))
            labels.append(Label(
                carrier=self,
                response=data,
                rate=rate,
                tracking_number=to_str(get_path(package_result, 'TrackingNumber')),
                label_id=shipment_id,
                label_data=label_data,
                label_mime=mime_type_for(image_format, 'image/gif'),
            ))

        if not labels:
            # Shipment accepted but no package results echoed back
            labels.append(Label(carrier=self, response=data, rate=rate, label_id=shipment_id))

        return labels

    def _parse_tracking(self, package: Dict[str, Any], tracking_number: str, data: Any) -> Tracking:
        # deliveryDate is a history (SDD scheduled, RDD rescheduled, DEL delivered);
        # the last entry is the current one
        delivery_dates = as_list(get_path(package, 'deliveryDate'))
        estimated_delivery = parse_date(get_path(delivery_dates[-1], 'date')) if delivery_dates else None

        # Activities come newest first
        activities = as_list(get_path(package, 'activity'))
        latest = activities[0] if activities else {}

        return Tracking(
            carrier=self,
            response=data,
            tracking_number=to_str(get_path(package, 'trackingNumber')) or tracking_number,
            status=classify_status(STATUS_MAP, get_path(latest, 'status.type')),
            status_detail=to_str(get_path(latest, 'status.description')) or '',
            estimated_delivery=estimated_delivery,
            details=[self._parse_activity(activity) for activity in activities],
            signed_by=to_str(get_path(package, 'deliveryInformation.receivedBy')),
            weight=to_float(get_path(package, 'weight.weight')),
            weight_unit=to_str(get_path(package, 'weight.unitOfMeasurement')),
        )

    def _parse_activity(self, activity: Dict[str, Any]) -> TrackingDetail:
        address = get_path(activity, 'location.address') or {}
        location = join_location(
            get_path(address, 'city'),
            get_path(address, 'stateProvince'),
            get_path(address, 'countryCode'),
        )
        description = to_str(get_path(activity, 'status.description')) or ''

        return TrackingDetail(
            location=location,
            description=description,
            date=parse_datetime(get_path(activity, 'date'), get_path(activity, 'time'), '%Y%m%d', '%H%M%S'),
            status=classify_status(STATUS_MAP, get_path(activity, 'status.type')),
            status_detail=description,
        )
