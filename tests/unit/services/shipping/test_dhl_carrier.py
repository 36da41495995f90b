# tests/unit/services/shipping/test_dhl_carrier.py
import base64
from datetime import date, datetime

import pytest

from shipbridge.core.enums import DimensionUnit, TrackingStatus, WeightUnit
from shipbridge.core.exceptions import CarrierDispatchError, InvalidRequestError
from shipbridge.services.shipping.auth import basic_auth_header
from shipbridge.services.shipping.base import Carrier
from shipbridge.services.shipping.carriers.dhl import DHLCarrier, DHLConfig
from shipbridge.services.shipping.models import Address, Package, Rate, Shipment
from shipbridge.services.shipping.transport import HttpxTransport

from tests.mocks.mock_transport import MockResponse

TEST_BASE_URL = "https://express.api.dhl.com/mydhlapi/test/"


def product(code="P", prices=None, **capabilities):
    return {
        "productName": "EXPRESS WORLDWIDE",
        "productCode": code,
        "totalPrice": prices if prices is not None else [
            {"currencyType": "BILLC", "priceCurrency": "EUR", "price": 61.5},
        ],
        "deliveryCapabilities": capabilities,
    }


@pytest.fixture
def gb_shipment(fr_address):
    origin = Address(company_name="London Sender Ltd", city="London", postal_code="EC1A 1BB", country_code="GB")
    return Shipment(
        from_address=origin,
        to_address=fr_address,
        packages=[Package(length=30, width=20, height=10, weight=2, price=150)],
        currency="GBP",
    )


"""
1. Identity
"""

def test_dhl_satisfies_carrier_protocol(dhl):
    assert isinstance(dhl, Carrier)
    assert dhl.code == "dhl"


def test_dhl_units(dhl, us_shipment, de_shipment):
    assert dhl.get_weight_unit(us_shipment) == WeightUnit.LB
    assert dhl.get_dimension_unit(us_shipment) == DimensionUnit.IN
    assert dhl.get_weight_unit(de_shipment) == WeightUnit.KG
    assert dhl.get_dimension_unit(de_shipment) == DimensionUnit.CM


def test_dhl_tracking_url(dhl):
    assert dhl.get_tracking_url("1234567890").endswith("tracking-id=1234567890")


def test_eu_members_have_their_own_service_tables(dhl):
    codes = dhl.get_service_codes()

    assert codes["DE"]["U"] == "DHL Express Worldwide EU"
    assert codes["FR"]["W"] == "DHL Economy Select EU"
    assert "U" not in codes["GB"]
    assert "U" not in codes["international"]


def test_default_transport_uses_config_timeout(mocker):
    get_settings = mocker.patch("shipbridge.services.shipping.carriers.dhl.get_settings")

    dhl = DHLCarrier(DHLConfig(api_key="k", api_secret="s", http_timeout=12.5))

    assert isinstance(dhl.transport, HttpxTransport)
    assert dhl.transport.timeout == 12.5
    get_settings.assert_not_called()

"""
2. Rating
"""

@pytest.mark.asyncio
async def test_rate_request_payload(dhl, transport, de_shipment):
    transport.queue({"products": [product()]})

    await dhl.get_rates(de_shipment)

    call = transport.calls[0]
    assert call["url"] == f"{TEST_BASE_URL}rates"
    assert call["options"]["headers"]["Authorization"] == basic_auth_header("test_key", "test_secret")

    payload = transport.last_json()
    assert payload["plannedShippingDateAndTime"] == "2024-01-05T10:00:00 GMT+00:00"
    assert payload["unitOfMeasurement"] == "metric"
    assert payload["isCustomsDeclarable"] is True
    assert payload["accounts"] == [{"typeCode": "shipper", "number": "123456789"}]
    assert payload["monetaryAmount"][0] == {"typeCode": "declaredValue", "value": 80.0, "currency": "EUR"}
    assert payload["customerDetails"]["shipperDetails"]["countryCode"] == "DE"
    assert payload["packages"][0] == {"weight": 5.0, "dimensions": {"length": 40.0, "width": 30.0, "height": 20.0}}


@pytest.mark.asyncio
async def test_domestic_rate_request_without_account(transport, diagnostics, us_shipment):
    dhl = DHLCarrier(DHLConfig(api_key="k", api_secret="s"), transport=transport, diagnostics=diagnostics)
    transport.queue({"products": []})

    await dhl.get_rates(us_shipment)

    payload = transport.last_json()
    assert "accounts" not in payload
    assert "monetaryAmount" not in payload
    assert payload["isCustomsDeclarable"] is False
    assert payload["unitOfMeasurement"] == "imperial"


@pytest.mark.asyncio
async def test_rate_normalization(dhl, transport, de_shipment):
    transport.queue({"products": [product(
        "U",
        totalTransitDays="2",
        estimatedDeliveryDateAndTime="2024-01-08T23:59:00",
        deliveryTypeCode="QDDC",
    )]})

    response = await dhl.get_rates(de_shipment)

    rate = response.rates[0]
    assert rate.service_name == "DHL Express Worldwide EU"
    assert rate.rate == 61.5
    assert rate.currency == "EUR"
    assert rate.delivery_days == 2
    assert rate.delivery_date == date(2024, 1, 8)
    assert rate.delivery_date_guaranteed is True


@pytest.mark.parametrize("prices,expected", [
    (
        [
            {"currencyType": "BASEC", "priceCurrency": "EUR", "price": 70.0},
            {"currencyType": "PULCL", "priceCurrency": "GBP", "price": 60.0},
            {"currencyType": "BILLC", "priceCurrency": "GBP", "price": 55.0},
        ],
        (55.0, "GBP"),
    ),
    (
        [
            {"currencyType": "BASEC", "priceCurrency": "EUR", "price": 70.0},
            {"currencyType": "PULCL", "priceCurrency": "GBP", "price": 60.0},
        ],
        (60.0, "GBP"),
    ),
    ([{"currencyType": "BASEC", "priceCurrency": "EUR", "price": 70.0}], (70.0, "EUR")),
    ([], (None, None)),
])
@pytest.mark.asyncio
async def test_price_selection(dhl, transport, gb_shipment, prices, expected):
    transport.queue({"products": [product("P", prices=prices)]})

    response = await dhl.get_rates(gb_shipment)

    rate = response.rates[0]
    assert (rate.rate, rate.currency) == expected
    assert rate.service_name == "DHL Express Worldwide"


@pytest.mark.asyncio
async def test_eu_only_product_skipped_outside_the_eu(dhl, transport, diagnostics, fr_address):
    origin = Address(company_name="Oslo Sender AS", city="Oslo", postal_code="0150", country_code="NO")
    shipment = Shipment(from_address=origin, to_address=fr_address, packages=[Package(length=10, width=10, height=10, weight=1)])
    transport.queue({"products": [product("U"), product("P")]})

    response = await dhl.get_rates(shipment)

    assert [rate.service_code for rate in response.rates] == ["P"]
    assert '"U"' in diagnostics.records[0].message


@pytest.mark.asyncio
async def test_odd_price_shapes_do_not_raise(dhl, transport, gb_shipment):
    transport.queue({"products": [product("P", prices=[
        {"currencyType": ["BILLC"], "priceCurrency": "GBP", "price": 1.0},
        {"currencyType": "PULCL", "priceCurrency": 826, "price": "48.20"},
        "not-a-price",
    ])]})

    response = await dhl.get_rates(gb_shipment)

    rate = response.rates[0]
    assert rate.rate == 48.2
    assert rate.currency == "826"


@pytest.mark.asyncio
async def test_unknown_product_code_is_skipped(dhl, transport, diagnostics, us_shipment):
    # Domestic express is not offered from the international region
    transport.queue({"products": [product("N"), product("P"), {"totalPrice": []}]})

    response = await dhl.get_rates(us_shipment)

    assert [rate.service_code for rate in response.rates] == ["P"]
    assert len(diagnostics.records) == 2
    assert diagnostics.records[0].carrier == "DHL Express"


@pytest.mark.asyncio
async def test_rates_missing_secret(transport, us_shipment):
    dhl = DHLCarrier(DHLConfig(api_key="k"), transport=transport)

    with pytest.raises(InvalidRequestError) as exc_info:
        await dhl.get_rates(us_shipment)

    assert exc_info.value.missing_fields == ["api_secret"]
    assert transport.call_count == 0

"""
3. Labels
"""

@pytest.mark.asyncio
async def test_label_requires_account_number(transport, us_shipment):
    dhl = DHLCarrier(DHLConfig(api_key="k", api_secret="s"), transport=transport)
    rate = Rate(service_name="DHL Express Worldwide", service_code="P", rate=10.0)

    with pytest.raises(InvalidRequestError):
        await dhl.get_labels(us_shipment, rate)

    assert transport.call_count == 0


@pytest.mark.asyncio
async def test_label_creation(dhl, transport, de_shipment):
    pdf = base64.b64encode(b"%PDF-1.4 label").decode()
    transport.queue({
        "shipmentTrackingNumber": "1234567890",
        "packages": [{"trackingNumber": "JD014600003RSA0000001"}],
        "documents": [
            {"typeCode": "invoice", "imageFormat": "PDF", "content": base64.b64encode(b"invoice").decode()},
            {"typeCode": "label", "imageFormat": "PDF", "content": pdf},
        ],
    })
    rate = Rate(carrier=dhl, service_name="DHL Express Worldwide EU", service_code="U", rate=61.5, currency="EUR")

    response = await dhl.get_labels(de_shipment, rate, {"printerDPI": 200})

    label = response.labels[0]
    assert label.tracking_number == "1234567890"
    assert label.label_id == "1234567890"
    assert label.label_data == b"%PDF-1.4 label"
    assert label.label_mime == "application/pdf"

    call = transport.calls[0]
    assert call["url"] == f"{TEST_BASE_URL}shipments"
    assert len(call["options"]["headers"]["Message-Reference"]) == 36
    assert call["options"]["headers"]["Message-Reference-Date"] == "2024-01-04T15:30:00 GMT+00:00"

    payload = transport.last_json()
    assert payload["productCode"] == "U"
    assert payload["accounts"] == [{"number": "123456789", "typeCode": "shipper"}]
    assert payload["outputImageProperties"]["printerDPI"] == 200
    assert payload["outputImageProperties"]["encodingFormat"] == "pdf"
    assert payload["content"]["declaredValueCurrency"] == "EUR"
    assert payload["customerDetails"]["shipperDetails"]["contactInformation"]["companyName"] == "Berlin Sender GmbH"
    assert payload["customerDetails"]["receiverDetails"]["postalAddress"]["addressLine1"] == "1 Rue de Rivoli"


@pytest.mark.asyncio
async def test_label_response_without_tracking_number(dhl, transport, de_shipment):
    transport.queue({"documents": []})
    rate = Rate(service_name="DHL Express Worldwide", service_code="P")

    response = await dhl.get_labels(de_shipment, rate)

    assert response.labels == []

"""
4. Tracking
"""

def dhl_event(type_code, description, when, area=None, **extra):
    event = {
        "date": when[0],
        "time": when[1],
        "typeCode": type_code,
        "description": description,
        "serviceArea": [{"code": "XXX", "description": area}] if area else [],
    }
    event.update(extra)
    return event


@pytest.mark.asyncio
async def test_tracking_latest_event_is_last(dhl, transport):
    transport.queue({"shipments": [{
        "shipmentTrackingNumber": 1234567890,
        "estimatedDeliveryDate": "2024-01-08",
        "totalWeight": 2.5,
        "unitOfMeasurements": "metric",
        "events": [
            dhl_event("PU", "Shipment picked up", ("2024-01-05", "11:00:00"), "LEIPZIG - GERMANY"),
            dhl_event("OK", "Delivered", ("2024-01-08", "09:12:00"), "PARIS - FRANCE", signedBy="P RECEIVER"),
        ],
    }]})

    response = await dhl.get_tracking_status(["12345 67890"])

    tracking = response.tracking[0]
    assert tracking.tracking_number == "1234567890"
    assert tracking.status == TrackingStatus.DELIVERED
    assert tracking.status_detail == "Delivered"
    assert tracking.signed_by == "P RECEIVER"
    assert tracking.estimated_delivery == date(2024, 1, 8)
    assert tracking.weight == 2.5
    assert [detail.location for detail in tracking.details] == ["PARIS - FRANCE", "LEIPZIG - GERMANY"]
    assert tracking.details[0].date == datetime(2024, 1, 8, 9, 12)

    call = transport.calls[0]
    assert call["url"] == f"{TEST_BASE_URL}shipments/1234567890/tracking"
    assert call["options"]["params"] == {"trackingView": "all-checkpoints", "levelOfDetail": "all"}
    assert set(response.response) == {"1234567890"}


@pytest.mark.asyncio
async def test_tracking_unmapped_event_is_unknown(dhl, transport):
    transport.queue({"shipments": [{"events": [dhl_event("ZZ", "New code", ("2024-01-05", "11:00:00"))]}]})

    response = await dhl.get_tracking_status(["1234567890"])

    assert response.tracking[0].status == TrackingStatus.UNKNOWN
    assert response.tracking[0].details[0].location == ""


@pytest.mark.asyncio
async def test_tracking_params_override(dhl, transport):
    transport.queue({"shipments": []})

    response = await dhl.get_tracking_status(["1234567890"], {"params": {"levelOfDetail": "shipment"}})

    assert response.tracking == []
    assert transport.calls[0]["options"]["params"]["levelOfDetail"] == "shipment"


@pytest.mark.asyncio
async def test_numeric_identifiers_are_stringified(dhl, transport, de_shipment):
    transport.queue(
        {"shipmentTrackingNumber": 1234567890, "documents": []},
        {"shipments": [{
            "shipmentTrackingNumber": 1234567890,
            "unitOfMeasurements": 0,
            "events": [dhl_event("PU", 17, ("2024-01-05", "11:00:00"), signedBy={"name": "X"})],
        }]},
    )
    rate = Rate(service_name="DHL Express Worldwide", service_code="P")

    labels = await dhl.get_labels(de_shipment, rate)
    tracking = await dhl.get_tracking_status(["1234567890"])

    assert labels.labels[0].label_id == "1234567890"
    assert labels.labels[0].tracking_number == "1234567890"
    record = tracking.tracking[0]
    assert record.tracking_number == "1234567890"
    assert record.status_detail == "17"
    assert record.weight_unit == "0"
    assert record.signed_by is None


@pytest.mark.asyncio
async def test_tracking_not_found(dhl, transport):
    transport.queue(MockResponse(404, text='{"title":"Not Found","status":404}'))

    with pytest.raises(CarrierDispatchError) as exc_info:
        await dhl.get_tracking_status(["0000000000"])

    assert exc_info.value.status_code == 404
