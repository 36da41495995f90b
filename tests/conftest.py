# tests/conftest.py
import pytest

from shipbridge.core.config import Settings
from shipbridge.core.diagnostics import MemoryDiagnosticSink
from shipbridge.services.shipping.auth import StaticKeyAuth
from shipbridge.services.shipping.carriers.dhl import DHLCarrier, DHLConfig
from shipbridge.services.shipping.carriers.ups import UPSCarrier, UPSConfig
from shipbridge.services.shipping.models import Address, Package, Shipment

from tests.mocks.mock_transport import MockTransport


@pytest.fixture
def settings():
    """Provide test settings"""
    return Settings(
        UPS_CLIENT_ID="test-client-id",
        UPS_CLIENT_SECRET="test-client-secret",
        UPS_ACCOUNT_NUMBER="A1B2C3",
        DHL_API_KEY="test_key",
        DHL_API_SECRET="test_secret",
        DHL_ACCOUNT_NUMBER="123456789",
    )


@pytest.fixture
def transport():
    return MockTransport()


@pytest.fixture
def diagnostics():
    return MemoryDiagnosticSink()


@pytest.fixture
def us_address():
    return Address(
        first_name="John",
        last_name="Sender",
        street1="55 Glenlake Pkwy NE",
        city="Atlanta",
        state_province="GA",
        postal_code="30328",
        country_code="US",
        phone="4045551234",
        email="shipper@example.com",
    )


@pytest.fixture
def us_receiver():
    return Address(
        first_name="Jane",
        last_name="Receiver",
        street1="1 Market St",
        city="San Francisco",
        state_province="CA",
        postal_code="94105",
        country_code="US",
        is_residential=True,
    )


@pytest.fixture
def de_address():
    return Address(
        company_name="Berlin Sender GmbH",
        street1="Unter den Linden 1",
        city="Berlin",
        postal_code="10117",
        country_code="DE",
    )


@pytest.fixture
def fr_address():
    return Address(
        first_name="Pierre",
        last_name="Receiver",
        street1="1 Rue de Rivoli",
        city="Paris",
        postal_code="75001",
        country_code="FR",
    )


@pytest.fixture
def us_shipment(us_address, us_receiver):
    return Shipment(
        from_address=us_address,
        to_address=us_receiver,
        packages=[Package(length=12, width=10, height=8, weight=5, price=120)],
    )


@pytest.fixture
def de_shipment(de_address, fr_address):
    return Shipment(
        from_address=de_address,
        to_address=fr_address,
        packages=[Package(length=40, width=30, height=20, weight=5, price=80)],
        currency="EUR",
    )


@pytest.fixture
def ups_config():
    return UPSConfig(client_id="test-client-id", client_secret="test-client-secret", account_number="A1B2C3")


@pytest.fixture
def make_ups(transport, diagnostics):
    """Build a UPS carrier on the mock transport, skipping the token exchange"""
    def _make(config):
        return UPSCarrier(
            config,
            transport=transport,
            auth=StaticKeyAuth("test-token", prefix="Bearer"),
            diagnostics=diagnostics,
            version_provider=lambda: "0.0.0-test",
        )
    return _make


@pytest.fixture
def ups(make_ups, ups_config):
    return make_ups(ups_config)


@pytest.fixture
def dhl(transport, diagnostics):
    from datetime import datetime
    return DHLCarrier(
        DHLConfig(api_key="test_key", api_secret="test_secret", account_number="123456789"),
        transport=transport,
        diagnostics=diagnostics,
        clock=lambda: datetime(2024, 1, 4, 15, 30),
    )
