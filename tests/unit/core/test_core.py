# tests/unit/core/test_core.py
import logging

from shipbridge import __version__
from shipbridge.core.diagnostics import LoggingDiagnosticSink, MemoryDiagnosticSink, installed_version
from shipbridge.core.exceptions import (
    CarrierAuthenticationError,
    CarrierDispatchError,
    InvalidRequestError,
    ShippingServiceError,
)
from shipbridge.core.logging_config import configure_logging


def test_invalid_request_error_names_missing_fields():
    error = InvalidRequestError("UPS", ["client_id", "client_secret"])

    assert str(error) == "UPS is missing required configuration: client_id, client_secret"
    assert error.carrier == "UPS"
    assert isinstance(error, ShippingServiceError)


def test_authentication_error_is_a_dispatch_error():
    error = CarrierAuthenticationError("bad credentials", endpoint="https://example.test/token", status_code=401)

    assert isinstance(error, CarrierDispatchError)
    assert error.status_code == 401


def test_memory_sink_records_and_clears():
    sink = MemoryDiagnosticSink()

    sink.record("UPS", "Unknown service code", payload={"Service": {"Code": "ZZ"}})

    assert sink.records[0].carrier == "UPS"
    assert sink.records[0].context == {"payload": {"Service": {"Code": "ZZ"}}}

    sink.clear()
    assert sink.records == []


def test_logging_sink_writes_debug(caplog):
    with caplog.at_level(logging.DEBUG, logger="shipbridge.diagnostics"):
        LoggingDiagnosticSink().record("DHL Express", "Unknown product code")

    assert "DHL Express: Unknown product code" in caplog.text


def test_installed_version_is_a_string():
    version = installed_version()

    assert isinstance(version, str)
    assert version


def test_package_version():
    assert __version__ == "0.3.0"


def test_configure_logging_sets_package_level():
    configure_logging("debug")
    assert logging.getLogger("shipbridge").level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.WARNING

    configure_logging("WARNING")
    assert logging.getLogger("shipbridge").level == logging.WARNING
    logging.getLogger("shipbridge").setLevel(logging.NOTSET)
