# =============================================================================
# Shared fixtures
# =============================================================================
# No test touches the network: every adapter gets a MagicMock session whose
# request() hands back real requests.Response objects built here.
# =============================================================================

import json
from unittest.mock import MagicMock
from xml.sax.saxutils import escape

import pytest
import requests

from cargo_gateway.clients.soap import SOAP_11, SOAP_12
from cargo_gateway.config import CarrierSettings


def make_response(status_code=200, body="", headers=None, url="https://carrier.test/"):
    response = requests.Response()
    response.status_code = status_code
    if isinstance(body, (dict, list)):
        body = json.dumps(body)
        response.headers["Content-Type"] = "application/json"
    response._content = body.encode("utf-8") if isinstance(body, str) else body
    response.headers.update(headers or {})
    response.encoding = "utf-8"
    response.url = url
    return response


def aras_envelope(operation, rows_xml):
    """SOAP 1.2 answer the way Aras sends it: a DataSet escaped inside <{op}Result>."""
    inner = escape(f"<NewDataSet>{rows_xml}</NewDataSet>")
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        f'<soap:Envelope xmlns:soap="{SOAP_12}"><soap:Body>'
        f'<{operation}Response xmlns="http://tempuri.org/">'
        f'<{operation}Result>{inner}</{operation}Result>'
        f'</{operation}Response></soap:Body></soap:Envelope>'
    )


def yurtici_envelope(operation, payload_xml):
    return (
        f'<S:Envelope xmlns:S="{SOAP_11}"><S:Body>'
        f'<ns2:{operation}Response xmlns:ns2="http://yurticikargo.com.tr/ShippingOrderDispatcherServices">'
        f'{payload_xml}'
        f'</ns2:{operation}Response></S:Body></S:Envelope>'
    )


YURTICI_WSDL = (
    '<definitions xmlns="http://schemas.xmlsoap.org/wsdl/" '
    'xmlns:soap="http://schemas.xmlsoap.org/wsdl/soap/" '
    'targetNamespace="http://yurticikargo.com.tr/ShippingOrderDispatcherServices">'
    '<portType name="ShippingOrderDispatcherServices">'
    '<operation name="createShipment"/><operation name="queryShipment"/>'
    '<operation name="queryShipmentDetail"/><operation name="cancelShipment"/>'
    '</portType>'
    '<service name="ShippingOrderDispatcherServicesService"><port name="Port">'
    '<soap:address location="http://ws.yurtici.test/KOPSWebServices/ShippingOrderDispatcherServices"/>'
    '</port></service></definitions>'
)


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def response():
    """Factory for real requests.Response objects."""
    return make_response


@pytest.fixture
def session():
    """Stand-in for requests.Session; set .request.return_value / side_effect per test."""
    return MagicMock(spec=requests.Session)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings_for():
    """Carrier settings with credentials and the carrier's own defaults."""
    def build(adapter_cls, **overrides):
        values = {
            "base_url": adapter_cls.default_url,
            "username": "apiuser",
            "password": "secret",
            "customer_code": "C100",
            "max_requests": adapter_cls.default_rate_limit,
            "bulk_delay": adapter_cls.default_bulk_delay,
        }
        values.update(overrides)
        return CarrierSettings(**values)
    return build
