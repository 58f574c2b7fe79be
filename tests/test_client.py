"""Tests for the collector HTTP client."""

import ssl

import httpx
import pytest

from conftest import SPLUNK_URL, TOKEN, CollectorStub
from hec_forwarder.client import HECClient
from hec_forwarder.errors import DeliveryError, TransportError


class TestDeliverSuccess:
    def test_returns_outcome(self, make_config, collector):
        client = HECClient(make_config(), transport=collector.transport)
        outcome = client.deliver('{"event":"x"}')
        assert outcome.http_status == 200
        assert outcome.body_bytes == len('{"event":"x"}')
        assert outcome.elapsed_ms >= 0

    def test_request_shape(self, make_config, collector):
        client = HECClient(make_config(), transport=collector.transport)
        client.deliver('{"event":"©"}')
        request = collector.requests[0]
        assert str(request.url) == SPLUNK_URL
        assert request.headers["Authorization"] == f"Splunk {TOKEN}"
        assert request.headers["Content-Type"] == "application/json; charset=utf-8"
        assert request.content == '{"event":"©"}'.encode("utf-8")

    def test_http_url(self, make_config):
        client = HECClient(make_config(protocol="http", host="localhost", port=8088))
        assert client.url == "http://localhost:8088/services/collector/event"


class TestDeliverErrors:
    def test_non_200_raises_with_remote_fields(self, make_config):
        stub = CollectorStub(
            status=400, body={"text": "Invalid data format", "code": 6, "invalid-event-number": 2}
        )
        client = HECClient(make_config(), transport=stub.transport)
        with pytest.raises(DeliveryError) as exc:
            client.deliver("{}")
        assert exc.value.message == "Invalid data format"
        assert exc.value.status_code == 6
        assert exc.value.invalid_event_number == 2
        assert exc.value.http_status == 400
        assert str(exc.value) == (
            "Invalid data format (http status code 400, status code 6, invalid event number 2)"
        )

    def test_token_disabled(self, make_config):
        stub = CollectorStub(status=403, body={"text": "Token disabled", "code": 1})
        client = HECClient(make_config(), transport=stub.transport)
        with pytest.raises(DeliveryError) as exc:
            client.deliver("{}")
        assert (exc.value.message, exc.value.status_code, exc.value.http_status) == (
            "Token disabled",
            1,
            403,
        )
        assert exc.value.invalid_event_number is None

    def test_non_json_error_body(self, make_config):
        def handler(request):
            return httpx.Response(502, text="Bad Gateway")

        client = HECClient(make_config(), transport=httpx.MockTransport(handler))
        with pytest.raises(DeliveryError) as exc:
            client.deliver("{}")
        assert exc.value.message == "Bad Gateway"
        assert exc.value.http_status == 502

    def test_timeout_is_transport_error(self, make_config):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = HECClient(make_config(), transport=httpx.MockTransport(handler))
        with pytest.raises(TransportError) as exc:
            client.deliver("{}")
        assert isinstance(exc.value.__cause__, httpx.ReadTimeout)

    def test_connection_refused_is_transport_error(self, make_config):
        client = HECClient(
            make_config(protocol="http", host="127.0.0.1", port=1, connect_timeout=1.0)
        )
        with pytest.raises(TransportError):
            client.deliver("{}")


class TestTlsSettings:
    def test_https_uses_verifying_context(self, make_config):
        client = HECClient(make_config(protocol="https"))
        assert client._verify.verify_mode == ssl.CERT_REQUIRED

    def test_insecure_opt_out(self, make_config):
        client = HECClient(make_config(protocol="https", insecure_skip_verify=True))
        assert client._verify.verify_mode == ssl.CERT_NONE

    def test_http_has_no_context(self, make_config):
        assert HECClient(make_config(protocol="http"))._verify is True
