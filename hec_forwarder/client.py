"""HTTP client for the Splunk HTTP Event Collector."""

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass

import httpx

from hec_forwarder.config import ForwarderConfig
from hec_forwarder.errors import DeliveryError, TransportError
from hec_forwarder.tls_context import create_client_context

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/json; charset=utf-8"


@dataclass(frozen=True)
class DeliveryOutcome:
    http_status: int
    elapsed_ms: float
    body_bytes: int


class HECClient:
    """Posts envelope bodies to the collector and classifies the response.

    A fresh ``httpx.Client`` is opened for every delivery; nothing is pooled
    between calls. *transport* is passed straight to httpx (tests inject an
    ``httpx.MockTransport``).
    """

    def __init__(self, config: ForwarderConfig, transport: httpx.BaseTransport | None = None):
        self._url = config.service_url
        self._headers = {
            "Authorization": f"Splunk {config.token}",
            "Content-Type": CONTENT_TYPE,
        }
        self._timeout = httpx.Timeout(config.read_timeout, connect=config.connect_timeout)
        self._verify = True
        if config.protocol == "https":
            self._verify = create_client_context(config.insecure_skip_verify, config.ca_file)
        self._transport = transport
        logger.debug("splunkhec: sending data to %s", self._url)

    @property
    def url(self) -> str:
        return self._url

    def deliver(self, body: str) -> DeliveryOutcome:
        """POST *body* and return the outcome of a 200 response.

        Raises:
            DeliveryError: The collector answered with any other status.
            TransportError: No response was received.
        """
        payload = body.encode("utf-8")
        start = time.monotonic()
        try:
            with httpx.Client(
                timeout=self._timeout, verify=self._verify, transport=self._transport
            ) as client:
                response = client.post(self._url, content=payload, headers=self._headers)
        except httpx.TransportError as e:
            logger.warning("Request to %s failed: %s", self._url, e)
            raise TransportError(f"Request to {self._url} failed: {e}") from e
        elapsed_ms = (time.monotonic() - start) * 1000

        logger.debug("splunkhec: response HTTP Status Code is %d", response.status_code)
        if response.status_code != 200:
            raise self._delivery_error(response)
        return DeliveryOutcome(
            http_status=response.status_code,
            elapsed_ms=elapsed_ms,
            body_bytes=len(payload),
        )

    @staticmethod
    def _delivery_error(response: httpx.Response) -> DeliveryError:
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, Mapping):
            data = {"text": response.text}
        error = DeliveryError(
            data.get("text"),
            data.get("code"),
            data.get("invalid-event-number"),
            response.status_code,
        )
        logger.warning("Collector rejected request: %s", error)
        return error
