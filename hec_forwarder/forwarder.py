"""Splunk HEC forwarder: normalizes, formats, batches and delivers one flush unit."""

import logging
from collections.abc import Iterable

import httpx

from hec_forwarder.batcher import BatchAccumulator
from hec_forwarder.client import HECClient
from hec_forwarder.config import ForwarderConfig
from hec_forwarder.envelope import build_envelope
from hec_forwarder.errors import DeliveryError, NormalizationError, TransportError
from hec_forwarder.metrics import ForwarderMetrics
from hec_forwarder.models import EventUnit
from hec_forwarder.normalizer import EventNormalizer

logger = logging.getLogger(__name__)


class SplunkHECForwarder:
    """Entry point the host pipeline calls once per flush.

    The forwarder keeps no state between flush units apart from its
    read-only config and the metrics collector, so ``write`` may be called
    from several threads for different units.
    """

    def __init__(
        self,
        config: ForwarderConfig,
        client: HECClient | None = None,
        metrics: ForwarderMetrics | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self._config = config
        self._normalizer = EventNormalizer(config)
        self._client = client or HECClient(config, transport=transport)
        self._metrics = metrics or ForwarderMetrics()

    @property
    def config(self) -> ForwarderConfig:
        return self._config

    @property
    def metrics(self) -> ForwarderMetrics:
        return self._metrics

    def format_event(self, unit: EventUnit) -> str:
        """Return the envelope JSON for a single event unit."""
        event = self._normalizer.normalize(unit)
        return build_envelope(
            event,
            unit.time,
            unit.record,
            source=self._config.source,
            host=self._config.event_host,
            usejson=self._config.usejson,
            send_event_as_json=self._config.send_event_as_json,
        )

    def write(self, units: Iterable) -> int:
        """Deliver one flush unit of ``(tag, time, record)`` items.

        Returns the number of events accepted by the collector.

        Raises:
            DeliveryError: The collector rejected a request.
            TransportError: A request got no response.
            NormalizationError: An event could not be formatted and
                ``skip_invalid_events`` is off.
        """
        delivered = 0

        def send(body: str, events: int):
            nonlocal delivered
            outcome = self._deliver(body, events)
            delivered += events
            return outcome

        accumulator = BatchAccumulator(send, self._config.send_batched_events)
        for item in units:
            unit = EventUnit.coerce(item)
            try:
                envelope = self.format_event(unit)
            except NormalizationError as e:
                if not self._config.skip_invalid_events:
                    raise
                logger.warning("Skipping event tagged %s: %s", unit.tag, e)
                self._metrics.record_skipped()
                continue
            accumulator.add(envelope)
        accumulator.flush()
        return delivered

    def _deliver(self, body: str, events: int):
        logger.debug("splunkhec: %s", body)
        try:
            outcome = self._client.deliver(body)
        except (DeliveryError, TransportError):
            self._metrics.record_failure()
            raise
        self._metrics.record_request(events, outcome.body_bytes, outcome.elapsed_ms)
        return outcome
