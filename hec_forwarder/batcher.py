"""Collects the envelopes of one flush unit and hands them to a sender."""

import logging
from typing import Callable

logger = logging.getLogger(__name__)


class BatchAccumulator:
    """Sends envelopes one request each, or newline-joined in a single request.

    With batching off every ``add`` sends immediately; an exception from
    ``send`` propagates and aborts the rest of the flush unit. Envelopes sent
    before the failure are not retracted.
    """

    def __init__(self, send: Callable[[str, int], object], batched: bool):
        self._send = send
        self._batched = batched
        self._envelopes: list[str] = []

    @property
    def pending(self) -> int:
        return len(self._envelopes)

    def add(self, envelope: str):
        if self._batched:
            self._envelopes.append(envelope)
        else:
            self._send(envelope, 1)

    def flush(self):
        """Send the pending envelopes as one body. No request when empty."""
        if not self._envelopes:
            return None
        envelopes, self._envelopes = self._envelopes, []
        logger.debug("Sending batch of %d events", len(envelopes))
        return self._send("\n".join(envelopes), len(envelopes))
