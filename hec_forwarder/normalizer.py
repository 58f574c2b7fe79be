"""Turns (tag, time, record) items into canonical events."""

import json
import logging
import math
import re
from collections.abc import Mapping

from hec_forwarder.config import SOURCETYPE_FROM_TAG, ForwarderConfig
from hec_forwarder.errors import NormalizationError
from hec_forwarder.index_template import IndexTemplate
from hec_forwarder.models import (
    CanonicalEvent,
    EventUnit,
    NumberRecord,
    ObjectRecord,
    OpaqueRecord,
    RecordKind,
    classify_record,
)

logger = logging.getLogger(__name__)

# lone surrogates outside the U+DC80..U+DCFF range used by surrogateescape
_FOREIGN_SURROGATES = re.compile("[\ud800-\udc7f\udd00-\udfff]")


def to_text(value: bytes | str) -> str:
    """Decode raw bytes as UTF-8, replacing invalid sequences.

    Strings carrying surrogate escapes (bytes smuggled in via
    ``errors="surrogateescape"``) are re-read as UTF-8 the same way.
    """
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    try:
        value.encode("utf-8")
        return value
    except UnicodeEncodeError:
        value = _FOREIGN_SURROGATES.sub("\ufffd", value)
        raw = value.encode("utf-8", errors="surrogateescape")
        return raw.decode("utf-8", errors="replace")


def decode_bytes(value):
    """Recursively decode every bytes key and value in a record."""
    if isinstance(value, (bytes, str)):
        return to_text(value)
    if isinstance(value, Mapping):
        return {
            (to_text(k) if isinstance(k, (bytes, str)) else k): decode_bytes(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [decode_bytes(v) for v in value]
    return value


def dump_json(value) -> str:
    """Compact JSON with non-ASCII characters kept as text.

    Raises:
        NormalizationError: If *value* holds NaN or an infinity, which have
            no JSON form.
    """
    try:
        return json.dumps(
            value, ensure_ascii=False, separators=(",", ":"), allow_nan=False, default=str
        )
    except ValueError as e:
        raise NormalizationError(f"Record cannot be serialized as JSON: {e}") from e


def event_payload(record) -> tuple[str, RecordKind]:
    """Render a raw record as event text and report which variant it was."""
    match classify_record(record):
        case NumberRecord(value=number):
            if isinstance(number, float) and not math.isfinite(number):
                raise NormalizationError(f"Non-finite number {number!r} has no JSON form")
            return str(number), RecordKind.NUMBER
        case ObjectRecord(value=mapping):
            return dump_json(decode_bytes(mapping)), RecordKind.OBJECT
        case OpaqueRecord(value=str() | bytes() as text):
            return to_text(text), RecordKind.OPAQUE
        case OpaqueRecord(value=other):
            return dump_json(decode_bytes(other)), RecordKind.OPAQUE


class EventNormalizer:
    """Selects sourcetype and index for each event and renders its payload."""

    def __init__(self, config: ForwarderConfig):
        self._config = config
        self._template = (
            IndexTemplate(config.dynamic_index_pattern) if config.dynamic_index else None
        )

    def sourcetype_for(self, tag: str) -> str:
        if self._config.sourcetype == SOURCETYPE_FROM_TAG:
            return tag
        return self._config.sourcetype

    def index_for(self, record) -> str:
        """Return the static index, or render the dynamic pattern against *record*.

        Raises:
            NormalizationError: If the pattern references a missing field.
        """
        if self._template is None:
            return self._config.index
        if isinstance(record, Mapping):
            record = decode_bytes(record)
        index = self._template.render(self._config.source, record)
        logger.debug("splunk index: %s", index)
        return index

    def normalize(self, unit: EventUnit) -> CanonicalEvent:
        payload, kind = event_payload(unit.record)
        return CanonicalEvent(
            event_payload=payload,
            sourcetype=self.sourcetype_for(unit.tag),
            index=self.index_for(unit.record),
            kind=kind,
        )
