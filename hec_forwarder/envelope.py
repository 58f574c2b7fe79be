"""Envelope builder — serializes a canonical event into the collector's JSON format.

Three mutually exclusive modes, selected by ``usejson`` and
``send_event_as_json``:

  usejson=False                 log4j style: ``event`` is "<time> <message>"
                                taken from the record, ``time`` is the record's
                                own timestamp in epoch milliseconds (a string).
  send_event_as_json=True       ``event`` holds the record as nested JSON.
  send_event_as_json=False      ``event`` holds the record's JSON text as a
                                string (the default).

In both JSON modes ``time`` is the event unit's time as a JSON number.
"""

import json
import math
import re
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone

from hec_forwarder.errors import NormalizationError
from hec_forwarder.models import CanonicalEvent, RecordKind
from hec_forwarder.normalizer import decode_bytes, dump_json

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# fallbacks for layouts fromisoformat rejects on older interpreters
_TIME_FORMATS = (
    "%Y-%m-%d %H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%a %b %d %H:%M:%S %Y",
    "%a %b %d %H:%M:%S %z %Y",
    "%d/%b/%Y:%H:%M:%S %z",
)

# log4j writes "20:52:39,123"
_COMMA_FRACTION = re.compile(r"(\d{2}:\d{2}:\d{2}),(\d+)")


def _parse_timestamp(text: str) -> datetime | None:
    text = _COMMA_FRACTION.sub(r"\1.\2", text.strip())
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def epoch_millis(value) -> int:
    """Parse a record timestamp and return milliseconds since the epoch.

    Strings are parsed as ISO 8601 date-times, falling back to the log4j,
    ctime and Apache layouts; a timestamp without an offset is taken as UTC.
    Numbers are taken as epoch seconds.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if isinstance(value, float) and not math.isfinite(value):
            raise NormalizationError(f"Cannot parse record time {value!r}")
        return int(value * 1000)
    parsed = _parse_timestamp(value) if isinstance(value, str) else None
    if parsed is None:
        raise NormalizationError(f"Cannot parse record time {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return (parsed - _EPOCH) // timedelta(milliseconds=1)


def _log4j_fields(record) -> tuple[str, str]:
    if not isinstance(record, Mapping):
        raise NormalizationError("usejson=false requires a record with 'time' and 'message' fields")
    record = decode_bytes(record)
    for field in ("time", "message"):
        if field not in record:
            raise NormalizationError(f"usejson=false requires a {field!r} field in the record")
    message = record["message"]
    if not isinstance(message, str):
        message = dump_json(message).strip('"')
    return str(epoch_millis(record["time"])), f"{record['time']} {message}"


def _event_json(event: CanonicalEvent, send_event_as_json: bool) -> str:
    if not send_event_as_json:
        return dump_json(event.event_payload)
    if event.kind in (RecordKind.OBJECT, RecordKind.NUMBER):
        # payload is already JSON text
        return event.event_payload
    return dump_json(event.event_payload)


def build_envelope(
    event: CanonicalEvent,
    time,
    record,
    *,
    source: str,
    host: str,
    usejson: bool = True,
    send_event_as_json: bool = False,
) -> str:
    """Return one envelope as JSON text.

    Args:
        event: The normalized event.
        time: The event unit's time, in seconds.
        record: The raw record, only read in log4j mode.
        source: Static source name.
        host: Event host name.
        usejson: False selects log4j mode.
        send_event_as_json: Nest the record instead of quoting it.

    Raises:
        NormalizationError: In log4j mode, if the record lacks a parsable
            ``time`` or a ``message``.
    """
    if not usejson:
        time_json, event_text = _log4j_fields(record)
        time_field = dump_json(time_json)
        event_field = dump_json(event_text)
    else:
        time_field = json.dumps(time)
        event_field = _event_json(event, send_event_as_json)

    return (
        "{"
        f'"time":{time_field},'
        f'"event":{event_field},'
        f'"sourcetype":{dump_json(event.sourcetype)},'
        f'"source":{dump_json(source)},'
        f'"index":{dump_json(event.index)},'
        f'"host":{dump_json(host)}'
        "}"
    )
