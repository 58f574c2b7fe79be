"""Event unit, record variants and the canonical event handed to the envelope builder."""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any


class RecordKind(Enum):
    NUMBER = "number"
    OBJECT = "object"
    OPAQUE = "opaque"


@dataclass(frozen=True)
class NumberRecord:
    value: int | float


@dataclass(frozen=True)
class ObjectRecord:
    value: Mapping


@dataclass(frozen=True)
class OpaqueRecord:
    value: Any


RawRecord = NumberRecord | ObjectRecord | OpaqueRecord


def classify_record(value: Any) -> RawRecord:
    """Wrap a raw record in the variant matching its shape.

    Booleans are opaque even though ``bool`` subclasses ``int``.
    """
    if isinstance(value, (NumberRecord, ObjectRecord, OpaqueRecord)):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return NumberRecord(value)
    if isinstance(value, Mapping):
        return ObjectRecord(value)
    return OpaqueRecord(value)


@dataclass(frozen=True)
class EventUnit:
    tag: str
    time: int | float
    record: Any

    @classmethod
    def coerce(cls, item) -> "EventUnit":
        """Accept an EventUnit or a plain ``(tag, time, record)`` tuple."""
        if isinstance(item, cls):
            return item
        tag, time, record = item
        return cls(tag=tag, time=time, record=record)


@dataclass(frozen=True)
class CanonicalEvent:
    event_payload: str
    sourcetype: str
    index: str
    kind: RecordKind
