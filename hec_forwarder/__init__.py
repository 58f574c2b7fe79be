"""Forward structured log events to a Splunk HTTP Event Collector."""

from hec_forwarder.config import ForwarderConfig, load_config
from hec_forwarder.errors import (
    ConfigError,
    DeliveryError,
    ForwarderError,
    NormalizationError,
    TransportError,
)
from hec_forwarder.forwarder import SplunkHECForwarder
from hec_forwarder.models import EventUnit

__all__ = [
    "ConfigError",
    "DeliveryError",
    "EventUnit",
    "ForwarderConfig",
    "ForwarderError",
    "NormalizationError",
    "SplunkHECForwarder",
    "TransportError",
    "load_config",
]
