"""Exception hierarchy shared by the forwarder components."""


class ForwarderError(Exception):
    """Base class for every error raised by the forwarder."""


class ConfigError(ForwarderError):
    """Raised when the forwarder configuration is missing or invalid."""


class NormalizationError(ForwarderError):
    """Raised when a record cannot be turned into an event."""


class DeliveryError(ForwarderError):
    """Raised when the collector answers with a non-200 status.

    The host pipeline treats this as a signal to retry the whole flush unit.
    """

    def __init__(
        self,
        message: str,
        status_code=None,
        invalid_event_number=None,
        http_status: int = 0,
    ):
        super().__init__(
            f"{message} (http status code {http_status}, status code {status_code}, "
            f"invalid event number {invalid_event_number})"
        )
        self.message = message
        self.status_code = status_code
        self.invalid_event_number = invalid_event_number
        self.http_status = http_status


class TransportError(ForwarderError):
    """Raised when the request never got a response (connect, TLS, timeout)."""
