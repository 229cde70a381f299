"""
Typed failures raised by the carrier adapters.

Clients classify every network-origin failure into one of these before it
leaves the adapter, so callers can tell "retry later" apart from "give up".
"""


class CarrierError(Exception):
    """Base class for every adapter failure."""

    def __init__(self, message: str, carrier: str | None = None):
        super().__init__(message)
        self.message = message
        self.carrier = carrier

    def __str__(self):
        if self.carrier:
            return f"[{self.carrier}] {self.message}"
        return self.message


class InvalidInput(CarrierError):
    """Bad tracking number or missing required field. Never reaches the network."""


class InvalidTrackingNumber(InvalidInput):
    pass


class UnknownCarrier(InvalidInput):
    pass


class UnsupportedOperation(CarrierError):
    """The carrier exposes no API for this operation."""


class RateLimitExceeded(CarrierError):
    """Local window exhausted, or the carrier answered 429."""


class AuthError(CarrierError):
    """Carrier rejected the configured credentials."""


class NotFound(CarrierError):
    """Carrier has no record of the shipment."""


class TransportError(CarrierError):
    """Timeout, DNS/connection failure or 5xx."""

    def __init__(self, message: str, carrier: str | None = None, status_code: int | None = None):
        super().__init__(message, carrier)
        self.status_code = status_code


class ParseError(CarrierError):
    """Response did not have the expected shape."""


class CarrierBusinessError(CarrierError):
    """Carrier explicitly reported a failure; message is the carrier's own text."""

    def __init__(self, message: str, carrier: str | None = None, code: str | None = None):
        super().__init__(message, carrier)
        self.code = code
