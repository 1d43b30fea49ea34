"""Exception hierarchy for device communication and input validation."""


class WledDialError(Exception):
    """Base exception for all WLED dial errors."""


class InvalidAddress(WledDialError):
    """Address failed validation and must not reach the network layer."""

    def __init__(self, address: str | None):
        self.address = address
        super().__init__(f"Invalid device address: {address!r}")


class ProbeError(WledDialError):
    """A request to a device did not produce a usable response."""


class ProbeTimeout(ProbeError):
    """The device did not answer within the timeout."""


class ProbeTransportError(ProbeError):
    """Connection failure or non-2xx status."""


class MalformedPayload(WledDialError):
    """Response body was not the JSON shape expected."""
