"""Error types raised inside the event client.

None of these cross the public ``send_*`` boundary; :class:`EventClient`
and :class:`UdpTransport` log them and report ``False`` instead.
"""


class EventClientError(Exception):
    """Base class for all event client failures."""


class EncodingError(EventClientError, ValueError):
    """Input that cannot be serialized into packets (bad text, missing icon)."""


class ResolutionError(EventClientError, OSError):
    """The destination host could not be resolved to an address."""


class TransmissionError(EventClientError, OSError):
    """A local socket error while handing a datagram to the OS."""
