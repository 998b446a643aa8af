"""Client for the media player EventServer protocol.

Sends pop-up notifications and remote actions to a player on the local
network as fire-and-forget UDP datagrams.
"""

from .exceptions import EncodingError, EventClientError, ResolutionError, TransmissionError
from .protocol.constants import ActionType, IconType, PacketType
from .protocol.eventserver import EventServerProtocol, Packet, PacketHeader
from .transport import Destination, Transport, UdpTransport
from .event_client import EventClient, SendState

__all__ = [
    'EventClient',
    'SendState',
    'EventServerProtocol',
    'Packet',
    'PacketHeader',
    'PacketType',
    'IconType',
    'ActionType',
    'Destination',
    'Transport',
    'UdpTransport',
    'EventClientError',
    'EncodingError',
    'ResolutionError',
    'TransmissionError',
]
