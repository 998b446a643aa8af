# eventclient/protocol/eventserver.py
from dataclasses import dataclass
import logging
import random
import struct
import threading
from typing import List, Optional

from eventclient import config
from eventclient.exceptions import EncodingError
from eventclient.packet_builder import EventPayloadBuilder
from eventclient.protocol.constants import (
    HEADER_FORMAT,
    HEADER_SIZE,
    MAJOR_VERSION,
    MAX_MESSAGE_ID,
    MINOR_VERSION,
    RESERVED,
    SIGNATURE,
    ActionType,
    IconType,
    PacketType,
)


@dataclass
class PacketHeader:
    packet_type: int
    sequence: int
    max_sequence: int
    payload_size: int
    message_id: int
    signature: bytes = SIGNATURE
    major_version: int = MAJOR_VERSION
    minor_version: int = MINOR_VERSION

    @property
    def fragment_index(self) -> int:
        """Zero-based index of this fragment (the wire sequence is 1-based)."""
        return self.sequence - 1

    @property
    def fragment_count(self) -> int:
        return self.max_sequence

    @property
    def is_last_fragment(self) -> bool:
        return self.sequence == self.max_sequence

    def to_bytes(self) -> bytes:
        return struct.pack(
            HEADER_FORMAT,
            self.signature,
            self.major_version,
            self.minor_version,
            self.packet_type,
            self.sequence,
            self.max_sequence,
            self.payload_size,
            self.message_id,
            RESERVED,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "PacketHeader":
        if len(data) < HEADER_SIZE:
            raise EncodingError(f"Packet too short: {len(data)} bytes (minimum {HEADER_SIZE})")

        (signature, major, minor, packet_type, sequence,
         max_sequence, payload_size, message_id, _reserved) = struct.unpack(HEADER_FORMAT, data[:HEADER_SIZE])

        if signature != SIGNATURE:
            raise EncodingError(f"Invalid signature: {signature.hex()}")

        return cls(
            packet_type=packet_type,
            sequence=sequence,
            max_sequence=max_sequence,
            payload_size=payload_size,
            message_id=message_id,
            signature=signature,
            major_version=major,
            minor_version=minor,
        )


@dataclass
class Packet:
    header: PacketHeader
    payload: bytes

    def to_bytes(self) -> bytes:
        return self.header.to_bytes() + self.payload


class EventServerProtocol:
    """
    Encodes logical EventServer messages into ready-to-send datagrams.

    Every logical message gets a fresh message id. Payloads larger than
    ``max_payload_size`` are split into fragments that share the id; each
    fragment carries its 1-based sequence and the total fragment count so the
    player can reassemble them.

    Usage:
        >>> codec = EventServerProtocol()
        >>> datagrams = codec.encode_action(ActionType.EXECBUILTIN, "ExecBuiltIn(UpdateLibrary(video))")
        >>> len(datagrams)
        1
    """

    def __init__(self, max_payload_size: int = config.MAX_PAYLOAD_SIZE,
                 start_message_id: Optional[int] = None, logger=None):
        # payload size is a 16 bit field
        if not 0 < max_payload_size <= 0xFFFF:
            raise ValueError(f"max_payload_size out of range: {max_payload_size}")

        self.max_payload_size = max_payload_size
        self.logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()
        if start_message_id is None:
            start_message_id = random.randint(1, MAX_MESSAGE_ID)
        self.message_id = start_message_id

    def next_message_id(self) -> int:
        """Return the current message id and advance, wrapping 0xFFFFFFFF -> 1"""
        with self._lock:
            current = self.message_id
            self.message_id += 1
            if self.message_id > MAX_MESSAGE_ID:
                self.message_id = 1
            return current

    def split_payload(self, payload: bytes) -> List[bytes]:
        """Cut a payload into chunks; an empty payload still yields one chunk."""
        if not payload:
            return [b'']
        size = self.max_payload_size
        return [payload[i:i + size] for i in range(0, len(payload), size)]

    def build_packets(self, packet_type: PacketType, payload: bytes) -> List[Packet]:
        try:
            packet_type = PacketType(packet_type)
        except ValueError:
            raise EncodingError(f"Unknown packet type: {packet_type!r}") from None

        chunks = self.split_payload(payload)
        message_id = self.next_message_id()
        total = len(chunks)

        packets = []
        for index, chunk in enumerate(chunks):
            header = PacketHeader(
                packet_type=packet_type,
                sequence=index + 1,
                max_sequence=total,
                payload_size=len(chunk),
                message_id=message_id,
            )
            packets.append(Packet(header, chunk))

        self.logger.debug(
            f"[CODEC] {packet_type.name}: id=0x{message_id:08X}, "
            f"payload={len(payload)} bytes, fragments={total}"
        )
        return packets

    def encode(self, packet_type: PacketType, payload: bytes) -> List[bytes]:
        return [packet.to_bytes() for packet in self.build_packets(packet_type, payload)]

    def encode_notification(self, header: str, message: str,
                            icon_type: IconType = IconType.NONE, icon_data: bytes = b'') -> List[bytes]:
        payload = EventPayloadBuilder.build_notification_payload(header, message, icon_type, icon_data)
        return self.encode(PacketType.NOTIFICATION, payload)

    def encode_action(self, action_type: ActionType, command: str) -> List[bytes]:
        payload = EventPayloadBuilder.build_action_payload(action_type, command)
        return self.encode(PacketType.ACTION, payload)

    def encode_hello(self, device_name: str = config.DEVICE_NAME,
                     icon_type: IconType = IconType.NONE, icon_data: bytes = b'') -> List[bytes]:
        payload = EventPayloadBuilder.build_hello_payload(device_name, icon_type, icon_data)
        return self.encode(PacketType.HELO, payload)

    def encode_bye(self) -> List[bytes]:
        return self.encode(PacketType.BYE, b'')

    def encode_ping(self) -> List[bytes]:
        return self.encode(PacketType.PING, b'')

    @staticmethod
    def parse_header(datagram: bytes) -> PacketHeader:
        """Read the header of an encoded datagram back (payloads are not decoded)."""
        return PacketHeader.from_bytes(datagram)
