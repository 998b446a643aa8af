import struct
import logging

from eventclient.exceptions import EncodingError
from eventclient.protocol.constants import MAX_DEVICE_NAME, ActionType, IconType

logger = logging.getLogger(__name__)


def _encode_string(text: str, field: str) -> bytes:
    """UTF-8 encode and NUL-terminate a text field."""
    if not isinstance(text, str):
        raise EncodingError(f"{field} must be a string, got {type(text).__name__}")
    if '\x00' in text:
        raise EncodingError(f"{field} contains a NUL character")
    return text.encode('utf-8') + b'\x00'


def _resolve_icon(icon_type: IconType, icon_data: bytes):
    try:
        icon_type = IconType(icon_type)
    except ValueError:
        raise EncodingError(f"Unknown icon type: {icon_type!r}") from None

    if not icon_type.is_custom_image:
        return icon_type, b''
    if not icon_data:
        logger.debug(f"[PACKET BUILDER] {icon_type.name} icon has no bytes, sending without icon")
        return IconType.NONE, b''
    return icon_type, bytes(icon_data)


class EventPayloadBuilder:
    """
    Builders for the type specific part of EventServer packets.
    The 32 byte packet header is added by EventServerProtocol.
    """

    @staticmethod
    def build_notification_payload(header: str, message: str,
                                   icon_type: IconType = IconType.NONE, icon_data: bytes = b'') -> bytes:
        """
        Builds a NOTIFICATION payload.

        Payload Structure:
        ├─ header        UTF-8, NUL terminated
        ├─ message       UTF-8, NUL terminated
        ├─ icon type     1 byte
        ├─ reserved      4 bytes (zero)
        └─ icon data     only for JPEG/PNG/GIF

        A custom icon kind without bytes is sent as IconType.NONE.
        """
        icon_type, icon_data = _resolve_icon(icon_type, icon_data)

        payload = (
            _encode_string(header, 'header')
            + _encode_string(message, 'message')
            + struct.pack('>BI', icon_type, 0)
            + icon_data
        )
        logger.debug(f"[PACKET BUILDER] Notification payload: {len(payload)} bytes, icon={icon_type.name}")
        return payload

    @staticmethod
    def build_action_payload(action_type: ActionType, command: str) -> bytes:
        """
        Builds an ACTION payload: action type (1 byte) + command, NUL terminated.
        """
        try:
            action_type = ActionType(action_type)
        except ValueError:
            raise EncodingError(f"Unknown action type: {action_type!r}") from None

        payload = struct.pack('>B', action_type) + _encode_string(command, 'command')
        logger.debug(f"[PACKET BUILDER] Action payload: {len(payload)} bytes, type={action_type.name}")
        return payload

    @staticmethod
    def build_hello_payload(device_name: str, icon_type: IconType = IconType.NONE, icon_data: bytes = b'') -> bytes:
        """
        Builds a HELO payload.

        Payload Structure:
        ├─ device name   UTF-8, NUL terminated, at most 128 bytes before the NUL
        ├─ icon type     1 byte
        ├─ port          2 bytes (zero, no return channel)
        ├─ reserved      2 x 4 bytes (zero)
        └─ icon data     only for JPEG/PNG/GIF
        """
        name = _encode_string(device_name, 'device name')[:-1][:MAX_DEVICE_NAME]
        # Truncation may split a multi-byte character
        name = name.decode('utf-8', errors='ignore').encode('utf-8') + b'\x00'

        icon_type, icon_data = _resolve_icon(icon_type, icon_data)
        return name + struct.pack('>BHII', icon_type, 0, 0, 0) + icon_data
