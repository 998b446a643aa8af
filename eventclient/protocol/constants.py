# eventclient/protocol/constants.py
import os
from enum import IntEnum

# Header layout (32 bytes, big-endian):
# signature(4) major(1) minor(1) type(2) seq(4) maxseq(4) size(2) uid(4) reserved(10)
HEADER_FORMAT = '>4sBBHIIHI10s'
HEADER_SIZE = 32
SIGNATURE = b'XBMC'
MAJOR_VERSION = 2
MINOR_VERSION = 0
RESERVED = b'\x00' * 10

MAX_MESSAGE_ID = 0xFFFFFFFF

# HELO device names longer than this are cut off by the receiver.
MAX_DEVICE_NAME = 128


class PacketType(IntEnum):
    HELO = 0x01
    BYE = 0x02
    PING = 0x05
    NOTIFICATION = 0x07
    ACTION = 0x0A


class ActionType(IntEnum):
    EXECBUILTIN = 0x01
    BUTTON = 0x02


class IconType(IntEnum):
    NONE = 0x00

    # Custom images, the bytes follow the payload header
    JPEG = 0x01
    PNG = 0x02
    GIF = 0x03

    # Built-in icons, never carry bytes
    INFO = 0x04
    WARNING = 0x05
    ERROR = 0x06

    @property
    def is_custom_image(self) -> bool:
        return self in (IconType.JPEG, IconType.PNG, IconType.GIF)

    @classmethod
    def from_filename(cls, filename: str) -> "IconType":
        """Map an image file name to its custom icon kind (NONE if unknown)."""
        ext = os.path.splitext(filename)[1].lower()
        return _EXTENSIONS.get(ext, cls.NONE)


_EXTENSIONS = {
    '.jpg': IconType.JPEG,
    '.jpeg': IconType.JPEG,
    '.png': IconType.PNG,
    '.gif': IconType.GIF,
}
