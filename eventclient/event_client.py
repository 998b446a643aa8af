import logging
from enum import Enum, auto
from typing import Optional

from eventclient import config
from eventclient.exceptions import EncodingError
from eventclient.icon_loader import IconRef, load_icon
from eventclient.protocol.constants import ActionType, IconType
from eventclient.protocol.eventserver import EventServerProtocol
from eventclient.transport import Destination, Transport, UdpTransport


class SendState(Enum):
    IDLE = auto()
    ENCODING = auto()
    TRANSMITTING = auto()
    SUCCESS = auto()
    FAILURE = auto()


class EventClient:
    """
    Pushes notifications and actions to a media player's EventServer.

    Every call is independent: encode the message, hand the datagrams to the
    transport, report one boolean. No exception escapes a ``send_*`` call;
    failures are logged and returned as ``False``. ``True`` only means the
    datagrams left this host, the protocol has no acknowledgement.
    """

    def __init__(self, transport: Optional[Transport] = None, protocol: Optional[EventServerProtocol] = None,
                 port: int = config.EVENT_SERVER_PORT, logger=None):
        self.logger = logger or logging.getLogger(__name__)
        self.transport = transport or UdpTransport(logger=self.logger)
        self.protocol = protocol or EventServerProtocol(logger=self.logger)
        self.port = port

    def _log_state(self, old_state, new_state, reason=""):
        self.logger.debug(f"[STATE] {old_state.name} → {new_state.name} ({reason})")
        return new_state

    def _dispatch(self, address: str, what: str, encode) -> bool:
        # per-call state, never stored on the client
        state = self._log_state(SendState.IDLE, SendState.ENCODING, what)
        try:
            packets = encode()
        except EncodingError as e:
            self.logger.error(f"[CLIENT] Cannot encode {what} for {address}: {e}")
            self._log_state(state, SendState.FAILURE, "encoding error")
            return False

        state = self._log_state(state, SendState.TRANSMITTING, f"{len(packets)} packet(s)")
        destination = Destination(address, self.port)
        if self.transport.send(destination, packets):
            self.logger.info(f"[CLIENT] {what} sent to {destination}")
            self._log_state(state, SendState.SUCCESS, what)
            return True

        self.logger.warning(f"[CLIENT] {what} to {destination} failed")
        self._log_state(state, SendState.FAILURE, "transmission failed")
        return False

    def _icon_bytes(self, icon_type: IconType, icon_ref: Optional[IconRef]) -> bytes:
        try:
            icon_type = IconType(icon_type)
        except ValueError:
            raise EncodingError(f"Unknown icon type: {icon_type!r}") from None
        if not icon_type.is_custom_image:
            return b''
        return load_icon(icon_ref)

    def send_notification(self, header: str, message: str, icon_type: IconType = IconType.NONE,
                          icon_ref: Optional[IconRef] = None, address: str = 'localhost') -> bool:
        """
        Shows a pop-up notification on the player.

        Args:
            header: Notification title.
            message: Notification body.
            icon_type: IconType; JPEG/PNG/GIF need ``icon_ref``.
            icon_ref: Image bytes, file path, http(s) URL or bundled icon name.
            address: Host name or IP of the player.
        """
        def encode():
            icon_data = self._icon_bytes(icon_type, icon_ref)
            return self.protocol.encode_notification(header, message, icon_type, icon_data)

        return self._dispatch(address, "Notification", encode)

    def send_action(self, address: str, action_type: ActionType, command: str) -> bool:
        """
        Runs an action on the player, e.g.
        ``send_action(host, ActionType.EXECBUILTIN, "ExecBuiltIn(UpdateLibrary(video))")``.
        """
        return self._dispatch(address, "Action", lambda: self.protocol.encode_action(action_type, command))

    def send_hello(self, address: str, device_name: str = config.DEVICE_NAME,
                   icon_type: IconType = IconType.NONE, icon_ref: Optional[IconRef] = None) -> bool:
        def encode():
            icon_data = self._icon_bytes(icon_type, icon_ref)
            return self.protocol.encode_hello(device_name, icon_type, icon_data)

        return self._dispatch(address, "Hello", encode)

    def send_bye(self, address: str) -> bool:
        return self._dispatch(address, "Bye", self.protocol.encode_bye)

    def send_ping(self, address: str) -> bool:
        return self._dispatch(address, "Ping", self.protocol.encode_ping)
