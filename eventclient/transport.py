import socket
import logging
import threading
from dataclasses import dataclass
from typing import Protocol, Sequence, Tuple

import netifaces

from eventclient import config
from eventclient.exceptions import ResolutionError, TransmissionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Destination:
    host: str
    port: int = config.EVENT_SERVER_PORT

    def __str__(self):
        return f"{self.host}:{self.port}"


class Transport(Protocol):
    def send(self, destination: Destination, packets: Sequence[bytes]) -> bool:
        """Transmit the datagrams in order; True only if every one was handed to the OS."""


class TimeoutContext:
    def __init__(self, socket_obj, timeout_value, logger_obj):
        self.socket = socket_obj
        self.new_timeout = timeout_value
        self.old_timeout = None
        self.logger = logger_obj

    def __enter__(self):
        try:
            self.old_timeout = self.socket.gettimeout()
            self.socket.settimeout(self.new_timeout)
        except OSError as e:
            raise TransmissionError(f"Failed to set timeout: {e}") from e
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            self.socket.settimeout(self.old_timeout)
        except OSError as e:
            self.logger.error(f"Failed to restore timeout: {e}")
        return False


def get_interface_ip(interface: str, family: int = socket.AF_INET) -> str:
    """Returns the first address of ``family`` configured on ``interface``."""
    try:
        addrs = netifaces.ifaddresses(interface)
    except ValueError as e:
        raise TransmissionError(f"Unknown network interface {interface}: {e}") from e

    links = addrs.get(family)
    if not links:
        raise TransmissionError(f"Interface {interface} has no address for family {family}")
    # IPv6 link-local addresses carry a "%scope" suffix
    return links[0]['addr'].split('%')[0]


def resolve_destination(destination: Destination, timeout: float, family: int = 0) -> Tuple[int, tuple]:
    """
    Resolves ``destination`` to ``(family, sockaddr)``.

    getaddrinfo() has no timeout of its own, so the lookup runs in a
    daemon thread that is abandoned when ``timeout`` expires.
    """
    if not isinstance(destination.host, str) or not destination.host:
        raise ResolutionError(f"Invalid destination host: {destination.host!r}")

    result = {}

    def _lookup():
        try:
            result['info'] = socket.getaddrinfo(destination.host, destination.port, family, socket.SOCK_DGRAM)
        except (OSError, UnicodeError, ValueError) as e:
            result['error'] = e

    worker = threading.Thread(target=_lookup, name=f"resolve-{destination.host}", daemon=True)
    worker.start()
    worker.join(timeout)

    if worker.is_alive():
        raise ResolutionError(f"Resolving {destination.host} timed out after {timeout}s")
    if 'error' in result:
        raise ResolutionError(f"Cannot resolve {destination.host}: {result['error']}") from result['error']
    if not result.get('info'):
        raise ResolutionError(f"No address found for {destination.host}")

    addr_family, _, _, _, sockaddr = result['info'][0]
    logger.debug(f"[TRANSPORT] Resolved {destination} -> {sockaddr[0]}")
    return addr_family, sockaddr


class UdpTransport:
    """
    Fire-and-forget UDP transport.

    By default every send() opens its own socket and closes it afterwards.
    A long-lived socket can be injected instead; sends on it are serialized
    so the fragments of two messages never interleave on the wire.
    """

    def __init__(self, sock=None, timeout: float = config.SEND_TIMEOUT,
                 bind_interface=config.BIND_INTERFACE, logger=None):
        self.sock = sock
        self.timeout = timeout
        self.bind_interface = bind_interface
        self.logger = logger or logging.getLogger(__name__)
        self._lock = threading.Lock()

    def _open_socket(self, family: int) -> socket.socket:
        try:
            sock = socket.socket(family, socket.SOCK_DGRAM)
        except OSError as e:
            raise TransmissionError(f"Socket creation failed: {e}") from e

        try:
            sock.settimeout(self.timeout)
            if self.bind_interface:
                bind_ip = get_interface_ip(self.bind_interface, family)
                sock.bind((bind_ip, 0))
                self.logger.debug(f"[SOCKET] Bound to {self.bind_interface} ({bind_ip})")
        except OSError as e:
            sock.close()
            if isinstance(e, TransmissionError):
                raise
            raise TransmissionError(f"Socket setup failed: {e}") from e
        return sock

    def _transmit(self, sock, sockaddr, packets: Sequence[bytes]) -> None:
        total = len(packets)
        for index, packet in enumerate(packets):
            try:
                sent = sock.sendto(packet, sockaddr)
            except OSError as e:
                raise TransmissionError(f"Datagram {index + 1}/{total} failed: {e}") from e
            if sent != len(packet):
                raise TransmissionError(f"Datagram {index + 1}/{total} truncated: {sent}/{len(packet)} bytes")
            self.logger.debug(f"[TRANSPORT] Sent {index + 1}/{total} ({sent} bytes): {packet[:32].hex()}")

    def send(self, destination: Destination, packets: Sequence[bytes]) -> bool:
        packets = list(packets)
        if not packets:
            self.logger.warning(f"[TRANSPORT] Nothing to send to {destination}")
            return True

        try:
            if self.sock is not None:
                with self._lock:
                    _, sockaddr = resolve_destination(destination, self.timeout, self.sock.family)
                    with TimeoutContext(self.sock, self.timeout, self.logger):
                        self._transmit(self.sock, sockaddr, packets)
            else:
                family, sockaddr = resolve_destination(destination, self.timeout)
                with self._open_socket(family) as sock:
                    self._transmit(sock, sockaddr, packets)
        except (ResolutionError, TransmissionError) as e:
            self.logger.error(f"[TRANSPORT] Send to {destination} failed: {e}")
            return False

        self.logger.debug(f"[TRANSPORT] {len(packets)} datagram(s) sent to {destination}")
        return True
