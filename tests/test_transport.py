# tests/test_transport.py
import unittest
from unittest.mock import MagicMock, patch
import socket
import threading
import time
import netifaces
from eventclient.exceptions import ResolutionError
from eventclient.protocol.eventserver import EventServerProtocol
from eventclient.transport import Destination, UdpTransport, get_interface_ip, resolve_destination
from tests.mock_event_server import MockEventServer

LOOPBACK = (socket.AF_INET, ('127.0.0.1', 9777))


def make_socket_mock():
    sock = MagicMock()
    sock.__enter__.return_value = sock
    sock.family = socket.AF_INET
    sock.gettimeout.return_value = None
    sock.sendto.side_effect = lambda data, addr: len(data)
    return sock


class TestResolve(unittest.TestCase):

    def test_resolve_literal_address(self):
        family, sockaddr = resolve_destination(Destination('127.0.0.1', 9777), timeout=2.0)
        self.assertEqual(family, socket.AF_INET)
        self.assertEqual(sockaddr, ('127.0.0.1', 9777))

    def test_resolve_localhost(self):
        family, sockaddr = resolve_destination(Destination('localhost'), timeout=2.0)
        self.assertIn(family, (socket.AF_INET, socket.AF_INET6))
        self.assertEqual(sockaddr[1], 9777)

    @patch('eventclient.transport.socket.getaddrinfo')
    def test_resolve_failure(self, mock_getaddrinfo):
        mock_getaddrinfo.side_effect = socket.gaierror(-2, 'Name or service not known')
        with self.assertRaises(ResolutionError):
            resolve_destination(Destination('no-such-player.invalid'), timeout=2.0)

    @patch('eventclient.transport.socket.getaddrinfo')
    def test_resolve_timeout(self, mock_getaddrinfo):
        mock_getaddrinfo.side_effect = lambda *args: time.sleep(0.5)
        with self.assertRaises(ResolutionError):
            resolve_destination(Destination('slow-dns'), timeout=0.05)

    @patch('eventclient.transport.socket.getaddrinfo')
    def test_resolve_encoding_error(self, mock_getaddrinfo):
        mock_getaddrinfo.side_effect = UnicodeError('label empty or too long')
        with self.assertRaises(ResolutionError) as ctx:
            resolve_destination(Destination('bad-label'), timeout=2.0)
        self.assertIn('label empty or too long', str(ctx.exception))

    def test_resolve_overlong_label(self):
        with self.assertRaises(ResolutionError):
            resolve_destination(Destination('a' * 64 + '.example'), timeout=2.0)

    @patch('eventclient.transport.socket.getaddrinfo')
    def test_resolve_missing_host(self, mock_getaddrinfo):
        for host in (None, ''):
            with self.assertRaises(ResolutionError):
                resolve_destination(Destination(host), timeout=2.0)
        mock_getaddrinfo.assert_not_called()

    @patch('eventclient.transport.socket.getaddrinfo')
    def test_resolve_empty_result(self, mock_getaddrinfo):
        mock_getaddrinfo.return_value = []
        with self.assertRaises(ResolutionError):
            resolve_destination(Destination('empty'), timeout=2.0)


class TestUdpTransport(unittest.TestCase):

    def setUp(self):
        self.transport = UdpTransport(timeout=1.0, bind_interface=None)
        self.destination = Destination('player', 9777)
        self.packets = [b'one', b'two', b'three', b'four']

    @patch('eventclient.transport.resolve_destination', return_value=LOOPBACK)
    @patch('eventclient.transport.socket.socket')
    def test_send_all_packets_in_order(self, mock_socket, mock_resolve):
        sock = make_socket_mock()
        mock_socket.return_value = sock

        self.assertTrue(self.transport.send(self.destination, self.packets))

        sent = [c.args[0] for c in sock.sendto.call_args_list]
        self.assertEqual(sent, self.packets)
        sock.sendto.assert_called_with(b'four', ('127.0.0.1', 9777))
        sock.settimeout.assert_called_with(1.0)
        sock.bind.assert_not_called()
        sock.__exit__.assert_called()

    @patch('eventclient.transport.resolve_destination', return_value=LOOPBACK)
    @patch('eventclient.transport.socket.socket')
    def test_send_stops_after_first_failure(self, mock_socket, mock_resolve):
        sock = make_socket_mock()
        sock.sendto.side_effect = [3, OSError(101, 'Network is unreachable'), 5, 4]
        mock_socket.return_value = sock

        self.assertFalse(self.transport.send(self.destination, self.packets))
        self.assertEqual(sock.sendto.call_count, 2)

    @patch('eventclient.transport.resolve_destination', return_value=LOOPBACK)
    @patch('eventclient.transport.socket.socket')
    def test_send_timeout_is_failure(self, mock_socket, mock_resolve):
        sock = make_socket_mock()
        sock.sendto.side_effect = socket.timeout('timed out')
        mock_socket.return_value = sock

        self.assertFalse(self.transport.send(self.destination, self.packets))
        self.assertEqual(sock.sendto.call_count, 1)

    @patch('eventclient.transport.resolve_destination', return_value=LOOPBACK)
    @patch('eventclient.transport.socket.socket')
    def test_short_write_is_failure(self, mock_socket, mock_resolve):
        sock = make_socket_mock()
        sock.sendto.side_effect = lambda data, addr: len(data) - 1
        mock_socket.return_value = sock

        self.assertFalse(self.transport.send(self.destination, self.packets))
        self.assertEqual(sock.sendto.call_count, 1)

    @patch('eventclient.transport.resolve_destination')
    @patch('eventclient.transport.socket.socket')
    def test_resolution_failure_sends_nothing(self, mock_socket, mock_resolve):
        mock_resolve.side_effect = ResolutionError('Cannot resolve player')

        self.assertFalse(self.transport.send(self.destination, self.packets))
        mock_socket.assert_not_called()

    @patch('eventclient.transport.resolve_destination', return_value=LOOPBACK)
    @patch('eventclient.transport.socket.socket')
    def test_socket_creation_failure(self, mock_socket, mock_resolve):
        mock_socket.side_effect = OSError(24, 'Too many open files')
        self.assertFalse(self.transport.send(self.destination, self.packets))

    @patch('eventclient.transport.socket.socket')
    def test_empty_packet_list(self, mock_socket):
        self.assertTrue(self.transport.send(self.destination, []))
        mock_socket.assert_not_called()

    @patch('eventclient.transport.netifaces.ifaddresses')
    @patch('eventclient.transport.resolve_destination', return_value=LOOPBACK)
    @patch('eventclient.transport.socket.socket')
    def test_bind_interface(self, mock_socket, mock_resolve, mock_ifaddresses):
        sock = make_socket_mock()
        mock_socket.return_value = sock
        mock_ifaddresses.return_value = {socket.AF_INET: [{'addr': '192.168.1.5', 'netmask': '255.255.255.0'}]}

        transport = UdpTransport(timeout=1.0, bind_interface='wlan0')
        self.assertTrue(transport.send(self.destination, self.packets))

        mock_ifaddresses.assert_called_once_with('wlan0')
        sock.bind.assert_called_once_with(('192.168.1.5', 0))

    @patch('eventclient.transport.netifaces.ifaddresses')
    @patch('eventclient.transport.resolve_destination', return_value=LOOPBACK)
    @patch('eventclient.transport.socket.socket')
    def test_unknown_interface_fails(self, mock_socket, mock_resolve, mock_ifaddresses):
        sock = make_socket_mock()
        mock_socket.return_value = sock
        mock_ifaddresses.side_effect = ValueError('You must specify a valid interface name.')

        transport = UdpTransport(timeout=1.0, bind_interface='nope0')
        self.assertFalse(transport.send(self.destination, self.packets))

        sock.close.assert_called_once()
        sock.sendto.assert_not_called()

    @patch('eventclient.transport.resolve_destination', return_value=LOOPBACK)
    def test_shared_socket_is_reused_and_not_closed(self, mock_resolve):
        sock = make_socket_mock()
        sock.gettimeout.return_value = 0.5
        transport = UdpTransport(sock=sock, timeout=2.0)

        self.assertTrue(transport.send(self.destination, self.packets))
        self.assertTrue(transport.send(self.destination, self.packets))

        self.assertEqual(sock.sendto.call_count, 8)
        sock.close.assert_not_called()
        sock.settimeout.assert_any_call(2.0)
        sock.settimeout.assert_called_with(0.5)
        mock_resolve.assert_called_with(self.destination, 2.0, socket.AF_INET)

    @patch('eventclient.transport.resolve_destination', return_value=LOOPBACK)
    def test_shared_socket_fragments_do_not_interleave(self, mock_resolve):
        sent = []

        def slow_sendto(data, addr):
            sent.append(data)
            time.sleep(0.001)
            return len(data)

        sock = make_socket_mock()
        sock.sendto.side_effect = slow_sendto
        transport = UdpTransport(sock=sock, timeout=1.0)
        codec = EventServerProtocol(max_payload_size=8)

        messages = [codec.encode_action(1, 'x' * 40) for _ in range(4)]
        threads = [threading.Thread(target=transport.send, args=(self.destination, m)) for m in messages]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        ids = [codec.parse_header(d).message_id for d in sent]
        self.assertEqual(len(ids), sum(len(m) for m in messages))
        # each message id appears as one contiguous run
        runs = [ids[0]] + [b for a, b in zip(ids, ids[1:]) if a != b]
        self.assertEqual(len(runs), len(messages))


class TestInterfaceLookup(unittest.TestCase):

    @patch('eventclient.transport.netifaces.ifaddresses')
    def test_ipv6_scope_is_stripped(self, mock_ifaddresses):
        mock_ifaddresses.return_value = {netifaces.AF_INET6: [{'addr': 'fe80::1%eth0'}]}
        self.assertEqual(get_interface_ip('eth0', netifaces.AF_INET6), 'fe80::1')

    @patch('eventclient.transport.netifaces.ifaddresses')
    def test_interface_without_address(self, mock_ifaddresses):
        mock_ifaddresses.return_value = {}
        with self.assertRaises(OSError):
            get_interface_ip('eth0')


class TestLoopback(unittest.TestCase):

    def setUp(self):
        self.server = MockEventServer().start()

    def tearDown(self):
        self.server.stop()

    def test_datagrams_reach_receiver(self):
        codec = EventServerProtocol(max_payload_size=64)
        packets = codec.encode_notification("NzbDrone Test", "x" * 150)

        transport = UdpTransport(timeout=1.0, bind_interface=None)
        self.assertTrue(transport.send(Destination('127.0.0.1', self.server.port), packets))

        received = self.server.wait_for(len(packets))
        self.assertEqual(received, packets)


if __name__ == '__main__':
    unittest.main()
