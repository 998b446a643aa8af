import argparse
import logging
import sys

from eventclient import config
from eventclient import ActionType, EventClient, IconType, UdpTransport

logger = logging.getLogger("EventClient")


def build_parser():
    parser = argparse.ArgumentParser(description="Send EventServer packets to a media player")
    parser.add_argument("--host", default="localhost", help="Player host name or IP")
    parser.add_argument("--port", type=int, default=config.EVENT_SERVER_PORT, help="EventServer UDP port")
    parser.add_argument("--timeout", type=float, default=config.SEND_TIMEOUT, help="Resolve/send timeout (s)")
    parser.add_argument("--interface", default=config.BIND_INTERFACE, help="Send from this network interface")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    notify = sub.add_parser("notify", help="Show a notification")
    notify.add_argument("header")
    notify.add_argument("message")
    notify.add_argument("--icon", default=None,
                        help="Icon file, URL or bundled name (type inferred from extension)")
    notify.add_argument("--builtin", choices=["info", "warning", "error"], help="Use a built-in icon")

    action = sub.add_parser("action", help="Run an action")
    action.add_argument("action")
    action.add_argument("--button", action="store_true", help="Send as a button action instead of a builtin")

    hello = sub.add_parser("hello", help="Announce this client")
    hello.add_argument("--name", default=config.DEVICE_NAME)
    hello.add_argument("--icon", default=config.DEFAULT_ICON)

    sub.add_parser("bye", help="End the session")
    sub.add_parser("ping", help="Keep the session alive")
    return parser


def run(args, client: EventClient) -> bool:
    if args.command == "notify":
        if args.builtin:
            return client.send_notification(args.header, args.message, IconType[args.builtin.upper()],
                                            None, args.host)
        icon_type = IconType.from_filename(args.icon) if args.icon else IconType.NONE
        return client.send_notification(args.header, args.message, icon_type, args.icon, args.host)

    if args.command == "action":
        action_type = ActionType.BUTTON if args.button else ActionType.EXECBUILTIN
        return client.send_action(args.host, action_type, args.action)

    if args.command == "hello":
        return client.send_hello(args.host, args.name, IconType.from_filename(args.icon), args.icon)

    if args.command == "bye":
        return client.send_bye(args.host)

    return client.send_ping(args.host)


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    transport = UdpTransport(timeout=args.timeout, bind_interface=args.interface, logger=logger)
    client = EventClient(transport=transport, port=args.port, logger=logger)

    if run(args, client):
        logger.info("✅ Sent.")
        return 0
    logger.error("❌ Send failed.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
