# Configuration for the media player Event Client

# ==============================================================================
# EventServer Protocol Constants
# ==============================================================================

# The UDP port the player's EventServer listens on.
EVENT_SERVER_PORT = 9777

# Largest payload chunk carried by a single datagram.
# 1024 bytes + 32 byte header stays well below a typical 1500 byte path MTU.
MAX_PAYLOAD_SIZE = 1024

# Device name announced in HELO packets.
DEVICE_NAME = "NzbDrone"

# ==============================================================================
# Transport Configuration
# ==============================================================================

# Seconds allowed for address resolution and for each datagram send.
SEND_TIMEOUT = 5.0

# Network interface to send from (e.g. "wlan0").
# None leaves the socket unbound so the OS picks the route.
BIND_INTERFACE = None

# ==============================================================================
# Icon Configuration
# ==============================================================================

# Bundled icon used by the CLI when no icon is given.
DEFAULT_ICON = "NzbDrone.jpg"

# Seconds allowed when an icon is fetched from an http(s) URL.
ICON_FETCH_TIMEOUT = 10
