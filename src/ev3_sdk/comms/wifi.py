"""
Wi-Fi Transport
===============

An EV3 with a Wi-Fi dongle announces itself with a UDP beacon and then
accepts one TCP connection, which must be unlocked before it carries
protocol frames.

Connection Sequence
-------------------
```
PC                                         BRICK
 |  ←──── UDP beacon (port 3015) ─────────── |   every few seconds
 |  ───── UDP reply to beacon sender ──────→ |   only after discovery
 |  ───── TCP connect (port 5555) ─────────→ |
 |  ───── GET /target?sn=<SN>VMTP1.0 ──────→ |
 |  ←──── Accept:EV340 ───────────────────── |
 |  ←───── protocol frames ────────────────→ |
```

Beacon Format
-------------
ASCII ``Key: value`` lines::

    Serial-Number: 0016533dbaf5
    Port: 5555
    Name: EV3
    Protocol: EV3
"""

import logging
import socket
from dataclasses import dataclass
from typing import Final, Optional

from ev3_sdk.comms.transport import read_frame
from ev3_sdk.errors import ConnectionError, TimeoutError, TransportError

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

BEACON_PORT: Final[int] = 3015

DEFAULT_WIFI_ADDRESS: Final[str] = "192.168.1.104"
DEFAULT_WIFI_PORT: Final[int] = 5555
DEFAULT_SERIAL_NUMBER: Final[str] = "0016533dbaf5"

DEFAULT_TIMEOUT: Final[float] = 5.0
DEFAULT_DISCOVERY_TIMEOUT: Final[float] = 10.0

UNLOCK_ACCEPT: Final[bytes] = b"Accept:EV340"

# Largest beacon or unlock reply we expect
_CONTROL_BUFFER_SIZE: Final[int] = 1024


def unlock_request(serial_number: str) -> bytes:
    """Build the text that unlocks the brick's TCP command channel."""
    return f"GET /target?sn={serial_number}VMTP1.0\r\nProtocol: EV3\r\n\r\n".encode("ascii")


# =============================================================================
# Discovery
# =============================================================================

@dataclass(frozen=True)
class Beacon:
    """
    A brick announcement received on the beacon port.

    Attributes:
        address: IP address the beacon came from.
        source_port: UDP port the beacon came from; the discovery reply
                     goes back to it.
        serial_number: Brick serial number (Bluetooth MAC, hex).
        port: TCP port of the command channel.
        name: Brick name.
        protocol: Protocol tag, "EV3" for the brick.
    """

    address: str
    source_port: int
    serial_number: str
    port: int
    name: str = ""
    protocol: str = ""

    @classmethod
    def parse(cls, data: bytes, address: str, source_port: int) -> "Beacon":
        """
        Parse beacon text.

        Raises:
            ValueError: If the serial number or port is missing.
        """
        fields = {}
        for line in data.decode("ascii", errors="replace").splitlines():
            key, sep, value = line.partition(":")
            if sep:
                fields[key.strip().lower()] = value.strip()

        try:
            serial_number = fields["serial-number"]
            port = int(fields["port"])
        except (KeyError, ValueError) as e:
            raise ValueError(f"Malformed beacon from {address}: {data!r}") from e

        return cls(
            address=address,
            source_port=source_port,
            serial_number=serial_number,
            port=port,
            name=fields.get("name", ""),
            protocol=fields.get("protocol", ""),
        )


def discover(
    timeout: float = DEFAULT_DISCOVERY_TIMEOUT,
    serial_number: Optional[str] = None,
) -> Beacon:
    """
    Wait for a brick's UDP beacon.

    Args:
        timeout: Seconds to listen before giving up.
        serial_number: Only accept the brick with this serial number.

    Returns:
        The first matching beacon.

    Raises:
        ConnectionError: If no matching beacon arrives in time.
    """
    logger.info("Listening for EV3 beacons on UDP port %d", BEACON_PORT)

    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.settimeout(timeout)
        try:
            sock.bind(("", BEACON_PORT))
        except OSError as e:
            raise ConnectionError(f"Cannot listen on UDP port {BEACON_PORT}: {e}") from e

        while True:
            try:
                data, (address, source_port) = sock.recvfrom(_CONTROL_BUFFER_SIZE)
            except socket.timeout:
                raise ConnectionError(
                    f"No EV3 beacon received within {timeout}s"
                ) from None

            try:
                beacon = Beacon.parse(data, address, source_port)
            except ValueError as e:
                logger.debug("Ignoring datagram: %s", e)
                continue

            if serial_number and beacon.serial_number.lower() != serial_number.lower():
                logger.debug("Ignoring beacon from %s", beacon.serial_number)
                continue

            logger.info(
                "Found EV3 '%s' (%s) at %s:%d",
                beacon.name, beacon.serial_number, beacon.address, beacon.port
            )
            return beacon


# =============================================================================
# Transport
# =============================================================================

class WifiTransport:
    """
    Transport over the brick's unlocked TCP command channel.

    With ``address`` None the brick is located by its beacon first.

    Args:
        address: Brick IP address, or None to discover it.
        serial_number: Serial number sent in the unlock request.
        port: TCP port of the command channel.
        timeout: Socket timeout in seconds.
    """

    def __init__(
        self,
        address: Optional[str] = DEFAULT_WIFI_ADDRESS,
        serial_number: str = DEFAULT_SERIAL_NUMBER,
        port: int = DEFAULT_WIFI_PORT,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.address = address
        self.serial_number = serial_number
        self.port = port
        self.timeout = timeout
        self._sock: Optional[socket.socket] = None

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    def open(self) -> None:
        if self._sock is not None:
            return

        if self.address is None:
            beacon = discover(serial_number=self.serial_number or None)
            self._answer_beacon(beacon)
            self.address = beacon.address
            self.port = beacon.port
            self.serial_number = beacon.serial_number

        logger.info("Connecting to %s:%d", self.address, self.port)
        try:
            sock = socket.create_connection((self.address, self.port), self.timeout)
        except OSError as e:
            raise ConnectionError(
                f"Cannot connect to {self.address}:{self.port}: {e}"
            ) from e

        try:
            self._unlock(sock)
        except ConnectionError:
            sock.close()
            raise

        self._sock = sock
        logger.info("Connected to EV3 %s", self.serial_number)

    def _answer_beacon(self, beacon: Beacon) -> None:
        """Tell the brick a client is coming; it ignores TCP until then."""
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            try:
                sock.sendto(b"\x00", (beacon.address, beacon.source_port))
            except OSError as e:
                raise ConnectionError(f"Cannot answer beacon: {e}") from e

    def _unlock(self, sock: socket.socket) -> None:
        try:
            sock.sendall(unlock_request(self.serial_number))
            reply = sock.recv(_CONTROL_BUFFER_SIZE)
        except OSError as e:
            raise ConnectionError(f"Unlock handshake failed: {e}") from e

        logger.debug("Unlock reply: %r", reply)
        if not reply.startswith(UNLOCK_ACCEPT):
            raise ConnectionError(
                f"Brick refused connection for serial number "
                f"{self.serial_number}: {reply!r}"
            )

    def write(self, data: bytes) -> None:
        sock = self._require_open()
        try:
            sock.sendall(data)
        except socket.timeout:
            raise TimeoutError(f"Send to {self.address} timed out") from None
        except OSError as e:
            raise TransportError(f"Send to {self.address} failed: {e}") from e

    def read(self) -> bytes:
        self._require_open()
        return read_frame(self._recv, self.address)

    def _recv(self, count: int) -> bytes:
        try:
            chunk = self._sock.recv(count)
        except socket.timeout:
            raise TimeoutError(f"No reply from {self.address}") from None
        except OSError as e:
            raise TransportError(f"Receive from {self.address} failed: {e}") from e
        if not chunk:
            raise TransportError(f"Connection closed by {self.address}")
        return chunk

    def close(self) -> None:
        if self._sock is None:
            return
        try:
            self._sock.close()
            logger.debug("Socket closed")
        except OSError as e:
            logger.warning("Error closing socket: %s", e)
        self._sock = None

    def _require_open(self) -> socket.socket:
        if self._sock is None:
            raise TransportError("Wi-Fi transport is not open")
        return self._sock

    def __repr__(self) -> str:
        return f"WifiTransport({self.address!r}, port={self.port})"
