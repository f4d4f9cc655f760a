"""
Serial and Bluetooth Transport
==============================

The EV3 exposes its command channel as a Bluetooth Serial Port Profile
service. Once paired and bound (``rfcomm bind``), the brick appears as a
serial device such as ``/dev/rfcomm0`` on Linux or an outgoing COM port
on Windows. This module opens that device with pyserial and frames
replies for the protocol layer.

Pairing
-------
Linux::

    bluetoothctl pair 00:16:53:3D:BA:F5
    sudo rfcomm bind /dev/rfcomm0 00:16:53:3D:BA:F5 1

macOS lists the brick as ``/dev/tty.EV3-SerialPort`` after pairing.

Serial Settings
---------------
RFCOMM ignores line settings, so the baud rate only matters for real
USB-serial adapters. 8N1 without flow control is used throughout.
"""

import logging
from dataclasses import dataclass
from typing import Final, Optional

import serial
import serial.tools.list_ports

from ev3_sdk.comms.transport import read_frame
from ev3_sdk.errors import ConnectionError, TransportError

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_SERIAL_PORT: Final[str] = "/dev/rfcomm0"

DEFAULT_BAUD_RATE: Final[int] = 115200

# Read timeout in seconds
DEFAULT_TIMEOUT: Final[float] = 5.0

# LEGO Group USB vendor id
LEGO_VENDOR_ID: Final[int] = 0x0694

# Device name fragments of a bound EV3 Bluetooth serial port
BLUETOOTH_PORT_MARKERS: Final[tuple[str, ...]] = ("rfcomm", "EV3", "Bluetooth")


# =============================================================================
# Port Information
# =============================================================================

@dataclass(frozen=True)
class PortInfo:
    """
    Information about an available serial port.

    Attributes:
        device: System device path (e.g., '/dev/rfcomm0', 'COM5')
        description: Human-readable description from the driver
        manufacturer: Device manufacturer (if available)
        vid: USB Vendor ID (None for non-USB ports)
        pid: USB Product ID (None for non-USB ports)
    """

    device: str
    description: str
    manufacturer: Optional[str] = None
    vid: Optional[int] = None
    pid: Optional[int] = None

    @property
    def is_bluetooth(self) -> bool:
        """Return True if the port looks like an EV3 Bluetooth binding."""
        text = f"{self.device} {self.description}"
        return any(marker in text for marker in BLUETOOTH_PORT_MARKERS)

    @property
    def is_lego(self) -> bool:
        return self.vid == LEGO_VENDOR_ID

    def __str__(self) -> str:
        parts = [self.device]
        if self.description:
            parts.append(f"- {self.description}")
        if self.is_bluetooth:
            parts.append("(Bluetooth)")
        return " ".join(parts)


# =============================================================================
# Port Enumeration
# =============================================================================

def list_serial_ports() -> list[PortInfo]:
    """
    List all available serial ports on the system.

    Returns:
        List of PortInfo objects describing available ports.
    """
    ports = []

    for port in serial.tools.list_ports.comports():
        ports.append(
            PortInfo(
                device=port.device,
                description=port.description or "",
                manufacturer=port.manufacturer,
                vid=port.vid,
                pid=port.pid,
            )
        )
        logger.debug(
            "Found port: %s (vid=%s, pid=%s)",
            port.device,
            f"{port.vid:04X}" if port.vid else "N/A",
            f"{port.pid:04X}" if port.pid else "N/A",
        )

    return ports


def find_ev3_port() -> Optional[str]:
    """
    Guess which serial port is the brick.

    Bluetooth bindings are preferred, then ports reporting the LEGO
    vendor id.

    Returns:
        Device path, or None if nothing looks like a brick.
    """
    ports = list_serial_ports()

    for port in ports:
        if port.is_bluetooth:
            logger.info("Auto-detected Bluetooth port: %s", port.device)
            return port.device

    for port in ports:
        if port.is_lego:
            logger.info("Auto-detected LEGO port: %s", port.device)
            return port.device

    logger.debug("No EV3 serial port found among %d ports", len(ports))
    return None


def format_port_list(ports: list[PortInfo]) -> str:
    """Format a list of ports for display, one per line."""
    if not ports:
        return "No serial ports found."
    return "\n".join(f"  {port}" for port in ports)


# =============================================================================
# Port Configuration
# =============================================================================

def open_serial_port(
    device: str,
    baud_rate: int = DEFAULT_BAUD_RATE,
    timeout: float = DEFAULT_TIMEOUT,
) -> serial.Serial:
    """
    Open and configure a serial port for EV3 communication.

    Args:
        device: Serial port device path (e.g., '/dev/rfcomm0', 'COM5').
        baud_rate: Baud rate; ignored by RFCOMM.
        timeout: Read timeout in seconds.

    Returns:
        Configured and opened serial.Serial object.

    Raises:
        ConnectionError: If the port cannot be opened.
        ValueError: If baud_rate is not positive.
    """
    if baud_rate <= 0:
        raise ValueError(f"Invalid baud rate: {baud_rate}")

    logger.info("Opening serial port: %s at %d baud", device, baud_rate)

    try:
        port = serial.Serial(
            port=device,
            baudrate=baud_rate,
            bytesize=serial.EIGHTBITS,
            parity=serial.PARITY_NONE,
            stopbits=serial.STOPBITS_ONE,
            timeout=timeout,
            xonxoff=False,
            rtscts=False,
            dsrdtr=False,
        )
        port.reset_input_buffer()
        logger.debug("Port opened: %s (timeout=%.1f)", device, timeout)
        return port

    except serial.SerialException as e:
        error_msg = str(e)

        if "Permission denied" in error_msg:
            raise ConnectionError(
                f"Permission denied accessing {device}. "
                "You may need to add your user to the 'dialout' group: "
                "sudo usermod -a -G dialout $USER"
            ) from e
        elif "No such file" in error_msg or "not found" in error_msg.lower():
            raise ConnectionError(
                f"Serial port not found: {device}. "
                "Pair the brick and bind it with 'rfcomm bind', "
                "or use 'ev3link ports' to list available ports."
            ) from e
        elif "busy" in error_msg.lower() or "in use" in error_msg.lower():
            raise ConnectionError(
                f"Serial port {device} is busy. "
                "Close any other programs using the port."
            ) from e
        else:
            raise ConnectionError(f"Cannot open {device}: {e}") from e


def close_serial_port(port: Optional[serial.Serial]) -> None:
    """
    Close a serial port, logging rather than raising on failure.

    Args:
        port: Serial port object to close, or None.
    """
    if port is None:
        return

    try:
        if port.is_open:
            port.close()
            logger.debug("Serial port closed")
    except (serial.SerialException, OSError) as e:
        logger.warning("Error closing serial port: %s", e)


# =============================================================================
# Transport
# =============================================================================

class SerialTransport:
    """
    Transport over a serial device (Bluetooth RFCOMM or USB-serial).

    Args:
        device: Serial device path.
        baud_rate: Baud rate for real serial adapters.
        timeout: Read timeout in seconds.
        port: Already-open port to use instead of opening ``device``.
    """

    def __init__(
        self,
        device: str = DEFAULT_SERIAL_PORT,
        baud_rate: int = DEFAULT_BAUD_RATE,
        timeout: float = DEFAULT_TIMEOUT,
        port: Optional[serial.Serial] = None,
    ):
        self.device = device
        self.baud_rate = baud_rate
        self.timeout = timeout
        self._port = port

    @property
    def is_open(self) -> bool:
        return self._port is not None

    def open(self) -> None:
        if self._port is None:
            self._port = open_serial_port(self.device, self.baud_rate, self.timeout)

    def write(self, data: bytes) -> None:
        port = self._require_open()
        try:
            port.write(data)
            port.flush()
        except serial.SerialException as e:
            raise TransportError(f"Write to {self.device} failed: {e}") from e

    def read(self) -> bytes:
        self._require_open()
        return read_frame(self._read_some, self.device)

    def _read_some(self, count: int) -> bytes:
        try:
            return self._port.read(count)
        except serial.SerialException as e:
            raise TransportError(f"Read from {self.device} failed: {e}") from e

    def close(self) -> None:
        close_serial_port(self._port)
        self._port = None

    def _require_open(self) -> serial.Serial:
        if self._port is None:
            raise TransportError(f"{self.device} is not open")
        return self._port

    def __repr__(self) -> str:
        return f"SerialTransport({self.device!r}, baud_rate={self.baud_rate})"
