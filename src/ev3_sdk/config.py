"""
EV3 Connection Configuration
============================

Where and how to reach the brick. Configuration can come from:
- Default values (defined here)
- Environment variables (``ConnectionConfig.from_env``)
- Command-line options, which the ``ev3link`` CLI applies last

Environment Variables
---------------------
    EV3_IO_TYPE         usb, bt (alias serial) or wifi
    EV3_SERIAL_PORT     Serial/Bluetooth device, e.g. /dev/rfcomm0
    EV3_BAUD            Serial baud rate
    EV3_WIFI_ADDRESS    Brick IP address; "discover" to wait for its beacon
    EV3_WIFI_PORT       TCP port of the command channel
    EV3_SERIAL_NUMBER   Brick serial number used to unlock Wi-Fi
    EV3_TIMEOUT         Read timeout in seconds
"""

import logging
import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from ev3_sdk.comms.serial import DEFAULT_BAUD_RATE, DEFAULT_SERIAL_PORT, SerialTransport
from ev3_sdk.comms.transport import Transport
from ev3_sdk.comms.usb import UsbTransport
from ev3_sdk.comms.wifi import (
    DEFAULT_SERIAL_NUMBER,
    DEFAULT_WIFI_ADDRESS,
    DEFAULT_WIFI_PORT,
    WifiTransport,
)

logger = logging.getLogger(__name__)

# Wi-Fi address value that asks for beacon discovery
DISCOVER_ADDRESS = "discover"


class IoType(str, Enum):
    """How the PC reaches the brick."""

    USB = "usb"
    BLUETOOTH = "bt"
    WIFI = "wifi"

    @classmethod
    def parse(cls, value: str) -> "IoType":
        """
        Parse an io type name, accepting ``serial`` for Bluetooth.

        Raises:
            ValueError: If the name is unknown.
        """
        name = value.strip().lower()
        if name == "serial":
            return cls.BLUETOOTH
        try:
            return cls(name)
        except ValueError:
            valid = ", ".join(t.value for t in cls)
            raise ValueError(
                f"Unknown io type: {value!r}. Valid types: {valid}, serial"
            ) from None


@dataclass
class ConnectionConfig:
    """
    Connection settings for one brick.

    Attributes:
        io_type: Transport kind (default: USB)
        serial_port: Serial/Bluetooth device path (default: /dev/rfcomm0)
        baud_rate: Serial baud rate (default: 115200)
        wifi_address: Brick IP address, or None to discover it
        wifi_port: TCP command port (default: 5555)
        serial_number: Serial number sent in the Wi-Fi unlock request
        timeout: Transport read timeout in seconds (default: 5.0)
    """

    io_type: IoType = IoType.USB
    serial_port: str = DEFAULT_SERIAL_PORT
    baud_rate: int = DEFAULT_BAUD_RATE
    wifi_address: Optional[str] = DEFAULT_WIFI_ADDRESS
    wifi_port: int = DEFAULT_WIFI_PORT
    serial_number: str = DEFAULT_SERIAL_NUMBER
    timeout: float = 5.0

    # -------------------------------------------------------------------------
    # Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "ConnectionConfig":
        """
        Create a ConnectionConfig from EV3_* environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.

        Returns:
            ConnectionConfig with environment values over the defaults.

        Raises:
            ValueError: If EV3_IO_TYPE names an unknown transport.
        """
        env = os.environ if environ is None else environ
        config = cls()

        if io_type := env.get("EV3_IO_TYPE"):
            config.io_type = IoType.parse(io_type)

        if serial_port := env.get("EV3_SERIAL_PORT"):
            config.serial_port = serial_port

        if baud := env.get("EV3_BAUD"):
            config.baud_rate = _parse_number("EV3_BAUD", baud, int, config.baud_rate)

        if address := env.get("EV3_WIFI_ADDRESS"):
            config.wifi_address = None if address == DISCOVER_ADDRESS else address

        if wifi_port := env.get("EV3_WIFI_PORT"):
            config.wifi_port = _parse_number("EV3_WIFI_PORT", wifi_port, int, config.wifi_port)

        if serial_number := env.get("EV3_SERIAL_NUMBER"):
            config.serial_number = serial_number

        if timeout := env.get("EV3_TIMEOUT"):
            config.timeout = _parse_number("EV3_TIMEOUT", timeout, float, config.timeout)

        return config

    def with_overrides(self, **overrides) -> "ConnectionConfig":
        """Copy with every non-None keyword applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def create_transport(self) -> Transport:
        """Build an unopened transport for these settings."""
        if self.io_type is IoType.USB:
            return UsbTransport(timeout=self.timeout)
        if self.io_type is IoType.BLUETOOTH:
            return SerialTransport(self.serial_port, self.baud_rate, self.timeout)
        return WifiTransport(
            address=self.wifi_address,
            serial_number=self.serial_number,
            port=self.wifi_port,
            timeout=self.timeout,
        )

    def describe(self) -> str:
        if self.io_type is IoType.USB:
            return "USB"
        if self.io_type is IoType.BLUETOOTH:
            return self.serial_port
        return f"{self.wifi_address or 'discovered brick'}:{self.wifi_port}"


def _parse_number(name: str, value: str, kind: type, default):
    try:
        return kind(value)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, value, default)
        return default
