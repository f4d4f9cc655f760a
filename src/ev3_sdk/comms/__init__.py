"""
EV3 Communication Module
========================

Transports that carry protocol frames to the brick, and the ``Link``
that runs request/reply round trips over any of them.

Module Structure
----------------
- **transport**: The ``Transport`` capability and stream framing
- **link**: Sequence ids, send/exchange, hex logging
- **serial**: Bluetooth RFCOMM and USB-serial (pyserial)
- **wifi**: UDP beacon discovery and unlocked TCP channel
- **usb**: USB HID (hidapi, optional)

Quick Start
-----------
    from ev3_sdk.comms import Link, SerialTransport

    transport = SerialTransport("/dev/rfcomm0")
    transport.open()
    try:
        link = Link(transport)
        ...
    finally:
        transport.close()

Most callers use ``ev3_sdk.Brick``, which wraps all of this.
"""

from ev3_sdk.comms.link import Link
from ev3_sdk.comms.serial import (
    DEFAULT_BAUD_RATE,
    DEFAULT_SERIAL_PORT,
    PortInfo,
    SerialTransport,
    close_serial_port,
    find_ev3_port,
    format_port_list,
    list_serial_ports,
    open_serial_port,
)
from ev3_sdk.comms.transport import Transport, read_frame
from ev3_sdk.comms.usb import UsbTransport
from ev3_sdk.comms.wifi import (
    BEACON_PORT,
    DEFAULT_SERIAL_NUMBER,
    DEFAULT_WIFI_ADDRESS,
    DEFAULT_WIFI_PORT,
    Beacon,
    WifiTransport,
    discover,
    unlock_request,
)

__all__ = [
    # Link
    "Link",
    # Transport capability
    "Transport",
    "read_frame",
    # Serial
    "DEFAULT_BAUD_RATE",
    "DEFAULT_SERIAL_PORT",
    "PortInfo",
    "SerialTransport",
    "list_serial_ports",
    "find_ev3_port",
    "format_port_list",
    "open_serial_port",
    "close_serial_port",
    # Wi-Fi
    "BEACON_PORT",
    "DEFAULT_WIFI_ADDRESS",
    "DEFAULT_WIFI_PORT",
    "DEFAULT_SERIAL_NUMBER",
    "Beacon",
    "WifiTransport",
    "discover",
    "unlock_request",
    # USB
    "UsbTransport",
]
