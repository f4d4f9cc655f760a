"""
EV3 SDK - Host-Side Client for LEGO Mindstorms EV3 Bricks
=========================================================

This package talks to an EV3 brick running the standard LEGO firmware
using its binary command/reply protocol. It builds direct commands
(byte-code executed immediately by the brick's virtual machine) and
system commands (filesystem operations), sends them over USB,
Bluetooth or Wi-Fi, and decodes the replies into Python values.

Main Components
---------------
- **protocol**: Message encoding, reply decoding and file transfer
    Operand encoders, opcode builders, ``Message``, ``decode_reply``

- **comms**: Transports and the request/reply link
    ``SerialTransport``, ``WifiTransport``, ``UsbTransport``, ``Link``

- **brick**: The ``Brick`` session with one method per brick verb

- **bytecode**: ``.rbf`` program image builder

- **cli**: Command-line tool (ev3link)

Quick Start
-----------
Read the battery over Bluetooth:
    >>> from ev3_sdk import Brick, ConnectionConfig, IoType
    >>> config = ConnectionConfig(io_type=IoType.BLUETOOTH)
    >>> with Brick.connect(config) as brick:
    ...     print(f"{brick.battery_voltage():.2f} V")

Drive a motor:
    >>> from ev3_sdk import Motor
    >>> with Brick.connect(config) as brick:
    ...     brick.output_power(0, Motor.A, 50)
    ...     brick.output_start(0, Motor.A)

Or use the command-line tool:
    $ ev3link --io-type bt --port /dev/rfcomm0 battery
    $ ev3link upload tones.rbf ../prjs/tones/tones.rbf

Reference Documentation
-----------------------
- LEGO MINDSTORMS EV3 Communication Developer Kit
- LEGO MINDSTORMS EV3 Firmware Developer Kit

Version History
---------------
1.0.0 - Initial release with USB, Bluetooth and Wi-Fi transports
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from ev3_sdk.brick import Brick
from ev3_sdk.config import ConnectionConfig, IoType

from ev3_sdk.device import (
    BrakeMode,
    ColorMode,
    GyroMode,
    InfraredMode,
    InputPort,
    LargeMotorMode,
    Layer,
    Motor,
    TouchMode,
    UltrasonicMode,
)

from ev3_sdk.errors import (
    EV3Error,
    EncodingError,
    EncodingOverflowError,
    DecodeError,
    TruncatedReplyError,
    SequenceMismatchError,
    PayloadLengthError,
    ListingFormatError,
    DeviceError,
    CommsError,
    ConnectionError as EV3ConnectionError,  # Avoid collision with builtin
    TransportError,
    TimeoutError as EV3TimeoutError,  # Avoid collision with builtin
)

from ev3_sdk.protocol import FileEntry, Message, Reply, decode_reply
from ev3_sdk.bytecode import ProgramImage, three_tone_program

__all__ = [
    "__version__",
    # Session
    "Brick",
    "ConnectionConfig",
    "IoType",
    # Devices
    "BrakeMode",
    "ColorMode",
    "GyroMode",
    "InfraredMode",
    "InputPort",
    "LargeMotorMode",
    "Layer",
    "Motor",
    "TouchMode",
    "UltrasonicMode",
    # Protocol
    "FileEntry",
    "Message",
    "Reply",
    "decode_reply",
    # Byte-code
    "ProgramImage",
    "three_tone_program",
    # Errors
    "EV3Error",
    "EncodingError",
    "EncodingOverflowError",
    "DecodeError",
    "TruncatedReplyError",
    "SequenceMismatchError",
    "PayloadLengthError",
    "ListingFormatError",
    "DeviceError",
    "CommsError",
    "EV3ConnectionError",
    "TransportError",
    "EV3TimeoutError",
]
